import pytest

from ultimate_tex.core.codec import TextureCodec
from ultimate_tex.core.texture import ContainerKind

from texture_factory import BntxMemoryBackend, FakeCuttlefish, NutexbMemoryBackend


@pytest.fixture
def nutexb_backend():
    return NutexbMemoryBackend()


@pytest.fixture
def bntx_backend():
    return BntxMemoryBackend()


@pytest.fixture
def cuttlefish(monkeypatch):
    """Fake encoder installed in place of subprocess.run for the codec module"""
    fake = FakeCuttlefish()
    monkeypatch.setattr("ultimate_tex.core.codec.subprocess.run", fake)
    return fake


@pytest.fixture
def codec(cuttlefish, nutexb_backend, bntx_backend):
    return TextureCodec(
        cuttlefish_path="cuttlefish",
        console_backends={
            ContainerKind.NUTEXB: nutexb_backend,
            ContainerKind.BNTX: bntx_backend,
        },
    )
