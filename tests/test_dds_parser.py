"""Tests for DDS header parsing"""

import struct

import pytest

from ultimate_tex.core.dds_parser import (
    DDPF_ALPHAPIXELS,
    DDPF_FOURCC,
    DDPF_RGB,
    DDS_RESOURCE_MISC_TEXTURECUBE,
    DDSCAPS2_CUBEMAP,
    FOURCC_DXT1,
    FOURCC_DXT5,
    HEADER_SIZE,
    parse_dds_header,
    surface_size,
    with_linear_dxgi_format,
)
from ultimate_tex.core.errors import CorruptDataError, FormatMappingError
from ultimate_tex.core.formats import DxgiFormat

from texture_factory import dds_header, make_dds_bytes

RGBA_MASKS = (0x000000ff, 0x0000ff00, 0x00ff0000, 0xff000000)
BGRA_MASKS = (0x00ff0000, 0x0000ff00, 0x000000ff, 0xff000000)


def test_dx10_header():
    data = make_dds_bytes(DxgiFormat.BC7_UNORM, 128, 64, mipmap_count=8)
    header = parse_dds_header(data)

    assert (header.width, header.height, header.depth) == (128, 64, 1)
    assert header.mipmap_count == 8
    assert header.dxgi_format is DxgiFormat.BC7_UNORM
    assert header.has_dx10_header
    assert header.data_offset == HEADER_SIZE + 20


@pytest.mark.parametrize("fourcc, expected", [
    (FOURCC_DXT1, DxgiFormat.BC1_UNORM),
    (FOURCC_DXT5, DxgiFormat.BC3_UNORM),
])
def test_legacy_fourcc(fourcc, expected):
    data = dds_header(16, 16, fourcc=fourcc) + bytes(16 * 16)
    header = parse_dds_header(data)
    assert header.dxgi_format is expected
    assert not header.has_dx10_header
    assert header.data_offset == HEADER_SIZE


@pytest.mark.parametrize("masks, expected", [
    (RGBA_MASKS, DxgiFormat.R8G8B8A8_UNORM),
    (BGRA_MASKS, DxgiFormat.B8G8R8A8_UNORM),
])
def test_uncompressed_masks(masks, expected):
    data = dds_header(4, 4, pf_flags=DDPF_RGB | DDPF_ALPHAPIXELS, bitcount=32, masks=masks)
    header = parse_dds_header(data + bytes(4 * 4 * 4))
    assert header.dxgi_format is expected


def test_unmapped_mask_layout_raises():
    data = dds_header(4, 4, pf_flags=DDPF_RGB, bitcount=32, masks=BGRA_MASKS[:3] + (0,))
    with pytest.raises(FormatMappingError):
        parse_dds_header(data + bytes(64))


def test_unknown_fourcc_raises():
    data = dds_header(4, 4, pf_flags=DDPF_FOURCC, fourcc=0x32545844)  # 'DXT2'
    with pytest.raises(FormatMappingError, match="DXT2"):
        parse_dds_header(data + bytes(16))


def test_unknown_dxgi_code_raises():
    data = dds_header(4, 4, dxgi_format=10) + bytes(128)
    with pytest.raises(FormatMappingError):
        parse_dds_header(data)


def test_zero_mipmap_count_means_one():
    data = make_dds_bytes(DxgiFormat.R8G8B8A8_UNORM, 4, 4)
    patched = bytearray(data)
    struct.pack_into('<I', patched, 28, 0)
    assert parse_dds_header(bytes(patched)).mipmap_count == 1


class TestCorruptFiles:
    def test_bad_magic(self):
        data = b'XXXX' + make_dds_bytes(DxgiFormat.BC1_UNORM, 4, 4)[4:]
        with pytest.raises(CorruptDataError, match="magic"):
            parse_dds_header(data)

    def test_too_small(self):
        with pytest.raises(CorruptDataError):
            parse_dds_header(b'DDS ' + bytes(20))

    def test_truncated_surface(self):
        data = make_dds_bytes(DxgiFormat.BC7_UNORM, 64, 64)
        with pytest.raises(CorruptDataError, match="truncated"):
            parse_dds_header(data[:-1])

    def test_truncated_dx10_header(self):
        data = dds_header(4, 4, dxgi_format=DxgiFormat.BC1_UNORM)
        with pytest.raises(CorruptDataError):
            parse_dds_header(data[:HEADER_SIZE + 8])

    def test_zero_width(self):
        data = bytearray(make_dds_bytes(DxgiFormat.BC1_UNORM, 4, 4))
        struct.pack_into('<I', data, 16, 0)
        with pytest.raises(CorruptDataError):
            parse_dds_header(bytes(data))


def test_surface_size():
    assert surface_size(DxgiFormat.BC1_UNORM, 64, 64) == 16 * 16 * 8
    assert surface_size(DxgiFormat.BC7_UNORM, 2, 2) == 16
    assert surface_size(DxgiFormat.R8_UNORM, 5, 3) == 15
    assert surface_size(DxgiFormat.R32G32B32A32_FLOAT, 2, 2) == 64


def test_linear_format_patch():
    data = make_dds_bytes(DxgiFormat.BC7_UNORM_SRGB, 4, 4)
    header = parse_dds_header(data)

    patched = with_linear_dxgi_format(data, header)

    assert parse_dds_header(patched).dxgi_format is DxgiFormat.BC7_UNORM
    assert patched[HEADER_SIZE + 4:] == data[HEADER_SIZE + 4:]


def test_linear_format_patch_leaves_linear_files_alone():
    data = make_dds_bytes(DxgiFormat.BC3_UNORM, 4, 4)
    assert with_linear_dxgi_format(data, parse_dds_header(data)) is data


class TestLayers:
    def test_dx10_array_size(self):
        data = make_dds_bytes(DxgiFormat.R8G8B8A8_UNORM, 8, 8, array_size=6)
        assert parse_dds_header(data).array_size == 6

    def test_dx10_cube_counts_faces(self):
        data = dds_header(4, 4, dxgi_format=DxgiFormat.BC1_UNORM, misc_flag=DDS_RESOURCE_MISC_TEXTURECUBE)
        assert parse_dds_header(data + bytes(8 * 6)).array_size == 6

    def test_legacy_cube_map(self):
        data = dds_header(4, 4, fourcc=FOURCC_DXT1, caps2=DDSCAPS2_CUBEMAP | 0xfc00)
        assert parse_dds_header(data + bytes(8 * 6)).array_size == 6

    def test_volume_depth(self):
        data = dds_header(4, 4, fourcc=FOURCC_DXT1, depth=4)
        header = parse_dds_header(data + bytes(8 * 4))
        assert header.depth == 4
        assert header.array_size == 1
