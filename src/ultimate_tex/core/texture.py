"""
Loaded texture representation.

A Texture is exactly one of RawImage, DdsTexture, NutexbTexture or
BntxTexture. Code that branches on the container kind does so through tables
built with kind_table(), which refuse to load when a kind is missing.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, Tuple, TypeVar

import numpy as np

from .dds_parser import DdsHeader, parse_dds_header
from .errors import FormatMappingError
from .formats import (
    BNTX_FORMAT_MAP,
    DDS_FORMAT_MAP,
    NUTEXB_FORMAT_MAP,
    BntxFormat,
    NutexbFormat,
    PixelFormat,
)


class ContainerKind(Enum):
    IMAGE = "image"
    DDS = "dds"
    NUTEXB = "nutexb"
    BNTX = "bntx"


# Kinds whose byte layout is handled by a console backend
CONSOLE_KINDS = frozenset({ContainerKind.NUTEXB, ContainerKind.BNTX})


T = TypeVar('T')


def kind_table(table: Dict[ContainerKind, T], label: str) -> Dict[ContainerKind, T]:
    """Validate that a per-kind table covers every ContainerKind."""
    missing = [kind.value for kind in ContainerKind if kind not in table]
    if missing:
        raise TypeError(f"{label} does not handle container kind(s): {', '.join(missing)}")
    return table


class Texture:
    """Common interface of every texture variant. All methods are pure."""

    kind: ClassVar[ContainerKind]

    def dimensions(self) -> Tuple[int, int, int]:
        raise NotImplementedError

    def pixel_format(self) -> PixelFormat:
        raise NotImplementedError

    def clone(self) -> "Texture":
        raise NotImplementedError


@dataclass(eq=False)
class RawImage(Texture):
    """Uncompressed RGBA8 pixels, shape (height, width, 4)"""

    kind: ClassVar[ContainerKind] = ContainerKind.IMAGE

    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.dtype != np.uint8 or self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"RawImage expects uint8 pixels shaped (height, width, 4), "
                f"got {self.pixels.dtype} {self.pixels.shape}"
            )

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def mipmap_count(self) -> int:
        return 1

    def dimensions(self) -> Tuple[int, int, int]:
        return self.width, self.height, 1

    def pixel_format(self) -> PixelFormat:
        return PixelFormat.Rgba8Unorm

    def clone(self) -> "RawImage":
        return RawImage(self.pixels.copy())


@dataclass(frozen=True)
class DdsTexture(Texture):
    """Generic block-compressed container: the parsed header plus the whole file"""

    kind: ClassVar[ContainerKind] = ContainerKind.DDS

    header: DdsHeader
    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "DdsTexture":
        return cls(parse_dds_header(data), bytes(data))

    @property
    def mipmap_count(self) -> int:
        return self.header.mipmap_count

    @property
    def layer_count(self) -> int:
        return self.header.array_size

    @property
    def surface_data(self) -> bytes:
        return self.data[self.header.data_offset:]

    def dimensions(self) -> Tuple[int, int, int]:
        return self.header.width, self.header.height, self.header.depth

    def pixel_format(self) -> PixelFormat:
        return DDS_FORMAT_MAP[self.header.dxgi_format]

    def clone(self) -> "DdsTexture":
        return DdsTexture(self.header, bytes(self.data))


@dataclass(frozen=True)
class ConsoleTexture(Texture):
    """
    Console texture container.

    The payload is opaque to this package; only the console backend that
    produced it knows its layout. The internal name is embedded in the file.
    """

    native_formats: ClassVar[type]
    format_table: ClassVar[dict]

    width: int
    height: int
    depth: int
    image_format: int
    name: str
    mipmap_count: int
    layer_count: int = 1
    payload: bytes = b''

    def __post_init__(self):
        try:
            native = self.native_formats(self.image_format)
        except ValueError:
            raise FormatMappingError(
                f"{self.kind.value} format 0x{int(self.image_format):04X} has no mapping"
            ) from None
        object.__setattr__(self, 'image_format', native)

    def dimensions(self) -> Tuple[int, int, int]:
        return self.width, self.height, self.depth

    def pixel_format(self) -> PixelFormat:
        return self.format_table[self.image_format]

    def clone(self) -> "ConsoleTexture":
        return dataclasses.replace(self, payload=bytes(self.payload))


@dataclass(frozen=True)
class NutexbTexture(ConsoleTexture):
    kind: ClassVar[ContainerKind] = ContainerKind.NUTEXB
    native_formats: ClassVar[type] = NutexbFormat
    format_table: ClassVar[dict] = NUTEXB_FORMAT_MAP


@dataclass(frozen=True)
class BntxTexture(ConsoleTexture):
    kind: ClassVar[ContainerKind] = ContainerKind.BNTX
    native_formats: ClassVar[type] = BntxFormat
    format_table: ClassVar[dict] = BNTX_FORMAT_MAP


TEXTURE_TYPES = kind_table({
    ContainerKind.IMAGE: RawImage,
    ContainerKind.DDS: DdsTexture,
    ContainerKind.NUTEXB: NutexbTexture,
    ContainerKind.BNTX: BntxTexture,
}, "TEXTURE_TYPES")

CONTAINER_EXTENSIONS = {
    'dds': ContainerKind.DDS,
    'nutexb': ContainerKind.NUTEXB,
    'bntx': ContainerKind.BNTX,
}


def container_kind_for_path(path: Path) -> ContainerKind:
    """Container kind implied by a file extension; unknown extensions are raster images."""
    return CONTAINER_EXTENSIONS.get(Path(path).suffix.lower().lstrip('.'), ContainerKind.IMAGE)


def max_mipmap_count(width: int, height: int, depth: int) -> int:
    """floor(log2(max(width, height, depth)))"""
    return max(1, width, height, depth).bit_length() - 1


def fix_mipmap_count(texture: Texture) -> Texture:
    """
    Clamp an over-declared console mipmap count.

    Files saved with older tools sometimes declare more mip levels than the
    dimensions allow. The image data is still usable, so the count is corrected
    instead of rejecting the file. Other kinds are returned unchanged.
    """
    if not isinstance(texture, ConsoleTexture):
        return texture
    limit = max_mipmap_count(*texture.dimensions())
    if texture.mipmap_count > limit:
        return dataclasses.replace(texture, mipmap_count=limit)
    return texture


def load_texture(path: Path, codec) -> Texture:
    """Read a texture through the codec and apply load-time corrections."""
    return fix_mipmap_count(codec.read(Path(path)))
