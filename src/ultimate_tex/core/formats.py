"""
Pixel format vocabulary and the correspondence tables between containers.

PixelFormat is the interchange enumeration. Every container keeps its own
native format enumeration (DXGI codes for DDS, the Nutexb footer format and
the BNTX surface format) and maps it onto a subset of PixelFormat through an
exhaustive table. Lookups never fall back to a default.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional

from .errors import FormatMappingError


class PixelFormat(Enum):
    """Canonical pixel formats. Values are the names accepted on the command line."""

    R8Unorm = "R8Unorm"
    Rgba8Unorm = "Rgba8Unorm"
    Rgba8UnormSrgb = "Rgba8UnormSrgb"
    Rgba32Float = "Rgba32Float"
    Bgra8Unorm = "Bgra8Unorm"
    Bgra8UnormSrgb = "Bgra8UnormSrgb"
    BC1RgbaUnorm = "BC1RgbaUnorm"
    BC1RgbaUnormSrgb = "BC1RgbaUnormSrgb"
    BC2RgbaUnorm = "BC2RgbaUnorm"
    BC2RgbaUnormSrgb = "BC2RgbaUnormSrgb"
    BC3RgbaUnorm = "BC3RgbaUnorm"
    BC3RgbaUnormSrgb = "BC3RgbaUnormSrgb"
    BC4RUnorm = "BC4RUnorm"
    BC4RSnorm = "BC4RSnorm"
    BC5RgUnorm = "BC5RgUnorm"
    BC5RgSnorm = "BC5RgSnorm"
    BC6hRgbUfloat = "BC6hRgbUfloat"
    BC6hRgbSfloat = "BC6hRgbSfloat"
    BC7RgbaUnorm = "BC7RgbaUnorm"
    BC7RgbaUnormSrgb = "BC7RgbaUnormSrgb"

    @property
    def is_compressed(self) -> bool:
        return self.value.startswith("BC")

    @property
    def is_srgb(self) -> bool:
        return self.value.endswith("Srgb")

    @classmethod
    def from_name(cls, name: str) -> "PixelFormat":
        """Parse a format name, ignoring case (e.g. 'bc7rgbaunorm')."""
        lookup = {member.value.lower(): member for member in cls}
        try:
            return lookup[name.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown pixel format: {name}") from None

    def __str__(self) -> str:
        return self.value


class Quality(Enum):
    """Speed/size trade-off for the block compression search."""

    FAST = "Fast"
    NORMAL = "Normal"
    SLOW = "Slow"

    def __str__(self) -> str:
        return self.value


class MipmapMode(Enum):
    DISABLED = "Disabled"
    GENERATED_AUTOMATIC = "GeneratedAutomatic"
    GENERATED_EXACT = "GeneratedExact"
    FROM_SURFACE = "FromSurface"


@dataclass(frozen=True)
class MipmapPolicy:
    """How many mip levels an encode produces.

    GENERATED_EXACT carries its level count; the other modes never do.
    """

    mode: MipmapMode
    count: Optional[int] = None

    def __post_init__(self):
        if self.mode is MipmapMode.GENERATED_EXACT:
            if self.count is None or self.count < 1:
                raise ValueError(f"GeneratedExact needs a level count >= 1, got {self.count}")
        elif self.count is not None:
            raise ValueError(f"{self.mode.value} does not take a level count")

    @classmethod
    def disabled(cls) -> "MipmapPolicy":
        return cls(MipmapMode.DISABLED)

    @classmethod
    def automatic(cls) -> "MipmapPolicy":
        return cls(MipmapMode.GENERATED_AUTOMATIC)

    @classmethod
    def exact(cls, count: int) -> "MipmapPolicy":
        return cls(MipmapMode.GENERATED_EXACT, count)

    @classmethod
    def from_surface(cls) -> "MipmapPolicy":
        return cls(MipmapMode.FROM_SURFACE)

    @classmethod
    def from_dict(cls, data: dict) -> "MipmapPolicy":
        return cls(MipmapMode(data['mode']), data.get('count'))

    def to_dict(self) -> dict:
        return {'mode': self.mode.value, 'count': self.count}

    def __str__(self) -> str:
        if self.mode is MipmapMode.GENERATED_EXACT:
            return f"{self.mode.value}({self.count})"
        return self.mode.value


# =============================================================================
# Native format enumerations
# =============================================================================

class DxgiFormat(IntEnum):
    """DXGI codes a DDS file may carry (DX10 header or normalized legacy FourCC)."""

    R32G32B32A32_FLOAT = 2
    R8G8B8A8_UNORM = 28
    R8G8B8A8_UNORM_SRGB = 29
    R8_UNORM = 61
    BC1_UNORM = 71
    BC1_UNORM_SRGB = 72
    BC2_UNORM = 74
    BC2_UNORM_SRGB = 75
    BC3_UNORM = 77
    BC3_UNORM_SRGB = 78
    BC4_UNORM = 80
    BC4_SNORM = 81
    BC5_UNORM = 83
    BC5_SNORM = 84
    B8G8R8A8_UNORM = 87
    B8G8R8A8_UNORM_SRGB = 91
    BC6H_UF16 = 95
    BC6H_SF16 = 96
    BC7_UNORM = 98
    BC7_UNORM_SRGB = 99


class NutexbFormat(IntEnum):
    """Image format field of the Nutexb footer."""

    R8Unorm = 0x0100
    R8G8B8A8Unorm = 0x0400
    R8G8B8A8Srgb = 0x0405
    R32G32B32A32Float = 0x0434
    B8G8R8A8Unorm = 0x0450
    B8G8R8A8Srgb = 0x0455
    BC1Unorm = 0x0480
    BC1Srgb = 0x0485
    BC2Unorm = 0x0490
    BC2Srgb = 0x0495
    BC3Unorm = 0x04a0
    BC3Srgb = 0x04a5
    BC4Unorm = 0x0180
    BC4Snorm = 0x0185
    BC5Unorm = 0x0280
    BC5Snorm = 0x0285
    BC6Ufloat = 0x04d7
    BC6Sfloat = 0x04d8
    BC7Unorm = 0x04e0
    BC7Srgb = 0x04e5


class BntxFormat(IntEnum):
    """BNTX surface format (format type in the high byte, channel type in the low byte)."""

    R8Unorm = 0x0201
    R8G8B8A8Unorm = 0x0b01
    R8G8B8A8Srgb = 0x0b06
    B8G8R8A8Unorm = 0x0c01
    B8G8R8A8Srgb = 0x0c06
    BC1Unorm = 0x1a01
    BC1Srgb = 0x1a06
    BC2Unorm = 0x1b01
    BC2Srgb = 0x1b06
    BC3Unorm = 0x1c01
    BC3Srgb = 0x1c06
    BC4Unorm = 0x1d01
    BC4Snorm = 0x1d02
    BC5Unorm = 0x1e01
    BC5Snorm = 0x1e02
    BC6Sfloat = 0x1f05
    BC6Ufloat = 0x1f0a
    BC7Unorm = 0x2001
    BC7Srgb = 0x2006
    R32G32B32A32Float = 0x2205


# =============================================================================
# Correspondence tables (native -> canonical)
# =============================================================================

DDS_FORMAT_MAP: Dict[DxgiFormat, PixelFormat] = {
    DxgiFormat.R32G32B32A32_FLOAT: PixelFormat.Rgba32Float,
    DxgiFormat.R8G8B8A8_UNORM: PixelFormat.Rgba8Unorm,
    DxgiFormat.R8G8B8A8_UNORM_SRGB: PixelFormat.Rgba8UnormSrgb,
    DxgiFormat.R8_UNORM: PixelFormat.R8Unorm,
    DxgiFormat.BC1_UNORM: PixelFormat.BC1RgbaUnorm,
    DxgiFormat.BC1_UNORM_SRGB: PixelFormat.BC1RgbaUnormSrgb,
    DxgiFormat.BC2_UNORM: PixelFormat.BC2RgbaUnorm,
    DxgiFormat.BC2_UNORM_SRGB: PixelFormat.BC2RgbaUnormSrgb,
    DxgiFormat.BC3_UNORM: PixelFormat.BC3RgbaUnorm,
    DxgiFormat.BC3_UNORM_SRGB: PixelFormat.BC3RgbaUnormSrgb,
    DxgiFormat.BC4_UNORM: PixelFormat.BC4RUnorm,
    DxgiFormat.BC4_SNORM: PixelFormat.BC4RSnorm,
    DxgiFormat.BC5_UNORM: PixelFormat.BC5RgUnorm,
    DxgiFormat.BC5_SNORM: PixelFormat.BC5RgSnorm,
    DxgiFormat.B8G8R8A8_UNORM: PixelFormat.Bgra8Unorm,
    DxgiFormat.B8G8R8A8_UNORM_SRGB: PixelFormat.Bgra8UnormSrgb,
    DxgiFormat.BC6H_UF16: PixelFormat.BC6hRgbUfloat,
    DxgiFormat.BC6H_SF16: PixelFormat.BC6hRgbSfloat,
    DxgiFormat.BC7_UNORM: PixelFormat.BC7RgbaUnorm,
    DxgiFormat.BC7_UNORM_SRGB: PixelFormat.BC7RgbaUnormSrgb,
}

NUTEXB_FORMAT_MAP: Dict[NutexbFormat, PixelFormat] = {
    NutexbFormat.R8Unorm: PixelFormat.R8Unorm,
    NutexbFormat.R8G8B8A8Unorm: PixelFormat.Rgba8Unorm,
    NutexbFormat.R8G8B8A8Srgb: PixelFormat.Rgba8UnormSrgb,
    NutexbFormat.R32G32B32A32Float: PixelFormat.Rgba32Float,
    NutexbFormat.B8G8R8A8Unorm: PixelFormat.Bgra8Unorm,
    NutexbFormat.B8G8R8A8Srgb: PixelFormat.Bgra8UnormSrgb,
    NutexbFormat.BC1Unorm: PixelFormat.BC1RgbaUnorm,
    NutexbFormat.BC1Srgb: PixelFormat.BC1RgbaUnormSrgb,
    NutexbFormat.BC2Unorm: PixelFormat.BC2RgbaUnorm,
    NutexbFormat.BC2Srgb: PixelFormat.BC2RgbaUnormSrgb,
    NutexbFormat.BC3Unorm: PixelFormat.BC3RgbaUnorm,
    NutexbFormat.BC3Srgb: PixelFormat.BC3RgbaUnormSrgb,
    NutexbFormat.BC4Unorm: PixelFormat.BC4RUnorm,
    NutexbFormat.BC4Snorm: PixelFormat.BC4RSnorm,
    NutexbFormat.BC5Unorm: PixelFormat.BC5RgUnorm,
    NutexbFormat.BC5Snorm: PixelFormat.BC5RgSnorm,
    NutexbFormat.BC6Ufloat: PixelFormat.BC6hRgbUfloat,
    NutexbFormat.BC6Sfloat: PixelFormat.BC6hRgbSfloat,
    NutexbFormat.BC7Unorm: PixelFormat.BC7RgbaUnorm,
    NutexbFormat.BC7Srgb: PixelFormat.BC7RgbaUnormSrgb,
}

BNTX_FORMAT_MAP: Dict[BntxFormat, PixelFormat] = {
    BntxFormat.R8Unorm: PixelFormat.R8Unorm,
    BntxFormat.R8G8B8A8Unorm: PixelFormat.Rgba8Unorm,
    BntxFormat.R8G8B8A8Srgb: PixelFormat.Rgba8UnormSrgb,
    BntxFormat.B8G8R8A8Unorm: PixelFormat.Bgra8Unorm,
    BntxFormat.B8G8R8A8Srgb: PixelFormat.Bgra8UnormSrgb,
    BntxFormat.BC1Unorm: PixelFormat.BC1RgbaUnorm,
    BntxFormat.BC1Srgb: PixelFormat.BC1RgbaUnormSrgb,
    BntxFormat.BC2Unorm: PixelFormat.BC2RgbaUnorm,
    BntxFormat.BC2Srgb: PixelFormat.BC2RgbaUnormSrgb,
    BntxFormat.BC3Unorm: PixelFormat.BC3RgbaUnorm,
    BntxFormat.BC3Srgb: PixelFormat.BC3RgbaUnormSrgb,
    BntxFormat.BC4Unorm: PixelFormat.BC4RUnorm,
    BntxFormat.BC4Snorm: PixelFormat.BC4RSnorm,
    BntxFormat.BC5Unorm: PixelFormat.BC5RgUnorm,
    BntxFormat.BC5Snorm: PixelFormat.BC5RgSnorm,
    BntxFormat.BC6Sfloat: PixelFormat.BC6hRgbSfloat,
    BntxFormat.BC6Ufloat: PixelFormat.BC6hRgbUfloat,
    BntxFormat.BC7Unorm: PixelFormat.BC7RgbaUnorm,
    BntxFormat.BC7Srgb: PixelFormat.BC7RgbaUnormSrgb,
    BntxFormat.R32G32B32A32Float: PixelFormat.Rgba32Float,
}


def _reverse(table: dict, label: str) -> dict:
    reverse = {}
    for native, canonical in table.items():
        if canonical in reverse:
            raise ValueError(f"{label} maps {canonical} more than once")
        reverse[canonical] = native
    return reverse


PIXEL_FORMAT_TO_DXGI = _reverse(DDS_FORMAT_MAP, "DDS_FORMAT_MAP")
PIXEL_FORMAT_TO_NUTEXB = _reverse(NUTEXB_FORMAT_MAP, "NUTEXB_FORMAT_MAP")
PIXEL_FORMAT_TO_BNTX = _reverse(BNTX_FORMAT_MAP, "BNTX_FORMAT_MAP")


def _lookup(table: dict, enum_type, value, label: str):
    try:
        return table[enum_type(value)]
    except (ValueError, KeyError):
        raise FormatMappingError(f"{label} format {value!r} has no mapping") from None


def dxgi_to_pixel_format(value) -> PixelFormat:
    return _lookup(DDS_FORMAT_MAP, DxgiFormat, value, "DXGI")


def nutexb_to_pixel_format(value) -> PixelFormat:
    return _lookup(NUTEXB_FORMAT_MAP, NutexbFormat, value, "Nutexb")


def bntx_to_pixel_format(value) -> PixelFormat:
    return _lookup(BNTX_FORMAT_MAP, BntxFormat, value, "BNTX")


def pixel_format_to_native(fmt: PixelFormat, reverse_table: dict, label: str):
    """Map a canonical format back onto a container's native enumeration."""
    try:
        return reverse_table[fmt]
    except KeyError:
        raise FormatMappingError(f"{fmt} cannot be stored in a {label} container") from None


# Block compression encoder settings: PixelFormat -> (cuttlefish format, channel type)
# sRGB variants add --srgb on top of the unorm type.
CUTTLEFISH_FORMAT_MAP = {
    PixelFormat.R8Unorm: ("R8", "unorm"),
    PixelFormat.Rgba8Unorm: ("R8G8B8A8", "unorm"),
    PixelFormat.Rgba8UnormSrgb: ("R8G8B8A8", "unorm"),
    PixelFormat.Rgba32Float: ("R32G32B32A32", "float"),
    PixelFormat.Bgra8Unorm: ("B8G8R8A8", "unorm"),
    PixelFormat.Bgra8UnormSrgb: ("B8G8R8A8", "unorm"),
    PixelFormat.BC1RgbaUnorm: ("BC1_RGBA", "unorm"),
    PixelFormat.BC1RgbaUnormSrgb: ("BC1_RGBA", "unorm"),
    PixelFormat.BC2RgbaUnorm: ("BC2", "unorm"),
    PixelFormat.BC2RgbaUnormSrgb: ("BC2", "unorm"),
    PixelFormat.BC3RgbaUnorm: ("BC3", "unorm"),
    PixelFormat.BC3RgbaUnormSrgb: ("BC3", "unorm"),
    PixelFormat.BC4RUnorm: ("BC4", "unorm"),
    PixelFormat.BC4RSnorm: ("BC4", "snorm"),
    PixelFormat.BC5RgUnorm: ("BC5", "unorm"),
    PixelFormat.BC5RgSnorm: ("BC5", "snorm"),
    PixelFormat.BC6hRgbUfloat: ("BC6H", "ufloat"),
    PixelFormat.BC6hRgbSfloat: ("BC6H", "float"),
    PixelFormat.BC7RgbaUnorm: ("BC7", "unorm"),
    PixelFormat.BC7RgbaUnormSrgb: ("BC7", "unorm"),
}

CUTTLEFISH_QUALITY_MAP = {
    Quality.FAST: "lowest",
    Quality.NORMAL: "normal",
    Quality.SLOW: "highest",
}
