"""
DDS header parser.

Reads the 128 byte legacy header and the optional 20 byte DX10 extension and
normalizes every supported pixel layout onto a DXGI format code:
- DX10 extended header: DXGI code taken as-is
- Legacy FourCC: DXT1/DXT3/DXT5, ATI1/ATI2, BC4U/BC4S/BC5U/BC5S, D3DFMT 116
- Uncompressed: RGBA/BGRA 32-bit masks, 8-bit luminance
"""

import struct
from dataclasses import dataclass

from .errors import CorruptDataError, FormatMappingError
from .formats import DxgiFormat


DDS_MAGIC = b'DDS '
HEADER_SIZE = 128
DX10_HEADER_SIZE = 20

# FourCC codes (little-endian ASCII)
FOURCC_DXT1 = 0x31545844  # 'DXT1'
FOURCC_DXT3 = 0x33545844  # 'DXT3'
FOURCC_DXT5 = 0x35545844  # 'DXT5'
FOURCC_DX10 = 0x30315844  # 'DX10'
FOURCC_ATI1 = 0x31495441  # 'ATI1'
FOURCC_ATI2 = 0x32495441  # 'ATI2'
FOURCC_BC4U = 0x55344342  # 'BC4U'
FOURCC_BC4S = 0x53344342  # 'BC4S'
FOURCC_BC5U = 0x55354342  # 'BC5U'
FOURCC_BC5S = 0x53354342  # 'BC5S'
D3DFMT_A32B32G32R32F = 116

# Header flags
DDSD_DEPTH = 0x800000

# Cube map bits: DDSCAPS2 in the legacy header, miscFlag in the DX10 header
DDSCAPS2_CUBEMAP = 0x200
DDS_RESOURCE_MISC_TEXTURECUBE = 0x4
CUBE_FACES = 6

# Pixel format flags
DDPF_ALPHAPIXELS = 0x000001
DDPF_FOURCC = 0x000004
DDPF_RGB = 0x000040
DDPF_LUMINANCE = 0x020000

LEGACY_FOURCC_MAP = {
    FOURCC_DXT1: DxgiFormat.BC1_UNORM,
    FOURCC_DXT3: DxgiFormat.BC2_UNORM,
    FOURCC_DXT5: DxgiFormat.BC3_UNORM,
    FOURCC_ATI1: DxgiFormat.BC4_UNORM,
    FOURCC_BC4U: DxgiFormat.BC4_UNORM,
    FOURCC_BC4S: DxgiFormat.BC4_SNORM,
    FOURCC_ATI2: DxgiFormat.BC5_UNORM,
    FOURCC_BC5U: DxgiFormat.BC5_UNORM,
    FOURCC_BC5S: DxgiFormat.BC5_SNORM,
    D3DFMT_A32B32G32R32F: DxgiFormat.R32G32B32A32_FLOAT,
}

# (bitcount, r_mask, g_mask, b_mask, a_mask) -> DXGI
UNCOMPRESSED_MASK_MAP = {
    (32, 0x000000ff, 0x0000ff00, 0x00ff0000, 0xff000000): DxgiFormat.R8G8B8A8_UNORM,
    (32, 0x00ff0000, 0x0000ff00, 0x000000ff, 0xff000000): DxgiFormat.B8G8R8A8_UNORM,
    (8, 0x000000ff, 0x00000000, 0x00000000, 0x00000000): DxgiFormat.R8_UNORM,
}

# Bytes per 4x4 block for block-compressed formats
BLOCK_BYTES = {
    DxgiFormat.BC1_UNORM: 8,
    DxgiFormat.BC1_UNORM_SRGB: 8,
    DxgiFormat.BC4_UNORM: 8,
    DxgiFormat.BC4_SNORM: 8,
    DxgiFormat.BC2_UNORM: 16,
    DxgiFormat.BC2_UNORM_SRGB: 16,
    DxgiFormat.BC3_UNORM: 16,
    DxgiFormat.BC3_UNORM_SRGB: 16,
    DxgiFormat.BC5_UNORM: 16,
    DxgiFormat.BC5_SNORM: 16,
    DxgiFormat.BC6H_UF16: 16,
    DxgiFormat.BC6H_SF16: 16,
    DxgiFormat.BC7_UNORM: 16,
    DxgiFormat.BC7_UNORM_SRGB: 16,
}

# Bytes per pixel for uncompressed formats
PIXEL_BYTES = {
    DxgiFormat.R8_UNORM: 1,
    DxgiFormat.R8G8B8A8_UNORM: 4,
    DxgiFormat.R8G8B8A8_UNORM_SRGB: 4,
    DxgiFormat.B8G8R8A8_UNORM: 4,
    DxgiFormat.B8G8R8A8_UNORM_SRGB: 4,
    DxgiFormat.R32G32B32A32_FLOAT: 16,
}

# sRGB codes and their linear equivalents (identical bits, different interpretation)
SRGB_TO_LINEAR = {
    DxgiFormat.R8G8B8A8_UNORM_SRGB: DxgiFormat.R8G8B8A8_UNORM,
    DxgiFormat.B8G8R8A8_UNORM_SRGB: DxgiFormat.B8G8R8A8_UNORM,
    DxgiFormat.BC1_UNORM_SRGB: DxgiFormat.BC1_UNORM,
    DxgiFormat.BC2_UNORM_SRGB: DxgiFormat.BC2_UNORM,
    DxgiFormat.BC3_UNORM_SRGB: DxgiFormat.BC3_UNORM,
    DxgiFormat.BC7_UNORM_SRGB: DxgiFormat.BC7_UNORM,
}


@dataclass(frozen=True)
class DdsHeader:
    """Parsed DDS header fields needed for conversion"""
    width: int
    height: int
    depth: int
    mipmap_count: int
    array_size: int  # layers, cube faces included
    dxgi_format: DxgiFormat
    data_offset: int
    has_dx10_header: bool


def surface_size(dxgi_format: DxgiFormat, width: int, height: int) -> int:
    """Byte size of one mip level of one layer"""
    if dxgi_format in BLOCK_BYTES:
        blocks_x = max(1, (width + 3) // 4)
        blocks_y = max(1, (height + 3) // 4)
        return blocks_x * blocks_y * BLOCK_BYTES[dxgi_format]
    return width * height * PIXEL_BYTES[dxgi_format]


def _legacy_format(pf_flags: int, pf_fourcc: int, bitcount: int, masks: tuple) -> DxgiFormat:
    if pf_flags & DDPF_FOURCC:
        if pf_fourcc in LEGACY_FOURCC_MAP:
            return LEGACY_FOURCC_MAP[pf_fourcc]
        try:
            fourcc_str = pf_fourcc.to_bytes(4, 'little').decode('ascii')
        except UnicodeDecodeError:
            fourcc_str = f'{pf_fourcc:08X}'
        raise FormatMappingError(f"DDS FourCC {fourcc_str!r} has no mapping")

    if pf_flags & (DDPF_RGB | DDPF_LUMINANCE):
        key = (bitcount,) + masks
        if key in UNCOMPRESSED_MASK_MAP:
            return UNCOMPRESSED_MASK_MAP[key]
        r, g, b, a = masks
        raise FormatMappingError(
            f"Uncompressed DDS layout {bitcount}bpp "
            f"R={r:08X} G={g:08X} B={b:08X} A={a:08X} has no mapping"
        )

    raise CorruptDataError(f"DDS pixel format flags 0x{pf_flags:X} describe no known layout")


def parse_dds_header(data: bytes) -> DdsHeader:
    """
    Parse the header of an in-memory DDS file.

    Raises:
        CorruptDataError: Bad magic, truncated header or truncated surface data
        FormatMappingError: Pixel format is valid DDS but has no canonical mapping
    """
    if len(data) < HEADER_SIZE:
        raise CorruptDataError(f"DDS file too small ({len(data)} bytes)")
    if data[0:4] != DDS_MAGIC:
        raise CorruptDataError("Missing DDS magic")

    # Main header starts after the 4 byte magic
    (dw_size, dw_flags, dw_height, dw_width, _pitch,
     dw_depth, dw_mipmap_count) = struct.unpack_from('<7I', data, 4)
    if dw_size != 124:
        raise CorruptDataError(f"Unexpected DDS header size {dw_size}")
    if dw_width == 0 or dw_height == 0:
        raise CorruptDataError(f"Invalid DDS dimensions {dw_width}x{dw_height}")

    # Pixel format block at absolute offset 76
    (_pf_size, pf_flags, pf_fourcc, pf_bitcount,
     r_mask, g_mask, b_mask, a_mask) = struct.unpack_from('<8I', data, 76)

    depth = dw_depth if (dw_flags & DDSD_DEPTH) and dw_depth > 0 else 1
    # Some writers leave the mipmap count at 0
    mipmap_count = max(1, dw_mipmap_count)

    (dw_caps2,) = struct.unpack_from('<I', data, 112)
    array_size = CUBE_FACES if dw_caps2 & DDSCAPS2_CUBEMAP else 1
    has_dx10 = pf_flags & DDPF_FOURCC and pf_fourcc == FOURCC_DX10
    if has_dx10:
        if len(data) < HEADER_SIZE + DX10_HEADER_SIZE:
            raise CorruptDataError("Truncated DX10 header")
        dxgi_value, _dimension, misc_flag, dx10_array_size = struct.unpack_from('<4I', data, HEADER_SIZE)
        try:
            dxgi_format = DxgiFormat(dxgi_value)
        except ValueError:
            raise FormatMappingError(f"DXGI format {dxgi_value} has no mapping") from None
        array_size = max(1, dx10_array_size)
        if misc_flag & DDS_RESOURCE_MISC_TEXTURECUBE:
            array_size *= CUBE_FACES
        data_offset = HEADER_SIZE + DX10_HEADER_SIZE
    else:
        dxgi_format = _legacy_format(pf_flags, pf_fourcc, pf_bitcount,
                                     (r_mask, g_mask, b_mask, a_mask))
        data_offset = HEADER_SIZE

    base_size = surface_size(dxgi_format, dw_width, dw_height) * depth
    if len(data) - data_offset < base_size:
        raise CorruptDataError(
            f"DDS surface data truncated: expected at least {base_size} bytes, "
            f"found {len(data) - data_offset}"
        )

    return DdsHeader(
        width=dw_width,
        height=dw_height,
        depth=depth,
        mipmap_count=mipmap_count,
        array_size=array_size,
        dxgi_format=dxgi_format,
        data_offset=data_offset,
        has_dx10_header=bool(has_dx10),
    )


def with_linear_dxgi_format(data: bytes, header: DdsHeader) -> bytes:
    """
    Return DDS bytes whose DX10 format code is the linear twin of an sRGB code.

    Decoders that only know the UNORM codes can then read sRGB files; the block
    data is identical for both.
    """
    linear = SRGB_TO_LINEAR.get(header.dxgi_format)
    if linear is None or not header.has_dx10_header:
        return data
    patched = bytearray(data)
    struct.pack_into('<I', patched, HEADER_SIZE, int(linear))
    return bytes(patched)
