"""Builders for DDS files, console textures and raster images used by the tests"""

import dataclasses
import struct
import subprocess
from pathlib import Path

import numpy as np
from PIL import Image

from ultimate_tex.core.codec import ConsoleBackend
from ultimate_tex.core.dds_parser import (
    DDPF_FOURCC,
    DDSD_DEPTH,
    FOURCC_DX10,
    PIXEL_BYTES,
    surface_size,
)
from ultimate_tex.core.formats import (
    CUTTLEFISH_FORMAT_MAP,
    PIXEL_FORMAT_TO_BNTX,
    PIXEL_FORMAT_TO_DXGI,
    PIXEL_FORMAT_TO_NUTEXB,
    DxgiFormat,
    PixelFormat,
    pixel_format_to_native,
)
from ultimate_tex.core.texture import BntxTexture, DdsTexture, NutexbTexture, max_mipmap_count

DDSD_DEFAULT_FLAGS = 0x1 | 0x2 | 0x4 | 0x1000 | 0x20000
DDSCAPS_TEXTURE = 0x1000

# Smallest valid BC7 block (mode 6); decodes without complaint
BC7_MODE6_BLOCK = b'\x40' + bytes(15)

# Trailing filler that MemoryConsoleBackend.optimize_size removes
PADDING = b"\xaa" * 64


def dds_header(width, height, mipmap_count=1, dxgi_format=None, pf_flags=DDPF_FOURCC,
               fourcc=0, bitcount=0, masks=(0, 0, 0, 0), array_size=1, misc_flag=0,
               caps2=0, depth=0) -> bytes:
    """128 byte DDS header, plus the DX10 extension when `dxgi_format` is given"""
    if dxgi_format is not None:
        pf_flags, fourcc = DDPF_FOURCC, FOURCC_DX10
    flags = DDSD_DEFAULT_FLAGS | (DDSD_DEPTH if depth else 0)

    header = struct.pack('<4s7I', b'DDS ', 124, flags, height, width, 0, depth, mipmap_count)
    header += bytes(44)
    header += struct.pack('<8I', 32, pf_flags, fourcc, bitcount, *masks)
    header += struct.pack('<5I', DDSCAPS_TEXTURE, caps2, 0, 0, 0)
    if dxgi_format is not None:
        header += struct.pack('<5I', int(dxgi_format), 3, misc_flag, array_size, 0)
    return header


def fill_surface(dxgi_format: DxgiFormat, size: int) -> bytes:
    if dxgi_format in (DxgiFormat.BC7_UNORM, DxgiFormat.BC7_UNORM_SRGB):
        return BC7_MODE6_BLOCK * (size // len(BC7_MODE6_BLOCK))
    return bytes(size)


def pack_pixels(dxgi_format: DxgiFormat, rgba: np.ndarray) -> bytes:
    """Lay out RGBA8 pixels the way an uncompressed DDS surface stores them"""
    if dxgi_format == DxgiFormat.R8_UNORM:
        return rgba[..., 0].tobytes()
    if dxgi_format in (DxgiFormat.B8G8R8A8_UNORM, DxgiFormat.B8G8R8A8_UNORM_SRGB):
        return rgba[..., [2, 1, 0, 3]].tobytes()
    if dxgi_format == DxgiFormat.R32G32B32A32_FLOAT:
        return (rgba.astype('<f4') / 255.0).astype('<f4').tobytes()
    return rgba.tobytes()


def mip_level_sizes(dxgi_format, width, height, mipmap_count):
    return [
        surface_size(dxgi_format, max(1, width >> level), max(1, height >> level))
        for level in range(mipmap_count)
    ]


def make_dds_bytes(dxgi_format: DxgiFormat, width: int, height: int,
                   mipmap_count: int = 1, pixels: np.ndarray = None, array_size: int = 1) -> bytes:
    """
    DX10 DDS file with a full mip chain of `mipmap_count` levels per layer.

    For uncompressed formats the base level of every layer holds `pixels` when given.
    """
    sizes = mip_level_sizes(dxgi_format, width, height, mipmap_count)
    if pixels is not None and dxgi_format in PIXEL_BYTES:
        base = pack_pixels(dxgi_format, pixels)
    else:
        base = fill_surface(dxgi_format, sizes[0])
    rest = b''.join(fill_surface(dxgi_format, size) for size in sizes[1:])
    header = dds_header(width, height, mipmap_count, dxgi_format, array_size=array_size)
    return header + (base + rest) * array_size


def make_dds(pixel_format: PixelFormat, width: int, height: int,
             mipmap_count: int = 1, pixels: np.ndarray = None, array_size: int = 1) -> DdsTexture:
    dxgi = PIXEL_FORMAT_TO_DXGI[pixel_format]
    return DdsTexture.from_bytes(make_dds_bytes(dxgi, width, height, mipmap_count, pixels, array_size))


def gradient(width: int, height: int) -> np.ndarray:
    """Deterministic RGBA8 test pattern"""
    ys, xs = np.mgrid[0:height, 0:width]
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., 0] = (xs * 255 // max(1, width - 1)).astype(np.uint8)
    rgba[..., 1] = (ys * 255 // max(1, height - 1)).astype(np.uint8)
    rgba[..., 2] = 128
    rgba[..., 3] = 255
    return rgba


def write_png(path: Path, width: int = 64, height: int = 64) -> np.ndarray:
    pixels = gradient(width, height)
    Image.fromarray(pixels).save(path)
    return pixels


class MemoryConsoleBackend(ConsoleBackend):
    """
    Console backend with a trivial container layout:
    magic, 7 header words, the UTF-8 name, then a whole DDS file as payload.
    """

    HEADER = struct.Struct('<4s7I')

    def __init__(self, texture_type, magic: bytes, reverse_table: dict):
        self.texture_type = texture_type
        self.magic = magic
        self.reverse_table = reverse_table
        self.optimized = []

    def read_bytes(self, data: bytes):
        magic, width, height, depth, image_format, mipmap_count, layer_count, name_len = \
            self.HEADER.unpack_from(data)
        if magic != self.magic:
            raise ValueError(f"bad magic {magic!r}")
        start = self.HEADER.size
        name = data[start:start + name_len].decode('utf-8')
        return self.texture_type(
            width=width,
            height=height,
            depth=depth,
            image_format=image_format,
            name=name,
            mipmap_count=mipmap_count,
            layer_count=layer_count,
            payload=bytes(data[start + name_len:]),
        )

    def to_bytes(self, texture) -> bytes:
        name = texture.name.encode('utf-8')
        header = self.HEADER.pack(self.magic, texture.width, texture.height, texture.depth,
                                  int(texture.image_format), texture.mipmap_count,
                                  texture.layer_count, len(name))
        return header + name + texture.payload

    def to_dds(self, texture) -> DdsTexture:
        return DdsTexture.from_bytes(texture.payload)

    def from_dds(self, dds: DdsTexture, name: str):
        native = pixel_format_to_native(dds.pixel_format(), self.reverse_table,
                                        self.texture_type.kind.value)
        width, height, depth = dds.dimensions()
        return self.texture_type(
            width=width,
            height=height,
            depth=depth,
            image_format=native,
            name=name,
            mipmap_count=dds.mipmap_count,
            layer_count=dds.layer_count,
            payload=dds.data,
        )

    def optimize_size(self, texture):
        self.optimized.append(texture.name)
        payload = texture.payload
        while payload.endswith(PADDING):
            payload = payload[:-len(PADDING)]
        return dataclasses.replace(texture, payload=payload)


# (cuttlefish format, type, srgb) -> DXGI code written by the fake encoder
CUTTLEFISH_OUTPUT_FORMATS = {
    (cf_format, cf_type, fmt.is_srgb): PIXEL_FORMAT_TO_DXGI[fmt]
    for fmt, (cf_format, cf_type) in CUTTLEFISH_FORMAT_MAP.items()
}


class FakeCuttlefish:
    """
    Stand-in for subprocess.run that behaves like the cuttlefish encoder.

    Every call is parsed and recorded in `runs`. Setting `fail_with` makes the
    next calls exit with status 1 and that stderr text.
    """

    def __init__(self):
        self.runs = []
        self.fail_with = None

    def __call__(self, cmd, **kwargs):
        args = self._parse(cmd)
        self.runs.append(args)

        if self.fail_with is not None:
            return subprocess.CompletedProcess(cmd, 1, stdout='', stderr=self.fail_with)

        with Image.open(args['-i']) as img:
            pixels = np.array(img.convert('RGBA'), dtype=np.uint8)
        height, width = pixels.shape[:2]

        if args['-m'] is None:
            mipmap_count = 1
        elif args['-m'] == 'auto':
            mipmap_count = max_mipmap_count(width, height, 1) + 1
        else:
            mipmap_count = args['-m']

        dxgi = CUTTLEFISH_OUTPUT_FORMATS[(args['-f'], args['-t'], args['srgb'])]
        Path(args['-o']).write_bytes(make_dds_bytes(dxgi, width, height, mipmap_count, pixels))
        return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')

    @staticmethod
    def _parse(cmd) -> dict:
        args = {'exe': cmd[0], '-m': None, 'srgb': False}
        tokens = list(cmd[1:])
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token in ('-i', '-o', '-f', '-t', '-Q'):
                args[token] = tokens[i + 1]
                i += 2
            elif token == '--srgb':
                args['srgb'] = True
                i += 1
            elif token == '-m':
                if i + 1 < len(tokens) and tokens[i + 1].isdigit():
                    args['-m'] = int(tokens[i + 1])
                    i += 2
                else:
                    args['-m'] = 'auto'
                    i += 1
            else:
                raise AssertionError(f"unexpected cuttlefish argument {token!r}")
        return args


class NutexbMemoryBackend(MemoryConsoleBackend):
    """Zero-argument MemoryConsoleBackend for Nutexb, loadable from an entry point"""

    def __init__(self):
        super().__init__(NutexbTexture, b'NTXB', PIXEL_FORMAT_TO_NUTEXB)


class BntxMemoryBackend(MemoryConsoleBackend):
    def __init__(self):
        super().__init__(BntxTexture, b'BNTX', PIXEL_FORMAT_TO_BNTX)
