"""
Conversion entry points, one per output container.

Every function takes the same arguments so callers can pick one from
SAVE_FUNCTIONS without special cases. None of them modify the input texture.
"""

import dataclasses
import logging
from pathlib import Path

from .formats import MipmapPolicy, PixelFormat, Quality
from .normalizer import normalize, resolve_mipmaps
from .texture import ContainerKind, Texture, container_kind_for_path, kind_table, load_texture
from .utils import file_name_no_extension

logger = logging.getLogger(__name__)


def save_image(texture: Texture, output: Path, pixel_format: PixelFormat,
               quality: Quality, mipmaps: MipmapPolicy, codec) -> None:
    """
    Save the base level as an uncompressed raster image.

    Raster formats hold neither block compression nor mip levels, so the
    format, quality and mipmap arguments are ignored.
    """
    image = codec.decode_rgba8(texture)
    codec.write(image, Path(output))


def _save_container(kind: ContainerKind, texture: Texture, output: Path,
                    pixel_format: PixelFormat, quality: Quality,
                    mipmaps: MipmapPolicy, codec) -> None:
    output = Path(output)
    # Console containers embed the file name as the internal name
    name = file_name_no_extension(output)

    if texture.kind is ContainerKind.IMAGE:
        converted = codec.encode(texture, pixel_format, quality, resolve_mipmaps(mipmaps, texture))
    else:
        # Compare formats on the DDS view so a matching surface is carried over as is
        source = texture if texture.kind is kind else codec.to_dds(texture)
        converted = normalize(source, pixel_format, quality, mipmaps, codec)

    if converted.kind is kind and kind is not ContainerKind.DDS:
        # Passthrough copy of a console texture: only the name changes
        converted = dataclasses.replace(converted, name=name)
    elif converted.kind is not kind:
        converted = codec.from_dds(kind, converted, name)

    codec.write(converted, output)


def save_dds(texture: Texture, output: Path, pixel_format: PixelFormat,
             quality: Quality, mipmaps: MipmapPolicy, codec) -> None:
    _save_container(ContainerKind.DDS, texture, output, pixel_format, quality, mipmaps, codec)


def save_nutexb(texture: Texture, output: Path, pixel_format: PixelFormat,
                quality: Quality, mipmaps: MipmapPolicy, codec) -> None:
    _save_container(ContainerKind.NUTEXB, texture, output, pixel_format, quality, mipmaps, codec)


def save_bntx(texture: Texture, output: Path, pixel_format: PixelFormat,
              quality: Quality, mipmaps: MipmapPolicy, codec) -> None:
    _save_container(ContainerKind.BNTX, texture, output, pixel_format, quality, mipmaps, codec)


SAVE_FUNCTIONS = kind_table({
    ContainerKind.IMAGE: save_image,
    ContainerKind.DDS: save_dds,
    ContainerKind.NUTEXB: save_nutexb,
    ContainerKind.BNTX: save_bntx,
}, "SAVE_FUNCTIONS")


def save_texture(kind: ContainerKind, texture: Texture, output: Path,
                 pixel_format: PixelFormat, quality: Quality,
                 mipmaps: MipmapPolicy, codec) -> None:
    """Save `texture` to `output` as the given container kind"""
    SAVE_FUNCTIONS[kind](texture, output, pixel_format, quality, mipmaps, codec)


def convert_file(input_path: Path, output_path: Path, pixel_format: PixelFormat,
                 quality: Quality, mipmaps: MipmapPolicy, codec) -> None:
    """
    Convert a single file. The output container is chosen from the output
    extension; anything that is not dds/nutexb/bntx is written as a raster image.

    Errors propagate to the caller.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    texture = load_texture(input_path, codec)
    kind = container_kind_for_path(output_path)
    logger.info("Converting %s -> %s (%s)", input_path.name, output_path.name, kind.value)
    save_texture(kind, texture, output_path, pixel_format, quality, mipmaps, codec)
