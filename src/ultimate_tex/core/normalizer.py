"""
Decide between passing a texture through unchanged and re-encoding it.

The decision only compares pixel formats. A source already in the requested
format is copied as-is, so its mip chain and compression are kept even when a
different mip policy or quality was requested.
"""

import logging

from .formats import MipmapMode, MipmapPolicy, PixelFormat, Quality
from .texture import Texture

logger = logging.getLogger(__name__)


def resolve_mipmaps(mipmaps: MipmapPolicy, source: Texture) -> MipmapPolicy:
    """
    Turn FromSurface into a concrete policy for a re-encode.

    Decoding keeps only the base level, so the source's level count is
    regenerated from it instead of being copied.
    """
    if mipmaps.mode is not MipmapMode.FROM_SURFACE:
        return mipmaps
    if source.mipmap_count > 1:
        return MipmapPolicy.exact(source.mipmap_count)
    return MipmapPolicy.disabled()


def needs_reencode(source: Texture, pixel_format: PixelFormat) -> bool:
    return source.pixel_format() != pixel_format


def normalize(source: Texture, pixel_format: PixelFormat, quality: Quality,
              mipmaps: MipmapPolicy, codec) -> Texture:
    """
    Bring a texture to the requested pixel format.

    Returns:
        An independent copy of `source` (same container kind) when its format
        already matches, otherwise the re-encoded DDS texture from the codec.
    """
    if not needs_reencode(source, pixel_format):
        logger.debug("Format %s unchanged, copying %s texture", pixel_format, source.kind.value)
        return source.clone()

    logger.debug("Re-encoding %s -> %s (%s, %s)", source.pixel_format(), pixel_format, quality, mipmaps)
    image = codec.decode_rgba8(source)
    return codec.encode(image, pixel_format, quality, resolve_mipmaps(mipmaps, source))
