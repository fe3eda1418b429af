"""Exceptions raised while reading, converting and writing textures"""


class TextureError(Exception):
    """Base class for every texture conversion failure"""


class UnsupportedExtensionError(TextureError):
    """No reader or writer is available for a file extension"""


class CorruptDataError(TextureError):
    """File contents could not be parsed as the expected container"""


class TextureIOError(TextureError):
    """Reading or writing a file failed at the operating system level"""


class FormatMappingError(TextureError):
    """A native format value has no canonical counterpart (or the reverse)"""


class UnsupportedSourceFormatError(TextureError):
    """The source pixel format cannot be decoded to RGBA8"""


class EncodeError(TextureError):
    """Encoding an RGBA8 surface to the requested format failed"""
