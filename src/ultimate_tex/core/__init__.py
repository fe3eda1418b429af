"""Texture format normalization and batch conversion engine"""

from .errors import (
    TextureError,
    UnsupportedExtensionError,
    CorruptDataError,
    TextureIOError,
    FormatMappingError,
    UnsupportedSourceFormatError,
    EncodeError,
)
from .formats import (
    PixelFormat,
    Quality,
    MipmapMode,
    MipmapPolicy,
    DxgiFormat,
    NutexbFormat,
    BntxFormat,
)
from .texture import (
    ContainerKind,
    Texture,
    RawImage,
    DdsTexture,
    ConsoleTexture,
    NutexbTexture,
    BntxTexture,
    fix_mipmap_count,
    load_texture,
)
from .codec import TextureCodec, ConsoleBackend, load_console_backends
from .normalizer import normalize
from .converter import save_image, save_dds, save_nutexb, save_bntx, save_texture, convert_file
from .settings import (
    OutputFileType,
    FileSettings,
    GlobalOverrides,
    EffectiveParams,
    FileList,
    ExportSettings,
    resolve_settings,
    load_export_settings,
    save_export_settings,
)
from .exporter import BatchExporter, ExportItem, ExportResult, convert_and_export_files
from .optimizer import OptimizeReport, optimize_nutexb_files

__all__ = [
    # Errors
    'TextureError',
    'UnsupportedExtensionError',
    'CorruptDataError',
    'TextureIOError',
    'FormatMappingError',
    'UnsupportedSourceFormatError',
    'EncodeError',
    # Formats
    'PixelFormat',
    'Quality',
    'MipmapMode',
    'MipmapPolicy',
    'DxgiFormat',
    'NutexbFormat',
    'BntxFormat',
    # Texture model
    'ContainerKind',
    'Texture',
    'RawImage',
    'DdsTexture',
    'ConsoleTexture',
    'NutexbTexture',
    'BntxTexture',
    'fix_mipmap_count',
    'load_texture',
    # Codec
    'TextureCodec',
    'ConsoleBackend',
    'load_console_backends',
    # Conversion
    'normalize',
    'save_image',
    'save_dds',
    'save_nutexb',
    'save_bntx',
    'save_texture',
    'convert_file',
    # Settings
    'OutputFileType',
    'FileSettings',
    'GlobalOverrides',
    'EffectiveParams',
    'FileList',
    'ExportSettings',
    'resolve_settings',
    'load_export_settings',
    'save_export_settings',
    # Batch jobs
    'BatchExporter',
    'ExportItem',
    'ExportResult',
    'convert_and_export_files',
    'OptimizeReport',
    'optimize_nutexb_files',
]
