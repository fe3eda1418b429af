"""Per-file conversion settings, global overrides and export configuration"""

import dataclasses
import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from multiprocessing import cpu_count
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

from .errors import TextureError
from .formats import MipmapPolicy, PixelFormat, Quality
from .texture import ContainerKind, Texture, load_texture
from .utils import file_name_no_extension

logger = logging.getLogger(__name__)


class OutputFileType(Enum):
    DDS = "Dds"
    PNG = "Png"
    TIFF = "Tiff"
    NUTEXB = "Nutexb"
    BNTX = "Bntx"

    @property
    def extension(self) -> str:
        return self.value.lower()

    @property
    def container_kind(self) -> ContainerKind:
        return OUTPUT_CONTAINER_KINDS[self]

    def __str__(self) -> str:
        return self.value


OUTPUT_CONTAINER_KINDS = {
    OutputFileType.DDS: ContainerKind.DDS,
    OutputFileType.PNG: ContainerKind.IMAGE,
    OutputFileType.TIFF: ContainerKind.IMAGE,
    OutputFileType.NUTEXB: ContainerKind.NUTEXB,
    OutputFileType.BNTX: ContainerKind.BNTX,
}


@dataclass
class FileSettings:
    """Conversion settings for one loaded source file"""
    path: Path
    name: str
    format: PixelFormat
    dimensions: Tuple[int, int, int]
    output_file_type: OutputFileType
    output_format: PixelFormat
    output_quality: Quality = Quality.FAST
    output_mipmaps: MipmapPolicy = field(default_factory=MipmapPolicy.automatic)
    preview: Any = None  # Owned by this entry so it is removed together with it

    @classmethod
    def from_texture(cls, path: Path, texture: Texture, preview: Any = None) -> "FileSettings":
        """
        Default settings for a newly added file.

        The output format defaults to the input format so that converting
        without edits stays lossless where the containers allow it.
        """
        path = Path(path)
        fmt = texture.pixel_format()
        return cls(
            path=path,
            name=path.name,
            format=fmt,
            dimensions=texture.dimensions(),
            output_file_type=OutputFileType.NUTEXB,
            output_format=fmt,
            output_quality=Quality.FAST,
            output_mipmaps=MipmapPolicy.automatic(),
            preview=preview,
        )

    @property
    def file_name_no_extension(self) -> str:
        return file_name_no_extension(self.path)


@dataclass
class GlobalOverrides:
    """Settings applied to every file. None defers to the file's own value."""
    output_file_type: Optional[OutputFileType] = None
    output_format: Optional[PixelFormat] = None
    output_quality: Optional[Quality] = None
    output_mipmaps: Optional[MipmapPolicy] = None

    def to_dict(self) -> dict:
        return {
            'output_file_type': self.output_file_type.value if self.output_file_type else None,
            'output_format': self.output_format.value if self.output_format else None,
            'output_quality': self.output_quality.value if self.output_quality else None,
            'output_mipmaps': self.output_mipmaps.to_dict() if self.output_mipmaps else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GlobalOverrides":
        file_type = data.get('output_file_type')
        fmt = data.get('output_format')
        quality = data.get('output_quality')
        mipmaps = data.get('output_mipmaps')
        return cls(
            output_file_type=OutputFileType(file_type) if file_type else None,
            output_format=PixelFormat.from_name(fmt) if fmt else None,
            output_quality=Quality(quality) if quality else None,
            output_mipmaps=MipmapPolicy.from_dict(mipmaps) if mipmaps else None,
        )


class EffectiveParams(NamedTuple):
    file_type: OutputFileType
    pixel_format: PixelFormat
    quality: Quality
    mipmaps: MipmapPolicy


def _override(value, default):
    return value if value is not None else default


def resolve_settings(overrides: GlobalOverrides, settings: FileSettings) -> EffectiveParams:
    """Merge global overrides with one file's settings. Pure, field by field."""
    return EffectiveParams(
        file_type=_override(overrides.output_file_type, settings.output_file_type),
        pixel_format=_override(overrides.output_format, settings.output_format),
        quality=_override(overrides.output_quality, settings.output_quality),
        mipmaps=_override(overrides.output_mipmaps, settings.output_mipmaps),
    )


class FileList:
    """
    Loaded files keyed by stable integer keys.

    Keys are never reused, so removing one entry cannot shift another.
    Iteration follows insertion order.
    """

    def __init__(self):
        self._entries: Dict[int, FileSettings] = {}
        self._next_key = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FileSettings]:
        return iter(list(self._entries.values()))

    def __contains__(self, key: int) -> bool:
        return key in self._entries

    def keys(self) -> List[int]:
        return list(self._entries)

    def items(self) -> List[Tuple[int, FileSettings]]:
        return list(self._entries.items())

    def get(self, key: int) -> FileSettings:
        return self._entries[key]

    def add(self, settings: FileSettings) -> int:
        key = self._next_key
        self._next_key += 1
        self._entries[key] = settings
        return key

    def remove(self, key: int) -> FileSettings:
        """Remove an entry and everything it owns. Raises KeyError for unknown keys."""
        return self._entries.pop(key)

    def clear(self) -> None:
        self._entries.clear()

    def update(self, key: int, **changes) -> FileSettings:
        """Apply user edits to one entry"""
        updated = dataclasses.replace(self._entries[key], **changes)
        self._entries[key] = updated
        return updated

    def load_files(self, paths: List[Path], codec,
                   preview_factory: Optional[Callable[[Texture], Any]] = None,
                   max_workers: int = None) -> Tuple[List[int], List[Tuple[Path, str]]]:
        """
        Probe files in parallel and add the readable ones in input order.

        Args:
            paths: Files to add
            codec: Codec used to read each file
            preview_factory: Optional callable building a preview handle from a texture
            max_workers: Thread count (default: CPU count)

        Returns:
            (keys of added entries, [(path, error message)] for unreadable files)
        """
        paths = [Path(p) for p in paths]
        loaded: Dict[int, FileSettings] = {}
        errors: List[Tuple[Path, str]] = []

        def probe(path: Path) -> FileSettings:
            texture = load_texture(path, codec)
            preview = preview_factory(texture) if preview_factory else None
            return FileSettings.from_texture(path, texture, preview)

        with ThreadPoolExecutor(max_workers=max_workers or max(1, cpu_count())) as executor:
            futures = {executor.submit(probe, path): index for index, path in enumerate(paths)}
            for future in as_completed(futures):
                index = futures[future]
                try:
                    loaded[index] = future.result()
                except TextureError as e:
                    logger.warning("Skipping %s: %s", paths[index].name, e)
                    errors.append((paths[index], str(e)))

        keys = [self.add(loaded[index]) for index in sorted(loaded)]
        logger.info("Loaded %d of %d file(s)", len(keys), len(paths))
        return keys, errors


@dataclass
class ExportSettings:
    """Batch export configuration"""

    output_folder: Optional[Path] = None
    save_in_same_folder: bool = False
    overrides: GlobalOverrides = field(default_factory=GlobalOverrides)

    # Performance settings
    enable_parallel: bool = True
    max_workers: int = max(1, cpu_count())

    def to_dict(self) -> dict:
        return {
            'output_folder': str(self.output_folder) if self.output_folder else None,
            'save_in_same_folder': self.save_in_same_folder,
            'overrides': self.overrides.to_dict(),
            'enable_parallel': self.enable_parallel,
            'max_workers': self.max_workers,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExportSettings":
        output_folder = data.get('output_folder')
        return cls(
            output_folder=Path(output_folder) if output_folder else None,
            save_in_same_folder=data.get('save_in_same_folder', False),
            overrides=GlobalOverrides.from_dict(data.get('overrides') or {}),
            enable_parallel=data.get('enable_parallel', True),
            max_workers=data.get('max_workers', max(1, cpu_count())),
        )


def load_export_settings(path: Path) -> ExportSettings:
    """Load ExportSettings from a JSON file"""
    with open(path, 'r') as f:
        return ExportSettings.from_dict(json.load(f))


def save_export_settings(settings: ExportSettings, path: Path) -> None:
    with open(path, 'w') as f:
        json.dump(settings.to_dict(), f, indent=2)
