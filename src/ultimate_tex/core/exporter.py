"""
Batch export: convert many files in parallel, one failure never stops the batch.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .converter import save_texture
from .errors import TextureIOError
from .settings import ExportSettings, FileList, FileSettings, resolve_settings
from .texture import Texture, load_texture
from .utils import format_time

logger = logging.getLogger(__name__)


@dataclass
class ExportItem:
    """One file to export. The texture is read during export when not supplied."""
    settings: FileSettings
    texture: Optional[Texture] = None


@dataclass
class ExportResult:
    """Result from exporting a single file"""
    success: bool
    name: str
    output_path: Optional[Path] = None
    error_msg: Optional[str] = None  # None on failure means the item was skipped


def output_path_for(output_dir: Path, settings: FileSettings, extension: str) -> Path:
    """<output_dir>/<source stem>.<extension>, whatever the source extension was"""
    return Path(output_dir) / f"{settings.file_name_no_extension}.{extension}"


def _export_file_worker(item: ExportItem, export_settings: ExportSettings, codec,
                        cancel_event: Optional[threading.Event] = None) -> ExportResult:
    """Worker function for parallel export."""
    settings = item.settings
    result = ExportResult(success=False, name=settings.name)

    if cancel_event is not None and cancel_event.is_set():
        result.error_msg = f"Error converting {settings.name}: cancelled"
        return result

    if export_settings.save_in_same_folder:
        output_dir = settings.path.parent
    else:
        output_dir = export_settings.output_folder

    if output_dir is None:
        # No destination configured: counted as a failure without a message
        return result

    params = resolve_settings(export_settings.overrides, settings)
    output_path = output_path_for(output_dir, settings, params.file_type.extension)
    result.output_path = output_path

    try:
        texture = item.texture if item.texture is not None else load_texture(settings.path, codec)
        save_texture(params.file_type.container_kind, texture, output_path,
                     params.pixel_format, params.quality, params.mipmaps, codec)
        result.success = True
    except Exception as e:
        result.error_msg = f"Error converting {settings.name}: {e}"

    return result


def summarize(results: List[ExportResult]) -> List[str]:
    """Summary line first, then one message per failed file that has one"""
    total = len(results)
    failures = sum(1 for r in results if not r.success)
    messages = [r.error_msg for r in results if not r.success and r.error_msg]
    messages.insert(0, f"Successfully converted {total - failures} of {total} file(s)")
    return messages


class BatchExporter:
    """Exports a list of files with the effective settings of each"""

    def __init__(self, codec, settings: ExportSettings = None):
        self.codec = codec
        self.settings = settings or ExportSettings()

    def _prepare_output_folder(self) -> None:
        output_folder = self.settings.output_folder
        if output_folder is None:
            return
        try:
            Path(output_folder).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TextureIOError(f"Failed to create output folder {output_folder}: {e}") from e

    def export_results(self, items: List[ExportItem],
                       progress_callback: Optional[Callable[[int, int, ExportResult], None]] = None,
                       cancel_event: Optional[threading.Event] = None) -> List[ExportResult]:
        """
        Export all items and return one result per item (completion order).

        Raises:
            TextureIOError: If the output folder cannot be created. Nothing is exported.
        """
        # Must exist before workers start writing into it
        self._prepare_output_folder()

        total = len(items)
        if not total:
            return []

        start = time.perf_counter()
        logger.info("Exporting %d file(s)", total)

        results = []
        use_parallel = self.settings.enable_parallel and total > 1
        max_workers = max(1, self.settings.max_workers)

        if use_parallel:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {}
                for item in items:
                    future = executor.submit(_export_file_worker, item, self.settings,
                                             self.codec, cancel_event)
                    futures[future] = item

                current = 0
                for future in as_completed(futures):
                    current += 1
                    try:
                        result = future.result()
                    except Exception as e:
                        name = futures[future].settings.name
                        result = ExportResult(success=False, name=name,
                                              error_msg=f"Error converting {name}: {e}")
                    results.append(result)
                    self._log_result(result)
                    if progress_callback:
                        progress_callback(current, total, result)
        else:
            for i, item in enumerate(items, 1):
                result = _export_file_worker(item, self.settings, self.codec, cancel_event)
                results.append(result)
                self._log_result(result)
                if progress_callback:
                    progress_callback(i, total, result)

        succeeded = sum(1 for r in results if r.success)
        logger.info("Exported %d of %d file(s) in %s", succeeded, total,
                    format_time(time.perf_counter() - start))
        return results

    def export(self, items: List[ExportItem],
               progress_callback: Optional[Callable[[int, int, ExportResult], None]] = None,
               cancel_event: Optional[threading.Event] = None) -> List[str]:
        """
        Export all items and return user-facing messages.

        The first message is always the summary; failure messages follow in
        no particular order.
        """
        return summarize(self.export_results(items, progress_callback, cancel_event))

    @staticmethod
    def _log_result(result: ExportResult) -> None:
        if result.success:
            logger.debug("Wrote %s", result.output_path)
        elif result.error_msg:
            logger.warning(result.error_msg)
        else:
            logger.warning("Skipped %s: no output folder configured", result.name)


def convert_and_export_files(files: FileList, export_settings: ExportSettings, codec,
                             progress_callback: Optional[Callable[[int, int, ExportResult], None]] = None,
                             cancel_event: Optional[threading.Event] = None) -> List[str]:
    """Export every entry of a FileList, re-reading each source file"""
    items = [ExportItem(settings) for settings in files]
    return BatchExporter(codec, export_settings).export(items, progress_callback, cancel_event)
