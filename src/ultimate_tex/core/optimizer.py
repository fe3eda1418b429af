"""
Rewrite Nutexb files in place with minimal padding.

Files that cannot be read or written are skipped; the walk always finishes.
Skipped files are logged and listed in the report.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .errors import TextureError
from .file_scanner import FileScanner
from .texture import ContainerKind
from .utils import format_size

logger = logging.getLogger(__name__)


@dataclass
class OptimizeReport:
    optimized: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    bytes_saved: int = 0


def optimize_nutexb_files(root: Path, codec, scanner: FileScanner = None) -> OptimizeReport:
    """
    Find every .nutexb file under `root` and rewrite it with minimal padding.

    Runs sequentially. A failure on one file never stops the others.
    """
    scanner = scanner or FileScanner()
    report = OptimizeReport()

    files = scanner.find_files(Path(root), [ContainerKind.NUTEXB.value])
    logger.info("Optimizing %d nutexb file(s) under %s", len(files), root)

    for path in files:
        try:
            size_before = path.stat().st_size
            texture = codec.read(path)
            codec.write(codec.optimize_size(texture), path)
            report.bytes_saved += size_before - path.stat().st_size
        except (TextureError, OSError) as e:
            logger.warning("Skipping %s: %s", path, e)
            report.failed.append((path, str(e)))
            continue
        report.optimized.append(path)

    logger.info("Optimized %d file(s), %d skipped, %s saved",
                len(report.optimized), len(report.failed), format_size(max(0, report.bytes_saved)))
    return report
