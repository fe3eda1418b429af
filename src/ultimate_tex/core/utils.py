"""Shared utility functions"""

import os
import platform
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional

from .errors import TextureIOError


def format_size(bytes_size: int) -> str:
    """Format file size in human-readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def format_time(seconds: float) -> str:
    """Format time in human-readable format"""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.1f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.0f}s"


def file_name_no_extension(path: Path) -> str:
    """File name without its last extension ('a.b.png' -> 'a.b')"""
    return Path(path).stem


def find_cuttlefish(script_dir: Path = None) -> Optional[str]:
    """
    Locate the cuttlefish texture encoder.

    Handles both frozen (PyInstaller) and script execution modes.
    Looks in <script_dir>/tools/ first, then on PATH.

    Args:
        script_dir: Optional override for the directory holding tools/.
                    If None, auto-detects the project root.

    Returns:
        Path to the executable, or None if not found.
    """
    if script_dir is None:
        if hasattr(sys, 'frozen'):
            # PyInstaller frozen executable
            script_dir = Path(sys.executable).parent
        else:
            # This file is at: src/ultimate_tex/core/utils.py
            script_dir = Path(__file__).resolve().parents[3]

    exe_name = "cuttlefish.exe" if platform.system() == 'Windows' else "cuttlefish"
    bundled = Path(script_dir) / "tools" / exe_name
    if bundled.exists():
        return str(bundled)

    return shutil.which("cuttlefish")


def atomic_write(path: Path, write: Callable[[Path], None]) -> None:
    """
    Write a file through a temporary sibling, then move it into place.

    A failed write never leaves a partial file at `path`.

    Args:
        path: Final output path
        write: Callable that writes the complete file to the temporary path it is given

    Raises:
        TextureIOError: If the temporary file cannot be written or moved
    """
    path = Path(path)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=path.suffix,
                                        dir=str(path.parent))
    except OSError as e:
        raise TextureIOError(f"Failed to write {path}: {e}") from e
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write(tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        raise TextureIOError(f"Failed to write {path}: {e}") from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
