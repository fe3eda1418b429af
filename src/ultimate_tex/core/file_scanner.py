"""File discovery with extension and path filtering"""

from pathlib import Path
from typing import List


class FileScanner:
    """Finds files by extension, ignoring case on every platform"""

    def __init__(self, path_blacklist: List[str] = None):
        """
        Args:
            path_blacklist: Path components to exclude (e.g., ["backup", ".git"])
        """
        self.path_blacklist = [p.lower() for p in (path_blacklist or [])]

    def should_process_path(self, path: Path) -> bool:
        """True unless a blacklisted component appears in the path"""
        path_parts = [p.lower() for p in path.parts]
        for blocked in self.path_blacklist:
            if any(blocked == part for part in path_parts):
                return False
        return True

    def find_files(self, input_dir: Path, extensions: List[str]) -> List[Path]:
        """
        Recursively find files with any of the given extensions.

        Args:
            input_dir: Root directory to search
            extensions: Extensions without the dot (e.g., ["nutexb"])

        Returns:
            Sorted list of matching files
        """
        wanted = {'.' + ext.lower().lstrip('.') for ext in extensions}
        # rglob patterns are case-sensitive on POSIX, so match suffixes manually
        matches = [
            f for f in Path(input_dir).rglob("*")
            if f.suffix.lower() in wanted and f.is_file()
        ]
        return sorted(f for f in matches if self.should_process_path(f.relative_to(input_dir)))
