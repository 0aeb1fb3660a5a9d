"""Directory scanning: turns a local tree into file records."""

import fnmatch
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

from .models import BytesPayload, FileRecord
from .utils import normalize_remote_key

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """Scans a directory and yields one FileRecord per file.

    Files are read one at a time as the records are consumed, so a large
    tree is never held in memory at once.

    Examples:
        >>> scanner = DirectoryScanner(ignore_patterns=["*.map", "drafts/*"])
        >>> for record in scanner.scan(Path("public"), key_prefix="www"):
        ...     print(record.key)
    """

    def __init__(
        self,
        ignore_patterns: Optional[list[str]] = None,
        exclude_dot_files: bool = False,
    ):
        """Initialize directory scanner.

        Args:
            ignore_patterns: Glob patterns matched against relative paths
                and file names (e.g., ["*.log", "temp/*"])
            exclude_dot_files: Whether to exclude files/folders starting with dot
        """
        self.ignore_patterns = ignore_patterns or []
        self.exclude_dot_files = exclude_dot_files

    def should_ignore(self, path: Path, base_path: Path) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Path to check
            base_path: Base path for relative path calculation

        Returns:
            True if path should be ignored
        """
        if self.exclude_dot_files and path.name.startswith("."):
            return True

        relative_path = path.relative_to(base_path).as_posix()
        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(
                path.name, pattern
            ):
                logger.debug(f"Ignoring {relative_path} (matches {pattern})")
                return True
        return False

    def iter_files(self, directory: Path, base_path: Optional[Path] = None) -> Iterator[Path]:
        """Recursively yield files below a directory in a stable order.

        Args:
            directory: Directory to scan
            base_path: Base path for ignore matching (defaults to directory)

        Yields:
            Paths of files that are not ignored
        """
        if base_path is None:
            base_path = directory

        try:
            items = sorted(directory.iterdir())
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")
            return

        for item in items:
            if self.should_ignore(item, base_path):
                continue
            if item.is_dir():
                yield from self.iter_files(item, base_path)
            elif item.is_file():
                yield item

    def scan(self, directory: Path, key_prefix: str = "") -> Iterator[FileRecord]:
        """Yield a FileRecord for every file below a directory.

        Args:
            directory: Publish root
            key_prefix: Prefix prepended to every remote key

        Yields:
            FileRecord with the file content loaded

        Raises:
            ValueError: If directory does not exist or is not a directory
        """
        if not directory.exists():
            raise ValueError(f"Directory does not exist: {directory}")
        if not directory.is_dir():
            raise ValueError(f"Path is not a directory: {directory}")

        for file_path in self.iter_files(directory):
            # Use as_posix() to ensure forward slashes on all platforms
            relative_path = file_path.relative_to(directory).as_posix()
            try:
                data = file_path.read_bytes()
            except OSError as e:
                logger.warning(f"Skipping unreadable file {relative_path}: {e}")
                continue

            yield FileRecord(
                path=relative_path,
                key=normalize_remote_key(relative_path, key_prefix),
                payload=BytesPayload(data),
            )
