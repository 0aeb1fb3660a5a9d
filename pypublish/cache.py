"""Persistent cache of the fingerprints published to a bucket.

The cache remembers, for every remote key, the fingerprint of the content
last published there. A file whose fingerprint matches its cache entry is
not sent again and does not cost a network round trip.

The cache is a single JSON object stored next to the publish root (or at a
configured path) and rewritten as a whole on every flush. There is no
locking: two runs sharing a cache file at the same time leave it in an
undefined state.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .exceptions import CacheIOError
from .models import FileRecord, FileState
from .utils import CACHE_FILE_PREFIX, DEFAULT_FLUSH_INTERVAL

logger = logging.getLogger(__name__)


class RemoteStateCache:
    """Maps remote keys to the fingerprint last published under them.

    Every mutation increments a counter; the cache is written to disk each
    time the counter reaches a multiple of ``flush_interval``. Callers flush
    once more when the run completes.

    Examples:
        >>> cache = RemoteStateCache.for_bucket("my-bucket")
        >>> cache.load()
        >>> cache.set("index.html", "5d41402abc4b2a76b9719d911017c592")
        >>> cache.flush()
    """

    def __init__(
        self,
        path: Union[str, Path],
        flush_interval: int = DEFAULT_FLUSH_INTERVAL,
    ):
        """Initialize the cache.

        Args:
            path: Location of the cache file
            flush_interval: Mutations between opportunistic flushes
                (0 or less disables them)
        """
        self.path = Path(path)
        self.flush_interval = flush_interval
        self._entries: dict[str, str] = {}
        self._mutations = 0

    @classmethod
    def for_bucket(
        cls,
        bucket: str,
        directory: Optional[Path] = None,
        flush_interval: int = DEFAULT_FLUSH_INTERVAL,
    ) -> "RemoteStateCache":
        """Create a cache using the default file name for a bucket.

        Args:
            bucket: Bucket name
            directory: Directory holding the cache file (defaults to cwd)
            flush_interval: Mutations between opportunistic flushes

        Returns:
            RemoteStateCache for ``<directory>/.pypublish-<bucket>``
        """
        directory = directory if directory is not None else Path.cwd()
        return cls(directory / f"{CACHE_FILE_PREFIX}{bucket}", flush_interval)

    @property
    def mutations(self) -> int:
        """Number of mutations since the cache was created."""
        return self._mutations

    def load(self) -> None:
        """Load the cache file.

        A missing, unreadable or malformed file leaves the cache empty.
        """
        self._entries = {}

        if not self.path.exists():
            logger.debug(f"No cache file found at {self.path}")
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self.path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed cache file {self.path}")
            return

        self._entries = {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }
        logger.debug(f"Loaded {len(self._entries)} cache entries from {self.path}")

    def get(self, key: str) -> Optional[str]:
        """Return the cached fingerprint for a key, if any."""
        return self._entries.get(key)

    def set(self, key: str, fingerprint: str) -> None:
        """Record the fingerprint published under a key."""
        self._entries[key] = fingerprint
        self._mutated()

    def delete(self, key: str) -> None:
        """Forget a key."""
        self._entries.pop(key, None)
        self._mutated()

    def record(self, file_record: FileRecord) -> None:
        """Update the cache from a classified file record.

        Args:
            file_record: Record returned by the publisher or the reconciler
        """
        state = file_record.state
        if state is None or state in (FileState.CACHE_HIT, FileState.SIMULATE):
            return

        if state == FileState.DELETE:
            self.delete(file_record.key)
        elif file_record.fingerprint:
            self.set(file_record.key, file_record.fingerprint)

    def flush(self) -> None:
        """Write the whole mapping to the cache file.

        Raises:
            CacheIOError: If the file cannot be written
        """
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f"{self.path.name}.", suffix=".tmp", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._entries, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheIOError(f"Failed to write cache file {self.path}: {e}") from e
        logger.debug(f"Saved {len(self._entries)} cache entries to {self.path}")

    def clear(self) -> bool:
        """Remove all entries and delete the cache file.

        Returns:
            True if a cache file was removed, False if none existed
        """
        self._entries = {}
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Cleared cache at {self.path}")
            return True
        return False

    def as_dict(self) -> dict[str, str]:
        """Return a copy of the mapping."""
        return dict(self._entries)

    def _mutated(self) -> None:
        self._mutations += 1
        if self.flush_interval > 0 and self._mutations % self.flush_interval == 0:
            self.flush()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
