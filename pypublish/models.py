"""Data models for files flowing through the publish pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Optional, Union

from .utils import normalize_remote_key


class FileState(str, Enum):
    """Outcome of publishing a single file."""

    CACHE_HIT = "cache"
    """Cached fingerprint matches, nothing was sent"""

    SKIP = "skip"
    """Remote object already up to date (or create-only mode)"""

    CREATE = "create"
    """Remote object did not exist and was uploaded"""

    UPDATE = "update"
    """Remote object existed with other content and was overwritten"""

    DELETE = "delete"
    """Remote object is to be deleted"""

    SIMULATE = "simulate"
    """Dry run, no network interaction happened"""


# =============================================================================
# Payload variants
# =============================================================================


@dataclass(frozen=True)
class EmptyPayload:
    """A file without content (directories, placeholders)."""


@dataclass(frozen=True)
class BytesPayload:
    """A file whose content is fully loaded in memory."""

    data: bytes

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StreamPayload:
    """A file whose content is a stream. Publishing it is not supported."""

    stream: BinaryIO


Payload = Union[EmptyPayload, BytesPayload, StreamPayload]


@dataclass
class FileRecord:
    """A single file travelling through the publish pipeline."""

    path: str
    """Local path relative to the publish root"""

    key: str
    """Remote object key (forward slashes)"""

    payload: Payload = field(default_factory=EmptyPayload)
    """File content"""

    headers: dict[str, str] = field(default_factory=dict)
    """Headers attached on upload, owned by this record"""

    state: Optional[FileState] = None
    """Publish outcome, None until decided"""

    fingerprint: Optional[str] = None
    """Content fingerprint recorded for the remote object"""

    timestamp: Optional[datetime] = None
    """Upload time, or remote last-modified time when skipped"""

    original_path: Optional[str] = None
    """Path before a compression suffix was appended"""

    @classmethod
    def from_bytes(cls, path: str, data: bytes, key_prefix: str = "") -> "FileRecord":
        """Create a record for in-memory content.

        Args:
            path: Relative local path
            data: File content
            key_prefix: Prefix prepended to the remote key

        Returns:
            FileRecord with a BytesPayload
        """
        return cls(
            path=path,
            key=normalize_remote_key(path, key_prefix),
            payload=BytesPayload(data),
        )

    @classmethod
    def for_deletion(cls, key: str) -> "FileRecord":
        """Create a content-less record marking a remote key for deletion."""
        return cls(path=key, key=key, state=FileState.DELETE)

    @property
    def is_empty(self) -> bool:
        """Whether the record has no content."""
        return isinstance(self.payload, EmptyPayload)

    @property
    def is_stream(self) -> bool:
        """Whether the record carries a streaming payload."""
        return isinstance(self.payload, StreamPayload)

    @property
    def data(self) -> Optional[bytes]:
        """Content bytes, None unless the payload is a BytesPayload."""
        if isinstance(self.payload, BytesPayload):
            return self.payload.data
        return None

    @property
    def size(self) -> int:
        """Content size in bytes (0 when not loaded in memory)."""
        data = self.data
        return len(data) if data is not None else 0


@dataclass
class RemoteObjectMeta:
    """Metadata of an existing remote object."""

    key: str
    """Remote object key"""

    fingerprint: Optional[str] = None
    """Content fingerprint if the store exposes one"""

    last_modified: Optional[datetime] = None
    """Last modification time"""
