"""Exceptions raised by pypublish."""


class PublishError(Exception):
    """Base exception for all publish errors."""

    pass


class UnsupportedPayloadError(PublishError):
    """Raised when a file carries a streaming payload."""

    pass


class RemoteStoreError(PublishError):
    """Base exception for failures reported by the remote store."""

    pass


class RemoteQueryError(RemoteStoreError):
    """Raised when fetching metadata or listing objects fails."""

    pass


class RemoteWriteError(RemoteStoreError):
    """Raised when an upload or delete fails."""

    pass


class CacheIOError(PublishError):
    """Raised when the cache file cannot be written."""

    pass


class PublishConfigError(PublishError):
    """Raised when configuration is invalid."""

    pass
