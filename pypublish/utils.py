"""Utility functions for pypublish."""

import hashlib
import mimetypes
from datetime import datetime, timezone
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Prefix of the cache file name, completed with the bucket name
CACHE_FILE_PREFIX: str = ".pypublish-"

# Number of cache mutations between two opportunistic flushes
DEFAULT_FLUSH_INTERVAL: int = 10

# S3 accepts at most 1000 keys per DeleteObjects request
DEFAULT_DELETE_BATCH_SIZE: int = 1000

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# Non-text media types that are still served with a charset
_CHARSET_TYPES = {
    "application/javascript",
    "application/json",
    "application/xml",
    "application/xhtml+xml",
    "application/rss+xml",
    "application/atom+xml",
    "application/manifest+json",
    "image/svg+xml",
}


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_fingerprint(data: bytes) -> str:
    """Calculate the content fingerprint of a payload.

    The fingerprint is the hex MD5 digest of the bytes, which is also the
    ETag S3 reports for objects uploaded in a single request.

    Args:
        data: File content

    Returns:
        Lowercase hex digest

    Raises:
        TypeError: If data is None

    Examples:
        >>> calculate_fingerprint(b"hi")
        '49f68a5c8493ec2c0bf489821c21fc3b'
    """
    if data is None:
        raise TypeError("Cannot fingerprint an absent payload")
    return hashlib.md5(data).hexdigest()


def normalize_etag(etag: Optional[str]) -> Optional[str]:
    """Turn an ETag as returned by S3 into a bare fingerprint.

    Args:
        etag: ETag header value, usually wrapped in double quotes

    Returns:
        Lowercase digest without quotes or weak marker, None if empty
    """
    if not etag:
        return None
    value = etag.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"').strip("'")
    return value.lower() or None


# =============================================================================
# Path utilities
# =============================================================================


def normalize_remote_key(path: str, prefix: str = "") -> str:
    """Build a remote key from a relative path.

    Args:
        path: Relative path, with either slash style
        prefix: Optional key prefix (a trailing slash is added if missing)

    Returns:
        Forward-slash key without a leading slash

    Examples:
        >>> normalize_remote_key("css\\\\site.css")
        'css/site.css'
        >>> normalize_remote_key("index.html", prefix="www")
        'www/index.html'
    """
    key = path.replace("\\", "/").lstrip("/")
    if prefix:
        prefix = prefix.replace("\\", "/")
        if not prefix.endswith("/"):
            prefix += "/"
        key = prefix.lstrip("/") + key
    return key


def get_content_type(path: str) -> str:
    """Determine the Content-Type header for a path.

    Text-like types get a ``charset=utf-8`` suffix.

    Args:
        path: File path or name used for the extension lookup

    Returns:
        Content type string (defaults to 'application/octet-stream')

    Examples:
        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type, _ = mimetypes.guess_type(path, strict=False)
    if not mime_type:
        return DEFAULT_CONTENT_TYPE

    if mime_type.startswith("text/") or mime_type in _CHARSET_TYPES:
        return f"{mime_type}; charset=utf-8"
    return mime_type


# =============================================================================
# Time utilities
# =============================================================================


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
