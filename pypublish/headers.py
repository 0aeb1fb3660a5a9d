"""Publish header derivation.

Headers are merged in increasing order of precedence::

    default (x-amz-acl) < inferred < set upstream on the record < caller

so a header set by an earlier pipeline stage (the gzip pre-pass for
instance) is never replaced by an inferred value, while headers handed to
the publisher by the caller always win.
"""

from typing import Optional

from .models import FileRecord
from .utils import get_content_type

DEFAULT_ACL = "public-read"


def resolve_original_path(
    record: FileRecord, compress: Optional[dict[str, str]] = None
) -> tuple[str, Optional[str]]:
    """Find the path to use for content type inference.

    Args:
        record: File record
        compress: Mapping of filename suffix to Content-Encoding value

    Returns:
        Tuple of (path without compression suffix, inferred encoding or None)
    """
    if record.original_path:
        return record.original_path, None

    for suffix, encoding in (compress or {}).items():
        if suffix and record.path.endswith(suffix):
            return record.path[: -len(suffix)], encoding

    return record.path, None


def infer_headers(
    record: FileRecord, compress: Optional[dict[str, str]] = None
) -> dict[str, str]:
    """Infer Content-Type, Content-Length and Content-Encoding for a record.

    Args:
        record: File record with a bytes payload
        compress: Mapping of filename suffix to Content-Encoding value

    Returns:
        Inferred headers
    """
    original_path, encoding = resolve_original_path(record, compress)
    if encoding and not record.original_path:
        record.original_path = original_path

    headers = {
        "Content-Type": get_content_type(original_path),
        "Content-Length": str(record.size),
    }
    if encoding:
        headers["Content-Encoding"] = encoding
    return headers


def build_publish_headers(
    record: FileRecord,
    extra_headers: Optional[dict[str, str]] = None,
    compress: Optional[dict[str, str]] = None,
    no_acl: bool = False,
) -> dict[str, str]:
    """Compute the headers to upload a record with.

    Args:
        record: File record with a bytes payload
        extra_headers: Caller-supplied headers
        compress: Mapping of filename suffix to Content-Encoding value
        no_acl: Do not add the default public-read ACL

    Returns:
        Merged headers
    """
    headers: dict[str, str] = {}
    if not no_acl:
        headers["x-amz-acl"] = DEFAULT_ACL
    headers.update(infer_headers(record, compress))
    headers.update(record.headers)
    headers.update(extra_headers or {})
    return headers
