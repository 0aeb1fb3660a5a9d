"""Gzip pre-pass applied before publishing."""

import gzip
import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import UnsupportedPayloadError
from .models import BytesPayload, EmptyPayload, FileRecord, StreamPayload

logger = logging.getLogger(__name__)


@dataclass
class GzipOptions:
    """Options for the gzip pre-pass."""

    ext: str = ""
    """Extension appended to the path and key of compressed files"""

    smaller: bool = False
    """Only keep the compressed content if it is smaller than the original"""

    compresslevel: int = 9
    """zlib compression level"""


def gzip_record(
    record: FileRecord, options: Optional[GzipOptions] = None
) -> Optional[FileRecord]:
    """Compress the content of a record in place.

    The gzip header carries a fixed modification time, so identical input
    always gives identical output and an unchanged fingerprint.

    Args:
        record: File record
        options: Gzip options

    Returns:
        The record, or None if it has no content

    Raises:
        UnsupportedPayloadError: If the record carries a stream
    """
    options = options or GzipOptions()
    payload = record.payload

    if isinstance(payload, EmptyPayload):
        return None
    elif isinstance(payload, StreamPayload):
        raise UnsupportedPayloadError(
            f"Stream content is not supported: {record.path}"
        )
    elif not isinstance(payload, BytesPayload):
        raise TypeError(f"Unknown payload type: {type(payload).__name__}")

    compressed = gzip.compress(payload.data, compresslevel=options.compresslevel, mtime=0)
    if options.smaller and len(compressed) >= len(payload.data):
        logger.debug(f"Keeping {record.path} uncompressed, gzip is not smaller")
        return record

    record.headers["Content-Encoding"] = "gzip"
    record.original_path = record.path
    record.path += options.ext
    record.key += options.ext
    record.payload = BytesPayload(compressed)
    return record
