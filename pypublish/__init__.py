"""PyPublish - publish local files to an S3 bucket with a fingerprint cache."""

from .batcher import DeleteBatcher
from .cache import RemoteStateCache
from .compress import GzipOptions, gzip_record
from .engine import PublishEngine, PublishFailure, PublishResult
from .exceptions import (
    CacheIOError,
    PublishConfigError,
    PublishError,
    RemoteQueryError,
    RemoteStoreError,
    RemoteWriteError,
    UnsupportedPayloadError,
)
from .models import (
    BytesPayload,
    EmptyPayload,
    FileRecord,
    FileState,
    RemoteObjectMeta,
    StreamPayload,
)
from .publisher import PublishOptions, Publisher
from .reconciler import BucketReconciler, Whitelist
from .store import RemoteStore, S3Store
from .utils import calculate_fingerprint

__all__ = [
    "BucketReconciler",
    "BytesPayload",
    "CacheIOError",
    "DeleteBatcher",
    "EmptyPayload",
    "FileRecord",
    "FileState",
    "GzipOptions",
    "PublishConfigError",
    "PublishEngine",
    "PublishError",
    "PublishFailure",
    "PublishOptions",
    "PublishResult",
    "Publisher",
    "RemoteObjectMeta",
    "RemoteQueryError",
    "RemoteStateCache",
    "RemoteStore",
    "RemoteStoreError",
    "RemoteWriteError",
    "S3Store",
    "StreamPayload",
    "UnsupportedPayloadError",
    "Whitelist",
    "calculate_fingerprint",
    "gzip_record",
]
