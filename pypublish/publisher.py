"""Per-file publish decisions."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .cache import RemoteStateCache
from .exceptions import UnsupportedPayloadError
from .headers import build_publish_headers
from .models import BytesPayload, EmptyPayload, FileRecord, FileState, StreamPayload
from .store import RemoteStore
from .utils import calculate_fingerprint, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PublishOptions:
    """Options controlling how files are published."""

    force: bool = False
    """Upload even if the cache or the remote object says nothing changed"""

    no_acl: bool = False
    """Do not add the public-read ACL header"""

    simulate: bool = False
    """Compute headers but never contact the store"""

    create_only: bool = False
    """Never overwrite an existing remote object"""

    compress: dict[str, str] = field(default_factory=dict)
    """Filename suffix to Content-Encoding mapping for precompressed files"""

    headers: dict[str, str] = field(default_factory=dict)
    """Headers added to every upload, overriding inferred ones"""


class Publisher:
    """Decides, per file, whether to upload it and performs the upload."""

    def __init__(
        self,
        store: RemoteStore,
        cache: RemoteStateCache,
        options: Optional[PublishOptions] = None,
    ):
        """Initialize the publisher.

        Args:
            store: Remote object store
            cache: Fingerprint cache consulted before the store
            options: Publish options
        """
        self.store = store
        self.cache = cache
        self.options = options or PublishOptions()

    def publish(self, record: FileRecord) -> FileRecord:
        """Classify a record and upload it when needed.

        The record is updated in place (state, fingerprint, timestamp and
        headers) and returned.

        Args:
            record: File to publish

        Returns:
            The same record

        Raises:
            UnsupportedPayloadError: If the record carries a stream
            RemoteQueryError: If the remote metadata cannot be fetched
            RemoteWriteError: If the upload fails
        """
        if record.state == FileState.DELETE:
            return record

        payload = record.payload
        if isinstance(payload, EmptyPayload):
            return record
        elif isinstance(payload, StreamPayload):
            raise UnsupportedPayloadError(
                f"Stream content is not supported: {record.path}"
            )
        elif not isinstance(payload, BytesPayload):
            raise TypeError(f"Unknown payload type: {type(payload).__name__}")

        fingerprint = calculate_fingerprint(payload.data)
        record.fingerprint = fingerprint

        if not self.options.force and self.cache.get(record.key) == fingerprint:
            record.state = FileState.CACHE_HIT
            logger.debug(f"Cache hit: {record.key}")
            return record

        record.headers = build_publish_headers(
            record,
            extra_headers=self.options.headers,
            compress=self.options.compress,
            no_acl=self.options.no_acl,
        )

        if self.options.simulate:
            record.state = FileState.SIMULATE
            return record

        return self._sync_remote(record, payload.data, fingerprint)

    def _sync_remote(
        self, record: FileRecord, data: bytes, fingerprint: str
    ) -> FileRecord:
        """Compare with the remote object and upload if needed."""
        meta = self.store.head_object(record.key)

        no_update = self.options.create_only and meta is not None
        no_change = (
            not self.options.force
            and meta is not None
            and meta.fingerprint == fingerprint
        )

        if no_update or no_change:
            record.state = FileState.SKIP
            record.timestamp = meta.last_modified if meta is not None else None
            logger.debug(f"Skipping {record.key}: remote object is up to date")
            return record

        state = FileState.CREATE if meta is None else FileState.UPDATE
        self.store.put_object(record.key, data, record.headers)
        record.state = state
        record.timestamp = utcnow()
        logger.debug(f"Uploaded {record.key} ({record.state.value})")
        return record
