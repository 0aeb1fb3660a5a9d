"""Batched deletion of remote objects."""

import logging
from collections.abc import Iterable, Iterator

from .exceptions import RemoteStoreError, RemoteWriteError
from .store import RemoteStore
from .utils import DEFAULT_DELETE_BATCH_SIZE

logger = logging.getLogger(__name__)


def iter_batches(keys: list[str], batch_size: int) -> Iterator[list[str]]:
    """Split keys into consecutive batches of at most batch_size keys."""
    for start in range(0, len(keys), batch_size):
        yield keys[start : start + batch_size]


class DeleteBatcher:
    """Deletes keys in bounded batches.

    Batches are sent in order. The first failing batch stops the flush;
    batches already deleted stay deleted.
    """

    def __init__(
        self, store: RemoteStore, batch_size: int = DEFAULT_DELETE_BATCH_SIZE
    ):
        """Initialize the batcher.

        Args:
            store: Remote object store
            batch_size: Maximum number of keys per delete call

        Raises:
            ValueError: If batch_size is not positive
        """
        if batch_size < 1:
            raise ValueError("Batch size must be at least 1")
        self.store = store
        self.batch_size = batch_size

    def delete(self, keys: Iterable[str]) -> int:
        """Delete all keys.

        Args:
            keys: Keys to delete

        Returns:
            Number of keys deleted

        Raises:
            RemoteWriteError: If a batch fails; remaining batches are not sent
        """
        keys = list(keys)
        deleted = 0

        for batch in iter_batches(keys, self.batch_size):
            try:
                self.store.delete_objects(batch)
            except RemoteWriteError:
                logger.warning(
                    f"Delete batch failed after {deleted} of {len(keys)} key(s)"
                )
                raise
            except RemoteStoreError as e:
                raise RemoteWriteError(
                    f"Delete batch failed after {deleted} of {len(keys)} key(s): {e}"
                ) from e
            deleted += len(batch)
            logger.debug(f"Deleted {deleted}/{len(keys)} remote object(s)")

        return deleted
