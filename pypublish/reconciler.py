"""Bucket reconciliation: find and delete remote objects with no local file."""

import logging
import re
from collections.abc import Iterable
from typing import Optional, Union

from .batcher import DeleteBatcher
from .exceptions import PublishConfigError
from .models import FileRecord
from .store import RemoteStore

logger = logging.getLogger(__name__)

WhitelistEntry = Union[str, "re.Pattern[str]"]


class Whitelist:
    """Keys protected from deletion.

    An entry is either a literal key, matched exactly, or a compiled regular
    expression, matched with ``search``.

    Examples:
        >>> whitelist = Whitelist(["robots.txt", re.compile(r"^uploads/")])
        >>> whitelist.matches("uploads/avatar.png")
        True
        >>> whitelist.matches("index.html")
        False
    """

    def __init__(self, entries: Optional[Iterable[WhitelistEntry]] = None):
        """Initialize the whitelist.

        Args:
            entries: Literal keys and compiled patterns

        Raises:
            PublishConfigError: If an entry is neither a string nor a pattern
        """
        self.literals: set[str] = set()
        self.patterns: list[re.Pattern[str]] = []

        for entry in entries or []:
            if isinstance(entry, re.Pattern):
                self.patterns.append(entry)
            elif isinstance(entry, str):
                self.literals.add(entry)
            else:
                raise PublishConfigError(
                    "Whitelist entries must be strings or regular expressions, "
                    f"got {type(entry).__name__}: {entry!r}"
                )

    @classmethod
    def from_strings(
        cls,
        literals: Iterable[str] = (),
        patterns: Iterable[str] = (),
    ) -> "Whitelist":
        """Build a whitelist from literal keys and regular expression sources.

        Raises:
            PublishConfigError: If a pattern does not compile
        """
        entries: list[WhitelistEntry] = list(literals)
        for pattern in patterns:
            try:
                entries.append(re.compile(pattern))
            except re.error as e:
                raise PublishConfigError(
                    f"Invalid whitelist pattern {pattern!r}: {e}"
                ) from e
        return cls(entries)

    def matches(self, key: str) -> bool:
        """Check whether a key is protected."""
        if key in self.literals:
            return True
        return any(pattern.search(key) for pattern in self.patterns)

    def __len__(self) -> int:
        return len(self.literals) + len(self.patterns)


class BucketReconciler:
    """Deletes remote objects that were not published in the current run.

    Keys are collected while files flow through the pipeline. Once every
    file has been decided, ``reconcile`` lists the bucket under ``prefix``
    and deletes whatever was neither published nor whitelisted.
    """

    def __init__(
        self,
        store: RemoteStore,
        prefix: str = "",
        whitelist: Optional[Union[Whitelist, Iterable[WhitelistEntry]]] = None,
        batcher: Optional[DeleteBatcher] = None,
        dry_run: bool = False,
    ):
        """Initialize the reconciler.

        Args:
            store: Remote object store
            prefix: Only keys starting with this prefix are considered
            whitelist: Keys or patterns never deleted
            batcher: Delete batcher (one is created for store if not provided)
            dry_run: Compute deletions without deleting anything

        Raises:
            PublishConfigError: If a whitelist entry is malformed
        """
        self.store = store
        self.prefix = prefix
        if isinstance(whitelist, Whitelist):
            self.whitelist = whitelist
        else:
            self.whitelist = Whitelist(whitelist)
        self.batcher = batcher or DeleteBatcher(store)
        self.dry_run = dry_run
        self._published: set[str] = set()

    @property
    def published_keys(self) -> set[str]:
        """Keys seen in the current run."""
        return set(self._published)

    def mark_published(self, key: str) -> None:
        """Remember that key belongs to the current run."""
        self._published.add(key)

    def observe(self, record: FileRecord) -> FileRecord:
        """Remember the key of a record flowing through the pipeline."""
        self.mark_published(record.key)
        return record

    def should_delete(self, key: str) -> bool:
        """Check whether a listed key has to be deleted."""
        return key not in self._published and not self.whitelist.matches(key)

    def compute_delete_set(self) -> list[str]:
        """List the bucket and return keys to delete, in listing order.

        Raises:
            RemoteQueryError: If listing fails
        """
        to_delete = [
            key for key in self.store.list_objects(self.prefix) if self.should_delete(key)
        ]
        logger.debug(
            f"{len(to_delete)} remote object(s) under '{self.prefix}' "
            "are not part of this run"
        )
        return to_delete

    def reconcile(self) -> list[FileRecord]:
        """Delete stale remote objects.

        Returns:
            One delete-state record per deleted key

        Raises:
            RemoteQueryError: If listing fails
            RemoteWriteError: If a delete batch fails
        """
        to_delete = self.compute_delete_set()

        if to_delete and not self.dry_run:
            self.batcher.delete(to_delete)

        return [FileRecord.for_deletion(key) for key in to_delete]
