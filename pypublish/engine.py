"""Publish engine: runs files through the whole pipeline."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from .cache import RemoteStateCache
from .compress import GzipOptions, gzip_record
from .exceptions import CacheIOError, PublishError
from .models import FileRecord, FileState
from .publisher import Publisher
from .reconciler import BucketReconciler
from .reporter import PublishReporter

logger = logging.getLogger(__name__)


@dataclass
class PublishFailure:
    """A file that could not be published."""

    key: str
    """Remote key of the file"""

    error: PublishError
    """Error raised while publishing it"""


@dataclass
class PublishResult:
    """Outcome of a publish run."""

    records: list[FileRecord] = field(default_factory=list)
    """Every record passed on, deletions included, in processing order"""

    failures: list[PublishFailure] = field(default_factory=list)
    """Files that failed"""

    def count(self, state: FileState) -> int:
        """Number of records that ended in a state."""
        return sum(1 for record in self.records if record.state == state)

    @property
    def stats(self) -> dict:
        """Per-state counters plus the number of failures."""
        stats = {state.value: self.count(state) for state in FileState}
        stats["errors"] = len(self.failures)
        return stats

    @property
    def ok(self) -> bool:
        return not self.failures


class PublishEngine:
    """Publishes a stream of files, then reconciles the bucket.

    Files are processed one at a time: gzip pre-pass (optional), publish
    decision, cache update, report. After the last file the reconciler
    (optional) deletes stale remote objects and the cache is flushed.
    """

    def __init__(
        self,
        publisher: Publisher,
        cache: Optional[RemoteStateCache] = None,
        reconciler: Optional[BucketReconciler] = None,
        gzip_options: Optional[GzipOptions] = None,
        reporter: Optional[PublishReporter] = None,
        stop_on_error: bool = False,
    ):
        """Initialize the engine.

        Args:
            publisher: Per-file publisher
            cache: Cache to update (defaults to the publisher's cache)
            reconciler: Bucket reconciler, None to keep stale objects
            gzip_options: Compress files before publishing when set
            reporter: Reporter notified of every classified record
            stop_on_error: Abort the run on the first failed file
        """
        self.publisher = publisher
        self.cache = cache if cache is not None else publisher.cache
        self.reconciler = reconciler
        self.gzip_options = gzip_options
        self.reporter = reporter
        self.stop_on_error = stop_on_error

    def process(self, record: FileRecord) -> FileRecord:
        """Run a single record through the pipeline.

        The record's key is marked as published before anything can fail,
        so its remote object is never reconciled away. Records without
        content and records marked for deletion upstream are passed on
        without being compressed or uploaded.

        Args:
            record: File to publish

        Returns:
            The classified record

        Raises:
            PublishError: If publishing the file fails
        """
        if (
            self.gzip_options is not None
            and not record.is_empty
            and record.state != FileState.DELETE
        ):
            try:
                record = gzip_record(record, self.gzip_options) or record
            except PublishError:
                if self.reconciler is not None:
                    self.reconciler.observe(record)
                raise

        if self.reconciler is not None:
            self.reconciler.observe(record)

        record = self.publisher.publish(record)
        self._record_in_cache(record)
        if self.reporter is not None:
            self.reporter.report(record)
        return record

    def run(self, records: Iterable[FileRecord]) -> PublishResult:
        """Publish all records and reconcile the bucket.

        Args:
            records: Files to publish

        Returns:
            PublishResult with classified records and failures

        Raises:
            PublishError: On the first failure if stop_on_error is set, or
                if reconciliation fails
        """
        result = PublishResult()
        mutations_at_start = self.cache.mutations

        try:
            for record in records:
                try:
                    processed = self.process(record)
                except PublishError as e:
                    if self.stop_on_error:
                        raise
                    logger.warning(f"Failed to publish {record.key}: {e}")
                    result.failures.append(PublishFailure(key=record.key, error=e))
                    continue

                result.records.append(processed)

            if self.reconciler is not None:
                result.records.extend(self._reconcile())
        except BaseException:
            try:
                self._save_cache(mutations_at_start)
            except CacheIOError as e:
                logger.error(f"Failed to save cache after an aborted run: {e}")
            raise

        self._save_cache(mutations_at_start)
        logger.debug(f"Publish run finished: {result.stats}")
        return result

    def _record_in_cache(self, record: FileRecord) -> None:
        """Update the cache, tolerating a failed opportunistic flush."""
        try:
            self.cache.record(record)
        except CacheIOError as e:
            # The entry is kept in memory, the final flush retries the write
            logger.warning(f"Could not save cache after {record.key}: {e}")

    def _save_cache(self, mutations_at_start: int) -> None:
        """Flush the cache unless the run left it untouched.

        Raises:
            CacheIOError: If the cache file cannot be written
        """
        if self.cache.mutations == mutations_at_start:
            logger.debug("Cache unchanged, not rewriting it")
            return
        self.cache.flush()

    def _reconcile(self) -> list[FileRecord]:
        """Delete stale remote objects and record the deletions."""
        if self.reconciler is None:
            return []

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task("Reconciling remote bucket...", total=None)
            deletions = self.reconciler.reconcile()
            progress.update(
                task, description=f"Found {len(deletions)} stale remote object(s)"
            )

        for record in deletions:
            if not self.reconciler.dry_run:
                self._record_in_cache(record)
            if self.reporter is not None:
                self.reporter.report(record)
        return deletions
