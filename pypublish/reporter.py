"""Per-file report of publish outcomes."""

from collections import Counter
from collections.abc import Iterable
from typing import Optional

from .models import FileRecord, FileState
from .output import OutputFormatter

STATE_STYLES = {
    FileState.CREATE: "green",
    FileState.UPDATE: "yellow",
    FileState.DELETE: "red",
    FileState.SKIP: "dim",
    FileState.CACHE_HIT: "dim",
    FileState.SIMULATE: "cyan",
}

STATE_LABELS = {
    FileState.CREATE: "Created",
    FileState.UPDATE: "Updated",
    FileState.DELETE: "Deleted",
    FileState.SKIP: "Skipped",
    FileState.CACHE_HIT: "Cached",
    FileState.SIMULATE: "Simulated",
}


class PublishReporter:
    """Prints one line per published file and keeps per-state counters."""

    def __init__(
        self,
        out: Optional[OutputFormatter] = None,
        states: Optional[Iterable[FileState]] = None,
    ):
        """Initialize the reporter.

        Args:
            out: Output formatter
            states: Only print records in these states (all if None)
        """
        self.out = out or OutputFormatter()
        self.states = set(states) if states is not None else None
        self.counts: Counter = Counter()

    def report(self, record: FileRecord) -> FileRecord:
        """Count a record and print it if its state is selected."""
        if record.state is None:
            return record

        self.counts[record.state] += 1
        if self.states is None or record.state in self.states:
            style = STATE_STYLES[record.state]
            self.out.print(
                f"[{style}]\\[{record.state.value}][/{style}] {record.key}"
            )
        return record

    def summary(self) -> list[tuple[str, int]]:
        """Return (label, count) rows for every state seen."""
        return [
            (STATE_LABELS[state], self.counts[state])
            for state in FileState
            if self.counts[state]
        ]

    def print_summary(self, title: str = "Publish summary") -> None:
        rows = self.summary()
        if rows:
            self.out.print_summary(title, rows)
        else:
            self.out.info("No files processed")
