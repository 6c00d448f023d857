"""Models for benchmark history.

This module provides the immutable record stored in a series and the
results returned by the history store's append operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from benchtrack.core.types import SeriesKey

if TYPE_CHECKING:
    from benchtrack.core.exceptions import HistoryError
    from benchtrack.core.types import BenchmarkEntry, Commit


@dataclass(frozen=True)
class HistoryRecord:
    """One point of a benchmark series.

    Attributes:
        tool: Benchmark harness that produced the entry.
        commit: Commit the measurement was taken on.
        entry: The measurement itself.
        run_timestamp: Run timestamp in epoch milliseconds.

    Example:
        >>> record = HistoryRecord(tool="cargo", commit=commit, entry=entry, run_timestamp=1590080218824)
        >>> str(record.key)
        'cargo/fibonacci'
    """

    tool: str
    commit: Commit
    entry: BenchmarkEntry
    run_timestamp: int

    @property
    def key(self) -> SeriesKey:
        """Series this record belongs to."""
        return SeriesKey(self.tool, self.entry.name)

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def value(self) -> float:
        return self.entry.value

    @property
    def commit_id(self) -> str:
        return self.commit.id


@dataclass(frozen=True)
class AppendResult:
    """Outcome of a successful append.

    Attributes:
        record: The record that was appended.
        series: Snapshot of the series, ending with ``record``.
    """

    record: HistoryRecord
    series: tuple[HistoryRecord, ...]

    @property
    def key(self) -> SeriesKey:
        return self.record.key


@dataclass
class RunAppendResult:
    """Per-entry outcome of appending a whole run.

    Attributes:
        appended: Successful appends, in run order.
        rejected: Entry name mapped to the error that rejected it.
    """

    appended: list[AppendResult] = field(default_factory=list)
    rejected: dict[str, HistoryError] = field(default_factory=dict)

    @property
    def records(self) -> list[HistoryRecord]:
        """Records appended by this run, in run order."""
        return [result.record for result in self.appended]

    @property
    def has_rejections(self) -> bool:
        return len(self.rejected) > 0
