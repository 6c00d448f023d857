"""Append-only history store.

This module provides HistoryStore, the source of truth for benchmark
series. Each series, keyed by (tool, benchmark name), is an ordered,
append-only sequence of records backed by a durable storage backend.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from benchtrack.core.exceptions import DuplicateCommitError, HistoryError, OutOfOrderError, ValidationError
from benchtrack.core.types import SeriesKey
from benchtrack.history.models import AppendResult, HistoryRecord, RunAppendResult
from benchtrack.history.storage import MemoryStore, StorageProtocol

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from benchtrack.core.types import BenchmarkEntry, Commit, Run

logger = logging.getLogger(__name__)


class HistoryStore:
    """Append-only, per-series history of benchmark records.

    Appends to the same series are serialized by a per-series lock;
    appends to different series proceed independently. Each series is
    held as an immutable tuple that is replaced on append, so readers
    always see a complete snapshot without taking a lock.

    Example:
        >>> store = await HistoryStore.open(JSONFileStore("dev/bench/data.js"))
        >>> result = await store.append("cargo", entry, commit, 1590080218824)
        >>> store.history("cargo", "fibonacci")[-1] == result.record
        True
    """

    def __init__(self, storage: StorageProtocol | None = None) -> None:
        """Initialize an empty store over a storage backend.

        Use :meth:`open` to also load what the backend already holds.

        Args:
            storage: Durable backend (default: MemoryStore).
        """
        self._storage: StorageProtocol = storage if storage is not None else MemoryStore()
        self._series: dict[SeriesKey, tuple[HistoryRecord, ...]] = {}
        self._commit_ids: dict[SeriesKey, set[str]] = {}
        self._locks: dict[SeriesKey, asyncio.Lock] = {}

    @classmethod
    async def open(cls, storage: StorageProtocol | None = None) -> HistoryStore:
        """Create a store and load its history from durable storage.

        Args:
            storage: Durable backend (default: MemoryStore).

        Returns:
            A store holding every valid persisted record.

        Raises:
            StorageError: If the backend cannot be read.
        """
        store = cls(storage)
        await store.reload()
        return store

    @property
    def storage(self) -> StorageProtocol:
        return self._storage

    async def reload(self) -> None:
        """Rebuild the in-memory series from the storage backend.

        Persisted records that would violate series invariants (duplicate
        commit, timestamp going backwards) are skipped with a warning.
        """
        records = await self._storage.load()

        series: dict[SeriesKey, list[HistoryRecord]] = {}
        commit_ids: dict[SeriesKey, set[str]] = {}
        skipped = 0
        for record in records:
            key = record.key
            existing = series.setdefault(key, [])
            ids = commit_ids.setdefault(key, set())
            try:
                _check_append(key, record, existing, ids)
            except HistoryError as e:
                logger.warning(f"Skipping persisted record: {e}")
                skipped += 1
                continue
            existing.append(record)
            ids.add(record.commit_id)

        self._series = {key: tuple(values) for key, values in series.items() if values}
        self._commit_ids = {key: ids for key, ids in commit_ids.items() if ids}
        logger.info(f"Loaded {len(records) - skipped} records in {len(self._series)} series ({skipped} skipped)")

    def _lock_for(self, key: SeriesKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks.setdefault(key, asyncio.Lock())
        return lock

    async def append(
        self,
        tool: str,
        entry: BenchmarkEntry,
        commit: Commit,
        run_timestamp: int,
    ) -> AppendResult:
        """Append a measurement to its series.

        Returns only after the storage backend has durably persisted the
        record. A rejected or failed append leaves the series unchanged.

        Args:
            tool: Benchmark harness name.
            entry: The validated measurement.
            commit: Commit the measurement was taken on.
            run_timestamp: Run timestamp in epoch milliseconds.

        Returns:
            The appended record and the series snapshot ending with it.

        Raises:
            ValidationError: If the tool name is empty.
            DuplicateCommitError: If the series already holds this commit.
            OutOfOrderError: If run_timestamp precedes the series' last record.
            StorageError: If the durable write fails.
        """
        if not tool or not tool.strip():
            raise ValidationError("must be a non-empty string", field="tool", entry=entry.name)

        record = HistoryRecord(tool=tool, commit=commit, entry=entry, run_timestamp=run_timestamp)
        key = record.key

        async with self._lock_for(key):
            series = self._series.get(key, ())
            ids = self._commit_ids.get(key, set())
            _check_append(key, record, series, ids)

            await self._storage.append(record)

            updated = (*series, record)
            self._series[key] = updated
            self._commit_ids[key] = ids | {record.commit_id}

        logger.debug(f"Appended {key} @ {record.commit_id} (value={entry.value} {entry.unit})")
        return AppendResult(record=record, series=updated)

    async def append_run(self, run: Run) -> RunAppendResult:
        """Append every entry of a run to its own series.

        Duplicate and out-of-order rejections are collected per entry and
        never stop the remaining entries. Storage failures propagate.

        Args:
            run: A normalized run.

        Returns:
            The successful appends and the per-entry rejections.
        """
        result = RunAppendResult()
        logger.debug(f"Appending {len(run)} entries of {run.tool} @ {run.commit.id}")
        for entry in run:
            try:
                appended = await self.append(run.tool, entry, run.commit, run.date)
            except HistoryError as e:
                logger.warning(f"Rejected {run.tool}/{entry.name} @ {run.commit.id}: {e}")
                result.rejected[entry.name] = e
                continue
            result.appended.append(appended)
        return result

    def history(self, tool: str, name: str) -> tuple[HistoryRecord, ...]:
        """Get the records of a series in insertion order.

        Args:
            tool: Benchmark harness name.
            name: Benchmark name.

        Returns:
            Immutable snapshot of the series; empty if it does not exist.
        """
        return self._series.get(SeriesKey(tool, name), ())

    def iter_history(self, tool: str, name: str) -> Iterator[HistoryRecord]:
        """Lazily iterate over a snapshot of a series taken at call time."""
        yield from self.history(tool, name)

    def latest(self, tool: str, name: str) -> HistoryRecord | None:
        """Get the most recent record of a series, or None if it is empty."""
        series = self.history(tool, name)
        return series[-1] if series else None

    def series_keys(self) -> frozenset[SeriesKey]:
        """Get the keys of every non-empty series."""
        return frozenset(self._series)

    def __len__(self) -> int:
        """Return the total number of records across all series."""
        return sum(len(series) for series in self._series.values())


def _check_append(
    key: SeriesKey,
    record: HistoryRecord,
    series: Sequence[HistoryRecord],
    commit_ids: set[str],
) -> None:
    """Raise if appending ``record`` would break the series invariants."""
    if record.commit_id in commit_ids:
        raise DuplicateCommitError(
            f"Series {key} already has a record for commit {record.commit_id}",
            key=key,
            commit_id=record.commit_id,
        )
    if series and record.run_timestamp < series[-1].run_timestamp:
        raise OutOfOrderError(
            f"Run timestamp {record.run_timestamp} for {key} precedes last recorded {series[-1].run_timestamp}",
            key=key,
            commit_id=record.commit_id,
        )
