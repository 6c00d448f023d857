"""Benchmark history module for benchtrack.

This module provides the append-only store that keeps one ordered
series per (tool, benchmark name), backed by durable storage.

Example:
    >>> from benchtrack.history import HistoryStore, JSONFileStore
    >>>
    >>> store = await HistoryStore.open(JSONFileStore("dev/bench/data.js"))
    >>> result = await store.append_run(run)
    >>> store.history("cargo", "fibonacci")[-1].value
    540592.0
"""

from __future__ import annotations

from benchtrack.history.models import AppendResult, HistoryRecord, RunAppendResult
from benchtrack.history.storage import JSONFileStore, MemoryStore, StorageProtocol
from benchtrack.history.store import HistoryStore

__all__ = [
    "AppendResult",
    "HistoryRecord",
    "HistoryStore",
    "JSONFileStore",
    "MemoryStore",
    "RunAppendResult",
    "StorageProtocol",
]
