"""Storage backends for benchmark history.

This module provides the storage protocol and implementations for
durably persisting history records.

Example:
    >>> from benchtrack.history.storage import JSONFileStore
    >>> storage = JSONFileStore("dev/bench/data.js")
    >>> records = await storage.load()
"""

from __future__ import annotations

from benchtrack.history.storage.base import StorageProtocol
from benchtrack.history.storage.json_store import JSONFileStore
from benchtrack.history.storage.memory import MemoryStore

__all__ = [
    "JSONFileStore",
    "MemoryStore",
    "StorageProtocol",
]
