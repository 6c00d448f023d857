"""In-memory storage implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchtrack.history.models import HistoryRecord


class MemoryStore:
    """In-memory storage for history records.

    Simple list-based backend. Data is lost when the process exits.

    Example:
        >>> store = await HistoryStore.open(MemoryStore())
    """

    def __init__(self, records: list[HistoryRecord] | None = None) -> None:
        """Initialize the memory store.

        Args:
            records: Records to seed the store with.
        """
        self._records: list[HistoryRecord] = list(records or [])

    async def load(self) -> list[HistoryRecord]:
        """Return a copy of the stored records."""
        return list(self._records)

    async def append(self, record: HistoryRecord) -> None:
        """Store a record."""
        self._records.append(record)

    def __len__(self) -> int:
        """Return the number of stored records."""
        return len(self._records)
