"""Base protocol for history storage backends.

This module defines the StorageProtocol that all storage backends must implement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from benchtrack.history.models import HistoryRecord


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for durable history storage backends.

    Storage is append-only: records are never updated or deleted.

    Example:
        >>> class MyStorage:
        ...     async def load(self) -> list[HistoryRecord]: ...
        ...     async def append(self, record: HistoryRecord) -> None: ...
        >>> isinstance(MyStorage(), StorageProtocol)
        True
    """

    async def load(self) -> list[HistoryRecord]:
        """Load every persisted record.

        Returns:
            Records in persisted (insertion) order.

        Raises:
            StorageError: If the underlying storage cannot be read.
        """
        ...

    async def append(self, record: HistoryRecord) -> None:
        """Durably persist a record.

        Must not return before the record is durable.

        Args:
            record: The record to persist.

        Raises:
            StorageError: If the write fails. Nothing is persisted in that case.
        """
        ...
