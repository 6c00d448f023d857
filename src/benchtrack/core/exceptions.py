"""Custom exceptions for benchtrack.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchtrackError for easy catching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchtrack.core.types import SeriesKey


class BenchtrackError(Exception):
    """Base exception for all benchtrack errors.

    Example:
        >>> try:
        ...     store.history("cargo", "fibonacci")
        ... except BenchtrackError as e:
        ...     print(f"benchtrack error: {e}")
    """


class ValidationError(BenchtrackError):
    """Raised when a run payload is malformed.

    The whole run is rejected; nothing from it is stored.

    Attributes:
        field: Dotted path of the offending field (e.g. "benches[2].value").
        entry: Name of the offending benchmark entry, if known.

    Example:
        >>> raise ValidationError("value must be finite", field="benches[0].value", entry="fib")
    """

    def __init__(self, message: str, *, field: str | None = None, entry: str | None = None) -> None:
        self.field = field
        self.entry = entry
        location = ""
        if field is not None:
            location = f"{field}: "
        if entry is not None:
            message = f"{message} (entry '{entry}')"
        super().__init__(f"{location}{message}")


class HistoryError(BenchtrackError):
    """Base class for append rejections raised by the history store.

    Attributes:
        key: Series the rejected record was destined for.
        commit_id: Commit identifier of the rejected record.
    """

    def __init__(self, message: str, *, key: SeriesKey, commit_id: str) -> None:
        self.key = key
        self.commit_id = commit_id
        super().__init__(message)


class DuplicateCommitError(HistoryError):
    """Raised when a series already holds a record for the commit.

    Example:
        >>> raise DuplicateCommitError("already recorded", key=key, commit_id="59b6d26")
    """


class OutOfOrderError(HistoryError):
    """Raised when a run timestamp is earlier than the series' last one."""


class ConfigurationError(BenchtrackError):
    """Raised when configuration is invalid or missing.

    A detection policy that cannot be resolved or that carries invalid
    values aborts the whole evaluation call.

    Example:
        >>> raise ConfigurationError("Policy threshold must be >= 0, got -0.1")
    """


class StorageError(BenchtrackError):
    """Raised when the durable storage backend cannot be read or written."""
