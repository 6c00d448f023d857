"""Core module for benchtrack.

This module contains the fundamental types, normalization, exceptions,
and configuration used throughout the library.
"""

from __future__ import annotations

from benchtrack.core.config import Settings
from benchtrack.core.exceptions import (
    BenchtrackError,
    ConfigurationError,
    DuplicateCommitError,
    HistoryError,
    OutOfOrderError,
    StorageError,
    ValidationError,
)
from benchtrack.core.normalize import normalize, parse_range
from benchtrack.core.types import (
    BenchmarkEntry,
    Commit,
    Person,
    Run,
    SeriesKey,
    format_range,
)

__all__ = [
    "BenchmarkEntry",
    "BenchtrackError",
    "Commit",
    "ConfigurationError",
    "DuplicateCommitError",
    "HistoryError",
    "OutOfOrderError",
    "Person",
    "Run",
    "SeriesKey",
    "Settings",
    "StorageError",
    "ValidationError",
    "format_range",
    "normalize",
    "parse_range",
]
