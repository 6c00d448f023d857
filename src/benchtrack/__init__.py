"""benchtrack: Benchmark history ingestion and regression detection for continuous benchmarking."""

from __future__ import annotations

from benchtrack.core.exceptions import (
    BenchtrackError,
    ConfigurationError,
    DuplicateCommitError,
    OutOfOrderError,
    StorageError,
    ValidationError,
)
from benchtrack.core.normalize import normalize
from benchtrack.core.types import BenchmarkEntry, Commit, Person, Run, SeriesKey
from benchtrack.history import HistoryRecord, HistoryStore, JSONFileStore, MemoryStore
from benchtrack.pipeline import IngestResult, ingest
from benchtrack.regression import (
    AlertEmitter,
    DetectionPolicy,
    DetectionResult,
    Direction,
    PolicySet,
    RegressionAlert,
    Verdict,
    detect,
    evaluate,
)

__version__ = "0.3.0"
__all__ = [
    # Data model
    "BenchmarkEntry",
    "Commit",
    "Person",
    "Run",
    "SeriesKey",
    "normalize",
    # History
    "HistoryRecord",
    "HistoryStore",
    "JSONFileStore",
    "MemoryStore",
    # Detection
    "AlertEmitter",
    "DetectionPolicy",
    "DetectionResult",
    "Direction",
    "PolicySet",
    "RegressionAlert",
    "Verdict",
    "detect",
    "evaluate",
    # Pipeline
    "IngestResult",
    "ingest",
    # Errors
    "BenchtrackError",
    "ConfigurationError",
    "DuplicateCommitError",
    "OutOfOrderError",
    "StorageError",
    "ValidationError",
    # Version
    "__version__",
]
