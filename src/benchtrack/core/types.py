"""Core type definitions for benchtrack.

This module defines the immutable data structures a run payload is
normalized into: commits, benchmark entries, runs, and the composite
key that identifies a benchmark series.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterator


def format_number(value: float) -> int | float:
    """Return integral floats as int so the persisted layout keeps `26579`, not `26579.0`."""
    if math.isfinite(value) and float(value).is_integer():
        return int(value)
    return value


def format_range(value: float) -> str:
    """Render a numeric spread in the dashboard display form.

    Example:
        >>> format_range(744.0)
        '± 744'
        >>> format_range(0.25)
        '± 0.25'
    """
    return f"± {format_number(value)}"


@dataclass(frozen=True, order=True)
class SeriesKey:
    """Composite key of a benchmark series: (tool, benchmark name).

    Example:
        >>> key = SeriesKey("cargo", "fibonacci")
        >>> str(key)
        'cargo/fibonacci'
    """

    tool: str
    name: str

    def __str__(self) -> str:
        return f"{self.tool}/{self.name}"

    @classmethod
    def parse(cls, text: str) -> SeriesKey:
        """Parse a `tool/name` string; the name may itself contain slashes."""
        tool, sep, name = text.partition("/")
        if not sep or not tool or not name:
            raise ValueError(f"Invalid series key '{text}', expected 'tool/name'")
        return cls(tool, name)


class Person(BaseModel):
    """Commit author or committer.

    Attributes:
        name: Display name.
        email: Contact address.
        username: Optional account name on the hosting service.
    """

    model_config = {"frozen": True}

    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Contact address")
    username: str | None = Field(default=None, description="Optional account name")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"email": self.email, "name": self.name}
        if self.username is not None:
            data["username"] = self.username
        return data


class Commit(BaseModel):
    """The source state a run was built from.

    Supplied by the caller and never derived by the core. Optional fields
    mirror what CI integrations already put in the persisted history and
    are passed through untouched.

    Attributes:
        id: Stable commit identifier (hash). Idempotency key of a series.
        message: Commit message.
        timestamp: Commit timestamp.
        author: Commit author.
        committer: Commit committer.
        distinct: Whether the commit is distinct within its push.
        tree_id: Tree hash of the commit.
        url: Link to the commit on the hosting service.

    Example:
        >>> commit = Commit(
        ...     id="59b6d26e0be8a2e056d6826b9ce39366c5cc4fdc",
        ...     message="Update bench.yml",
        ...     timestamp=datetime.fromisoformat("2020-05-21T11:28:04-05:00"),
        ... )
    """

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1, description="Commit identifier")
    message: str = Field(default="", description="Commit message")
    timestamp: datetime = Field(..., description="Commit timestamp")
    author: Person = Field(default_factory=Person, description="Commit author")
    committer: Person = Field(default_factory=Person, description="Commit committer")
    distinct: bool | None = Field(default=None, description="Distinct within its push")
    tree_id: str | None = Field(default=None, description="Tree hash")
    url: str | None = Field(default=None, description="Link to the commit")

    def to_dict(self) -> dict[str, Any]:
        """Convert the commit to its persisted form (keys in wire order)."""
        data: dict[str, Any] = {
            "author": self.author.to_dict(),
            "committer": self.committer.to_dict(),
        }
        if self.distinct is not None:
            data["distinct"] = self.distinct
        data["id"] = self.id
        data["message"] = self.message
        data["timestamp"] = self.timestamp.isoformat()
        if self.tree_id is not None:
            data["tree_id"] = self.tree_id
        if self.url is not None:
            data["url"] = self.url
        return data


class BenchmarkEntry(BaseModel):
    """One measurement within a run.

    Attributes:
        name: Benchmark name, unique within a run.
        value: Measured value (finite, non-negative).
        range: Numeric uncertainty around the value (finite, non-negative).
        unit: Unit string, e.g. "ns/iter".
        extra: Optional free-form detail emitted by the harness.

    Example:
        >>> entry = BenchmarkEntry(name="fibonacci", value=540592, range=7852, unit="ns/iter")
    """

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Benchmark name")
    value: float = Field(..., ge=0, allow_inf_nan=False, description="Measured value")
    range: float = Field(default=0.0, ge=0, allow_inf_nan=False, description="Uncertainty magnitude")
    unit: str = Field(..., min_length=1, description="Unit of the value")
    extra: str | None = Field(default=None, description="Optional harness detail")

    def to_dict(self) -> dict[str, Any]:
        """Convert the entry to its persisted form."""
        data: dict[str, Any] = {
            "name": self.name,
            "value": format_number(self.value),
            "range": format_range(self.range),
            "unit": self.unit,
        }
        if self.extra is not None:
            data["extra"] = self.extra
        return data


class Run(BaseModel):
    """One CI execution: a batch of measurements tied to one commit.

    A run is the atomic validation unit; its entries are stored
    individually, one per series.

    Attributes:
        tool: Benchmark harness that produced the entries.
        commit: Commit the run was built from.
        date: Run timestamp in epoch milliseconds.
        benches: Ordered benchmark entries.
    """

    model_config = {"frozen": True}

    tool: str = Field(..., min_length=1, description="Benchmark harness name")
    commit: Commit = Field(..., description="Source commit")
    date: int = Field(..., description="Run timestamp (epoch milliseconds)")
    benches: tuple[BenchmarkEntry, ...] = Field(..., min_length=1, description="Benchmark entries")

    def __len__(self) -> int:
        """Return the number of entries in the run."""
        return len(self.benches)

    def __iter__(self) -> Iterator[BenchmarkEntry]:  # type: ignore[override]
        """Iterate over entries in run order."""
        return iter(self.benches)

    def key_for(self, entry: BenchmarkEntry) -> SeriesKey:
        """Series key an entry of this run belongs to."""
        return SeriesKey(self.tool, entry.name)

    def to_dict(self) -> dict[str, Any]:
        """Convert the run to the ingestion/persisted layout."""
        return {
            "commit": self.commit.to_dict(),
            "date": self.date,
            "tool": self.tool,
            "benches": [entry.to_dict() for entry in self.benches],
        }
