"""Run payload normalization.

This module validates a raw ingestion payload and turns it into an
immutable Run. A run is the atomic validation boundary: any malformed
field rejects the whole payload, nothing is partially accepted.

Example:
    >>> run = normalize({
    ...     "commit": {"id": "59b6d26", "timestamp": "2020-05-21T11:28:04-05:00"},
    ...     "date": 1590080218824,
    ...     "tool": "cargo",
    ...     "benches": [{"name": "fibonacci", "value": 540592, "range": "± 7852", "unit": "ns/iter"}],
    ... })
    >>> run.benches[0].range
    7852.0
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from benchtrack.core.exceptions import ValidationError
from benchtrack.core.types import BenchmarkEntry, Commit, Person, Run

# Prefixes harnesses put in front of the spread ("± 744", "+/- 744", "±1.2%")
_RANGE_PREFIXES = ("±", "+/-", "+-")


def parse_range(raw: Any, value: float = 0.0, *, field: str = "range", entry: str | None = None) -> float:
    """Parse a reported uncertainty into a non-negative magnitude.

    Accepts numbers and strings like "± 744", "±744", "+/- 744" or "744".
    A trailing percent sign makes the spread relative to ``value``
    (benchmark.js reports "±0.38%").

    Args:
        raw: Raw range as found in the payload. None means no spread.
        value: Measured value, used for relative (percent) spreads.
        field: Field path used in error messages.
        entry: Entry name used in error messages.

    Returns:
        The spread as an absolute magnitude.

    Raises:
        ValidationError: If the range cannot be parsed or is negative/non-finite.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, bool):
        raise ValidationError("range must be a number or a '± N' string", field=field, entry=entry)
    if isinstance(raw, (int, float)):
        magnitude = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        for prefix in _RANGE_PREFIXES:
            if text.startswith(prefix):
                text = text[len(prefix) :].strip()
                break
        relative = text.endswith("%")
        if relative:
            text = text[:-1].strip()
        try:
            magnitude = float(text)
        except ValueError:
            raise ValidationError(f"cannot parse range '{raw}'", field=field, entry=entry) from None
        if relative:
            magnitude = value * magnitude / 100
    else:
        raise ValidationError("range must be a number or a '± N' string", field=field, entry=entry)

    if not math.isfinite(magnitude):
        raise ValidationError(f"range must be finite, got {raw!r}", field=field, entry=entry)
    if magnitude < 0:
        raise ValidationError(f"range must be >= 0, got {raw!r}", field=field, entry=entry)
    return magnitude


def _require_mapping(raw: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"expected an object, got {type(raw).__name__}", field=field)
    return raw


def _encodable(value: str, field: str, entry: str | None = None) -> str:
    """Reject text that cannot be persisted as UTF-8 (lone surrogates)."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("must be valid UTF-8 text", field=field, entry=entry) from None
    return value


def _require_str(data: Mapping[str, Any], key: str, field: str, *, entry: str | None = None) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("must be a non-empty string", field=field, entry=entry)
    return _encodable(value, field, entry)


def _optional_str(data: Mapping[str, Any], key: str, field: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("must be a string", field=field)
    return _encodable(value, field)


def _parse_value(raw: Any, field: str, entry: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(f"must be a number, got {raw!r}", field=field, entry=entry)
    value = float(raw)
    if not math.isfinite(value):
        raise ValidationError(f"must be finite, got {raw!r}", field=field, entry=entry)
    if value < 0:
        raise ValidationError(f"must be >= 0, got {raw!r}", field=field, entry=entry)
    return value


def _parse_timestamp(raw: Any, field: str) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("must be a non-empty ISO-8601 timestamp", field=field)
    text = raw.strip()
    # fromisoformat only learned the "Z" suffix in Python 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"invalid ISO-8601 timestamp '{raw}'", field=field) from None


def _parse_person(raw: Any, field: str) -> Person:
    if raw is None:
        return Person()
    data = _require_mapping(raw, field)
    return Person(
        name=_optional_str(data, "name", f"{field}.name") or "",
        email=_optional_str(data, "email", f"{field}.email") or "",
        username=_optional_str(data, "username", f"{field}.username"),
    )


def _parse_commit(raw: Any) -> Commit:
    data = _require_mapping(raw, "commit")
    distinct = data.get("distinct")
    if distinct is not None and not isinstance(distinct, bool):
        raise ValidationError("must be a boolean", field="commit.distinct")

    return Commit(
        id=_require_str(data, "id", "commit.id").strip(),
        message=_optional_str(data, "message", "commit.message") or "",
        timestamp=_parse_timestamp(data.get("timestamp"), "commit.timestamp"),
        author=_parse_person(data.get("author"), "commit.author"),
        committer=_parse_person(data.get("committer"), "commit.committer"),
        distinct=distinct,
        tree_id=_optional_str(data, "tree_id", "commit.tree_id"),
        url=_optional_str(data, "url", "commit.url"),
    )


def _parse_run_timestamp(raw: Any, commit: Commit) -> int:
    if raw is None:
        # Fall back to the commit time when the caller did not stamp the run
        return int(commit.timestamp.timestamp() * 1000)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValidationError(f"must be an integer epoch-millis timestamp, got {raw!r}", field="date")
    if isinstance(raw, float) and not (math.isfinite(raw) and raw.is_integer()):
        raise ValidationError(f"must be an integer epoch-millis timestamp, got {raw!r}", field="date")
    if raw < 0:
        raise ValidationError(f"must be >= 0, got {raw!r}", field="date")
    return int(raw)


def _parse_bench(raw: Any, index: int) -> BenchmarkEntry:
    field = f"benches[{index}]"
    data = _require_mapping(raw, field)
    name = _require_str(data, "name", f"{field}.name")
    value = _parse_value(data.get("value"), f"{field}.value", name)
    spread = parse_range(data.get("range"), value, field=f"{field}.range", entry=name)
    unit = _require_str(data, "unit", f"{field}.unit", entry=name)
    extra = data.get("extra")
    if extra is not None and not isinstance(extra, str):
        raise ValidationError("must be a string", field=f"{field}.extra", entry=name)
    if extra is not None:
        _encodable(extra, f"{field}.extra", name)

    return BenchmarkEntry(name=name, value=value, range=spread, unit=unit, extra=extra)


def normalize(raw: Mapping[str, Any] | Run) -> Run:
    """Validate a raw run payload and canonicalize it into a Run.

    Args:
        raw: Ingestion payload (see the package docs for its shape), or an
            already normalized Run, which is returned unchanged.

    Returns:
        The immutable, validated Run.

    Raises:
        ValidationError: If any field is missing or malformed. The error
            names the offending field path and benchmark entry.
    """
    if isinstance(raw, Run):
        return raw

    data = _require_mapping(raw, "run")
    tool = _require_str(data, "tool", "tool").strip()
    commit = _parse_commit(data.get("commit"))
    date = _parse_run_timestamp(data.get("date"), commit)

    raw_benches = data.get("benches")
    if not isinstance(raw_benches, list) or not raw_benches:
        raise ValidationError("must be a non-empty list", field="benches")

    benches: list[BenchmarkEntry] = []
    seen: set[str] = set()
    for index, raw_bench in enumerate(raw_benches):
        bench = _parse_bench(raw_bench, index)
        if bench.name in seen:
            raise ValidationError("duplicate benchmark name in run", field=f"benches[{index}].name", entry=bench.name)
        seen.add(bench.name)
        benches.append(bench)

    try:
        return Run(tool=tool, commit=commit, date=date, benches=tuple(benches))
    except PydanticValidationError as e:
        raise ValidationError(str(e), field="run") from e
