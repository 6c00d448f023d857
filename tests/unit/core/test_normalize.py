"""Tests for run payload normalization."""

from __future__ import annotations

import copy
import math
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from benchtrack.core.exceptions import ValidationError
from benchtrack.core.normalize import normalize, parse_range
from benchtrack.core.types import Run

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def raw_run() -> dict[str, Any]:
    """A valid payload in the shape CI integrations send."""
    return {
        "commit": {
            "author": {
                "email": "31802960+christianpoveda@users.noreply.github.com",
                "name": "Christian Poveda",
                "username": "christianpoveda",
            },
            "committer": {"email": "noreply@github.com", "name": "GitHub", "username": "web-flow"},
            "distinct": True,
            "id": "59b6d26e0be8a2e056d6826b9ce39366c5cc4fdc",
            "message": "Update bench.yml",
            "timestamp": "2020-05-21T11:28:04-05:00",
            "tree_id": "b4a645c0353367978763b71f809696b9391aaf4f",
            "url": "https://github.com/christianpoveda/pijama/commit/59b6d26e0be8a2e056d6826b9ce39366c5cc4fdc",
        },
        "date": 1590080218824,
        "tool": "cargo",
        "benches": [
            {"name": "arithmetic", "value": 26579, "range": "± 744", "unit": "ns/iter"},
            {"name": "fibonacci", "value": 540592, "range": "± 7852", "unit": "ns/iter"},
        ],
    }


# ============================================================================
# normalize() Tests
# ============================================================================


class TestNormalizeValid:
    """Tests for normalizing well-formed payloads."""

    def test_returns_run(self, raw_run: dict[str, Any]) -> None:
        """A valid payload becomes a Run with entries in payload order."""
        run = normalize(raw_run)

        assert isinstance(run, Run)
        assert run.tool == "cargo"
        assert run.date == 1590080218824
        assert [entry.name for entry in run.benches] == ["arithmetic", "fibonacci"]

    def test_parses_commit(self, raw_run: dict[str, Any]) -> None:
        """Commit fields are carried over and the timestamp is parsed."""
        commit = normalize(raw_run).commit

        assert commit.id == "59b6d26e0be8a2e056d6826b9ce39366c5cc4fdc"
        assert commit.message == "Update bench.yml"
        assert commit.author.name == "Christian Poveda"
        assert commit.committer.username == "web-flow"
        assert commit.timestamp == datetime(2020, 5, 21, 11, 28, 4, tzinfo=timezone(timedelta(hours=-5)))
        assert commit.distinct is True
        assert commit.tree_id == "b4a645c0353367978763b71f809696b9391aaf4f"

    def test_range_is_numeric(self, raw_run: dict[str, Any]) -> None:
        """The display range is reduced to its numeric magnitude."""
        run = normalize(raw_run)

        assert run.benches[0].value == 26579.0
        assert run.benches[0].range == 744.0
        assert run.benches[0].unit == "ns/iter"

    def test_is_pure(self, raw_run: dict[str, Any]) -> None:
        """The payload is not modified."""
        original = copy.deepcopy(raw_run)
        normalize(raw_run)
        assert raw_run == original

    def test_run_passthrough(self, raw_run: dict[str, Any]) -> None:
        """An already normalized Run is returned as is."""
        run = normalize(raw_run)
        assert normalize(run) is run

    def test_zulu_timestamp(self, raw_run: dict[str, Any]) -> None:
        """A trailing Z is read as UTC."""
        raw_run["commit"]["timestamp"] = "2020-05-21T16:28:04Z"
        commit = normalize(raw_run).commit
        assert commit.timestamp == datetime(2020, 5, 21, 16, 28, 4, tzinfo=timezone.utc)

    def test_missing_date_uses_commit_time(self, raw_run: dict[str, Any]) -> None:
        """Without a run timestamp the commit time is used, in epoch millis."""
        del raw_run["date"]
        run = normalize(raw_run)
        assert run.date == int(datetime(2020, 5, 21, 16, 28, 4, tzinfo=timezone.utc).timestamp() * 1000)

    def test_missing_range_is_zero(self, raw_run: dict[str, Any]) -> None:
        """A bench without range has zero spread."""
        del raw_run["benches"][0]["range"]
        assert normalize(raw_run).benches[0].range == 0.0

    def test_zero_value_allowed(self, raw_run: dict[str, Any]) -> None:
        """Zero is a valid measurement."""
        raw_run["benches"][0]["value"] = 0
        assert normalize(raw_run).benches[0].value == 0.0

    def test_optional_person_fields(self, raw_run: dict[str, Any]) -> None:
        """Author and committer may be omitted."""
        del raw_run["commit"]["author"]
        del raw_run["commit"]["committer"]
        commit = normalize(raw_run).commit
        assert commit.author.name == ""
        assert commit.committer.email == ""


class TestNormalizeInvalid:
    """Tests for rejecting malformed payloads as a whole."""

    def test_not_a_mapping(self) -> None:
        """A non-object payload is rejected."""
        with pytest.raises(ValidationError, match="expected an object"):
            normalize(["not", "a", "run"])  # type: ignore[arg-type]

    @pytest.mark.parametrize("tool", [None, "", "   ", 42])
    def test_bad_tool(self, raw_run: dict[str, Any], tool: Any) -> None:
        """The tool must be a non-empty string."""
        raw_run["tool"] = tool
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "tool"

    def test_missing_commit(self, raw_run: dict[str, Any]) -> None:
        """A run without commit is rejected."""
        del raw_run["commit"]
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "commit"

    def test_empty_commit_id(self, raw_run: dict[str, Any]) -> None:
        """The commit identifier must be non-empty."""
        raw_run["commit"]["id"] = ""
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "commit.id"

    @pytest.mark.parametrize("timestamp", [None, "", "yesterday"])
    def test_bad_commit_timestamp(self, raw_run: dict[str, Any], timestamp: Any) -> None:
        """The commit timestamp must be ISO-8601."""
        raw_run["commit"]["timestamp"] = timestamp
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "commit.timestamp"

    @pytest.mark.parametrize("benches", [None, [], "fibonacci"])
    def test_bad_benches(self, raw_run: dict[str, Any], benches: Any) -> None:
        """The bench list must be non-empty."""
        raw_run["benches"] = benches
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "benches"

    @pytest.mark.parametrize("value", [-1, math.inf, math.nan, "540592", None, True])
    def test_bad_value(self, raw_run: dict[str, Any], value: Any) -> None:
        """Values must be finite non-negative numbers."""
        raw_run["benches"][1]["value"] = value
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "benches[1].value"
        assert exc_info.value.entry == "fibonacci"
        assert "fibonacci" in str(exc_info.value)

    @pytest.mark.parametrize("spread", ["± -3", "± lots", -1, math.inf, [1]])
    def test_bad_range(self, raw_run: dict[str, Any], spread: Any) -> None:
        """Ranges must be finite and non-negative."""
        raw_run["benches"][1]["range"] = spread
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "benches[1].range"

    @pytest.mark.parametrize("unit", [None, ""])
    def test_bad_unit(self, raw_run: dict[str, Any], unit: Any) -> None:
        """The unit must be non-empty."""
        raw_run["benches"][0]["unit"] = unit
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "benches[0].unit"
        assert exc_info.value.entry == "arithmetic"

    def test_missing_name(self, raw_run: dict[str, Any]) -> None:
        """Every bench needs a name."""
        del raw_run["benches"][1]["name"]
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "benches[1].name"

    def test_duplicate_names(self, raw_run: dict[str, Any]) -> None:
        """Bench names are unique within a run."""
        raw_run["benches"][1]["name"] = "arithmetic"
        with pytest.raises(ValidationError, match="duplicate"):
            normalize(raw_run)

    @pytest.mark.parametrize("date", [-5, 1.5, "1590080218824", False])
    def test_bad_date(self, raw_run: dict[str, Any], date: Any) -> None:
        """The run timestamp is a non-negative integer of epoch millis."""
        raw_run["date"] = date
        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == "date"

    @pytest.mark.parametrize(
        ("path", "field"),
        [
            (("commit", "message"), "commit.message"),
            (("commit", "author", "name"), "commit.author.name"),
            (("benches", 1, "unit"), "benches[1].unit"),
        ],
    )
    def test_unencodable_text(self, raw_run: dict[str, Any], path: tuple[Any, ...], field: str) -> None:
        """Text with lone surrogates cannot be stored and is rejected."""
        target: Any = raw_run
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = "bad \ud800"

        with pytest.raises(ValidationError) as exc_info:
            normalize(raw_run)
        assert exc_info.value.field == field

    def test_one_bad_entry_rejects_run(self, raw_run: dict[str, Any]) -> None:
        """A single malformed entry fails the whole run."""
        raw_run["benches"].append({"name": "gcd", "value": -1, "unit": "ns/iter"})
        with pytest.raises(ValidationError, match="gcd"):
            normalize(raw_run)


# ============================================================================
# parse_range() Tests
# ============================================================================


class TestParseRange:
    """Tests for parse_range()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("± 744", 744.0),
            ("±744", 744.0),
            ("+/- 12.5", 12.5),
            ("3", 3.0),
            (7, 7.0),
            (0.25, 0.25),
            (None, 0.0),
        ],
    )
    def test_formats(self, raw: Any, expected: float) -> None:
        """Common spread formats are accepted."""
        assert parse_range(raw) == expected

    def test_percent_is_relative(self) -> None:
        """A percent spread is relative to the value."""
        assert parse_range("±2%", 500.0) == pytest.approx(10.0)

    def test_error_names_entry(self) -> None:
        """Errors carry the entry name."""
        with pytest.raises(ValidationError) as exc_info:
            parse_range("wide", entry="fibonacci")
        assert exc_info.value.entry == "fibonacci"
