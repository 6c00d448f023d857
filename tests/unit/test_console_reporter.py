"""Tests for console reporter."""

from __future__ import annotations

from datetime import datetime, timezone
from io import StringIO

import pytest

from benchtrack.core.exceptions import DuplicateCommitError
from benchtrack.core.types import BenchmarkEntry, Commit, Run, SeriesKey
from benchtrack.history import HistoryRecord
from benchtrack.pipeline import IngestResult
from benchtrack.regression import DetectionPolicy, Direction, detect
from benchtrack.reporters.console import Colors, ConsoleReporter, _supports_color


def make_record(commit_id: str, value: float, date: int, name: str = "fibonacci") -> HistoryRecord:
    return HistoryRecord(
        tool="cargo",
        commit=Commit(id=commit_id, timestamp=datetime(2020, 5, 21, tzinfo=timezone.utc)),
        entry=BenchmarkEntry(name=name, value=value, range=7852, unit="ns/iter"),
        run_timestamp=date,
    )


@pytest.fixture
def ingest_result() -> IngestResult:
    """Result of a run that regressed fibonacci and re-sent gcd."""
    policy = DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2)
    series = (make_record("59b6d26e0be8", 530777, 1000), make_record("a1b2c3d4e5f6", 700000, 2000))
    result = detect(series, series[-1], policy)
    run = Run(
        tool="cargo",
        commit=series[-1].commit,
        date=2000,
        benches=(series[-1].entry, BenchmarkEntry(name="gcd", value=10, unit="ns/iter")),
    )
    return IngestResult(
        run=run,
        appended=[series[-1]],
        rejected={"gcd": DuplicateCommitError("already recorded", key=SeriesKey("cargo", "gcd"), commit_id="a1b2c3d")},
        results=[result],
        alerts=[result.to_alert()],
    )


class TestConsoleReporterInit:
    """Tests for ConsoleReporter initialization."""

    def test_default_output(self) -> None:
        """The given stream is used."""
        output = StringIO()
        reporter = ConsoleReporter(output=output)

        assert reporter.output is output

    def test_colors_disabled(self) -> None:
        """Colors can be disabled."""
        reporter = ConsoleReporter(use_colors=False, output=StringIO())

        assert reporter.use_colors is False

    def test_no_color_for_non_tty(self) -> None:
        """Streams that are not terminals get no colors."""
        assert _supports_color(StringIO()) is False

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """NO_COLOR disables colors."""
        monkeypatch.setenv("NO_COLOR", "1")
        assert _supports_color(StringIO()) is False


class TestReportIngest:
    """Tests for ConsoleReporter.report_ingest()."""

    @pytest.fixture
    def output(self) -> StringIO:
        return StringIO()

    @pytest.fixture
    def reporter(self, output: StringIO) -> ConsoleReporter:
        """Reporter with colors disabled for testing."""
        return ConsoleReporter(use_colors=False, output=output)

    def test_header(self, reporter: ConsoleReporter, output: StringIO, ingest_result: IngestResult) -> None:
        """The first line summarizes the counts."""
        reporter.report_ingest(ingest_result)

        assert output.getvalue().splitlines()[0] == "cargo @ a1b2c3d: 1 appended, 1 rejected, 1 regressions"

    def test_rejections(self, reporter: ConsoleReporter, output: StringIO, ingest_result: IngestResult) -> None:
        """Rejected entries are listed."""
        reporter.report_ingest(ingest_result)

        assert "[REJECTED] gcd: already recorded" in output.getvalue()

    def test_results_table(self, reporter: ConsoleReporter, output: StringIO, ingest_result: IngestResult) -> None:
        """Each evaluated entry has a row with baseline, current and change."""
        reporter.report_ingest(ingest_result)

        row = next(line for line in output.getvalue().splitlines() if line.strip().startswith("fibonacci"))
        assert "530777" in row
        assert "700000" in row
        assert "+31.9%" in row
        assert row.endswith("regression")

    def test_alerts(self, reporter: ConsoleReporter, output: StringIO, ingest_result: IngestResult) -> None:
        """Alerts are printed with their severity."""
        reporter.report_ingest(ingest_result)

        assert "[WARNING] cargo/fibonacci regressed by 31.9%" in output.getvalue()

    def test_colors(self, output: StringIO, ingest_result: IngestResult) -> None:
        """With colors on, verdicts are colored."""
        reporter = ConsoleReporter(output=output)
        reporter.use_colors = True

        reporter.report_ingest(ingest_result)

        assert f"{Colors.RED}regression{Colors.RESET}" in output.getvalue()

    def test_empty_results(self, reporter: ConsoleReporter, output: StringIO) -> None:
        """Nothing evaluated is said explicitly."""
        reporter.report_results([])

        assert "No benchmarks evaluated." in output.getvalue()

    def test_first_point_has_no_baseline(self, reporter: ConsoleReporter, output: StringIO) -> None:
        """Results without a baseline show dashes."""
        record = make_record("c1", 540592, 1000)
        policy = DetectionPolicy(direction=Direction.HIGHER_IS_WORSE)

        reporter.report_results([detect((record,), record, policy)])

        row = output.getvalue().splitlines()[1]
        assert row.split() == ["fibonacci", "-", "540592", "-", "stable"]


class TestReportHistory:
    """Tests for ConsoleReporter.report_history()."""

    def test_history_rows(self) -> None:
        """One row per record with commit, timestamp, value and range."""
        output = StringIO()
        records = [make_record("59b6d26e0be8", 540592, 1590080218824), make_record("a1b2c3d4", 530777, 1590090000000)]

        ConsoleReporter(use_colors=False, output=output).report_history(records)

        lines = output.getvalue().splitlines()
        assert lines[0].split() == ["59b6d26", "1590080218824", "540592", "ns/iter", "(±", "7852)"]
        assert lines[1].startswith("  a1b2c3d")

    def test_empty_history(self) -> None:
        """An empty series says so."""
        output = StringIO()
        ConsoleReporter(use_colors=False, output=output).report_history([])

        assert "No history." in output.getvalue()
