"""Console reporter for benchtrack.

This module provides terminal output for ingestion results, with
color-coded verdicts.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from benchtrack.core.types import format_number
from benchtrack.regression.models import Verdict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchtrack.history.models import HistoryRecord
    from benchtrack.pipeline import IngestResult
    from benchtrack.regression.models import DetectionResult


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    CYAN = "\033[36m"


_VERDICT_STYLE: dict[Verdict, tuple[str, str]] = {
    Verdict.REGRESSION: ("regression", Colors.RED),
    Verdict.IMPROVEMENT: ("improvement", Colors.GREEN),
    Verdict.STABLE: ("stable", Colors.DIM),
    Verdict.INDETERMINATE: ("indeterminate", Colors.YELLOW),
}


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class ConsoleReporter:
    """Reporter that outputs ingestion results to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report_ingest(result)
        cargo @ 59b6d26: 11 appended, 0 rejected, 1 regressions
          Benchmark           Baseline     Current  Change  Verdict
          fibonacci             530777      700000  +31.9%  regression
    """

    def __init__(self, use_colors: bool = True, output: TextIO | None = None) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.output = output or sys.stdout
        self.use_colors = use_colors and _supports_color(self.output)

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    def report_results(self, results: Sequence[DetectionResult]) -> None:
        """Print one line per detection result."""
        if not results:
            self._print("  No benchmarks evaluated.")
            return

        width = max(len(r.key.name) for r in results)
        header = f"  {'Benchmark':<{width}}  {'Baseline':>12}  {'Current':>12}  {'Change':>8}  Verdict"
        self._print(self._color(header, Colors.BOLD))
        for result in results:
            label, color = _VERDICT_STYLE[result.verdict]
            baseline = "-" if result.baseline_value is None else f"{format_number(round(result.baseline_value, 3))}"
            change = "-" if result.deviation is None else f"{result.deviation * 100:+.1f}%"
            self._print(
                f"  {result.key.name:<{width}}  {baseline:>12}  {format_number(result.current_value)!s:>12}"
                f"  {change:>8}  {self._color(label, color)}"
            )

    def report_ingest(self, result: IngestResult) -> None:
        """Print the outcome of an ingestion."""
        run = result.run
        self._print(
            self._color(f"{run.tool} @ {run.commit.id[:7]}", Colors.CYAN)
            + f": {len(result.appended)} appended, {len(result.rejected)} rejected, {len(result.alerts)} regressions"
        )
        for name, error in result.rejected.items():
            self._print(self._color(f"  [REJECTED] {name}: {error}", Colors.YELLOW))
        self.report_results(result.results)
        for alert in result.alerts:
            marker = "[CRITICAL]" if alert.severity == "critical" else "[WARNING]"
            self._print(self._color(f"  {marker} {alert.message}", Colors.RED))

    def report_history(self, records: Sequence[HistoryRecord]) -> None:
        """Print the records of a series, oldest first."""
        if not records:
            self._print("  No history.")
            return
        for record in records:
            entry = record.entry
            self._print(
                f"  {record.commit_id[:7]}  {record.run_timestamp:>13}  "
                f"{format_number(entry.value)!s:>12} {entry.unit}  ({entry.to_dict()['range']})"
            )
