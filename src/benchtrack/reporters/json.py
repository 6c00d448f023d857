"""JSON reporter for benchtrack.

This module provides JSON output for ingestion results, suitable for
CI/CD pipelines and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchtrack.pipeline import IngestResult
    from benchtrack.regression.models import RegressionAlert


class JSONReporter:
    """Reporter that outputs ingestion results as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report_ingest(result))
        {
          "timestamp": "2024-01-15T10:30:00+00:00",
          "tool": "cargo",
          "commit": "59b6d26e0be8a2e056d6826b9ce39366c5cc4fdc",
          "status": "regression",
          ...
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def ingest_to_dict(self, result: IngestResult) -> dict[str, Any]:
        """Convert an ingestion result to a dictionary."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "tool": result.run.tool,
            "commit": result.run.commit.id,
            "date": result.run.date,
            "status": "regression" if result.has_regressions else "ok",
            "appended": [record.name for record in result.appended],
            "rejected": {name: str(error) for name, error in result.rejected.items()},
            "results": [r.to_dict() for r in result.results],
            "alerts": [alert.to_dict() for alert in result.alerts],
        }

    def report_ingest(self, result: IngestResult) -> str:
        """Generate a JSON report for an ingestion result."""
        return json.dumps(self.ingest_to_dict(result), indent=self.indent)

    def report_alerts(self, alerts: Sequence[RegressionAlert]) -> str:
        """Generate a JSON array of alerts."""
        return json.dumps([alert.to_dict() for alert in alerts], indent=self.indent)

    def report_to_file(self, result: IngestResult, path: str | Path) -> None:
        """Write the JSON report for an ingestion result to a file.

        Args:
            result: The ingestion result.
            path: Output file path. Parent directories are created if needed.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report_ingest(result) + "\n", encoding="utf-8")
