"""Models for regression detection.

This module provides the detector verdicts, the per-record detection
result, and the alert emitted for a regression.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from benchtrack.core.types import SeriesKey, format_number
from benchtrack.regression.policy import Direction

if TYPE_CHECKING:
    from benchtrack.regression.policy import DetectionPolicy


class Verdict(str, Enum):
    """Outcome of comparing a record to its baseline."""

    REGRESSION = "regression"
    IMPROVEMENT = "improvement"
    STABLE = "stable"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class RegressionAlert:
    """Alert for a detected regression.

    Alerts are ephemeral; the caller decides whether to store, log or
    forward them.

    Attributes:
        tool: Benchmark harness of the offending series.
        name: Benchmark name of the offending series.
        current_value: Value of the new record.
        baseline_value: Baseline the record was compared against.
        deviation: Signed deviation ratio (positive = worse).
        threshold: Threshold that was breached.
        unit: Unit of the values.
        commit_id: Commit of the new record.
        direction: Which way the benchmark gets worse.
        severity: "warning" if beyond threshold, "critical" beyond the critical multiple.

    Example:
        >>> alert = RegressionAlert(
        ...     tool="cargo",
        ...     name="fibonacci",
        ...     current_value=700000,
        ...     baseline_value=530777,
        ...     deviation=0.3188,
        ...     threshold=0.2,
        ...     unit="ns/iter",
        ...     commit_id="a1b2c3d",
        ...     direction=Direction.HIGHER_IS_WORSE,
        ...     severity="warning",
        ... )
        >>> alert.message
        'cargo/fibonacci regressed by 31.9% (530777 -> 700000 ns/iter, threshold: 20.0%)'
    """

    tool: str
    name: str
    current_value: float
    baseline_value: float
    deviation: float
    threshold: float
    unit: str
    commit_id: str
    direction: Direction
    severity: Literal["warning", "critical"]

    @property
    def key(self) -> SeriesKey:
        return SeriesKey(self.tool, self.name)

    @property
    def ratio(self) -> float:
        """Current value as a multiple of the baseline."""
        return self.current_value / self.baseline_value

    @property
    def message(self) -> str:
        """Human-readable alert message."""
        return (
            f"{self.key} regressed by {self.deviation * 100:.1f}% "
            f"({format_number(self.baseline_value)} -> {format_number(self.current_value)} {self.unit}, "
            f"threshold: {self.threshold * 100:.1f}%)"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the alert to a dictionary for serialization."""
        return {
            "tool": self.tool,
            "name": self.name,
            "commit": self.commit_id,
            "current": self.current_value,
            "baseline": self.baseline_value,
            "ratio": round(self.ratio, 6),
            "deviation": round(self.deviation, 6),
            "threshold": self.threshold,
            "unit": self.unit,
            "direction": self.direction.value,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Verdict of the detector for one record.

    Attributes:
        key: Series of the record.
        verdict: Regression, improvement, stable or indeterminate.
        current_value: Value of the record.
        baseline_value: Baseline value, None when the series had no prior history.
        baseline_size: Number of prior records averaged into the baseline.
        deviation: Signed deviation ratio (positive = worse), None when not computable.
        commit_id: Commit of the record.
        unit: Unit of the value.
        policy: Policy the record was evaluated with.
    """

    key: SeriesKey
    verdict: Verdict
    current_value: float
    baseline_value: float | None
    baseline_size: int
    deviation: float | None
    commit_id: str
    unit: str
    policy: DetectionPolicy

    @property
    def is_regression(self) -> bool:
        return self.verdict is Verdict.REGRESSION

    @property
    def threshold(self) -> float:
        return self.policy.threshold

    def to_alert(self) -> RegressionAlert:
        """Build the alert for a regression verdict.

        Raises:
            ValueError: If the verdict is not a regression.
        """
        if not self.is_regression or self.baseline_value is None or self.deviation is None:
            raise ValueError(f"No regression to alert on for {self.key} ({self.verdict.value})")

        severity: Literal["warning", "critical"] = (
            "critical" if self.deviation >= self.policy.critical_threshold else "warning"
        )
        return RegressionAlert(
            tool=self.key.tool,
            name=self.key.name,
            current_value=self.current_value,
            baseline_value=self.baseline_value,
            deviation=self.deviation,
            threshold=self.policy.threshold,
            unit=self.unit,
            commit_id=self.commit_id,
            direction=self.policy.direction,
            severity=severity,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the result to a dictionary for serialization."""
        return {
            "tool": self.key.tool,
            "name": self.key.name,
            "commit": self.commit_id,
            "verdict": self.verdict.value,
            "current": self.current_value,
            "baseline": self.baseline_value,
            "baseline_size": self.baseline_size,
            "deviation": None if self.deviation is None else round(self.deviation, 6),
            "threshold": self.policy.threshold,
            "unit": self.unit,
        }
