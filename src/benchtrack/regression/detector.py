"""Regression detector for benchmark series.

This module provides the RegressionDetector class, which compares a
newly appended record with a baseline computed from the records that
precede it in its series.
"""

from __future__ import annotations

from statistics import fmean
from typing import TYPE_CHECKING

from benchtrack.core.exceptions import ConfigurationError
from benchtrack.regression.models import DetectionResult, Verdict
from benchtrack.regression.policy import DetectionPolicy, Direction

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchtrack.history.models import HistoryRecord


def _prior_records(series: Sequence[HistoryRecord], record: HistoryRecord) -> Sequence[HistoryRecord]:
    """Records of ``series`` that precede ``record`` (all of them if it is not in the series)."""
    for index, candidate in enumerate(series):
        if candidate.commit_id == record.commit_id:
            return series[:index]
    return series


class RegressionDetector:
    """Detect regressions of a record against its series' baseline.

    The baseline is the mean of the last ``rolling_window`` records that
    precede the new record; with the default window of 1 this is a
    point-to-point comparison. The deviation is
    ``(new - baseline) / baseline``, negated when lower values are worse.

    Attributes:
        policy: Policy used for every detection.

    Example:
        >>> detector = RegressionDetector(DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2))
        >>> result = detector.detect(store.history("cargo", "fibonacci"), new_record)
        >>> result.verdict
        <Verdict.REGRESSION: 'regression'>
    """

    def __init__(self, policy: DetectionPolicy) -> None:
        """Initialize detector with a validated policy.

        Args:
            policy: Detection policy.
        """
        self.policy = policy

    def baseline(self, series: Sequence[HistoryRecord], record: HistoryRecord) -> tuple[float | None, int]:
        """Compute the baseline for a record.

        Args:
            series: History of the record's series; may include the record.
            record: The record being evaluated.

        Returns:
            Tuple of (baseline value or None if there is no prior history,
            number of records averaged).
        """
        window = _prior_records(series, record)[-self.policy.rolling_window :]
        if not window:
            return None, 0
        return fmean(prior.value for prior in window), len(window)

    def detect(self, series: Sequence[HistoryRecord], record: HistoryRecord) -> DetectionResult:
        """Classify a record against its baseline.

        A series without prior history is always stable. A zero baseline
        cannot produce a ratio and is reported as indeterminate.

        Args:
            series: History of the record's series; may include the record.
            record: The record being evaluated.

        Returns:
            DetectionResult with the verdict and the numbers behind it.
        """
        baseline, size = self.baseline(series, record)
        current = record.value

        deviation: float | None = None
        if baseline is None:
            verdict = Verdict.STABLE
        elif baseline == 0:
            verdict = Verdict.INDETERMINATE
        else:
            change = (current - baseline) / baseline
            deviation = change if self.policy.direction is Direction.HIGHER_IS_WORSE else -change

            if deviation > 0 and deviation >= self.policy.threshold:
                verdict = Verdict.REGRESSION
            elif deviation < 0 and -deviation >= self.policy.improvement_threshold:  # type: ignore[operator]
                verdict = Verdict.IMPROVEMENT
            else:
                verdict = Verdict.STABLE

        return DetectionResult(
            key=record.key,
            verdict=verdict,
            current_value=current,
            baseline_value=baseline,
            baseline_size=size,
            deviation=deviation,
            commit_id=record.commit_id,
            unit=record.entry.unit,
            policy=self.policy,
        )


def detect(series: Sequence[HistoryRecord], record: HistoryRecord, policy: DetectionPolicy) -> DetectionResult:
    """Detect whether ``record`` regresses against the rest of ``series``.

    Args:
        series: History of the record's series; may include the record.
        record: The newly appended record.
        policy: Detection policy.

    Returns:
        DetectionResult for the record.

    Raises:
        ConfigurationError: If ``policy`` is not a DetectionPolicy.
    """
    if not isinstance(policy, DetectionPolicy):
        raise ConfigurationError(f"Expected a DetectionPolicy, got {type(policy).__name__}")
    return RegressionDetector(policy).detect(series, record)
