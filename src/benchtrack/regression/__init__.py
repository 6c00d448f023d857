"""Regression detection module for benchtrack.

This module provides tools for detecting performance regressions of a
newly appended benchmark record against the history of its series.

Example:
    >>> from benchtrack.regression import DetectionPolicy, Direction, evaluate
    >>>
    >>> policy = DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2)
    >>> alerts = evaluate(run, store, policy)
    >>> for alert in alerts:
    ...     print(alert.message)
"""

from __future__ import annotations

from benchtrack.regression.detector import RegressionDetector, detect
from benchtrack.regression.emitter import AlertEmitter, evaluate
from benchtrack.regression.models import DetectionResult, RegressionAlert, Verdict
from benchtrack.regression.policy import DetectionPolicy, Direction, PolicySet

__all__ = [
    "AlertEmitter",
    "DetectionPolicy",
    "DetectionResult",
    "Direction",
    "PolicySet",
    "RegressionAlert",
    "RegressionDetector",
    "Verdict",
    "detect",
    "evaluate",
]
