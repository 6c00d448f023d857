"""Alert emission for ingested runs.

This module provides the AlertEmitter, which runs the detector for
every entry of a freshly appended run and collects regression alerts.
One failing entry never prevents the evaluation of its siblings.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from benchtrack.core.exceptions import BenchtrackError
from benchtrack.regression.detector import RegressionDetector
from benchtrack.regression.policy import DetectionPolicy, PolicySet

if TYPE_CHECKING:
    from collections.abc import Collection

    from benchtrack.core.types import Run
    from benchtrack.history.store import HistoryStore
    from benchtrack.regression.models import DetectionResult, RegressionAlert

logger = logging.getLogger(__name__)


class AlertEmitter:
    """Evaluate the entries of a run and emit regression alerts.

    Policies are resolved for every entry before any detection runs, so
    an invalid or missing policy aborts the call up front.

    Example:
        >>> emitter = AlertEmitter(DetectionPolicy(direction=Direction.HIGHER_IS_WORSE, threshold=0.2))
        >>> alerts = emitter.evaluate(run, store)
        >>> [str(alert.key) for alert in alerts]
        ['cargo/fibonacci']
    """

    def __init__(self, policy: DetectionPolicy | PolicySet) -> None:
        """Initialize the emitter.

        Args:
            policy: A single policy for every series, or a policy set.

        Raises:
            ConfigurationError: If ``policy`` is neither.
        """
        self.policies = PolicySet.coerce(policy)

    def resolve(self, run: Run) -> dict[str, DetectionPolicy]:
        """Resolve the policy of every entry in the run.

        Raises:
            ConfigurationError: If any entry has no valid policy.
        """
        return {entry.name: self.policies.resolve(run.tool, entry.name) for entry in run}

    def evaluate_verdicts(
        self,
        run: Run,
        store: HistoryStore,
        *,
        names: Collection[str] | None = None,
    ) -> list[DetectionResult]:
        """Run the detector for each entry of the run.

        Args:
            run: The run whose entries were appended.
            store: History store holding the entries' series.
            names: Restrict evaluation to these entry names.

        Returns:
            Detection results in run order. Entries whose record is not in
            the store, or whose detection failed, are logged and skipped.

        Raises:
            ConfigurationError: If a policy cannot be resolved.
        """
        policies = self.resolve(run)

        results: list[DetectionResult] = []
        for entry in run:
            if names is not None and entry.name not in names:
                continue
            key = run.key_for(entry)
            try:
                series = store.history(key.tool, key.name)
                record = next((r for r in reversed(series) if r.commit_id == run.commit.id), None)
                if record is None:
                    logger.warning(f"No record of {key} @ {run.commit.id} in history, skipping")
                    continue
                result = RegressionDetector(policies[entry.name]).detect(series, record)
            except BenchtrackError as e:
                logger.warning(f"Detection failed for {key}: {e}")
                continue

            logger.debug(f"{result.key} @ {result.commit_id}: {result.verdict.value} (deviation={result.deviation})")
            results.append(result)
        return results

    def evaluate(
        self,
        run: Run,
        store: HistoryStore,
        *,
        names: Collection[str] | None = None,
    ) -> list[RegressionAlert]:
        """Evaluate a run and return its regression alerts.

        Only regression verdicts produce alerts; the order follows the
        entries of the run.

        Args:
            run: The run whose entries were appended.
            store: History store holding the entries' series.
            names: Restrict evaluation to these entry names.

        Returns:
            Regression alerts, possibly empty.

        Raises:
            ConfigurationError: If a policy cannot be resolved.
        """
        alerts = [
            result.to_alert() for result in self.evaluate_verdicts(run, store, names=names) if result.is_regression
        ]
        for alert in alerts:
            logger.info(f"Regression: {alert.message}")
        return alerts


def evaluate(run: Run, store: HistoryStore, policy: DetectionPolicy | PolicySet) -> list[RegressionAlert]:
    """Evaluate a freshly appended run against its history.

    Args:
        run: The run whose entries were appended.
        store: History store holding the entries' series.
        policy: A single policy or a policy set.

    Returns:
        Regression alerts in run order.

    Raises:
        ConfigurationError: If the policy is invalid for any entry.
    """
    return AlertEmitter(policy).evaluate(run, store)
