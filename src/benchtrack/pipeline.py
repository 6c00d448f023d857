"""Ingestion pipeline for benchtrack.

This module ties the components together for CI glue: a raw run payload
is normalized, its entries are appended to the history store, and the
entries appended by this call are evaluated for regressions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from benchtrack.core.normalize import normalize
from benchtrack.regression.emitter import AlertEmitter

if TYPE_CHECKING:
    from benchtrack.core.exceptions import HistoryError
    from benchtrack.core.types import Run
    from benchtrack.history.models import HistoryRecord
    from benchtrack.history.store import HistoryStore
    from benchtrack.regression.models import DetectionResult, RegressionAlert
    from benchtrack.regression.policy import DetectionPolicy, PolicySet

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of ingesting one run.

    Attributes:
        run: The normalized run.
        appended: Records appended by this call, in run order.
        rejected: Entry name mapped to the error that rejected its append.
        results: Detector results for the appended records.
        alerts: Regression alerts, in run order.
    """

    run: Run
    appended: list[HistoryRecord] = field(default_factory=list)
    rejected: dict[str, HistoryError] = field(default_factory=dict)
    results: list[DetectionResult] = field(default_factory=list)
    alerts: list[RegressionAlert] = field(default_factory=list)

    @property
    def has_regressions(self) -> bool:
        return len(self.alerts) > 0

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        lines = [
            f"Ingested {self.run.tool} @ {self.run.commit.id[:7]}: "
            f"{len(self.appended)} appended, {len(self.rejected)} rejected, {len(self.alerts)} regressions",
        ]
        for name, error in self.rejected.items():
            lines.append(f"  [REJECTED] {name}: {error}")
        for alert in self.alerts:
            marker = "[CRITICAL]" if alert.severity == "critical" else "[WARNING]"
            lines.append(f"  {marker} {alert.message}")
        return "\n".join(lines)


async def ingest(
    raw: Mapping[str, Any] | Run,
    store: HistoryStore,
    policy: DetectionPolicy | PolicySet,
) -> IngestResult:
    """Normalize, append and evaluate one run.

    Policies are resolved before anything is appended, so a bad policy
    leaves the history untouched. Entries rejected by the store
    (duplicate commit, out-of-order run) are reported and not evaluated;
    the remaining entries are appended and evaluated as usual.

    Args:
        raw: Ingestion payload or an already normalized Run.
        store: History store to append to.
        policy: A single policy or a policy set.

    Returns:
        IngestResult with the appended records, rejections and alerts.

    Raises:
        ValidationError: If the payload is malformed. Nothing is appended.
        ConfigurationError: If the policy is invalid. Nothing is appended.
        StorageError: If the durable write fails.
    """
    run = normalize(raw)
    emitter = AlertEmitter(policy)
    emitter.resolve(run)

    appended = await store.append_run(run)
    names = {record.name for record in appended.records}
    results = emitter.evaluate_verdicts(run, store, names=names)

    result = IngestResult(
        run=run,
        appended=appended.records,
        rejected=dict(appended.rejected),
        results=results,
        alerts=[r.to_alert() for r in results if r.is_regression],
    )
    logger.info(result.summary().splitlines()[0])
    return result
