"""Aggregate case reports into a BatchResult."""

from __future__ import annotations

from collections import Counter
from datetime import datetime

from spendeval.reporting.gates import decide
from spendeval.types import BatchResult, CaseReport, GateThresholds


def summarize_batch(
    run_id: str,
    reports: list[CaseReport],
    thresholds: GateThresholds | None = None,
    suite: str = "",
) -> BatchResult:
    """Compute failure counts, average score, and the gate verdict for a finished batch."""
    gate = decide(reports, thresholds)
    failure_counts = Counter(r.failure.value for r in reports if r.failure is not None)

    return BatchResult(
        run_id=run_id,
        suite=suite,
        reports=list(reports),
        failure_counts=dict(failure_counts),
        reliability_failures=gate.reliability_failures,
        quality_failures=gate.quality_failures,
        average_score=gate.average_score,
        scored_cases=gate.scored_cases,
        gate=gate,
        timestamp=datetime.utcnow(),
    )
