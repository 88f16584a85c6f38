"""Quality gate: reduce a batch of case reports to one pass/fail verdict."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from spendeval.config import Settings, settings
from spendeval.types import (
    QUALITY_FAILURES,
    RELIABILITY_FAILURES,
    CaseReport,
    GateCategory,
    GateThresholds,
    GateVerdict,
)


def thresholds_from_settings(source: Settings | None = None) -> GateThresholds:
    s = source or settings
    return GateThresholds(
        max_reliability_failures=s.max_reliability_failures,
        max_quality_failures=s.max_quality_failures,
        min_avg_score=s.min_avg_score,
    )


def load_gate_policy(policy_path: str | Path) -> GateThresholds:
    """Load gate thresholds from a YAML file.

    Expects a top-level ``quality_gate`` mapping. Keys it leaves out keep
    their environment-derived value.
    """
    with open(policy_path, "r") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {policy_path}: {exc}") from exc

    policy = raw.get("quality_gate") if isinstance(raw, dict) else None
    if not policy:
        raise ValueError(f"No 'quality_gate' key found in {policy_path}")
    if not isinstance(policy, dict):
        raise ValueError(f"'quality_gate' in {policy_path} must be a mapping of thresholds")

    known = set(GateThresholds.model_fields)
    unknown = set(policy) - known
    if unknown:
        raise ValueError(f"Unknown quality_gate keys in {policy_path}: {', '.join(sorted(unknown))}")

    return GateThresholds.model_validate({**thresholds_from_settings().model_dump(), **policy})


def partition_failures(reports: list[CaseReport]) -> tuple[list[CaseReport], list[CaseReport]]:
    """Split reports into (reliability failures, quality failures). Passing reports land in neither."""
    reliability = [r for r in reports if r.failure in RELIABILITY_FAILURES]
    quality = [r for r in reports if r.failure in QUALITY_FAILURES]
    return reliability, quality


def average_score(reports: list[CaseReport]) -> Optional[float]:
    """Mean over reports that actually got a score; unscored reports are excluded, not zeroed."""
    scored = [r.score for r in reports if r.score is not None]
    if not scored:
        return None
    return sum(scored) / len(scored)


def decide(reports: list[CaseReport], thresholds: GateThresholds | None = None) -> GateVerdict:
    t = thresholds or thresholds_from_settings()
    total = len(reports)

    if total == 0:
        return GateVerdict(
            passed=False,
            category=GateCategory.EMPTY_BATCH,
            reasons=["No results captured; an empty batch is not a pass"],
        )

    reliability, quality = partition_failures(reports)
    avg = average_score(reports)
    counts = dict(
        reliability_failures=len(reliability),
        quality_failures=len(quality),
        average_score=avg,
        scored_cases=sum(1 for r in reports if r.score is not None),
        total_cases=total,
    )

    # Reliability is checked first and is decisive.
    if len(reliability) > t.max_reliability_failures:
        cases = ", ".join(f"{r.test_case_id} ({r.failure.value})" for r in reliability[:10])
        return GateVerdict(
            passed=False,
            category=GateCategory.RELIABILITY_FAILURE,
            reasons=[
                f"{len(reliability)} reliability failure(s) exceed the allowed "
                f"{t.max_reliability_failures}: {cases}"
            ],
            **counts,
        )

    reasons: list[str] = []
    if len(quality) > t.max_quality_failures:
        reasons.append(
            f"{len(quality)} low-score case(s) exceed the allowed {t.max_quality_failures}"
        )
    if avg is None:
        reasons.append("No case produced an eval score")
    elif avg < t.min_avg_score:
        reasons.append(f"Average score {avg:.2f} is below the minimum {t.min_avg_score:g}")

    if reasons:
        return GateVerdict(passed=False, category=GateCategory.QUALITY_FAILURE, reasons=reasons, **counts)
    return GateVerdict(passed=True, category=GateCategory.NONE, **counts)
