"""Tests for quality gate decisions and policy loading."""

from pathlib import Path

import pytest

from spendeval.reporting.gates import average_score, decide, load_gate_policy
from spendeval.types import CaseReport, FailureClass, GateCategory, GateThresholds, Verdict

GATES_DIR = Path(__file__).resolve().parent.parent / "gates"


def _report(case_id, score=None, failure=None):
    return CaseReport(
        test_case_id=case_id,
        prompt="q",
        verdict=Verdict.PASS if failure is None else Verdict.FAIL,
        failure=failure,
        score=score,
    )


def _scored(*scores, threshold=8):
    return [
        _report(f"TC{i:03d}", s, None if s >= threshold else FailureClass.LOW_SCORE)
        for i, s in enumerate(scores, start=1)
    ]


def test_all_passing_batch_passes():
    verdict = decide(_scored(9, 10, 8), GateThresholds())
    assert verdict.passed
    assert verdict.category == GateCategory.NONE
    assert verdict.average_score == pytest.approx(9.0)
    assert verdict.scored_cases == 3
    assert verdict.total_cases == 3


def test_low_score_within_allowance_passes():
    # 7 is a LOW_SCORE, but one is within the allowance and 8.67 clears the minimum.
    reports = _scored(9, 7, 10)
    verdict = decide(reports, GateThresholds())
    assert verdict.quality_failures == 1
    assert verdict.average_score == pytest.approx(8.6667, abs=1e-3)
    assert verdict.passed
    assert verdict.category == GateCategory.NONE


def test_average_below_minimum_is_quality_failure():
    verdict = decide(_scored(9, 8, 9), GateThresholds(min_avg_score=8.8))
    assert not verdict.passed
    assert verdict.quality_failures == 0
    assert verdict.category == GateCategory.QUALITY_FAILURE
    assert "Average score 8.67" in verdict.reasons[0]


def test_too_many_low_scores_is_quality_failure():
    reports = _scored(10, 10, 10, 10, 10, 10, 10, 7, 7, 7, 7)
    verdict = decide(reports, GateThresholds(max_quality_failures=3, min_avg_score=0))
    assert not verdict.passed
    assert verdict.category == GateCategory.QUALITY_FAILURE
    assert verdict.quality_failures == 4


def test_reliability_failure_wins_over_quality():
    reports = _scored(2, 3, 4) + [_report("TC099", failure=FailureClass.NO_TRACE)]
    verdict = decide(reports, GateThresholds())
    assert not verdict.passed
    assert verdict.category == GateCategory.RELIABILITY_FAILURE
    assert verdict.reliability_failures == 1
    assert "TC099 (NO_TRACE)" in verdict.reasons[0]


def test_every_reliability_class_counts():
    reports = [
        _report("TC001", failure=FailureClass.REQUEST_ERROR),
        _report("TC002", failure=FailureClass.INVALID_RESPONSE),
        _report("TC003", failure=FailureClass.NO_TRACE),
        _report("TC004", failure=FailureClass.NO_EVAL_SCORE),
    ] + _scored(10, 10)
    verdict = decide(reports, GateThresholds(max_reliability_failures=3))
    assert verdict.reliability_failures == 4
    assert verdict.category == GateCategory.RELIABILITY_FAILURE

    verdict = decide(reports, GateThresholds(max_reliability_failures=4))
    assert verdict.passed


def test_nothing_scored_is_quality_failure():
    reports = [_report("TC001", failure=FailureClass.NO_EVAL_SCORE)]
    verdict = decide(reports, GateThresholds(max_reliability_failures=5))
    assert not verdict.passed
    assert verdict.category == GateCategory.QUALITY_FAILURE
    assert verdict.average_score is None
    assert "No case produced an eval score" in verdict.reasons


def test_empty_batch_fails():
    verdict = decide([], GateThresholds())
    assert not verdict.passed
    assert verdict.category == GateCategory.EMPTY_BATCH
    assert verdict.total_cases == 0


def test_average_excludes_unscored_reports():
    reports = _scored(10, 6) + [_report("TC003", failure=FailureClass.NO_TRACE)]
    assert average_score(reports) == pytest.approx(8.0)
    assert average_score([_report("TC001")]) is None


def test_load_shipped_policies():
    ci = load_gate_policy(GATES_DIR / "quality_gate.yaml")
    assert ci == GateThresholds(max_reliability_failures=0, max_quality_failures=3, min_avg_score=8.0)

    nightly = load_gate_policy(GATES_DIR / "quality_gate_regression.yaml")
    assert nightly.max_reliability_failures == 2
    assert nightly.max_quality_failures == 6


def test_policy_without_gate_key_is_rejected(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("thresholds:\n  min_avg_score: 9\n")
    with pytest.raises(ValueError, match="quality_gate"):
        load_gate_policy(path)


def test_policy_with_unknown_key_is_rejected(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("quality_gate:\n  min_avg: 9\n")
    with pytest.raises(ValueError, match="min_avg"):
        load_gate_policy(path)


def test_single_reliability_failure_beats_perfect_scores():
    reports = _scored(10, 10, 10, 10) + [_report("TC005", failure=FailureClass.REQUEST_ERROR)]
    verdict = decide(reports, GateThresholds(max_reliability_failures=0))
    assert verdict.category == GateCategory.RELIABILITY_FAILURE
    assert verdict.average_score == pytest.approx(10.0)


def test_unparseable_policy_is_rejected(tmp_path):
    path = tmp_path / "gate.yaml"
    path.write_text("quality_gate: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_gate_policy(path)


def test_non_mapping_policy_is_rejected(tmp_path):
    path = tmp_path / "gate.yaml"

    path.write_text("- quality_gate\n- min_avg_score\n")
    with pytest.raises(ValueError, match="quality_gate"):
        load_gate_policy(path)

    path.write_text("quality_gate: 5\n")
    with pytest.raises(ValueError, match="must be a mapping"):
        load_gate_policy(path)
