"""
Verdict engine tests.

Critical invariant tested:
    A REPORT OVER ANY THRESHOLD IS ALWAYS BLOCKED
"""

import dataclasses

import pytest

from deploygate.config import DEFAULT_POLICY, ThresholdPolicy
from deploygate.verdict import (
    CheckStatus,
    advisory_status,
    advisory_warnings,
    evaluate,
)
from conftest import make_report


def test_clean_report_allowed():
    v = evaluate(make_report(risk=10), DEFAULT_POLICY)
    assert v.blocked is False
    assert v.reasons == ()


def test_single_critical_blocks_even_at_zero_risk():
    v = evaluate(make_report(risk=0, critical=1), DEFAULT_POLICY)
    assert v.blocked
    assert len(v.reasons) == 1
    assert "1 CRITICAL" in v.reasons[0]


def test_risk_score_at_threshold_blocks_with_no_vulnerabilities():
    v = evaluate(make_report(risk=50), DEFAULT_POLICY)
    assert v.blocked
    assert v.reasons == ("Risk score 50 >= 50",)


def test_risk_score_just_below_threshold_allowed():
    assert not evaluate(make_report(risk=49.9), DEFAULT_POLICY).blocked


def test_high_vulns_at_threshold_block():
    v = evaluate(make_report(risk=10, high=5), DEFAULT_POLICY)
    assert v.blocked
    assert "5 high-severity vulnerabilities >= 5" in v.reasons


def test_four_high_vulns_allowed():
    assert not evaluate(make_report(risk=10, high=4), DEFAULT_POLICY).blocked


def test_degraded_analysis_over_fallback_ceiling_blocks():
    v = evaluate(make_report(risk=35, slither=False), DEFAULT_POLICY)
    assert v.blocked
    assert v.reasons == ("Slither unavailable AND risk score 35 > 30",)


def test_degraded_analysis_at_fallback_ceiling_allowed():
    # Strictly greater than the ceiling is required.
    assert not evaluate(make_report(risk=30, slither=False), DEFAULT_POLICY).blocked


def test_all_rules_reported_in_order():
    v = evaluate(make_report(risk=90, critical=3, high=6, slither=False), DEFAULT_POLICY)
    assert v.blocked
    assert len(v.reasons) == 4
    assert "CRITICAL" in v.reasons[0]
    assert v.reasons[1].startswith("Risk score")
    assert "high-severity" in v.reasons[2]
    assert v.reasons[3].startswith("Slither unavailable")


def test_missing_summary_counts_treated_as_zero():
    report = make_report(risk=10)
    report = report.model_copy(update={"summary": {"critical": None}})
    assert not evaluate(report, DEFAULT_POLICY).blocked


def test_evaluate_is_deterministic():
    report = make_report(risk=60, critical=2, high=1, slither=False)
    first = evaluate(report, DEFAULT_POLICY)
    for _ in range(20):
        assert evaluate(report, DEFAULT_POLICY) == first


def test_custom_policy_respected():
    lenient = ThresholdPolicy(risk_score_threshold=80)
    assert not evaluate(make_report(risk=60), lenient).blocked


def test_policy_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_POLICY.risk_score_threshold = 99


# ============================================================
# Check-only status
# ============================================================

@pytest.mark.parametrize("kwargs,status", [
    ({"risk": 10}, CheckStatus.ALLOWED),
    ({"risk": 25}, CheckStatus.ALLOWED),
    ({"risk": 27}, CheckStatus.WARNING),
    ({"risk": 60}, CheckStatus.BLOCKED),
    ({"risk": 0, "critical": 1}, CheckStatus.BLOCKED),
    ({"risk": 28, "slither": False}, CheckStatus.WARNING),
    ({"risk": 35, "slither": False}, CheckStatus.BLOCKED),
])
def test_advisory_status(kwargs, status):
    got, message, verdict = advisory_status(make_report(**kwargs), DEFAULT_POLICY)
    assert got == status
    assert verdict.blocked == (status == CheckStatus.BLOCKED)
    assert message


def test_warning_message_for_moderate_risk():
    status, message, _ = advisory_status(make_report(risk=27), DEFAULT_POLICY)
    assert status == CheckStatus.WARNING
    assert message == "Minor security concerns - review recommended"


def test_degraded_analysis_above_ceiling_reports_block_reason():
    status, message, _ = advisory_status(make_report(risk=35, slither=False), DEFAULT_POLICY)
    assert status == CheckStatus.BLOCKED
    assert message == "Slither unavailable AND risk score 35 > 30"


def test_advisory_warnings():
    assert advisory_warnings(make_report(risk=10), DEFAULT_POLICY) == []
    assert len(advisory_warnings(make_report(risk=40), DEFAULT_POLICY)) == 1
