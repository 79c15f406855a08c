"""
Verdict engine for deploygate.

Gates are deterministic checks over an analysis report. Every gate is
evaluated; a contract is blocked if any gate fires, and the reasons are
reported in gate order. Nothing here performs I/O or reads mutable state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .config import ThresholdPolicy
from .models import AnalysisReport


class CheckStatus(str, Enum):
    """Would-be outcome reported by check-only mode."""
    ALLOWED = "ALLOWED"
    WARNING = "WARNING"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class Verdict:
    """Block/allow decision. Recomputed on demand, never stored."""
    blocked: bool
    reasons: Tuple[str, ...] = ()


def _num(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


# ============================================================
# Gates
# ============================================================

def gate_critical_vulns(report: AnalysisReport, policy: ThresholdPolicy) -> Optional[str]:
    """Any critical finding at or over the threshold blocks."""
    n = report.critical_count
    if n >= policy.critical_vuln_threshold:
        return f"{n} CRITICAL vulnerability(s) detected (threshold {policy.critical_vuln_threshold})"
    return None


def gate_risk_score(report: AnalysisReport, policy: ThresholdPolicy) -> Optional[str]:
    score = report.risk_score
    if score >= policy.risk_score_threshold:
        return f"Risk score {_num(score)} >= {_num(policy.risk_score_threshold)}"
    return None


def gate_high_vulns(report: AnalysisReport, policy: ThresholdPolicy) -> Optional[str]:
    n = report.high_count
    if n >= policy.high_vuln_threshold:
        return f"{n} high-severity vulnerabilities >= {policy.high_vuln_threshold}"
    return None


def gate_degraded_analysis(report: AnalysisReport, policy: ThresholdPolicy) -> Optional[str]:
    """
    Without the primary scanner a moderate score is treated as unsafe.
    """
    score = report.risk_score
            f"Slither unavailable AND risk score {_num(score)} > "
            f"{_num(policy.slither_fallback_risk_ceiling)}"
        )
    return None


GATES: Tuple[Callable[[AnalysisReport, ThresholdPolicy], Optional[str]], ...] = (
    gate_critical_vulns,
    gate_risk_score,
    gate_high_vulns,
    gate_degraded_analysis,
)


# ============================================================
# Evaluation
# ============================================================

def evaluate(report: AnalysisReport, policy: ThresholdPolicy) -> Verdict:
    """
    Evaluate every gate against the report.

    Args:
        report: Successful analysis report from the scanner
        policy: Threshold policy

    Returns:
        Verdict with ``blocked`` set if any gate fired and one reason per
        fired gate, in gate order
    """
    reasons: List[str] = []
    for gate in GATES:
        reason = gate(report, policy)
        if reason is not None:
            reasons.append(reason)
    return Verdict(blocked=bool(reasons), reasons=tuple(reasons))


def advisory_status(report: AnalysisReport, policy: ThresholdPolicy) -> Tuple[CheckStatus, str, Verdict]:
    """
    Compute the check-only status for a report.

    BLOCKED comes from :func:`evaluate`, which already covers the
    degraded-analysis case. WARNING is advisory only.
    """
    verdict = evaluate(report, policy)
    if verdict.blocked:
        return CheckStatus.BLOCKED, verdict.reasons[0], verdict

    score = report.risk_score
    if score > policy.advisory_risk_ceiling:
        return CheckStatus.WARNING, "Minor security concerns - review recommended", verdict
    return CheckStatus.ALLOWED, "Contract passed security check - safe to deploy", verdict


def advisory_warnings(report: AnalysisReport, policy: ThresholdPolicy) -> List[str]:
    """Non-blocking warnings attached to an allowed deployment."""
    if report.risk_score > policy.advisory_risk_ceiling:
        return ["Contract has some security concerns but is within acceptable limits"]
    return []
