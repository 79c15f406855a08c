"""
Wire formatting for deploygate.

Maps pipeline outcomes and check results to HTTP status codes and JSON
bodies. Every terminal deployment response carries explicit ``blocked``
and ``deployed`` flags; only a ``Succeeded`` outcome sets ``deployed``.
"""

from typing import Any, Dict, List, Optional, Tuple

from .config import ThresholdPolicy
from .errors import DeployGateError, ConflictError, StepFailure
from .models import AnalysisReport
from .modes import CheckResult
from .pipeline import Blocked, Failed, Succeeded, PipelineOutcome
from .verdict import advisory_warnings

Response = Tuple[int, Dict[str, Any]]

FORCE_RECOMMENDATION = (
    "Fix the security issues above or use POST /api/deploy/force-deploy "
    "with confirmOverride: true"
)
BYPASS_WARNING = "This deployment bypassed all security checks and should only be used for testing"
NO_RECOMMENDATIONS = ["Contract appears secure - no specific recommendations"]


def _vulnerabilities(report: AnalysisReport) -> List[Dict[str, Any]]:
    return [v.model_dump(by_alias=True, exclude_none=True) for v in report.vulnerabilities]


def _deployment_body(outcome: Succeeded) -> Dict[str, Any]:
    d = outcome.deployment
    return {
        "contractAddress": d.contract_address,
        "transactionHash": d.transaction_hash,
        "explorerUrl": d.explorer_url,
        "gasUsed": d.gas_used,
        "deploymentCost": d.deployment_cost,
        "networkName": d.network_name,
    }


def _compilation_body(outcome: Succeeded) -> Dict[str, Any]:
    return {
        "contractName": outcome.compilation.contract_name,
        "warningsCount": len(outcome.compilation.warnings or []),
    }


def _bypass_security(report: Optional[AnalysisReport], policy: ThresholdPolicy) -> Dict[str, Any]:
    if report is not None and report.success:
        return {
            "riskScore": report.risk_score,
            "interpretation": report.interpretation,
            "vulnerabilities": _vulnerabilities(report),
            "summary": report.summary,
            "slitherUsed": report.slither_used,
            "thresholds": policy.to_wire(),
            "bypassedSecurity": True,
            "note": "Security analysis was performed but IGNORED",
        }
    return {
        "error": (report.error if report is not None else None) or "Security analysis failed",
        "analysisAvailable": False,
        "bypassedSecurity": True,
        "note": "Deployed without any security analysis",
    }


def blocked_response(outcome: Blocked, policy: ThresholdPolicy, request_id: str) -> Response:
    report = outcome.report
    reasons = list(outcome.verdict.reasons)
    return 403, {
        "success": False,
        "blocked": True,
        "deployed": False,
        "error": "DEPLOYMENT BLOCKED: Contract has security risks",
        "riskScore": report.risk_score,
        "interpretation": report.interpretation,
        "vulnerabilities": _vulnerabilities(report),
        "summary": report.summary,
        "step": "security_check",
        "blockReasons": reasons,
        "slitherUsed": report.slither_used,
        "thresholds": policy.to_wire(),
        "message": "DEPLOYMENT BLOCKED: " + " | ".join(reasons),
        "recommendation": FORCE_RECOMMENDATION,
        "requestId": request_id,
    }


def failed_response(outcome: Failed, policy: ThresholdPolicy, request_id: str) -> Response:
    failure = StepFailure(outcome.step, outcome.error, outcome.errors)
    body = step_failure_body(failure, request_id)
    if outcome.forced:
        body["forcedDeployment"] = True
        body["bypassedSecurity"] = True
        body["warning"] = BYPASS_WARNING
        body["security"] = _bypass_security(outcome.report, policy)
    return failure.status_code, body


def step_failure_body(failure: StepFailure, request_id: str = "") -> Dict[str, Any]:
    body = {
        "success": False,
        "blocked": False,
        "deployed": False,
        "error": failure.error,
        "step": failure.step,
    }
    if failure.errors is not None:
        body["errors"] = failure.errors
    if request_id:
        body["requestId"] = request_id
    return body


def gated_success_response(outcome: Succeeded, policy: ThresholdPolicy, request_id: str) -> Response:
    report = outcome.report
    return 200, {
        "success": True,
        "blocked": False,
        "deployed": True,
        "message": "Contract successfully analyzed, compiled, and deployed",
        "security": {
            "riskScore": report.risk_score,
            "interpretation": report.interpretation,
            "vulnerabilitiesCount": len(report.vulnerabilities),
            "summary": report.summary,
            "slitherUsed": report.slither_used,
            "passed": True,
            "thresholds": policy.to_wire(),
            "warnings": advisory_warnings(report, policy),
        },
        "compilation": _compilation_body(outcome),
        "deployment": _deployment_body(outcome),
        "requestId": request_id,
    }


def forced_success_response(outcome: Succeeded, policy: ThresholdPolicy, request_id: str) -> Response:
    security = _bypass_security(outcome.report, policy)
    return 200, {
        "success": True,
        "forcedDeployment": True,
        "bypassedSecurity": True,
        "blocked": False,
        "deployed": True,
        "message": "CONTRACT FORCE DEPLOYED - ALL SECURITY CHECKS BYPASSED",
        "warning": BYPASS_WARNING,
        "security": security,
        "compilation": _compilation_body(outcome),
        "deployment": _deployment_body(outcome),
        "requestId": request_id,
    }


def outcome_response(outcome: PipelineOutcome, policy: ThresholdPolicy, request_id: str) -> Response:
    if isinstance(outcome, Blocked):
        return blocked_response(outcome, policy, request_id)
    if isinstance(outcome, Failed):
        return failed_response(outcome, policy, request_id)
    if outcome.forced:
        return forced_success_response(outcome, policy, request_id)
    return gated_success_response(outcome, policy, request_id)


def check_response(result: CheckResult, policy: ThresholdPolicy) -> Response:
    report = result.report
    would_block = result.verdict.blocked
    recommendations = [v.recommendation for v in report.vulnerabilities if v.recommendation]
    return 200, {
        "success": True,
        "riskScore": report.risk_score,
        "interpretation": report.interpretation,
        "deploymentStatus": result.status.value,
        "deploymentAllowed": result.deployment_allowed,
        "wouldBlock": would_block,
        "blockReasons": list(result.verdict.reasons) if would_block else [],
        "thresholds": policy.to_wire(),
        "vulnerabilities": _vulnerabilities(report),
        "summary": report.summary,
        "slitherUsed": report.slither_used,
        "message": result.message,
        "recommendations": recommendations or NO_RECOMMENDATIONS,
    }


def error_response(exc: DeployGateError, request_id: str = "") -> Response:
    if isinstance(exc, StepFailure):
        return exc.status_code, step_failure_body(exc, request_id)
    body = {"success": False, "blocked": False, "deployed": False, "error": exc.message}
    if isinstance(exc, ConflictError):
        body["message"] = "Please wait for the current deployment to complete"
    elif exc.details.get("hint"):
        body["message"] = exc.details["hint"]
    return exc.status_code, body
