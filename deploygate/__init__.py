"""
deploygate: security-gated smart contract deployment.

Every deployment passes through a single invariant:

    NO CONTRACT ABOVE THE RISK THRESHOLDS IS DEPLOYED
    WITHOUT AN EXPLICITLY CONFIRMED OVERRIDE

Three operating modes share one verdict engine and one pipeline:

    gated        analyze -> gate -> compile -> deploy
    check-only   analyze -> gate, no side effects
    forced       analyze (audit only) -> compile -> deploy

Usage:
    from deploygate import DeploymentController, DeploymentPipeline, DeduplicationLock

    pipeline = DeploymentPipeline(scanner, compiler, deployer, DeduplicationLock())
    controller = DeploymentController(pipeline)
    outcome = controller.analyze_and_deploy(Submission(source_code=code), request_id)
"""

__version__ = "1.0.0"

from .config import ThresholdPolicy, DEFAULT_POLICY
from .errors import DeployGateError, InputError, ConflictError, StepFailure
from .locks import DeduplicationLock
from .models import AnalysisReport, CompilationResult, DeploymentResult, Submission
from .modes import DeploymentController, CheckResult
from .pipeline import DeploymentPipeline, PipelineMode, Blocked, Failed, Succeeded
from .status import StatusTracker
from .verdict import Verdict, CheckStatus, evaluate

__all__ = [
    "ThresholdPolicy",
    "DEFAULT_POLICY",
    "DeployGateError",
    "InputError",
    "ConflictError",
    "StepFailure",
    "DeduplicationLock",
    "AnalysisReport",
    "CompilationResult",
    "DeploymentResult",
    "Submission",
    "DeploymentController",
    "CheckResult",
    "DeploymentPipeline",
    "PipelineMode",
    "Blocked",
    "Failed",
    "Succeeded",
    "StatusTracker",
    "Verdict",
    "CheckStatus",
    "evaluate",
]
