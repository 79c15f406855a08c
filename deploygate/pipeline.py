"""
Deployment pipeline for deploygate.

Runs analyze -> gate -> compile -> deploy, stopping at the first
failure or block. The outcome is a plain tagged value; turning it into
an HTTP response is the boundary's job.

Invariant enforced here:

    NO CONTRACT ABOVE THE RISK THRESHOLDS REACHES THE DEPLOYER
    UNLESS THE RUN IS EXPLICITLY FORCED

and, through :meth:`DeploymentPipeline.execute`, at most one run per
source fingerprint at any instant.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .collaborators import Scanner, Compiler, DeploymentClient
from .config import ThresholdPolicy, DEFAULT_POLICY
from .errors import ConflictError
from .locks import DeduplicationLock
from .logging_config import AuditLogger, audit_log
from .models import AnalysisReport, CompilationResult, DeploymentResult, Submission
from .util import short_hash
from .verdict import Verdict, evaluate

logger = logging.getLogger(__name__)

STEP_ANALYSIS = "analysis"
STEP_COMPILATION = "compilation"
STEP_DEPLOYMENT = "deployment"


class PipelineMode(str, Enum):
    GATED = "gated"
    FORCED = "forced"


@dataclass(frozen=True)
class Blocked:
    """The verdict refused deployment. Compile and deploy never ran."""
    verdict: Verdict
    report: AnalysisReport


@dataclass(frozen=True)
class Failed:
    """A collaborator reported failure for ``step``; ``forced`` marks a bypass run."""
    step: str
    error: Optional[str]
    errors: Any = None
    report: Optional[AnalysisReport] = None
    forced: bool = False


@dataclass(frozen=True)
class Succeeded:
    report: AnalysisReport
    compilation: CompilationResult
    deployment: DeploymentResult
    verdict: Optional[Verdict] = None
    forced: bool = False


PipelineOutcome = Union[Blocked, Failed, Succeeded]


class DeploymentPipeline:
    """
    Sequences the external collaborators around the verdict engine.

    The lock is injected so tests can observe or replace it.
    """

    def __init__(
        self,
        scanner: Scanner,
        compiler: Compiler,
        deployer: DeploymentClient,
        lock: DeduplicationLock,
        policy: ThresholdPolicy = DEFAULT_POLICY,
        audit: AuditLogger = audit_log,
    ):
        self.scanner = scanner
        self.compiler = compiler
        self.deployer = deployer
        self.lock = lock
        self.policy = policy
        self.audit = audit

    def analyze(self, source_code: str, request_id: str = "") -> AnalysisReport:
        report = self.scanner.analyze(source_code)
        self.audit.analysis_complete(
            request_id,
            success=report.success,
            risk_score=report.risk_score if report.success else None,
            summary=report.summary if report.success else None,
            vulnerabilities=len(report.vulnerabilities),
            slither_used=report.slither_used if report.success else None,
        )
        return report

    def gate(self, report: AnalysisReport, request_id: str = "") -> Verdict:
        verdict = evaluate(report, self.policy)
        self.audit.security_gate(request_id, verdict.blocked, list(verdict.reasons))
        return verdict

    def run(self, submission: Submission, mode: PipelineMode, request_id: str = "") -> PipelineOutcome:
        """
        Run the pipeline once. Does not touch the lock.

        In forced mode a failed analysis is kept for the audit trail and
        the gate is skipped.
        """
        forced = mode == PipelineMode.FORCED

        report = self.analyze(submission.source_code, request_id)
        verdict = None
        if not report.success:
            if not forced:
                self.audit.step_failed(request_id, STEP_ANALYSIS, report.error)
                return Failed(step=STEP_ANALYSIS, error=report.error)
            logger.warning("[%s] Analysis unavailable; forced run continues", request_id)
        elif not forced:
            verdict = self.gate(report, request_id)
            if verdict.blocked:
                self.audit.deployment_blocked(
                    request_id, submission.fingerprint, report.risk_score, list(verdict.reasons),
                )
                return Blocked(verdict=verdict, report=report)

        compilation = self.compiler.compile(submission.source_code, submission.file_name)
        if not compilation.success:
            self.audit.step_failed(request_id, STEP_COMPILATION, compilation.error)
            return Failed(step=STEP_COMPILATION, error=compilation.error,
                          errors=compilation.errors, report=report, forced=forced)
        logger.info("[%s] Compiled %s", request_id, compilation.contract_name)

        deployment = self.deployer.deploy(
            compilation.abi,
            compilation.bytecode,
            compilation.contract_name,
            submission.constructor_args,
        )
        if not deployment.success:
            self.audit.step_failed(request_id, STEP_DEPLOYMENT, deployment.error)
            return Failed(step=STEP_DEPLOYMENT, error=deployment.error, report=report,
                          forced=forced)

        self.audit.deployment_complete(
            request_id, deployment.contract_address, deployment.transaction_hash, forced=forced,
        )
        return Succeeded(report=report, compilation=compilation, deployment=deployment,
                         verdict=verdict, forced=forced)

    def execute(self, submission: Submission, request_id: str, mode: PipelineMode) -> PipelineOutcome:
        """
        Run the pipeline while holding the lock for the submission's fingerprint.

        Raises:
            ConflictError: another run for the same source is in flight
        """
        fp = submission.fingerprint
        if not self.lock.try_acquire(fp, request_id):
            holder = self.lock.holder(fp)
            self.audit.duplicate_rejected(request_id, fp, holder)
            raise ConflictError(fp, holder)
        logger.debug("[%s] Acquired lock for %s", request_id, short_hash(fp))
        try:
            return self.run(submission, mode, request_id)
        finally:
            self.lock.release(fp, request_id)
            logger.debug("[%s] Released lock for %s", request_id, short_hash(fp))
