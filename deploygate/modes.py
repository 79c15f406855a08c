"""
Operating modes for deploygate.

Gated, check-only, and forced entry points over one pipeline and one
verdict engine. Modes differ only in control flow:

    gated       lock, analyze, gate, compile, deploy
    check-only  analyze, gate (no lock, no side effects)
    forced      explicit confirmation, lock, analyze, compile, deploy
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import InputError, StepFailure
from .models import AnalysisReport, Submission
from .pipeline import DeploymentPipeline, PipelineMode, PipelineOutcome, STEP_ANALYSIS
from .verdict import CheckStatus, Verdict, advisory_status

logger = logging.getLogger(__name__)

NO_CODE = "No Solidity code provided"
OVERRIDE_REQUIRED = "Force deployment requires confirmOverride: true"
OVERRIDE_WARNING = "This bypasses ALL security checks and should only be used for testing"


@dataclass(frozen=True)
class CheckResult:
    report: AnalysisReport
    verdict: Verdict
    status: CheckStatus
    message: str

    @property
    def deployment_allowed(self) -> bool:
        return self.status == CheckStatus.ALLOWED


def require_code(code) -> str:
    if not code or not isinstance(code, str):
        raise InputError(NO_CODE)
    return code


class DeploymentController:

    def __init__(self, pipeline: DeploymentPipeline):
        self.pipeline = pipeline

    @property
    def lock(self):
        return self.pipeline.lock

    @property
    def policy(self):
        return self.pipeline.policy

    def analyze_and_deploy(self, submission: Submission, request_id: str) -> PipelineOutcome:
        """
        Gated deployment.

        Raises:
            InputError: no source code
            ConflictError: the same source is already being deployed
        """
        require_code(submission.source_code)
        self.pipeline.audit.deployment_request(
            request_id, submission.fingerprint, submission.contract_name, PipelineMode.GATED.value,
        )
        return self.pipeline.execute(submission, request_id, PipelineMode.GATED)

    def check_only(self, code, request_id: str = "") -> CheckResult:
        """
        Report the would-be verdict without compiling or deploying.

        Raises:
            InputError: no source code
            StepFailure: the scanner reported failure
        """
        code = require_code(code)
        report = self.pipeline.analyze(code, request_id)
        if not report.success:
            raise StepFailure(STEP_ANALYSIS, report.error)
        status, message, verdict = advisory_status(report, self.policy)
        logger.info("Check result: %s - %s", status.value, message)
        return CheckResult(report=report, verdict=verdict, status=status, message=message)

    def force_deploy(self, submission: Submission, request_id: str,
                     confirm_override: Optional[bool]) -> PipelineOutcome:
        """
        Deploy regardless of the verdict.

        Only the literal ``True`` confirms; anything else is rejected
        before any collaborator or the lock is touched.

        Raises:
            InputError: missing confirmation or source code
            ConflictError: the same source is already being deployed
        """
        if confirm_override is not True:
            raise InputError(OVERRIDE_REQUIRED, hint=OVERRIDE_WARNING)
        require_code(submission.source_code)
        self.pipeline.audit.deployment_request(
            request_id, submission.fingerprint, submission.contract_name, PipelineMode.FORCED.value,
        )
        self.pipeline.audit.security_event(
            "FORCE_DEPLOYMENT",
            severity="critical",
            request_id=request_id,
            fingerprint=submission.fingerprint,
            contract_name=submission.contract_name,
        )
        return self.pipeline.execute(submission, request_id, PipelineMode.FORCED)
