"""
Error taxonomy for deploygate.

Every exception carries the HTTP status it is surfaced with; a
``StepFailure`` also names the failed step. A security block is not an
exception: it is a ``Blocked`` pipeline outcome.
"""

from typing import Any, Optional


class DeployGateError(Exception):
    """Base class; never raised directly."""
    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class InputError(DeployGateError):
    """Missing or malformed submission. Raised before any lock side effect."""
    status_code = 400


class ConflictError(DeployGateError):
    """A pipeline run for the same fingerprint is already in flight."""
    status_code = 429

    def __init__(self, fingerprint: str, holder: Optional[str] = None):
        super().__init__(
            "Deployment already in progress for this contract",
            fingerprint=fingerprint,
            holder=holder,
        )
        self.fingerprint = fingerprint
        self.holder = holder


class StepFailure(DeployGateError):
    """A collaborator reported failure for one pipeline step."""

    # Compilation errors come from the submitted source, not from us.
    _STATUS_BY_STEP = {
        "analysis": 500,
        "compilation": 400,
        "deployment": 500,
    }

    def __init__(self, step: str, error: Optional[str], errors: Any = None):
        super().__init__(error or f"{step} failed")
        self.step = step
        self.error = error
        self.errors = errors
        self.status_code = self._STATUS_BY_STEP.get(step, 500)
