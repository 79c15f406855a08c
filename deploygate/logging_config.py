"""
Logging configuration for deploygate.

Provides structured JSON logging and the deployment audit trail.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

from .util import generate_request_id

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line.

    Audit records carry their event fields in ``extra_fields``; these
    are merged at the top level next to the standard keys.
    """

    service = "deploygate"

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for deployment audit events.

    One record per pipeline transition, correlated by request ID, so
    every block, failure, and bypass can be reconstructed after the fact.
    """

    def __init__(self, name: str = "deploygate.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        extra = {
            "event_type": event_type,
            "request_id": kwargs.pop("request_id", None) or request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def deployment_request(
        self,
        request_id: str,
        fingerprint: str,
        contract_name: str,
        mode: str
    ) -> None:
        """Log an incoming deployment request."""
        self._log(
            logging.INFO,
            "DEPLOYMENT_REQUEST",
            request_id=request_id,
            fingerprint=fingerprint,
            contract_name=contract_name,
            mode=mode,
            message=f"{mode} deployment requested for {contract_name}"
        )

    def duplicate_rejected(
        self,
        request_id: str,
        fingerprint: str,
        holder: Optional[str] = None
    ) -> None:
        """Log a submission rejected because the same source is in flight."""
        self._log(
            logging.WARNING,
            "DUPLICATE_REJECTED",
            request_id=request_id,
            fingerprint=fingerprint,
            holder=holder,
            message=f"Duplicate deployment attempt for {fingerprint[:12]}"
        )

    def analysis_complete(
        self,
        request_id: str,
        success: bool,
        risk_score: Optional[float] = None,
        summary: Optional[Dict[str, Any]] = None,
        vulnerabilities: int = 0,
        slither_used: Optional[bool] = None
    ) -> None:
        """Log the scanner result."""
        self._log(
            logging.INFO if success else logging.ERROR,
            "ANALYSIS_COMPLETE",
            request_id=request_id,
            success=success,
            risk_score=risk_score,
            summary=summary,
            vulnerabilities=vulnerabilities,
            slither_used=slither_used,
            message=f"Analysis {'succeeded' if success else 'failed'} (risk score {risk_score})"
        )

    def security_gate(
        self,
        request_id: str,
        blocked: bool,
        reasons: List[str]
    ) -> None:
        """Log a gate decision."""
        self._log(
            logging.WARNING if blocked else logging.INFO,
            "SECURITY_GATE",
            request_id=request_id,
            blocked=blocked,
            reasons=reasons,
            message="BLOCKED: " + " | ".join(reasons) if blocked else "passed"
        )

    def deployment_blocked(
        self,
        request_id: str,
        fingerprint: str,
        risk_score: Optional[float],
        reasons: List[str]
    ) -> None:
        """Log a gated run refused before compilation."""
        self._log(
            logging.WARNING,
            "DEPLOYMENT_BLOCKED",
            request_id=request_id,
            fingerprint=fingerprint,
            risk_score=risk_score,
            reasons=reasons,
            message=f"Deployment of {fingerprint[:12]} blocked ({len(reasons)} reason(s))"
        )

    def lock_expired(
        self,
        fingerprint: str,
        holder: str,
        held_for: float
    ) -> None:
        """Log a lock entry force-expired by its TTL."""
        self._log(
            logging.WARNING,
            "LOCK_EXPIRED",
            request_id=holder,
            fingerprint=fingerprint,
            held_for=round(held_for, 3),
            message=f"Lock for {fingerprint[:12]} expired after {held_for:.0f}s"
        )

    def step_failed(
        self,
        request_id: str,
        step: str,
        error: Optional[str]
    ) -> None:
        """Log a collaborator failure."""
        self._log(
            logging.ERROR,
            "STEP_FAILED",
            request_id=request_id,
            step=step,
            error=error,
            message=f"{step} failed: {error}"
        )

    def deployment_complete(
        self,
        request_id: str,
        contract_address: Optional[str],
        transaction_hash: Optional[str],
        forced: bool = False
    ) -> None:
        """Log a successful deployment."""
        self._log(
            logging.WARNING if forced else logging.INFO,
            "DEPLOYMENT_COMPLETE",
            request_id=request_id,
            contract_address=contract_address,
            transaction_hash=transaction_hash,
            forced=forced,
            message=f"Deployed at {contract_address}" + (" (SECURITY BYPASSED)" if forced else "")
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Install the root handlers for the service and the CLI.

    Args:
        level: Root log level name
        json_format: Emit ``StructuredFormatter`` lines instead of plain text
        log_file: Also append records to this file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = StructuredFormatter() if json_format else logging.Formatter(
        '%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # deployment requests are covered by the audit trail
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the request ID for the current context.

    Args:
        request_id: Request ID to set, or None to generate one

    Returns:
        The request ID that was set
    """
    if request_id is None:
        request_id = generate_request_id()
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
