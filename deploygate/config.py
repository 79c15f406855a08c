"""
Configuration module for deploygate.

Centralizes all configuration with environment variable support.
The security threshold policy is fixed at import time and is never
reloaded for the life of the process.
"""

import os
from dataclasses import dataclass
from typing import Dict, Any

# ============================================================
# Environment Configuration
# ============================================================

# External collaborators
SCANNER_URL = os.getenv("SCANNER_URL", "")
COMPILER_URL = os.getenv("COMPILER_URL", "")
DEPLOYER_URL = os.getenv("DEPLOYER_URL", "")
COLLABORATOR_TIMEOUT_SECONDS = float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "120"))

# Deduplication lock
LOCK_TTL_SECONDS = float(os.getenv("LOCK_TTL_SECONDS", "120"))
LOCK_SWEEP_INTERVAL_SECONDS = float(os.getenv("LOCK_SWEEP_INTERVAL_SECONDS", "30"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("LOG_FILE") or None

# Submission defaults
DEFAULT_CONTRACT_NAME = "MyContract"


# ============================================================
# Threshold Policy (hardcoded)
# ============================================================

RISK_SCORE_THRESHOLD = 50
CRITICAL_VULN_THRESHOLD = 1
HIGH_VULN_THRESHOLD = 5
SLITHER_FALLBACK_RISK_CEILING = 30
ADVISORY_RISK_CEILING = 25


@dataclass(frozen=True)
class ThresholdPolicy:
    """
    Numeric limits governing the verdict engine.

    Immutable; shared read-only across all requests.
    """
    risk_score_threshold: float = RISK_SCORE_THRESHOLD
    critical_vuln_threshold: int = CRITICAL_VULN_THRESHOLD
    high_vuln_threshold: int = HIGH_VULN_THRESHOLD
    slither_fallback_risk_ceiling: float = SLITHER_FALLBACK_RISK_CEILING
    advisory_risk_ceiling: float = ADVISORY_RISK_CEILING

    def to_wire(self) -> Dict[str, Any]:
        """Thresholds as reported to clients."""
        return {
            "riskScoreThreshold": self.risk_score_threshold,
            "criticalVulnThreshold": self.critical_vuln_threshold,
            "highVulnThreshold": self.high_vuln_threshold,
            "slitherFallbackRiskCeiling": self.slither_fallback_risk_ceiling,
            "advisoryRiskCeiling": self.advisory_risk_ceiling,
        }


DEFAULT_POLICY = ThresholdPolicy()


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Report which external collaborators are configured.
    Returns dict of name -> configured.
    """
    urls = {
        "scanner": SCANNER_URL,
        "compiler": COMPILER_URL,
        "deployer": DEPLOYER_URL,
    }
    return {name: bool(url) for name, url in urls.items()}


# ============================================================
# Feature Flags
# ============================================================

def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DEPLOYGATE_DEBUG", "").lower() in ("1", "true", "yes")
