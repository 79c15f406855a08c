from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from .config import DEFAULT_CONTRACT_NAME
from .util import fingerprint


# ============================================================
# HTTP request bodies
# ============================================================

class CheckRequest(BaseModel):
    code: Optional[str] = None


class DeployRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None
    contract_name: str = Field(default=DEFAULT_CONTRACT_NAME, alias="contractName")
    constructor_args: List[Any] = Field(default_factory=list, alias="constructorArgs")


class ForceDeployRequest(DeployRequest):
    # Strict: "true", 1 and friends are rejected, absence is not a default.
    confirm_override: Optional[StrictBool] = Field(default=None, alias="confirmOverride")


# ============================================================
# Collaborator payloads
# ============================================================

class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Vulnerability(_Wire):
    severity: str = ""
    description: str = ""
    recommendation: Optional[str] = None


class AnalysisReport(_Wire):
    success: bool
    risk_score: float = Field(default=0, alias="riskScore")
    vulnerabilities: List[Vulnerability] = Field(default_factory=list)
    summary: Dict[str, Optional[int]] = Field(default_factory=dict)
    slither_used: bool = Field(default=False, alias="slitherUsed")
    interpretation: Optional[str] = None
    error: Optional[str] = None

    def count(self, severity: str) -> int:
        return int(self.summary.get(severity) or 0)

    @property
    def critical_count(self) -> int:
        return self.count("critical")

    @property
    def high_count(self) -> int:
        return self.count("high")


class CompilationResult(_Wire):
    success: bool
    abi: Optional[List[Any]] = None
    bytecode: Optional[str] = None
    contract_name: Optional[str] = Field(default=None, alias="contractName")
    warnings: List[Any] = Field(default_factory=list)
    error: Optional[str] = None
    errors: Optional[Any] = None


class DeploymentResult(_Wire):
    success: bool
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")
    transaction_hash: Optional[str] = Field(default=None, alias="transactionHash")
    explorer_url: Optional[str] = Field(default=None, alias="explorerUrl")
    gas_used: Optional[Any] = Field(default=None, alias="gasUsed")
    deployment_cost: Optional[Any] = Field(default=None, alias="deploymentCost")
    network_name: Optional[str] = Field(default=None, alias="networkName")
    error: Optional[str] = None


# ============================================================
# Domain
# ============================================================

@dataclass(frozen=True)
class Submission:
    """A contract submitted for deployment. Immutable once received."""
    source_code: str
    contract_name: str = DEFAULT_CONTRACT_NAME
    constructor_args: Tuple[Any, ...] = field(default_factory=tuple)

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.source_code)

    @property
    def file_name(self) -> str:
        return f"{self.contract_name}.sol"

    @classmethod
    def from_request(cls, req: DeployRequest) -> "Submission":
        return cls(
            source_code=req.code or "",
            contract_name=req.contract_name or DEFAULT_CONTRACT_NAME,
            constructor_args=tuple(req.constructor_args),
        )
