"""
External collaborators for deploygate.

The vulnerability scanner, the compiler and the chain deployment client
are black boxes reached over HTTP. Transport errors and malformed
responses are reported as unsuccessful results so they surface as a
failure of the step that called them.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .config import SCANNER_URL, COMPILER_URL, DEPLOYER_URL, COLLABORATOR_TIMEOUT_SECONDS
from .models import AnalysisReport, CompilationResult, DeploymentResult

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class Scanner:
    def analyze(self, source_code: str) -> AnalysisReport:
        raise NotImplementedError


class Compiler:
    def compile(self, source_code: str, file_name: str) -> CompilationResult:
        raise NotImplementedError


class DeploymentClient:
    def deploy(self, abi: Any, bytecode: Optional[str], contract_name: Optional[str],
               constructor_args: Sequence[Any]) -> DeploymentResult:
        raise NotImplementedError


def _post(name: str, url: str, payload: Dict[str, Any], result_type: Type[R], timeout: float) -> R:
    """POST JSON to a collaborator and parse its result, failing closed."""
    if not url:
        return result_type.model_validate({"success": False, "error": f"{name} endpoint not configured"})
    try:
        r = requests.post(url, json=payload, timeout=timeout)
    except requests.RequestException as e:
        logger.error("%s request to %s failed: %s", name, url, e)
        return result_type.model_validate({"success": False, "error": f"{name} unavailable: {e}"})
    try:
        body = r.json()
    except ValueError:
        logger.error("%s returned non-JSON response (HTTP %s)", name, r.status_code)
        return result_type.model_validate({"success": False, "error": f"{name} returned an invalid response"})

    if not isinstance(body, dict):
        return result_type.model_validate({"success": False, "error": f"{name} returned an invalid response"})
    # Error bodies without an explicit flag still count as failures.
    body.setdefault("success", r.ok)
    try:
        return result_type.model_validate(body)
    except ValidationError as e:
        logger.error("%s response did not match contract: %s", name, e)
        return result_type.model_validate({"success": False, "error": f"{name} returned an invalid response"})


class HttpScanner(Scanner):
    def __init__(self, url: str, timeout: float = COLLABORATOR_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def analyze(self, source_code: str) -> AnalysisReport:
        return _post("scanner", self.url, {"code": source_code}, AnalysisReport, self.timeout)


class HttpCompiler(Compiler):
    def __init__(self, url: str, timeout: float = COLLABORATOR_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def compile(self, source_code: str, file_name: str) -> CompilationResult:
        return _post("compiler", self.url, {"code": source_code, "fileName": file_name},
                     CompilationResult, self.timeout)


class HttpDeploymentClient(DeploymentClient):
    def __init__(self, url: str, timeout: float = COLLABORATOR_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def deploy(self, abi, bytecode, contract_name, constructor_args) -> DeploymentResult:
        payload = {
            "abi": abi,
            "bytecode": bytecode,
            "contractName": contract_name,
            "constructorArgs": list(constructor_args),
        }
        return _post("deployer", self.url, payload, DeploymentResult, self.timeout)


def get_scanner() -> Scanner:
    return HttpScanner(SCANNER_URL)


def get_compiler() -> Compiler:
    return HttpCompiler(COMPILER_URL)


def get_deployer() -> DeploymentClient:
    return HttpDeploymentClient(DEPLOYER_URL)
