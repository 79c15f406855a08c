import threading

import pytest
from fastapi.testclient import TestClient

from deploygate.collaborators import Scanner, Compiler, DeploymentClient
from deploygate.locks import DeduplicationLock
from deploygate.main import create_app
from deploygate.models import AnalysisReport, CompilationResult, DeploymentResult
from deploygate.modes import DeploymentController
from deploygate.pipeline import DeploymentPipeline

SAFE_CODE = "contract A{}"


def make_report(risk=10, critical=0, high=0, slither=True, vulns=None, success=True, error=None):
    """Scanner payload in wire (camelCase) form."""
    return AnalysisReport.model_validate({
        "success": success,
        "riskScore": risk,
        "vulnerabilities": vulns or [],
        "summary": {"critical": critical, "high": high, "medium": 0, "low": 0},
        "slitherUsed": slither,
        "interpretation": "test report",
        "error": error,
    })


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeScanner(Scanner):
    def __init__(self, report=None):
        self.report = report or make_report()
        self.calls = []
        # Optional rendezvous for concurrency tests
        self.entered = threading.Event()
        self.proceed = None

    def analyze(self, source_code):
        self.calls.append(source_code)
        self.entered.set()
        if self.proceed is not None:
            self.proceed.wait(timeout=5)
        return self.report


class FakeCompiler(Compiler):
    def __init__(self, success=True, error=None):
        self.success = success
        self.error = error
        self.calls = []

    def compile(self, source_code, file_name):
        self.calls.append((source_code, file_name))
        if not self.success:
            return CompilationResult(success=False, error=self.error or "ParserError",
                                     errors=[{"message": self.error or "ParserError"}])
        return CompilationResult.model_validate({
            "success": True,
            "abi": [{"type": "constructor", "inputs": []}],
            "bytecode": "0x6080",
            "contractName": file_name[:-4],
            "warnings": ["SPDX license identifier not provided"],
        })


class FakeDeployer(DeploymentClient):
    def __init__(self, success=True, error=None, raises=None):
        self.success = success
        self.error = error
        self.raises = raises
        self.calls = []

    def deploy(self, abi, bytecode, contract_name, constructor_args):
        self.calls.append((abi, bytecode, contract_name, tuple(constructor_args)))
        if self.raises is not None:
            raise self.raises
        if not self.success:
            return DeploymentResult(success=False, error=self.error or "insufficient funds")
        return DeploymentResult.model_validate({
            "success": True,
            "contractAddress": "0x00000000000000000000000000000000000000aa",
            "transactionHash": "0xabc",
            "explorerUrl": "https://sepolia.etherscan.io/tx/0xabc",
            "gasUsed": "21000",
            "deploymentCost": "0.0001",
            "networkName": "sepolia",
        })


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lock(clock):
    return DeduplicationLock(ttl_seconds=120, clock=clock)


@pytest.fixture
def scanner():
    return FakeScanner()


@pytest.fixture
def compiler():
    return FakeCompiler()


@pytest.fixture
def deployer():
    return FakeDeployer()


@pytest.fixture
def pipeline(scanner, compiler, deployer, lock):
    return DeploymentPipeline(scanner, compiler, deployer, lock)


@pytest.fixture
def controller(pipeline):
    return DeploymentController(pipeline)


@pytest.fixture
def client(controller):
    return TestClient(create_app(controller, sweep_interval=None))
