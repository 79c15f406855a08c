"""
Pipeline and mode controller tests.

Critical invariant tested:
    A BLOCKED CONTRACT NEVER REACHES THE COMPILER OR DEPLOYER
"""

import threading

import pytest

from deploygate.errors import ConflictError, InputError, StepFailure
from deploygate.models import Submission
from deploygate.pipeline import Blocked, Failed, Succeeded, PipelineMode, DeploymentPipeline
from deploygate.verdict import CheckStatus
from conftest import SAFE_CODE, FakeScanner, make_report


def _sub(code=SAFE_CODE, name="Token", args=()):
    return Submission(source_code=code, contract_name=name, constructor_args=tuple(args))


def test_submission_fingerprint_ignores_name_and_args():
    a = _sub(name="A", args=(1,))
    b = _sub(name="B", args=(2, 3))
    assert a.fingerprint == b.fingerprint
    assert a.fingerprint != _sub(code="contract B{}").fingerprint


def test_gated_success_runs_all_steps(pipeline, scanner, compiler, deployer):
    outcome = pipeline.run(_sub(args=("100",)), PipelineMode.GATED, "req-1")
    assert isinstance(outcome, Succeeded)
    assert not outcome.forced
    assert outcome.verdict is not None and not outcome.verdict.blocked
    assert scanner.calls == [SAFE_CODE]
    assert compiler.calls == [(SAFE_CODE, "Token.sol")]
    abi, bytecode, name, args = deployer.calls[0]
    assert bytecode == "0x6080"
    assert name == "Token"
    assert args == ("100",)


def test_blocked_never_compiles_or_deploys(pipeline, scanner, compiler, deployer):
    scanner.report = make_report(risk=60)
    outcome = pipeline.run(_sub(), PipelineMode.GATED)
    assert isinstance(outcome, Blocked)
    assert outcome.verdict.blocked
    assert compiler.calls == []
    assert deployer.calls == []


def test_analysis_failure_stops_gated_run(pipeline, scanner, compiler):
    scanner.report = make_report(success=False, error="scanner crashed")
    outcome = pipeline.run(_sub(), PipelineMode.GATED)
    assert outcome == Failed(step="analysis", error="scanner crashed")
    assert compiler.calls == []


def test_compilation_failure(pipeline, compiler, deployer):
    compiler.success = False
    compiler.error = "ParserError: expected ';'"
    outcome = pipeline.run(_sub(), PipelineMode.GATED)
    assert isinstance(outcome, Failed)
    assert outcome.step == "compilation"
    assert outcome.errors
    assert deployer.calls == []


def test_deployment_failure(pipeline, deployer):
    deployer.success = False
    outcome = pipeline.run(_sub(), PipelineMode.GATED)
    assert isinstance(outcome, Failed)
    assert outcome.step == "deployment"
    assert outcome.error == "insufficient funds"


def test_forced_run_skips_gate(pipeline, scanner, deployer):
    scanner.report = make_report(risk=90, critical=3)
    outcome = pipeline.run(_sub(), PipelineMode.FORCED)
    assert isinstance(outcome, Succeeded)
    assert outcome.forced
    assert outcome.verdict is None
    assert len(deployer.calls) == 1


def test_forced_run_survives_analysis_failure(pipeline, scanner, deployer):
    scanner.report = make_report(success=False, error="slither missing")
    outcome = pipeline.run(_sub(), PipelineMode.FORCED)
    assert isinstance(outcome, Succeeded)
    assert not outcome.report.success
    assert len(deployer.calls) == 1


def test_forced_run_failure_is_marked_forced(pipeline, scanner, deployer):
    scanner.report = make_report(risk=90, critical=3)
    deployer.success = False
    outcome = pipeline.run(_sub(), PipelineMode.FORCED)
    assert isinstance(outcome, Failed)
    assert outcome.forced
    assert outcome.report.risk_score == 90


# ============================================================
# Lock handling
# ============================================================

@pytest.mark.parametrize("setup", ["success", "blocked", "compile_fail", "deploy_fail"])
def test_execute_releases_lock_on_every_outcome(pipeline, scanner, compiler, deployer, lock, setup):
    if setup == "blocked":
        scanner.report = make_report(critical=1)
    elif setup == "compile_fail":
        compiler.success = False
    elif setup == "deploy_fail":
        deployer.success = False
    sub = _sub()
    pipeline.execute(sub, "req-1", PipelineMode.GATED)
    assert sub.fingerprint not in lock


def test_execute_releases_lock_on_unexpected_fault(pipeline, deployer, lock):
    deployer.raises = RuntimeError("rpc exploded")
    sub = _sub()
    with pytest.raises(RuntimeError):
        pipeline.execute(sub, "req-1", PipelineMode.GATED)
    assert sub.fingerprint not in lock


def test_execute_rejects_held_fingerprint_without_running(pipeline, scanner, lock):
    sub = _sub()
    lock.try_acquire(sub.fingerprint, "req-other")
    with pytest.raises(ConflictError) as exc:
        pipeline.execute(sub, "req-1", PipelineMode.GATED)
    assert exc.value.holder == "req-other"
    assert scanner.calls == []
    # Lock untouched
    assert lock.holder(sub.fingerprint) == "req-other"


def test_execute_leaves_successor_entry_after_expiry(compiler, deployer, lock, clock):
    sub = _sub()

    class SlowScanner(FakeScanner):
        def analyze(self, source_code):
            # entry outlives its TTL and another request takes the fingerprint
            clock.advance(121)
            assert lock.try_acquire(sub.fingerprint, "req-2")
            return super().analyze(source_code)

    pipeline = DeploymentPipeline(SlowScanner(), compiler, deployer, lock)
    assert isinstance(pipeline.execute(sub, "req-1", PipelineMode.GATED), Succeeded)
    assert lock.holder(sub.fingerprint) == "req-2"


# ============================================================
# Mode controller
# ============================================================

def test_concurrent_duplicate_rejected_then_resubmittable(controller, scanner):
    scanner.proceed = threading.Event()
    results = {}

    def first():
        results["first"] = controller.analyze_and_deploy(_sub(name="A"), "req-1")

    t = threading.Thread(target=first)
    t.start()
    assert scanner.entered.wait(timeout=5)

    # Same code, different name: still a duplicate.
    with pytest.raises(ConflictError):
        controller.analyze_and_deploy(_sub(name="B"), "req-2")

    scanner.proceed.set()
    t.join(timeout=5)
    assert isinstance(results["first"], Succeeded)

    scanner.proceed = None
    assert isinstance(controller.analyze_and_deploy(_sub(), "req-3"), Succeeded)


def test_gated_requires_code(controller, scanner):
    with pytest.raises(InputError):
        controller.analyze_and_deploy(Submission(source_code=""), "req-1")
    assert scanner.calls == []


def test_check_only_has_no_side_effects(controller, scanner, compiler, deployer, lock):
    scanner.report = make_report(risk=27)
    result = controller.check_only(SAFE_CODE)
    assert result.status == CheckStatus.WARNING
    assert not result.deployment_allowed
    assert not result.verdict.blocked
    assert compiler.calls == []
    assert deployer.calls == []
    assert len(lock) == 0


def test_check_only_ignores_held_lock(controller, lock):
    lock.try_acquire(_sub().fingerprint, "req-other")
    assert controller.check_only(SAFE_CODE).status == CheckStatus.ALLOWED


def test_check_only_analysis_failure(controller, scanner):
    scanner.report = make_report(success=False, error="timeout")
    with pytest.raises(StepFailure) as exc:
        controller.check_only(SAFE_CODE)
    assert exc.value.step == "analysis"
    assert exc.value.status_code == 500


@pytest.mark.parametrize("confirm", [None, False, "true", 1])
def test_force_deploy_requires_literal_true(controller, scanner, compiler, deployer, lock, confirm):
    with pytest.raises(InputError):
        controller.force_deploy(_sub(), "req-1", confirm)
    assert scanner.calls == []
    assert compiler.calls == []
    assert deployer.calls == []
    assert len(lock) == 0


def test_force_deploy_holds_lock(controller, lock):
    sub = _sub()
    lock.try_acquire(sub.fingerprint, "req-other")
    with pytest.raises(ConflictError):
        controller.force_deploy(sub, "req-1", True)
