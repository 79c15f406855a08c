import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .collaborators import get_scanner, get_compiler, get_deployer
from .config import (
    DEFAULT_POLICY, LOCK_TTL_SECONDS, LOCK_SWEEP_INTERVAL_SECONDS,
    LOG_LEVEL, LOG_JSON, LOG_FILE, is_debug, validate_config,
)
from .errors import DeployGateError
from .locks import DeduplicationLock
from .logging_config import configure_logging, set_request_id, get_request_id
from .models import CheckRequest, DeployRequest, ForceDeployRequest, Submission
from .modes import DeploymentController, NO_CODE, OVERRIDE_REQUIRED
from .pipeline import DeploymentPipeline
from .responses import outcome_response, check_response, error_response
from .status import StatusTracker

logger = logging.getLogger(__name__)

router = APIRouter()


def build_controller() -> DeploymentController:
    lock = DeduplicationLock(ttl_seconds=LOCK_TTL_SECONDS)
    pipeline = DeploymentPipeline(
        scanner=get_scanner(),
        compiler=get_compiler(),
        deployer=get_deployer(),
        lock=lock,
        policy=DEFAULT_POLICY,
    )
    return DeploymentController(pipeline)


def _controller(request: Request) -> DeploymentController:
    return request.app.state.controller


def _request_id() -> str:
    return get_request_id() or set_request_id()


def _json(status_and_body) -> JSONResponse:
    status_code, body = status_and_body
    return JSONResponse(status_code=status_code, content=body)


@router.post("/analyze-and-deploy")
def analyze_and_deploy(req: DeployRequest, request: Request):
    controller = _controller(request)
    request_id = _request_id()
    outcome = controller.analyze_and_deploy(Submission.from_request(req), request_id)
    return _json(outcome_response(outcome, controller.policy, request_id))


@router.post("/check-only")
def check_only(req: CheckRequest, request: Request):
    controller = _controller(request)
    result = controller.check_only(req.code, _request_id())
    return _json(check_response(result, controller.policy))


@router.post("/force-deploy")
def force_deploy(req: ForceDeployRequest, request: Request):
    controller = _controller(request)
    request_id = _request_id()
    outcome = controller.force_deploy(Submission.from_request(req), request_id, req.confirm_override)
    return _json(outcome_response(outcome, controller.policy, request_id))


@router.get("/deployment-status/{request_id}")
def deployment_status(request_id: str, request: Request):
    tracker: StatusTracker = request.app.state.status_tracker
    return tracker.status(request_id).to_wire()


async def _sweep_periodically(lock: DeduplicationLock, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = lock.sweep()
        if removed:
            logger.warning("Swept %d expired deployment lock(s)", removed)


def create_app(controller: Optional[DeploymentController] = None,
               sweep_interval: Optional[float] = LOCK_SWEEP_INTERVAL_SECONDS) -> FastAPI:
    """
    Build the HTTP app.

    Args:
        controller: Mode controller to serve; built from configuration if omitted
        sweep_interval: Seconds between lock sweeps while running, None to disable
    """
    controller = controller or build_controller()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = [name for name, ok in validate_config().items() if not ok]
        if missing:
            logger.warning("Collaborators not configured: %s", ", ".join(missing))
        task = None
        if sweep_interval:
            task = asyncio.create_task(_sweep_periodically(controller.lock, sweep_interval))
        try:
            yield
        finally:
            if task is not None:
                task.cancel()

    app = FastAPI(title="deploygate", lifespan=lifespan)
    app.state.controller = controller
    app.state.status_tracker = StatusTracker(controller.lock)

    app.include_router(router)
    app.include_router(router, prefix="/api/deploy")

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = set_request_id()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "activeDeployments": len(controller.lock),
            "thresholds": controller.policy.to_wire(),
        }

    @app.exception_handler(DeployGateError)
    async def _deploygate_error(request: Request, exc: DeployGateError):
        return _json(error_response(exc, get_request_id()))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        fields = {part for err in exc.errors() for part in err.get("loc", ())}
        if "code" in fields:
            error = NO_CODE
        elif "confirmOverride" in fields:
            error = OVERRIDE_REQUIRED
        else:
            error = "Invalid request body"
        return JSONResponse(status_code=400, content={
            "success": False,
            "blocked": False,
            "deployed": False,
            "error": error,
        })

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        request_id = get_request_id()
        logger.exception("[%s] Deployment flow error", request_id)
        body = {
            "success": False,
            "blocked": False,
            "deployed": False,
            "error": "Internal server error",
            "step": "unexpected_error",
            "requestId": request_id,
        }
        if is_debug():
            body["detail"] = repr(exc)
        return JSONResponse(status_code=500, content=body)

    return app


def main_app() -> FastAPI:
    """Entry point for ``uvicorn deploygate.main:main_app --factory``."""
    configure_logging(LOG_LEVEL, json_format=LOG_JSON, log_file=LOG_FILE)
    return create_app()
