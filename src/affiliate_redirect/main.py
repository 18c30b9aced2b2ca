"""FastAPI application entry point with lifespan management."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.background import BackgroundTask

from affiliate_redirect.config import settings
from affiliate_redirect.models import (
    Credentials,
    ErrorResponse,
    HealthResponse,
    LogEvent,
    RedirectRequest,
    TargetRejected,
    WhoAmIResponse,
)
from affiliate_redirect.pipeline import stage6_dispatch
from affiliate_redirect.pipeline.orchestrator import run_pipeline
from affiliate_redirect.registry import load_registry
from affiliate_redirect.utils.logging import configure_logging
from affiliate_redirect.utils.pages import INFO_PAGE, SERVICE_NAME, error_message, render_error_page

logger = structlog.get_logger(__name__)

# Accepted names for the target URL, in priority order.
TARGET_PARAMS: tuple[str, ...] = ("url", "u", "t")
_NO_STORE = {"Cache-Control": "no-store"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the registry and credentials once; they are read-only afterwards."""
    configure_logging(settings.environment, settings.log_level)
    log = structlog.get_logger(__name__)

    log.info("redirect.startup", environment=settings.environment, port=settings.port)

    app.state.registry = load_registry(settings.registry_path)
    app.state.credentials = Credentials(
        awin_affiliate_id=settings.awin_affiliate_id,
        cj_publisher_id=settings.cj_pid,
        amazon_partner_tag=settings.amazon_tag,
    )
    log.info(
        "redirect.ready",
        awin=app.state.credentials.awin_affiliate_id is not None,
        cj=app.state.credentials.cj_publisher_id is not None,
        amazon=app.state.credentials.amazon_partner_tag is not None,
        enforce_allowlist=settings.enforce_allowlist,
        webhook=bool(settings.log_webhook_url),
    )

    yield

    log.info("redirect.shutdown")


app = FastAPI(
    title="2List Redirect",
    description="Resolves shared product links into affiliate-tracked shop URLs.",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "").lower()


def _first_target(request: Request) -> str | None:
    for name in TARGET_PARAMS:
        value = request.query_params.get(name)
        if value and value.strip():
            return value
    return None


def _error_response(
    reason: str,
    host: str,
    status: int,
    wants_json: bool,
    background: BackgroundTask | None = None,
) -> Response:
    """Build the user-facing error response in the requested representation."""
    if wants_json:
        body = ErrorResponse(
            service=SERVICE_NAME, reason=reason, host=host, message=error_message(reason)
        )
        return JSONResponse(
            status_code=status,
            content=body.model_dump(),
            headers=_NO_STORE,
            background=background,
        )
    return HTMLResponse(
        render_error_page(reason, host, status),
        status_code=status,
        headers=_NO_STORE,
        background=background,
    )


def _webhook_task(event: LogEvent) -> BackgroundTask | None:
    if not settings.log_webhook_url:
        return None
    return BackgroundTask(
        stage6_dispatch.forward_event,
        event,
        settings.log_webhook_url,
        settings.webhook_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/r", summary="Redirect a shared product link", response_model=None)
async def redirect(request: Request) -> Response:
    """Resolve the target link and answer with a 302 to the final URL."""
    redirect_request = RedirectRequest(
        target=_first_target(request),
        correlation_id=request.query_params.get("cid") or request.headers.get("x-request-id"),
        wants_json=_wants_json(request),
        user_agent=request.headers.get("user-agent", ""),
    )

    with structlog.contextvars.bound_contextvars(correlation_id=redirect_request.correlation_id):
        result = await run_pipeline(
            request=redirect_request,
            registry=request.app.state.registry,
            credentials=request.app.state.credentials,
            enforce_allowlist=settings.enforce_allowlist,
        )

    background = _webhook_task(result.event)
    outcome = result.outcome
    if isinstance(outcome, TargetRejected):
        return _error_response(
            outcome.reason.value,
            outcome.host,
            outcome.status_code,
            redirect_request.wants_json,
            background,
        )

    return RedirectResponse(
        url=outcome.location,
        status_code=outcome.status_code,
        headers=_NO_STORE,
        background=background,
    )


@app.get("/", response_class=HTMLResponse, summary="Service info page")
async def index() -> HTMLResponse:
    """Explain the service to someone who opened it without parameters."""
    return HTMLResponse(INFO_PAGE)


@app.get("/error", summary="Error page", response_model=None)
async def error_page(
    request: Request,
    reason: str = Query(default="unknown", max_length=64),
    host: str = Query(default="", max_length=253),
) -> Response:
    """Render the error page for *reason* directly."""
    return _error_response(reason, host, 400, _wants_json(request))


@app.get("/health", response_model=HealthResponse, summary="Service health check")
async def health() -> HealthResponse:
    """Liveness probe; the engine has no external dependencies to check."""
    return HealthResponse(ok=True, ts=int(time.time() * 1000))


@app.get("/whoami", response_model=WhoAmIResponse, summary="Deployment info")
async def whoami() -> WhoAmIResponse:
    """Report which deployment is answering."""
    return WhoAmIResponse(
        ok=True,
        env=settings.vercel_env,
        commit=settings.vercel_git_commit_sha,
        now=int(time.time() * 1000),
    )


# ---------------------------------------------------------------------------
# Generic error handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all error handler that logs and returns a generic response."""
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return _error_response("internal_error", "", 500, _wants_json(request))


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("affiliate_redirect.main:app", host="0.0.0.0", port=settings.port)
