"""PwnGate FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app(): testable application factory
  - lifespan: @asynccontextmanager startup/shutdown sequence
  - /            service discovery root
  - app = create_app(): module-level instance for uvicorn

Startup sequence:
  1. load_config()                    -> app.state.config
  2. FailureMode.from_config()        -> app.state.failure_mode
  3. create_http_client()             -> app.state.http_client (shared, pooled)
  4. LookupLatencyTracker()           -> app.state.latency_tracker
  5. BreachLookupClient(...)          -> app.state.lookup_client
  6. app.state.ready = True

Shutdown: ready = False, then close the shared HTTP client.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter

from pwngate import __version__
from pwngate.actions.middleware import BodySizeLimitMiddleware
from pwngate.actions.router import router as actions_router
from pwngate.checker.lookup import BreachLookupClient, create_http_client
from pwngate.checker.policy import FailureMode
from pwngate.config import Config, load_config
from pwngate.health import router as health_router
from pwngate.models.action import build_unhandled_error_response
from pwngate.utils.health import LookupLatencyTracker
from pwngate.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


root_router = APIRouter(tags=["root"])


# ─── Dependencies ─────────────────────────────────────────────────────────────


async def require_ready(request: Request) -> None:
    """FastAPI dependency: HTTP 503 action ERROR until startup has completed."""
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={
                "actionStatus": "ERROR",
                "error": "service_error",
                "errorDescription": "PwnGate is starting up. Please try again shortly.",
            },
        )


@root_router.get("/")
async def root() -> dict[str, str]:
    """Service identity / discovery."""
    return {
        "service": "PwnGate",
        "version": __version__,
        "check": "/check-password",
        "health": "/health",
    }


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown sequence."""
    logger.info("PwnGate starting up...")

    # load_config() raises SystemExit on an invalid config, before ready=True.
    config: Config = load_config()
    app.state.config = config
    app.state.failure_mode = FailureMode.from_config(config.policy.on_lookup_failure)

    http_client: httpx.AsyncClient = create_http_client(config.lookup)
    app.state.http_client = http_client

    latency_tracker = LookupLatencyTracker()
    app.state.latency_tracker = latency_tracker

    app.state.lookup_client = BreachLookupClient(
        config.lookup, http_client, latency_tracker=latency_tracker
    )
    logger.info(
        "Breach lookup client created",
        base_url=config.lookup.base_url,
        timeout_s=config.lookup.timeout_s,
        add_padding=config.lookup.add_padding,
        failure_mode=app.state.failure_mode.value,
    )

    app.state.ready = True
    logger.info("PwnGate ready")

    yield

    logger.info("PwnGate shutting down...")
    app.state.ready = False

    try:
        await http_client.aclose()
        logger.info("Lookup HTTP client closed")
    except Exception as exc:
        logger.warning("Lookup HTTP client close error (non-fatal)", error=str(exc))

    logger.info("PwnGate shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    """Create and configure the PwnGate FastAPI application.

    Call this directly in tests to get an isolated app instance. The
    module-level ``app`` is what uvicorn serves.
    """
    # Schema and docs expose the API surface; only serve them in DEBUG.
    _debug = os.getenv("DEBUG", "false").lower() == "true"

    application = FastAPI(
        title="PwnGate",
        description="Breached-password gate for pre-update-password actions",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if _debug else None,
        redoc_url="/redoc" if _debug else None,
        openapi_url="/openapi.json" if _debug else None,
    )

    # /health answers 503 until the lifespan flips this.
    application.state.ready = False

    application.add_middleware(BodySizeLimitMiddleware)

    application.include_router(root_router)
    application.include_router(health_router)
    application.include_router(actions_router, dependencies=[Depends(require_ready)])

    @application.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=str(request.url.path),
        )
        content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content)

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        check_id = getattr(request.state, "check_id", None)
        logger.error(
            "Unhandled exception",
            check_id=check_id,
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return build_unhandled_error_response(check_id)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _startup_config = load_config()
    logger.info(
        "Starting PwnGate (dev mode)",
        host=_startup_config.server.host,
        port=_startup_config.server.port,
    )
    uvicorn.run(
        "pwngate.main:app",
        host=_startup_config.server.host,
        port=_startup_config.server.port,
        reload=DEBUG,
        log_level=LOG_LEVEL.lower(),
    )
