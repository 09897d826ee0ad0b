"""FastAPI application factory.

Usage::

    from fd_accounts.api import create_app
    from fd_accounts.main import build_container

    app = create_app(build_container(settings))
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .. import __version__
from ..core.errors import (
    AccountNotFound,
    AccountStateError,
    AuthenticationError,
    ConfigurationError,
    DuplicatePostingError,
    UnknownJobError,
    UpstreamUnavailable,
    ValidationError,
)
from ..observability.logger import new_trace_id
from . import accounts, admin, jobs, reports

logger = logging.getLogger(__name__)

_ERROR_STATUS: list[tuple[type[Exception], int, str]] = [
    (ValidationError, 400, "Bad Request"),
    (ConfigurationError, 400, "Bad Request"),
    (AuthenticationError, 401, "Unauthorized"),
    (AccountNotFound, 404, "Not Found"),
    (UnknownJobError, 404, "Not Found"),
    (AccountStateError, 409, "Conflict"),
    (DuplicatePostingError, 409, "Conflict"),
    (UpstreamUnavailable, 502, "Bad Gateway"),
]


def _error_response(status: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": error, "details": details})


def create_app(container) -> FastAPI:
    """Create the API around an assembled :class:`~fd_accounts.main.Container`.

    The scheduler runs for the lifetime of the app when
    ``scheduler.enabled`` is set. The admin routes are only mounted while
    the logical clock is active.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container.settings.scheduler.enabled:
            await container.scheduler.start()
        try:
            yield
        finally:
            await container.scheduler.stop()
            container.close()

    app = FastAPI(
        title="Fixed Deposit Accounts",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    @app.middleware("http")
    async def _trace(request: Request, call_next):
        trace_id = new_trace_id()
        response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        return response

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    def _handle(status: int, error: str):
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            if status >= 500:
                logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
            return _error_response(status, error, str(exc))
        return handler

    for exc_type, status, error in _ERROR_STATUS:
        app.add_exception_handler(exc_type, _handle(status, error))

    @app.exception_handler(RequestValidationError)
    async def _malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, "Bad Request", str(exc.errors()))

    # ------------------------------------------------------------------
    # Health / metrics
    # ------------------------------------------------------------------

    @app.get("/health")
    def health() -> dict:
        clock = container.clock
        return {
            "status": "ok",
            "version": __version__,
            "mode": container.settings.mode.value,
            "clock": container.settings.clock.mode.value,
            "logicalTime": clock.now().isoformat(),
            "schedulerRunning": container.scheduler.is_running,
        }

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    if container.logical_clock is not None:
        app.include_router(admin.router)
    else:
        logger.info("Wall clock active; admin time routes not mounted")
    app.include_router(jobs.router)
    app.include_router(accounts.router)
    app.include_router(reports.router)

    return app
