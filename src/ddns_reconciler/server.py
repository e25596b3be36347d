"""
FastAPI status server for DDNS Reconciler.

This module provides a read-only HTTP surface over the running supervisor:
"/health" for liveness probes and "/status" for per-domain state, the latter
optionally protected by bearer tokens.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette import status as st_status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ddns_reconciler import __version__
from ddns_reconciler.models import StatusResponse

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from ddns_reconciler.supervisor import Supervisor


logger = logging.getLogger(__name__)

# Global supervisor (set by the CLI before the server starts)
_supervisor: Supervisor | None = None


def get_supervisor() -> Supervisor:
    """Get the running supervisor."""
    if _supervisor is None:
        msg = "Supervisor not running"
        raise RuntimeError(msg)
    return _supervisor


def set_supervisor(supervisor: Supervisor | None) -> None:
    """
    Attach the supervisor whose state the server reports.

    Parameters
    ----------
    supervisor : Supervisor | None
        The running supervisor, or None to detach.
    """
    global _supervisor  # noqa: PLW0603
    _supervisor = supervisor


def _error_response(code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"status": "error", "code": code, "message": message},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware for status endpoint authentication.

    Intercepts requests to /status to check the Authorization header:
    401 if the bearer token is missing, 403 if it is not configured.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request through auth validation."""
        if request.url.path != "/status":
            return await call_next(request)

        try:
            config = get_supervisor().config
        except RuntimeError:
            return await call_next(request)

        if not config.auth.enabled:
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        server_token: str | None = None
        if auth_header.lower().startswith("bearer "):
            server_token = auth_header[7:].strip()

        if not server_token:
            return _error_response(
                st_status.HTTP_401_UNAUTHORIZED,
                "Missing authentication token",
            )
        if server_token not in config.auth.tokens:
            return _error_response(
                st_status.HTTP_403_FORBIDDEN,
                "Invalid authentication token",
            )

        return await call_next(request)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    if _supervisor is not None:
        server = _supervisor.config.server
        logger.info('Status server starting on "%s:%d".', server.host, server.port)

    yield

    logger.info("Status server shutting down.")


app = FastAPI(
    title="DDNS Reconciler",
    description="Read-only status of the DDNS reconciliation loops",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(AuthMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException) -> Response:
    """
    Handle HTTP exceptions with consistent JSON responses.

    Convert FastAPI's default {"detail": "..."} format to the unified
    API response format {"status": "error", "code": ..., "message": "..."}.
    """
    return _error_response(exc.status_code, str(exc.detail))


@app.get("/health")
async def health() -> Response:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"})


@app.get("/status")
async def status() -> Response:
    """Report the provider and the state of every supervised domain."""
    try:
        supervisor = get_supervisor()
    except RuntimeError as e:
        raise HTTPException(
            status_code=st_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e

    response = StatusResponse(
        provider=str(supervisor.config.provider),
        domains=supervisor.snapshot(),
    )
    return JSONResponse(content=response.model_dump(mode="json"))
