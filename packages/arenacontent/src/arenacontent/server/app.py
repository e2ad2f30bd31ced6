"""FastAPI application exposing the arena source content API.

Error responses share one body shape::

    {"error": "<HTTP reason phrase>", "message": "<detail>"}
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from arenacontent.core.exception import ArenaContentError, ContentNotFoundError, InvalidInputError
from arenacontent.core.observability import configure_logging, log_event
from arenacontent.core.runtime.settings import Settings, load_settings
from arenacontent.core.service import ContentService
from arenacontent.core.sources import build_collaborators
from arenacontent.server import routes

log = logging.getLogger("arenacontent.server")


def status_for(exc: Exception) -> int:
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, ContentNotFoundError):
        return 404
    return 500


def error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": HTTPStatus(status).phrase, "message": message})


def create_app(settings: Optional[Settings] = None, *, service: Optional[ContentService] = None) -> FastAPI:
    """Build the app.

    Without an explicit service, collaborators come from settings: the YAML
    manifest catalog when ``catalog_path`` is set, the Kubernetes API otherwise.
    """
    if settings is None:
        settings = load_settings()
        configure_logging(settings)
    if service is None:
        sources, configmaps = build_collaborators(settings)
        service = ContentService(settings, sources=sources, configmaps=configmaps)

    app = FastAPI(
        title="arenacontent",
        description="Versioned arena source content: list/switch versions and read resolved content.",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.service = service

    @app.exception_handler(ArenaContentError)
    async def _arena_error(request: Request, exc: ArenaContentError):
        status = status_for(exc)
        level = logging.ERROR if status >= 500 else logging.INFO
        log_event(log, settings=settings, level=level, event="request_failed", method=request.method, path=request.url.path, status=status, error=type(exc).__name__, message=str(exc))
        return error_response(status, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request body")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        log.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal Server Error")

    app.include_router(routes.router)

    @app.get("/health", tags=["meta"])
    def health():
        return {"status": "healthy"}

    return app
