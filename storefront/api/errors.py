"""One response envelope for every error: {"detail", "code", "details"}."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.core.exceptions import ProjectError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Map ProjectError subclasses to their HTTP status; anything else is a bare 500.

    Server-side failures keep their ``details`` out of the response unless
    ``debug`` is set, so storage keys and causes stay in the logs.
    """

    @app.exception_handler(ProjectError)
    async def _project_error(request: Request, exc: ProjectError) -> JSONResponse:
        body = {"detail": exc.message, "code": exc.code}
        if exc.is_client_error:
            if exc.details:
                body["details"] = exc.details
        else:
            logger.error(
                "API: %s %s failed with %s", request.method, request.url.path, exc.code,
                extra={"error": exc.to_dict()},
            )
            if debug and exc.details:
                body["details"] = exc.details
        return JSONResponse(status_code=exc.http_status, content=body)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("API: unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
        )
