"""
FastAPI application entrypoint for the BrandPilot backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from brandpilot.api.routes import router as api_router
from brandpilot.core.config import get_settings
from brandpilot.core.errors import BrandPilotError, InvalidRequest
from brandpilot.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def handle_brandpilot_error(request: Request, exc: BrandPilotError) -> JSONResponse:
    """Render any domain error as ``{"error": message}`` with its status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_payload())


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies and query strings as ``InvalidRequest``."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(
            str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
        )
        message = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
    return await handle_brandpilot_error(request, InvalidRequest(message))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s crashed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="BrandPilot",
        version="0.1.0",
        description="Twitter connection, discovery and AI drafting API.",
    )
    app.add_exception_handler(BrandPilotError, handle_brandpilot_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = [
    "app",
    "create_app",
    "handle_brandpilot_error",
    "handle_unexpected_error",
    "handle_validation_error",
]
