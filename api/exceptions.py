"""
API exception handling.

Vision errors raised by the service layer are converted to JSON responses
carrying the exception's status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.exceptions import VisionException

logger = logging.getLogger(__name__)


async def vision_exception_handler(request: Request, exc: VisionException) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": exc.message},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": f"Internal server error: {str(exc)}"})


def register_exception_handlers(app: FastAPI):
    """Register all exception handlers on the application."""
    app.add_exception_handler(VisionException, vision_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
