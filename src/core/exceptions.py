"""
Global Exception Handling

Typed enhancer errors carrying their HTTP status, and the FastAPI handlers
that turn them into responses.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from src.core.logging import get_logger, request_id_var, filename_var

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class EnhancerBaseException(Exception):
    """Base exception for the Image Enhancer."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        filename: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.filename = filename or filename_var.get()
        self.details = details or {}
        super().__init__(self.message)


class InvalidImageError(EnhancerBaseException):
    """Raised when the uploaded bytes cannot be decoded as an image."""

    def __init__(self, message: str = "Invalid image file!", **kwargs):
        super().__init__(message, code=400, **kwargs)


class EncodeError(EnhancerBaseException):
    """Raised when re-encoding the processed raster fails."""

    def __init__(self, message: str = "Error processing image!", **kwargs):
        super().__init__(message, code=500, **kwargs)


class UploadTooLargeError(EnhancerBaseException):
    """Raised when an upload exceeds MAX_IMAGE_SIZE_BYTES."""

    def __init__(self, size_bytes: int, max_bytes: int, **kwargs):
        super().__init__("Image file too large!", code=413, **kwargs)
        self.details["size_bytes"] = size_bytes
        self.details["max_bytes"] = max_bytes


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(EnhancerBaseException)
    async def enhancer_exception_handler(request: Request, exc: EnhancerBaseException):
        log = logger.warning if exc.code < 500 else logger.error
        log(
            "enhancer_exception",
            error=exc.message,
            error_type=type(exc).__name__,
            code=exc.code,
            filename=exc.filename,
            details=exc.details
        )

        return PlainTextResponse(exc.message, status_code=exc.code)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        return internal_error_response(request, exc)


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected exception and convert it to a structured 500."""
    request_id = request_id_var.get() or getattr(request.state, "request_id", None)

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        traceback=traceback.format_exc()
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "request_id": request_id,
            "code": 500,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
