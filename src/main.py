"""
Image Enhancer - Main Application

FastAPI application with:
- POST /enhance image sharpening endpoint
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.logging import setup_logging, get_logger, LogContext
from src.core.exceptions import register_exception_handlers, internal_error_response
from src.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from src.api.routes import api_router


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    logger.info("application_ready", max_image_size_bytes=settings.MAX_IMAGE_SIZE_BYTES)

    yield

    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Upload an image to `POST /enhance` and receive it back sharpened.

    - Transparent areas are flattened onto an opaque black RGB canvas
    - A fixed 3x3 sharpen kernel is applied; border pixels are left as-is
    - `.png` uploads come back as PNG, everything else as JPEG
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

# Request context and timing. Registered before CORS so CORS wraps it and
# error responses built here still carry the CORS headers.
@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Assign a request id, track request timing, and catch unexpected errors."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.time()

    with LogContext(request_id=request_id):
        try:
            response = await call_next(request)
        except Exception as exc:
            response = internal_error_response(request, exc)
    duration = time.time() - start_time

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(duration)

    return response


# CORS
cors_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Include API Routers
# =============================================================================
app.include_router(api_router)


# =============================================================================
# Root Endpoints
# =============================================================================

@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
