"""
POSETRACK Backend API
Simulated Real-Time Exercise Tracking

FastAPI application entry point: tracking commands over HTTP and live
tick updates over WebSocket.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import settings
from shared.utils import error_response, resolve_log_level, setup_logger

# ============================================
# Configure Root Logger First
# ============================================
logging.basicConfig(
    level=resolve_log_level(settings.LOG_LEVEL),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Service routers
from tracking_service.router import router as tracking_router
from tracking_service.models import ErrorKind, get_tracking_session

# Core utilities
from core.websocket import stream_manager

# Setup logging
logger = setup_logger("posetrack.main", level=resolve_log_level(settings.LOG_LEVEL))
request_logger = setup_logger("posetrack.requests", level=resolve_log_level(settings.LOG_LEVEL))


# ============================================
# Request Logging Middleware
# ============================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests and responses with timing."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        request_logger.info(f"➡️  {request.method} {request.url.path}")
        request_logger.debug(f"    Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            request_logger.exception(
                f"💥 {request.method} {request.url.path} → ERROR: {type(e).__name__}: {e} ({process_time:.1f}ms)"
            )
            raise

        process_time = (time.time() - start_time) * 1000

        if response.status_code < 300:
            status_emoji = "✅"
        elif response.status_code < 500:
            status_emoji = "⚠️"
        else:
            status_emoji = "❌"

        request_logger.info(
            f"{status_emoji} {request.method} {request.url.path} → {response.status_code} ({process_time:.1f}ms)"
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    # ===== STARTUP =====
    logger.info(f"🚀 {settings.APP_NAME} API starting up...")
    logger.info(f"⏱️ Tick interval: {settings.TICK_INTERVAL_SECONDS}s")
    logger.info(f"✅ {settings.APP_NAME} API ready!")

    yield  # Application runs here

    # ===== SHUTDOWN =====
    logger.info(f"👋 {settings.APP_NAME} API shutting down...")

    await get_tracking_session().dispose()

    logger.info("✅ Shutdown complete")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Simulated real-time exercise tracking with synthetic pose telemetry",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return unparseable request bodies in the standard error envelope."""
    logger.warning(f"⚠️ Rejected request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content=error_response(
            "Invalid request body",
            error_code=ErrorKind.INVALID_ARGUMENTS.value,
            details={"errors": jsonable_encoder(exc.errors())}
        )
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    session = get_tracking_session()
    return {
        "status": "healthy",
        "service": "posetrack-api",
        "tracker_state": session.state.value,
        "websocket_connections": stream_manager.connection_count
    }


@app.get("/stats")
async def get_stats():
    """Get service statistics."""
    return {
        "tracker": get_tracking_session().get_stats(),
        "websocket": stream_manager.get_stats()
    }


# Include service routers
app.include_router(tracking_router, prefix="/api/tracking", tags=["Tracking Service"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
