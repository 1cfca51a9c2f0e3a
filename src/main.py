"""
Module: main.py
Description: FastAPI application entry point for Webhook Relay.

Initializes the FastAPI application with all routes, error handlers
and the relay lifecycle (queue manager, delivery, notifications).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from handlers.deliveries import router as deliveries_router
from handlers.dependencies import build_relay
from handlers.destinations import router as destinations_router
from handlers.queues import router as queues_router
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the relay on startup; stop timers and drain sends on shutdown."""
    logger.info(
        "Starting Webhook Relay",
        version=settings.app_version,
        destinations_file=settings.destinations_file
    )
    relay = build_relay(settings)
    app.state.relay = relay

    yield

    relay.manager.shutdown()
    await relay.manager.wait_idle()
    logger.info("Shutting down Webhook Relay")


# Initialize FastAPI app
app = FastAPI(
    title="Webhook Relay",
    description="Rate-limited delivery of captured payloads to webhook destinations",
    version=settings.app_version,
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(destinations_router)
app.include_router(deliveries_router)
app.include_router(queues_router)


@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns basic application health and queue information.
    """
    relay = getattr(request.app.state, "relay", None)
    logger.debug("Health check requested")

    return {
        "status": "ok",
        "message": "Webhook Relay is healthy",
        "version": settings.app_version,
        "queues": len(relay.manager.destination_ids()) if relay else 0,
        "in_flight": relay.manager.in_flight if relay else 0
    }


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Logs unexpected exceptions and returns generic error responses.
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": 500,
                "message": "Internal server error",
                "type": "internal_error"
            }
        }
    )
