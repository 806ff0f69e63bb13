"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException

from app.api.applications import router as applications_router
from app.api.errors import setup_exception_handlers
from app.api.job_orders import router as job_orders_router
from app.api.pooled_candidates import router as pooled_candidates_router
from app.api.timeline import router as timeline_router
from app.core.database import db
from app.core.logging import logger, setup_logging
from app.core.tasks import drain_background_tasks, pending_task_count
from app.middleware import (
    LoggingMiddleware,
    RequestIDMiddleware,
    setup_cors,
    setup_rate_limiting,
)

# Configure logging
setup_logging()

SHUTDOWN_DRAIN_TIMEOUT_SECONDS = 30


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    logger.info("application_starting")
    await db.connect()
    logger.info("application_ready")

    yield

    # Shutdown: let in-flight notifications and bulk pooling finish first
    logger.info("application_shutting_down", pending_tasks=pending_task_count())
    await drain_background_tasks(timeout=SHUTDOWN_DRAIN_TIMEOUT_SECONDS)
    await db.disconnect()
    logger.info("application_stopped")


# Create FastAPI app
app = FastAPI(
    title="Hiring Pipeline",
    description="Application state machine, talent pooling and job order status control",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware runs in reverse order of registration: request id is bound first
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
setup_cors(app)
setup_rate_limiting(app)
setup_exception_handlers(app)

# Include routers
app.include_router(applications_router)
app.include_router(pooled_candidates_router)
app.include_router(job_orders_router)
app.include_router(timeline_router)


@app.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Health check endpoint.

    Verifies database connectivity and reports pool and background task stats.

    Raises:
        HTTPException: 503 if database is unavailable
    """
    try:
        await db.fetchval("SELECT 1")

        if not db.pool:
            raise RuntimeError("Database pool not initialized")

        pool_size = db.pool.get_size()
        pool_free = db.pool.get_idle_size()

        return {
            "status": "healthy",
            "database": "connected",
            "pool": {
                "size": pool_size,
                "free": pool_free,
                "in_use": pool_size - pool_free,
            },
            "background_tasks": pending_task_count(),
        }
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail="Database unavailable") from e


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Hiring Pipeline Service"}
