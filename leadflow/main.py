"""
Leadflow - Lead lifecycle and commission service

Main FastAPI application with:
- Guarded lead status transitions and dispatch handoffs
- Versioned commission policies
- Idempotent monthly commission snapshots for sales and dispatch
- Scheduled month-end generation and handoff reminders
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from leadflow.api import api_router
from leadflow.api.errors import setup_exception_handlers
from leadflow.config import settings
from leadflow.scheduler import scheduler, setup_scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Starts the cron scheduler when enabled

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Leadflow...")

    if settings.scheduler_enabled:
        setup_scheduler()
        scheduler.start()
        logger.info("Scheduler started")

    logger.info("Leadflow started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down Leadflow...")
    if scheduler.running:
        scheduler.shutdown(wait=False)


# Create FastAPI application
app = FastAPI(
    title="Leadflow",
    description="Lead lifecycle and commission service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

setup_exception_handlers(app)

# Include routers
app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "leadflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
