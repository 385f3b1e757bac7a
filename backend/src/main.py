# pyright: reportMissingTypeStubs=false
"""
Clinic Scheduler Backend API

A FastAPI application for booking and running clinic appointments.

Features:
- Appointment booking with double-booking protection
- Appointment lifecycle events with an audit trail
- Recurring appointments
- Patient notifications and scheduled reminders
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.clinic import appointments_router, settings_router
from core.config import ENABLE_REMINDER_SCHEDULER, LOG_LEVEL
from core.constants import CORS_ORIGINS
from services.reminder_service import start_reminder_scheduler, stop_reminder_scheduler

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Clinic Scheduler API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Clinic Scheduler Backend API")

    # Note: Database sessions are created fresh for each scheduler run
    if ENABLE_REMINDER_SCHEDULER:
        try:
            await start_reminder_scheduler()
            logger.info("✅ Appointment reminder scheduler started")
        except Exception as e:
            logger.exception(f"❌ Failed to start reminder scheduler: {e}")

    yield

    try:
        await stop_reminder_scheduler()
    except Exception as e:
        logger.exception(f"❌ Error stopping reminder scheduler: {e}")

    logger.info("🛑 Shutting down Clinic Scheduler Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Scheduler Backend",
    description="Appointment scheduling for medical clinics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    appointments_router,
    prefix="/api/clinics/{clinic_id}",
    tags=["appointments"],
    responses={
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    settings_router,
    prefix="/api/clinics/{clinic_id}",
    tags=["settings"],
    responses={
        404: {"description": "Resource not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Scheduler Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )
