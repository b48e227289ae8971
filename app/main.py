"""
EcoCheck - FastAPI Application Entry Point

Backend for citizen environmental reports: reporters submit issues with photo
evidence, admins work them to resolution, reporters confirm and earn points.

DESIGN PRINCIPLES:
- One state machine owns every report status change
- Reporter PII is removed once a resolution is proposed
- Points are credited exactly once per resolved report
- Notifications are best-effort and never fail a transition
"""

from datetime import timedelta
import os
import sys
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.core.errors import WorkflowError
from app.core.settings import settings
from app.config.firebase import initialize_firestore
from app.routes import admin, health, reports, users
from app.services.auto_resolve import AutoResolveScheduler
from app.services.report_service import get_report_service


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Citizen environmental reporting with a resolution-confirmation workflow",
    debug=settings.DEBUG
)

scheduler = AutoResolveScheduler(
    service_factory=get_report_service,
    interval=timedelta(hours=settings.AUTO_RESOLVE_INTERVAL_HOURS),
    initial_delay=timedelta(seconds=settings.AUTO_RESOLVE_INITIAL_DELAY_SECONDS),
)


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """Map workflow errors to their HTTP status (400/403/404/409/500)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__}
    )


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write("🔥 GLOBAL EXCEPTION HANDLER CAUGHT EXCEPTION\n")
    sys.stderr.write(f"Path: {request.url.path}\n")
    sys.stderr.write(f"Method: {request.method}\n")
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write(traceback.format_exc())
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.flush()

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error"}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Catch Pydantic validation errors and log them."""
    sys.stderr.write(f"🔥 VALIDATION ERROR {request.method} {request.url.path}: {exc.errors()}\n")
    sys.stderr.flush()

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Firestore connection, then the auto-resolve scheduler.
    """
    print(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except Exception as e:
        print(f"Warning: Firestore initialization failed: {e}")
        print("   The app will start but database operations may fail.")
        return

    if settings.AUTO_RESOLVE_ENABLED:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup on application shutdown.
    """
    await scheduler.stop()
    print(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(reports.router)
app.include_router(users.router)
app.include_router(admin.router)

# Locally stored evidence photos (used when no storage bucket is configured)
if not settings.FIREBASE_STORAGE_BUCKET:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }
