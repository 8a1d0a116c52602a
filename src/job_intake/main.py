"""
Job Intake API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Mail relay configuration check
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from job_intake.api import api_router
from job_intake.core.config import settings
from job_intake.modules.job_applications.store import verification_store

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


def _mail_relay_configured() -> bool:
    if settings.mail_backend == "resend":
        return bool(settings.resend_api_key and settings.sender_address)
    return bool(settings.email_user and settings.email_password)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Reports mail relay configuration on startup and drops any pending
    verification state on shutdown.
    """
    # Startup
    print(f"Starting Job Intake API in {settings.python_env} mode...")

    if _mail_relay_configured():
        print(f"[OK] Mail relay configured ({settings.mail_backend})")
    else:
        print(f"[FAIL] Mail relay not configured ({settings.mail_backend})")

    if not settings.fallback_hr_email:
        print("[WARN] FALLBACK_HR_EMAIL not set - unknown offices cannot be routed")

    yield  # Application runs here

    # Shutdown
    print("Shutting down Job Intake API...")
    verification_store.clear()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Job Intake API",
    description="BATP job application intake with email verification",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Job Intake API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {
        "status": "ready" if _mail_relay_configured() else "degraded",
    }


@app.get("/debug/verifications", tags=["Debug"])
async def debug_verifications() -> dict[str, int | str]:
    """Count in-flight verification entries (never exposes codes or emails)."""
    if not settings.is_development:
        return {"verifications": "disabled"}
    return {"verifications": len(verification_store)}
