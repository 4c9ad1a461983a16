"""
Transporter Document Verification — approval decision engine API.
FastAPI application entry point exposing reviewer actions and bulk
verification over the document verification engine.

Run locally:   uvicorn transporter_verification.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import health, transporters

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    logger.info("Starting Transporter Document Verification engine...")
    logger.info(
        f"Environment: {settings.environment} | Upstream timeout: "
        f"{settings.upstream_timeout_seconds}s | Bulk concurrency: {settings.bulk_max_concurrency}"
    )
    logger.info("Application ready — accepting requests")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Transporter Document Verification API",
    description=(
        "Automated verification and approval of transporter documents — "
        "driving licences, insurance certificates and national IDs — "
        "with confidence scoring and manual-review routing."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routers
app.include_router(health.router)
app.include_router(transporters.router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Transporter Document Verification API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
