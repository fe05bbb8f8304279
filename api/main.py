"""Storefront API — FastAPI entry point.

Registers middleware, routers, and lifecycle hooks. Each vertical
adds its own router under /api/{vertical}/.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestContextMiddleware
from core.database import close_db, init_db
from core.logging_config import configure_logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

VERSION = "0.1.0"
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
).split(",")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
CREATE_TABLES = os.getenv("DB_CREATE_TABLES", "false").lower() == "true"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    configure_logging(level="DEBUG" if DEBUG else None)
    if CREATE_TABLES:
        await init_db()

    logger.info("Storefront API started", extra={"version": VERSION})
    yield
    logger.info("Storefront API shutting down")
    await close_db()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront Bundles",
    description="Build-your-own gift box engine: slot resolution, selection validation and bundle pricing",
    version=VERSION,
    lifespan=lifespan,
    debug=DEBUG,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request id for log correlation
app.add_middleware(RequestContextMiddleware)

# ---------------------------------------------------------------------------
# Routers: verticals register here
# ---------------------------------------------------------------------------

from verticals.bundles.router import router as bundles_router  # noqa: E402

app.include_router(bundles_router, prefix="/api/bundles", tags=["Bundles"])


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    return {
        "name": "Storefront Bundles",
        "version": VERSION,
        "docs": "/docs",
        "verticals": ["bundles"],
    }
