"""FastAPI application for the Club Console admin API.

Provides REST API endpoints wrapping the clubconsole package for:
- Sign-up, sign-in and session inspection
- Admin dashboard counters
- Moderation queues (users, membership applications, contact messages,
  event proposals)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the clubconsole package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clubconsole import __version__
from clubconsole.config import load_config
from clubconsole.errors import (
    Busy,
    ConsoleError,
    InvalidTransition,
    NotFound,
    ProviderError,
    StoreFailure,
    Unauthorized,
)
from clubconsole.log import setup_logging
from web.backend.app.routers import admin, auth

logger = logging.getLogger(__name__)

_config = load_config()
setup_logging(_config.log_level, _config.log_format)

app = FastAPI(
    title="Club Console API",
    description="REST API for membership-club administration.",
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

_STATUS_FOR_ERROR: dict[type[ConsoleError], int] = {
    Unauthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    Busy: status.HTTP_409_CONFLICT,
    StoreFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProviderError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(ConsoleError)
async def console_error_handler(request: Request, exc: ConsoleError):
    """Map console errors to HTTP responses."""
    http_status = _STATUS_FOR_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.warning(
        "%s on %s: %s", exc.code, request.url.path, exc.message,
        extra={"error_code": exc.code},
    )
    return JSONResponse(
        status_code=http_status,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(admin.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "Club Console API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
