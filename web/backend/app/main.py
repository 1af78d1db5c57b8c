"""FastAPI application for the envdeck web console.

Provides REST API endpoints wrapping the envdeck Python package for:
- Organization and repository browsing, including the environment grid
- Bulk environment creation
- Secrets and variables of a single repository environment
- Bulk secret/variable operations across repositories x environments
- Inventory reconciliation (where each name is defined or missing)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Ensure the envdeck package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from envdeck import __version__
from envdeck.errors import NotSignedInError, OperationValidationError, RemoteError
from web.backend.app.routers import bulk, environments, inventory, orgs

logger = logging.getLogger(__name__)

app = FastAPI(
    title="envdeck API",
    description=(
        "REST API for the envdeck console. "
        "Provides endpoints for browsing organizations, creating environments, "
        "managing secrets and variables, bulk operations and inventory reconciliation."
    ),
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
# Include routers
# ---------------------------------------------------------------------------
app.include_router(orgs.router)
app.include_router(environments.router)
app.include_router(bulk.router)
app.include_router(inventory.router)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@app.exception_handler(OperationValidationError)
async def validation_error_handler(request: Request, exc: OperationValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(RemoteError)
async def remote_error_handler(request: Request, exc: RemoteError):
    """Auth and not-found statuses pass through; anything else is a bad gateway."""
    code = exc.status if exc.status in (401, 403, 404) else status.HTTP_502_BAD_GATEWAY
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "remote_status": exc.status},
    )


@app.exception_handler(NotSignedInError)
async def not_signed_in_handler(request: Request, exc: NotSignedInError):
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "envdeck API",
        "version": __version__,
        "description": "Bulk console for repository environments, secrets and variables",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
