"""FastAPI application for the LoopGuard moderation service.

Provides REST API endpoints wrapping the LoopGuard Python package for:
- Moderating text and media descriptions/transcripts
- Explaining finished decisions
- Inspecting per-user violation history
- Offline accuracy checks
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loopguard import __version__
from loopguard.logging import configure_logging
from web.backend.app.routers import moderation

configure_logging(logging.DEBUG if os.environ.get("LOOPGUARD_DEBUG") else logging.INFO)

app = FastAPI(
    title="LoopGuard API",
    description=(
        "REST API for the LoopGuard content moderation engine. "
        "Provides endpoints for moderation decisions, explanations, "
        "violation history and accuracy evaluation."
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

app.include_router(moderation.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "LoopGuard API",
        "version": __version__,
        "description": "Content moderation decision engine",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
