#!/usr/bin/env python3
"""
Immersion Facilitée — Agency Operator API

Dual-mode FastAPI server:
  • Database mode — reads and writes the PostgreSQL agency store
  • In-memory fallback — empty in-memory store when the DB is unavailable

Usage:
    uvicorn agency_platform.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI

from . import __version__, config, db
from .auth import auth_middleware
from .routes import agencies, health

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Immersion Facilitée — Agencies",
    version=__version__,
    description="Agency listing and Pôle emploi referential sync",
)

app.middleware("http")(auth_middleware)

app.include_router(health.router)
app.include_router(agencies.router)

app.state.server_started_at = datetime.now(timezone.utc)


@app.on_event("startup")
async def startup():
    app.state.server_started_at = datetime.now(timezone.utc)
    if db.init_pool():
        logger.info("Running in DATABASE mode")
    else:
        logger.info("Running in IN-MEMORY FALLBACK mode")


@app.on_event("shutdown")
async def shutdown():
    db.close_pool()
