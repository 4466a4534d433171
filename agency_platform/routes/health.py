"""Liveness and store status."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from .. import db
from ..helpers import get_fallback_repository, iso

logger = logging.getLogger(__name__)

router = APIRouter()


def _probe_database() -> tuple[int, float]:
    """Agency count and round-trip time in ms; raises if the query fails."""
    started = time.monotonic()
    with db.get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT count(*) FROM agencies")
            (agency_count,) = cur.fetchone()
    return agency_count, round((time.monotonic() - started) * 1000, 1)


@router.get("/api/health")
async def health(request: Request):
    """
    Open to everyone.  200 when the PostgreSQL store answers, 503 when the
    API is serving the in-memory fallback store.
    """
    database_up = False
    latency_ms: float | None = None
    if db.is_available():
        try:
            agency_count, latency_ms = _probe_database()
            database_up = True
        except Exception:
            logger.exception("Health: agencies count query failed")

    if not database_up:
        agency_count = len(get_fallback_repository().agencies)

    started_at: datetime = request.app.state.server_started_at
    uptime = datetime.now(timezone.utc) - started_at

    body = {
        "status": "healthy" if database_up else "degraded",
        "mode": "database" if database_up else "in_memory_fallback",
        "agency_count": agency_count,
        "version": request.app.version,
        "database_connected": database_up,
        "started_at": iso(started_at),
        "uptime_seconds": int(uptime.total_seconds()),
        "checks": {"database": {"status": "up" if database_up else "down", "latency_ms": latency_ms}},
    }
    return JSONResponse(status_code=200 if database_up else 503, content=body)
