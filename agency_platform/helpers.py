"""Shared helpers: store and referential selection, serialization."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from . import db
from .referential import HttpPeAgenciesReferential, JsonFilePeAgenciesReferential
from .repositories import AgencyRepository, InMemoryAgencyRepository, PgAgencyRepository

# Used by the API when the database is unavailable.
_FALLBACK_REPOSITORY = InMemoryAgencyRepository()

REFERENTIAL_SOURCES = ("api", "file")


def get_agency_repository() -> AgencyRepository:
    """PostgreSQL store when the pool is up, in-memory fallback otherwise."""
    if db.is_available():
        return PgAgencyRepository()
    return _FALLBACK_REPOSITORY


def get_fallback_repository() -> InMemoryAgencyRepository:
    return _FALLBACK_REPOSITORY


def make_referential(source: str, source_file: str | Path | None = None):
    """Build the PE referential gateway for ``source`` ('api' or 'file')."""
    if source == "api":
        return HttpPeAgenciesReferential()
    if source == "file":
        if not source_file:
            raise ValueError("source 'file' requires a source file path")
        return JsonFilePeAgenciesReferential(source_file)
    raise ValueError(f"Invalid referential source '{source}'. Valid: {list(REFERENTIAL_SOURCES)}")


def iso(dt) -> str | None:
    """Convert a datetime to ISO 8601 string, or return None."""
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.isoformat()
    return str(dt)

