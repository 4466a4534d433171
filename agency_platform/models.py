"""Pydantic request models for the operator API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PeSyncRequest(BaseModel):
    dry_run: bool = Field(
        False,
        description="If true, run against an in-memory snapshot and report what would change",
    )
    source: str = Field(
        "api",
        description="Referential source: 'api' (PE partner API) or 'file' (saved payload)",
    )
    source_file: str | None = Field(
        None,
        description="Server-side path of the saved payload when source is 'file'",
    )
