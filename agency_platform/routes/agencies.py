"""Agency read endpoints and the PE referential sync trigger."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from ..agencies import AGENCY_KINDS, AGENCY_STATUSES
from ..auth import require_tier
from ..helpers import get_agency_repository, make_referential
from ..identifiers import UuidV4Generator
from ..models import PeSyncRequest
from ..reconciliation import ReconciliationRunFailed, UpdateAllPeAgencies
from ..repositories import DryRunAgencyRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/agencies")
async def list_agencies(
    kind: str | None = Query(None, description="Filter by agency kind"),
    status: str | None = Query(None, description="Filter by agency status"),
) -> dict[str, Any]:
    """List agencies, optionally filtered by kind and status."""
    if kind is not None and kind not in AGENCY_KINDS:
        raise HTTPException(status_code=400, detail=f"Invalid kind '{kind}'. Valid: {list(AGENCY_KINDS)}")
    if status is not None and status not in AGENCY_STATUSES:
        raise HTTPException(
            status_code=400, detail=f"Invalid status '{status}'. Valid: {list(AGENCY_STATUSES)}"
        )

    agencies = get_agency_repository().list_agencies(kind=kind, status=status)
    return {
        "meta": {"total": len(agencies)},
        "data": [a.to_dict() for a in agencies],
    }


@router.get("/api/agencies/{agency_id}")
async def get_agency(agency_id: str) -> dict[str, Any]:
    agency = get_agency_repository().get_by_id(agency_id)
    if agency is None:
        raise HTTPException(status_code=404, detail=f"Agency {agency_id} not found")
    return agency.to_dict()


@router.post(
    "/api/agencies/pe-sync",
    dependencies=[Depends(require_tier("admin"))],
)
async def sync_pe_agencies(body: PeSyncRequest | None = None) -> dict[str, Any]:
    """
    Reconcile the PE referential with the agency store.

    With dry_run, the run works on an in-memory snapshot and the response lists
    the agencies that would be inserted or updated.
    """
    body = body or PeSyncRequest()

    try:
        referential = make_referential(body.source, body.source_file)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    repository = get_agency_repository()
    if body.dry_run:
        repository = DryRunAgencyRepository.snapshot_of(repository)

    use_case = UpdateAllPeAgencies(repository, referential, UuidV4Generator())
    try:
        report = use_case.run()
    except ReconciliationRunFailed as e:
        logger.exception("PE agency sync failed")
        raise HTTPException(
            status_code=500,
            detail={
                "message": str(e),
                "cause": str(e.__cause__),
                "processed": e.processed,
                "total": e.total,
                "report": e.report.to_dict(),
            },
        )

    result: dict[str, Any] = {"dry_run": body.dry_run, "report": report.to_dict()}
    if body.dry_run:
        result["would_insert"] = [a.to_dict() for a in repository.inserted]
        result["would_update"] = [a.to_dict() for a in repository.updated]
    return result
