"""
Immersion Facilitée — Pôle emploi agency sync

Reconciles the PE agency referential with the agency store.  For every
referential agency, in order:

    1. no contact email          → skipped, counted in has_no_email
    2. exact email match         → that pole-emploi agency is updated
    3. pole-emploi agencies within the nearby radius:
         0  → a new agency is created (status from-api-PE)
         1  → that agency is updated
         2+ → nothing is written; logged for manual triage

Records are processed one at a time; every store call returns before the
next one starts, so an agency created for one record is visible to the
lookups of the next.  The first collaborator failure aborts the run with
ReconciliationRunFailed, which carries the counts accumulated so far.

Used by scripts/update_all_pe_agencies.py and POST /api/agencies/pe-sync.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from agency_matching.address import normalize_address
from agency_matching.emails import merge_validator_email

from . import config
from .agencies import (
    FROM_PE_REFERENTIAL_STATUS,
    POLE_EMPLOI_KIND,
    Agency,
    ReferentialAgencyRecord,
)
from .repositories import AgencyRepository


@dataclass
class ReconciliationReport:
    """Tally of one sync run."""

    total: int = 0
    added: int = 0
    has_no_email: int = 0
    matched_email: int = 0
    matched_nearby: int = 0
    too_many_matches: int = 0
    updated: int = 0
    ignored_other_kind_email_match: int = 0
    duration_seconds: float = 0.0
    # referential code → candidate agency ids, for manual triage
    ambiguous: list[dict[str, Any]] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "total": self.total,
            "added": self.added,
            "has_no_email": self.has_no_email,
            "matched_email": self.matched_email,
            "matched_nearby": self.matched_nearby,
            "too_many_matches": self.too_many_matches,
            "updated": self.updated,
            "ignored_other_kind_email_match": self.ignored_other_kind_email_match,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ReconciliationRunFailed(Exception):
    """A collaborator failed mid-run; ``report`` holds the partial tally."""

    def __init__(self, report: ReconciliationReport, processed: int, total: int):
        self.report = report
        self.processed = processed
        self.total = total
        super().__init__(
            f"PE agency sync aborted after {processed} of {total} referential agencies"
        )


# ---------------------------------------------------------------------------
# Agency construction helpers
# ---------------------------------------------------------------------------


def agency_signature(name: str) -> str:
    return f"L'équipe de l'{name}"


def create_agency_from_referential(
    record: ReferentialAgencyRecord,
    agency_id: str,
    default_admin_email: str,
    questionnaire_url: str,
) -> Agency:
    return Agency(
        id=agency_id,
        name=record.display_name,
        counsellor_emails=[],
        validator_emails=[record.contact_email] if record.contact_email else [],
        admin_emails=[default_admin_email],
        address=normalize_address(record.address_lines),
        position=record.position,
        signature=agency_signature(record.display_name),
        questionnaire_url=questionnaire_url,
        agency_siret=record.siret,
        external_code=record.code,
        code_safir=record.code_safir,
        kind=POLE_EMPLOI_KIND,
        status=FROM_PE_REFERENTIAL_STATUS,
    )


def update_agency_from_referential(
    existing: Agency,
    record: ReferentialAgencyRecord,
) -> Agency:
    """
    Referential data wins for geodata and identifiers; name, signature,
    admin emails, questionnaire, kind and status are kept.
    """
    merged = merge_validator_email(
        existing.counsellor_emails,
        existing.validator_emails,
        record.contact_email,
    )
    updated = existing.copy()
    updated.address = normalize_address(record.address_lines)
    updated.position = record.position
    updated.counsellor_emails = merged.counsellor_emails
    updated.validator_emails = merged.validator_emails
    updated.agency_siret = record.siret
    updated.external_code = record.code
    updated.code_safir = record.code_safir
    return updated


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class UpdateAllPeAgencies:
    def __init__(
        self,
        agency_repository: AgencyRepository,
        referential,
        uuid_generator,
        default_admin_email: str = config.DEFAULT_ADMIN_EMAIL,
        *,
        questionnaire_url: str = config.DEFAULT_QUESTIONNAIRE_URL,
        nearby_radius_km: float = config.PE_AGENCY_NEARBY_RADIUS_KM,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.agency_repository = agency_repository
        self.referential = referential
        self.uuid_generator = uuid_generator
        self.default_admin_email = default_admin_email
        self.questionnaire_url = questionnaire_url
        self.nearby_radius_km = nearby_radius_km
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock

    def run(self) -> ReconciliationReport:
        start = self.clock()
        report = ReconciliationReport()
        processed = 0
        total = 0

        try:
            referential_agencies = self.referential.get_agencies()
            total = len(referential_agencies)
            self.logger.info("Starting to process %d referential agencies", total)
            self.logger.info(
                "Total number of active agencies in DB before sync: %d",
                len(self.agency_repository.get_all_active()),
            )

            for record in referential_agencies:
                report.total += 1
                self._process(record, report)
                processed += 1

        except Exception as e:
            report.duration_seconds = round(self.clock() - start, 3)
            self.logger.error(
                "Partial run: %d of %d referential agencies processed — %s: %s",
                processed,
                total,
                type(e).__name__,
                e,
            )
            self.logger.error("Partial counts: %s", report.counts())
            raise ReconciliationRunFailed(report, processed, total) from e

        report.duration_seconds = round(self.clock() - start, 3)
        self.logger.info(
            "Completed in %.3f seconds, full report below: %s",
            report.duration_seconds,
            report.counts(),
        )
        return report

    # -- per record ---------------------------------------------------------

    def _process(self, record: ReferentialAgencyRecord, report: ReconciliationReport) -> None:
        if not record.contact_email:
            self.logger.warning("No email for %s", record.display_name)
            report.has_no_email += 1
            return

        email_matched = self.agency_repository.get_agency_where_email_matches(
            record.contact_email
        )
        if email_matched is not None:
            if email_matched.kind == POLE_EMPLOI_KIND:
                report.matched_email += 1
                self._update(email_matched, record, report)
                return
            self.logger.warning(
                "Email %s of %s matches agency %s of kind '%s' — ignored, trying nearby match",
                record.contact_email,
                record.display_name,
                email_matched.id,
                email_matched.kind,
            )
            report.ignored_other_kind_email_match += 1

        nearby = [
            agency
            for agency in self.agency_repository.get_nearby(record.position, self.nearby_radius_km)
            if agency.kind == POLE_EMPLOI_KIND
        ]

        if not nearby:
            self._create(record)
            report.added += 1
        elif len(nearby) == 1:
            report.matched_nearby += 1
            self._update(nearby[0], record, report)
        else:
            self.logger.warning(
                "%s has %d agencies matching", record.display_name, len(nearby)
            )
            self.logger.info(
                "Ambiguous match — referential agency: %s — matched agencies: %s",
                record.to_dict(),
                [agency.to_dict() for agency in nearby],
            )
            report.too_many_matches += 1
            report.ambiguous.append({
                "code": record.code,
                "code_safir": record.code_safir,
                "display_name": record.display_name,
                "candidate_agency_ids": [agency.id for agency in nearby],
            })

    def _create(self, record: ReferentialAgencyRecord) -> None:
        agency = create_agency_from_referential(
            record,
            self.uuid_generator.new(),
            self.default_admin_email,
            self.questionnaire_url,
        )
        self.agency_repository.insert(agency)

    def _update(
        self,
        existing: Agency,
        record: ReferentialAgencyRecord,
        report: ReconciliationReport,
    ) -> None:
        self.agency_repository.update(update_agency_from_referential(existing, record))
        report.updated += 1
