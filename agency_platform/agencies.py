"""
Immersion Facilitée — Agency domain records

Agency is the canonical, mutable representation stored by the platform.
ReferentialAgencyRecord is one row of the Pôle emploi referential, immutable
for the duration of a sync run.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

from agency_matching.geo_proximity import GeoPosition

# ---------------------------------------------------------------------------
# Closed tags
# ---------------------------------------------------------------------------

POLE_EMPLOI_KIND = "pole-emploi"

AGENCY_KINDS = (
    POLE_EMPLOI_KIND,
    "mission-locale",
    "cap-emploi",
    "conseil-departemental",
    "prepa-apprentissage",
    "structure-IAE",
    "autre",
)

FROM_PE_REFERENTIAL_STATUS = "from-api-PE"

AGENCY_STATUSES = (
    "needsReview",
    "active",
    "closed",
    "rejected",
    FROM_PE_REFERENTIAL_STATUS,
)

ACTIVE_AGENCY_STATUSES = ("active", FROM_PE_REFERENTIAL_STATUS)


@dataclass
class Agency:
    """A prescribing agency (Pôle emploi, mission locale, …)."""

    id: str
    name: str
    address: str
    position: GeoPosition
    kind: str
    status: str
    counsellor_emails: list[str] = field(default_factory=list)
    validator_emails: list[str] = field(default_factory=list)
    admin_emails: list[str] = field(default_factory=list)
    signature: str = ""
    questionnaire_url: str = ""
    agency_siret: str | None = None
    external_code: str | None = None
    code_safir: str | None = None

    def copy(self) -> "Agency":
        """Deep-enough copy: fresh email lists, shared immutable position."""
        return replace(
            self,
            counsellor_emails=list(self.counsellor_emails),
            validator_emails=list(self.validator_emails),
            admin_emails=list(self.admin_emails),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Agency":
        pos = data["position"]
        return cls(
            **{
                **data,
                "position": pos if isinstance(pos, GeoPosition) else GeoPosition(
                    lat=float(pos["lat"]), lon=float(pos["lon"])
                ),
                "counsellor_emails": list(data.get("counsellor_emails") or []),
                "validator_emails": list(data.get("validator_emails") or []),
                "admin_emails": list(data.get("admin_emails") or []),
            }
        )


@dataclass(frozen=True)
class ReferentialAgencyRecord:
    """One agency as published by the Pôle emploi referential."""

    code: str
    code_safir: str
    display_name: str
    siret: str
    address_lines: tuple[str, ...]
    position: GeoPosition
    contact_email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
