"""
Immersion Facilitée — Agency stores

Three implementations of the same store contract:

    InMemoryAgencyRepository  — tests and the API's no-database fallback
    DryRunAgencyRepository    — in-memory snapshot of another store; writes are
                                logged and kept local (sync --dry-run)
    PgAgencyRepository        — PostgreSQL + PostGIS via the db pool

Table layout expected by PgAgencyRepository:

    CREATE TABLE agencies (
        id                 uuid PRIMARY KEY,
        name               text NOT NULL,
        kind               text NOT NULL,
        status             text NOT NULL,
        counsellor_emails  text[] NOT NULL DEFAULT '{}',
        validator_emails   text[] NOT NULL DEFAULT '{}',
        admin_emails       text[] NOT NULL DEFAULT '{}',
        address            text NOT NULL,
        position           geography(Point, 4326) NOT NULL,
        email_signature    text NOT NULL DEFAULT '',
        questionnaire_url  text NOT NULL DEFAULT '',
        agency_siret       text,
        external_code      text,
        code_safir         text,
        created_at         timestamptz NOT NULL DEFAULT now(),
        updated_at         timestamptz NOT NULL DEFAULT now()
    );
"""

from __future__ import annotations

import logging
from typing import Any

from agency_matching.geo_proximity import GeoPosition, find_nearby_candidates

from . import db
from .agencies import ACTIVE_AGENCY_STATUSES, Agency
from .db import extras

logger = logging.getLogger(__name__)


class AgencyRepository:
    """
    Store contract consumed by the sync engine and the API.

    get_nearby() returns active agencies of every kind within radius_km
    (inclusive), nearest first; callers filter by kind.
    get_agency_where_email_matches() looks at both email lists of every
    agency, whatever its kind, and compares emails exactly.
    """

    def get_all_active(self) -> list[Agency]:
        raise NotImplementedError

    def get_nearby(self, position: GeoPosition, radius_km: float) -> list[Agency]:
        raise NotImplementedError

    def get_agency_where_email_matches(self, email: str) -> Agency | None:
        raise NotImplementedError

    def get_by_id(self, agency_id: str) -> Agency | None:
        raise NotImplementedError

    def list_agencies(self, kind: str | None = None, status: str | None = None) -> list[Agency]:
        raise NotImplementedError

    def insert(self, agency: Agency) -> None:
        raise NotImplementedError

    def update(self, agency: Agency) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryAgencyRepository(AgencyRepository):
    """Insertion-ordered dict of agencies.  Stores and returns copies."""

    def __init__(self, agencies: list[Agency] | None = None) -> None:
        self._agencies: dict[str, Agency] = {}
        self.set_agencies(agencies or [])

    @property
    def agencies(self) -> list[Agency]:
        return [a.copy() for a in self._agencies.values()]

    def set_agencies(self, agencies: list[Agency]) -> None:
        self._agencies = {a.id: a.copy() for a in agencies}

    def get_all_active(self) -> list[Agency]:
        return [a.copy() for a in self._agencies.values() if a.status in ACTIVE_AGENCY_STATUSES]

    def get_nearby(self, position: GeoPosition, radius_km: float) -> list[Agency]:
        nearby = find_nearby_candidates(
            position,
            (a for a in self._agencies.values() if a.status in ACTIVE_AGENCY_STATUSES),
            radius_km,
            position_of=lambda a: a.position,
        )
        return [agency.copy() for _, agency in nearby]

    def get_agency_where_email_matches(self, email: str) -> Agency | None:
        for agency in self._agencies.values():
            if email in agency.validator_emails or email in agency.counsellor_emails:
                return agency.copy()
        return None

    def get_by_id(self, agency_id: str) -> Agency | None:
        agency = self._agencies.get(agency_id)
        return agency.copy() if agency else None

    def list_agencies(self, kind: str | None = None, status: str | None = None) -> list[Agency]:
        return [
            a.copy()
            for a in self._agencies.values()
            if (kind is None or a.kind == kind) and (status is None or a.status == status)
        ]

    def insert(self, agency: Agency) -> None:
        if not agency.id:
            raise ValueError("Cannot insert an agency without id")
        if agency.id in self._agencies:
            raise ValueError(f"Agency {agency.id} already exists")
        self._agencies[agency.id] = agency.copy()

    def update(self, agency: Agency) -> None:
        if agency.id not in self._agencies:
            raise KeyError(f"Agency {agency.id} not found")
        self._agencies[agency.id] = agency.copy()


class DryRunAgencyRepository(InMemoryAgencyRepository):
    """In-memory snapshot of another store.  Writes are logged, never propagated."""

    def __init__(self, agencies: list[Agency] | None = None) -> None:
        super().__init__(agencies)
        self.inserted: list[Agency] = []
        self.updated: list[Agency] = []

    @classmethod
    def snapshot_of(cls, repository: AgencyRepository) -> "DryRunAgencyRepository":
        return cls(repository.list_agencies())

    def insert(self, agency: Agency) -> None:
        super().insert(agency)
        self.inserted.append(agency.copy())
        logger.info("[dry-run] would insert agency %s (%s)", agency.id, agency.name)

    def update(self, agency: Agency) -> None:
        super().update(agency)
        self.updated.append(agency.copy())
        logger.info("[dry-run] would update agency %s (%s)", agency.id, agency.name)


# ---------------------------------------------------------------------------
# PostgreSQL / PostGIS
# ---------------------------------------------------------------------------

_AGENCY_COLUMNS = """
    id::text AS id, name, kind, status,
    counsellor_emails, validator_emails, admin_emails,
    address,
    ST_Y(position::geometry) AS lat,
    ST_X(position::geometry) AS lon,
    email_signature, questionnaire_url,
    agency_siret, external_code, code_safir
"""

_POINT_SQL = "ST_SetSRID(ST_MakePoint(%s, %s), 4326)::geography"


def _row_to_agency(row: dict[str, Any]) -> Agency:
    return Agency(
        id=row["id"],
        name=row["name"],
        kind=row["kind"],
        status=row["status"],
        counsellor_emails=list(row.get("counsellor_emails") or []),
        validator_emails=list(row.get("validator_emails") or []),
        admin_emails=list(row.get("admin_emails") or []),
        address=row.get("address") or "",
        position=GeoPosition(lat=float(row["lat"]), lon=float(row["lon"])),
        signature=row.get("email_signature") or "",
        questionnaire_url=row.get("questionnaire_url") or "",
        agency_siret=row.get("agency_siret"),
        external_code=row.get("external_code"),
        code_safir=row.get("code_safir"),
    )


class PgAgencyRepository(AgencyRepository):
    """Agency store backed by the db connection pool (one transaction per call)."""

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[Agency]:
        with db.get_conn() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                return [_row_to_agency(r) for r in cur.fetchall()]

    def get_all_active(self) -> list[Agency]:
        return self._fetch_all(
            f"SELECT {_AGENCY_COLUMNS} FROM agencies WHERE status = ANY(%s) ORDER BY name",
            (list(ACTIVE_AGENCY_STATUSES),),
        )

    def get_nearby(self, position: GeoPosition, radius_km: float) -> list[Agency]:
        return self._fetch_all(
            f"""
            SELECT {_AGENCY_COLUMNS}
            FROM agencies
            WHERE status = ANY(%s)
              AND ST_DWithin(position, {_POINT_SQL}, %s)
            ORDER BY ST_Distance(position, {_POINT_SQL})
            """,
            (
                list(ACTIVE_AGENCY_STATUSES),
                position.lon,
                position.lat,
                radius_km * 1000,
                position.lon,
                position.lat,
            ),
        )

    def get_agency_where_email_matches(self, email: str) -> Agency | None:
        agencies = self._fetch_all(
            f"""
            SELECT {_AGENCY_COLUMNS}
            FROM agencies
            WHERE %s = ANY(validator_emails) OR %s = ANY(counsellor_emails)
            ORDER BY created_at, id
            LIMIT 1
            """,
            (email, email),
        )
        return agencies[0] if agencies else None

    def get_by_id(self, agency_id: str) -> Agency | None:
        agencies = self._fetch_all(
            f"SELECT {_AGENCY_COLUMNS} FROM agencies WHERE id::text = %s",
            (agency_id,),
        )
        return agencies[0] if agencies else None

    def list_agencies(self, kind: str | None = None, status: str | None = None) -> list[Agency]:
        clauses: list[str] = []
        params: list[Any] = []
        if kind:
            clauses.append("kind = %s")
            params.append(kind)
        if status:
            clauses.append("status = %s")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return self._fetch_all(
            f"SELECT {_AGENCY_COLUMNS} FROM agencies {where} ORDER BY created_at, id",
            tuple(params),
        )

    def insert(self, agency: Agency) -> None:
        if not agency.id:
            raise ValueError("Cannot insert an agency without id")
        with db.get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO agencies
                        (id, name, kind, status,
                         counsellor_emails, validator_emails, admin_emails,
                         address, position, email_signature, questionnaire_url,
                         agency_siret, external_code, code_safir)
                    VALUES (%s::uuid, %s, %s, %s, %s, %s, %s, %s, {_POINT_SQL},
                            %s, %s, %s, %s, %s)
                    """,
                    (
                        agency.id,
                        agency.name,
                        agency.kind,
                        agency.status,
                        agency.counsellor_emails,
                        agency.validator_emails,
                        agency.admin_emails,
                        agency.address,
                        agency.position.lon,
                        agency.position.lat,
                        agency.signature,
                        agency.questionnaire_url,
                        agency.agency_siret,
                        agency.external_code,
                        agency.code_safir,
                    ),
                )

    def update(self, agency: Agency) -> None:
        with db.get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE agencies
                    SET name = %s,
                        kind = %s,
                        status = %s,
                        counsellor_emails = %s,
                        validator_emails = %s,
                        admin_emails = %s,
                        address = %s,
                        position = {_POINT_SQL},
                        email_signature = %s,
                        questionnaire_url = %s,
                        agency_siret = %s,
                        external_code = %s,
                        code_safir = %s,
                        updated_at = now()
                    WHERE id = %s::uuid
                    """,
                    (
                        agency.name,
                        agency.kind,
                        agency.status,
                        agency.counsellor_emails,
                        agency.validator_emails,
                        agency.admin_emails,
                        agency.address,
                        agency.position.lon,
                        agency.position.lat,
                        agency.signature,
                        agency.questionnaire_url,
                        agency.agency_siret,
                        agency.external_code,
                        agency.code_safir,
                        agency.id,
                    ),
                )
                if cur.rowcount == 0:
                    raise KeyError(f"Agency {agency.id} not found")
