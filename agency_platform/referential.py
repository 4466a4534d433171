"""
Immersion Facilitée — Pôle emploi agencies referential

Gateways returning the full current snapshot of the PE agency referential as
ReferentialAgencyRecord objects:

    HttpPeAgenciesReferential      — PE partner API (OAuth2 client credentials)
    JsonFilePeAgenciesReferential  — a saved copy of the API payload
    InMemoryPeAgenciesReferential  — tests

Raw payloads are validated here (PeAgencyPayload); the sync engine trusts
the records it receives.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field

from agency_matching.geo_proximity import GeoPosition

from . import config
from .agencies import ReferentialAgencyRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload schema (French field names as served by the PE API)
# ---------------------------------------------------------------------------


class _PayloadModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PeAgencyContactPayload(_PayloadModel):
    telephone_public: str | None = Field(None, alias="telephonePublic")
    email: str | None = None


class PeAgencyAddressPayload(_PayloadModel):
    ligne4: str | None = ""
    ligne5: str | None = ""
    ligne6: str | None = ""
    gps_lat: float = Field(..., alias="gpsLat", ge=-90, le=90)
    gps_lon: float = Field(..., alias="gpsLon", ge=-180, le=180)
    commune_implantation: str | None = Field(None, alias="communeImplantation")
    bureau_distributeur: str | None = Field(None, alias="bureauDistributeur")


class PeAgencyPayload(_PayloadModel):
    code: str
    code_safir: str = Field(..., alias="codeSafir")
    libelle: str | None = None
    libelle_etendu: str = Field(..., alias="libelleEtendu")
    siret: str
    contact: PeAgencyContactPayload | None = None
    adresse_principale: PeAgencyAddressPayload = Field(..., alias="adressePrincipale")

    def to_record(self) -> ReferentialAgencyRecord:
        email = self.contact.email.strip() if self.contact and self.contact.email else None
        address = self.adresse_principale
        return ReferentialAgencyRecord(
            code=self.code,
            code_safir=self.code_safir,
            display_name=self.libelle_etendu,
            siret=self.siret,
            contact_email=email or None,
            address_lines=(address.ligne4 or "", address.ligne5 or "", address.ligne6 or ""),
            position=GeoPosition(lat=address.gps_lat, lon=address.gps_lon),
        )


def parse_pe_agencies(payload: Any) -> list[ReferentialAgencyRecord]:
    """
    Validate a raw referential payload (list of agency objects).

    Raises pydantic.ValidationError on the first malformed entry and
    ValueError if the payload is not a list.
    """
    if not isinstance(payload, list):
        raise ValueError(
            f"PE referential payload must be a list, got {type(payload).__name__}"
        )
    return [PeAgencyPayload.model_validate(item).to_record() for item in payload]


# ---------------------------------------------------------------------------
# Gateways
# ---------------------------------------------------------------------------


class InMemoryPeAgenciesReferential:
    def __init__(self, agencies: list[ReferentialAgencyRecord] | None = None) -> None:
        self._agencies = list(agencies or [])

    def set_agencies(self, agencies: list[ReferentialAgencyRecord]) -> None:
        self._agencies = list(agencies)

    def get_agencies(self) -> list[ReferentialAgencyRecord]:
        return list(self._agencies)


class JsonFilePeAgenciesReferential:
    """Reads a payload previously saved from the PE API."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_agencies(self) -> list[ReferentialAgencyRecord]:
        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        records = parse_pe_agencies(payload)
        logger.info("Loaded %d referential agencies from %s", len(records), self.path)
        return records


class HttpPeAgenciesReferential:
    """
    PE partner API client.

    Exchanges client credentials for an access token on every call to
    get_agencies(); the sync runs once, so the token is never reused.
    HTTP failures raise requests.HTTPError.
    """

    def __init__(
        self,
        *,
        api_url: str = config.PE_API_URL,
        access_token_url: str = config.PE_ACCESS_TOKEN_URL,
        client_id: str = config.PE_CLIENT_ID,
        client_secret: str = config.PE_CLIENT_SECRET,
        scope: str = config.PE_SCOPE,
        timeout: float = config.PE_HTTP_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url
        self.access_token_url = access_token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_access_token(self) -> str:
        resp = self.session.post(
            self.access_token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": self.scope,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        token = resp.json().get("access_token")
        if not token:
            raise ValueError("PE access token response has no access_token")
        return token

    def get_agencies(self) -> list[ReferentialAgencyRecord]:
        token = self._get_access_token()
        resp = self.session.get(
            self.api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        records = parse_pe_agencies(resp.json())
        logger.info("Fetched %d referential agencies from %s", len(records), self.api_url)
        return records
