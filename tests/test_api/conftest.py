"""Shared fixtures for the API test suite.

All tests run in in-memory fallback mode (no database required).
We seed the fallback repository directly, and patch db.is_available() → False.

Auth injection: we patch auth._validate_key so that the test admin key
resolves to an admin AuthContext without a configured bcrypt hash.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from agency_matching.geo_proximity import GeoPosition

from tests.builders import build_agency

ADMIN_KEY = "if_test_admin_0000000000000000"

SAMPLE_AGENCIES = [
    build_agency(id="aaaaaaaa-0001-0001-0001-000000000001"),
    build_agency(
        id="aaaaaaaa-0001-0001-0001-000000000002",
        name="Mission locale de Strasbourg",
        kind="mission-locale",
        position=GeoPosition(lat=48.5734, lon=7.7521),
        validator_emails=["ml-strasbourg@mail.com"],
    ),
    build_agency(
        id="aaaaaaaa-0001-0001-0001-000000000003",
        name="Agence Pôle emploi Saverne",
        status="from-api-PE",
        position=GeoPosition(lat=48.7414, lon=7.3623),
        validator_emails=["saverne@pole-emploi.fr"],
    ),
]


def _patched_validate_key(api_key: str):
    from agency_platform.auth import AuthContext

    if api_key == ADMIN_KEY:
        return AuthContext(tier="admin", actor_id="test:admin_key", actor_type="operator")
    return None


@pytest.fixture()
def app():
    """FastAPI app running in in-memory fallback mode (no DB)."""
    with (
        patch("agency_platform.db.is_available", return_value=False),
        patch("agency_platform.db.init_pool", return_value=False),
        patch("agency_platform.db.close_pool"),
        patch("agency_platform.auth._validate_key", side_effect=_patched_validate_key),
    ):
        from agency_platform import auth, helpers
        from agency_platform.app import app as _app

        auth.clear_cache()
        helpers.get_fallback_repository().set_agencies(SAMPLE_AGENCIES)
        _app.state.server_started_at = datetime(2026, 2, 24, 0, 0, 0, tzinfo=timezone.utc)

        yield _app

        helpers.get_fallback_repository().set_agencies([])
        auth.clear_cache()


@pytest.fixture()
def fallback_repository(app):
    from agency_platform import helpers

    return helpers.get_fallback_repository()


@pytest.fixture()
def client(app):
    """Unauthenticated (public tier) TestClient — no API key header."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def admin_client(app):
    """admin tier TestClient."""
    return TestClient(app, raise_server_exceptions=False, headers={"X-API-Key": ADMIN_KEY})


@pytest.fixture()
def bad_key_client(app):
    return TestClient(app, raise_server_exceptions=False, headers={"X-API-Key": "not-a-key"})
