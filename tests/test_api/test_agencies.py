"""Tests for agency listing and the PE sync trigger."""

from __future__ import annotations

import json

import pytest

from tests.builders import MOLSHEIM_PAYLOAD

from .conftest import SAMPLE_AGENCIES


@pytest.fixture()
def payload_file(tmp_path):
    path = tmp_path / "agences.json"
    path.write_text(json.dumps([MOLSHEIM_PAYLOAD]), encoding="utf-8")
    return str(path)


class TestListAgencies:
    """GET /api/agencies — public."""

    def test_lists_all(self, client):
        resp = client.get("/api/agencies")
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == len(SAMPLE_AGENCIES)
        assert [a["id"] for a in body["data"]] == [a.id for a in SAMPLE_AGENCIES]

    def test_filter_by_kind(self, client):
        body = client.get("/api/agencies", params={"kind": "mission-locale"}).json()
        assert [a["name"] for a in body["data"]] == ["Mission locale de Strasbourg"]

    def test_filter_by_status(self, client):
        body = client.get("/api/agencies", params={"status": "from-api-PE"}).json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["validator_emails"] == ["saverne@pole-emploi.fr"]

    def test_invalid_kind(self, client):
        assert client.get("/api/agencies", params={"kind": "bakery"}).status_code == 400

    def test_invalid_status(self, client):
        assert client.get("/api/agencies", params={"status": "gone"}).status_code == 400

    def test_position_serialized(self, client):
        body = client.get("/api/agencies").json()
        assert body["data"][0]["position"] == {"lat": 49.0, "lon": 7.0}


class TestGetAgency:
    def test_found(self, client):
        agency_id = SAMPLE_AGENCIES[1].id
        resp = client.get(f"/api/agencies/{agency_id}")
        assert resp.status_code == 200
        assert resp.json()["kind"] == "mission-locale"

    def test_not_found(self, client):
        assert client.get("/api/agencies/unknown").status_code == 404


class TestPeSyncAccess:
    """POST /api/agencies/pe-sync — admin only."""

    def test_requires_auth(self, client, payload_file):
        resp = client.post("/api/agencies/pe-sync", json={"source": "file", "source_file": payload_file})
        assert resp.status_code == 401

    def test_invalid_key_rejected(self, bad_key_client):
        resp = bad_key_client.post("/api/agencies/pe-sync", json={})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid API key"


class TestPeSync:
    def test_sync_creates_agency(self, admin_client, fallback_repository, payload_file):
        resp = admin_client.post(
            "/api/agencies/pe-sync",
            json={"source": "file", "source_file": payload_file},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["dry_run"] is False
        assert body["report"]["added"] == 1
        assert body["report"]["total"] == 1
        created = fallback_repository.list_agencies(status="from-api-PE")
        assert sorted(a.external_code for a in created) == ["", "GRE0187"]

    def test_dry_run_leaves_store_untouched(self, admin_client, fallback_repository, payload_file):
        resp = admin_client.post(
            "/api/agencies/pe-sync",
            json={"source": "file", "source_file": payload_file, "dry_run": True},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["dry_run"] is True
        assert [a["external_code"] for a in body["would_insert"]] == ["GRE0187"]
        assert body["would_update"] == []
        assert fallback_repository.agencies == SAMPLE_AGENCIES

    def test_invalid_source(self, admin_client):
        resp = admin_client.post("/api/agencies/pe-sync", json={"source": "ftp"})
        assert resp.status_code == 400

    def test_file_source_without_path(self, admin_client):
        resp = admin_client.post("/api/agencies/pe-sync", json={"source": "file"})
        assert resp.status_code == 400

    def test_failed_run_returns_partial_report(self, admin_client, tmp_path):
        resp = admin_client.post(
            "/api/agencies/pe-sync",
            json={"source": "file", "source_file": str(tmp_path / "missing.json")},
        )
        assert resp.status_code == 500
        detail = resp.json()["detail"]
        assert detail["processed"] == 0
        assert detail["total"] == 0
        assert detail["report"]["added"] == 0
