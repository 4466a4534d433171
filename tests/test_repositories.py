"""Tests for agency_platform.repositories — in-memory and dry-run stores."""

import logging

import pytest

from agency_matching.geo_proximity import GeoPosition
from agency_platform.agencies import Agency
from agency_platform.repositories import DryRunAgencyRepository, InMemoryAgencyRepository

from tests.builders import MOLSHEIM_RECORD, build_agency

NEARBY_POSITION = GeoPosition(lat=48.532571324, lon=7.51213)


class TestInMemoryAgencyRepository:
    def test_returns_copies(self):
        repo = InMemoryAgencyRepository([build_agency()])
        agency = repo.get_by_id("existing-uuid")
        agency.validator_emails.append("mutated@mail.com")
        assert repo.get_by_id("existing-uuid").validator_emails == ["existing@mail.com"]

    def test_stores_copies(self):
        agency = build_agency()
        repo = InMemoryAgencyRepository()
        repo.insert(agency)
        agency.validator_emails.append("mutated@mail.com")
        assert repo.agencies[0].validator_emails == ["existing@mail.com"]

    def test_get_all_active(self):
        repo = InMemoryAgencyRepository([
            build_agency(id="a", status="active"),
            build_agency(id="b", status="from-api-PE"),
            build_agency(id="c", status="needsReview"),
            build_agency(id="d", status="closed"),
        ])
        assert [a.id for a in repo.get_all_active()] == ["a", "b"]

    def test_get_nearby_includes_every_kind(self):
        repo = InMemoryAgencyRepository([
            build_agency(id="far"),
            build_agency(id="ml", kind="mission-locale", position=NEARBY_POSITION),
            build_agency(id="pe", position=MOLSHEIM_RECORD.position),
        ])
        nearby = repo.get_nearby(MOLSHEIM_RECORD.position, 0.2)
        assert [a.id for a in nearby] == ["pe", "ml"]

    def test_get_nearby_skips_inactive(self):
        repo = InMemoryAgencyRepository([build_agency(position=NEARBY_POSITION, status="rejected")])
        assert repo.get_nearby(MOLSHEIM_RECORD.position, 0.2) == []

    def test_email_match_in_both_lists(self):
        repo = InMemoryAgencyRepository([
            build_agency(id="a", validator_emails=["v@mail.com"]),
            build_agency(id="b", validator_emails=[], counsellor_emails=["c@mail.com"]),
        ])
        assert repo.get_agency_where_email_matches("v@mail.com").id == "a"
        assert repo.get_agency_where_email_matches("c@mail.com").id == "b"
        assert repo.get_agency_where_email_matches("unknown@mail.com") is None

    def test_email_match_is_case_sensitive(self):
        repo = InMemoryAgencyRepository([build_agency(validator_emails=["v@mail.com"])])
        assert repo.get_agency_where_email_matches("V@mail.com") is None

    def test_list_agencies_filters(self):
        repo = InMemoryAgencyRepository([
            build_agency(id="a"),
            build_agency(id="b", kind="mission-locale"),
            build_agency(id="c", status="closed"),
        ])
        assert [a.id for a in repo.list_agencies()] == ["a", "b", "c"]
        assert [a.id for a in repo.list_agencies(kind="pole-emploi")] == ["a", "c"]
        assert [a.id for a in repo.list_agencies(kind="pole-emploi", status="active")] == ["a"]

    def test_insert_duplicate_raises(self):
        repo = InMemoryAgencyRepository([build_agency()])
        with pytest.raises(ValueError):
            repo.insert(build_agency())

    def test_insert_without_id_raises(self):
        with pytest.raises(ValueError):
            InMemoryAgencyRepository().insert(build_agency(id=""))

    def test_update_unknown_raises(self):
        with pytest.raises(KeyError):
            InMemoryAgencyRepository().update(build_agency())

    def test_update_replaces(self):
        repo = InMemoryAgencyRepository([build_agency()])
        repo.update(build_agency(address="somewhere else"))
        assert repo.get_by_id("existing-uuid").address == "somewhere else"


class TestDryRunAgencyRepository:
    def test_snapshot_leaves_source_untouched(self):
        source = InMemoryAgencyRepository([build_agency()])
        dry_run = DryRunAgencyRepository.snapshot_of(source)

        dry_run.update(build_agency(address="somewhere else"))
        dry_run.insert(build_agency(id="new-uuid"))

        assert source.agencies == [build_agency()]
        assert [a.id for a in dry_run.agencies] == ["existing-uuid", "new-uuid"]

    def test_records_writes(self, caplog):
        dry_run = DryRunAgencyRepository([build_agency()])

        with caplog.at_level(logging.INFO, logger="agency_platform.repositories"):
            dry_run.insert(build_agency(id="new-uuid"))
            dry_run.update(build_agency(address="somewhere else"))

        assert [a.id for a in dry_run.inserted] == ["new-uuid"]
        assert [a.address for a in dry_run.updated] == ["somewhere else"]
        assert "[dry-run] would insert agency new-uuid" in caplog.text
        assert "[dry-run] would update agency existing-uuid" in caplog.text


class TestAgencyDict:
    def test_round_trip(self):
        agency = build_agency()
        assert Agency.from_dict(agency.to_dict()) == agency

    def test_position_serialized_as_dict(self):
        assert build_agency().to_dict()["position"] == {"lat": 49.0, "lon": 7.0}
