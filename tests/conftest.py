"""Shared fixtures for the sync engine tests."""

from __future__ import annotations

import copy

import pytest

from agency_platform.identifiers import TestUuidGenerator
from agency_platform.reconciliation import UpdateAllPeAgencies
from agency_platform.referential import InMemoryPeAgenciesReferential

from tests.builders import ADMIN_EMAIL, MOLSHEIM_PAYLOAD, QUESTIONNAIRE_URL, SpyAgencyRepository


@pytest.fixture()
def molsheim_payload() -> dict:
    return copy.deepcopy(MOLSHEIM_PAYLOAD)


@pytest.fixture()
def agency_repository() -> SpyAgencyRepository:
    return SpyAgencyRepository()


@pytest.fixture()
def referential() -> InMemoryPeAgenciesReferential:
    return InMemoryPeAgenciesReferential()


@pytest.fixture()
def uuid_generator() -> TestUuidGenerator:
    return TestUuidGenerator()


@pytest.fixture()
def use_case(agency_repository, referential, uuid_generator) -> UpdateAllPeAgencies:
    return UpdateAllPeAgencies(
        agency_repository,
        referential,
        uuid_generator,
        ADMIN_EMAIL,
        questionnaire_url=QUESTIONNAIRE_URL,
    )
