"""Shared fixtures for the kidbook test suite."""

from __future__ import annotations

import pytest
from fakes import FakeStudioClient

from kidbook.workflow import StudioController, StudioSession


@pytest.fixture
def fake_client() -> FakeStudioClient:
    return FakeStudioClient()


@pytest.fixture
def session() -> StudioSession:
    return StudioSession(topic="A shy octopus", page_count=4)


@pytest.fixture
def controller(fake_client: FakeStudioClient, session: StudioSession) -> StudioController:
    return StudioController(fake_client, session)
