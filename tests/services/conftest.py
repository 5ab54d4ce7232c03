"""Service test fixtures — real clients wired to a scripted FakeBackend.

Invariants:
    - Every test gets a fresh FakeBackend and fresh Settings
    - agent fixture holds a valid session token; service fixture starts unauthenticated

Design Decisions:
    - Mock at the HTTP boundary (httpx.MockTransport), real clients/catalog/executor:
      wire shapes are exercised end to end without network
"""

import pytest

from testflow_agent.config import Settings
from testflow_agent.services.copilot_service import CopilotService

from tests.services.mock_copilot import FakeBackend, FakeSleep, build_agent


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def agent(backend, settings):
    return build_agent(backend, settings)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
async def service(backend, settings, fake_sleep):
    svc = CopilotService.from_settings(settings, backend.transport, sleep=fake_sleep)
    yield svc
    await svc.aclose()
