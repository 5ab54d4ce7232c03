"""API test fixtures — ASGI client over the real app with a FakeBackend-wired service.

Design Decisions:
    - ASGITransport does not run the lifespan: the service is placed on app.state directly
"""

import pytest
from httpx import ASGITransport, AsyncClient

from testflow_agent.config import Settings
from testflow_agent.main import app
from testflow_agent.services.copilot_service import CopilotService

from tests.services.mock_copilot import FakeBackend, FakeSleep


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def service(backend):
    svc = CopilotService.from_settings(Settings(), backend.transport, sleep=FakeSleep())
    yield svc
    await svc.aclose()


@pytest.fixture
async def client(service):
    app.state.copilot_service = service
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as ac:
        yield ac
