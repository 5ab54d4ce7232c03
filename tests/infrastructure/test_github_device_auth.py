"""Device Authorization tests — poll loop, terminal outcomes, exchange, cancellation.

Tests cover:
    - expires_in=15, interval=5 + always pending → exactly 3 polls, then TimedOut
    - slow_down raises the sleep interval for later attempts
    - denied / expired end the poll with their own error
    - One flow at a time; cancel() stops a live poll promptly
    - Provider and exchange failures map to domain errors; exchange is retryable

All HTTP goes through httpx.MockTransport; sleeping is a recorded no-op.
"""

import asyncio

import httpx
import pytest

from testflow_agent.config import Settings
from testflow_agent.core.domain_types import DeviceFlowStatus
from testflow_agent.core.errors import (
    AuthenticationInProgressError,
    AuthorizationCancelledError,
    AuthorizationDeniedError,
    AuthorizationExpiredError,
    AuthorizationTimedOutError,
    ProviderUnavailableError,
    TokenExchangeFailedError,
    UnauthenticatedError,
)
from testflow_agent.core.token_session import TokenSession
from testflow_agent.infrastructure.github_device_auth import DeviceAuthorizationClient

PENDING = (200, {"error": "authorization_pending"})
SLOW_DOWN = (200, {"error": "slow_down"})
AUTHORIZED = (200, {"access_token": "gho_test", "token_type": "bearer"})


def _device_code(expires_in=900, interval=5):
    return {
        "device_code": "dc-123",
        "user_code": "ABCD-1234",
        "verification_uri": "https://github.test/login/device",
        "expires_in": expires_in,
        "interval": interval,
    }


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeProvider:
    """Scripted GitHub: device-code, token-poll and Copilot exchange endpoints."""

    def __init__(self, polls=(), device=None, exchange=(200, {"token": "tid=copilot"})):
        self.polls = list(polls)
        self.device = device or (200, _device_code())
        self.exchange = exchange
        self.poll_count = 0
        self.poll_forms = []
        self.exchange_headers = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/device/code"):
            status, body = self.device
            return httpx.Response(status, json=body)
        if path.endswith("/access_token"):
            self.poll_count += 1
            self.poll_forms.append(request.content.decode())
            status, body = self.polls.pop(0)
            return httpx.Response(status, json=body)
        if path.endswith("/v2/token"):
            self.exchange_headers = request.headers
            status, body = self.exchange
            return httpx.Response(status, json=body)
        return httpx.Response(404)


def _client(provider, sleep=None, session=None):
    return DeviceAuthorizationClient(
        Settings(),
        session or TokenSession(),
        transport=httpx.MockTransport(provider.handler),
        sleep=sleep or FakeSleep(),
    )


# -- Happy path ----------------------------------------------------------------

@pytest.mark.asyncio
async def test_start_returns_user_code():
    client = _client(FakeProvider())
    state = await client.start_authentication()
    assert state.user_code == "ABCD-1234"
    assert state.status == DeviceFlowStatus.CODE_REQUESTED
    assert client.in_progress is False


@pytest.mark.asyncio
async def test_complete_populates_session_after_exchange():
    provider = FakeProvider(polls=[PENDING, AUTHORIZED])
    session = TokenSession()
    client = _client(provider, session=session)
    await client.start_authentication()
    await client.complete_authentication()

    assert session.is_valid()
    assert session.token == "tid=copilot"
    assert client.last_oauth_token == "gho_test"
    assert client.state.status == DeviceFlowStatus.AUTHORIZED
    assert provider.exchange_headers["authorization"] == "token gho_test"
    assert "device_code=dc-123" in provider.poll_forms[0]
    assert "grant_type=urn" in provider.poll_forms[0]


# -- Attempt budget ------------------------------------------------------------

@pytest.mark.asyncio
async def test_timeout_after_exactly_budgeted_attempts():
    provider = FakeProvider(
        polls=[PENDING, PENDING, PENDING],
        device=(200, _device_code(expires_in=15, interval=5)),
    )
    sleep = FakeSleep()
    session = TokenSession()
    client = _client(provider, sleep=sleep, session=session)
    await client.start_authentication()

    with pytest.raises(AuthorizationTimedOutError) as exc:
        await client.complete_authentication()

    assert exc.value.attempts == 3
    assert provider.poll_count == 3
    assert sleep.calls == [5, 5, 5]
    assert client.state.status == DeviceFlowStatus.TIMED_OUT
    assert session.is_valid() is False


@pytest.mark.asyncio
async def test_slow_down_increases_wait():
    provider = FakeProvider(polls=[SLOW_DOWN, PENDING, AUTHORIZED])
    sleep = FakeSleep()
    client = _client(provider, sleep=sleep)
    await client.start_authentication()
    await client.complete_authentication()
    assert sleep.calls == [5, 10, 10]


@pytest.mark.asyncio
async def test_slow_down_does_not_extend_budget():
    provider = FakeProvider(
        polls=[SLOW_DOWN, PENDING, PENDING],
        device=(200, _device_code(expires_in=15, interval=5)),
    )
    client = _client(provider)
    await client.start_authentication()
    with pytest.raises(AuthorizationTimedOutError):
        await client.complete_authentication()
    assert provider.poll_count == 3


# -- Terminal outcomes ---------------------------------------------------------

@pytest.mark.asyncio
async def test_denied():
    provider = FakeProvider(polls=[
        PENDING,
        (200, {"error": "access_denied", "error_description": "The user denied"}),
    ])
    client = _client(provider)
    await client.start_authentication()
    with pytest.raises(AuthorizationDeniedError) as exc:
        await client.complete_authentication()
    assert exc.value.provider_error == "access_denied"
    assert exc.value.message == "The user denied"
    assert client.state.status == DeviceFlowStatus.DENIED


@pytest.mark.asyncio
async def test_expired_from_4xx_error_body():
    provider = FakeProvider(polls=[(400, {"error": "expired_token"})])
    client = _client(provider)
    await client.start_authentication()
    with pytest.raises(AuthorizationExpiredError):
        await client.complete_authentication()
    assert client.state.status == DeviceFlowStatus.EXPIRED


@pytest.mark.asyncio
async def test_complete_without_pending_code():
    client = _client(FakeProvider())
    with pytest.raises(AuthorizationExpiredError):
        await client.complete_authentication()


@pytest.mark.asyncio
async def test_complete_with_terminal_state_requires_new_code():
    provider = FakeProvider(polls=[(200, {"error": "access_denied"})])
    client = _client(provider)
    await client.start_authentication()
    with pytest.raises(AuthorizationDeniedError):
        await client.complete_authentication()
    with pytest.raises(AuthorizationExpiredError):
        await client.complete_authentication()


@pytest.mark.asyncio
async def test_complete_with_explicit_device_code():
    provider = FakeProvider(polls=[AUTHORIZED])
    session = TokenSession()
    client = _client(provider, session=session)
    await client.complete_authentication("dc-from-caller")
    assert "device_code=dc-from-caller" in provider.poll_forms[0]
    assert session.is_valid()


# -- Concurrency & cancellation -----------------------------------------------

@pytest.mark.asyncio
async def test_second_flow_rejected_and_cancel_stops_poll():
    async def never_wakes(seconds):
        await asyncio.Event().wait()

    provider = FakeProvider()
    client = _client(provider, sleep=never_wakes)
    await client.start_authentication()

    task = asyncio.create_task(client.complete_authentication())
    await asyncio.sleep(0)
    assert client.in_progress is True

    with pytest.raises(AuthenticationInProgressError):
        await client.complete_authentication()
    with pytest.raises(AuthenticationInProgressError):
        await client.start_authentication()

    assert client.cancel() is True
    with pytest.raises(AuthorizationCancelledError):
        await task

    assert provider.poll_count == 0
    assert client.state.status == DeviceFlowStatus.CANCELLED
    assert client.in_progress is False
    assert client.cancel() is False


# -- Provider / exchange failures ----------------------------------------------

@pytest.mark.asyncio
async def test_device_code_http_error():
    client = _client(FakeProvider(device=(500, {"message": "down"})))
    with pytest.raises(ProviderUnavailableError):
        await client.start_authentication()
    assert client.in_progress is False


@pytest.mark.asyncio
async def test_device_code_missing_fields():
    client = _client(FakeProvider(device=(200, {"verification_uri": "x"})))
    with pytest.raises(ProviderUnavailableError):
        await client.start_authentication()


@pytest.mark.asyncio
async def test_connection_error_is_provider_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = DeviceAuthorizationClient(
        Settings(), TokenSession(), transport=httpx.MockTransport(handler),
        sleep=FakeSleep(),
    )
    with pytest.raises(ProviderUnavailableError):
        await client.start_authentication()


@pytest.mark.asyncio
async def test_exchange_failure_then_retry():
    provider = FakeProvider(polls=[AUTHORIZED], exchange=(401, {"message": "nope"}))
    session = TokenSession()
    client = _client(provider, session=session)
    await client.start_authentication()

    with pytest.raises(TokenExchangeFailedError):
        await client.complete_authentication()
    assert session.is_valid() is False
    assert client.last_oauth_token == "gho_test"

    provider.exchange = (200, {"token": "tid=second"})
    await client.retry_token_exchange()
    assert session.token == "tid=second"
    assert provider.poll_count == 1


@pytest.mark.asyncio
async def test_exchange_without_token_field():
    provider = FakeProvider(polls=[AUTHORIZED], exchange=(200, {"expires_at": 1}))
    client = _client(provider)
    await client.start_authentication()
    with pytest.raises(TokenExchangeFailedError):
        await client.complete_authentication()


@pytest.mark.asyncio
async def test_retry_without_oauth_token():
    client = _client(FakeProvider())
    with pytest.raises(UnauthenticatedError):
        await client.retry_token_exchange()
