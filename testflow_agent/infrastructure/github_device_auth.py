"""GitHub Device Authorization — OAuth device flow + Copilot service-token exchange over httpx.

Invariants:
    - Poll attempts never exceed floor(expires_in / interval), fixed when polling starts
    - Poll ends in exactly one of: authorized, denied, expired, timed out, cancelled
    - Only one flow (start or complete) live per client → AuthenticationInProgressError
    - TokenSession populated only after a successful service-token exchange
    - Every httpx failure mapped to a domain error; tokens/device codes never logged

Design Decisions:
    - Sleep injected (default asyncio.sleep): tests run many rounds with zero wall time
    - Cancellation via asyncio.Event raced against the sleep, checked before and after
      (ADR: caller abandon must stop the poll promptly, not at expiry)
    - Response meaning decided by core/device_flow.py; this module only does IO + sleeping
    - OAuth token kept as last_oauth_token so a failed exchange can be retried
      without a new device code
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from testflow_agent.config import Settings
from testflow_agent.core.device_flow import (
    DeviceFlowState, apply_outcome, classify_poll_response, max_poll_attempts,
)
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

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

_JSON_HEADERS = {"Accept": "application/json"}


class DeviceAuthorizationClient:
    """Runs the device flow and populates a TokenSession."""

    def __init__(
        self,
        settings: Settings,
        session: TokenSession,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.session = session
        self.state: DeviceFlowState | None = None
        self.last_oauth_token: str | None = None
        self._sleep = sleep
        self._in_progress = False
        self._cancel = asyncio.Event()
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=settings.auth_timeout_seconds,
        )

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- Two-phase flow ------------------------------------------------

    async def start_authentication(self) -> DeviceFlowState:
        """Phase 1: obtain a device code for the user to enter."""
        self._acquire()
        try:
            self.state = await self.request_device_code()
            return self.state
        finally:
            self._in_progress = False

    async def complete_authentication(self, device_code: str | None = None) -> None:
        """Phase 2: poll until authorized, exchange, populate the session."""
        state = self._state_for(device_code)
        self._acquire()
        try:
            oauth_token = await self.poll_for_token(state)
            self.last_oauth_token = oauth_token
            token = await self.exchange_for_service_token(oauth_token)
            self.session.set(token, self.settings.token_ttl_seconds)
            logger.info("Authentication complete")
        finally:
            self._in_progress = False
            self._cancel.clear()

    def cancel(self) -> bool:
        """Abandon the live poll. Returns False when nothing was running."""
        if not self._in_progress:
            return False
        self._cancel.set()
        return True

    async def retry_token_exchange(self) -> None:
        """Re-attempt the exchange with the OAuth token from the last flow."""
        if not self.last_oauth_token:
            raise UnauthenticatedError(
                "No authorized GitHub token to exchange. Please authenticate.",
            )
        token = await self.exchange_for_service_token(self.last_oauth_token)
        self.session.set(token, self.settings.token_ttl_seconds)

    # -- Provider calls ------------------------------------------------

    async def request_device_code(self) -> DeviceFlowState:
        body = await self._post_form(
            self.settings.github_device_code_url,
            {"client_id": self.settings.github_client_id, "scope": self.settings.github_scope},
        )
        if not body.get("device_code") or not body.get("user_code"):
            raise ProviderUnavailableError("device-code response missing fields")
        state = DeviceFlowState.from_provider(body)
        logger.info(
            f"Device code issued; enter {state.user_code} at {state.verification_uri}",
        )
        return state

    async def poll_for_token(self, state: DeviceFlowState) -> str:
        """Poll the token endpoint within the attempt budget; return the OAuth token."""
        budget = max_poll_attempts(state.expires_in, state.interval)
        state.status = DeviceFlowStatus.PENDING
        for attempt in range(1, budget + 1):
            await self._wait(state)
            body = await self._post_form(
                self.settings.github_token_url,
                {
                    "client_id": self.settings.github_client_id,
                    "device_code": state.device_code,
                    "grant_type": self.settings.github_grant_type,
                },
                allow_error_body=True,
            )
            outcome = classify_poll_response(body)
            apply_outcome(state, outcome, self.settings.device_poll_slow_down_seconds)
            logger.debug(
                f"Device poll → {state.status.value}",
                extra={"attempt": attempt},
            )
            if state.status == DeviceFlowStatus.AUTHORIZED:
                return outcome.access_token
            if state.status == DeviceFlowStatus.DENIED:
                raise AuthorizationDeniedError(
                    state.description or "Authorization denied", outcome.error,
                )
            if state.status == DeviceFlowStatus.EXPIRED:
                raise AuthorizationExpiredError(
                    state.description or "Device code expired. Please request a new code.",
                )

        state.status = DeviceFlowStatus.TIMED_OUT
        logger.warning(
            "Device authorization timed out", extra={"attempt": budget},
        )
        raise AuthorizationTimedOutError(budget)

    async def exchange_for_service_token(self, oauth_token: str) -> str:
        """GitHub OAuth token → Copilot bearer token."""
        try:
            response = await self._http.get(
                self.settings.copilot_token_url,
                headers={
                    **_JSON_HEADERS,
                    "Authorization": f"token {oauth_token}",
                    "Editor-Version": self.settings.copilot_editor_version,
                    "Editor-Plugin-Version": self.settings.copilot_plugin_version,
                    "User-Agent": self.settings.copilot_user_agent,
                },
            )
        except httpx.HTTPError as e:
            raise TokenExchangeFailedError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise TokenExchangeFailedError(f"HTTP {response.status_code}")
        token = _json_or_empty(response).get("token")
        if not token:
            raise TokenExchangeFailedError("response carried no token")
        return token

    # -- Internals -----------------------------------------------------

    def _acquire(self) -> None:
        if self._in_progress:
            raise AuthenticationInProgressError()
        self._in_progress = True
        self._cancel.clear()

    def _state_for(self, device_code: str | None) -> DeviceFlowState:
        if device_code and (self.state is None or self.state.device_code != device_code):
            return DeviceFlowState(
                device_code=device_code, user_code="", verification_uri="",
            )
        if self.state is None or self.state.is_terminal:
            raise AuthorizationExpiredError(
                "No pending device code. Please request a new code.",
            )
        return self.state

    async def _wait(self, state: DeviceFlowState) -> None:
        self._raise_if_cancelled(state)
        sleeper = asyncio.ensure_future(self._sleep(state.interval))
        canceller = asyncio.ensure_future(self._cancel.wait())
        try:
            await asyncio.wait(
                {sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (sleeper, canceller):
                if not task.done():
                    task.cancel()
        self._raise_if_cancelled(state)

    def _raise_if_cancelled(self, state: DeviceFlowState) -> None:
        if self._cancel.is_set():
            state.status = DeviceFlowStatus.CANCELLED
            logger.info("Device authorization cancelled by caller")
            raise AuthorizationCancelledError()

    async def _post_form(
        self, url: str, data: dict[str, str], allow_error_body: bool = False,
    ) -> dict:
        try:
            response = await self._http.post(url, data=data, headers=_JSON_HEADERS)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"{type(e).__name__}: {e}") from e
        body = _json_or_empty(response)
        if response.is_success:
            return body
        # GitHub answers some poll states with 4xx + {error}
        if allow_error_body and body.get("error"):
            return body
        raise ProviderUnavailableError(f"HTTP {response.status_code}")


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
