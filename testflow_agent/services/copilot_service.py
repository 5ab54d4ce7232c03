"""Copilot Service — caller-facing facade over authentication, chat, and model listing.

Invariants:
    - One TokenSession per service (process-lifetime container), shared by auth + chat
    - authenticate() returns device-code details immediately; the poll runs in a
      background task that populates the session (or ends in a logged failure)
    - At most one background poll task alive at a time
    - Chat without a valid session → UnauthenticatedError (after one silent
      re-exchange attempt when an OAuth token from a previous flow is held)
    - That error always follows a device flow being live: one is started when none
      runs, and its user code and verification URI ride on the error
    - The background poll task never ends with an exception; failures land in
      last_auth_error

Design Decisions:
    - Facade over many small collaborators: routes depend on one object
      (ADR: routes hold no logic)
    - from_settings() wires the production graph; tests inject transports/fakes
"""

import asyncio
import logging
from collections.abc import AsyncIterator

import httpx

from testflow_agent.config import Settings
from testflow_agent.core.errors import (
    AgentRuntimeError, AuthenticationInProgressError, ErrorCategory, TokenExchangeFailedError,
    UnauthenticatedError,
)
from testflow_agent.core.token_session import TokenSession
from testflow_agent.infrastructure.copilot_client import CopilotChatClient
from testflow_agent.infrastructure.github_device_auth import (
    DeviceAuthorizationClient, Sleep,
)
from testflow_agent.infrastructure.tool_server_client import ToolServerClient
from testflow_agent.services.agent_runner import AgentConversation
from testflow_agent.services.agent_runner_helpers import (
    ChatResult, system_message, user_message,
)
from testflow_agent.services.system_prompt import build_system_prompt
from testflow_agent.services.tool_dispatch import ToolExecutor
from testflow_agent.services.tools_registry import ToolCatalog

logger = logging.getLogger(__name__)


class CopilotService:
    """Everything the API layer needs, behind one object."""

    def __init__(
        self,
        settings: Settings,
        session: TokenSession,
        device_auth: DeviceAuthorizationClient,
        chat_client: CopilotChatClient,
        tool_client: ToolServerClient,
    ):
        self.settings = settings
        self.session = session
        self.device_auth = device_auth
        self.chat_client = chat_client
        self.tool_client = tool_client
        self.catalog = ToolCatalog(tool_client)
        self.executor = ToolExecutor(tool_client)
        self.conversation = AgentConversation(
            chat_client, session, self.catalog, self.executor, settings,
        )
        self._poll_task: asyncio.Task | None = None
        self.last_auth_error: AgentRuntimeError | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "CopilotService":
        session = TokenSession()
        return cls(
            settings,
            session,
            DeviceAuthorizationClient(settings, session, transport, sleep),
            CopilotChatClient(settings, transport),
            ToolServerClient(settings, transport),
        )

    async def aclose(self) -> None:
        self.cancel_authentication()
        if self._poll_task is not None:
            self._poll_task.cancel()
            await asyncio.gather(self._poll_task, return_exceptions=True)
        await self.device_auth.aclose()
        await self.chat_client.aclose()
        await self.tool_client.aclose()

    # -- Authentication --------------------------------------------------

    async def authenticate(self) -> dict:
        """Start the device flow; completion continues in the background."""
        if self._poll_task is not None and not self._poll_task.done():
            raise AuthenticationInProgressError()
        state = await self.device_auth.start_authentication()
        self.last_auth_error = None
        self._poll_task = asyncio.create_task(self._complete_in_background())
        return state.public_view()

    async def complete_authentication(self, device_code: str | None = None) -> None:
        """Poll to completion in the caller's request."""
        await self.device_auth.complete_authentication(device_code)

    def cancel_authentication(self) -> bool:
        return self.device_auth.cancel()

    def is_authenticated(self) -> bool:
        return self.session.is_valid()

    def set_token(self, token: str, ttl_seconds: float | None = None) -> None:
        """Manually supply a Copilot token (bypasses the device flow)."""
        ttl = self.settings.token_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.session.set(token, ttl)
        logger.info("Token set manually")

    def clear_auth(self) -> None:
        self.session.clear()
        self.device_auth.last_oauth_token = None
        logger.info("Authentication cleared")

    def auth_status(self) -> dict:
        state = self.device_auth.state
        return {
            **self.session.snapshot(),
            "authenticated": self.session.is_valid(),
            "in_progress": self.device_auth.in_progress,
            "flow_status": state.status.value if state else None,
            "user_code": state.user_code if state and not state.is_terminal else None,
            "verification_uri": (
                state.verification_uri if state and not state.is_terminal else None
            ),
            "last_error": self.last_auth_error.to_response()["error"]
            if self.last_auth_error else None,
        }

    # -- Chat --------------------------------------------------------------

    async def chat(
        self,
        message: str,
        tools_enabled: bool = True,
        max_tool_calls: int | None = None,
        model: str | None = None,
    ) -> ChatResult:
        await self.ensure_session()
        return await self.conversation.run(message, tools_enabled, max_tool_calls, model)

    async def chat_stream(self, message: str, model: str | None = None) -> AsyncIterator[str]:
        """Incremental text chunks; tools are advisory only on this path."""
        await self.ensure_session()
        tools = await self.catalog.fetch_tools()
        messages = [
            system_message(build_system_prompt(tools, agent_mode=False)),
            user_message(message),
        ]
        async for chunk in self.chat_client.stream_completion(
            self.session.token, messages, model,
        ):
            yield chunk

    async def list_models(self) -> list[dict]:
        await self.ensure_session()
        return await self.chat_client.list_models(self.session.token)

    # -- Session -------------------------------------------------------------

    async def ensure_session(self) -> None:
        if self.session.is_valid():
            return
        if self.device_auth.last_oauth_token:
            try:
                await self.device_auth.retry_token_exchange()
                return
            except TokenExchangeFailedError as e:
                logger.warning(
                    "Silent token refresh failed: %s", e.message,
                    extra={"error_code": e.code},
                )
        raise UnauthenticatedError(device_prompt=await self._device_prompt())

    async def _device_prompt(self) -> dict | None:
        """User code of the live device flow, starting one when none is running."""
        if not self.device_auth.in_progress:
            try:
                await self.authenticate()
            except AuthenticationInProgressError:
                pass
            except AgentRuntimeError as e:
                logger.warning(
                    "Could not start device authorization: %s", e.message,
                    extra={"error_code": e.code},
                )
                return None
        state = self.device_auth.state
        if state is None or state.is_terminal:
            return None
        return {
            "user_code": state.user_code,
            "verification_uri": state.verification_uri,
            "expires_in": state.expires_in,
        }

    async def _complete_in_background(self) -> None:
        try:
            await self.device_auth.complete_authentication()
        except AgentRuntimeError as e:
            self.last_auth_error = e
            logger.warning(
                "Background authentication ended: %s", e.message,
                extra={"error_code": e.code},
            )
        except Exception as e:
            logger.error("Unexpected error during authentication: %s", e, exc_info=True)
            self.last_auth_error = AgentRuntimeError(
                f"Authentication failed unexpectedly: {e}",
                "AUTHENTICATION_FAILED", ErrorCategory.INTERNAL,
            )
