"""Tool Server Client — discovery + execution calls against the tool-server aggregator.

Invariants:
    - list_tools() returns the raw `{tools: [...]}` body or raises ToolDiscoveryFailedError
    - execute() returns a `{success, result|error}` body or raises ToolExecutionFailedError
    - 4xx/5xx bodies that carry `{error}` are returned as failures, not raised

Design Decisions:
    - Raw bodies out, parsing in core (tool_schema / tool_result): this module is IO only
    - Transport injectable: tests use httpx.MockTransport, no network
"""

import logging
from typing import Any

import httpx

from testflow_agent.config import Settings
from testflow_agent.core.domain_types import ServerId
from testflow_agent.core.errors import ToolDiscoveryFailedError, ToolExecutionFailedError

logger = logging.getLogger(__name__)


class ToolServerClient:
    """HTTP access to the tool servers' list-tools / execute-tool actions."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=settings.tool_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_tools(self) -> dict:
        try:
            response = await self._http.get(self.settings.tool_discovery_url)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ToolDiscoveryFailedError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ToolDiscoveryFailedError("listing was not valid JSON") from e
        if not isinstance(body, dict):
            raise ToolDiscoveryFailedError("listing was not a JSON object")
        return body

    async def execute(self, server_id: ServerId, tool_name: str, args: dict[str, Any]) -> dict:
        try:
            response = await self._http.post(
                self.settings.tool_execution_url,
                json={
                    "action": "execute-tool",
                    "serverId": server_id,
                    "toolName": tool_name,
                    "args": args,
                },
            )
        except httpx.HTTPError as e:
            raise ToolExecutionFailedError(tool_name, f"{type(e).__name__}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if response.is_success and isinstance(body, dict):
            return body
        if isinstance(body, dict) and body.get("error"):
            return {"success": False, "error": body["error"]}
        raise ToolExecutionFailedError(
            tool_name, f"tool server returned HTTP {response.status_code}",
        )
