"""Tool Dispatch — routes a tool call to its owning server and returns a ToolResult.

Invariants:
    - execute() never raises: every failure becomes ToolResult(ok=False, reason)
    - Unknown tools → "Tool <name> not found" (no network call made)
    - Routing uses the snapshot passed in for the turn, never shared catalog state

Design Decisions:
    - Structured result internally, "Error: <reason>" only at the message boundary
      (core/tool_result.py) so the loop branches on `ok`, not on string prefixes
    - Error boundary mirrors the loop's needs: a failed tool is conversational
      content, never an aborted turn
"""

import logging
from typing import Any, Sequence

from testflow_agent.core.errors import ToolExecutionFailedError
from testflow_agent.core.tool_result import ToolResult, parse_execution_payload
from testflow_agent.core.tool_schema import ToolDefinition, owner_of
from testflow_agent.infrastructure.tool_server_client import ToolServerClient

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Executes tool calls against the server that owns each tool."""

    def __init__(self, client: ToolServerClient):
        self._client = client

    async def execute(
        self, tools: Sequence[ToolDefinition], tool_name: str, args: dict[str, Any],
    ) -> ToolResult:
        server_id = owner_of(tools, tool_name)
        if server_id is None:
            logger.warning("Unknown tool requested", extra={"tool_name": tool_name})
            return ToolResult.failure(f"Tool {tool_name} not found")

        try:
            payload = await self._client.execute(server_id, tool_name, args)
        except ToolExecutionFailedError as e:
            logger.warning(
                "Tool execution failed: %s", e.reason,
                extra={"tool_name": tool_name, "error_code": e.code},
            )
            return ToolResult.failure(e.reason)

        result = parse_execution_payload(payload)
        if not result.ok:
            logger.info(
                "Tool reported failure: %s", result.content,
                extra={"tool_name": tool_name},
            )
        return result
