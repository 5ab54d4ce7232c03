"""Tools Registry — live tool catalog discovered from the tool servers.

Invariants:
    - fetch_tools() and list_tools() never raise: discovery failure → () (agent
      degrades to no-tools mode)
    - A snapshot is an immutable tuple; names unique within it
    - Only list_tools() replaces the shared `snapshot`; fetch_tools() leaves it alone

Design Decisions:
    - Catalog is fetched fresh per turn: tool servers can connect/disconnect between turns
    - Callers route with the tuple they were handed, never with `snapshot`, so a
      concurrent refresh cannot change the tools of a turn already in flight
    - Parsing delegated to core/tool_schema.py; this class holds IO + the snapshot
"""

import logging

from testflow_agent.core.errors import ToolDiscoveryFailedError
from testflow_agent.core.tool_schema import ToolDefinition, parse_tool_listing
from testflow_agent.infrastructure.tool_server_client import ToolServerClient

logger = logging.getLogger(__name__)

ToolSnapshot = tuple[ToolDefinition, ...]


class ToolCatalog:
    """Discovers tools; remembers the last snapshot handed to an agent turn."""

    def __init__(self, client: ToolServerClient):
        self._client = client
        self._snapshot: ToolSnapshot = ()

    @property
    def snapshot(self) -> ToolSnapshot:
        return self._snapshot

    async def fetch_tools(self) -> ToolSnapshot:
        """Read the discovery endpoint without touching the shared snapshot."""
        try:
            payload = await self._client.list_tools()
        except ToolDiscoveryFailedError as e:
            logger.warning(
                "Tool discovery failed, continuing without tools: %s", e.message,
                extra={"error_code": e.code},
            )
            return ()
        tools = tuple(parse_tool_listing(payload))
        logger.info(f"Discovered {len(tools)} tool(s)")
        return tools

    async def list_tools(self) -> ToolSnapshot:
        """Fetch a snapshot for one turn and record it as the latest."""
        tools = await self.fetch_tools()
        self._snapshot = tools
        return tools
