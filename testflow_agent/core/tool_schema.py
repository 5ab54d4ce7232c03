"""Tool Schema — ToolDefinition and its 1:1 mapping to the function-calling shape.

Invariants:
    - as_function_schema() is deterministic and performs no IO
    - Missing description → "Execute <name> from <server>"; missing schema → empty object schema
    - Tool names are unique within a snapshot (first occurrence wins)
    - owner_of() answers only from the snapshot it is given

Design Decisions:
    - Frozen dataclass: a catalog snapshot is a value, valid for one turn only
    - Discovery payload parsing lives here so malformed entries are skipped in one place
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

from testflow_agent.core.domain_types import ServerId

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    owner_server_id: ServerId
    parameter_schema: dict[str, Any] = field(
        default_factory=lambda: dict(_EMPTY_SCHEMA),
    )


def parse_tool_listing(payload: dict[str, Any]) -> list[ToolDefinition]:
    """Parse `{tools: [{name, description, server, inputSchema}]}`.

    Entries without a name are dropped; duplicate names keep the first entry.
    """
    seen: set[str] = set()
    tools: list[ToolDefinition] = []
    for raw in payload.get("tools") or []:
        if not isinstance(raw, dict):
            continue
        name = raw.get("name")
        if not name or name in seen:
            continue
        seen.add(name)
        server = str(raw.get("server") or "")
        tools.append(ToolDefinition(
            name=name,
            description=raw.get("description") or f"Execute {name} from {server}",
            owner_server_id=ServerId(server),
            parameter_schema=raw.get("inputSchema") or dict(_EMPTY_SCHEMA),
        ))
    return tools


def owner_of(tools: Sequence[ToolDefinition], tool_name: str) -> ServerId | None:
    """Server that owns `tool_name` within one snapshot, None if absent."""
    for tool in tools:
        if tool.name == tool_name:
            return tool.owner_server_id
    return None


def as_function_schema(tools: Sequence[ToolDefinition]) -> list[dict]:
    """ToolDefinition[] → chat backend `tools` array."""
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameter_schema,
            },
        }
        for t in tools
    ]
