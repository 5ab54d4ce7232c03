"""Tool Result — structured outcome of one tool execution.

Invariants:
    - ok=False content is always the bare reason (no "Error:" prefix stored)
    - to_message_content() is what the model sees: raw text, or "Error: <reason>"
    - parse_execution_payload never raises on malformed bodies

Design Decisions:
    - Structured internally, string at the wire: the literal "Error:" prefix is kept
      for backend/model compatibility while loop code branches on `ok` (ADR: open
      question on error convention — both preserved)
    - MCP content blocks flattened by joining their text parts with newlines
"""

import json
from dataclasses import dataclass
from typing import Any

ERROR_PREFIX = "Error: "


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    content: str

    @classmethod
    def success(cls, content: str) -> "ToolResult":
        return cls(True, content)

    @classmethod
    def failure(cls, reason: str) -> "ToolResult":
        return cls(False, reason)

    def to_message_content(self) -> str:
        if self.ok:
            return self.content
        return f"{ERROR_PREFIX}{self.content}"


def flatten_tool_output(result: Any) -> str:
    """Extract text from an MCP-style result (`{content: [{text}]}`) or JSON-dump it."""
    if isinstance(result, str):
        return result
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        parts = [
            str(block.get("text", ""))
            for block in result["content"]
            if isinstance(block, dict)
        ]
        return "\n".join(parts)
    return json.dumps(result, ensure_ascii=False)


def parse_execution_payload(payload: Any) -> ToolResult:
    """Map `{success, result|error}` to a ToolResult."""
    if not isinstance(payload, dict):
        return ToolResult.failure("Malformed tool server response")
    if payload.get("success"):
        return ToolResult.success(flatten_tool_output(payload.get("result")))
    return ToolResult.failure(str(payload.get("error") or "Unknown tool error"))


def truncate_for_model(text: str, limit: int) -> str:
    """Cap tool output before it re-enters the conversation."""
    if len(text) <= limit:
        return text
    return text[:limit] + "\n... (truncated, result was too long)"
