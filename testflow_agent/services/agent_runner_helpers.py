"""Agent Runner Helpers — pure message builders, response introspection, and result shaping.

Invariants:
    - All functions are pure (stateless, deterministic)
    - Message dicts follow the OpenAI-compatible chat shape (role + content [+ tool_calls])
    - An assistant message only ever carries the tool calls that will be answered
    - Every tool call on an assistant message has a non-empty id matching its tool message

Design Decisions:
    - Extracted from agent_runner.py so the loop reads as control flow only
    - Argument parsing returns (args, error) instead of raising: a malformed call
      becomes an error step, not an aborted turn
"""

import json
from dataclasses import dataclass, field
from typing import Any

from testflow_agent.core.domain_types import MessageRole, ToolCallId
from testflow_agent.core.execution_step import ExecutionStep
from testflow_agent.core.tool_result import ERROR_PREFIX, ToolResult

NO_RESPONSE_TEXT = "No response generated"


@dataclass
class ChatResult:
    """Outcome of one agent turn."""
    text: str
    steps: list[ExecutionStep] = field(default_factory=list)
    model: str | None = None
    usage: dict | None = None
    id: str | None = None
    tool_calls_executed: int = 0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "steps": [s.to_dict() for s in self.steps],
            "model": self.model,
            "usage": self.usage,
            "id": self.id,
            "tool_calls_executed": self.tool_calls_executed,
        }


# -- Message builders ----------------------------------------------------------

def system_message(content: str) -> dict:
    return {"role": MessageRole.SYSTEM.value, "content": content}


def user_message(content: str) -> dict:
    return {"role": MessageRole.USER.value, "content": content}


def assistant_message(message: dict, calls: list[dict]) -> dict:
    """Assistant turn restricted to the calls that will get a tool message."""
    return {
        "role": MessageRole.ASSISTANT.value,
        "content": message.get("content"),
        "tool_calls": calls,
    }


def tool_message(tool_call_id: ToolCallId, content: str) -> dict:
    return {
        "role": MessageRole.TOOL.value,
        "tool_call_id": tool_call_id,
        "content": content,
    }


# -- Response introspection ----------------------------------------------------

def first_message(response: dict) -> dict:
    choices = response.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0].get("message") or {}


def requested_tool_calls(message: dict) -> list[dict]:
    return [
        c for c in (message.get("tool_calls") or [])
        if isinstance(c, dict) and isinstance(c.get("function"), dict)
    ]


def with_call_ids(calls: list[dict], round_number: int) -> list[dict]:
    """Give every call a non-empty id; a missing one becomes `call_<round>_<n>`."""
    return [
        call if call.get("id") else {**call, "id": ToolCallId(f"call_{round_number}_{n}")}
        for n, call in enumerate(calls, 1)
    ]


def parse_arguments(raw: Any) -> tuple[dict[str, Any], str | None]:
    """Decode a tool call's JSON arguments. Returns (args, error_or_None)."""
    if raw is None or raw == "":
        return {}, None
    if isinstance(raw, dict):
        return raw, None
    try:
        args = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        return {}, f"Invalid JSON arguments: {e}"
    if not isinstance(args, dict):
        return {}, "Tool arguments must be a JSON object"
    return args, None


def result_succeeded(result: ToolResult) -> bool:
    """Tool servers sometimes report failure as successful text starting with "Error"."""
    return result.ok and not result.content.startswith(ERROR_PREFIX.strip())


def final_text(message: dict) -> str:
    return message.get("content") or NO_RESPONSE_TEXT


def build_chat_result(
    message: dict, response: dict, steps: list[ExecutionStep], executed: int,
) -> ChatResult:
    return ChatResult(
        text=final_text(message),
        steps=steps,
        model=response.get("model"),
        usage=response.get("usage"),
        id=response.get("id"),
        tool_calls_executed=executed,
    )


# -- SSE event builders --------------------------------------------------------

def text_event(chunk: str) -> dict:
    return {"type": "agent_text", "data": chunk}


def done_event(error: bool = False) -> dict:
    return {"type": "done", "data": {"error": error}}
