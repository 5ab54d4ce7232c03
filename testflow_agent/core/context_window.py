"""Context Window — bounded, consistent message-history windowing for re-submission.

Invariants:
    - Returns NEW lists — never mutates input
    - Leading system message always re-attached (never counted against the window)
    - At most `window` non-system messages kept, taken from the end
    - No tool message survives whose assistant tool-call request was dropped

Design Decisions:
    - Slice-then-repair: a plain tail slice can only orphan tool messages at its
      head (requests precede their results), so repair drops orphans instead of
      widening the window — the bound stays exact
    - Pure function, called by the agent loop before every re-submission
"""

from typing import Any

from testflow_agent.core.domain_types import MessageRole


def window_messages(messages: list[dict], window: int) -> list[dict]:
    """Keep system prompt + the most recent `window` consistent messages."""
    system = [m for m in messages[:1] if m.get("role") == MessageRole.SYSTEM.value]
    body = messages[len(system):]
    tail = body[-window:] if window > 0 else []
    return [dict(m) for m in system] + drop_orphan_tool_messages(tail)


def drop_orphan_tool_messages(messages: list[dict]) -> list[dict]:
    """Remove tool messages not preceded by an assistant request for their id."""
    requested: set[str] = set()
    kept: list[dict] = []
    for msg in messages:
        role = msg.get("role")
        if role == MessageRole.ASSISTANT.value:
            requested.update(_requested_ids(msg))
        elif role == MessageRole.TOOL.value:
            if msg.get("tool_call_id") not in requested:
                continue
        kept.append(dict(msg))
    return kept


def is_consistent(messages: list[dict]) -> bool:
    """True iff every tool message follows an assistant request for its id."""
    return len(drop_orphan_tool_messages(messages)) == len(messages)


def _requested_ids(msg: dict[str, Any]) -> list[str]:
    return [
        tc.get("id") for tc in (msg.get("tool_calls") or [])
        if isinstance(tc, dict) and tc.get("id")
    ]
