"""Execution Step — one dispatched tool call as seen by the caller.

Invariants:
    - Created RUNNING; finish() moves it to SUCCESS or ERROR exactly once
    - A finished step is immutable (second finish() raises)
    - result_excerpt never exceeds the excerpt limit given to finish()

Design Decisions:
    - action/locator/value derived from the tool call at creation, so a UI can
      render the step before the tool returns
    - id = "step-<n>" within the turn: ordering is already carried by the list
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from testflow_agent.core.domain_types import StepStatus

_ACTION_LABELS = {
    "browser_navigate": "Navigate",
    "browser_click": "Click",
    "browser_fill_form": "Fill Form",
    "browser_type": "Type Text",
    "browser_snapshot": "Take Snapshot",
    "browser_wait_for": "Wait",
    "read_file": "Read File",
    "write_file": "Write File",
    "execute_command": "Execute Command",
    "browser_evaluate": "Run JavaScript",
    "browser_select_option": "Select Option",
    "browser_hover": "Hover",
    "browser_drag": "Drag",
    "browser_press_key": "Press Key",
}

_LOCATOR_KEYS = ("selector", "element", "ref", "locator", "path", "url")


def action_label(tool_name: str) -> str:
    """browser_click → "Click"; unknown snake_case → Title Case words."""
    label = _ACTION_LABELS.get(tool_name)
    if label:
        return label
    return " ".join(w.capitalize() for w in tool_name.split("_") if w)


def extract_locator(args: dict[str, Any]) -> str | None:
    for key in _LOCATOR_KEYS:
        val = args.get(key)
        if val:
            return val if isinstance(val, str) else json.dumps(val, ensure_ascii=False)
    return None


def extract_value(args: dict[str, Any]) -> str | None:
    if args.get("text"):
        return str(args["text"])
    if args.get("value"):
        return str(args["value"])
    if args.get("values"):
        return json.dumps(args["values"], ensure_ascii=False)
    if args.get("command"):
        return str(args["command"])
    if args.get("content"):
        return str(args["content"])[:100]
    return None


@dataclass
class ExecutionStep:
    id: str
    tool_name: str
    action: str
    args: dict[str, Any] = field(default_factory=dict, repr=False)
    locator: str | None = None
    value: str | None = None
    status: StepStatus = StepStatus.RUNNING
    result_excerpt: str = ""
    synthesized_code: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def start(cls, index: int, tool_name: str, args: dict[str, Any]) -> "ExecutionStep":
        return cls(
            id=f"step-{index}",
            tool_name=tool_name,
            action=action_label(tool_name),
            args=args,
            locator=extract_locator(args),
            value=extract_value(args),
        )

    @property
    def is_finished(self) -> bool:
        return self.status != StepStatus.RUNNING

    def finish(self, ok: bool, result_text: str, code: str, excerpt_limit: int) -> None:
        if self.is_finished:
            raise ValueError(f"ExecutionStep {self.id} already finished")
        self.status = StepStatus.SUCCESS if ok else StepStatus.ERROR
        self.result_excerpt = result_text[:excerpt_limit]
        self.synthesized_code = code

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tool_name": self.tool_name,
            "action": self.action,
            "locator": self.locator,
            "value": self.value,
            "status": self.status.value,
            "result_excerpt": self.result_excerpt,
            "synthesized_code": self.synthesized_code,
            "timestamp": self.timestamp.isoformat(),
        }
