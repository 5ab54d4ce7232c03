"""Domain Types — enums and aliases that replace bare strings across the codebase.

Invariants:
    - All valid states encoded as Enums — no raw string matching in loop/auth logic
    - str Enums: serialize to JSON without custom encoders

Design Decisions:
    - NewType for identifiers: zero runtime cost, full type-checker support
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ToolCallId = NewType("ToolCallId", str)
ServerId = NewType("ServerId", str)


# ─── Enums ───────────────────────────────────────────────────────

class MessageRole(str, Enum):
    """Chat-completion message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class StepStatus(str, Enum):
    """ExecutionStep lifecycle: running → success | error (then immutable)."""
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class DeviceFlowStatus(str, Enum):
    """Device-authorization state machine states."""
    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    PENDING = "pending"
    SLOW_DOWN = "slow_down"
    AUTHORIZED = "authorized"
    DENIED = "denied"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


TERMINAL_FLOW_STATUSES = frozenset({
    DeviceFlowStatus.AUTHORIZED,
    DeviceFlowStatus.DENIED,
    DeviceFlowStatus.EXPIRED,
    DeviceFlowStatus.TIMED_OUT,
    DeviceFlowStatus.CANCELLED,
})
