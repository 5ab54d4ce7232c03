"""Device Flow — pure state + transition rules for the OAuth device-authorization poll.

Invariants:
    - Attempt budget is floor(expires_in / interval), fixed when polling starts
    - slow_down raises the effective interval by a fixed increment; budget unchanged
    - Only poll responses drive transitions; terminal states never transition again
    - access_token present → AUTHORIZED; error names map to exactly one status

Design Decisions:
    - Classification split from IO: infrastructure/github_device_auth.py does the
      HTTP + sleeping, this module decides what each response means (ADR: functional core)
    - Unknown provider error names are treated as DENIED — the provider refused and
      a blind retry would not help
"""

from dataclasses import dataclass, field
from typing import Any

from testflow_agent.core.domain_types import (
    DeviceFlowStatus, TERMINAL_FLOW_STATUSES,
)

DEFAULT_INTERVAL = 5
DEFAULT_EXPIRES_IN = 900

_PENDING = "authorization_pending"
_SLOW_DOWN = "slow_down"
_EXPIRED = "expired_token"


@dataclass
class DeviceFlowState:
    """One live device-authorization attempt."""
    device_code: str
    user_code: str
    verification_uri: str
    interval: int = DEFAULT_INTERVAL
    expires_in: int = DEFAULT_EXPIRES_IN
    status: DeviceFlowStatus = DeviceFlowStatus.CODE_REQUESTED
    attempts: int = 0
    description: str | None = field(default=None, repr=False)

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "DeviceFlowState":
        """Build from a device-code endpoint response."""
        return cls(
            device_code=payload["device_code"],
            user_code=payload["user_code"],
            verification_uri=payload["verification_uri"],
            interval=int(payload.get("interval") or DEFAULT_INTERVAL),
            expires_in=int(payload.get("expires_in") or DEFAULT_EXPIRES_IN),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_FLOW_STATUSES

    def public_view(self) -> dict:
        """What a UI needs to prompt the user (device_code included for completion)."""
        return {
            "device_code": self.device_code,
            "user_code": self.user_code,
            "verification_uri": self.verification_uri,
            "interval": self.interval,
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True)
class PollOutcome:
    """Meaning of one token-poll response."""
    status: DeviceFlowStatus
    access_token: str | None = None
    error: str | None = None
    description: str | None = None


def max_poll_attempts(expires_in: int, interval: int) -> int:
    """floor(expires_in / interval); interval clamped to >= 1."""
    return max(0, expires_in) // max(1, interval)


def classify_poll_response(payload: dict[str, Any]) -> PollOutcome:
    """Map a token-endpoint JSON body to a PollOutcome."""
    error = payload.get("error")
    if error:
        description = payload.get("error_description") or error
        if error == _PENDING:
            return PollOutcome(DeviceFlowStatus.PENDING, error=error)
        if error == _SLOW_DOWN:
            return PollOutcome(DeviceFlowStatus.SLOW_DOWN, error=error)
        if error == _EXPIRED:
            return PollOutcome(
                DeviceFlowStatus.EXPIRED, error=error, description=description,
            )
        return PollOutcome(
            DeviceFlowStatus.DENIED, error=error, description=description,
        )

    token = payload.get("access_token")
    if token:
        return PollOutcome(DeviceFlowStatus.AUTHORIZED, access_token=token)
    # 2xx with neither error nor token: keep waiting
    return PollOutcome(DeviceFlowStatus.PENDING)


def apply_outcome(
    state: DeviceFlowState, outcome: PollOutcome, slow_down_increment: int,
) -> DeviceFlowState:
    """Advance state by one poll response. Mutates and returns state."""
    if state.is_terminal:
        return state
    state.attempts += 1
    state.status = outcome.status
    state.description = outcome.description
    if outcome.status == DeviceFlowStatus.SLOW_DOWN:
        state.interval += slow_down_increment
    return state
