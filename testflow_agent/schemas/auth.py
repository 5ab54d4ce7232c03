"""Auth Schemas — Pydantic models for the device-flow and manual-token endpoints.

Invariants:
    - ManualToken.token: non-empty after strip; ttl_seconds > 0 when given
    - Responses never carry the bearer token itself

Design Decisions:
    - DeviceCodeResponse includes device_code: the UI echoes it back to
      POST /auth/device/complete (two-phase flow)
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class DeviceCodeResponse(BaseModel):
    """What the user needs to authorize this device."""
    device_code: str
    user_code: str
    verification_uri: str
    interval: int
    expires_in: int


class CompleteAuthRequest(BaseModel):
    """Optional device code from a previously displayed DeviceCodeResponse."""
    device_code: str | None = Field(None, min_length=1, max_length=200)


class ManualToken(BaseModel):
    """Manually supplied Copilot token."""
    token: str = Field(min_length=1, max_length=4096)
    ttl_seconds: int | None = Field(None, gt=0)

    @field_validator("token")
    @classmethod
    def strip_token(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("token cannot be empty or whitespace")
        return v


class AuthStatus(BaseModel):
    """Session + live device-flow status."""
    authenticated: bool
    has_token: bool
    is_valid: bool
    expires_at: datetime | None = None
    in_progress: bool = False
    flow_status: str | None = None
    user_code: str | None = None
    verification_uri: str | None = None
    last_error: dict | None = None
