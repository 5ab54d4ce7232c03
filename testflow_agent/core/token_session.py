"""Token Session — in-memory bearer credential with expiry.

Invariants:
    - is_valid() is True iff token is not None and now < expires_at
    - set() overwrites both fields; clear() wipes both; neither ever raises
    - Never persisted — durable storage is the caller's concern

Design Decisions:
    - Explicit object owned by the process-lifetime container, injected into the
      agent loop (ADR: no module-level credential singleton)
    - Clock injected as a zero-arg callable returning an aware datetime so tests
      can step time without sleeping
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

DEFAULT_TTL_SECONDS = 24 * 60 * 60

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenSession:
    """Holds the current bearer token and its expiry."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self.token: str | None = None
        self.expires_at: datetime | None = None

    def is_valid(self) -> bool:
        if self.token is None or self.expires_at is None:
            return False
        return self._clock() < self.expires_at

    def set(self, token: str, ttl_seconds: float | None = None) -> None:
        """Store token, expiring ttl_seconds from now (24h when None)."""
        ttl = DEFAULT_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.token = token
        self.expires_at = self._clock() + timedelta(seconds=ttl)

    def clear(self) -> None:
        self.token = None
        self.expires_at = None

    def snapshot(self) -> dict:
        """Status view for callers — never includes the token itself."""
        return {
            "has_token": self.token is not None,
            "is_valid": self.is_valid(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
