"""Error Hierarchy — typed, categorized exceptions for every agent-runtime failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Authentication errors carry a recovery hint so a UI can pick the next step
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope
    - No tokens or device codes ever appear in messages or envelopes

Design Decisions:
    - Single hierarchy with AgentRuntimeError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - ToolDiscoveryFailed / ToolExecutionFailed exist for logging + typing; the services
      absorb them (degrade to no-tools / feed back as tool text) instead of propagating
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    EXTERNAL_API = "external_api"
    TOOL = "tool"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class AuthRecovery(str, Enum):
    """What the caller should do after an authentication failure."""
    NEW_DEVICE_CODE = "new_device_code"
    RETRY = "retry"
    MANUAL_TOKEN = "manual_token"
    WAIT = "wait"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tool_name: str | None = None
    tool_call_id: str | None = None
    round_number: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class AgentRuntimeError(Exception):
    """Base exception for all agent-runtime errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        recovery: AuthRecovery | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.recovery = recovery

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recovery": self.recovery.value if self.recovery else None,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "tool_name": self.context.tool_name,
                    "round_number": self.context.round_number,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recovery": self.recovery.value if self.recovery else None,
                "recoverable": self.severity in (
                    ErrorSeverity.INFO, ErrorSeverity.WARNING,
                ),
            },
        }


# ─── Authentication Errors ──────────────────────────────────────

class ProviderUnavailableError(AgentRuntimeError):
    """Device-code or token endpoint unreachable or returned non-2xx."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Identity provider unavailable: {message}",
            "PROVIDER_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 503, AuthRecovery.MANUAL_TOKEN,
        )


class AuthorizationDeniedError(AgentRuntimeError):
    """User (or provider) refused the device authorization."""
    def __init__(
        self, description: str, provider_error: str = "access_denied",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            description or "Authorization denied",
            "AUTHORIZATION_DENIED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401, AuthRecovery.MANUAL_TOKEN,
        )
        self.provider_error = provider_error


class AuthorizationExpiredError(AgentRuntimeError):
    """Device code expired before the user authorized it."""
    def __init__(self, description: str, context: ErrorContext | None = None):
        super().__init__(
            description or "Device code expired",
            "AUTHORIZATION_EXPIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401, AuthRecovery.NEW_DEVICE_CODE,
        )


class AuthorizationTimedOutError(AgentRuntimeError):
    """Every poll attempt was spent without an answer."""
    def __init__(self, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Authentication timed out after {attempts} poll attempt(s). Please try again.",
            "AUTHORIZATION_TIMED_OUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, context, 408, AuthRecovery.RETRY,
        )
        self.attempts = attempts


class AuthorizationCancelledError(AgentRuntimeError):
    """Caller abandoned the device poll (e.g. closed the auth dialog)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication cancelled",
            "AUTHORIZATION_CANCELLED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 409, AuthRecovery.RETRY,
        )


class AuthenticationInProgressError(AgentRuntimeError):
    """A device flow is already live on this client."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication already in progress",
            "AUTHENTICATION_IN_PROGRESS", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409, AuthRecovery.WAIT,
        )


class TokenExchangeFailedError(AgentRuntimeError):
    """OAuth token could not be exchanged for a service bearer token."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Service token exchange failed: {message}",
            "TOKEN_EXCHANGE_FAILED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 502, AuthRecovery.RETRY,
        )


class UnauthenticatedError(AgentRuntimeError):
    """Chat attempted without a valid session.

    `device_prompt` carries the user code and verification URI of the device flow
    started on the caller's behalf, so a UI can prompt without another round trip.
    """
    def __init__(self, message: str = "No valid token. Please authenticate.",
                 context: ErrorContext | None = None,
                 device_prompt: dict[str, Any] | None = None):
        super().__init__(
            message, "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401, AuthRecovery.NEW_DEVICE_CODE,
        )
        self.device_prompt = device_prompt

    def to_response(self) -> dict:
        body = super().to_response()
        body["error"]["device"] = self.device_prompt
        return body

    def to_sse_event(self) -> dict:
        event = super().to_sse_event()
        event["data"]["device"] = self.device_prompt
        return event


# ─── Agent / Tool Errors ────────────────────────────────────────

class AgentBusyError(AgentRuntimeError):
    """run() invoked while a previous turn on the same instance is in flight."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Agent turn already in progress",
            "AGENT_BUSY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ToolDiscoveryFailedError(AgentRuntimeError):
    """Tool listing endpoint failed (non-fatal: degrades to no-tools)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Tool discovery failed: {message}",
            "TOOL_DISCOVERY_FAILED", ErrorCategory.TOOL,
            ErrorSeverity.WARNING, context, 502,
        )


class ToolExecutionFailedError(AgentRuntimeError):
    """Tool call failed (non-fatal: surfaced to the model as tool text)."""
    def __init__(self, tool_name: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.tool_name = tool_name
        super().__init__(
            reason, "TOOL_EXECUTION_FAILED", ErrorCategory.TOOL,
            ErrorSeverity.WARNING, ctx, 502,
        )
        self.tool_name = tool_name
        self.reason = reason


class BackendRequestFailedError(AgentRuntimeError):
    """Chat-completion call failed — fatal to the current turn."""
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Copilot API error: {message}",
            "BACKEND_REQUEST_FAILED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 502,
        )
        self.status_code = status_code
