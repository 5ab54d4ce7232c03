"""Copilot Chat Client — OpenAI-compatible chat completions over httpx with error mapping.

Invariants:
    - Every call carries the bearer token + Copilot editor identification headers
    - All failures mapped to BackendRequestFailedError (core/errors.py)
    - No automatic retries: a failed completion is fatal to the current turn
    - Streaming yields only non-empty content deltas; ends at `data: [DONE]`

Design Decisions:
    - Wrapper over raw httpx: isolates wire format + error mapping from the agent loop
      (ADR: single responsibility)
    - Transport injectable: tests use httpx.MockTransport, no network
    - Malformed SSE lines skipped rather than failing the whole stream
"""

import json
import logging
import uuid
from collections.abc import AsyncIterator

import httpx

from testflow_agent.config import Settings
from testflow_agent.core.errors import BackendRequestFailedError, ErrorContext

logger = logging.getLogger(__name__)

_SSE_PREFIX = "data: "
_SSE_DONE = "[DONE]"
_ERROR_BODY_CHARS = 500


class CopilotChatClient:
    """Chat-completion + model-listing calls against the Copilot API."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=settings.copilot_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def build_payload(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
        model: str | None = None,
        stream: bool = False,
    ) -> dict:
        payload: dict = {
            "messages": messages,
            "model": model or self.settings.copilot_model,
            "temperature": self.settings.copilot_temperature,
            "max_tokens": self.settings.copilot_max_tokens,
            "top_p": self.settings.copilot_top_p,
            "n": 1,
            "stream": stream,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    def build_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Editor-Version": self.settings.copilot_editor_version,
            "Editor-Plugin-Version": self.settings.copilot_plugin_version,
            "User-Agent": self.settings.copilot_user_agent,
            "Copilot-Integration-Id": self.settings.copilot_integration_id,
            "Openai-Intent": "conversation-panel",
            "X-Request-Id": str(uuid.uuid4()),
        }

    async def create_completion(
        self,
        token: str,
        messages: list[dict],
        tools: list[dict] | None = None,
        model: str | None = None,
        context: ErrorContext | None = None,
    ) -> dict:
        """One non-streaming completion; returns the raw response body."""
        payload = self.build_payload(messages, tools, model)
        try:
            response = await self._http.post(
                self.settings.copilot_chat_url,
                json=payload,
                headers=self.build_headers(token),
            )
        except httpx.TimeoutException as e:
            raise BackendRequestFailedError("request timed out", context=context) from e
        except httpx.HTTPError as e:
            raise BackendRequestFailedError(
                f"connection error: {e}", context=context,
            ) from e

        self._raise_for_status(response, context)
        try:
            body = response.json()
        except ValueError as e:
            raise BackendRequestFailedError(
                "response was not valid JSON", response.status_code, context,
            ) from e
        if not isinstance(body, dict) or not body.get("choices"):
            raise BackendRequestFailedError(
                "response carried no choices", response.status_code, context,
            )
        self._log_success(body)
        return body

    async def stream_completion(
        self,
        token: str,
        messages: list[dict],
        model: str | None = None,
        context: ErrorContext | None = None,
    ) -> AsyncIterator[str]:
        """Yield incremental text chunks. No tool calling on this path."""
        payload = self.build_payload(messages, model=model, stream=True)
        try:
            async with self._http.stream(
                "POST",
                self.settings.copilot_chat_url,
                json=payload,
                headers=self.build_headers(token),
            ) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_status(response, context)
                async for line in response.aiter_lines():
                    chunk = parse_sse_line(line)
                    if chunk is None:
                        return
                    if chunk:
                        yield chunk
        except httpx.TimeoutException as e:
            raise BackendRequestFailedError("stream timed out", context=context) from e
        except httpx.HTTPError as e:
            raise BackendRequestFailedError(
                f"connection error during stream: {e}", context=context,
            ) from e

    async def list_models(self, token: str) -> list[dict]:
        """Backend model catalog (`{data: [...]}`)."""
        try:
            response = await self._http.get(
                self.settings.copilot_models_url,
                headers=self.build_headers(token),
            )
        except httpx.HTTPError as e:
            raise BackendRequestFailedError(f"model listing failed: {e}") from e
        self._raise_for_status(response, None)
        try:
            body = response.json()
        except ValueError as e:
            raise BackendRequestFailedError(
                "model listing was not valid JSON", response.status_code,
            ) from e
        models = body.get("data") if isinstance(body, dict) else body
        return [m for m in models or [] if isinstance(m, dict)]

    def _raise_for_status(
        self, response: httpx.Response, context: ErrorContext | None,
    ) -> None:
        if response.is_success:
            return
        detail = response.text[:_ERROR_BODY_CHARS]
        logger.error(
            f"Copilot API returned {response.status_code}",
            extra={"error_code": "BACKEND_REQUEST_FAILED"},
        )
        raise BackendRequestFailedError(
            f"{response.status_code} {detail}".strip(),
            response.status_code,
            context,
        )

    def _log_success(self, body: dict) -> None:
        usage = body.get("usage") or {}
        logger.info(
            "Copilot API success",
            extra={
                "model": body.get("model"),
                "prompt_tokens": usage.get("prompt_tokens"),
                "completion_tokens": usage.get("completion_tokens"),
            },
        )


def parse_sse_line(line: str) -> str | None:
    """Content delta from one SSE line: "" to skip, None at end of stream."""
    if not line.startswith(_SSE_PREFIX):
        return ""
    data = line[len(_SSE_PREFIX):].strip()
    if data == _SSE_DONE:
        return None
    try:
        event = json.loads(data)
    except json.JSONDecodeError:
        return ""
    choices = event.get("choices") if isinstance(event, dict) else None
    if not choices:
        return ""
    delta = choices[0].get("delta") or {}
    return delta.get("content") or ""
