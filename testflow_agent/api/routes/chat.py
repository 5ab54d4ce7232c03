"""Chat Routes — tool-calling chat, streaming chat, and model listing.

Invariants:
    - Authentication checked BEFORE a stream opens: unauthenticated → 401 JSON, not SSE
    - Stream is `agent_text` events followed by exactly one `done` event
    - Mid-stream domain errors become an SSE error event + done(error=True)

Design Decisions:
    - StreamingResponse for SSE: event_generator yields formatted `data:` lines
    - SSE headers prevent proxy/browser buffering of streamed chunks
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from testflow_agent.api.dependencies import get_copilot_service
from testflow_agent.core.errors import AgentRuntimeError
from testflow_agent.schemas.chat import ChatRequest, ChatResponse, StreamRequest
from testflow_agent.services.agent_runner_helpers import done_event, text_event
from testflow_agent.services.copilot_service import CopilotService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest, service: CopilotService = Depends(get_copilot_service),
):
    """Run one agent turn; returns final text + every executed step."""
    result = await service.chat(
        body.message, body.tools_enabled, body.max_tool_calls, body.model,
    )
    return result.to_dict()


@router.post("/chat/stream")
async def chat_stream(
    body: StreamRequest, service: CopilotService = Depends(get_copilot_service),
):
    """SSE stream of text chunks (no tool calling)."""
    await service.ensure_session()

    async def event_generator():
        try:
            async for chunk in service.chat_stream(body.message, body.model):
                yield sse_line(text_event(chunk))
            yield sse_line(done_event(error=False))
        except AgentRuntimeError as e:
            logger.error(
                "Stream failed: %s", e.message, extra={"error_code": e.code},
            )
            yield sse_line(e.to_sse_event())
            yield sse_line(done_event(error=True))
        except asyncio.CancelledError:
            logger.info("Client disconnected from chat stream")
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/models")
async def list_models(service: CopilotService = Depends(get_copilot_service)):
    return {"models": await service.list_models()}


def sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
