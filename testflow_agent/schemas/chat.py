"""Chat Schemas — Pydantic models for chat requests, results, and execution steps.

Invariants:
    - ChatRequest.message: 1-20000 chars, stripped, non-empty
    - max_tool_calls, when given, is 1-50
    - ChatResponse mirrors ChatResult.to_dict() one-to-one

Design Decisions:
    - Step timestamps serialized as ISO strings by ExecutionStep.to_dict(); the schema
      re-parses them to datetime so OpenAPI documents the real type
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """One user turn."""
    message: str = Field(min_length=1, max_length=20_000)
    tools_enabled: bool = True
    max_tool_calls: int | None = Field(None, ge=1, le=50)
    model: str | None = Field(None, max_length=100)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message cannot be empty or whitespace")
        return v


class StreamRequest(BaseModel):
    """One streamed turn (no tool calling)."""
    message: str = Field(min_length=1, max_length=20_000)
    model: str | None = Field(None, max_length=100)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("message cannot be empty or whitespace")
        return v


class ExecutionStepOut(BaseModel):
    """One executed tool call, with its synthesized Playwright Java code."""
    id: str
    tool_name: str
    action: str
    locator: str | None = None
    value: str | None = None
    status: Literal["running", "success", "error"]
    result_excerpt: str
    synthesized_code: str
    timestamp: datetime


class ChatResponse(BaseModel):
    """Final assistant text + every attempted tool call."""
    text: str
    steps: list[ExecutionStepOut]
    model: str | None = None
    usage: dict | None = None
    id: str | None = None
    tool_calls_executed: int
