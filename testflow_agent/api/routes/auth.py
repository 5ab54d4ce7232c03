"""Auth Routes — device flow, manual token, and session status.

Invariants:
    - POST /auth/device returns the user code immediately; polling continues server-side
    - POST /auth/device/complete blocks until the flow ends (or raises its domain error)
    - No endpoint ever returns a bearer token

Design Decisions:
    - Two-phase flow exposed as separate endpoints so a UI can choose background
      completion (status polling) or a blocking completion request
"""

import logging

from fastapi import APIRouter, Depends, status

from testflow_agent.api.dependencies import get_copilot_service
from testflow_agent.schemas.auth import (
    AuthStatus, CompleteAuthRequest, DeviceCodeResponse, ManualToken,
)
from testflow_agent.services.copilot_service import CopilotService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/device", response_model=DeviceCodeResponse, status_code=status.HTTP_201_CREATED,
)
async def start_device_flow(service: CopilotService = Depends(get_copilot_service)):
    """Request a device code; the session fills in once the user authorizes."""
    return await service.authenticate()


@router.post("/device/complete", response_model=AuthStatus)
async def complete_device_flow(
    body: CompleteAuthRequest | None = None,
    service: CopilotService = Depends(get_copilot_service),
):
    await service.complete_authentication(body.device_code if body else None)
    return service.auth_status()


@router.delete("/device")
async def cancel_device_flow(service: CopilotService = Depends(get_copilot_service)):
    return {"cancelled": service.cancel_authentication()}


@router.get("/status", response_model=AuthStatus)
async def auth_status(service: CopilotService = Depends(get_copilot_service)):
    return service.auth_status()


@router.post("/token", response_model=AuthStatus)
async def set_token(
    body: ManualToken, service: CopilotService = Depends(get_copilot_service),
):
    service.set_token(body.token, body.ttl_seconds)
    return service.auth_status()


@router.delete("/token", status_code=status.HTTP_204_NO_CONTENT)
async def clear_token(service: CopilotService = Depends(get_copilot_service)):
    service.clear_auth()
