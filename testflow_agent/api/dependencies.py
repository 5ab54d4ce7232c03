"""API Dependencies — FastAPI providers for process-lifetime collaborators.

Invariants:
    - CopilotService built once in the lifespan and stored on app.state
    - Routes obtain it via Depends(get_copilot_service), never by import

Design Decisions:
    - app.state over module globals: tests build their own app/service pair
"""

from fastapi import Request

from testflow_agent.services.copilot_service import CopilotService


def get_copilot_service(request: Request) -> CopilotService:
    return request.app.state.copilot_service
