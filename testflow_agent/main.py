"""TestFlow Agent API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map AgentRuntimeError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - CopilotService (and its TokenSession) built once per process in the lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Service stored on app.state; routes resolve it via api/dependencies.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from testflow_agent.api.error_handlers import register_error_handlers
from testflow_agent.api.routes import auth, chat, health
from testflow_agent.config import get_settings
from testflow_agent.infrastructure.observability import setup_logging
from testflow_agent.services.copilot_service import CopilotService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.copilot_service = CopilotService.from_settings(settings)
    logger.info("TestFlow Agent API started")
    yield
    await app.state.copilot_service.aclose()
    logger.info("TestFlow Agent API shutting down")


app = FastAPI(
    title="TestFlow Agent API", version="0.1.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(chat.router)

register_error_handlers(app)
