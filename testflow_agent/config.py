"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every endpoint URL and wire constant lives here, never inside client code
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults target GitHub + Copilot so the runtime works out-of-the-box
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # GitHub device authorization
    github_client_id: str = "Iv1.b507a08c87ecfe98"
    github_scope: str = "read:user copilot"
    github_device_code_url: str = "https://github.com/login/device/code"
    github_token_url: str = "https://github.com/login/oauth/access_token"
    github_grant_type: str = "urn:ietf:params:oauth:grant-type:device_code"
    copilot_token_url: str = "https://api.github.com/copilot_internal/v2/token"
    device_poll_slow_down_seconds: int = 5
    auth_timeout_seconds: int = 30

    # Token session
    token_ttl_seconds: int = 24 * 60 * 60

    # Chat backend (OpenAI-compatible)
    copilot_chat_url: str = "https://api.githubcopilot.com/chat/completions"
    copilot_models_url: str = "https://api.githubcopilot.com/models"
    copilot_model: str = "gpt-4o"
    copilot_temperature: float = 0.7
    copilot_max_tokens: int = 4096
    copilot_top_p: float = 0.95
    copilot_timeout_seconds: int = 120
    copilot_editor_version: str = "vscode/1.96.0"
    copilot_plugin_version: str = "copilot-chat/0.26.7"
    copilot_user_agent: str = "GitHubCopilotChat/0.26.7"
    copilot_integration_id: str = "vscode-chat"

    # Tool servers
    tool_discovery_url: str = "http://localhost:3000/api/mcp-servers?action=list-tools"
    tool_execution_url: str = "http://localhost:3000/api/mcp-servers"
    tool_timeout_seconds: int = 60

    # Agent loop
    agent_max_tool_calls: int = 10
    agent_history_window: int = 10
    agent_tool_result_limit: int = 2000
    agent_step_excerpt_limit: int = 500

    @field_validator("agent_max_tool_calls", "agent_history_window")
    @classmethod
    def require_positive(cls, v: int) -> int:
        """Loop bounds must allow at least one round."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
