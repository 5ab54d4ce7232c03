"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach real GitHub / Copilot / tool-server endpoints
os.environ.setdefault("GITHUB_DEVICE_CODE_URL", "https://github.test/login/device/code")
os.environ.setdefault("GITHUB_TOKEN_URL", "https://github.test/login/oauth/access_token")
os.environ.setdefault("COPILOT_TOKEN_URL", "https://api.github.test/copilot_internal/v2/token")
os.environ.setdefault("COPILOT_CHAT_URL", "https://copilot.test/chat/completions")
os.environ.setdefault("COPILOT_MODELS_URL", "https://copilot.test/models")
os.environ.setdefault("TOOL_DISCOVERY_URL", "http://tools.test/api/mcp-servers?action=list-tools")
os.environ.setdefault("TOOL_EXECUTION_URL", "http://tools.test/api/mcp-servers")
os.environ.setdefault("LOG_FORMAT", "text")
