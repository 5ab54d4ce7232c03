"""Agent System Prompt — base instructions + advisory tool section.

Invariants:
    - Base instructions are opaque caller text; this module only appends to them
    - Tool section lists `name (server): description`, one per line
    - Agent mode instructs the model to USE the tools; ask mode says describe, don't execute
    - No tools → no tool section (never an empty heading)

Design Decisions:
    - Tool section present even with tools disabled: the model may describe
      capabilities, but no function schema is sent so no call can be honored
    - Plain string concatenation over templating: the prompt is small and linear
"""

from typing import Sequence

from testflow_agent.core.tool_schema import ToolDefinition

DEFAULT_INSTRUCTIONS = (
    "You are an autonomous test-automation agent with access to browser and "
    "file tools.\n"
    "- Execute the user's task end to end; chain tools as needed\n"
    "- If a step fails, try an alternative approach before reporting\n"
    "- Explain briefly what you did and what you found"
)

_AGENT_MODE = (
    "AGENT MODE: you MUST actively use these tools to complete tasks.\n"
    "- When the user asks you to do something, USE THE TOOLS to do it\n"
    "- Don't just suggest: execute the actions\n"
    "- For browser tasks, use the browser_* tools\n"
    "- Explain what you're doing as you use each tool\n"
)

_ASK_MODE = (
    "ASK MODE: provide guidance and suggestions.\n"
    "You can mention these tools are available but don't execute them.\n"
)

_AGENT_REMINDER = "\nRemember: in agent mode, USE these tools, don't just talk about them.\n"


def build_tools_section(tools: Sequence[ToolDefinition], agent_mode: bool) -> str:
    if not tools:
        return ""
    lines = ["", "", "=== AVAILABLE TOOLS ===", _AGENT_MODE if agent_mode else _ASK_MODE]
    lines.append("Available tools:")
    lines.extend(
        f"- {t.name} ({t.owner_server_id}): {t.description}" for t in tools
    )
    section = "\n".join(lines) + "\n"
    if agent_mode:
        section += _AGENT_REMINDER
    return section


def build_system_prompt(
    tools: Sequence[ToolDefinition],
    agent_mode: bool,
    instructions: str = DEFAULT_INSTRUCTIONS,
) -> str:
    return instructions + build_tools_section(tools, agent_mode)
