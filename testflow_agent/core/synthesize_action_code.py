"""Action Code Synthesis — one executed tool call → Playwright Java code.

Invariants:
    - Non-actionable calls (inspection) → explanatory comment, never executable code
    - An executed ```js block in the result wins over argument-based generation
    - A block with any line the rules cannot turn into Java falls back to
      argument-based generation, followed by one TODO per untranslated line
    - Never raises; every call yields a non-empty string

Design Decisions:
    - Three-stage pipeline: inspection check → translate executed code → generate
      from args. The executed snippet is what actually ran, so it is preferred
"""

from typing import Any

from testflow_agent.core.generate_action_code import generate_action_code
from testflow_agent.core.translate_playwright import (
    extract_executed_code, translate_block, untranslated_lines,
)


def synthesize_action_code(tool_name: str, args: dict[str, Any], result_text: str) -> str:
    comment = non_actionable_comment(tool_name, result_text)
    if comment:
        return comment

    executed = extract_executed_code(result_text)
    if executed:
        leftovers = untranslated_lines(executed)
        if leftovers:
            todos = "\n".join(f"// TODO: Translate manually: {line}" for line in leftovers)
            return f"{generate_action_code(tool_name, args)}\n{todos}"
        translated = translate_block(executed)
        if translated:
            return translated

    return generate_action_code(tool_name, args)


def non_actionable_comment(tool_name: str, result_text: str) -> str | None:
    """Comment for inspection-only calls, None for calls a user could reproduce."""
    if tool_name == "browser_snapshot":
        return "// Page snapshot taken for inspection"
    if tool_name == "browser_evaluate" and "### Result" in (result_text or ""):
        return "// Verified element exists on page"
    return None
