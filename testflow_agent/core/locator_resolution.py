"""Locator Resolution — priority chain from tool arguments to a Playwright Java locator.

Invariants:
    - Chain order: testId > role(+name) > label > placeholder > text > alt > title
      > selector > ref > generic best-effort
    - Always returns a usable expression; only the last two rungs carry a TODO note
    - Every interpolated value passes through core/escape_java.py

Design Decisions:
    - Each rung is a small function returning ResolvedLocator | None, tried in order
      from _CHAIN — a new strategy is one function + one list entry
    - Snapshot hints (when args carry snapshotContent) are merged UNDER explicit args
    - An accessible `name` without a role borrows the tool's natural role
      (click → button, fill/type → textbox, select → combobox)
"""

import re
from dataclasses import dataclass
from typing import Any, Callable

from testflow_agent.core.escape_java import java_regex, java_string, quoted


@dataclass(frozen=True)
class ResolvedLocator:
    expression: str
    strategy: str
    todo: str | None = None

    def statement(self, call: str) -> str:
        """`<locator>.<call>;` with a trailing TODO comment when best-effort."""
        line = f"{self.expression}.{call};"
        if self.todo:
            line += f" // TODO: {self.todo}"
        return line


_TOOL_ROLES = {
    "browser_click": "button",
    "browser_hover": "button",
    "browser_fill_form": "textbox",
    "browser_type": "textbox",
    "browser_select_option": "combobox",
}

_GENERIC_SELECTORS = {
    "browser_click": "button",
    "browser_hover": "button",
    "browser_fill_form": "input",
    "browser_type": "input",
    "browser_select_option": "select",
}

_SNAPSHOT_PATTERNS = {
    "role": re.compile(r"role[=:]\s*['\"]([\w-]+)['\"]", re.IGNORECASE),
    "placeholder": re.compile(r"placeholder[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
    "text": re.compile(r"(?:button|link|text)\s+\"([^\"]+)\""),
    "name": re.compile(r"(?<![\w-])name[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
    "label": re.compile(r"label[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
    "testId": re.compile(r"data-testid[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
    "alt": re.compile(r"alt[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
    "title": re.compile(r"title[=:]\s*['\"](.*?)['\"]", re.IGNORECASE),
}


def extract_snapshot_hints(snapshot: str) -> dict[str, str]:
    """Pull role/placeholder/text/name/label/testId/alt/title out of snapshot text."""
    hints = {}
    for key, pattern in _SNAPSHOT_PATTERNS.items():
        match = pattern.search(snapshot)
        if match:
            hints[key] = match.group(1)
    return hints


def aria_role(role: str) -> str:
    """Map an ARIA role name to the Java AriaRole enum constant (button → AriaRole.BUTTON)."""
    return "AriaRole." + re.sub(r"[^A-Za-z0-9]", "_", role).upper()


def resolve_locator(args: dict[str, Any], tool_name: str) -> ResolvedLocator:
    """Walk the chain; first rung that matches wins."""
    merged = _merge_snapshot_hints(args)
    for rung in _CHAIN:
        resolved = rung(merged, tool_name)
        if resolved is not None:
            return resolved
    return _generic(merged, tool_name)


def _merge_snapshot_hints(args: dict[str, Any]) -> dict[str, Any]:
    snapshot = args.get("snapshotContent")
    if not isinstance(snapshot, str) or not snapshot:
        return args
    return {**extract_snapshot_hints(snapshot), **args}


def _text_arg(args: dict[str, Any], key: str) -> str | None:
    val = args.get(key)
    if isinstance(val, str) and val.strip():
        return val
    return None


# ─── Chain rungs ────────────────────────────────────────────────

def _by_test_id(args, tool_name):
    test_id = _text_arg(args, "testId") or _text_arg(args, "test_id")
    if test_id:
        return ResolvedLocator(f"page.getByTestId({quoted(test_id)})", "testId")
    return None


def _by_role(args, tool_name):
    role = _text_arg(args, "role")
    name = _text_arg(args, "name")
    if not role and name:
        role = _TOOL_ROLES.get(tool_name)
    if not role:
        return None
    if name:
        return ResolvedLocator(
            f"page.getByRole({aria_role(role)}, "
            f"new Page.GetByRoleOptions().setName({quoted(name)}))",
            "role",
        )
    return ResolvedLocator(f"page.getByRole({aria_role(role)})", "role")


def _by_label(args, tool_name):
    label = _text_arg(args, "label")
    if label:
        return ResolvedLocator(f"page.getByLabel({quoted(label)})", "label")
    return None


def _by_placeholder(args, tool_name):
    placeholder = _text_arg(args, "placeholder")
    if placeholder:
        return ResolvedLocator(
            f"page.getByPlaceholder({quoted(placeholder)})", "placeholder",
        )
    return None


def _by_text(args, tool_name):
    # browser_type/fill carry the text to ENTER in `text`, not the element's text
    if tool_name in ("browser_type", "browser_fill_form"):
        return None
    text = _text_arg(args, "text")
    if text:
        return ResolvedLocator(
            f'page.getByText(Pattern.compile("{java_regex(text)}", '
            "Pattern.CASE_INSENSITIVE))",
            "text",
        )
    return None


def _by_alt(args, tool_name):
    alt = _text_arg(args, "alt")
    if alt:
        return ResolvedLocator(f"page.getByAltText({quoted(alt)})", "alt")
    return None


def _by_title(args, tool_name):
    title = _text_arg(args, "title")
    if title:
        return ResolvedLocator(f"page.getByTitle({quoted(title)})", "title")
    return None


def _by_selector(args, tool_name):
    selector = _text_arg(args, "selector") or _text_arg(args, "locator")
    if selector:
        return ResolvedLocator(f"page.locator({quoted(selector)})", "selector")
    return None


def _by_ref(args, tool_name):
    ref = _text_arg(args, "ref")
    if not ref:
        return None
    element = _text_arg(args, "element")
    target = f' for "{java_string(element)}"' if element else ""
    return ResolvedLocator(
        f'page.locator("aria-ref={java_string(ref)}")',
        "ref",
        f"Replace snapshot ref{target} with a stable locator",
    )


def _generic(args, tool_name):
    selector = _GENERIC_SELECTORS.get(tool_name, "*")
    element = _text_arg(args, "element")
    hint = f' "{java_string(element)}"' if element else ""
    return ResolvedLocator(
        f'page.locator("{selector}")',
        "generic",
        f"Specify the target element{hint}",
    )


_CHAIN: list[Callable[[dict, str], ResolvedLocator | None]] = [
    _by_test_id,
    _by_role,
    _by_label,
    _by_placeholder,
    _by_text,
    _by_alt,
    _by_title,
    _by_selector,
    _by_ref,
]
