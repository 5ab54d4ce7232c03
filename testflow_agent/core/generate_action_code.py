"""Action Code Generation — Playwright Java from tool name + arguments alone.

Invariants:
    - Always returns at least one line; never raises for any args shape
    - Unknown tools → "// TODO: Add code for <tool>"
    - Element targeting goes through resolve_locator(); values through escape_java

Design Decisions:
    - Explicit dict of handlers (same shape as the tool dispatch table): one
      function per browser tool, no if/elif chain
    - Missing required args still produce compilable code, annotated with a TODO
"""

import json
from typing import Any, Callable

from testflow_agent.core.escape_java import quoted
from testflow_agent.core.locator_resolution import resolve_locator

RUN_CODE_PREVIEW_CHARS = 150
EVALUATE_PREVIEW_CHARS = 100

_FIELD_ROLES = {
    "textbox": "textbox",
    "checkbox": "checkbox",
    "radio": "radio",
    "combobox": "combobox",
    "slider": "slider",
}


def generate_action_code(tool_name: str, args: dict[str, Any]) -> str:
    handler = _HANDLERS.get(tool_name)
    if handler is None:
        return f"// TODO: Add code for {tool_name}"
    return handler(args or {})


# ─── Handlers ───────────────────────────────────────────────────

def _navigate(args):
    url = args.get("url")
    if url:
        return f"page.navigate({quoted(url)});"
    return 'page.navigate("https://example.com"); // TODO: Add URL'


def _click(args):
    call = "dblclick()" if args.get("doubleClick") else "click()"
    return resolve_locator(args, "browser_click").statement(call)


def _fill_form(args):
    fields = args.get("fields")
    if isinstance(fields, list) and fields:
        return "\n".join(_fill_field(f) for f in fields if isinstance(f, dict))
    value = args.get("value") or args.get("text") or ""
    return resolve_locator(args, "browser_fill_form").statement(f"fill({quoted(value)})")


def _fill_field(field):
    field_type = str(field.get("type") or "textbox")
    hints = dict(field)
    if "role" not in hints and field_type in _FIELD_ROLES:
        hints["role"] = _FIELD_ROLES[field_type]
    locator = resolve_locator(hints, "browser_fill_form")
    value = field.get("value", "")
    if field_type in ("checkbox", "radio"):
        checked = str(value).lower() not in ("false", "0", "")
        return locator.statement(f"setChecked({'true' if checked else 'false'})")
    if field_type == "combobox":
        return locator.statement(f"selectOption({quoted(value)})")
    return locator.statement(f"fill({quoted(value)})")


def _type(args):
    text = args.get("text")
    if not text:
        return 'page.locator("input").fill("text"); // TODO: Specify input and text'
    locator = resolve_locator(args, "browser_type")
    call = f"pressSequentially({quoted(text)})" if args.get("slowly") else f"fill({quoted(text)})"
    lines = [locator.statement(call)]
    if args.get("submit"):
        lines.append(f'{locator.expression}.press("Enter");')
    return "\n".join(lines)


def _press_key(args):
    key = args.get("key")
    if key:
        return f"page.keyboard().press({quoted(key)});"
    return 'page.keyboard().press("Enter"); // TODO: Specify key to press'


def _wait_for(args):
    if args.get("text"):
        return f"page.waitForSelector({quoted('text=' + str(args['text']))});"
    if args.get("textGone"):
        return (
            f"page.waitForSelector({quoted('text=' + str(args['textGone']))}, "
            "new Page.WaitForSelectorOptions().setState(WaitForSelectorState.HIDDEN));"
        )
    if args.get("time") is not None:
        return f"page.waitForTimeout({_millis(args['time'], 1000)});"
    if args.get("timeout") is not None:
        return f"page.waitForTimeout({_millis(args['timeout'], 1)});"
    return "page.waitForLoadState();"


def _evaluate(args):
    return _evaluate_call(args.get("function") or args.get("code"), EVALUATE_PREVIEW_CHARS)


def _run_code(args):
    return _evaluate_call(args.get("code") or args.get("function"), RUN_CODE_PREVIEW_CHARS)


def _snapshot(args):
    return "// Take page snapshot"


def _hover(args):
    return resolve_locator(args, "browser_hover").statement("hover()")


def _select_option(args):
    locator = resolve_locator(args, "browser_select_option")
    values = args.get("values")
    if isinstance(values, list) and values:
        if len(values) == 1:
            return locator.statement(f"selectOption({quoted(values[0])})")
        joined = ", ".join(quoted(v) for v in values)
        return locator.statement(f"selectOption(new String[] {{{joined}}})")
    if args.get("value"):
        return locator.statement(f"selectOption({quoted(args['value'])})")
    return 'page.locator("select").selectOption("value"); // TODO: Specify select and option'


def _drag(args):
    if args.get("startRef") and args.get("endRef"):
        start = resolve_locator(
            {"ref": args["startRef"], "element": args.get("startElement")}, "browser_drag",
        )
        end = resolve_locator(
            {"ref": args["endRef"], "element": args.get("endElement")}, "browser_drag",
        )
        return f"{start.expression}.dragTo({end.expression}); // TODO: {start.todo}"
    return (
        'page.locator("element1").dragTo(page.locator("element2")); '
        "// TODO: Specify elements"
    )


def _take_screenshot(args):
    filename = args.get("filename") or "screenshot.png"
    options = f"new Page.ScreenshotOptions().setPath(Paths.get({quoted(filename)}))"
    if args.get("fullPage"):
        options += ".setFullPage(true)"
    return f"page.screenshot({options});"


def _navigate_back(args):
    return "page.goBack();"


# ─── Helpers ────────────────────────────────────────────────────

def _evaluate_call(code: Any, limit: int) -> str:
    if not code:
        return 'page.evaluate("() => { /* TODO: Add JavaScript code */ }");'
    text = code if isinstance(code, str) else json.dumps(code)
    if len(text) > limit:
        text = text[:limit] + "..."
    return f"page.evaluate({quoted(text)});"


def _millis(value: Any, factor: int) -> int:
    try:
        return int(float(value) * factor)
    except (TypeError, ValueError):
        return 1000


_HANDLERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "browser_navigate": _navigate,
    "browser_click": _click,
    "browser_fill_form": _fill_form,
    "browser_type": _type,
    "browser_press_key": _press_key,
    "browser_wait_for": _wait_for,
    "browser_evaluate": _evaluate,
    "browser_snapshot": _snapshot,
    "browser_hover": _hover,
    "browser_select_option": _select_option,
    "browser_drag": _drag,
    "browser_take_screenshot": _take_screenshot,
    "browser_navigate_back": _navigate_back,
    "browser_run_code": _run_code,
}
