"""Playwright Translation — ordered rewrite rules from Playwright JS to Playwright Java.

Invariants:
    - Rules are pure (pattern → replacement function) and applied in table order
    - Every JS string literal captured by a rule is re-emitted through java_string()
    - Output statements end with ';' unless they are comments or block delimiters
    - Lines no rule matches pass through unchanged (keyword-for-keyword, never dropped)
    - has_js_residue() flags any output still holding a JS string, array or object
      literal, so callers can refuse it

Design Decisions:
    - Translation table keyed by source-call shape (RewriteRule.shape): adding a call
      is one entry, and each entry is testable in isolation via apply_rule()
    - Line-oriented: the executed snippets are one statement per line
    - Receiver-aware options: `page.getByRole(...)` → Page.GetByRoleOptions,
      `locator.getByRole(...)` → Locator.GetByRoleOptions
"""

import re
from dataclasses import dataclass
from typing import Callable

from testflow_agent.core.escape_java import java_string, quoted, unescape_js
from testflow_agent.core.locator_resolution import aria_role

EVALUATE_PREVIEW_CHARS = 100

_FENCED_JS = re.compile(r"```(?:js|javascript)\n([\s\S]*?)\n```")


def _str(name: str) -> str:
    """Regex fragment matching a '...', "..." or `...` literal into named groups."""
    return (
        rf"(?:'(?P<{name}_s>(?:\\.|[^'\\])*)'"
        rf'|"(?P<{name}_d>(?:\\.|[^"\\])*)"'
        rf"|`(?P<{name}_b>[^`$]*)`)"
    )


def _val(m: re.Match, name: str) -> str:
    for suffix in ("_s", "_d", "_b"):
        v = m.group(name + suffix)
        if v is not None:
            return unescape_js(v)
    return ""


def _recv_class(m: re.Match) -> str:
    return "Page" if m.group("recv") else "Locator"


def _recv(m: re.Match) -> str:
    return m.group("recv") or ""


@dataclass(frozen=True)
class RewriteRule:
    shape: str
    pattern: re.Pattern
    replace: Callable[[re.Match], str]


# ─── Replacement functions ──────────────────────────────────────

def _role_regex_name(m):
    flags = ", Pattern.CASE_INSENSITIVE" if "i" in (m.group("flags") or "") else ""
    return (
        f"{_recv(m)}.getByRole({aria_role(_val(m, 'role'))}, "
        f"new {_recv_class(m)}.GetByRoleOptions().setName("
        f'Pattern.compile("{java_string(m.group("re"))}"{flags})))'
    )


def _role_name(m):
    exact = ".setExact(true)" if m.group("exact") == "true" else ""
    return (
        f"{_recv(m)}.getByRole({aria_role(_val(m, 'role'))}, "
        f"new {_recv_class(m)}.GetByRoleOptions().setName({quoted(_val(m, 'name'))}){exact})"
    )


def _role_only(m):
    return f"{_recv(m)}.getByRole({aria_role(_val(m, 'role'))})"


def _text_regex(m):
    flags = ", Pattern.CASE_INSENSITIVE" if "i" in (m.group("flags") or "") else ""
    return (
        f'{_recv(m)}.{m.group("method")}(Pattern.compile('
        f'"{java_string(m.group("re"))}"{flags}))'
    )


def _simple_locator(m):
    method = m.group("method")
    value = quoted(_val(m, "v"))
    if m.group("exact") == "true" and method != "getByTestId":
        options = f"new {_recv_class(m)}.Get{method[3:]}Options().setExact(true)"
        return f"{_recv(m)}.{method}({value}, {options})"
    return f"{_recv(m)}.{method}({value})"


def _css_locator(m):
    return f"{_recv(m)}.locator({quoted(_val(m, 'v'))})"


def _goto(m):
    return f"page.navigate({quoted(_val(m, 'url'))})"


def _device(m):
    return f"page.{m.group('device')}().{m.group('call')}("


def _string_action(m):
    method = m.group("method")
    if method in ("type", "pressSequentially"):
        method = "fill"
    return f".{method}({quoted(_val(m, 'v'))})"


def _select_many(m):
    values = ", ".join(quoted(v) for v in _js_items(m.group("items")))
    return f".selectOption(new String[] {{{values}}})"


def _page_selector_action(m):
    return f"page.{m.group('method')}({quoted(_val(m, 'sel'))})"


def _page_selector_value(m):
    method = m.group("method")
    if method in ("type", "pressSequentially"):
        method = "fill"
    return f"page.{method}({quoted(_val(m, 'sel'))}, {quoted(_val(m, 'v'))})"


_OPTION_PAIR = re.compile(
    r"(?P<key>\w+)\s*:\s*(?P<raw>'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\"|\[[^\]]*\]|[\w.]+)"
)
_JS_ITEM = re.compile(r"'((?:\\.|[^'\\])*)'|\"((?:\\.|[^\"\\])*)\"")
_NUMERIC_OPTIONS = ("clickCount", "delay", "timeout")
_FLAG_OPTIONS = ("force", "noWaitAfter", "trial")


def _js_items(raw: str) -> list[str]:
    return [unescape_js(s or d) for s, d in _JS_ITEM.findall(raw)]


def _click_setters(options: str) -> str | None:
    """Java setters for a `{ button, modifiers, ... }` literal, or None if any key is unknown."""
    body = options.strip()[1:-1]
    if not re.fullmatch(r"[\s,]*", _OPTION_PAIR.sub("", body)):
        return None
    setters = []
    for pair in _OPTION_PAIR.finditer(body):
        key, raw = pair.group("key"), pair.group("raw")
        setter = key[0].upper() + key[1:]
        if key == "button" and _js_items(raw):
            setters.append(f".setButton(MouseButton.{_js_items(raw)[0].upper()})")
        elif key == "modifiers" and raw.startswith("["):
            mods = ", ".join(f"KeyboardModifier.{v.upper()}" for v in _js_items(raw))
            setters.append(f".setModifiers(Arrays.asList({mods}))")
        elif key in _NUMERIC_OPTIONS and re.fullmatch(r"\d+(?:\.\d+)?", raw):
            setters.append(f".set{setter}({raw})")
        elif key in _FLAG_OPTIONS and raw in ("true", "false"):
            setters.append(f".set{setter}({raw})")
        else:
            return None
    return "".join(setters)


def _click_with_options(m):
    has_selector = any(m.group("sel" + s) is not None for s in ("_s", "_d", "_b"))
    if has_selector != bool(m.group("recv")):
        return m.group(0)
    setters = _click_setters(m.group("opts"))
    if setters is None:
        return m.group(0)
    method = m.group("method")
    options = f"new {_recv_class(m)}.{method[0].upper() + method[1:]}Options(){setters}"
    if has_selector:
        return f"page.{method}({quoted(_val(m, 'sel'))}, {options})"
    return f".{method}({options})"


def _input_file(m):
    return f".setInputFiles(Paths.get({quoted(_val(m, 'v'))}))"


def _input_files(m):
    paths = ", ".join(f"Paths.get({quoted(v)})" for v in _js_items(m.group("items")))
    return f".setInputFiles(new Path[] {{{paths}}})"


def _load_state(m):
    state = _val(m, "v").upper()
    return f".waitForLoadState(LoadState.{state})"


def _evaluate_string(m):
    return f"page.evaluate({quoted(_preview(_val(m, 'code')))})"


def _evaluate_fn(m):
    return f"page.evaluate({quoted(_preview(m.group('fn').strip()))})"


_EXPECT_MATCHERS = {
    "toBeVisible": "isVisible",
    "toBeHidden": "isHidden",
    "toBeChecked": "isChecked",
    "toBeEnabled": "isEnabled",
    "toBeDisabled": "isDisabled",
    "toBeEditable": "isEditable",
    "toHaveText": "hasText",
    "toContainText": "containsText",
    "toHaveValue": "hasValue",
    "toHaveURL": "hasURL",
    "toHaveTitle": "hasTitle",
    "toHaveCount": "hasCount",
    "toHaveAttribute": "hasAttribute",
}

_STRING_ARG = re.compile("^" + _str("v") + "$")


def _expect(m):
    matcher = _EXPECT_MATCHERS.get(m.group("matcher"))
    if matcher is None:
        return m.group(0)
    args = [a.strip() for a in m.group("arg").split(",")] if m.group("arg").strip() else []
    java_args = []
    for arg in args:
        sm = _STRING_ARG.match(arg)
        java_args.append(quoted(_val(sm, "v")) if sm else arg)
    negate = "not()." if m.group("neg") else ""
    return f"assertThat({m.group('target')}).{negate}{matcher}({', '.join(java_args)})"


def _preview(code: str) -> str:
    if len(code) > EVALUATE_PREVIEW_CHARS:
        return code[:EVALUATE_PREVIEW_CHARS] + "..."
    return code


# ─── Translation table (order matters) ──────────────────────────

_RECV = r"(?P<recv>\bpage)?"
_JS_REGEX = r"/(?P<re>(?:\\.|[^/\\])+)/(?P<flags>[a-z]*)"

TRANSLATION_TABLE: list[RewriteRule] = [
    RewriteRule("await", re.compile(r"\bawait\s+"), lambda m: ""),
    RewriteRule("declaration", re.compile(r"^(?:const|let|var)\s+"), lambda m: "var "),
    RewriteRule(
        "getByRole.regexName",
        re.compile(_RECV + r"\.getByRole\(" + _str("role")
                   + r"\s*,\s*\{\s*name:\s*" + _JS_REGEX + r"\s*\}\)"),
        _role_regex_name,
    ),
    RewriteRule(
        "getByRole.name",
        re.compile(_RECV + r"\.getByRole\(" + _str("role")
                   + r"\s*,\s*\{\s*name:\s*" + _str("name")
                   + r"\s*(?:,\s*exact:\s*(?P<exact>true|false)\s*)?\}\)"),
        _role_name,
    ),
    RewriteRule(
        "getByRole",
        re.compile(_RECV + r"\.getByRole\(" + _str("role") + r"\s*\)"),
        _role_only,
    ),
    RewriteRule(
        "getByText.regex",
        re.compile(_RECV + r"\.(?P<method>getByText|getByLabel|getByTitle)\(" + _JS_REGEX + r"\)"),
        _text_regex,
    ),
    RewriteRule(
        "getBy.string",
        re.compile(
            _RECV + r"\.(?P<method>getByText|getByLabel|getByPlaceholder|getByTestId"
            r"|getByAltText|getByTitle)\(" + _str("v")
            + r"(?:\s*,\s*\{\s*exact:\s*(?P<exact>true|false)\s*\})?\)"
        ),
        _simple_locator,
    ),
    RewriteRule(
        "locator",
        re.compile(_RECV + r"\.locator\(" + _str("v") + r"\)"),
        _css_locator,
    ),
    RewriteRule(
        "goto",
        re.compile(r"\bpage\.(?:goto|navigate)\(" + _str("url") + r"(?:\s*,\s*\{[^}]*\})?\)"),
        _goto,
    ),
    RewriteRule(
        "keyboard",
        re.compile(r"\bpage\.(?P<device>keyboard|mouse)\.(?P<call>\w+)\("),
        _device,
    ),
    RewriteRule(
        "click.options",
        re.compile(_RECV + r"\.(?P<method>click|dblclick)\((?:" + _str("sel")
                   + r"\s*,\s*)?(?P<opts>\{[^{}]*\})\)"),
        _click_with_options,
    ),
    RewriteRule(
        "page.selectorValue",
        re.compile(r"\bpage\.(?P<method>fill|type|pressSequentially|press|selectOption)\("
                   + _str("sel") + r"\s*,\s*" + _str("v") + r"\)"),
        _page_selector_value,
    ),
    RewriteRule(
        "page.selectorAction",
        re.compile(r"\bpage\.(?P<method>click|dblclick|hover|check|uncheck|focus|tap)\("
                   + _str("sel") + r"\)"),
        _page_selector_action,
    ),
    RewriteRule(
        "setInputFiles",
        re.compile(r"\.setInputFiles\(" + _str("v") + r"\)"),
        _input_file,
    ),
    RewriteRule(
        "setInputFiles.array",
        re.compile(r"\.setInputFiles\(\[(?P<items>[^\]]*)\]\)"),
        _input_files,
    ),
    RewriteRule(
        "action.string",
        re.compile(
            r"\.(?P<method>fill|pressSequentially|press|waitForURL|waitForSelector"
            r"|selectOption|(?<!keyboard\(\)\.)type|dispatchEvent)\(" + _str("v")
            + r"(?:\s*,\s*\{[^}]*\})?\)"
        ),
        _string_action,
    ),
    RewriteRule(
        "keyboard.string",
        re.compile(r"(?<=keyboard\(\))\.(?P<method>press|type|insertText|down|up)\(" + _str("v") + r"\)"),
        lambda m: f".{m.group('method')}({quoted(_val(m, 'v'))})",
    ),
    RewriteRule(
        "selectOption.array",
        re.compile(r"\.selectOption\(\[(?P<items>[^\]]*)\]\)"),
        _select_many,
    ),
    RewriteRule(
        "waitForLoadState",
        re.compile(r"\.waitForLoadState\(" + _str("v") + r"\)"),
        _load_state,
    ),
    RewriteRule(
        "evaluate.string",
        re.compile(r"\bpage\.evaluate\(" + _str("code") + r"\)"),
        _evaluate_string,
    ),
    RewriteRule(
        "evaluate.function",
        re.compile(r"\bpage\.evaluate\((?P<fn>(?:async\s*)?\([^)]*\)\s*=>.*)\)(?=\s*;?\s*$)"),
        _evaluate_fn,
    ),
    RewriteRule(
        "expect",
        re.compile(
            r"\bexpect\((?P<target>.+)\)\.(?P<neg>not\.)?(?P<matcher>to\w+)\((?P<arg>[^()]*)\)"
        ),
        _expect,
    ),
]


# ─── Public API ─────────────────────────────────────────────────

def extract_executed_code(result_text: str) -> str | None:
    """Return the first fenced ```js block in a tool result, if any."""
    match = _FENCED_JS.search(result_text or "")
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def apply_rule(rule: RewriteRule, line: str) -> str:
    return rule.pattern.sub(rule.replace, line)


def translate_line(line: str) -> str:
    stripped = line.strip()
    if not stripped:
        return ""
    if stripped.startswith("//"):
        return "// " + stripped[2:].lstrip()
    for rule in TRANSLATION_TABLE:
        stripped = apply_rule(rule, stripped)
    return _terminate(stripped)


def translate_block(js_code: str) -> str:
    """Translate a multi-line Playwright JS snippet to Java statements."""
    lines = (translate_line(line) for line in js_code.splitlines())
    return "\n".join(line for line in lines if line)


_JAVA_STRING = re.compile(r'"(?:\\.|[^"\\])*"')
_JS_RESIDUE = re.compile(r"['`]|[(,]\s*\{|\[\s*\"")


def has_js_residue(statement: str) -> bool:
    """True when a translated statement still carries a JS string, array or object literal."""
    if statement.lstrip().startswith("//"):
        return False
    code = _JAVA_STRING.sub('""', statement).split("//", 1)[0]
    return bool(_JS_RESIDUE.search(code))


def untranslated_lines(js_code: str) -> list[str]:
    """Source lines whose Java translation is not valid Java."""
    return [
        line.strip() for line in js_code.splitlines()
        if has_js_residue(translate_line(line))
    ]


def _terminate(statement: str) -> str:
    if statement.endswith((";", "{", "}", ",")):
        return statement
    return statement + ";"
