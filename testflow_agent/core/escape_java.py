"""Java Escaping — string-literal and regex-literal escaping for generated code.

Invariants:
    - Output of java_string() is safe inside "..." in Java source
    - Output of java_regex() is safe inside Pattern.compile("...") and matches the input literally
"""

import re

_JAVA_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_REGEX_META = re.compile(r"([.\[\]()*+?^$|{}\\])")


def java_string(value: object) -> str:
    return "".join(_JAVA_STRING_ESCAPES.get(ch, ch) for ch in str(value))


def java_regex(value: object) -> str:
    """Escape regex metacharacters, then escape the result as a Java string."""
    return java_string(_REGEX_META.sub(r"\\\1", str(value)))


def quoted(value: object) -> str:
    return f'"{java_string(value)}"'


_JS_ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


def unescape_js(value: str) -> str:
    """Undo JS string-literal escapes (quotes, backslash, \\n \\r \\t)."""
    return re.sub(
        r"\\(['\"`\\nrt])",
        lambda m: _JS_ESCAPES.get(m.group(1), m.group(1)),
        value,
    )
