"""Pretty printing helpers: indented JSON and text dedenting."""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_HTML_PATTERN = re.compile("[<>&\u2028\u2029]")


def _plain(obj: Any) -> Any:
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        return to_json()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def _marshal(value: Any, indent: int | None = None) -> str:
    separators = (",", ": ") if indent is not None else (",", ":")
    text = json.dumps(
        value, indent=indent, separators=separators, ensure_ascii=False, default=_plain
    )
    # These characters can only occur inside string literals, so escaping is safe.
    return _HTML_PATTERN.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)


def to_json(value: Any) -> str:
    """Render a value as JSON indented by two spaces."""
    return _marshal(value, indent=2)


_WHITESPACE_ONLY = re.compile(r"^[ \t]+$", re.MULTILINE)
_LEADING_WHITESPACE = re.compile(r"(^[ \t]*)(?:[^ \t\n])", re.MULTILINE)


def dedent(text: str) -> str:
    """Drop a leading newline and the whitespace margin common to all lines."""
    if not text:
        return ""
    if text.startswith("\n"):
        text = text[1:]
    text = _WHITESPACE_ONLY.sub("", text)

    margin: str | None = None
    for indent in _LEADING_WHITESPACE.findall(text):
        if margin is None:
            margin = indent
        elif indent.startswith(margin):
            continue
        elif margin.startswith(indent):
            margin = indent
        else:
            margin = ""
            break

    if margin:
        text = re.sub("^" + re.escape(margin), "", text, flags=re.MULTILINE)
    return text