"""Mustache-style interpolation for `{{ expr }}` placeholders.

Supports:
  - {{ queries.feed[0].content }} - lookup through the reference parser
  - {{ user.name || "anonymous" }} - fallback alternatives, first non-empty wins
  - {{ queries.note.created_at | format_date:date }} - filter pipelines
  - \\{{ and \\}} - literal braces

Unresolvable expressions render as the empty string.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from hypernote.interp.filters import apply_filter
from hypernote.interp.reference import (
    ReferenceScope,
    is_reference_expression,
    resolve_reference,
)

TEMPLATE_PATTERN = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)

# private-use stand-ins for escaped braces during the main pass
_OPEN_SENTINEL = "\ue000"
_CLOSE_SENTINEL = "\ue001"

_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")
_MISSING = object()


def _split_outside_quotes(expr: str, sep: str) -> List[str]:
    """Split `expr` on `sep` wherever it is not inside a quoted literal.

    A single `|` separator never matches half of a `||`.
    """
    parts: List[str] = []
    buf: List[str] = []
    quote: Optional[str] = None
    i = 0
    while i < len(expr):
        ch = expr[i]
        if quote:
            buf.append(ch)
            if ch == "\\" and i + 1 < len(expr):
                buf.append(expr[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in ("'", '"'):
            quote = ch
            buf.append(ch)
            i += 1
            continue
        if expr.startswith(sep, i):
            if sep == "|" and expr.startswith("||", i):
                buf.append("||")
                i += 2
                continue
            parts.append("".join(buf))
            buf = []
            i += len(sep)
            continue
        buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


def split_alternatives(expr: str) -> List[str]:
    """Split an expression into its `||` fallback alternatives."""
    return [part.strip() for part in _split_outside_quotes(expr, "||")]


def split_pipeline(alternative: str) -> Tuple[str, List[Tuple[str, Optional[str]]]]:
    """Split `head | filter:arg | filter` into the head and (name, arg) pairs."""
    head, *stages = [part.strip() for part in _split_outside_quotes(alternative, "|")]
    filters: List[Tuple[str, Optional[str]]] = []
    for stage in stages:
        if not stage:
            continue
        name, sep, arg = stage.partition(":")
        filters.append((name.strip(), arg.strip() if sep else None))
    return head, filters


def iter_templates(text: str) -> Iterator[re.Match[str]]:
    """Yield every unescaped `{{ ... }}` match in `text`."""
    if not text:
        return
    for match in TEMPLATE_PATTERN.finditer(text):
        start = match.start()
        if start > 0 and text[start - 1] == "\\":
            continue
        yield match


def parse_literal(raw: str) -> Any:
    """Parse a quoted string, number, boolean or JSON object literal."""
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    if _NUMBER.match(text):
        return float(text) if "." in text else int(text)
    if text in ("true", "false"):
        return text == "true"
    if text.startswith("{"):
        try:
            return json.loads(text)
        except ValueError:
            return _MISSING
    return _MISSING


def _filter_arg(raw: Optional[str]) -> Any:
    if raw is None or raw == "":
        return None
    literal = parse_literal(raw)
    # bare words such as `date` or `en-US`
    return raw if literal is _MISSING else literal


def stringify(value: Any) -> str:
    """Render a resolved value as template text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def evaluate_head(head: str, scope: ReferenceScope) -> Any:
    """Resolve the head of an alternative; None when it yields nothing."""
    if is_reference_expression(head):
        value = resolve_reference(head, scope)
        if value is None and head in ("true", "false"):
            return head == "true"
        return value
    literal = parse_literal(head)
    return None if literal is _MISSING else literal


def evaluate_alternative(alternative: str, scope: ReferenceScope) -> Any:
    head, filters = split_pipeline(alternative)
    value = evaluate_head(head, scope)
    for name, arg in filters:
        value = apply_filter(name, value, _filter_arg(arg))
    return value


def evaluate_expression(expr: str, scope: ReferenceScope) -> str:
    """Evaluate the inside of a `{{ }}`; first non-empty alternative wins."""
    for alternative in split_alternatives(expr):
        if not alternative:
            continue
        rendered = stringify(evaluate_alternative(alternative, scope))
        if rendered != "":
            return rendered
    return ""


def _as_scope(globals: Any, queries: Any) -> ReferenceScope:
    return ReferenceScope(
        globals=globals if isinstance(globals, Mapping) else {},
        queries=queries if isinstance(queries, Mapping) else {},
    )


def interpolate(
    text: str,
    globals: Optional[Mapping[str, Any]] = None,
    queries: Optional[Mapping[str, Any]] = None,
) -> str:
    """Render every `{{ expr }}` in `text` against globals and queries.

    Example:
        >>> interpolate("User: {{ user.name }}", {"user": {"name": "paul"}}, {})
        'User: paul'
    """
    if not text:
        return ""
    scope = _as_scope(globals, queries)
    shielded = text.replace("\\{{", _OPEN_SENTINEL).replace("\\}}", _CLOSE_SENTINEL)
    rendered = TEMPLATE_PATTERN.sub(
        lambda m: evaluate_expression(m.group(1), scope), shielded
    )
    return rendered.replace(_OPEN_SENTINEL, "{{").replace(_CLOSE_SENTINEL, "}}")


def build_payload(
    spec: Any,
    globals: Optional[Mapping[str, Any]] = None,
    queries: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Resolve a directive payload against live data.

    Strings containing `{{` are interpolated. A string that is a bare
    reference expression and resolves to something is replaced by the
    resolved value, keeping its type. Everything else passes through.
    """
    scope = _as_scope(globals, queries)

    def transform(value: Any) -> Any:
        if isinstance(value, str):
            if "{{" in value:
                return interpolate(value, scope.globals, scope.queries)
            trimmed = value.strip()
            if trimmed and is_reference_expression(trimmed):
                resolved = resolve_reference(trimmed, scope)
                return value if resolved is None else resolved
            return value
        if isinstance(value, list):
            return [transform(item) for item in value]
        if isinstance(value, dict):
            return {key: transform(item) for key, item in value.items()}
        return value

    return transform(spec)
