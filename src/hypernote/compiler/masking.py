"""Template placeholder masking.

`{{ ... }}` spans are swapped for opaque alphanumeric tokens before the
Markdown parser sees the text, so underscores, brackets and asterisks
inside an expression cannot turn into emphasis or links. The spans are
put back into every string of the parsed result afterwards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Pattern, Tuple

TEMPLATE_SPAN = re.compile(r"\{\{[\s\S]*?\}\}")

FENCE_LINE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")


@dataclass
class TemplateMaskState:
    """Masked text plus the token -> original span map for one compile call."""

    masked: str
    map: Dict[str, str] = field(default_factory=dict)
    prefix: str = "HNTPL"

    @property
    def token_pattern(self) -> Pattern[str]:
        return re.compile(re.escape(self.prefix) + r"\d+X")


def _unique_prefix(source: str, prefix: str) -> str:
    while prefix in source:
        prefix += "Q"
    return prefix


def mask_template_placeholders(source: str, prefix: str = "HNTPL") -> TemplateMaskState:
    """Replace each `{{ ... }}` span with a token like `HNTPL0X`.

    The prefix is lengthened until it does not occur in `source`, so a
    token can never be confused with text the author wrote.
    """
    prefix = _unique_prefix(source or "", prefix)
    spans: Dict[str, str] = {}

    def substitute(match: re.Match[str]) -> str:
        token = f"{prefix}{len(spans)}X"
        spans[token] = match.group(0)
        return token

    masked = TEMPLATE_SPAN.sub(substitute, source or "")
    return TemplateMaskState(masked=masked, map=spans, prefix=prefix)


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _strings(item)
    elif isinstance(value, dict):
        for key, item in value.items():
            yield str(key)
            yield from _strings(item)


def mask_template_data(value: Any, prefix: str = "HNTPL") -> Tuple[Any, TemplateMaskState]:
    """Mask `{{ ... }}` spans in every string nested inside `value`.

    All strings share one token map, so the masked value can be serialized
    as a whole and restored afterwards with `restore_template_text`.
    """
    state = TemplateMaskState(masked="", prefix=_unique_prefix("\n".join(_strings(value)), prefix))

    def substitute(match: re.Match[str]) -> str:
        token = f"{state.prefix}{len(state.map)}X"
        state.map[token] = match.group(0)
        return token

    def walk(item: Any) -> Any:
        if isinstance(item, str):
            return TEMPLATE_SPAN.sub(substitute, item)
        if isinstance(item, (list, tuple)):
            return [walk(child) for child in item]
        if isinstance(item, dict):
            return {key: walk(child) for key, child in item.items()}
        return item

    return walk(value), state


def restore_template_text(text: str, state: TemplateMaskState) -> str:
    if not text or not state.map:
        return text
    return state.token_pattern.sub(lambda m: state.map.get(m.group(0), m.group(0)), text)


def restore_template_data(value: Any, state: TemplateMaskState) -> Any:
    """Restore tokens in every string nested anywhere inside `value`."""
    if isinstance(value, str):
        return restore_template_text(value, state)
    if isinstance(value, list):
        return [restore_template_data(item, state) for item in value]
    if isinstance(value, dict):
        return {key: restore_template_data(item, state) for key, item in value.items()}
    return value


def _closes(open_fence: str, match: re.Match[str]) -> bool:
    marker, rest = match.group(1), match.group(2)
    return marker[0] == open_fence[0] and len(marker) >= len(open_fence) and not rest.strip()


def ensure_blank_line_before_fences(source: str) -> str:
    """Insert an empty line before any opening fence glued to preceding text.

    Without it the block parser would read the fence as part of the
    paragraph above. Closing fences and fence-like lines inside an open
    code block are left alone.
    """
    out: list[str] = []
    open_fence: str | None = None
    for line in source.split("\n"):
        match = FENCE_LINE.match(line)
        if open_fence is not None:
            if match and _closes(open_fence, match):
                open_fence = None
            out.append(line)
            continue
        if match and not (match.group(1)[0] == "`" and "`" in match.group(2)):
            if out and out[-1].strip():
                out.append("")
            open_fence = match.group(1)
        out.append(line)
    return "\n".join(out)
