"""Reference expressions: dotted/bracketed paths such as `queries.feed[0].content`.

Grammar::

    reference  := identifier ( '.' identifier | '[' index ']' )*
    identifier := [A-Za-z_][A-Za-z0-9_-]*
    index      := integer | "quoted" | 'quoted' | bareword

A string that does not match is simply "not a reference"; the parser
returns None instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

Segment = Union[str, int]

_IDENT_START = re.compile(r"[A-Za-z_]")
_IDENT_CHAR = re.compile(r"[A-Za-z0-9_\-]")
_INTEGER = re.compile(r"^-?\d+$")


@dataclass(frozen=True)
class Reference:
    """A parsed path: a root namespace plus ordered field/index segments."""

    root: str
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        parts = [self.root]
        for segment in self.segments:
            if isinstance(segment, int):
                parts.append(f"[{segment}]")
            else:
                parts.append(f".{segment}")
        return "".join(parts)


@dataclass(frozen=True)
class ReferenceScope:
    """The two namespaces a reference resolves against."""

    globals: Mapping[str, Any] = field(default_factory=dict)
    queries: Mapping[str, Any] = field(default_factory=dict)


class _Cursor:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def done(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def read_identifier(self) -> str | None:
        start = self.pos
        if not _IDENT_START.match(self.peek()):
            return None
        self.pos += 1
        while not self.done() and _IDENT_CHAR.match(self.peek()):
            self.pos += 1
        return self.text[start : self.pos]

    def read_index(self) -> Segment | None:
        # caller has consumed '['; nested balanced brackets stay in the index
        start, depth = self.pos, 1
        while not self.done():
            ch = self.peek()
            if ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    break
            self.pos += 1
        if depth != 0:
            return None
        inner = self.text[start : self.pos].strip()
        self.pos += 1
        if not inner:
            return None
        if _INTEGER.match(inner):
            return int(inner)
        if len(inner) >= 2 and inner[0] == inner[-1] and inner[0] in ("'", '"'):
            return inner[1:-1]
        return inner


def parse_reference(raw: str | None) -> Reference | None:
    """Parse `raw` into a Reference, or return None if it is not one."""
    text = (raw or "").strip()
    if not text:
        return None

    cursor = _Cursor(text)
    root = cursor.read_identifier()
    if root is None:
        return None

    segments: list[Segment] = []
    while not cursor.done():
        ch = cursor.peek()
        cursor.pos += 1
        if ch == ".":
            ident = cursor.read_identifier()
            if ident is None:
                return None
            segments.append(ident)
        elif ch == "[":
            index = cursor.read_index()
            if index is None:
                return None
            segments.append(index)
        else:
            # operators, spaces, stray brackets
            return None

    return Reference(root=root, segments=tuple(segments))


def is_reference_expression(raw: str | None) -> bool:
    """True if `raw` should be evaluated as a path rather than used literally."""
    return parse_reference(raw) is not None


def reference_root(raw: str | None) -> str | None:
    parsed = parse_reference(raw)
    return parsed.root if parsed else None


def reference_query_id(raw: str | None) -> str | None:
    """Query id a `queries.<id>...` reference reads from, else None."""
    parsed = parse_reference(raw)
    if parsed is None or parsed.root != "queries" or not parsed.segments:
        return None
    first = parsed.segments[0]
    return first if isinstance(first, str) else None


def _resolve_root(root: str, scope: ReferenceScope) -> Any:
    if root == "queries":
        return scope.queries
    if root == "globals":
        return scope.globals
    if isinstance(scope.globals, Mapping) and root in scope.globals:
        return scope.globals[root]
    return None


def _step(current: Any, segment: Segment) -> Any:
    if isinstance(current, Mapping):
        if segment in current:
            return current[segment]
        # YAML may have produced int keys for numeric field names, and the
        # reverse for bracketed numbers on string-keyed maps
        alt = str(segment) if isinstance(segment, int) else None
        return current.get(alt) if alt is not None else None
    if isinstance(current, (list, tuple)):
        if isinstance(segment, int) and 0 <= segment < len(current):
            return current[segment]
        return None
    return None


def resolve_reference(raw: str | Reference, scope: ReferenceScope) -> Any:
    """Resolve a reference against `scope`; None when any step is missing."""
    parsed = raw if isinstance(raw, Reference) else parse_reference(raw)
    if parsed is None:
        return None

    current = _resolve_root(parsed.root, scope)
    for segment in parsed.segments:
        if current is None:
            return None
        current = _step(current, segment)
    return current
