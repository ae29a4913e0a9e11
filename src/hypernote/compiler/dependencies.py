"""Static dependency extraction and the legacy `$` reference guard."""

from __future__ import annotations

from typing import Any, Iterable, List, Sequence

from hypernote.exceptions import LegacyReferenceError
from hypernote.interp.interpolate import iter_templates, split_alternatives, split_pipeline
from hypernote.interp.reference import parse_reference
from hypernote.models import Dependencies

# bare words the interpolator reads as literals, never as paths
_LITERAL_WORDS = frozenset({"true", "false"})


def _add_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)


def extract_references(text: str | None) -> List[str]:
    """Reference expressions used by the `{{ }}` templates in `text`.

    Every `||` alternative is considered; filters are stripped first, so
    `{{ queries.feed[0].created_at | format_date:date }}` yields
    `queries.feed[0].created_at`. Order of first appearance is kept.
    """
    found: List[str] = []
    for match in iter_templates(text or ""):
        for alternative in split_alternatives(match.group(1)):
            head, _ = split_pipeline(alternative)
            if head in _LITERAL_WORDS or parse_reference(head) is None:
                continue
            _add_unique(found, head)
    return found


def loop_locals(name: str) -> frozenset[str]:
    """Names an `each` body can read that are not document globals."""
    return frozenset({name, f"{name}Index"})


class DependencyCollector:
    """Accumulates the document-level `dependencies` for one compile call."""

    def __init__(self):
        self.queries: List[str] = []
        self.globals: List[str] = []

    def add(self, expression: str, local_names: Iterable[str] = ()) -> None:
        reference = parse_reference(expression)
        if reference is None:
            return
        if reference.root == "queries":
            if reference.segments and isinstance(reference.segments[0], str):
                _add_unique(self.queries, reference.segments[0])
            return
        if reference.root == "globals":
            if reference.segments and isinstance(reference.segments[0], str):
                _add_unique(self.globals, reference.segments[0])
            return
        if reference.root in local_names:
            return
        _add_unique(self.globals, reference.root)

    def add_all(self, expressions: Iterable[str], local_names: Iterable[str] = ()) -> None:
        local_names = frozenset(local_names)
        for expression in expressions:
            self.add(expression, local_names)

    def add_data(self, value: Any, local_names: Iterable[str] = ()) -> None:
        """Collect references from every string nested in a directive payload."""
        if isinstance(value, str):
            self.add_all(extract_references(value), local_names)
        elif isinstance(value, list):
            for item in value:
                self.add_data(item, local_names)
        elif isinstance(value, dict):
            for item in value.values():
                self.add_data(item, local_names)

    def result(self) -> Dependencies:
        return Dependencies(queries=list(self.queries), globals=list(self.globals))


def _legacy_suggestion(value: str) -> str:
    return f"queries.{value.lstrip('$')}"


class LegacyGuard:
    """Rejects deprecated `$name` references.

    `$` values are still accepted in two places: `from`/`with` fields that
    read the loop item (`$item.`), and `authors` fields holding one of the
    configured placeholder prefixes.
    """

    def __init__(self, author_prefixes: Sequence[str]):
        self.author_prefixes = tuple(author_prefixes)

    def _allowed(self, field: str | None, value: str) -> bool:
        if field in ("from", "with"):
            return value.startswith("$item.")
        if field == "authors":
            return any(
                value == prefix or value.startswith(prefix + ".")
                for prefix in self.author_prefixes
            )
        return False

    def check_value(self, value: Any, path: str, field: str | None = None) -> None:
        if isinstance(value, str):
            if value.startswith("$") and not self._allowed(field, value):
                raise LegacyReferenceError(path, value, _legacy_suggestion(value))
        elif isinstance(value, list):
            for index, item in enumerate(value):
                # list items belong to the field that holds the list
                self.check_value(item, f"{path}[{index}]", field)
        elif isinstance(value, dict):
            for key, item in value.items():
                # `with: {id: $item.id}` is still a `with` value
                child_field = field if field in ("from", "with") else str(key)
                self.check_value(item, f"{path}.{key}", child_field)

    def check_queries(self, queries: dict[str, Any]) -> None:
        for name, spec in queries.items():
            self.check_value(spec, f"queries.{name}")

    def check_each_source(self, source: str, path: str) -> None:
        self.check_value(source, path, "from")
