"""Directive tokenizer and container stack machine.

Walks the block tokens of a masked document body and builds the UiNode
tree. Plain Markdown blocks collect in the current frame's group until a
directive fence (or the end of a container) flushes them into a
`markdown` node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from hypernote.compiler.dependencies import extract_references
from hypernote.compiler.masking import TemplateMaskState, restore_template_data
from hypernote.compiler.normalizer import markdown_to_text, normalize_fragment
from hypernote.compiler.payload import parse_directive_payload, sanitize_stack_config
from hypernote.config import CompileOptions
from hypernote.exceptions import UnsupportedContentError
from hypernote.models import UiNode

log = logging.getLogger(__name__)

Token = Dict[str, Any]

LEAF_DIRECTIVES = {
    "button": "button",
    "input": "input",
    "markdown-editor": "markdown_editor",
    "markdown_editor": "markdown_editor",
    "markdown.viewer": "markdown_viewer",
    "markdown-viewer": "markdown_viewer",
    "markdown_viewer": "markdown_viewer",
    "note": "note",
}

OPENING_DIRECTIVES = {
    "hstack.start": "hstack",
    "vstack.start": "vstack",
    "each": "each",
    "each.start": "each",
}

CLOSING_DIRECTIVES = {
    "hstack.end": "hstack",
    "vstack.end": "vstack",
    "each.end": "each",
}

HTML_TOKENS = frozenset({"block_html", "inline_html"})


def directive_tag(info: str | None) -> str:
    """Canonical spelling of a fence tag: lowercase, spaces read as dots."""
    return ".".join((info or "").lower().split())


def is_directive(info: str | None) -> bool:
    tag = directive_tag(info)
    return tag in LEAF_DIRECTIVES or tag in OPENING_DIRECTIVES or tag in CLOSING_DIRECTIVES


def find_html(tokens: Iterable[Token]) -> Optional[Token]:
    """First raw HTML token anywhere in `tokens`, or None."""
    for token in tokens:
        if token.get("type") in HTML_TOKENS:
            return token
        found = find_html(token.get("children") or [])
        if found is not None:
            return found
    return None


class IdCounter:
    """Sequential node ids, scoped to one compile call."""

    def __init__(self):
        self._last = 0

    def next(self) -> str:
        self._last += 1
        return str(self._last)


@dataclass
class Frame:
    """An open container and the plain Markdown blocks waiting to be flushed."""

    node: UiNode
    group: List[Token] = field(default_factory=list)


class DirectiveTokenizer:
    """Builds the node tree for one document body.

    A new instance is used per compile call; it owns the id counter, the
    frame stack and the mask state of that call.
    """

    def __init__(self, mask: TemplateMaskState, options: CompileOptions):
        self.mask = mask
        self.options = options
        self.ids = IdCounter()
        self.root = UiNode(id=self.ids.next(), type="vstack")
        self.stack: List[Frame] = [Frame(self.root)]

    @property
    def frame(self) -> Frame:
        return self.stack[-1]

    def run(self, tokens: Iterable[Token]) -> List[UiNode]:
        """Consume the block tokens and return the top-level nodes."""
        for token in tokens:
            if token.get("type") == "block_code" and token.get("style") == "fenced":
                self._fence(token)
            else:
                self.frame.group.append(token)

        if len(self.stack) > 1:
            log.debug("Closing %d unterminated container(s)", len(self.stack) - 1)
        for frame in reversed(self.stack):
            self._flush(frame)
        return self.root.children

    def _fence(self, token: Token) -> None:
        info = (token.get("attrs") or {}).get("info", "")
        tag = directive_tag(info)

        if tag in CLOSING_DIRECTIVES:
            if len(self.stack) > 1:
                self._flush(self.frame)
                self.stack.pop()
            else:
                # the surrounding text stays one group
                log.debug("Dropping '%s' with no open container", tag)
            return

        self._flush(self.frame)

        if tag in LEAF_DIRECTIVES:
            data = self._payload(token)
            self._append(UiNode(id=self.ids.next(), type=LEAF_DIRECTIVES[tag], data=data))
        elif tag in OPENING_DIRECTIVES:
            self._open(OPENING_DIRECTIVES[tag], self._payload(token))
        else:
            self._append(self._literal_code(token, info))

    def _payload(self, token: Token) -> Dict[str, Any]:
        return restore_template_data(parse_directive_payload(token.get("raw", "")), self.mask)

    def _open(self, kind: str, payload: Dict[str, Any]) -> None:
        if kind == "each":
            data: Dict[str, Any] | None = self._each_data(payload)
        else:
            data = sanitize_stack_config(payload)
        node = UiNode(id=self.ids.next(), type=kind, data=data)
        self._append(node)
        self.stack.append(Frame(node))

    def _each_data(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        source = payload.get("from") or payload.get("source") or self.options.default_each_source
        name = str(payload.get("as") or self.options.default_each_as)
        if name.startswith("$"):
            name = name[1:]
        return {"source": str(source).strip(), "as": name.strip()}

    def _literal_code(self, token: Token, info: str) -> UiNode:
        body = self._restore(token.get("raw", ""))
        if body.endswith("\n"):
            body = body[:-1]
        return UiNode(
            id=self.ids.next(),
            type="literal_code",
            data={"lang": self._restore(info)},
            text=body,
        )

    def _restore(self, text: str) -> str:
        return restore_template_data(text, self.mask)

    def _append(self, node: UiNode) -> None:
        self.frame.node.children.append(node)

    def _flush(self, frame: Frame) -> None:
        group = [token for token in frame.group if token.get("type") != "blank_line"]
        frame.group = []
        if not group:
            return

        html = find_html(group)
        if html is not None:
            raise UnsupportedContentError("HTML", self._restore(html.get("raw", "")))

        fragment = normalize_fragment(restore_template_data(group, self.mask))
        text = markdown_to_text(fragment)
        frame.node.children.append(
            UiNode(
                id=self.ids.next(),
                type="markdown",
                markdown=fragment,
                text=text,
                refs=extract_references(text),
            )
        )
