"""Decompiler - renders a CompiledDoc back into canonical Hypernote Markdown."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import yaml

from hypernote.compiler.masking import mask_template_data, restore_template_text
from hypernote.compiler.normalizer import markdown_to_text
from hypernote.config import CompileOptions
from hypernote.models import META_SECTIONS, CompiledDoc, UiNode, validate_doc

# canonical fence tag for each leaf node type
LEAF_FENCE_TAGS = {
    "button": "button",
    "input": "input",
    "markdown_editor": "markdown-editor",
    "markdown_viewer": "markdown.viewer",
    "note": "note",
}

_BACKTICK_RUN = re.compile(r"`+")


def sort_keys(value: Any) -> Any:
    """Recursively order mapping keys so the YAML output is byte-stable."""
    if isinstance(value, dict):
        return {key: sort_keys(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, list):
        return [sort_keys(item) for item in value]
    return value


def dump_yaml(value: Any) -> str:
    """YAML for frontmatter and fence payloads.

    `{{ }}` spans are masked while dumping so they are never quoted or
    escaped, and re-parse to exactly the same strings.
    """
    masked, state = mask_template_data(value)
    text = yaml.safe_dump(masked, sort_keys=False, default_flow_style=False, allow_unicode=True)
    return restore_template_text(text, state)


def fence(tag: str, body: str = "") -> str:
    """A fenced block whose marker cannot be closed by the body."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(body)), default=0)
    marker = "`" * max(3, longest + 1)
    if body and not body.endswith("\n"):
        body += "\n"
    return f"{marker}{tag}\n{body}{marker}"


class Decompiler:
    """Renders compiled documents as Markdown that compiles back to them."""

    def __init__(self, options: Optional[CompileOptions] = None):
        self.options = options or CompileOptions()

    def decompile(self, doc: CompiledDoc | Dict[str, Any]) -> str:
        """Render `doc` as Markdown.

        The input is trusted to be a compiled document; a JSON-shaped value
        is only validated into the model.
        """
        if not isinstance(doc, CompiledDoc):
            doc = validate_doc(doc)

        parts: List[str] = []
        frontmatter = self.render_frontmatter(doc)
        if frontmatter:
            parts.append(frontmatter)
        body = self.render_nodes(doc.ast)
        if body:
            parts.append(body)
        return "\n\n".join(parts) + "\n" if parts else ""

    def render_frontmatter(self, doc: CompiledDoc) -> str:
        meta = doc.meta.model_dump(exclude_none=True)
        meta.pop("dependencies", None)

        ordered: Dict[str, Any] = {}
        for name in META_SECTIONS:
            section = meta.pop(name, None)
            if section:
                ordered[name] = sort_keys(section)
        for name in sorted(meta, key=str):
            ordered[name] = sort_keys(meta[name])

        if not ordered:
            return ""
        return f"---\n{dump_yaml(ordered)}---"

    def render_nodes(self, nodes: List[UiNode]) -> str:
        return "\n\n".join(filter(None, (self.render_node(node) for node in nodes)))

    def render_node(self, node: UiNode) -> str:
        if node.type == "markdown":
            if node.text is not None:
                return node.text
            return markdown_to_text(node.markdown or [])
        if node.type == "literal_code":
            lang = (node.data or {}).get("lang", "")
            # the compiler drops exactly one trailing newline from the body
            return fence(lang, node.text + "\n" if node.text else "")
        if node.type in LEAF_FENCE_TAGS:
            return fence(LEAF_FENCE_TAGS[node.type], self._payload(node.data))
        return self._render_container(node)

    def _render_container(self, node: UiNode) -> str:
        if node.type == "each":
            data = node.data or {}
            payload = {
                "from": data.get("source", self.options.default_each_source),
                "as": data.get("as", self.options.default_each_as),
            }
        else:
            payload = node.data
        parts = [fence(f"{node.type}.start", self._payload(payload))]
        children = self.render_nodes(node.children)
        if children:
            parts.append(children)
        parts.append(fence(f"{node.type}.end"))
        return "\n\n".join(parts)

    def _payload(self, data: Optional[Dict[str, Any]]) -> str:
        # an empty mapping is written as `{}`, an empty body compiles to `{text: ""}`
        if data is None:
            return ""
        return dump_yaml(sort_keys(data))


def decompile(doc: CompiledDoc | Dict[str, Any], options: Optional[CompileOptions] = None) -> str:
    """Render `doc` with a fresh Decompiler."""
    return Decompiler(options).decompile(doc)
