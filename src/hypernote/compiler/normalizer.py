"""Post-processing of parsed Markdown fragments.

The fragments are mistune AST tokens (`{"type": ..., "children": [...]}`).
Passes, applied to every children list recursively:

1. cleanup: drop parser-private keys, reference labels and heading styles
2. coalesce: merge adjacent `text` tokens
3. image merge: `![alt](url)` whose url holds a template and was left as
   plain text becomes a real `image` token
4. template re-merge: a `{{ ... }}` split across sibling inline tokens is
   collapsed back into flat `text` tokens
"""

from __future__ import annotations

import copy
import re
from textwrap import indent
from typing import Any, Dict, Iterable, List

from mistune.core import BlockState
from mistune.renderers.markdown import MarkdownRenderer

Token = Dict[str, Any]

_IMAGE_SHORTHAND = re.compile(
    r"!\[(?P<alt>[^\]]*)\]\(\s*(?P<url>(?:\{\{.*?\}\}|[^()\s])+)\s*\)", re.DOTALL
)
_TEMPLATE_SPLIT = re.compile(r"(\{\{.*?\}\})", re.DOTALL)
_TEMPLATE_OR_TEXT = re.compile(r"(\{\{.*?\}\})|([^{]+|\{)", re.DOTALL)
_MARKDOWN_ACTIVE = re.compile(r"([\\`*_\[\]<])")


class FragmentRenderer(MarkdownRenderer):
    """Markdown renderer that re-parses to the same tokens.

    Characters that would start emphasis, code, links or HTML are escaped
    in text, except inside `{{ }}` spans, which must stay verbatim.
    """

    def text(self, token: Dict[str, Any], state: BlockState) -> str:
        out: List[str] = []
        for template, plain in _TEMPLATE_OR_TEXT.findall(token["raw"]):
            out.append(template or _MARKDOWN_ACTIVE.sub(r"\\\1", plain))
        return "".join(out)

    def block_code(self, token: Dict[str, Any], state: BlockState) -> str:
        if token.get("style") != "indent":
            return super().block_code(token, state)
        # re-fencing an indented block would turn it into a literal_code node
        return indent(token["raw"].rstrip("\n"), "    ", lambda _: True) + "\n\n"


def markdown_to_text(tokens: List[Token]) -> str:
    """Canonical Markdown for a fragment."""
    if not tokens:
        return ""
    # list rendering annotates tokens in place
    return FragmentRenderer()(copy.deepcopy(tokens), BlockState()).rstrip("\n")


def _clean(token: Token) -> Token:
    cleaned = {key: value for key, value in token.items() if not key.startswith("_")}
    if cleaned.get("type") in ("link", "image"):
        # the fragment carries no link definitions, so render inline
        cleaned.pop("label", None)
    elif cleaned.get("type") == "heading":
        # setext headings are re-emitted as atx
        cleaned.pop("style", None)
    return cleaned


def coalesce_text(children: Iterable[Token]) -> List[Token]:
    out: List[Token] = []
    for child in children:
        if child.get("type") == "text" and out and out[-1].get("type") == "text":
            out[-1] = {"type": "text", "raw": out[-1]["raw"] + child["raw"]}
        else:
            out.append(child)
    return out


def _text_token(raw: str) -> Token:
    return {"type": "text", "raw": raw}


def merge_image_references(children: List[Token]) -> List[Token]:
    """Turn leftover `![alt](...{{ expr }}...)` text into `image` tokens.

    Expects text already coalesced, so a reference-looking `![alt]` and the
    `(url)` remainder that followed it are in one token.
    """
    out: List[Token] = []
    for child in children:
        if child.get("type") != "text" or "![" not in child["raw"]:
            out.append(child)
            continue
        raw = child["raw"]
        cursor = 0
        for match in _IMAGE_SHORTHAND.finditer(raw):
            url = match.group("url")
            if "{{" not in url:
                continue
            if match.start() > cursor:
                out.append(_text_token(raw[cursor : match.start()]))
            alt = match.group("alt")
            out.append(
                {
                    "type": "image",
                    "children": [_text_token(alt)] if alt else [],
                    "attrs": {"url": url},
                }
            )
            cursor = match.end()
        if cursor < len(raw):
            out.append(_text_token(raw[cursor:]))
    return out


def _flat_text(token: Token) -> str:
    kind = token.get("type")
    if kind in ("text", "codespan", "inline_html"):
        return token.get("raw", "")
    if kind in ("softbreak", "linebreak"):
        return "\n"
    inner = "".join(_flat_text(child) for child in token.get("children", []))
    if kind == "emphasis":
        return f"_{inner}_"
    if kind == "strong":
        return f"__{inner}__"
    return inner


def _has_open_template(text: str) -> bool:
    return text.rfind("{{") > text.rfind("}}")


def split_template_segments(text: str) -> List[Token]:
    return [_text_token(part) for part in _TEMPLATE_SPLIT.split(text) if part]


def remerge_template_fragments(children: List[Token]) -> List[Token]:
    """Collapse sibling runs that a `{{ ... }}` expression straddles."""
    out: List[Token] = []
    index = 0
    while index < len(children):
        combined = _flat_text(children[index])
        if _has_open_template(combined):
            end = index + 1
            while end < len(children) and _has_open_template(combined):
                combined += _flat_text(children[end])
                end += 1
            if end > index + 1 and not _has_open_template(combined):
                out.extend(split_template_segments(combined))
                index = end
                continue
        out.append(children[index])
        index += 1
    return out


def normalize_fragment(tokens: List[Token]) -> List[Token]:
    """Run every normalization pass over a fragment, depth first."""
    result: List[Token] = []
    for token in tokens:
        token = _clean(token)
        children = token.get("children")
        if isinstance(children, list):
            children = normalize_fragment(children)
            children = coalesce_text(children)
            children = merge_image_references(children)
            token["children"] = remerge_template_fragments(children)
        result.append(token)
    return result
