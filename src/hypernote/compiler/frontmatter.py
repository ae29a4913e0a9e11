"""Frontmatter splitting and metadata normalization."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Tuple

import yaml
from pydantic import ValidationError

from hypernote.exceptions import FrontmatterError
from hypernote.models import META_SECTIONS, HypernoteMeta

log = logging.getLogger(__name__)

FRONTMATTER_FENCE = re.compile(r"^---\s*$")

# top-level keys older documents used for what now lives under `hypernote:`
HYPERNOTE_KEYS = ("name", "icon", "description", "version", "author", "type")


def split_frontmatter(source: str) -> Tuple[str | None, str]:
    """Split `---` delimited frontmatter from the body.

    Returns (frontmatter_text, body). frontmatter_text is None when the
    document has no complete frontmatter block.
    """
    if not source:
        return None, ""
    lines = re.split(r"\r?\n", source)
    if not FRONTMATTER_FENCE.match(lines[0]):
        return None, source
    for index in range(1, len(lines)):
        if FRONTMATTER_FENCE.match(lines[index]):
            return "\n".join(lines[1:index]), "\n".join(lines[index + 1 :])
    return None, source


def load_frontmatter(text: str | None) -> Dict[str, Any]:
    """Parse frontmatter YAML. Malformed YAML counts as empty metadata."""
    if not text or not text.strip():
        return {}
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        log.warning("Ignoring malformed frontmatter: %s", exc)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(f"expected a mapping, got {type(data).__name__}")
    return data


def normalize_meta(raw: Dict[str, Any]) -> HypernoteMeta:
    """Reshape raw frontmatter into the canonical metadata layout.

    - legacy top-level app keys (name, icon, ...) fold into `hypernote`,
      explicit `hypernote:` values win
    - queries/actions/components/events are always mappings
    - `dependencies` is dropped; the compiler recomputes it
    - anything else passes through untouched
    """
    data = {str(key): value for key, value in raw.items()}
    data.pop("dependencies", None)

    section = data.get("hypernote")
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise FrontmatterError("'hypernote' must be a mapping")
    section = dict(section)
    for key in HYPERNOTE_KEYS:
        if key in data:
            value = data.pop(key)
            section.setdefault(key, value)
    data["hypernote"] = section

    for name in META_SECTIONS[1:]:
        value = data.get(name)
        if value is None:
            data[name] = {}
        elif not isinstance(value, dict):
            raise FrontmatterError(f"'{name}' must be a mapping")

    try:
        return HypernoteMeta.model_validate(data)
    except ValidationError as exc:
        raise FrontmatterError(str(exc)) from exc
