"""Directive payload parsing and stack layout sanitizing."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

log = logging.getLogger(__name__)

_KEY_VALUE_LINE = re.compile(r"^(\s*)([A-Za-z0-9_.-]+)\s*:\s*(.*)$")
_PIXELS = re.compile(r"^\s*(\d+)(px)?\s*$", re.IGNORECASE)


def _parse_key_value_lines(raw: str) -> Dict[str, Any]:
    """Permissive `key: value` reader for payloads YAML rejects.

    Indentation nests keys whose value is empty; every value stays a string.
    """
    root: Dict[str, Any] = {}
    stack: List[Tuple[int, Dict[str, Any]]] = [(-1, root)]
    for line in raw.splitlines():
        if not line.strip():
            continue
        match = _KEY_VALUE_LINE.match(line)
        if not match:
            continue
        indent, key, value = len(match.group(1)), match.group(2), match.group(3)
        while len(stack) > 1 and indent <= stack[-1][0]:
            stack.pop()
        parent = stack[-1][1]
        if value == "":
            child: Dict[str, Any] = {}
            parent[key] = child
            stack.append((indent, child))
        else:
            parent[key] = value
    return root


def parse_directive_payload(raw: str) -> Dict[str, Any]:
    """Parse a directive fence body.

    YAML first; if that fails or does not produce a mapping, fall back to
    line-based `key: value` extraction; if that finds nothing, the whole
    body becomes `{"text": body}`. Never raises.
    """
    body = (raw or "").strip()
    try:
        data = yaml.safe_load(body)
    except yaml.YAMLError as exc:
        log.debug("Directive payload is not valid YAML (%s), using line fallback", exc)
        data = None

    if isinstance(data, dict):
        return {str(key): value for key, value in data.items()}

    fallback = _parse_key_value_lines(body)
    if fallback:
        return fallback
    return {"text": body}


def normalize_pixel_value(value: Any) -> Optional[str]:
    """Return `value` as an explicit pixel length, or None if it is not one.

    Bare numbers are taken as pixels: 120 and "120" both become "120px".
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return f"{max(0, round(value))}px"
    if isinstance(value, str):
        match = _PIXELS.match(value)
        if match:
            return f"{match.group(1)}px"
    return None


def sanitize_stack_config(payload: Any) -> Optional[Dict[str, str]]:
    """Keep only the layout fields a stack understands, normalized to pixels."""
    if not isinstance(payload, dict):
        return None
    config: Dict[str, str] = {}
    for key in ("width", "height"):
        normalized = normalize_pixel_value(payload.get(key))
        if normalized:
            config[key] = normalized
    return config or None
