"""Compiler options.

Options are plain data; a `Compiler` or `Decompiler` keeps nothing else
between calls.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

DOC_VERSION = "1.2.0"


class CompileOptions(BaseModel):
    """Settings shared by the compiler and the decompiler."""

    model_config = {"frozen": True}

    version: str = Field(
        default=DOC_VERSION, description="Version stamped on compiled documents"
    )
    default_each_source: str = Field(
        default="queries.items", description="Loop source when `from` is missing"
    )
    default_each_as: str = Field(
        default="item", description="Loop variable name when `as` is missing"
    )
    mask_prefix: str = Field(
        default="HNTPL",
        pattern=r"^[A-Za-z][A-Za-z0-9]*$",
        description="Prefix of the opaque tokens that shield {{ }} spans",
    )
    legacy_author_prefixes: tuple[str, ...] = Field(
        default=("$user.pubkey", "$user.contacts", "$contacts"),
        description="`$` placeholders still accepted in query `authors` fields",
    )


def load_options(path: Path) -> CompileOptions:
    """Load compiler options from a YAML file."""
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return CompileOptions(**data)
