"""Compiled document model: UiNode tree plus normalized metadata."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

NodeType = Literal[
    "markdown",
    "button",
    "input",
    "markdown_editor",
    "markdown_viewer",
    "note",
    "literal_code",
    "hstack",
    "vstack",
    "each",
]

CONTAINER_TYPES = frozenset({"hstack", "vstack", "each"})
LEAF_DIRECTIVE_TYPES = frozenset(
    {"button", "input", "markdown_editor", "markdown_viewer", "note"}
)

# Sections of the metadata that the decompiler emits first, in this order.
META_SECTIONS = ("hypernote", "queries", "actions", "components", "events")


class UiNode(BaseModel):
    """A single node of the compiled UI tree."""

    id: str
    type: NodeType
    data: dict[str, Any] | None = None
    children: list[UiNode] = Field(default_factory=list)
    markdown: list[dict[str, Any]] | None = None
    text: str | None = None
    refs: list[str] | None = None

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_TYPES

    @model_validator(mode="after")
    def check_shape(self) -> "UiNode":
        if self.children and not self.is_container:
            raise ValueError(f"'{self.type}' nodes cannot have children")
        if self.type != "markdown" and (
            self.markdown is not None or self.refs is not None
        ):
            raise ValueError(f"'{self.type}' nodes cannot carry markdown or refs")
        if self.text is not None and self.type not in ("markdown", "literal_code"):
            raise ValueError(f"'{self.type}' nodes cannot carry text")
        if self.type == "each":
            data = self.data or {}
            if not isinstance(data.get("source"), str) or not isinstance(
                data.get("as"), str
            ):
                raise ValueError("'each' nodes need string 'source' and 'as' fields")
        return self


class HypernoteSection(BaseModel):
    """The `hypernote:` frontmatter section describing the app itself."""

    model_config = {"extra": "allow"}

    name: str | None = None
    icon: str | None = None
    description: str | None = None
    version: str | None = None
    author: str | None = None
    type: str | None = None

    @field_validator("name", "icon", "description", "version", "author", "type", mode="before")
    @classmethod
    def numbers_as_text(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class Dependencies(BaseModel):
    """Live data a document reads: query ids and global roots."""

    queries: list[str] = Field(default_factory=list)
    globals: list[str] = Field(default_factory=list)


class HypernoteMeta(BaseModel):
    """Normalized frontmatter. Unknown top-level keys pass through."""

    model_config = {"extra": "allow"}

    hypernote: HypernoteSection = Field(default_factory=HypernoteSection)
    queries: dict[str, dict[str, Any]] = Field(default_factory=dict)
    actions: dict[str, Any] = Field(default_factory=dict)
    components: dict[str, Any] = Field(default_factory=dict)
    events: dict[str, Any] = Field(default_factory=dict)
    dependencies: Dependencies = Field(default_factory=Dependencies)


class CompiledDoc(BaseModel):
    """Output of one compile call."""

    version: str
    meta: HypernoteMeta
    ast: list[UiNode] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-shaped value consumed by renderers and the query layer."""
        return self.model_dump(mode="json", exclude_none=True)


def validate_doc(value: Any) -> CompiledDoc:
    """Validate a JSON-shaped value as a compiled document."""
    return CompiledDoc.model_validate(value)
