"""Hypernote - compile extended Markdown into UI node trees, and back."""

from hypernote.compiler import Compiler, Decompiler, compile_markdown_doc, decompile
from hypernote.config import DOC_VERSION, CompileOptions, load_options
from hypernote.exceptions import (
    FrontmatterError,
    HypernoteError,
    LegacyReferenceError,
    UnsupportedContentError,
)
from hypernote.interp import (
    Reference,
    ReferenceScope,
    build_payload,
    interpolate,
    is_reference_expression,
    parse_reference,
    reference_query_id,
    reference_root,
    resolve_reference,
)
from hypernote.models import (
    CompiledDoc,
    Dependencies,
    HypernoteMeta,
    HypernoteSection,
    UiNode,
    validate_doc,
)

__all__ = [
    "DOC_VERSION",
    "CompileOptions",
    "CompiledDoc",
    "Compiler",
    "Decompiler",
    "Dependencies",
    "FrontmatterError",
    "HypernoteError",
    "HypernoteMeta",
    "HypernoteSection",
    "LegacyReferenceError",
    "Reference",
    "ReferenceScope",
    "UiNode",
    "UnsupportedContentError",
    "build_payload",
    "compile_markdown_doc",
    "decompile",
    "interpolate",
    "is_reference_expression",
    "load_options",
    "parse_reference",
    "reference_query_id",
    "reference_root",
    "resolve_reference",
    "validate_doc",
]
