"""hypernote.interp - reference paths, filters and `{{ }}` interpolation."""

from hypernote.interp.filters import FILTERS, format_date, register_filter
from hypernote.interp.interpolate import (
    build_payload,
    interpolate,
    iter_templates,
    split_alternatives,
    split_pipeline,
)
from hypernote.interp.reference import (
    Reference,
    ReferenceScope,
    is_reference_expression,
    parse_reference,
    reference_query_id,
    reference_root,
    resolve_reference,
)

__all__ = [
    "FILTERS",
    "Reference",
    "ReferenceScope",
    "build_payload",
    "format_date",
    "interpolate",
    "is_reference_expression",
    "iter_templates",
    "parse_reference",
    "reference_query_id",
    "reference_root",
    "register_filter",
    "resolve_reference",
    "split_alternatives",
    "split_pipeline",
]
