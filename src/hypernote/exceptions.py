"""Hypernote Exceptions

Errors raised while compiling Hypernote documents.
"""

from __future__ import annotations


class HypernoteError(Exception):
    """Base exception for all Hypernote compiler errors."""

    pass


class UnsupportedContentError(HypernoteError):
    """Raised when the document body contains content the UI cannot render."""

    def __init__(self, kind: str, snippet: str = ""):
        self.kind = kind
        self.snippet = snippet
        message = f"{kind} is not supported in Hypernote documents"
        if snippet:
            message += f": {snippet.strip()[:60]!r}"
        super().__init__(message)


class LegacyReferenceError(HypernoteError):
    """Raised when a deprecated `$name` reference appears outside its allowed fields."""

    def __init__(self, path: str, value: str, suggestion: str):
        self.path = path
        self.value = value
        self.suggestion = suggestion
        super().__init__(
            f"Legacy reference {value!r} at {path} is no longer supported; "
            f"use {suggestion!r} instead"
        )


class FrontmatterError(HypernoteError):
    """Raised when the frontmatter has the wrong shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid frontmatter: {detail}")
