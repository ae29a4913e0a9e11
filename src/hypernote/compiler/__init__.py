"""Hypernote compiler - Markdown documents to UiNode trees and back."""

from hypernote.compiler.compiler import Compiler, compile_markdown_doc
from hypernote.compiler.decompiler import Decompiler, decompile

__all__ = ["Compiler", "Decompiler", "compile_markdown_doc", "decompile"]
