"""Compiler - turns a Hypernote Markdown document into a CompiledDoc."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import mistune

from hypernote.compiler.dependencies import DependencyCollector, LegacyGuard, loop_locals
from hypernote.compiler.frontmatter import load_frontmatter, normalize_meta, split_frontmatter
from hypernote.compiler.masking import (
    ensure_blank_line_before_fences,
    mask_template_placeholders,
    restore_template_data,
)
from hypernote.compiler.tokenizer import DirectiveTokenizer
from hypernote.config import CompileOptions
from hypernote.models import CompiledDoc, Dependencies, UiNode

log = logging.getLogger(__name__)


class Compiler:
    """Compiles Hypernote Markdown into a CompiledDoc.

    The compiler holds only its options. Each `compile` call builds its own
    mask map, id counter and frame stack, so one instance can be shared.
    """

    def __init__(self, options: Optional[CompileOptions] = None):
        self.options = options or CompileOptions()

    def compile(self, source: str) -> CompiledDoc:
        """Compile a document.

        Pipeline:
        1. Mask `{{ }}` spans in the whole source
        2. Split and normalize the frontmatter, then run the legacy guard
        3. Parse the body into block tokens
        4. Build the node tree with the directive stack machine
        5. Collect document dependencies from the tree

        Args:
            source: Document text, optionally starting with `---` frontmatter.

        Returns:
            A new CompiledDoc.

        Raises:
            UnsupportedContentError: The body contains raw HTML.
            LegacyReferenceError: A deprecated `$` reference is used.
            FrontmatterError: The frontmatter is not a mapping.
        """
        mask = mask_template_placeholders(source or "", self.options.mask_prefix)
        frontmatter, body = split_frontmatter(mask.masked)

        meta = normalize_meta(restore_template_data(load_frontmatter(frontmatter), mask))
        guard = LegacyGuard(self.options.legacy_author_prefixes)
        guard.check_queries(meta.queries)

        markdown = mistune.create_markdown(renderer=None)
        tokens, _ = markdown.parse(ensure_blank_line_before_fences(body))
        ast = DirectiveTokenizer(mask, self.options).run(tokens)

        meta.dependencies = self._dependencies(ast, guard)
        log.debug(
            "Compiled %d top-level node(s), %d query dependencies",
            len(ast),
            len(meta.dependencies.queries),
        )
        return CompiledDoc(version=self.options.version, meta=meta, ast=ast)

    def _dependencies(self, ast: List[UiNode], guard: LegacyGuard) -> Dependencies:
        collector = DependencyCollector()
        self._collect(ast, collector, guard, frozenset())
        return collector.result()

    def _collect(
        self,
        nodes: Iterable[UiNode],
        collector: DependencyCollector,
        guard: LegacyGuard,
        local_names: frozenset[str],
    ) -> None:
        for node in nodes:
            if node.type == "markdown":
                collector.add_all(node.refs or [], local_names)
            elif node.type == "each":
                source = node.data["source"]
                guard.check_each_source(source, f"each#{node.id}.from")
                collector.add(source, local_names)
                self._collect(
                    node.children, collector, guard, local_names | loop_locals(node.data["as"])
                )
                continue
            elif node.type != "literal_code":
                collector.add_data(node.data, local_names)
            self._collect(node.children, collector, guard, local_names)


def compile_markdown_doc(text: str, options: Optional[CompileOptions] = None) -> CompiledDoc:
    """Compile `text` with a fresh Compiler."""
    return Compiler(options).compile(text)
