"""Tests for the compiler: directive tokenizing and the container stack."""

import pytest

from hypernote import (
    Compiler,
    CompileOptions,
    UnsupportedContentError,
    compile_markdown_doc,
    decompile,
)
from hypernote.compiler.tokenizer import directive_tag, is_directive


def node_types(nodes):
    return [node.type for node in nodes]


def test_plain_markdown_becomes_one_node():
    doc = compile_markdown_doc("# Title\n\nSome *text* here.\n")
    assert node_types(doc.ast) == ["markdown"]
    node = doc.ast[0]
    assert node.text == "# Title\n\nSome *text* here."
    assert [token["type"] for token in node.markdown] == ["heading", "paragraph"]
    assert node.refs == []


def test_directives_split_markdown_groups():
    source = "Before\n```button\ntext: Go\n```\nAfter\n"
    doc = compile_markdown_doc(source)
    assert node_types(doc.ast) == ["markdown", "button", "markdown"]
    assert doc.ast[1].data == {"text": "Go"}
    assert doc.ast[2].text == "After"


def test_ids_are_sequential_and_reset_per_call():
    """The implicit root vstack takes the first id."""
    source = "One\n\n```input\nname: q\n```\n"
    first = compile_markdown_doc(source)
    second = compile_markdown_doc(source)
    assert [node.id for node in first.ast] == ["2", "3"]
    assert first.to_dict() == second.to_dict()


def test_directive_tags_are_case_and_space_insensitive():
    assert directive_tag("HStack Start") == "hstack.start"
    assert directive_tag("  each   end ") == "each.end"
    assert is_directive("Markdown-Editor")
    assert not is_directive("python")


def test_leaf_directive_spellings():
    source = (
        "```markdown_editor\nname: a\n```\n\n"
        "```markdown-viewer\ncontent: x\n```\n\n"
        "```Markdown.Viewer\ncontent: y\n```\n\n"
        "```note\nid: abc\n```\n"
    )
    doc = compile_markdown_doc(source)
    assert node_types(doc.ast) == ["markdown_editor", "markdown_viewer", "markdown_viewer", "note"]


def test_stack_layout_is_normalized_to_pixels():
    source = "```hstack.start\nwidth: 80px\nheight: 120\ngap: 4\n```\nInside\n```hstack.end\n```\n"
    doc = compile_markdown_doc(source)
    stack = doc.ast[0]
    assert stack.type == "hstack"
    assert stack.data == {"width": "80px", "height": "120px"}
    assert node_types(stack.children) == ["markdown"]


def test_nested_containers():
    source = """```hstack.start
```

Left

```vstack start
```

Inner

```vstack end
```

```hstack.end
```

Tail
"""
    doc = compile_markdown_doc(source)
    assert node_types(doc.ast) == ["hstack", "markdown"]
    hstack = doc.ast[0]
    assert hstack.data is None
    assert node_types(hstack.children) == ["markdown", "vstack"]
    assert hstack.children[1].children[0].text == "Inner"
    assert doc.ast[1].text == "Tail"


def test_each_block_data():
    source = "```each.start\nfrom: queries.feed\nas: item\n```\n\n{{ item.content }}\n\n```each.end\n```\n"
    doc = compile_markdown_doc(source)
    each = doc.ast[0]
    assert each.type == "each"
    assert each.data == {"source": "queries.feed", "as": "item"}
    assert each.children[0].refs == ["item.content"]


def test_each_defaults_and_sigil_stripping():
    doc = compile_markdown_doc("```each\nas: $post\n```\n\nBody\n")
    assert doc.ast[0].data == {"source": "queries.items", "as": "post"}

    options = CompileOptions(default_each_source="queries.notes", default_each_as="note")
    doc = Compiler(options).compile("```each\n```\n")
    assert doc.ast[0].data == {"source": "queries.notes", "as": "note"}


def test_each_accepts_source_key():
    doc = compile_markdown_doc("```each\nsource: queries.feed\n```\n")
    assert doc.ast[0].data["source"] == "queries.feed"


def test_unterminated_containers_are_flushed():
    """Content typed into an open container is kept, innermost first."""
    source = "```vstack.start\n```\n\nOuter\n\n```each.start\nfrom: queries.feed\n```\n\nInner\n"
    doc = compile_markdown_doc(source)
    vstack = doc.ast[0]
    assert node_types(vstack.children) == ["markdown", "each"]
    assert vstack.children[1].children[0].text == "Inner"


def test_stray_closing_directive_is_dropped():
    doc = compile_markdown_doc("```hstack.end\n```\n\nText\n")
    assert node_types(doc.ast) == ["markdown"]


def test_stray_closing_directive_keeps_surrounding_text_together():
    """Text on both sides of a dropped closer stays one markdown node."""
    doc = compile_markdown_doc("Para one\n\n```hstack.end\n```\n\nPara two\n")
    assert node_types(doc.ast) == ["markdown"]
    assert doc.ast[0].text == "Para one\n\nPara two"
    again = compile_markdown_doc(decompile(doc))
    assert again.ast[0].text == doc.ast[0].text
    assert node_types(again.ast) == ["markdown"]


def test_unknown_fence_becomes_literal_code():
    doc = compile_markdown_doc("```js\nconsole.log('hello');\n```\n")
    node = doc.ast[0]
    assert node.type == "literal_code"
    assert node.data == {"lang": "js"}
    assert node.text == "console.log('hello');"


def test_untagged_fence_and_templates_in_code():
    doc = compile_markdown_doc("```\nHello {{ user.name }}\n```\n")
    node = doc.ast[0]
    assert node.type == "literal_code"
    assert node.data == {"lang": ""}
    assert node.text == "Hello {{ user.name }}"
    assert doc.meta.dependencies.globals == []


def test_fence_glued_to_paragraph_is_still_a_directive():
    doc = compile_markdown_doc("Label\n```button\ntext: Go\n```")
    assert node_types(doc.ast) == ["markdown", "button"]


def test_payload_templates_are_restored():
    source = "```button\ntext: Hi {{ queries.profile.name || 'friend' }}\naction: '@hi'\n```\n"
    doc = compile_markdown_doc(source)
    assert doc.ast[0].data == {
        "text": "Hi {{ queries.profile.name || 'friend' }}",
        "action": "@hi",
    }


def test_malformed_payload_is_not_fatal():
    doc = compile_markdown_doc("```button\ntext: Save: now\n```\n")
    assert doc.ast[0].data == {"text": "Save: now"}


def test_html_block_is_rejected():
    with pytest.raises(UnsupportedContentError, match="HTML is not supported"):
        compile_markdown_doc("---\nname: Bad\n---\n<div>html</div>")


def test_inline_html_inside_container_is_rejected():
    with pytest.raises(UnsupportedContentError, match="HTML is not supported"):
        compile_markdown_doc("```hstack.start\n```\n\nHello <b>there</b>\n")


def test_underscores_inside_templates_do_not_become_emphasis():
    doc = compile_markdown_doc("{{ $feed.1.display_name }} - {{ $feed.0.created_at }}")
    paragraph = doc.ast[0].markdown[0]
    assert paragraph["children"] == [
        {"type": "text", "raw": "{{ $feed.1.display_name }} - {{ $feed.0.created_at }}"}
    ]
    assert doc.ast[0].text == "{{ $feed.1.display_name }} - {{ $feed.0.created_at }}"


def test_image_with_template_url():
    doc = compile_markdown_doc("![avatar]({{ queries.profile.picture || '/img/a_b.png' }})")
    image = doc.ast[0].markdown[0]["children"][0]
    assert image["type"] == "image"
    assert image["attrs"]["url"] == "{{ queries.profile.picture || '/img/a_b.png' }}"
    assert image["children"] == [{"type": "text", "raw": "avatar"}]
    assert doc.meta.dependencies.queries == ["profile"]


def test_output_is_plain_data(wallet_app):
    data = compile_markdown_doc(wallet_app).to_dict()
    assert data["version"] == "1.2.0"
    assert data["meta"]["hypernote"] == {"name": "Wallet", "icon": "wallet.png"}
    assert [node["type"] for node in data["ast"]] == ["markdown", "input", "button"]
    assert "children" not in data["ast"][1] or data["ast"][1]["children"] == []
