"""Tests for rendering compiled documents back to Markdown."""

from hypernote import compile_markdown_doc, decompile
from hypernote.compiler.decompiler import fence, sort_keys

FEED_SOURCE = """---
queries:
  feed:
    limit: 5
    kinds: [1]
hypernote:
  name: Demo
---

# Feed

```each.start
from: queries.feed
as: post
```

{{ post.content }}

```each.end
```
"""


def test_canonical_output():
    expected = (
        "---\n"
        "hypernote:\n"
        "  name: Demo\n"
        "queries:\n"
        "  feed:\n"
        "    kinds:\n"
        "    - 1\n"
        "    limit: 5\n"
        "---\n"
        "\n"
        "# Feed\n"
        "\n"
        "```each.start\n"
        "as: post\n"
        "from: queries.feed\n"
        "```\n"
        "\n"
        "{{ post.content }}\n"
        "\n"
        "```each.end\n"
        "```\n"
    )
    assert decompile(compile_markdown_doc(FEED_SOURCE)) == expected


def test_frontmatter_section_order_and_omissions():
    source = """---
zeta: 1
theme:
  b: 1
  a: 2
events:
  tick:
    every: 60
actions: {}
queries:
  feed:
    kinds: [1]
name: Demo
---
Hello
"""
    text = decompile(compile_markdown_doc(source))
    assert text == (
        "---\n"
        "hypernote:\n"
        "  name: Demo\n"
        "queries:\n"
        "  feed:\n"
        "    kinds:\n"
        "    - 1\n"
        "events:\n"
        "  tick:\n"
        "    every: 60\n"
        "theme:\n"
        "  a: 2\n"
        "  b: 1\n"
        "zeta: 1\n"
        "---\n"
        "\n"
        "Hello\n"
    )
    assert "dependencies" not in text
    assert "actions" not in text


def test_no_frontmatter_when_meta_is_empty():
    assert decompile(compile_markdown_doc("Just text\n")) == "Just text\n"
    assert decompile(compile_markdown_doc("")) == ""


def test_each_block_is_emitted():
    text = decompile(compile_markdown_doc("```each.start\nfrom: queries.feed\nas: item\n```\n\nx\n"))
    assert "```each.start\nas: item\nfrom: queries.feed\n```" in text
    assert text.rstrip().endswith("```each.end\n```")


def test_stack_layout_survives(layout_app):
    text = decompile(compile_markdown_doc(layout_app))
    assert "```hstack.start\nheight: 120px\nwidth: 80px\n```" in text
    assert "```vstack.start\n```" in text
    assert "```markdown-editor\nname: draft\n```" in text
    recompiled = compile_markdown_doc(text)
    assert recompiled.ast[1].data == {"width": "80px", "height": "120px"}


def test_literal_code_round_trips_unchanged():
    source = "```js\nconsole.log('hello');\n```\n"
    text = decompile(compile_markdown_doc(source))
    assert text == source
    node = compile_markdown_doc(text).ast[0]
    assert node.type == "literal_code"
    assert node.text == "console.log('hello');"


def test_fence_marker_outgrows_body_backticks():
    assert fence("md", "```js\nx\n```") == "````md\n```js\nx\n```\n````"
    assert fence("button") == "```button\n```"


def test_templates_in_payloads_are_not_quoted():
    source = "```button\ntext: \"{{ queries.profile.name || 'friend' }}\"\n```\n"
    text = decompile(compile_markdown_doc(source))
    assert "text: {{ queries.profile.name || 'friend' }}\n" in text
    assert compile_markdown_doc(text).ast[0].data == {
        "text": "{{ queries.profile.name || 'friend' }}"
    }


def test_decompile_accepts_plain_data(wallet_app):
    doc = compile_markdown_doc(wallet_app)
    assert decompile(doc.to_dict()) == decompile(doc)


def test_sort_keys_is_recursive():
    value = {"b": [{"z": 1, "y": 2}], "a": {"d": 1, "c": 2}}
    assert list(sort_keys(value)) == ["a", "b"]
    assert list(sort_keys(value)["a"]) == ["c", "d"]
    assert list(sort_keys(value)["b"][0]) == ["y", "z"]
