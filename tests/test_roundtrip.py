"""Round-trip law: compile(decompile(compile(d))) == compile(d), ids aside."""

import pytest

from hypernote import compile_markdown_doc, decompile


def without_ids(nodes):
    stripped = []
    for node in nodes:
        node = {key: value for key, value in node.items() if key != "id"}
        node["children"] = without_ids(node.get("children", []))
        stripped.append(node)
    return stripped


def comparable(doc):
    data = doc.to_dict()
    data["ast"] = without_ids(data["ast"])
    return data


def test_round_trip(sample_app):
    compiled = compile_markdown_doc(sample_app)
    recompiled = compile_markdown_doc(decompile(compiled))
    assert comparable(recompiled) == comparable(compiled)


def test_decompile_is_a_fixed_point(sample_app):
    """Decompiled text is already canonical."""
    text = decompile(compile_markdown_doc(sample_app))
    assert decompile(compile_markdown_doc(text)) == text


def test_round_trip_keeps_ids_sequential(feed_app):
    compiled = compile_markdown_doc(feed_app)
    recompiled = compile_markdown_doc(decompile(compiled))
    assert compiled.to_dict() == recompiled.to_dict()


def test_round_trip_of_tricky_text():
    source = (
        "Price: 5 * 3 and snake_case, a [bracket] and <not html\n"
        "\n"
        "    indented code\n"
        "\n"
        "1. first\n"
        "2. `code {{ user.name }}`\n"
    )
    compiled = compile_markdown_doc(source)
    assert comparable(compile_markdown_doc(decompile(compiled))) == comparable(compiled)


@pytest.mark.parametrize(
    "source",
    [
        "```js\nconsole.log(1);\n\n```\n",
        "```js\n\n```\n",
        "```\n```\n",
    ],
)
def test_round_trip_keeps_trailing_blank_lines_in_code(source):
    """Blank lines at the end of a code block survive decompiling."""
    compiled = compile_markdown_doc(source)
    assert compiled.ast[0].type == "literal_code"
    assert comparable(compile_markdown_doc(decompile(compiled))) == comparable(compiled)


def test_round_trip_of_empty_mapping_payload():
    """A `{}` body is not the same as an empty body."""
    compiled = compile_markdown_doc("```button\n{}\n```\n")
    assert compiled.ast[0].data == {}
    assert "```button\n{}\n```" in decompile(compiled)
    assert comparable(compile_markdown_doc(decompile(compiled))) == comparable(compiled)
