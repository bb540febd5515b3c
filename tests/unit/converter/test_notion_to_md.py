"""Tests for NotionToMarkdownRenderer."""

from __future__ import annotations

import pytest

from notiondocs.config import ConversionOptions
from notiondocs.converter.notion_to_md import (
    NotionToMarkdownRenderer,
    list_item_numbers,
    page_title,
)
from notiondocs.errors import UnsupportedBlockError


def _rt(content: str, **annotations) -> list[dict]:
    seg = {"type": "text", "text": {"content": content}, "plain_text": content}
    if annotations:
        seg["annotations"] = annotations
    return [seg]


def _block(block_type: str, text: str = "", block_id: str = "", children=None, **extra) -> dict:
    payload = {"rich_text": _rt(text) if text else [], **extra}
    block = {"object": "block", "id": block_id, "type": block_type, block_type: payload}
    if children is not None:
        block["children"] = children
    return block


def _opts(**overrides) -> ConversionOptions:
    return ConversionOptions(include_metadata=False, **overrides)


def _row(*cells: str, row_id: str = "") -> dict:
    return {
        "id": row_id,
        "type": "table_row",
        "table_row": {"cells": [_rt(c) if c else [] for c in cells]},
    }


class TestListItemNumbers:
    def test_restart_after_interruption(self):
        assert list_item_numbers([
            "numbered_list_item", "numbered_list_item", "bulleted_list_item", "numbered_list_item",
        ]) == [1, 2, None, 1]

    def test_all_other_types(self):
        assert list_item_numbers(["paragraph", "divider"]) == [None, None]

    def test_empty(self):
        assert list_item_numbers([]) == []


class TestTextBlocks:
    def test_paragraphs_separated_by_blank_line(self, renderer):
        md = renderer.render_markdown([_block("paragraph", "one"), _block("paragraph", "two")])
        assert md == "one\n\ntwo\n"

    @pytest.mark.parametrize(("block_type", "prefix"), [("heading_1", "#"), ("heading_2", "##"), ("heading_3", "###")])
    def test_heading_with_anchor(self, renderer, block_type, prefix):
        md = renderer.render_markdown([_block(block_type, "Getting Started")])
        assert md == f"{prefix} Getting Started {{#getting-started}}\n"

    def test_heading_without_slug(self, renderer):
        assert renderer.render_markdown([_block("heading_1", "!!!")]) == "# !!!\n"

    def test_quote(self, renderer):
        assert renderer.render_markdown([_block("quote", "wise words")]) == "> wise words\n"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("1. not a list", "1\\. not a list\n"), ("# plain", "\\# plain\n"), ("- dash", "\\- dash\n")],
    )
    def test_paragraph_marker_text_escaped(self, renderer, text, expected):
        assert renderer.render_markdown([_block("paragraph", text)]) == expected

    def test_quote_marker_text_escaped(self, renderer):
        assert renderer.render_markdown([_block("quote", "> nested?")]) == "> \\> nested?\n"

    def test_quote_with_nested_paragraph(self, renderer):
        block = _block("quote", "outer", children=[_block("paragraph", "inner")])
        assert renderer.render_markdown([block]) == "> outer\n>\n> inner\n"

    def test_divider(self, renderer):
        assert renderer.render_markdown([_block("divider")]) == "---\n"

    def test_equation(self, renderer):
        block = {"type": "equation", "equation": {"expression": "a^2"}}
        assert renderer.render_markdown([block]) == "$$\na^2\n$$\n"

    def test_empty_input(self, renderer):
        result = renderer.render([])
        assert result.markdown == ""
        assert result.statistics.total == 0


class TestLists:
    def test_numbering_restarts(self, renderer):
        blocks = [
            _block("numbered_list_item", "a"),
            _block("numbered_list_item", "b"),
            _block("bulleted_list_item", "c"),
            _block("numbered_list_item", "d"),
        ]
        assert renderer.render_markdown(blocks) == "1. a\n2. b\n\n- c\n\n1. d\n"

    def test_list_marker_option(self, renderer):
        md = renderer.render_markdown([_block("bulleted_list_item", "x")], _opts(list_marker="*"))
        assert md == "* x\n"

    def test_to_do(self, renderer):
        blocks = [
            _block("to_do", "done", checked=True),
            _block("to_do", "todo", checked=False),
            _block("bulleted_list_item", "plain"),
        ]
        assert renderer.render_markdown(blocks) == "- [x] done\n- [ ] todo\n- plain\n"

    def test_nested_children_indented(self, renderer):
        parent = _block("bulleted_list_item", "parent", children=[
            _block("bulleted_list_item", "child"),
        ])
        assert renderer.render_markdown([parent]) == "- parent\n  - child\n"

    def test_nested_numbered_indent_covers_marker(self, renderer):
        parent = _block("numbered_list_item", "parent", children=[
            _block("numbered_list_item", "child"),
        ])
        assert renderer.render_markdown([parent]) == "1. parent\n   1. child\n"

    def test_children_under_payload(self, renderer):
        block = _block("bulleted_list_item", "parent")
        block["bulleted_list_item"]["children"] = [_block("bulleted_list_item", "child")]
        assert renderer.render_markdown([block]) == "- parent\n  - child\n"

    def test_indent_size(self, renderer):
        parent = _block("bulleted_list_item", "p", children=[_block("bulleted_list_item", "c")])
        assert renderer.render_markdown([parent], _opts(indent_size=4)) == "- p\n    - c\n"

    def test_paragraph_child_separated_by_blank_line(self, renderer):
        parent = _block("bulleted_list_item", "item", children=[_block("paragraph", "second")])
        assert renderer.render_markdown([parent]) == "- item\n\n  second\n"

    def test_item_text_that_looks_like_a_marker(self, renderer):
        md = renderer.render_markdown([_block("bulleted_list_item", "# not a heading")])
        assert md == "- \\# not a heading\n"


class TestCode:
    def test_fenced_with_language(self, renderer):
        block = {"type": "code", "code": {"rich_text": _rt("print(1)"), "language": "python"}}
        assert renderer.render_markdown([block]) == "```python\nprint(1)\n```\n"

    def test_plain_text_language_dropped(self, renderer):
        block = {"type": "code", "code": {"rich_text": _rt("x"), "language": "plain text"}}
        assert renderer.render_markdown([block]) == "```\nx\n```\n"

    def test_code_not_escaped(self, renderer):
        block = {"type": "code", "code": {"rich_text": _rt("a_b*c"), "language": "python"}}
        assert "a_b*c" in renderer.render_markdown([block])

    def test_inner_fence_lengthens_outer(self, renderer):
        block = {"type": "code", "code": {"rich_text": _rt("```\ninner\n```"), "language": "markdown"}}
        assert renderer.render_markdown([block]).startswith("````markdown\n")

    def test_indented_style(self, renderer):
        block = {"type": "code", "code": {"rich_text": _rt("a\nb"), "language": "python"}}
        md = renderer.render_markdown([block], _opts(code_block_style="indented"))
        assert md == "    a\n    b\n"


class TestTables:
    def _table(self, *rows, width=2, table_id="t1"):
        return {
            "id": table_id,
            "type": "table",
            "table": {"table_width": width, "has_column_header": True},
            "children": list(rows),
        }

    def test_padded_table(self, renderer):
        table = self._table(_row("Name", "Qty"), _row("apple", "3"))
        assert renderer.render_markdown([table]) == (
            "| Name  | Qty |\n"
            "| ----- | --- |\n"
            "| apple | 3   |\n"
        )

    def test_unpadded_table(self, renderer):
        table = self._table(_row("Name", "Qty"), _row("apple", "3"))
        md = renderer.render_markdown([table], _opts(table_alignment=False))
        assert md == "| Name | Qty |\n| --- | --- |\n| apple | 3 |\n"

    def test_pipes_escaped(self, renderer):
        table = self._table(_row("a|b", "c"), _row("1", "2"))
        assert "a\\|b" in renderer.render_markdown([table], _opts(table_alignment=False))

    def test_short_rows_padded(self, renderer):
        table = self._table(_row("a", "b"), _row("1"))
        md = renderer.render_markdown([table], _opts(table_alignment=False))
        assert md.splitlines()[-1] == "| 1 |  |"

    def test_consumed_rows_not_rendered_twice(self, renderer):
        r1, r2 = _row("h1", "h2", row_id="r1"), _row("v1", "v2", row_id="r2")
        table = self._table(r1, r2)
        md = renderer.render_markdown([table, r1, r2], _opts(table_alignment=False))
        assert md.count("v1") == 1

    def test_rows_under_payload(self, renderer):
        table = {
            "type": "table",
            "table": {"table_width": 1, "children": [_row("h"), _row("v")]},
        }
        assert renderer.render_markdown([table], _opts(table_alignment=False)) == "| h |\n| --- |\n| v |\n"

    def test_table_without_rows(self, renderer):
        result = renderer.render([self._table()])
        assert result.markdown == ""
        assert result.statistics.skipped == 1


class TestToggleAndCallout:
    def test_toggle_as_details(self, renderer):
        block = _block("toggle", "More", children=[_block("paragraph", "hidden")])
        assert renderer.render_markdown([block]) == (
            "<details>\n<summary>More</summary>\n\nhidden\n\n</details>\n"
        )

    def test_toggle_flattened(self, renderer):
        block = _block("toggle", "More", children=[_block("paragraph", "hidden")])
        result = renderer.render([block], _opts(convert_toggles=False))
        assert result.markdown == "More\n\nhidden\n"
        assert [w.code for w in result.warnings] == ["TOGGLE_FLATTENED"]

    def test_callout_as_quote(self, renderer):
        block = _block("callout", "Note this", icon={"type": "emoji", "emoji": "\U0001f4a1"})
        assert renderer.render_markdown([block]) == "> \U0001f4a1 Note this\n"

    def test_callout_skipped(self, renderer):
        block = _block("callout", "Note")
        result = renderer.render([block], _opts(convert_callouts=False))
        assert result.markdown == ""
        assert [w.code for w in result.warnings] == ["CALLOUT_SKIPPED"]


class TestMediaAndLinks:
    def test_external_image(self, renderer):
        block = {"type": "image", "image": {"type": "external", "external": {"url": "https://x.com/a.png"}, "caption": _rt("cap")}}
        assert renderer.render_markdown([block]) == "![cap](https://x.com/a.png)\n"

    def test_file_image(self, renderer):
        block = {"type": "image", "image": {"type": "file", "file": {"url": "https://s3/a.png"}}}
        assert renderer.render_markdown([block]) == "![](https://s3/a.png)\n"

    def test_image_without_url(self, renderer):
        result = renderer.render([{"type": "image", "image": {}}])
        assert result.markdown == ""
        assert [w.code for w in result.warnings] == ["IMAGE_MISSING_URL"]

    def test_bookmark(self, renderer):
        block = {"type": "bookmark", "bookmark": {"url": "https://x.com"}}
        assert renderer.render_markdown([block]) == "https://x.com\n"

    def test_bookmark_with_caption(self, renderer):
        block = {"type": "bookmark", "bookmark": {"url": "https://x.com", "caption": _rt("X")}}
        assert renderer.render_markdown([block]) == "[X](https://x.com)\n"

    def test_child_page_link(self, renderer):
        block = {"id": "1234-abcd", "type": "child_page", "child_page": {"title": "Sub"}}
        assert renderer.render_markdown([block]) == "[Sub](https://www.notion.so/1234abcd)\n"

    def test_child_database_link(self, renderer):
        block = {"id": "ab-cd", "type": "child_database", "child_database": {"title": "Tasks"}}
        assert renderer.render_markdown([block]) == "[Database: Tasks](https://www.notion.so/abcd)\n"


class TestLayoutBlocks:
    def test_columns_render_children_in_place(self, renderer):
        column = {"type": "column", "column": {}, "children": [_block("paragraph", "in column")]}
        column_list = {"type": "column_list", "column_list": {}, "children": [column]}
        assert renderer.render_markdown([column_list]) == "in column\n"

    def test_table_of_contents_omitted(self, renderer):
        blocks = [{"type": "table_of_contents", "table_of_contents": {}}, _block("paragraph", "x")]
        result = renderer.render(blocks)
        assert result.markdown == "x\n"
        assert result.warnings == ()


class TestUnsupported:
    def test_convert_emits_comment(self, renderer):
        result = renderer.render([{"type": "ai_block", "ai_block": {}}])
        assert result.markdown == "<!-- Unsupported block type: ai_block -->\n"
        assert result.statistics.unsupported_types == ("ai_block",)
        assert [w.code for w in result.warnings] == ["UNSUPPORTED_BLOCK"]

    def test_ignore(self, renderer):
        result = renderer.render([{"type": "ai_block"}], _opts(handle_unsupported_blocks="ignore"))
        assert result.markdown == ""

    def test_error(self, renderer):
        with pytest.raises(UnsupportedBlockError) as exc_info:
            renderer.render([{"id": "b1", "type": "ai_block"}], _opts(handle_unsupported_blocks="error"))
        assert exc_info.value.context == {"block_id": "b1", "block_type": "ai_block"}

    def test_broken_block_isolated(self, renderer):
        broken = {"type": "paragraph", "paragraph": {"rich_text": [None]}}
        result = renderer.render([broken, _block("paragraph", "fine")])
        assert result.markdown == "<!-- Error converting paragraph block -->\n\nfine\n"
        assert result.statistics.errored == 1
        assert len(result.errors) == 1

    def test_broken_block_error_policy(self, renderer):
        broken = {"type": "paragraph", "paragraph": {"rich_text": [None]}}
        with pytest.raises(UnsupportedBlockError):
            renderer.render([broken], _opts(handle_unsupported_blocks="error"))


class TestOutputOptions:
    def test_crlf(self, renderer):
        md = renderer.render_markdown([_block("paragraph", "a"), _block("paragraph", "b")], _opts(line_breaks="crlf"))
        assert md == "a\r\n\r\nb\r\n"

    def test_metadata_header(self):
        page = {
            "id": "page-1",
            "properties": {"Name": {"type": "title", "title": _rt('Say "hi"')}},
        }
        md = NotionToMarkdownRenderer().render([_block("paragraph", "body")], page=page).markdown
        lines = md.splitlines()
        assert lines[0] == "---"
        assert lines[1] == 'title: "Say \\"hi\\""'
        assert lines[2] == "notion_id: page-1"
        assert lines[3].startswith("# Generated: ")
        assert lines[4] == "---"
        assert md.endswith("\n\nbody\n")

    def test_statistics(self, renderer):
        result = renderer.render([_block("paragraph", "a"), {"type": "breadcrumb"}])
        assert result.statistics.total == 2
        assert result.statistics.converted == 1
        assert result.statistics.skipped == 1
        assert result.metadata.direction == "notion_to_markdown"

    def test_page_title(self):
        assert page_title({"properties": {"T": {"type": "title", "title": _rt("Hello")}}}) == "Hello"
        assert page_title({}) == ""
