"""Tests for the pure Notion block constructors."""

from __future__ import annotations

import pytest

from notiondocs.converter import block_builder as bb
from notiondocs.models import TextSpan


def _text(block: dict) -> str:
    payload = block[block["type"]]
    return "".join(seg["text"]["content"] for seg in payload["rich_text"])


class TestNormalizeLanguage:
    @pytest.mark.parametrize(
        ("info", "expected"),
        [
            ("python", "python"),
            ("py", "python"),
            ("Python3", "python"),
            ("js", "javascript"),
            ("cpp", "c++"),
            ("yml", "yaml"),
            ("python {linenos}", "python"),
            ("klingon", "plain text"),
            ("", "plain text"),
            (None, "plain text"),
        ],
    )
    def test_mapping(self, info, expected):
        assert bb.normalize_language(info) == expected


class TestHeadings:
    @pytest.mark.parametrize(("level", "expected"), [(1, "heading_1"), (3, "heading_3"), (5, "heading_3"), (0, "heading_1")])
    def test_level_clamped(self, level, expected):
        assert bb.build_heading("Title", level)["type"] == expected

    def test_shape(self):
        block = bb.build_heading([TextSpan("Hi", bold=True)], 2)
        assert block["object"] == "block"
        assert block["heading_2"]["is_toggleable"] is False
        assert block["heading_2"]["rich_text"][0]["annotations"]["bold"] is True


class TestTextBlocks:
    def test_paragraph(self):
        block = bb.build_paragraph("hello")
        assert block["type"] == "paragraph"
        assert _text(block) == "hello"
        assert set(block) == {"object", "type", "paragraph"}

    def test_empty_paragraph(self):
        assert bb.build_paragraph("")["paragraph"]["rich_text"] == []

    def test_quote_with_children(self):
        child = bb.build_paragraph("inner")
        block = bb.build_quote("outer", [child])
        assert block["quote"]["children"] == [child]

    def test_children_omitted_when_empty(self):
        assert "children" not in bb.build_quote("x", [])["quote"]
        assert "children" not in bb.build_toggle("x")["toggle"]

    def test_callout_icon(self):
        block = bb.build_callout("note")
        assert block["callout"]["icon"] == {"type": "emoji", "emoji": "\U0001f4a1"}


class TestListItems:
    def test_bulleted(self):
        assert bb.build_list_item("a", "bulleted")["type"] == "bulleted_list_item"

    def test_numbered(self):
        assert bb.build_list_item("a", "numbered")["type"] == "numbered_list_item"

    def test_checked_wins(self):
        block = bb.build_list_item("a", "numbered", checked=True)
        assert block["type"] == "to_do"
        assert block["to_do"]["checked"] is True

    def test_unchecked_to_do(self):
        assert bb.build_to_do("a")["to_do"]["checked"] is False


class TestCode:
    def test_code_block(self):
        block = bb.build_code("print(1)", "py")
        assert block["code"]["language"] == "python"
        assert _text(block) == "print(1)"
        assert block["code"]["caption"] == []

    def test_caption(self):
        block = bb.build_code("x", None, caption="example")
        assert block["code"]["caption"][0]["text"]["content"] == "example"


class TestTable:
    def test_rows_are_children(self):
        (table,) = bb.build_table([["a", "b"], ["1", "2"]])
        payload = table["table"]
        assert payload["table_width"] == 2
        assert payload["has_column_header"] is True
        assert [row["type"] for row in payload["children"]] == ["table_row", "table_row"]
        assert payload["children"][1]["table_row"]["cells"][0][0]["text"]["content"] == "1"

    def test_ragged_rows_normalised_to_header_width(self):
        (table,) = bb.build_table([["a", "b"], ["1"], ["x", "y", "z"]])
        rows = table["table"]["children"]
        assert [len(r["table_row"]["cells"]) for r in rows] == [2, 2, 2]
        assert rows[1]["table_row"]["cells"][1] == []

    def test_no_rows(self):
        assert bb.build_table([]) == []


class TestMedia:
    def test_external_image(self):
        block = bb.build_image("https://x.com/a.png", "alt")
        assert block["image"]["type"] == "external"
        assert block["image"]["external"] == {"url": "https://x.com/a.png"}
        assert block["image"]["caption"][0]["text"]["content"] == "alt"

    def test_relative_image_is_file(self):
        block = bb.build_image("img/a.png")
        assert block["image"]["type"] == "file"
        assert block["image"]["file"] == {"url": "img/a.png"}

    def test_bookmark_and_embed(self):
        assert bb.build_bookmark("https://x.com")["bookmark"]["url"] == "https://x.com"
        assert bb.build_embed("https://x.com")["embed"]["url"] == "https://x.com"


class TestFallback:
    def test_gray_marked_paragraph(self):
        block = bb.build_fallback("<div>x</div>", "html")
        (seg,) = block["paragraph"]["rich_text"]
        assert seg["text"]["content"] == "[Unsupported html]: <div>x</div>"
        assert seg["annotations"]["color"] == "gray"

    def test_divider(self):
        assert bb.build_divider() == {"object": "block", "type": "divider", "divider": {}}
