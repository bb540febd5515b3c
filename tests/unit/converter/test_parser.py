"""Tests for MarkdownParser and front-matter handling."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from notiondocs.converter.parser import MarkdownParser, split_front_matter, spans_to_text
from notiondocs.errors import ParseError
from notiondocs.models import (
    CodeNode,
    Divider,
    Heading,
    HtmlNode,
    Image,
    Link,
    ListNode,
    Paragraph,
    Quote,
    Table,
)

LONG_BODY = "This paragraph has more than enough words to avoid the short content warning."


# =========================================================================
# Front matter
# =========================================================================

class TestSplitFrontMatter:
    def test_no_front_matter(self):
        source = "# Title\n\nBody\n"
        assert split_front_matter(source) == ({}, source)

    def test_front_matter_extracted(self):
        meta, body = split_front_matter("---\ntitle: Hello\ntags: [a, b]\n---\n# Heading\n")
        assert meta == {"title": "Hello", "tags": ["a", "b"]}
        assert body == "# Heading\n"

    def test_dot_terminator(self):
        meta, body = split_front_matter("---\ntitle: Hi\n...\nBody")
        assert meta == {"title": "Hi"}
        assert body == "Body"

    def test_unclosed_block_is_body(self):
        source = "---\ntitle: Hello\n# Heading\n"
        assert split_front_matter(source) == ({}, source)

    def test_invalid_yaml_is_body(self):
        source = "---\nkey: [unclosed\n---\nBody\n"
        assert split_front_matter(source) == ({}, source)

    def test_non_mapping_is_body(self):
        source = "---\n- a\n- b\n---\nBody\n"
        assert split_front_matter(source) == ({}, source)

    def test_empty_front_matter(self):
        meta, body = split_front_matter("---\n---\nBody\n")
        assert meta == {}
        assert body == "Body\n"


# =========================================================================
# Block parsing
# =========================================================================

class TestParseBlocks:
    def test_heading_and_paragraph(self, parser):
        nodes = parser.parse_to_ast("# Title\n\nSome text")
        assert isinstance(nodes[0], Heading)
        assert nodes[0].level == 1
        assert spans_to_text(nodes[0].children) == "Title"
        assert isinstance(nodes[1], Paragraph)
        assert spans_to_text(nodes[1].children) == "Some text"

    def test_heading_anchor_stripped(self, parser):
        nodes = parser.parse_to_ast("## Setup Guide {#setup-guide}")
        assert spans_to_text(nodes[0].children) == "Setup Guide"

    def test_deep_heading_level_kept(self, parser):
        nodes = parser.parse_to_ast("###### Tiny")
        assert nodes[0].level == 6

    def test_unordered_and_ordered_lists(self, parser):
        nodes = parser.parse_to_ast("- one\n- two\n\n1. first\n2. second\n")
        bullets, numbers = nodes
        assert isinstance(bullets, ListNode) and not bullets.ordered
        assert isinstance(numbers, ListNode) and numbers.ordered
        assert len(bullets.items) == 2
        assert spans_to_text(numbers.items[1].children[0].children) == "second"

    def test_task_list_items(self, parser):
        (node,) = parser.parse_to_ast("- [x] done\n- [ ] todo\n")
        assert [item.checked for item in node.items] == [True, False]
        assert spans_to_text(node.items[0].children[0].children) == "done"

    def test_plain_list_items_have_no_checked_state(self, parser):
        (node,) = parser.parse_to_ast("- plain\n")
        assert node.items[0].checked is None

    def test_nested_list(self, parser):
        (node,) = parser.parse_to_ast("- parent\n  - child\n")
        nested = node.items[0].children[1]
        assert isinstance(nested, ListNode)
        assert spans_to_text(nested.items[0].children[0].children) == "child"

    def test_fenced_code(self, parser):
        (node,) = parser.parse_to_ast("```python\nprint(1)\n```\n")
        assert node == CodeNode(text="print(1)", language="python")

    def test_code_without_language(self, parser):
        (node,) = parser.parse_to_ast("```\nraw\n```\n")
        assert node.language is None

    def test_quote(self, parser):
        (node,) = parser.parse_to_ast("> quoted text\n")
        assert isinstance(node, Quote)
        assert spans_to_text(node.children[0].children) == "quoted text"

    def test_table(self, parser):
        (node,) = parser.parse_to_ast("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert isinstance(node, Table)
        assert [[spans_to_text(c.children) for c in row] for row in node.rows] == [
            ["a", "b"],
            ["1", "2"],
        ]

    def test_divider(self, parser):
        nodes = parser.parse_to_ast("above\n\n***\n\nbelow\n")
        assert isinstance(nodes[1], Divider)

    def test_html_block(self, parser):
        (node,) = parser.parse_to_ast("<div>hi</div>\n")
        assert isinstance(node, HtmlNode)
        assert node.raw == "<div>hi</div>"

    def test_image_only_paragraph_becomes_image(self, parser):
        (node,) = parser.parse_to_ast("![alt text](https://example.com/a.png)\n")
        assert node == Image(url="https://example.com/a.png", alt="alt text", title=None)

    def test_empty_input(self, parser):
        assert parser.parse_to_ast("") == []

    def test_tokenizer_failure_raises_parse_error(self):
        parser = MarkdownParser()
        parser._md = MagicMock(side_effect=RuntimeError("tokenizer crashed"))
        with pytest.raises(ParseError) as exc_info:
            parser.parse_to_ast("# x")
        assert exc_info.value.context == {"input_length": 3}


# =========================================================================
# Inline parsing
# =========================================================================

class TestParseInline:
    def test_bold_and_italic(self, parser):
        (node,) = parser.parse_to_ast("**bold** and *it*")
        bold, plain, italic = node.children
        assert bold.content == "bold" and bold.bold
        assert plain.content == " and " and not plain.bold
        assert italic.content == "it" and italic.italic

    def test_nested_formatting_combines_flags(self, parser):
        (node,) = parser.parse_to_ast("***both***")
        (span,) = node.children
        assert span.bold and span.italic

    def test_strikethrough_and_code(self, parser):
        (node,) = parser.parse_to_ast("~~gone~~ `x = 1`")
        assert node.children[0].strikethrough
        assert node.children[-1].code
        assert node.children[-1].content == "x = 1"

    def test_link(self, parser):
        (node,) = parser.parse_to_ast("[site](https://x.com)")
        (span,) = node.children
        assert span.content == "site"
        assert span.link == Link(url="https://x.com")

    def test_soft_break_merges_to_space(self, parser):
        (node,) = parser.parse_to_ast("line one\nline two")
        assert spans_to_text(node.children) == "line one line two"


# =========================================================================
# Documents and metadata
# =========================================================================

class TestParseDocument:
    def test_front_matter_title_wins(self, parser):
        doc = parser.parse_document("---\ntitle: From Meta\n---\n# From Heading\n")
        assert doc.metadata.title == "From Meta"
        assert doc.metadata.front_matter == {"title": "From Meta"}

    def test_first_heading_is_fallback_title(self, parser):
        doc = parser.parse_document("## Intro\n\n# Later\n")
        assert doc.metadata.title == "Intro"

    def test_no_title(self, parser):
        assert parser.parse_document("just text").metadata.title is None

    def test_lists_normalised(self, parser):
        doc = parser.parse_document(
            "---\ntags: single\ncategory: guides\nauthor: Sam\ndate: 2024-01-05\n---\nBody\n"
        )
        assert doc.metadata.tags == ["single"]
        assert doc.metadata.categories == ["guides"]
        assert doc.metadata.author == "Sam"
        assert doc.metadata.date == "2024-01-05"

    def test_categories_key_preferred(self, parser):
        doc = parser.parse_document("---\ncategories: [a, b]\ncategory: c\n---\nBody\n")
        assert doc.metadata.categories == ["a", "b"]

    def test_headings_and_word_count(self, parser):
        doc = parser.parse_document("# Getting Started\n\nOne two three.\n")
        heading = doc.metadata.headings[0]
        assert (heading.level, heading.text, heading.anchor) == (1, "Getting Started", "getting-started")
        assert doc.metadata.word_count == 5

    def test_front_matter_not_in_nodes(self, parser):
        doc = parser.parse_document("---\ntitle: T\n---\nBody\n")
        assert len(doc.nodes) == 1
        assert spans_to_text(doc.nodes[0].children) == "Body"


# =========================================================================
# Validation
# =========================================================================

class TestValidate:
    def _messages(self, report):
        return [w.message for w in report.warnings]

    def test_clean_document(self, parser):
        report = parser.validate(f"# Title\n\n{LONG_BODY}\n\n## Section\n")
        assert report.is_valid
        assert report.warnings == []
        assert report.errors == []
        assert report.metadata.title == "Title"

    def test_multiple_h1(self, parser):
        report = parser.validate(f"# A\n\n{LONG_BODY}\n\n# B\n")
        assert (
            "Multiple H1 headings found. Consider using only one H1 per document."
            in self._messages(report)
        )
        assert report.is_valid

    def test_skipped_level(self, parser):
        report = parser.validate(f"# A\n\n{LONG_BODY}\n\n### C\n")
        assert "Heading level skipped: H1 followed by H3" in self._messages(report)

    def test_no_h1_and_short(self, parser):
        messages = self._messages(parser.validate("Just text"))
        assert "No H1 heading found" in messages
        assert "Document appears to be very short" in messages

    def test_empty_link(self, parser):
        report = parser.validate(f"# T\n\n{LONG_BODY} [broken]()\n")
        assert "Empty link URLs detected" in self._messages(report)

    def test_parse_failure_is_reported_not_raised(self):
        parser = MarkdownParser()
        parser._md = MagicMock(side_effect=RuntimeError("boom"))
        report = parser.validate("# x")
        assert not report.is_valid
        assert report.errors[0].startswith("Parse error:")
