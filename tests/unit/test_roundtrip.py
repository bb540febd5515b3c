"""Round-trip tests: Markdown -> blocks -> Markdown -> blocks.

The rendered Markdown is not byte-identical to the source (anchors and
padding are added), but compiling it again must yield the same blocks.
"""

from __future__ import annotations

import pytest

from notiondocs.config import ConversionOptions
from notiondocs.converter.md_to_notion import MarkdownToNotionCompiler
from notiondocs.converter.notion_to_md import NotionToMarkdownRenderer

OPTIONS = ConversionOptions(include_metadata=False)

DOCUMENTS = {
    "headings": "# Title\n\n## Section\n\n### Sub\n",
    "inline": "Some **bold**, *italic*, ~~struck~~ and `code` text.\n",
    "link": "Visit [the site](https://example.com/docs) today.\n",
    "escaped": "snake_case and a*b stay literal.\n",
    "lists": "- one\n- two\n  - nested\n\n1. first\n2. second\n",
    "tasks": "- [x] done\n- [ ] todo\n",
    "code": "```python\ndef f():\n    return 1\n```\n",
    "quote": "> a single quoted line\n",
    "table": "| Name | Qty |\n|---|---|\n| apple | 3 |\n",
    "image": "![diagram](https://example.com/d.png)\n",
    "divider": "above\n\n---\n\nbelow\n",
    "marker_text": "1\\. not a list\n\n\\# not a heading\n\n\\> not a quote\n",
    "loose_item": "- item\n\n  second paragraph\n",
}


@pytest.fixture
def pipeline():
    return MarkdownToNotionCompiler(OPTIONS), NotionToMarkdownRenderer(OPTIONS)


class TestRoundTrip:
    @pytest.mark.parametrize("name", sorted(DOCUMENTS))
    def test_blocks_stable_after_render(self, pipeline, name):
        compiler, renderer = pipeline
        first = compiler.convert(DOCUMENTS[name]).blocks
        rendered = renderer.render(first).markdown
        second = compiler.convert(rendered).blocks
        assert second == first, rendered

    def test_render_is_stable_after_one_pass(self, pipeline):
        compiler, renderer = pipeline
        source = "\n".join(DOCUMENTS.values())
        once = renderer.render(compiler.convert(source).blocks).markdown
        twice = renderer.render(compiler.convert(once).blocks).markdown
        assert once == twice

    def test_heading_anchor_not_duplicated(self, pipeline):
        compiler, renderer = pipeline
        once = renderer.render(compiler.convert("# Getting Started\n").blocks).markdown
        twice = renderer.render(compiler.convert(once).blocks).markdown
        assert twice == "# Getting Started {#getting-started}\n"
