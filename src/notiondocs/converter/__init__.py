"""Markdown ↔ Notion conversion.

Public API:

- :class:`MarkdownParser` — Markdown → typed node tree plus metadata.
- :class:`MarkdownToNotionCompiler` — node tree → Notion blocks.
- :class:`NotionToMarkdownRenderer` — Notion blocks → Markdown.
- :func:`build_rich_text` — inline spans → rich_text arrays.
- :func:`render_rich_text` — rich_text arrays → Markdown.
"""

from notiondocs.converter.inline_renderer import render_rich_text
from notiondocs.converter.md_to_notion import MarkdownToNotionCompiler
from notiondocs.converter.notion_to_md import NotionToMarkdownRenderer
from notiondocs.converter.parser import MarkdownParser, split_front_matter
from notiondocs.converter.rich_text import build_rich_text, split_rich_text

__all__ = [
    "MarkdownParser",
    "MarkdownToNotionCompiler",
    "NotionToMarkdownRenderer",
    "build_rich_text",
    "render_rich_text",
    "split_front_matter",
    "split_rich_text",
]
