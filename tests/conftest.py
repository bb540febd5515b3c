"""Shared test fixtures for the notiondocs test suite."""

from __future__ import annotations

import pytest

from notiondocs.config import ConversionOptions, NotionDocsConfig
from notiondocs.converter.md_to_notion import MarkdownToNotionCompiler
from notiondocs.converter.notion_to_md import NotionToMarkdownRenderer
from notiondocs.converter.parser import MarkdownParser


@pytest.fixture
def config() -> NotionDocsConfig:
    """Default test configuration with a dummy token."""
    return NotionDocsConfig(token="test_token_1234")


@pytest.fixture
def parser() -> MarkdownParser:
    return MarkdownParser()


@pytest.fixture
def compiler(config: NotionDocsConfig) -> MarkdownToNotionCompiler:
    """Markdown-to-Notion compiler using the default conversion options."""
    return MarkdownToNotionCompiler(config.conversion)


@pytest.fixture
def renderer() -> NotionToMarkdownRenderer:
    """Notion-to-Markdown renderer without the metadata header."""
    return NotionToMarkdownRenderer(ConversionOptions(include_metadata=False))
