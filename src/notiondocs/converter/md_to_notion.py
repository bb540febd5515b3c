"""Compile the Markdown node tree into Notion block payloads.

:class:`MarkdownToNotionCompiler` walks the nodes produced by
:class:`~notiondocs.converter.parser.MarkdownParser` and calls the pure
builders in :mod:`notiondocs.converter.block_builder` for each one, using a
dispatch table keyed by node class.

Each top-level node is converted independently.  A failure inside one node
is recorded in ``errors`` and then handled by the
``handle_unsupported_blocks`` policy:

* ``"convert"`` -- a visibly marked fallback block takes its place;
* ``"error"`` -- the whole compilation is aborted;
* ``"ignore"`` -- the node is dropped.

A code block longer than Notion's 2000-character limit is different: it
raises :class:`~notiondocs.errors.LimitExceededError` out of
:meth:`MarkdownToNotionCompiler.compile` whatever the policy.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from notiondocs.config import NOTION_MAX_TEXT_LENGTH, ConversionOptions
from notiondocs.converter import block_builder as bb
from notiondocs.converter.parser import MarkdownParser, split_front_matter, spans_to_text
from notiondocs.errors import ConversionError, LimitExceededError, UnsupportedBlockError
from notiondocs.models import (
    CodeNode,
    ConversionMetadata,
    ConversionResult,
    ConversionStatistics,
    ConversionWarning,
    Divider,
    Heading,
    HtmlNode,
    Image,
    ListItem,
    ListNode,
    MarkupNode,
    Paragraph,
    Quote,
    Table,
    TableCell,
    TextSpan,
)
from notiondocs.observability import get_logger

log = get_logger("notiondocs.converter")

_NODE_TYPE_NAMES: dict[type, str] = {
    Heading: "heading",
    Paragraph: "paragraph",
    ListNode: "list",
    ListItem: "list_item",
    CodeNode: "code",
    Quote: "quote",
    Table: "table",
    TableCell: "table_cell",
    Image: "image",
    Divider: "divider",
    HtmlNode: "html",
}


def node_type_name(node: Any) -> str:
    return _NODE_TYPE_NAMES.get(type(node), type(node).__name__.lower())


class _CompileContext:
    """Mutable accumulator for one compile call."""

    __slots__ = ("errored", "errors", "options", "unsupported", "warnings")

    def __init__(self, options: ConversionOptions) -> None:
        self.options = options
        self.warnings: list[ConversionWarning] = []
        self.errors: list[str] = []
        self.unsupported: list[str] = []
        self.errored = 0

    def add_warning(self, code: str, message: str, **context: object) -> None:
        self.warnings.append(ConversionWarning(code=code, message=message, context=dict(context)))

    def mark_unsupported(self, type_name: str) -> None:
        if type_name not in self.unsupported:
            self.unsupported.append(type_name)


class MarkdownToNotionCompiler:
    """Convert Markdown (or an already parsed node tree) to Notion blocks.

    Parameters
    ----------
    options:
        Default conversion options.  Each call may pass its own.
    parser:
        Parser used by :meth:`convert`.  A fresh one is created if omitted.

    Examples
    --------
    >>> compiler = MarkdownToNotionCompiler()
    >>> result = compiler.convert("# Hello\\n\\nWorld")
    >>> [b["type"] for b in result.blocks]
    ['heading_1', 'paragraph']
    """

    def __init__(
        self,
        options: ConversionOptions | None = None,
        *,
        parser: MarkdownParser | None = None,
    ) -> None:
        self._options = options or ConversionOptions()
        self._parser = parser or MarkdownParser()

    def convert(self, markdown: str, options: ConversionOptions | None = None) -> ConversionResult:
        """Strip front matter, parse *markdown* and compile the body."""
        _, body = split_front_matter(markdown)
        return self.compile(self._parser.parse_to_ast(body), options)

    def compile(
        self,
        nodes: list[MarkupNode],
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        """Compile *nodes* into an ordered list of Notion block dicts.

        Raises
        ------
        LimitExceededError
            A code block exceeds the Notion text limit.
        UnsupportedBlockError
            An unsupported node was found and the policy is ``"error"``.
        ConversionError
            A node failed to convert and the policy is ``"error"``.
        """
        opts = options or self._options
        ctx = _CompileContext(opts)
        started = time.perf_counter()

        blocks = _compile_nodes(nodes, ctx)

        total = sum(_count_nodes(node) for node in nodes)
        converted = len(blocks)
        statistics = ConversionStatistics(
            total=total,
            converted=converted,
            skipped=max(total - converted - ctx.errored, 0),
            errored=ctx.errored,
            unsupported_types=tuple(ctx.unsupported),
        )
        elapsed_ms = (time.perf_counter() - started) * 1000

        log.debug(
            "markdown compiled",
            extra={"extra_fields": {
                "blocks": converted,
                "nodes": total,
                "warnings": len(ctx.warnings),
                "errors": len(ctx.errors),
            }},
        )

        return ConversionResult(
            content=blocks,
            warnings=tuple(ctx.warnings),
            errors=tuple(ctx.errors),
            metadata=ConversionMetadata(
                direction="markdown_to_notion",
                timestamp=datetime.now(timezone.utc),
                options_used=opts.as_dict(),
                processing_time_ms=elapsed_ms,
                node_count=total,
            ),
            statistics=statistics,
        )


# ---------------------------------------------------------------------------
# Node dispatch
# ---------------------------------------------------------------------------

def _compile_nodes(nodes: list[MarkupNode], ctx: _CompileContext) -> list[dict]:
    produced: list[dict] = []
    for node in nodes:
        produced.extend(_compile_guarded(node, ctx))
    return produced


def _compile_guarded(node: MarkupNode, ctx: _CompileContext) -> list[dict]:
    """Compile one node, applying the unsupported-block policy on failure."""
    type_name = node_type_name(node)
    try:
        return _compile_node(node, ctx)
    except (LimitExceededError, UnsupportedBlockError):
        raise
    except Exception as exc:
        message = f"Error converting node {type_name}: {exc}"
        ctx.errors.append(message)
        ctx.errored += 1
        log.warning(message, extra={"extra_fields": {"node_type": type_name}})

        policy = ctx.options.handle_unsupported_blocks
        if policy == "error":
            raise ConversionError(message=message, context={"node_type": type_name}, cause=exc) from exc
        if policy == "convert":
            return [bb.build_fallback(_node_text(node), type_name)]
        return []


def _compile_node(node: MarkupNode, ctx: _CompileContext) -> list[dict]:
    handler = _NODE_HANDLERS.get(type(node))
    if handler is None:
        return _unsupported(node, ctx)
    return handler(node, ctx)


def _unsupported(node: MarkupNode, ctx: _CompileContext) -> list[dict]:
    type_name = node_type_name(node)
    policy = ctx.options.handle_unsupported_blocks
    if policy == "error":
        raise UnsupportedBlockError(
            f"Unsupported markdown node: {type_name}",
            context={"node_type": type_name},
        )
    ctx.mark_unsupported(type_name)
    if policy == "ignore":
        return []
    ctx.add_warning(
        "UNSUPPORTED_NODE",
        f"Unsupported markdown node '{type_name}' converted to a fallback block.",
        node_type=type_name,
    )
    return [bb.build_fallback(_node_text(node), type_name)]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _compile_heading(node: Heading, ctx: _CompileContext) -> list[dict]:
    level = min(node.level, ctx.options.max_heading_level)
    return [bb.build_heading(node.children, level)]


def _compile_paragraph(node: Paragraph, ctx: _CompileContext) -> list[dict]:
    if not spans_to_text(node.children).strip():
        if ctx.options.preserve_formatting:
            return [bb.build_paragraph("")]
        return []
    lines = _split_hard_breaks(node.children)
    if len(lines) == 1:
        return [bb.build_paragraph(lines[0])]
    return [bb.build_paragraph(line) for line in lines if spans_to_text(line).strip()]


def _compile_list(node: ListNode, ctx: _CompileContext) -> list[dict]:
    list_type = "numbered" if node.ordered else "bulleted"
    return [_compile_list_item(item, list_type, ctx) for item in node.items]


def _compile_list_item(item: ListItem, list_type: str, ctx: _CompileContext) -> dict:
    content: list[TextSpan] = []
    rest = item.children
    if rest and isinstance(rest[0], Paragraph):
        content = rest[0].children
        rest = rest[1:]
    children = _compile_nodes(rest, ctx)
    return bb.build_list_item(content, list_type, item.checked, children)


def _compile_orphan_item(node: ListItem, ctx: _CompileContext) -> list[dict]:
    return [_compile_list_item(node, "bulleted", ctx)]


def _compile_code(node: CodeNode, ctx: _CompileContext) -> list[dict]:
    length = len(node.text)
    if length > NOTION_MAX_TEXT_LENGTH:
        language = node.language or "plain text"
        message = (
            f"Code block exceeds Notion's {NOTION_MAX_TEXT_LENGTH} character limit: "
            f"{length} characters found. Language: {language}"
        )
        ctx.errors.append(message)
        raise LimitExceededError(
            message,
            context={"length": length, "limit": NOTION_MAX_TEXT_LENGTH, "language": language},
        )
    return [bb.build_code(node.text, node.language)]


def _compile_quote(node: Quote, ctx: _CompileContext) -> list[dict]:
    content: list[TextSpan] = []
    nested: list[MarkupNode] = []
    for child in node.children:
        if isinstance(child, Paragraph) and not nested:
            if content:
                content.append(TextSpan(content="\n"))
            content.extend(child.children)
        else:
            nested.append(child)
    return [bb.build_quote(content, _compile_nodes(nested, ctx))]


def _compile_table(node: Table, ctx: _CompileContext) -> list[dict]:
    rows = [[cell.children for cell in row] for row in node.rows]
    return bb.build_table(rows)


def _compile_cell(node: TableCell, ctx: _CompileContext) -> list[dict]:
    return [bb.build_paragraph(node.children)]


def _compile_image(node: Image, ctx: _CompileContext) -> list[dict]:
    url = node.url.strip()
    if not url:
        ctx.add_warning("IMAGE_MISSING_URL", "Image without a URL was dropped.", alt=node.alt)
        return []

    handling = ctx.options.image_handling
    if handling == "ignore":
        return []

    base = ctx.options.image_base_url
    if base and not url.startswith("http"):
        url = f"{base.rstrip('/')}/{url.lstrip('/')}"

    if handling == "upload":
        ctx.add_warning(
            "IMAGE_UPLOAD_FALLBACK",
            "Image upload not implemented, using link",
            url=url,
        )
    if not bb.is_external_url(url):
        ctx.add_warning(
            "IMAGE_NOT_EXTERNAL",
            f"Image URL is not absolute and no image_base_url is set: {url}",
            url=url,
        )
    return [bb.build_image(url, node.alt)]


def _compile_divider(node: Divider, ctx: _CompileContext) -> list[dict]:
    return [bb.build_divider()]


_NodeHandler = Callable[[Any, _CompileContext], list[dict]]

_NODE_HANDLERS: dict[type, _NodeHandler] = {
    Heading: _compile_heading,
    Paragraph: _compile_paragraph,
    ListNode: _compile_list,
    ListItem: _compile_orphan_item,
    CodeNode: _compile_code,
    Quote: _compile_quote,
    Table: _compile_table,
    TableCell: _compile_cell,
    Image: _compile_image,
    Divider: _compile_divider,
    HtmlNode: _unsupported,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _split_hard_breaks(spans: list[TextSpan]) -> list[list[TextSpan]]:
    """Split spans into lines at embedded ``"\\n"`` characters.

    Leading and trailing whitespace is trimmed from each line.
    """
    lines: list[list[TextSpan]] = [[]]
    for span in spans:
        pieces = span.content.split("\n")
        for index, piece in enumerate(pieces):
            if index:
                lines.append([])
            if piece:
                lines[-1].append(TextSpan(
                    content=piece,
                    bold=span.bold,
                    italic=span.italic,
                    strikethrough=span.strikethrough,
                    code=span.code,
                    link=span.link,
                ))
    for line in lines:
        if line:
            line[0].content = line[0].content.lstrip()
            line[-1].content = line[-1].content.rstrip()
    return [[s for s in line if s.content] for line in lines]


def _count_nodes(node: MarkupNode) -> int:
    if isinstance(node, ListNode):
        return 1 + sum(_count_nodes(item) for item in node.items)
    if isinstance(node, (ListItem, Quote)):
        return 1 + sum(_count_nodes(child) for child in node.children)
    return 1


def _node_text(node: Any) -> str:
    if isinstance(node, (Heading, Paragraph, TableCell)):
        return spans_to_text(node.children)
    if isinstance(node, CodeNode):
        return node.text
    if isinstance(node, HtmlNode):
        return node.raw
    if isinstance(node, Image):
        return node.url
    if isinstance(node, ListNode):
        return " ".join(_node_text(item) for item in node.items)
    if isinstance(node, (ListItem, Quote)):
        return " ".join(_node_text(child) for child in node.children)
    if isinstance(node, Table):
        return " | ".join(spans_to_text(cell.children) for row in node.rows for cell in row)
    return ""
