"""Notion block tree to Markdown renderer.

:class:`NotionToMarkdownRenderer` turns a list of block dicts, with their
children already attached (see
:meth:`notiondocs.orchestrator.AsyncNotionDocs.fetch_block_tree`), into
Markdown.

Numbered list items are numbered by position: the count restarts at 1
whenever the previous sibling was not a numbered item.  Tables render their
first row as the header.  Rows that belong to a rendered table are
remembered by id so a flat block list that also carries them at the top
level does not render them twice.

Usage::

    renderer = NotionToMarkdownRenderer()
    result = renderer.render(blocks)
    print(result.markdown)
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone

from notiondocs.config import ConversionOptions
from notiondocs.converter.inline_renderer import escape_block_starts, markdown_escape, render_rich_text
from notiondocs.converter.rich_text import plain_text
from notiondocs.errors import UnsupportedBlockError
from notiondocs.models import ConversionMetadata, ConversionResult, ConversionStatistics, ConversionWarning
from notiondocs.observability import get_logger
from notiondocs.utils.slug import slugify

log = get_logger("notiondocs.converter")

_LIST_TYPES: frozenset[str] = frozenset({"bulleted_list_item", "numbered_list_item", "to_do"})

# Layout wrappers whose children are rendered in place.
_PASSTHROUGH_TYPES: frozenset[str] = frozenset({"column_list", "column", "synced_block"})

# Rendered as nothing, silently.
_OMITTED_TYPES: frozenset[str] = frozenset({"breadcrumb", "table_of_contents"})


def list_item_numbers(block_types: list[str]) -> list[int | None]:
    """Position-based numbering for a run of sibling blocks.

    Each ``numbered_list_item`` gets 1 + the previous sibling's number when
    that sibling was also numbered, else 1.  Everything else gets ``None``.

    >>> list_item_numbers(["numbered_list_item", "numbered_list_item",
    ...                    "bulleted_list_item", "numbered_list_item"])
    [1, 2, None, 1]
    """
    numbers: list[int | None] = []
    previous = 0
    for block_type in block_types:
        if block_type == "numbered_list_item":
            previous += 1
            numbers.append(previous)
        else:
            previous = 0
            numbers.append(None)
    return numbers


def block_children(block: dict) -> list[dict]:
    """Children attached either under the payload or at the top level."""
    payload = block.get(block.get("type", ""), {})
    if isinstance(payload, dict) and payload.get("children"):
        return payload["children"]
    return block.get("children") or []


def _indent(text: str, prefix: str) -> str:
    return "\n".join(f"{prefix}{line}" if line.strip() else "" for line in text.split("\n"))


def _quote(text: str) -> str:
    return "\n".join(f"> {line}" if line.strip() else ">" for line in text.split("\n"))


class NotionToMarkdownRenderer:
    """Render Notion blocks to Markdown.

    Parameters
    ----------
    options:
        Default :class:`ConversionOptions`; each :meth:`render` call may
        pass its own.
    """

    def __init__(self, options: ConversionOptions | None = None) -> None:
        self._options = options or ConversionOptions()

    def render(
        self,
        blocks: list[dict],
        options: ConversionOptions | None = None,
        *,
        page: dict | None = None,
    ) -> ConversionResult:
        """Render *blocks* and return a :class:`ConversionResult`.

        Parameters
        ----------
        blocks:
            Top-level blocks with children attached.
        options:
            Per-call options.
        page:
            The page object, used for the metadata header when
            ``include_metadata`` is set.

        Raises
        ------
        UnsupportedBlockError
            An unknown block type was met, or a block failed to render, and
            the policy is ``"error"``.
        """
        opts = options or self._options
        started = time.perf_counter()
        render_pass = _RenderPass(opts)

        body = render_pass.render_list(blocks).strip("\n")
        parts: list[str] = []
        if opts.include_metadata:
            parts.append(_metadata_header(page))
        if body:
            parts.append(body)
        markdown = "\n\n".join(parts) + "\n" if parts else ""
        if opts.line_breaks == "crlf":
            markdown = markdown.replace("\n", "\r\n")

        elapsed_ms = (time.perf_counter() - started) * 1000
        statistics = ConversionStatistics(
            total=len(blocks),
            converted=render_pass.converted,
            skipped=render_pass.skipped,
            errored=render_pass.errored,
            unsupported_types=tuple(render_pass.unsupported),
        )
        log.debug(
            "blocks rendered",
            extra={"extra_fields": {
                "blocks": len(blocks),
                "warnings": len(render_pass.warnings),
                "errors": len(render_pass.errors),
            }},
        )
        return ConversionResult(
            content=markdown,
            warnings=tuple(render_pass.warnings),
            errors=tuple(render_pass.errors),
            metadata=ConversionMetadata(
                direction="notion_to_markdown",
                timestamp=datetime.now(timezone.utc),
                options_used=opts.as_dict(),
                processing_time_ms=elapsed_ms,
                node_count=len(blocks),
            ),
            statistics=statistics,
        )

    def render_markdown(self, blocks: list[dict], options: ConversionOptions | None = None) -> str:
        """Shortcut returning only the Markdown text."""
        return self.render(blocks, options).markdown


def _metadata_header(page: dict | None) -> str:
    lines = ["---"]
    if page:
        title = page_title(page)
        if title:
            escaped = title.replace('"', '\\"')
            lines.append(f'title: "{escaped}"')
        if page.get("id"):
            lines.append(f"notion_id: {page['id']}")
    lines.append(f"# Generated: {datetime.now(timezone.utc).isoformat()}")
    lines.append("---")
    return "\n".join(lines)


def page_title(page: dict) -> str:
    """Plain-text title of a page object, or ``""``."""
    for prop in (page.get("properties") or {}).values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            return plain_text(prop.get("title", []))
    return ""


class _RenderPass:
    """State for one :meth:`NotionToMarkdownRenderer.render` call."""

    def __init__(self, options: ConversionOptions) -> None:
        self.options = options
        self.warnings: list[ConversionWarning] = []
        self.errors: list[str] = []
        self.unsupported: list[str] = []
        self.consumed_ids: set[str] = set()
        self.converted = 0
        self.skipped = 0
        self.errored = 0

    def warn(self, code: str, message: str, **context: object) -> None:
        self.warnings.append(ConversionWarning(code=code, message=message, context=dict(context)))

    def rich(self, segments: list[dict]) -> str:
        return render_rich_text(segments, self.options)

    # ── Lists of blocks ────────────────────────────────────────────────

    def render_list(self, blocks: list[dict], *, top_level: bool = True) -> str:
        """Render sibling blocks, separating them with blank lines.

        Consecutive items of the same list kind are kept on adjacent lines.
        """
        for block in blocks:
            if block.get("type") == "table":
                self.consumed_ids.update(
                    row["id"] for row in block_children(block)
                    if row.get("type") == "table_row" and row.get("id")
                )
        visible = [
            b for b in blocks
            if not (b.get("type") == "table_row" and b.get("id") in self.consumed_ids)
        ]
        numbers = list_item_numbers([b.get("type", "") for b in visible])

        out: list[str] = []
        previous_type = ""
        for block, number in zip(visible, numbers):
            block_type = block.get("type", "")
            rendered = self._render_guarded(block, number)
            if top_level:
                if rendered:
                    self.converted += 1
                else:
                    self.skipped += 1
            if not rendered:
                continue
            if out:
                same_list = block_type in _LIST_TYPES and _same_list_kind(previous_type, block_type)
                out.append("\n" if same_list else "\n\n")
            out.append(rendered)
            previous_type = block_type
        return "".join(out)

    def _render_guarded(self, block: dict, number: int | None) -> str:
        block_type = block.get("type", "unknown")
        try:
            if block_type == "numbered_list_item":
                return self._render_list_item(block, f"{number or 1}.")
            return self._dispatch(block)
        except UnsupportedBlockError:
            raise
        except Exception as exc:
            message = f"Error converting block {block_type}: {exc}"
            self.errors.append(message)
            self.errored += 1
            log.warning(message, extra={"extra_fields": {"block_id": block.get("id", "")}})
            policy = self.options.handle_unsupported_blocks
            if policy == "error":
                raise UnsupportedBlockError(
                    f"Failed to convert {block_type}: {exc}",
                    context={"block_id": block.get("id", ""), "block_type": block_type},
                    cause=exc,
                ) from exc
            if policy == "convert":
                return f"<!-- Error converting {block_type} block -->"
            return ""

    def _dispatch(self, block: dict) -> str:
        block_type = block.get("type", "")
        if block_type in _OMITTED_TYPES:
            return ""
        if block_type in _PASSTHROUGH_TYPES:
            return self.render_list(block_children(block), top_level=False)
        renderer = _BLOCK_RENDERERS.get(block_type)
        if renderer is not None:
            return renderer(self, block)
        return self._render_unsupported(block)

    def _render_children(self, block: dict, prefix: str) -> str:
        children = block_children(block)
        if not children:
            return ""
        return _indent(self.render_list(children, top_level=False), prefix)

    # ── Text blocks ────────────────────────────────────────────────────

    def _render_paragraph(self, block: dict) -> str:
        text = escape_block_starts(self.rich(block.get("paragraph", {}).get("rich_text", [])))
        nested = self._render_children(block, " " * self.options.indent_size)
        return f"{text}\n\n{nested}" if nested else text

    def _render_heading(self, block: dict) -> str:
        block_type = block["type"]
        level = int(block_type[-1])
        rich_text = block.get(block_type, {}).get("rich_text", [])
        text = self.rich(rich_text)
        anchor = slugify(plain_text(rich_text))
        heading = f"{'#' * level} {text} {{#{anchor}}}" if anchor else f"{'#' * level} {text}"
        nested = self.render_list(block_children(block), top_level=False)
        return f"{heading}\n\n{nested}" if nested else heading

    def _render_quote(self, block: dict) -> str:
        text = escape_block_starts(self.rich(block.get("quote", {}).get("rich_text", [])))
        nested = self.render_list(block_children(block), top_level=False)
        body = f"{text}\n\n{nested}" if nested else text
        return _quote(body)

    def _render_callout(self, block: dict) -> str:
        if not self.options.convert_callouts:
            self.warn(
                "CALLOUT_SKIPPED",
                "Callout block skipped (convert_callouts disabled)",
                block_id=block.get("id", ""),
            )
            return ""
        data = block.get("callout", {})
        text = self.rich(data.get("rich_text", []))
        icon = (data.get("icon") or {}).get("emoji", "")
        first = f"{icon} {text}" if icon else text
        nested = self.render_list(block_children(block), top_level=False)
        return _quote(f"{first}\n\n{nested}" if nested else first)

    def _render_toggle(self, block: dict) -> str:
        text = self.rich(block.get("toggle", {}).get("rich_text", []))
        nested = self.render_list(block_children(block), top_level=False)
        if not self.options.convert_toggles:
            self.warn(
                "TOGGLE_FLATTENED",
                "Toggle block converted to paragraph (convert_toggles disabled)",
                block_id=block.get("id", ""),
            )
            return f"{text}\n\n{nested}" if nested else text
        inner = f"\n{nested}\n" if nested else ""
        return f"<details>\n<summary>{text}</summary>\n{inner}\n</details>"

    # ── Lists ──────────────────────────────────────────────────────────

    def _render_list_item(self, block: dict, marker: str, prefix: str = "") -> str:
        block_type = block["type"]
        text = escape_block_starts(self.rich(block.get(block_type, {}).get("rich_text", [])))
        line = f"{marker} {prefix}{text}"
        width = max(self.options.indent_size, len(marker) + 1)
        nested = self._render_children(block, " " * width)
        if not nested:
            return line
        # Only a nested list may follow the item text directly; anything
        # else would be read as a lazy continuation of that text.
        first = block_children(block)[0].get("type", "")
        separator = "\n" if first in _LIST_TYPES else "\n\n"
        return f"{line}{separator}{nested}"

    def _render_bulleted(self, block: dict) -> str:
        return self._render_list_item(block, self.options.list_marker)

    def _render_to_do(self, block: dict) -> str:
        checked = block.get("to_do", {}).get("checked", False)
        return self._render_list_item(block, self.options.list_marker, "[x] " if checked else "[ ] ")

    # ── Code and structure ─────────────────────────────────────────────

    def _render_code(self, block: dict) -> str:
        data = block.get("code", {})
        code = plain_text(data.get("rich_text", []))
        if self.options.code_block_style == "indented":
            return "\n".join(f"    {line}" for line in code.split("\n"))
        language = data.get("language", "")
        if language == "plain text":
            language = ""
        fence = "````" if "```" in code else "```"
        return f"{fence}{language}\n{code}\n{fence}"

    def _render_divider(self, block: dict) -> str:
        return "---"

    def _render_equation(self, block: dict) -> str:
        return f"$$\n{block.get('equation', {}).get('expression', '')}\n$$"

    def _render_table(self, block: dict) -> str:
        data = block.get("table", {})
        rows = [c for c in block_children(block) if c.get("type") == "table_row"]
        if not rows:
            return ""

        width = data.get("table_width") or max(len(r.get("table_row", {}).get("cells", [])) for r in rows)
        grid: list[list[str]] = []
        for row in rows:
            cells = [self.rich(cell).replace("|", "\\|") for cell in row.get("table_row", {}).get("cells", [])]
            cells = cells[:width] + [""] * (width - len(cells))
            grid.append(cells)

        if self.options.table_alignment:
            widths = [max(3, *(len(r[i]) for r in grid)) for i in range(width)]
        else:
            widths = [0] * width

        def line(cells: list[str]) -> str:
            return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

        lines = [line(grid[0]), "| " + " | ".join("-" * max(3, w) for w in widths) + " |"]
        lines.extend(line(r) for r in grid[1:])
        return "\n".join(lines)

    def _render_table_row(self, block: dict) -> str:
        cells = block.get("table_row", {}).get("cells", [])
        return "| " + " | ".join(self.rich(c) for c in cells) + " |"

    # ── Media and links ────────────────────────────────────────────────

    def _render_image(self, block: dict) -> str:
        data = block.get("image", {})
        url = (data.get("external") or {}).get("url") or (data.get("file") or {}).get("url") or ""
        if not url:
            self.warn("IMAGE_MISSING_URL", "Image block missing URL", block_id=block.get("id", ""))
            return ""
        caption = self.rich(data.get("caption", []))
        return f"![{caption}]({markdown_escape(url, 'url')})"

    def _render_link_block(self, block: dict) -> str:
        data = block.get(block["type"], {})
        url = data.get("url", "")
        caption = self.rich(data.get("caption", []))
        return f"[{caption}]({markdown_escape(url, 'url')})" if caption else url

    def _render_child_page(self, block: dict) -> str:
        title = block.get("child_page", {}).get("title") or "Untitled"
        return f"[{markdown_escape(title)}]({_notion_url(block.get('id', ''))})"

    def _render_child_database(self, block: dict) -> str:
        title = block.get("child_database", {}).get("title") or "Untitled"
        return f"[Database: {markdown_escape(title)}]({_notion_url(block.get('id', ''))})"

    # ── Unsupported ────────────────────────────────────────────────────

    def _render_unsupported(self, block: dict) -> str:
        block_type = block.get("type", "unknown")
        if block_type not in self.unsupported:
            self.unsupported.append(block_type)
        policy = self.options.handle_unsupported_blocks
        if policy == "error":
            raise UnsupportedBlockError(
                f"Unsupported block type: {block_type}",
                context={"block_id": block.get("id", ""), "block_type": block_type},
            )
        self.warn("UNSUPPORTED_BLOCK", f"Unsupported block type: {block_type}", block_type=block_type)
        if policy == "ignore":
            return ""
        return f"<!-- Unsupported block type: {block_type} -->"


def _same_list_kind(previous: str, current: str) -> bool:
    bullets = {"bulleted_list_item", "to_do"}
    if previous in bullets and current in bullets:
        return True
    return previous == current == "numbered_list_item"


def _notion_url(block_id: str) -> str:
    return f"https://www.notion.so/{block_id.replace('-', '')}"


_BlockRenderer = Callable[[_RenderPass, dict], str]

_BLOCK_RENDERERS: dict[str, _BlockRenderer] = {
    "paragraph": _RenderPass._render_paragraph,
    "heading_1": _RenderPass._render_heading,
    "heading_2": _RenderPass._render_heading,
    "heading_3": _RenderPass._render_heading,
    "quote": _RenderPass._render_quote,
    "callout": _RenderPass._render_callout,
    "toggle": _RenderPass._render_toggle,
    "bulleted_list_item": _RenderPass._render_bulleted,
    # numbered_list_item is numbered in render_list
    "to_do": _RenderPass._render_to_do,
    "code": _RenderPass._render_code,
    "divider": _RenderPass._render_divider,
    "equation": _RenderPass._render_equation,
    "table": _RenderPass._render_table,
    "table_row": _RenderPass._render_table_row,
    "image": _RenderPass._render_image,
    "embed": _RenderPass._render_link_block,
    "bookmark": _RenderPass._render_link_block,
    "link_preview": _RenderPass._render_link_block,
    "child_page": _RenderPass._render_child_page,
    "child_database": _RenderPass._render_child_database,
}
