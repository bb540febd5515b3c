"""Parse Markdown into the typed node tree.

:class:`MarkdownParser` wraps mistune v3's AST renderer with the
``strikethrough``, ``table``, ``task_lists`` and ``url`` plugins, strips a
leading YAML front-matter block first, and turns mistune's token dicts into
the dataclasses in :mod:`notiondocs.models`.

Inline formatting is flattened: nested ``strong``/``emphasis``/``codespan``
tokens become :class:`~notiondocs.models.TextSpan` runs whose flags are the
OR of every enclosing wrapper.  Anything mistune does not classify degrades
to plain text; only a failure inside mistune itself raises
:class:`~notiondocs.errors.ParseError`.
"""

from __future__ import annotations

import re
from typing import Any

import mistune
import yaml

from notiondocs.errors import ParseError
from notiondocs.models import (
    CodeNode,
    Divider,
    DocumentMetadata,
    Heading,
    HeadingInfo,
    HtmlNode,
    Image,
    Link,
    ListItem,
    ListNode,
    MarkupNode,
    Paragraph,
    ParsedDocument,
    Quote,
    Table,
    TableCell,
    TextSpan,
    ValidationReport,
    ValidationWarning,
)
from notiondocs.observability import get_logger
from notiondocs.utils.slug import slugify

log = get_logger("notiondocs.parser")

_MARKUP_CHARS_RE = re.compile(r"[#*`_\[\]()]")
_EMPTY_LINK_RE = re.compile(r"\[([^\]]*)\]\(\s*\)")
_SHORT_CONTENT_THRESHOLD = 50
# Trailing ``{#anchor}`` attribute, as written by the Markdown renderer.
_HEADING_ANCHOR_RE = re.compile(r"\s*\{#[\w-]*\}\s*$")

_FLAG_FOR_WRAPPER: dict[str, str] = {
    "strong": "bold",
    "emphasis": "italic",
    "strikethrough": "strikethrough",
}


# ---------------------------------------------------------------------------
# Front matter
# ---------------------------------------------------------------------------

def split_front_matter(source: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from Markdown, returning metadata and body.

    The block must open on the first line with ``---`` and close with
    ``---`` or ``...``.  Malformed YAML, an unclosed block or a non-mapping
    document all count as "no front matter" and return *source* unchanged.
    """
    candidate = source.lstrip("\ufeff")
    lines = candidate.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, source

    front_matter_lines: list[str] = []
    closing_index: int | None = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() in {"---", "..."}:
            closing_index = idx
            break
        front_matter_lines.append(line)

    if closing_index is None:
        return {}, source

    try:
        metadata = yaml.safe_load("\n".join(front_matter_lines)) or {}
    except yaml.YAMLError:
        log.debug("front matter is not valid YAML; treating it as body text")
        return {}, source

    if not isinstance(metadata, dict):
        return {}, source

    body = "\n".join(lines[closing_index + 1 :])
    if source.endswith("\n"):
        body += "\n"
    return metadata, body


def _as_list(value: Any) -> list[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _as_optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class MarkdownParser:
    """Turn Markdown text into :mod:`notiondocs.models` nodes."""

    def __init__(self) -> None:
        self._md = mistune.create_markdown(
            renderer="ast",
            plugins=["strikethrough", "table", "task_lists", "url"],
        )

    # ── Public API ─────────────────────────────────────────────────────

    def parse_to_ast(self, text: str) -> list[MarkupNode]:
        """Parse a Markdown body (no front matter) into block nodes."""
        try:
            tokens = self._md(text)
        except Exception as exc:
            raise ParseError(
                f"Failed to parse markdown: {exc}",
                context={"input_length": len(text)},
                cause=exc,
            ) from exc
        if isinstance(tokens, str):
            return []
        return self._convert_blocks(tokens)

    def parse_document(self, text: str) -> ParsedDocument:
        """Split front matter, parse the body and extract metadata."""
        front_matter, body = split_front_matter(text)
        nodes = self.parse_to_ast(body)
        return ParsedDocument(nodes=nodes, metadata=self.extract_metadata(front_matter, body, nodes))

    def extract_metadata(
        self,
        front_matter: dict[str, Any],
        body: str,
        nodes: list[MarkupNode],
    ) -> DocumentMetadata:
        headings: list[HeadingInfo] = []
        for node in nodes:
            if isinstance(node, Heading):
                text = spans_to_text(node.children)
                headings.append(HeadingInfo(level=node.level, text=text, anchor=slugify(text)))
        words = _MARKUP_CHARS_RE.sub("", body).split()

        title = front_matter.get("title")
        if not title and headings:
            title = headings[0].text

        categories = front_matter.get("categories")
        if categories is None:
            categories = front_matter.get("category")

        return DocumentMetadata(
            title=_as_optional_str(title) or None,
            description=_as_optional_str(front_matter.get("description")),
            tags=_as_list(front_matter.get("tags")),
            categories=_as_list(categories),
            author=_as_optional_str(front_matter.get("author")),
            date=_as_optional_str(front_matter.get("date")),
            front_matter=front_matter,
            headings=headings,
            word_count=len(words),
        )

    def validate(self, text: str) -> ValidationReport:
        """Report structural issues.  Advisory only; never raises.

        Checks for multiple or missing H1 headings, skipped heading levels,
        very short content and empty link targets.  ``errors`` is populated
        only when the text cannot be parsed at all.
        """
        warnings: list[ValidationWarning] = []
        try:
            document = self.parse_document(text)
        except ParseError as exc:
            return ValidationReport(is_valid=False, errors=[f"Parse error: {exc.message}"])

        self._check_structure(document.nodes, warnings)

        if len(text.strip()) < _SHORT_CONTENT_THRESHOLD:
            warnings.append(ValidationWarning(
                kind="content",
                message="Document appears to be very short",
                suggestion="Consider adding more detailed content",
            ))
        if _EMPTY_LINK_RE.search(text):
            warnings.append(ValidationWarning(
                kind="content",
                message="Empty link URLs detected",
                suggestion="Give every link a target URL",
            ))

        return ValidationReport(is_valid=True, warnings=warnings, metadata=document.metadata)

    # ── Validation helpers ─────────────────────────────────────────────

    @staticmethod
    def _check_structure(nodes: list[MarkupNode], warnings: list[ValidationWarning]) -> None:
        has_h1 = False
        last_level = 0
        for node in nodes:
            if not isinstance(node, Heading):
                continue
            if node.level == 1:
                if has_h1:
                    warnings.append(ValidationWarning(
                        kind="structure",
                        message="Multiple H1 headings found. Consider using only one H1 per document.",
                        suggestion="Use H2-H6 for subsequent sections",
                    ))
                has_h1 = True
            if last_level and node.level > last_level + 1:
                warnings.append(ValidationWarning(
                    kind="structure",
                    message=f"Heading level skipped: H{last_level} followed by H{node.level}",
                    suggestion="Use sequential heading levels for better document structure",
                ))
            last_level = node.level

        if not has_h1:
            warnings.append(ValidationWarning(
                kind="structure",
                message="No H1 heading found",
                suggestion="Consider adding a main title with # at the beginning",
            ))

    # ── Block tokens ───────────────────────────────────────────────────

    def _convert_blocks(self, tokens: list[dict]) -> list[MarkupNode]:
        nodes: list[MarkupNode] = []
        for token in tokens:
            nodes.extend(self._convert_block(token))
        return nodes

    def _convert_block(self, token: dict) -> list[MarkupNode]:
        token_type = token.get("type", "")
        attrs = token.get("attrs") or {}

        if token_type == "heading":
            children = _strip_heading_anchor(self._inline(token))
            return [Heading(level=int(attrs.get("level", 1)), children=children)]

        if token_type in ("paragraph", "block_text"):
            return self._convert_paragraph(token)

        if token_type == "list":
            items = [
                self._convert_list_item(child)
                for child in token.get("children", [])
                if child.get("type") in ("list_item", "task_list_item")
            ]
            return [ListNode(ordered=bool(attrs.get("ordered")), items=items)]

        if token_type == "block_code":
            raw = token.get("raw", "")
            if raw.endswith("\n"):
                raw = raw[:-1]
            info = (attrs.get("info") or "").strip()
            language = info.split()[0] if info else None
            return [CodeNode(text=raw, language=language)]

        if token_type == "block_quote":
            return [Quote(children=self._convert_blocks(token.get("children", [])))]

        if token_type == "table":
            return [self._convert_table(token)]

        if token_type == "thematic_break":
            return [Divider()]

        if token_type == "block_html":
            return [HtmlNode(raw=token.get("raw", "").rstrip("\n"))]

        if token_type == "blank_line":
            return []

        text = token.get("raw") or spans_to_text(self._inline(token))
        if text:
            log.debug(
                "unrecognised block token kept as text",
                extra={"extra_fields": {"token_type": token_type}},
            )
            return [Paragraph(children=[TextSpan(content=text)])]
        return []

    def _convert_paragraph(self, token: dict) -> list[MarkupNode]:
        children = token.get("children", [])
        meaningful = [
            c for c in children
            if not (c.get("type") == "softbreak" or (c.get("type") == "text" and not c.get("raw", "").strip()))
        ]
        if meaningful and all(c.get("type") == "image" for c in meaningful):
            return [self._convert_image(c) for c in meaningful]
        return [Paragraph(children=self._inline(token))]

    def _convert_list_item(self, token: dict) -> ListItem:
        checked = None
        if token.get("type") == "task_list_item":
            checked = bool((token.get("attrs") or {}).get("checked"))
        return ListItem(children=self._convert_blocks(token.get("children", [])), checked=checked)

    def _convert_table(self, token: dict) -> Table:
        rows: list[list[TableCell]] = []
        for part in token.get("children", []):
            if part.get("type") == "table_head":
                rows.append(self._convert_row(part))
            elif part.get("type") == "table_body":
                for row in part.get("children", []):
                    rows.append(self._convert_row(row))
        return Table(rows=rows)

    def _convert_row(self, token: dict) -> list[TableCell]:
        return [
            TableCell(children=self._inline(cell), align=(cell.get("attrs") or {}).get("align"))
            for cell in token.get("children", [])
            if cell.get("type") == "table_cell"
        ]

    @staticmethod
    def _convert_image(token: dict) -> Image:
        attrs = token.get("attrs") or {}
        alt = _token_text(token.get("children", []))
        return Image(url=attrs.get("url", ""), alt=alt or None, title=attrs.get("title"))

    # ── Inline tokens ──────────────────────────────────────────────────

    def _inline(self, token: dict) -> list[TextSpan]:
        spans: list[TextSpan] = []
        _flatten_inline(token.get("children", []), {}, None, spans)
        return _merge_adjacent(spans)


def _flatten_inline(
    tokens: list[dict],
    flags: dict[str, bool],
    link: Link | None,
    out: list[TextSpan],
) -> None:
    for token in tokens:
        token_type = token.get("type", "")

        if token_type in _FLAG_FOR_WRAPPER:
            inner = dict(flags)
            inner[_FLAG_FOR_WRAPPER[token_type]] = True
            _flatten_inline(token.get("children", []), inner, link, out)
        elif token_type == "link":
            attrs = token.get("attrs") or {}
            _flatten_inline(
                token.get("children", []),
                flags,
                Link(url=attrs.get("url", ""), title=attrs.get("title")),
                out,
            )
        elif token_type == "codespan":
            out.append(TextSpan(content=token.get("raw", ""), code=True, link=link, **flags))
        elif token_type == "softbreak":
            out.append(TextSpan(content=" ", link=link, **flags))
        elif token_type == "linebreak":
            out.append(TextSpan(content="\n", link=link, **flags))
        elif token_type == "image":
            attrs = token.get("attrs") or {}
            url = attrs.get("url", "")
            alt = _token_text(token.get("children", []))
            out.append(TextSpan(content=alt or url, link=Link(url=url) if url else link, **flags))
        else:
            # text, inline_html and anything unrecognised degrade to text
            raw = token.get("raw")
            if raw is None:
                raw = _token_text(token.get("children", []))
            if raw:
                out.append(TextSpan(content=raw, link=link, **flags))


def _strip_heading_anchor(spans: list[TextSpan]) -> list[TextSpan]:
    if spans and not spans[-1].code:
        spans[-1].content = _HEADING_ANCHOR_RE.sub("", spans[-1].content)
        if not spans[-1].content:
            spans.pop()
    return spans


def _same_format(a: TextSpan, b: TextSpan) -> bool:
    return (
        a.bold == b.bold
        and a.italic == b.italic
        and a.strikethrough == b.strikethrough
        and a.code == b.code
        and a.link == b.link
    )


def _merge_adjacent(spans: list[TextSpan]) -> list[TextSpan]:
    merged: list[TextSpan] = []
    for span in spans:
        if merged and _same_format(merged[-1], span):
            merged[-1].content += span.content
        else:
            merged.append(span)
    return merged


def _token_text(tokens: list[dict]) -> str:
    parts: list[str] = []
    for token in tokens:
        if "raw" in token:
            parts.append(token["raw"])
        elif "children" in token:
            parts.append(_token_text(token["children"]))
    return "".join(parts)


def spans_to_text(spans: list[TextSpan]) -> str:
    """Concatenate the plain text of *spans*."""
    return "".join(span.content for span in spans)
