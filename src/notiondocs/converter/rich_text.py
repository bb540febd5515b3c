"""Build Notion rich_text arrays from :class:`~notiondocs.models.TextSpan` runs.

A rich_text segment looks like::

    {
        "type": "text",
        "text": {"content": "hello", "link": {"url": "https://..."}},
        "annotations": {"bold": true, "italic": false, "strikethrough": false,
                        "underline": false, "code": false, "color": "default"},
        "href": "https://..."
    }

``annotations`` is only present when some flag differs from the default;
``text.link`` and ``href`` only when the span is a link.  Notion reads the
link from ``text.link`` on write and reports it as ``href`` on read, so both
are emitted.
"""

from __future__ import annotations

from notiondocs.config import NOTION_MAX_TEXT_LENGTH
from notiondocs.models import TextSpan
from notiondocs.utils.text_split import split_string


def default_annotations() -> dict:
    """Return a fresh default Notion annotations dict."""
    return {
        "bold": False,
        "italic": False,
        "strikethrough": False,
        "underline": False,
        "code": False,
        "color": "default",
    }


def make_text_segment(
    content: str,
    *,
    bold: bool = False,
    italic: bool = False,
    strikethrough: bool = False,
    code: bool = False,
    color: str = "default",
    href: str | None = None,
) -> dict:
    """Create a single Notion rich_text text segment."""
    text: dict = {"content": content}
    if href:
        text["link"] = {"url": href}
    seg: dict = {"type": "text", "text": text}

    annotations = default_annotations()
    annotations.update(
        bold=bold, italic=italic, strikethrough=strikethrough, code=code, color=color,
    )
    if annotations != default_annotations():
        seg["annotations"] = annotations
    if href:
        seg["href"] = href
    return seg


def build_rich_text(spans: list[TextSpan]) -> list[dict]:
    """Convert inline spans to a Notion rich_text array.

    Empty spans are dropped and oversized content is split at the
    2000-character limit.
    """
    segments = [
        make_text_segment(
            span.content,
            bold=span.bold,
            italic=span.italic,
            strikethrough=span.strikethrough,
            code=span.code,
            href=span.link.url if span.link and span.link.url else None,
        )
        for span in spans
        if span.content
    ]
    return split_rich_text(segments)


def text_to_rich_text(content: str, **formatting: object) -> list[dict]:
    """Wrap a plain string as a rich_text array (empty for empty input)."""
    if not content:
        return []
    return split_rich_text([make_text_segment(content, **formatting)])  # type: ignore[arg-type]


def split_rich_text(segments: list[dict], limit: int = NOTION_MAX_TEXT_LENGTH) -> list[dict]:
    """Split any segment whose content exceeds *limit* into several.

    Annotations and links are copied onto every piece.  Splitting is by
    code point, so no character is ever cut in half.
    """
    output: list[dict] = []

    for segment in segments:
        if segment.get("type", "text") != "text":
            output.append(segment)
            continue

        content = segment.get("text", {}).get("content", "")
        if len(content) <= limit:
            output.append(segment)
            continue

        for chunk in split_string(content, limit):
            output.append(_clone_text_segment(segment, chunk))

    return output


def plain_text(rich_text: list[dict]) -> str:
    """Concatenate the visible text of a rich_text array."""
    parts: list[str] = []
    for seg in rich_text:
        if "plain_text" in seg:
            parts.append(seg["plain_text"])
        elif seg.get("type") == "equation":
            parts.append(seg.get("equation", {}).get("expression", ""))
        else:
            parts.append(seg.get("text", {}).get("content", ""))
    return "".join(parts)


def _clone_text_segment(segment: dict, new_content: str) -> dict:
    text = dict(segment.get("text", {}))
    text["content"] = new_content
    new_seg: dict = {"type": "text", "text": text}
    if "annotations" in segment:
        new_seg["annotations"] = dict(segment["annotations"])
    if "href" in segment:
        new_seg["href"] = segment["href"]
    return new_seg
