"""Inline rendering: Notion rich_text arrays to Markdown strings.

Annotations are applied from the inside out::

    code -> bold -> italic -> strikethrough -> link -> color

Bold uses ``**``/``__`` and italic ``*``/``_`` depending on
``ConversionOptions.emphasis_marker``.  Colour is only emitted, as a
``<span style="color: ...">`` wrapper, when ``preserve_colors`` is set.
"""

from __future__ import annotations

import re

from notiondocs.config import ConversionOptions

_ESCAPE_RE = re.compile(r"([\\`*_\[\]~])")

# Text at the start of a line that Markdown would read as a block marker:
# ATX heading, blockquote, bullet, ordered-list number, thematic break or
# setext underline.
_BLOCK_START_RE = re.compile(
    r"^([ \t]*)(#{1,6}(?=[ \t]|$)|>|[-+](?=[ \t]|$)|-{3,}[ \t]*$|=+[ \t]*$|\d{1,9}[.)](?=[ \t]|$))",
    re.MULTILINE,
)

COLOR_MAP: dict[str, str] = {
    "gray": "#9B9A97",
    "brown": "#64473A",
    "orange": "#D9730D",
    "yellow": "#DFAB01",
    "green": "#0F7B6C",
    "blue": "#0B6E99",
    "purple": "#6940A5",
    "pink": "#AD1A72",
    "red": "#E03E3E",
    "default": "inherit",
}


def markdown_escape(text: str, context: str = "inline") -> str:
    """Escape characters that would otherwise start inline formatting.

    Parameters
    ----------
    text:
        The raw text to escape.
    context:
        ``"inline"`` escapes emphasis, code and link characters, ``"code"``
        leaves *text* alone and ``"url"`` only percent-encodes parentheses.
    """
    if context == "code":
        return text
    if context == "url":
        return text.replace("(", "%28").replace(")", "%29")
    return _ESCAPE_RE.sub(r"\\\1", text)


def _escape_block_marker(match: re.Match[str]) -> str:
    lead, marker = match.group(1), match.group(2)
    if marker[0].isdigit():
        return f"{lead}{marker[:-1]}\\{marker[-1]}"
    return f"{lead}\\{marker}"


def escape_block_starts(text: str) -> str:
    """Backslash-escape line starts that would parse as a block marker.

    >>> escape_block_starts("1. not a list")
    '1\\\\. not a list'
    """
    return _BLOCK_START_RE.sub(_escape_block_marker, text)


def color_value(color: str) -> str:
    """Map a Notion colour name to a CSS colour."""
    return COLOR_MAP.get(color, COLOR_MAP["default"])


def _wrap(text: str, marker: str, closing: str | None = None) -> str:
    """Wrap *text* in *marker*, keeping surrounding whitespace outside."""
    stripped = text.strip()
    if not stripped:
        return text
    lead = text[: len(text) - len(text.lstrip())]
    trail = text[len(text.rstrip()):]
    return f"{lead}{marker}{stripped}{closing if closing is not None else marker}{trail}"


def segment_text(seg: dict) -> str:
    """Plain text of one segment, from ``plain_text`` or ``text.content``."""
    return seg.get("plain_text") or seg.get("text", {}).get("content", "")


def segment_href(seg: dict) -> str | None:
    link = (seg.get("text") or {}).get("link") or {}
    return seg.get("href") or link.get("url")


def render_segment(seg: dict, options: ConversionOptions) -> str:
    """Render a single rich_text segment."""
    if seg.get("type") == "equation":
        text = f"${seg.get('equation', {}).get('expression', '')}$"
    else:
        content = segment_text(seg)
        if not content:
            return ""
        annotations = seg.get("annotations") or {}
        if annotations.get("code"):
            text = _wrap(content, "`")
        else:
            text = markdown_escape(content)

        strong = "**" if options.emphasis_marker == "*" else "__"
        if annotations.get("bold"):
            text = _wrap(text, strong)
        if annotations.get("italic"):
            text = _wrap(text, options.emphasis_marker)
        if annotations.get("strikethrough"):
            text = _wrap(text, "~~")

    href = segment_href(seg)
    if href:
        text = f"[{text}]({markdown_escape(href, 'url')})"

    color = (seg.get("annotations") or {}).get("color", "default")
    if options.preserve_colors and color and color != "default":
        if color.endswith("_background"):
            style = f"background-color: {color_value(color[: -len('_background')])}"
        else:
            style = f"color: {color_value(color)}"
        text = f'<span style="{style}">{text}</span>'

    return text


def render_rich_text(segments: list[dict], options: ConversionOptions | None = None) -> str:
    """Render a Notion rich_text array to a Markdown string."""
    if not segments:
        return ""
    opts = options or ConversionOptions()
    return "".join(render_segment(seg, opts) for seg in segments)
