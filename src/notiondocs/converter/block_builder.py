"""Pure constructors for Notion block dicts.

Each ``build_*`` function returns a complete block payload of the form
``{"object": "block", "type": t, t: {...}}`` with exactly one payload key.
Content may be given as a plain string or as a list of
:class:`~notiondocs.models.TextSpan` runs.

Nothing here looks at :class:`~notiondocs.config.ConversionOptions`; the
compiler decides *which* builder to call, the builders only decide *how*
the payload is shaped.
"""

from __future__ import annotations

import re
from typing import Union

from notiondocs.config import NOTION_MAX_HEADING_LEVEL
from notiondocs.converter.rich_text import build_rich_text, text_to_rich_text
from notiondocs.models import TextSpan

Content = Union[str, list[TextSpan]]

# ---------------------------------------------------------------------------
# Notion code language mapping
# ---------------------------------------------------------------------------

_NOTION_LANGUAGES: frozenset[str] = frozenset({
    "abap", "arduino", "bash", "basic", "c", "clojure", "coffeescript",
    "c++", "c#", "css", "dart", "diff", "docker", "elixir", "elm",
    "erlang", "flow", "fortran", "f#", "gherkin", "glsl", "go", "graphql",
    "groovy", "haskell", "html", "java", "javascript", "json", "julia",
    "kotlin", "latex", "less", "lisp", "livescript", "lua", "makefile",
    "markdown", "markup", "matlab", "mermaid", "nix", "objective-c",
    "ocaml", "pascal", "perl", "php", "plain text", "powershell",
    "prolog", "protobuf", "python", "r", "reason", "ruby", "rust",
    "sass", "scala", "scheme", "scss", "shell", "sql", "swift",
    "typescript", "vb.net", "verilog", "vhdl", "visual basic",
    "webassembly", "xml", "yaml", "java/c/c++/c#",
})

_LANGUAGE_ALIASES: dict[str, str] = {
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "sh": "shell",
    "zsh": "shell",
    "console": "shell",
    "rb": "ruby",
    "rs": "rust",
    "yml": "yaml",
    "md": "markdown",
    "cs": "c#",
    "csharp": "c#",
    "cpp": "c++",
    "objc": "objective-c",
    "dockerfile": "docker",
    "make": "makefile",
    "tex": "latex",
    "htm": "html",
    "jsx": "javascript",
    "tsx": "typescript",
    "jsonc": "json",
    "golang": "go",
    "kt": "kotlin",
    "ps1": "powershell",
    "text": "plain text",
    "txt": "plain text",
}


def normalize_language(info: str | None) -> str:
    """Map a code fence info string to a language Notion accepts.

    Unknown languages become ``"plain text"``.

    >>> normalize_language("py")
    'python'
    >>> normalize_language("python3")
    'python'
    """
    if not info or not info.strip():
        return "plain text"
    lang = info.strip().lower().split()[0]
    if lang in _NOTION_LANGUAGES:
        return lang
    if lang in _LANGUAGE_ALIASES:
        return _LANGUAGE_ALIASES[lang]
    stripped = re.sub(r"\d+$", "", lang)
    if stripped in _NOTION_LANGUAGES:
        return stripped
    return _LANGUAGE_ALIASES.get(stripped, "plain text")


def normalize_heading_level(level: int) -> int:
    """Clamp *level* onto Notion's heading depths 1 to 3."""
    return max(1, min(level, NOTION_MAX_HEADING_LEVEL))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rich_text(content: Content) -> list[dict]:
    if isinstance(content, str):
        return text_to_rich_text(content)
    return build_rich_text(content)


def _block(block_type: str, payload: dict) -> dict:
    return {"object": "block", "type": block_type, block_type: payload}


def _with_children(payload: dict, children: list[dict] | None) -> dict:
    if children:
        payload["children"] = children
    return payload


# ---------------------------------------------------------------------------
# Text blocks
# ---------------------------------------------------------------------------

def build_paragraph(content: Content, color: str = "default") -> dict:
    return _block("paragraph", {"rich_text": _rich_text(content), "color": color})


def build_heading(content: Content, level: int, color: str = "default") -> dict:
    """Build ``heading_1``..``heading_3``; deeper levels are clamped."""
    heading_type = f"heading_{normalize_heading_level(level)}"
    return _block(heading_type, {
        "rich_text": _rich_text(content),
        "color": color,
        "is_toggleable": False,
    })


def build_quote(content: Content, children: list[dict] | None = None) -> dict:
    payload = {"rich_text": _rich_text(content), "color": "default"}
    return _block("quote", _with_children(payload, children))


def build_callout(
    content: Content,
    icon: str = "\U0001f4a1",
    color: str = "default",
    children: list[dict] | None = None,
) -> dict:
    payload = {
        "rich_text": _rich_text(content),
        "icon": {"type": "emoji", "emoji": icon},
        "color": color,
    }
    return _block("callout", _with_children(payload, children))


def build_toggle(content: Content, children: list[dict] | None = None) -> dict:
    payload = {"rich_text": _rich_text(content), "color": "default"}
    return _block("toggle", _with_children(payload, children))


# ---------------------------------------------------------------------------
# List blocks
# ---------------------------------------------------------------------------

def build_bulleted_list_item(content: Content, children: list[dict] | None = None) -> dict:
    payload = {"rich_text": _rich_text(content), "color": "default"}
    return _block("bulleted_list_item", _with_children(payload, children))


def build_numbered_list_item(content: Content, children: list[dict] | None = None) -> dict:
    payload = {"rich_text": _rich_text(content), "color": "default"}
    return _block("numbered_list_item", _with_children(payload, children))


def build_to_do(
    content: Content,
    checked: bool = False,
    children: list[dict] | None = None,
) -> dict:
    payload = {"rich_text": _rich_text(content), "checked": checked, "color": "default"}
    return _block("to_do", _with_children(payload, children))


def build_list_item(
    content: Content,
    list_type: str,
    checked: bool | None = None,
    children: list[dict] | None = None,
) -> dict:
    """Build a list item of *list_type* (``"bulleted"`` or ``"numbered"``).

    A non-``None`` *checked* wins over *list_type* and yields a ``to_do``.
    """
    if checked is not None:
        return build_to_do(content, checked, children)
    if list_type == "numbered":
        return build_numbered_list_item(content, children)
    return build_bulleted_list_item(content, children)


# ---------------------------------------------------------------------------
# Structural blocks
# ---------------------------------------------------------------------------

def build_code(code: str, language: str | None = None, caption: str | None = None) -> dict:
    """Build a code block.  Length limits are the caller's concern."""
    return _block("code", {
        "rich_text": text_to_rich_text(code),
        "language": normalize_language(language),
        "caption": text_to_rich_text(caption or ""),
    })


def build_divider() -> dict:
    return _block("divider", {})


def build_table(rows: list[list[Content]], has_column_header: bool = True) -> list[dict]:
    """Build a table block with its rows attached as children.

    The width is fixed by the first row: shorter rows are padded with empty
    cells and longer rows are truncated.  Returns ``[]`` for no rows.
    """
    if not rows:
        return []

    width = len(rows[0])
    row_blocks: list[dict] = []
    for row in rows:
        cells = [_rich_text(cell) for cell in row[:width]]
        cells.extend([] for _ in range(width - len(cells)))
        row_blocks.append(_block("table_row", {"cells": cells}))

    table = _block("table", {
        "table_width": width,
        "has_column_header": has_column_header,
        "has_row_header": False,
        "children": row_blocks,
    })
    return [table]


# ---------------------------------------------------------------------------
# Media blocks
# ---------------------------------------------------------------------------

def is_external_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def build_image(url: str, caption: str | None = None) -> dict:
    """Build an image block; http(s) URLs are ``external``, others ``file``."""
    source = "external" if is_external_url(url) else "file"
    return _block("image", {
        "type": source,
        source: {"url": url},
        "caption": text_to_rich_text(caption or ""),
    })


def build_embed(url: str, caption: str | None = None) -> dict:
    return _block("embed", {"url": url, "caption": text_to_rich_text(caption or "")})


def build_bookmark(url: str, caption: str | None = None) -> dict:
    return _block("bookmark", {"url": url, "caption": text_to_rich_text(caption or "")})


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def build_fallback(content: str, original_type: str) -> dict:
    """A gray paragraph that visibly marks content with no Notion counterpart."""
    return _block("paragraph", {
        "rich_text": text_to_rich_text(f"[Unsupported {original_type}]: {content}", color="gray"),
        "color": "default",
    })
