"""Heading anchors."""

from __future__ import annotations

import re

_NON_WORD_RE = re.compile(r"[^\w\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHEN_RUN_RE = re.compile(r"-+")


def slugify(text: str) -> str:
    """Derive a stable anchor from heading text.

    Lowercases, strips non-word characters, turns whitespace runs into
    hyphens, collapses repeated hyphens and trims them from both ends.

    >>> slugify("  Getting Started: the *basics*!  ")
    'getting-started-the-basics'
    """
    slug = _NON_WORD_RE.sub("", text.lower())
    slug = _WHITESPACE_RE.sub("-", slug.strip())
    slug = _HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")
