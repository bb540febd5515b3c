"""Configuration for notiondocs.

Two dataclasses live here:

* :class:`ConversionOptions` controls how Markdown and Notion blocks are
  converted in either direction.  It is passed per call and may be
  overridden field by field with :meth:`ConversionOptions.merged`.
* :class:`NotionDocsConfig` captures the client-wide knobs: credentials,
  HTTP, retry and rate limiting, concurrency, and the default
  conversion options.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Literal

NOTION_MAX_TEXT_LENGTH = 2000
"""Maximum characters in a single rich-text content string."""

NOTION_MAX_CHILDREN_PER_REQUEST = 100
"""Maximum blocks accepted by one append-children call."""

NOTION_MAX_PAGE_SIZE = 100
"""Maximum ``page_size`` accepted by list/query endpoints."""

NOTION_MAX_HEADING_LEVEL = 3


_CHOICES: dict[str, tuple[str, ...]] = {
    "list_marker": ("-", "*", "+"),
    "code_block_style": ("fenced", "indented"),
    "emphasis_marker": ("*", "_"),
    "image_handling": ("link", "upload", "ignore"),
    "handle_unsupported_blocks": ("convert", "error", "ignore"),
    "line_breaks": ("lf", "crlf"),
}


@dataclass
class ConversionOptions:
    """Options shared by the Markdown compiler and the Markdown renderer.

    Parameters
    ----------
    max_heading_level:
        Headings deeper than this are clamped to it before being mapped
        onto Notion's three heading levels.
    list_marker:
        Bullet used for unordered list items on export.
    code_block_style:
        ``"fenced"`` (triple backticks) or ``"indented"`` (four spaces).
    emphasis_marker:
        ``"*"`` renders bold as ``**x**``; ``"_"`` renders it as ``__x__``.
        Italic uses the marker itself.
    table_alignment:
        Pad exported table columns to a common width.
    image_handling:
        ``"link"`` embeds the URL, ``"ignore"`` drops images, ``"upload"``
        is not implemented and falls back to linking with a warning.
    image_base_url:
        Base URL that relative image paths are resolved against.
    handle_unsupported_blocks:
        What to do with nodes or blocks that have no counterpart.

        * ``"convert"`` -- emit a visibly marked fallback.
        * ``"error"`` -- raise :class:`~notiondocs.errors.UnsupportedBlockError`.
        * ``"ignore"`` -- drop silently.
    preserve_colors:
        Wrap coloured rich text in ``<span style="color: ...">`` on export.
    preserve_formatting:
        Keep empty paragraphs as empty blocks instead of dropping them.
    convert_callouts:
        Render callouts as blockquotes; otherwise skip them with a warning.
    convert_toggles:
        Render toggles as ``<details>``; otherwise flatten with a warning.
    include_metadata:
        Prefix exported Markdown with a front-matter header.
    line_breaks:
        ``"lf"`` or ``"crlf"`` line endings on export.
    indent_size:
        Spaces per nesting level for exported list children.
    """

    max_heading_level: int = 3
    list_marker: Literal["-", "*", "+"] = "-"
    code_block_style: Literal["fenced", "indented"] = "fenced"
    emphasis_marker: Literal["*", "_"] = "*"
    table_alignment: bool = True
    image_handling: Literal["link", "upload", "ignore"] = "link"
    image_base_url: str | None = None
    handle_unsupported_blocks: Literal["convert", "error", "ignore"] = "convert"
    preserve_colors: bool = False
    preserve_formatting: bool = True
    convert_callouts: bool = True
    convert_toggles: bool = True
    include_metadata: bool = True
    line_breaks: Literal["lf", "crlf"] = "lf"
    indent_size: int = 2

    def __post_init__(self) -> None:
        if not 1 <= self.max_heading_level <= 6:
            raise ValueError(f"max_heading_level must be in 1..6, got {self.max_heading_level}")
        if self.indent_size < 1:
            raise ValueError(f"indent_size must be >= 1, got {self.indent_size}")
        for name, allowed in _CHOICES.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ValueError(f"{name} must be one of {allowed}, got {value!r}")

    def merged(self, **overrides: Any) -> ConversionOptions:
        """Return a copy with *overrides* applied (and re-validated)."""
        return dataclasses.replace(self, **overrides)

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class NotionDocsConfig:
    """Complete configuration for a notiondocs client.

    Only ``token`` is required.

    Parameters
    ----------
    token:
        Notion integration token.  Never logged.
    notion_version:
        Value of the ``Notion-Version`` header.
    base_url:
        API root URL.  Override for proxies or local test servers.
    retry_max_attempts:
        Maximum transport-level retries for rate-limited requests.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on a computed backoff delay.
    retry_jitter:
        Randomise backoff intervals by up to 50 %.
    retry_server_errors:
        Also retry 5xx responses and network failures at the transport
        level.  Off by default: the orchestrator only retries property type
        mismatches, and write calls are not idempotent.
    rate_limit_rps:
        Client-side pacing (token bucket) in requests per second.
    timeout_seconds:
        HTTP request timeout.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    fetch_max_concurrency:
        Permit count for the breadth-first block tree fetch.
    append_chunk_size:
        Blocks per append-children call, at most 100.
    conversion:
        Default :class:`ConversionOptions` for every operation.
    metrics:
        A :class:`~notiondocs.observability.MetricsHook`, or ``None``.
    debug_dump_payload:
        Print redacted request and response payloads to stderr.
    """

    # ── Core ────────────────────────────────────────────────────────────
    token: str = ""

    notion_version: str = "2022-06-28"

    base_url: str = "https://api.notion.com/v1"

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    retry_server_errors: bool = False

    rate_limit_rps: float = 3.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Sync ────────────────────────────────────────────────────────────
    fetch_max_concurrency: int = 8

    append_chunk_size: int = NOTION_MAX_CHILDREN_PER_REQUEST

    conversion: ConversionOptions = field(default_factory=ConversionOptions)

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your API token, or target localhost for testing."
            )

        if self.retry_max_attempts < 0:
            raise ValueError(f"retry_max_attempts must be >= 0, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.fetch_max_concurrency < 1:
            raise ValueError(
                f"fetch_max_concurrency must be >= 1, got {self.fetch_max_concurrency}"
            )
        if not 1 <= self.append_chunk_size <= NOTION_MAX_CHILDREN_PER_REQUEST:
            raise ValueError(
                f"append_chunk_size must be in 1..{NOTION_MAX_CHILDREN_PER_REQUEST}, "
                f"got {self.append_chunk_size}"
            )

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotionDocsConfig({', '.join(parts)})"
