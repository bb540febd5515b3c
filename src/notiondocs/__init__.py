"""notiondocs — Markdown documents synced with Notion databases.

Public re-exports
-----------------

* **Client:** :class:`AsyncNotionDocs`
* **Conversion:** :class:`MarkdownParser`, :class:`MarkdownToNotionCompiler`,
  :class:`NotionToMarkdownRenderer`
* **Schema:** :class:`SchemaAdapter`, :class:`PropertyTypeCache`
* **Configuration:** :class:`NotionDocsConfig`, :class:`ConversionOptions`
* **Errors:** Every :class:`NotionDocsError` subclass and :class:`ErrorCode`
* **Models:** Result dataclasses, job types and the Markdown node types

Usage::

    from notiondocs import MarkdownToNotionCompiler

    result = MarkdownToNotionCompiler().convert("# Hello\\n\\nWorld")
    print([block["type"] for block in result.blocks])
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from notiondocs.config import ConversionOptions, NotionDocsConfig

# ── Conversion ──────────────────────────────────────────────────────────
from notiondocs.converter import (
    MarkdownParser,
    MarkdownToNotionCompiler,
    NotionToMarkdownRenderer,
)

# ── Errors ──────────────────────────────────────────────────────────────
from notiondocs.errors import (
    AuthError,
    ConversionError,
    ErrorCode,
    FileAccessError,
    LimitExceededError,
    NetworkError,
    NotFoundError,
    NotionDocsError,
    ParseError,
    PermissionDeniedError,
    RateLimitError,
    RemoteRequestError,
    RemoteValidationError,
    RetryExhaustedError,
    SchemaMismatchError,
    UnsupportedBlockError,
)
from notiondocs.files import LocalFileReader

# ── Models ──────────────────────────────────────────────────────────────
from notiondocs.models import (
    ContentUpdateResult,
    ConversionResult,
    ConversionStatistics,
    ConversionWarning,
    DocumentMetadata,
    JobKind,
    JobStatus,
    PageCreateResult,
    PageExportResult,
    PageListResult,
    PageMetadata,
    ParsedDocument,
    SyncJob,
    ValidationReport,
    ValidationWarning,
)

# ── Client ──────────────────────────────────────────────────────────────
from notiondocs.orchestrator import AsyncNotionDocs
from notiondocs.schema import PropertyTypeCache, SchemaAdapter

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Client
    "AsyncNotionDocs",
    "LocalFileReader",
    # Conversion
    "MarkdownParser",
    "MarkdownToNotionCompiler",
    "NotionToMarkdownRenderer",
    # Schema
    "PropertyTypeCache",
    "SchemaAdapter",
    # Configuration
    "ConversionOptions",
    "NotionDocsConfig",
    # Error base + code enum
    "NotionDocsError",
    "ErrorCode",
    # Conversion errors
    "ParseError",
    "ConversionError",
    "UnsupportedBlockError",
    "LimitExceededError",
    # Remote errors
    "RemoteRequestError",
    "SchemaMismatchError",
    "RemoteValidationError",
    "AuthError",
    "PermissionDeniedError",
    "NotFoundError",
    "RateLimitError",
    "RetryExhaustedError",
    "NetworkError",
    # Local file errors
    "FileAccessError",
    # Models — results
    "PageCreateResult",
    "PageExportResult",
    "ContentUpdateResult",
    "PageListResult",
    "PageMetadata",
    # Models — conversion
    "ConversionResult",
    "ConversionStatistics",
    "ConversionWarning",
    "ParsedDocument",
    "DocumentMetadata",
    "ValidationReport",
    "ValidationWarning",
    # Models — jobs
    "JobKind",
    "JobStatus",
    "SyncJob",
]
