"""Data models for notiondocs.

Three groups of types live here:

* the Markdown node tree produced by the parser (``MarkupNode`` and its
  variants), a closed union that every converter dispatches on;
* conversion bookkeeping (warnings, statistics, :class:`ConversionResult`);
* orchestrator inputs and results, including :class:`SyncJob`.

Notion blocks themselves stay plain ``dict`` payloads, exactly as the API
sends and receives them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

# ---------------------------------------------------------------------------
# Markdown node tree
# ---------------------------------------------------------------------------

@dataclass
class Link:
    url: str
    title: str | None = None


@dataclass
class TextSpan:
    """A run of inline text with uniform formatting."""

    content: str
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    code: bool = False
    link: Link | None = None


@dataclass
class Heading:
    level: int
    children: list[TextSpan] = field(default_factory=list)


@dataclass
class Paragraph:
    children: list[TextSpan] = field(default_factory=list)


@dataclass
class ListItem:
    """One list entry.

    ``checked`` is ``None`` for ordinary items and a bool for task items.
    """

    children: list[MarkupNode] = field(default_factory=list)
    checked: bool | None = None


@dataclass
class ListNode:
    ordered: bool
    items: list[ListItem] = field(default_factory=list)


@dataclass
class CodeNode:
    text: str
    language: str | None = None


@dataclass
class Quote:
    children: list[MarkupNode] = field(default_factory=list)


@dataclass
class TableCell:
    children: list[TextSpan] = field(default_factory=list)
    align: str | None = None


@dataclass
class Table:
    """A table; the first row is the header row."""

    rows: list[list[TableCell]] = field(default_factory=list)


@dataclass
class Image:
    url: str
    alt: str | None = None
    title: str | None = None


@dataclass
class Divider:
    pass


@dataclass
class HtmlNode:
    """Raw HTML.  Notion has no counterpart for it."""

    raw: str


MarkupNode = Union[
    Heading,
    Paragraph,
    ListNode,
    ListItem,
    CodeNode,
    Quote,
    Table,
    TableCell,
    Image,
    Divider,
    HtmlNode,
]
"""Every block-level node the parser can produce."""

BLOCK_NODE_TYPES: tuple[type, ...] = (
    Heading,
    Paragraph,
    ListNode,
    CodeNode,
    Quote,
    Table,
    Image,
    Divider,
    HtmlNode,
)
"""Node types that may appear directly in a document body."""


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------

@dataclass
class HeadingInfo:
    level: int
    text: str
    anchor: str


@dataclass
class DocumentMetadata:
    """Metadata extracted from front matter and document structure.

    Attributes
    ----------
    title:
        Front-matter ``title``, else the text of the first heading.
    tags:
        Front-matter ``tags`` normalised to a list of strings.
    front_matter:
        The full parsed front-matter mapping.
    headings:
        Every heading in document order with its slug anchor.
    word_count:
        Whitespace-separated words in the body, markup characters removed.
    """

    title: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    author: str | None = None
    date: str | None = None
    front_matter: dict[str, Any] = field(default_factory=dict)
    headings: list[HeadingInfo] = field(default_factory=list)
    word_count: int = 0


@dataclass
class ParsedDocument:
    nodes: list[MarkupNode]
    metadata: DocumentMetadata


@dataclass
class ValidationWarning:
    """An advisory structural finding.  Never raised."""

    kind: str
    message: str
    suggestion: str | None = None


@dataclass
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    metadata: DocumentMetadata | None = None


# ---------------------------------------------------------------------------
# Conversion results
# ---------------------------------------------------------------------------

@dataclass
class ConversionWarning:
    """A non-fatal issue encountered during conversion or sync.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"IMAGE_UPLOAD_FALLBACK"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ConversionStatistics:
    total: int = 0
    converted: int = 0
    skipped: int = 0
    errored: int = 0
    unsupported_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversionMetadata:
    """Where a conversion went and how long it took.

    ``direction`` is ``"markdown_to_notion"`` or ``"notion_to_markdown"``.
    """

    direction: str
    timestamp: datetime
    options_used: dict[str, Any]
    processing_time_ms: float
    node_count: int


@dataclass(frozen=True)
class ConversionResult:
    """Output of one conversion call.

    Attributes
    ----------
    content:
        A list of Notion block dicts (compile) or a Markdown string
        (render).
    warnings:
        Non-fatal issues, in the order they were found.
    errors:
        Messages for nodes or blocks that failed to convert.
    metadata:
        Direction, timing and the options used.
    statistics:
        Node/block counts.
    """

    content: Any
    warnings: tuple[ConversionWarning, ...] = ()
    errors: tuple[str, ...] = ()
    metadata: ConversionMetadata | None = None
    statistics: ConversionStatistics = field(default_factory=ConversionStatistics)

    @property
    def blocks(self) -> list[dict]:
        """The compiled blocks.  Only meaningful for compile results."""
        return self.content if isinstance(self.content, list) else []

    @property
    def markdown(self) -> str:
        """The rendered Markdown.  Only meaningful for render results."""
        return self.content if isinstance(self.content, str) else ""


# ---------------------------------------------------------------------------
# Orchestrator inputs and results
# ---------------------------------------------------------------------------

@dataclass
class PageMetadata:
    """Logical page metadata, independent of the database's field types."""

    category: str | list[str] | None = None
    tags: list[str] | None = None
    description: str | None = None
    status: str | None = None

    def is_empty(self) -> bool:
        return (
            self.category is None
            and self.tags is None
            and self.description is None
            and self.status is None
        )


@dataclass
class PageCreateResult:
    """Result of :meth:`AsyncNotionDocs.create_page_from_markdown`.

    Attributes
    ----------
    page_id:
        The ID of the newly created page.
    url:
        The page URL.
    title:
        The title that was resolved and written.
    blocks_created:
        Total number of blocks appended.
    conversion:
        The compile result for the body.
    warnings:
        Conversion and schema warnings combined.
    """

    page_id: str
    url: str
    title: str
    blocks_created: int
    conversion: ConversionResult | None = None
    warnings: list[ConversionWarning] = field(default_factory=list)


@dataclass
class PageExportResult:
    page_id: str
    markdown: str
    page: dict
    conversion: ConversionResult | None = None


@dataclass
class ContentUpdateResult:
    """Result of the copy-then-archive content update.

    ``old_page_id`` is archived; ``new_page_id`` holds the new content.
    """

    old_page_id: str
    new_page_id: str
    url: str
    blocks_created: int
    conversion: ConversionResult | None = None


@dataclass
class PageListResult:
    pages: list[dict]
    has_more: bool = False
    next_cursor: str | None = None


# ---------------------------------------------------------------------------
# Job tracking
# ---------------------------------------------------------------------------

class JobKind(str, Enum):
    IMPORT = "import"
    """Markdown file into a database page."""

    EXPORT = "export"
    """Page into a Markdown file."""


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SyncJob:
    """A tracked background import or export.

    Created by :meth:`AsyncNotionDocs.submit_job` and mutated only by the
    client as the job progresses.
    """

    id: str
    kind: JobKind
    source_ref: str
    target_ref: str
    status: JobStatus = JobStatus.PENDING
    result: Any = None
    error: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def done(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)
