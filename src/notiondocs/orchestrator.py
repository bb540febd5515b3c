"""Asynchronous client tying conversion, schema detection and the API together.

:class:`AsyncNotionDocs` is the entry point for syncing Markdown documents
with pages in a Notion database.

Usage::

    import asyncio
    from notiondocs import AsyncNotionDocs, PageMetadata

    async def main():
        async with AsyncNotionDocs(token="secret_xxx") as docs:
            result = await docs.create_page_from_markdown(
                "<database_id>",
                file_path="guides/getting-started.md",
                metadata=PageMetadata(category="guides", tags=["intro"]),
            )
            print(result.url)

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from collections.abc import Callable, Coroutine
from datetime import datetime
from pathlib import PurePath
from typing import Any, TypeVar

from notiondocs.config import NOTION_MAX_PAGE_SIZE, ConversionOptions, NotionDocsConfig
from notiondocs.converter.md_to_notion import MarkdownToNotionCompiler
from notiondocs.converter.notion_to_md import NotionToMarkdownRenderer, page_title
from notiondocs.converter.parser import MarkdownParser
from notiondocs.errors import NotionDocsError, RemoteRequestError
from notiondocs.files import LocalFileReader
from notiondocs.models import (
    ContentUpdateResult,
    DocumentMetadata,
    JobKind,
    JobStatus,
    PageCreateResult,
    PageExportResult,
    PageListResult,
    PageMetadata,
    SyncJob,
)
from notiondocs.notion_api.blocks import AsyncBlockAPI
from notiondocs.notion_api.databases import AsyncDatabaseAPI
from notiondocs.notion_api.pages import AsyncPageAPI
from notiondocs.notion_api.retries import is_schema_mismatch, retry_with_predicate
from notiondocs.notion_api.transport import AsyncNotionTransport
from notiondocs.observability import NoopMetricsHook, get_logger
from notiondocs.schema import (
    CATEGORY_FIELD,
    DESCRIPTION_FIELD,
    STATUS_FIELD,
    TAGS_FIELD,
    PropertyTypeCache,
    SchemaAdapter,
)
from notiondocs.utils.chunk import chunk_children

log = get_logger("notiondocs.orchestrator")

T = TypeVar("T")

UNTITLED = "Untitled"

SORT_ORDERS = ("ascending", "descending")

# Block types whose children are separate pages rather than page content.
_NO_DESCEND = frozenset({"child_page", "child_database"})

# Property types that can be written back when copying a page.
_WRITABLE_PROPERTY_TYPES = frozenset({
    "title", "rich_text", "number", "select", "multi_select", "status",
    "date", "people", "files", "checkbox", "url", "email", "phone_number",
    "relation",
})

_WORD_START_RE = re.compile(r"\b\w")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def humanize_file_name(path: str) -> str:
    """``"getting-started_guide.md"`` -> ``"Getting Started Guide"``."""
    stem = PurePath(path).stem
    spaced = re.sub(r"[-_]+", " ", stem).strip()
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), spaced)


def resolve_title(
    explicit: str | None = None,
    front_matter_title: str | None = None,
    first_heading: str | None = None,
    file_path: str | None = None,
) -> str:
    """Pick a page title: explicit, front matter, first heading, file name.

    Falls back to ``"Untitled"``.
    """
    for candidate in (explicit, front_matter_title, first_heading):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    if file_path:
        humanized = humanize_file_name(file_path)
        if humanized:
            return humanized
    return UNTITLED


def build_query_filter(
    title_field: str,
    *,
    search: str | None = None,
    category: str | None = None,
    tags: list[str] | None = None,
    status: str | None = None,
) -> dict[str, Any] | None:
    """Build a database query filter.

    *search* matches the title or the Description; *tags* match any of the
    given tags.  Several conditions are combined with ``and``.
    """
    filters: list[dict[str, Any]] = []
    if search:
        filters.append({
            "or": [
                {"property": title_field, "title": {"contains": search}},
                {"property": DESCRIPTION_FIELD, "rich_text": {"contains": search}},
            ]
        })
    if category:
        filters.append({"property": CATEGORY_FIELD, "select": {"equals": category}})
    if status:
        filters.append({"property": STATUS_FIELD, "select": {"equals": status}})
    if tags:
        conditions = [
            {"property": TAGS_FIELD, "multi_select": {"contains": tag}} for tag in tags
        ]
        filters.append(conditions[0] if len(conditions) == 1 else {"or": conditions})

    if not filters:
        return None
    if len(filters) == 1:
        return filters[0]
    return {"and": filters}


def build_query_sorts(title_field: str, sort_by: str, sort_order: str) -> list[dict[str, Any]]:
    """Sort clause for *sort_by*; unknown keys sort by last edit time."""
    if sort_by == "title":
        return [{"property": title_field, "direction": sort_order}]
    if sort_by == "category":
        return [{"property": CATEGORY_FIELD, "direction": sort_order}]
    if sort_by == "status":
        return [{"property": STATUS_FIELD, "direction": sort_order}]
    if sort_by == "created":
        return [{"timestamp": "created_time", "direction": sort_order}]
    return [{"timestamp": "last_edited_time", "direction": sort_order}]


def writable_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Strip a retrieved page's properties down to values Notion accepts
    on create.  Computed types (formula, rollup, timestamps...) are dropped.
    """
    result: dict[str, Any] = {}
    for name, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        prop_type = prop.get("type")
        if prop_type in _WRITABLE_PROPERTY_TYPES and prop_type in prop:
            result[name] = {prop_type: prop[prop_type]}
    return result


def _coerce_metadata(metadata: PageMetadata | dict[str, Any] | None) -> PageMetadata:
    if metadata is None:
        return PageMetadata()
    if isinstance(metadata, PageMetadata):
        return metadata
    return PageMetadata(**metadata)


async def _gather_or_cancel(coros: list[Coroutine[Any, Any, Any]]) -> list[Any]:
    """Run *coros* concurrently; on the first failure cancel the rest and re-raise."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def metadata_with_front_matter(metadata: PageMetadata, document: DocumentMetadata) -> PageMetadata:
    """Fill the fields *metadata* leaves unset from the document's front matter.

    Explicit values always win.  A single front-matter category becomes a
    plain string, several stay a list.
    """
    categories = document.categories
    category = categories[0] if len(categories) == 1 else (list(categories) or None)
    status = document.front_matter.get("status")
    return PageMetadata(
        category=metadata.category if metadata.category is not None else category,
        tags=metadata.tags if metadata.tags is not None else (list(document.tags) or None),
        description=(
            metadata.description if metadata.description is not None else document.description
        ),
        status=metadata.status if metadata.status is not None else (
            str(status) if status is not None else None
        ),
    )


def _annotate_failure(
    exc: NotionDocsError,
    page_id: str | None,
    cleanup_succeeded: bool | None,
) -> NotionDocsError:
    """Record in *exc* whether a page was created and whether it was removed."""
    if page_id is None:
        outcome = "no page was created"
    elif cleanup_succeeded:
        outcome = f"page {page_id} was created and cleanup succeeded (page archived)"
    else:
        outcome = f"page {page_id} was created and cleanup failed (page left in place)"
    exc.context.update({
        "page_id": page_id,
        "page_created": page_id is not None,
        "cleanup_succeeded": cleanup_succeeded,
    })
    exc.message = f"{exc.message} [{outcome}]"
    exc.args = (exc.message,)
    return exc


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class AsyncNotionDocs:
    """Asynchronous Markdown <-> Notion database sync client.

    Parameters
    ----------
    token:
        Notion integration token.  Ignored when *config* is given.
    config:
        A complete :class:`NotionDocsConfig`.
    cache:
        Field type cache to share between clients, e.g. one per workspace.
        A private cache is created when omitted.
    files:
        Local file access used for ``file_path`` inputs and export jobs.
    **kwargs:
        Forwarded to :class:`NotionDocsConfig` when *config* is omitted.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        config: NotionDocsConfig | None = None,
        cache: PropertyTypeCache | None = None,
        files: LocalFileReader | None = None,
        **kwargs: Any,
    ) -> None:
        if config is None:
            config = NotionDocsConfig(token=token or "", **kwargs)
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._transport = AsyncNotionTransport(config)
        self._pages = AsyncPageAPI(self._transport)
        self._blocks = AsyncBlockAPI(self._transport)
        self._databases = AsyncDatabaseAPI(self._transport)
        self._schema = SchemaAdapter(self._databases, cache)
        self._parser = MarkdownParser()
        self._compiler = MarkdownToNotionCompiler(config.conversion, parser=self._parser)
        self._renderer = NotionToMarkdownRenderer(config.conversion)
        self._files = files if files is not None else LocalFileReader()
        self._jobs: dict[str, SyncJob] = {}
        self._job_tasks: dict[str, asyncio.Task] = {}

    @property
    def config(self) -> NotionDocsConfig:
        return self._config

    @property
    def schema(self) -> SchemaAdapter:
        return self._schema

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_options(
        self, options: ConversionOptions | dict[str, Any] | None,
    ) -> ConversionOptions:
        if options is None:
            return self._config.conversion
        if isinstance(options, ConversionOptions):
            return options
        return self._config.conversion.merged(**options)

    async def _run_blocking(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _load_markdown(self, markdown: str | None, file_path: str | None) -> str:
        if markdown is not None and file_path is not None:
            raise ValueError(
                "Cannot provide both markdown content and file_path. Please provide only one."
            )
        if markdown is not None:
            return markdown
        if file_path is not None:
            return await self._run_blocking(self._files.read_text, file_path)
        raise ValueError("Either markdown content or file_path must be provided.")

    def _operation_schema(self) -> SchemaAdapter:
        """An adapter sharing the field type cache but collecting its own
        warnings, so one call never sees another call's skipped fields.
        """
        return SchemaAdapter(self._databases, self._schema.cache)

    async def _cleanup_page(self, page_id: str) -> bool:
        """Archive a page left behind by a failed operation."""
        try:
            await self._pages.archive(page_id)
        except RemoteRequestError as exc:
            self._metrics.increment("notiondocs.cleanup_total", tags={"outcome": "failed"})
            log.error(
                "Failed to clean up page",
                extra={"extra_fields": {"page_id": page_id, "error": exc.message}},
            )
            return False
        self._metrics.increment("notiondocs.cleanup_total", tags={"outcome": "succeeded"})
        log.info(
            "Cleaned up page after failure",
            extra={"extra_fields": {"page_id": page_id}},
        )
        return True

    async def _create_with_schema_retry(
        self,
        database_id: str,
        build_properties: Callable[[], Any],
    ) -> dict:
        """Create a page, re-detecting field types once on a type mismatch."""

        async def attempt() -> dict:
            properties = await build_properties()
            return await self._pages.create(
                parent={"type": "database_id", "database_id": database_id},
                properties=properties,
            )

        async def on_mismatch(exc: BaseException, attempt_no: int) -> None:
            self._metrics.increment(
                "notiondocs.schema_mismatch_total", tags={"database_id": database_id},
            )
            log.warning(
                "Property type mismatch detected, clearing cache and retrying",
                extra={"extra_fields": {"database_id": database_id, "attempt": attempt_no}},
            )
            self._schema.invalidate(database_id)

        return await retry_with_predicate(
            attempt,
            should_retry=is_schema_mismatch,
            max_attempts=2,
            on_retry=on_mismatch,
        )

    async def _fetch_children(self, block_id: str, semaphore: asyncio.Semaphore) -> list[dict]:
        """All children of one block, one permit per page request."""
        children: list[dict] = []
        cursor: str | None = None
        while True:
            async with semaphore:
                listing = await self._blocks.list_children(block_id, cursor)
            children.extend(listing.get("results", []))
            cursor = listing.get("next_cursor")
            if not listing.get("has_more") or not cursor:
                return children

    # ------------------------------------------------------------------
    # Block operations
    # ------------------------------------------------------------------

    async def fetch_block_tree(self, root_id: str) -> list[dict]:
        """Fetch every block under *root_id*, level by level.

        All child listings of one level run concurrently, bounded by
        ``config.fetch_max_concurrency`` permits.  Children are attached to
        their parent under a ``"children"`` key.  Child pages and databases
        are not descended into.

        Returns
        -------
        list[dict]
            The top-level blocks, in page order.
        """
        semaphore = asyncio.Semaphore(self._config.fetch_max_concurrency)
        roots = await self._fetch_children(root_id, semaphore)
        level = [b for b in roots if b.get("has_children") and b.get("type") not in _NO_DESCEND]
        depth = 1

        while level:
            results = await _gather_or_cancel(
                [self._fetch_children(block["id"], semaphore) for block in level]
            )
            next_level: list[dict] = []
            for block, children in zip(level, results):
                block["children"] = children
                next_level.extend(
                    c for c in children
                    if c.get("has_children") and c.get("type") not in _NO_DESCEND
                )
            depth += 1
            level = next_level

        log.debug(
            "Fetched block tree",
            extra={"extra_fields": {"root_id": root_id, "top_level": len(roots), "depth": depth}},
        )
        return roots

    async def append_blocks(self, parent_id: str, blocks: list[dict]) -> int:
        """Append *blocks* under *parent_id* in order, in chunks.

        Returns
        -------
        int
            Number of top-level blocks appended.
        """
        appended = 0
        for batch in chunk_children(blocks, self._config.append_chunk_size):
            await self._blocks.append_children(parent_id, batch)
            appended += len(batch)
            self._metrics.increment("notiondocs.blocks_created_total", len(batch))
        return appended

    # ------------------------------------------------------------------
    # Page creation
    # ------------------------------------------------------------------

    async def create_page_from_markdown(
        self,
        database_id: str,
        *,
        markdown: str | None = None,
        file_path: str | None = None,
        title: str | None = None,
        metadata: PageMetadata | dict[str, Any] | None = None,
        options: ConversionOptions | dict[str, Any] | None = None,
    ) -> PageCreateResult:
        """Create a database page from Markdown.

        Parameters
        ----------
        database_id:
            Target database.
        markdown, file_path:
            The source; exactly one must be given.
        title:
            Explicit title.  Otherwise the front matter title, the first
            heading, the humanised file name or ``"Untitled"`` is used.
        metadata:
            Logical Description / Category / Tags / Status values.  Shaped
            per the database's actual field types.
        options:
            Conversion options, or a dict of overrides on the configured
            defaults.

        Returns
        -------
        PageCreateResult

        Raises
        ------
        LimitExceededError
            A code block is too long; nothing was created.
        SchemaMismatchError
            Property shapes were rejected twice.
        RemoteRequestError
            Any other API failure.  If a page had been created it is
            archived, and ``context["cleanup_succeeded"]`` says whether
            that worked.
        """
        source = await self._load_markdown(markdown, file_path)
        opts = self._resolve_options(options)
        explicit = _coerce_metadata(metadata)
        schema = self._operation_schema()
        page_id: str | None = None

        try:
            document = self._parser.parse_document(source)
            meta = metadata_with_front_matter(explicit, document.metadata)
            conversion = self._compiler.compile(document.nodes, opts)
            headings = document.metadata.headings
            resolved_title = resolve_title(
                title,
                document.metadata.front_matter.get("title"),
                headings[0].text if headings else None,
                file_path,
            )

            if not meta.is_empty():
                await schema.ensure_fields(database_id)

            page = await self._create_with_schema_retry(
                database_id,
                lambda: schema.build_page_properties(database_id, resolved_title, meta),
            )
            page_id = page["id"]
            log.info(
                "Page created",
                extra={"extra_fields": {"page_id": page_id, "database_id": database_id}},
            )

            blocks_created = await self.append_blocks(page_id, conversion.blocks)
        except NotionDocsError as exc:
            cleanup = await self._cleanup_page(page_id) if page_id is not None else None
            _annotate_failure(exc, page_id, cleanup)
            raise
        except (ValueError, TypeError, KeyError) as exc:
            cleanup = await self._cleanup_page(page_id) if page_id is not None else None
            raise _annotate_failure(
                RemoteRequestError(
                    message=f"Failed to create page from markdown: {exc}",
                    context={"database_id": database_id},
                    cause=exc,
                ),
                page_id,
                cleanup,
            ) from exc

        log.info(
            "Page populated",
            extra={"extra_fields": {"page_id": page_id, "blocks": blocks_created}},
        )
        warnings = list(conversion.warnings) + schema.warnings
        return PageCreateResult(
            page_id=page_id,
            url=page.get("url", ""),
            title=resolved_title,
            blocks_created=blocks_created,
            conversion=conversion,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_page_to_markdown(
        self,
        page_id: str,
        *,
        options: ConversionOptions | dict[str, Any] | None = None,
    ) -> PageExportResult:
        """Fetch a page and its block tree and render it as Markdown."""
        opts = self._resolve_options(options)
        started = time.monotonic()

        page = await self._pages.retrieve(page_id)
        blocks = await self.fetch_block_tree(page_id)
        conversion = self._renderer.render(blocks, opts, page=page)

        elapsed_ms = (time.monotonic() - started) * 1000
        self._metrics.timing("notiondocs.page_export_duration_ms", elapsed_ms)
        log.info(
            "Page exported",
            extra={"extra_fields": {"page_id": page_id, "blocks": len(blocks)}},
        )
        return PageExportResult(
            page_id=page_id,
            markdown=conversion.markdown,
            page=page,
            conversion=conversion,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_page_metadata(
        self,
        page_id: str,
        metadata: PageMetadata | dict[str, Any],
    ) -> dict:
        """Update Description / Category / Tags / Status of a page.

        For pages in a database the payload is shaped per the detected field
        types and a type mismatch is retried once with fresh detection.
        """
        meta = _coerce_metadata(metadata)
        page = await self._pages.retrieve(page_id)
        parent = page.get("parent") or {}

        if parent.get("type") != "database_id":
            properties: dict[str, Any] = {}
            if meta.category:
                properties[CATEGORY_FIELD] = {"select": {"name": str(meta.category)}}
            if meta.tags:
                properties[TAGS_FIELD] = {"multi_select": [{"name": t} for t in meta.tags]}
            if meta.description:
                properties[DESCRIPTION_FIELD] = {
                    "rich_text": [{"text": {"content": meta.description}}],
                }
            if meta.status:
                properties[STATUS_FIELD] = {"select": {"name": meta.status}}
            return await self._pages.update(page_id, properties=properties)

        database_id = parent["database_id"]
        schema = self._operation_schema()

        async def attempt() -> dict:
            properties = await schema.build_metadata_properties(database_id, meta)
            return await self._pages.update(page_id, properties=properties)

        async def on_mismatch(exc: BaseException, attempt_no: int) -> None:
            self._metrics.increment(
                "notiondocs.schema_mismatch_total", tags={"database_id": database_id},
            )
            self._schema.invalidate(database_id)

        return await retry_with_predicate(
            attempt,
            should_retry=is_schema_mismatch,
            max_attempts=2,
            on_retry=on_mismatch,
        )

    async def update_page_content(
        self,
        page_id: str,
        *,
        markdown: str | None = None,
        file_path: str | None = None,
        options: ConversionOptions | dict[str, Any] | None = None,
    ) -> ContentUpdateResult:
        """Replace a database page's content by copy-then-archive.

        A new page with the same properties and the new blocks is created,
        then the original is archived.  If any step fails the new page is
        archived instead and the original is left untouched.

        Raises
        ------
        ValueError
            If the page does not live in a database.
        """
        source = await self._load_markdown(markdown, file_path)
        opts = self._resolve_options(options)

        current = await self._pages.retrieve(page_id)
        parent = current.get("parent") or {}
        if parent.get("type") != "database_id":
            raise ValueError("Can only update pages that are in a database")
        database_id = parent["database_id"]

        conversion = self._compiler.convert(source, opts)
        properties = writable_properties(current.get("properties") or {})
        new_page_id: str | None = None

        try:
            new_page = await self._pages.create(
                parent={"type": "database_id", "database_id": database_id},
                properties=properties,
            )
            new_page_id = new_page["id"]
            blocks_created = await self.append_blocks(new_page_id, conversion.blocks)
            await self._pages.archive(page_id)
        except NotionDocsError as exc:
            cleanup = await self._cleanup_page(new_page_id) if new_page_id is not None else None
            _annotate_failure(exc, new_page_id, cleanup)
            raise

        log.info(
            "Page content replaced",
            extra={
                "extra_fields": {
                    "old_page_id": page_id,
                    "new_page_id": new_page_id,
                    "title": page_title(current),
                }
            },
        )
        return ContentUpdateResult(
            old_page_id=page_id,
            new_page_id=new_page_id,
            url=new_page.get("url", ""),
            blocks_created=blocks_created,
            conversion=conversion,
        )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_pages(
        self,
        database_id: str,
        *,
        limit: int = 10,
        search: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        status: str | None = None,
        sort_by: str = "last_edited",
        sort_order: str = "descending",
        start_cursor: str | None = None,
    ) -> PageListResult:
        """Query a database with optional filters and one sort key.

        *limit* is capped at 100 per call; pass the returned
        ``next_cursor`` as *start_cursor* to continue.
        """
        if sort_order not in SORT_ORDERS:
            raise ValueError(f"sort_order must be one of {SORT_ORDERS}, got {sort_order!r}")

        title_field = await self._schema.title_property_name(database_id)
        response = await self._databases.query(
            database_id,
            filter=build_query_filter(
                title_field, search=search, category=category, tags=tags, status=status,
            ),
            sorts=build_query_sorts(title_field, sort_by, sort_order),
            start_cursor=start_cursor,
            page_size=max(1, min(limit, NOTION_MAX_PAGE_SIZE)),
        )
        return PageListResult(
            pages=response.get("results", []),
            has_more=bool(response.get("has_more", False)),
            next_cursor=response.get("next_cursor"),
        )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def submit_job(
        self,
        kind: JobKind | str,
        *,
        source_ref: str,
        target_ref: str,
        options: ConversionOptions | dict[str, Any] | None = None,
    ) -> SyncJob:
        """Start an import or export in the background.

        ``import``: *source_ref* is a Markdown file, *target_ref* a database.
        ``export``: *source_ref* is a page, *target_ref* a Markdown file.
        Must be called from a running event loop.
        """
        job = SyncJob(
            id=uuid.uuid4().hex,
            kind=JobKind(kind),
            source_ref=source_ref,
            target_ref=target_ref,
        )
        self._jobs[job.id] = job
        self._job_tasks[job.id] = asyncio.get_running_loop().create_task(
            self._run_job(job, options)
        )
        log.info(
            "Job submitted",
            extra={"extra_fields": {"job_id": job.id, "kind": job.kind.value}},
        )
        return job

    async def _run_job(
        self,
        job: SyncJob,
        options: ConversionOptions | dict[str, Any] | None,
    ) -> None:
        job.status = JobStatus.PROCESSING
        try:
            if job.kind is JobKind.IMPORT:
                job.result = await self.create_page_from_markdown(
                    job.target_ref, file_path=job.source_ref, options=options,
                )
            else:
                exported = await self.export_page_to_markdown(job.source_ref, options=options)
                await self._run_blocking(self._files.write_text, job.target_ref, exported.markdown)
                job.result = exported
        except (NotionDocsError, ValueError) as exc:
            job.status = JobStatus.FAILED
            job.error = str(exc)
            log.error(
                "Job failed",
                extra={"extra_fields": {"job_id": job.id, "error": job.error}},
            )
        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            job.error = "cancelled"
            raise
        else:
            job.status = JobStatus.COMPLETED
        finally:
            job.completed_at = datetime.now()
            self._job_tasks.pop(job.id, None)

    def get_job(self, job_id: str) -> SyncJob | None:
        return self._jobs.get(job_id)

    def list_jobs(self, status: JobStatus | str | None = None) -> list[SyncJob]:
        """Jobs in submission order, optionally only those in *status*."""
        if status is None:
            return list(self._jobs.values())
        wanted = JobStatus(status)
        return [job for job in self._jobs.values() if job.status is wanted]

    async def wait_for_job(self, job_id: str) -> SyncJob:
        """Await a job's completion and return it.

        Raises
        ------
        KeyError
            If no job has *job_id*.
        """
        job = self._jobs[job_id]
        task = self._job_tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return job

    def discard_job(self, job_id: str) -> bool:
        """Forget a job, cancelling it if still running.

        Returns ``False`` if the job was unknown.
        """
        job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        task = self._job_tasks.pop(job_id, None)
        if task is not None and not task.done():
            task.cancel()
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Cancel running jobs and close the HTTP transport."""
        pending = [task for task in self._job_tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._transport.close()

    async def __aenter__(self) -> AsyncNotionDocs:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
