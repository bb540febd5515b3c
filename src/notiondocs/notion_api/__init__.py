"""notiondocs.notion_api -- Notion API transport and endpoint wrappers.

This sub-package provides:

* :mod:`.rate_limit` -- Async token bucket rate limiter.
* :mod:`.retries` -- Retry decisions, backoff, and operation-level retry.
* :mod:`.transport` -- HTTP transport with auth, retries, and rate limiting.
* :mod:`.pages` -- Page API wrapper.
* :mod:`.blocks` -- Block API wrapper.
* :mod:`.databases` -- Database API wrapper.
"""

from __future__ import annotations

from .blocks import AsyncBlockAPI
from .databases import AsyncDatabaseAPI
from .pages import AsyncPageAPI
from .rate_limit import AsyncTokenBucket
from .retries import compute_backoff, is_schema_mismatch, retry_with_predicate, should_retry
from .transport import AsyncNotionTransport

__all__ = [
    "AsyncBlockAPI",
    "AsyncDatabaseAPI",
    "AsyncNotionTransport",
    "AsyncPageAPI",
    "AsyncTokenBucket",
    "compute_backoff",
    "is_schema_mismatch",
    "retry_with_predicate",
    "should_retry",
]
