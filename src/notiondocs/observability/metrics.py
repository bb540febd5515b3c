"""Metrics hook protocol and its no-op default.

The client reports counters and timings through whatever object is set as
``NotionDocsConfig.metrics``.  Anything with ``increment``, ``timing`` and
``gauge`` methods works; :class:`NoopMetricsHook` is used otherwise.

Metric names emitted:

* ``notiondocs.requests_total`` -- counter
* ``notiondocs.retries_total`` -- counter
* ``notiondocs.rate_limited_total`` -- counter
* ``notiondocs.request_duration_ms`` -- timing
* ``notiondocs.blocks_created_total`` -- counter
* ``notiondocs.schema_mismatch_total`` -- counter
* ``notiondocs.cleanup_total`` -- counter
* ``notiondocs.page_export_duration_ms`` -- timing
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Structural type for a metrics backend.

    *tags* are plain string pairs; backends map them onto their own labels.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Add *value* to the counter *name*."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set the gauge *name* to *value*."""
        ...


class NoopMetricsHook:
    """Discards every data point."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
