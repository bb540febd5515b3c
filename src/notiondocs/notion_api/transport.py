"""Async HTTP transport for the Notion API.

Every request goes through the same lifecycle:

1. Acquire a token-bucket slot (wait if needed).
2. Send the HTTP request with auth and version headers.
3. On ``2xx`` -- return the parsed JSON response.
4. On ``429`` -- honour ``Retry-After``, sleep, and retry.
5. On ``5xx`` / network error -- back off and retry, but only when
   ``retry_server_errors`` is enabled.
6. On any other ``4xx`` -- raise the matching typed error immediately.  A
   ``400`` whose message says a property "is expected to be" something
   else becomes :class:`SchemaMismatchError`.
7. On max attempts exceeded -- raise :class:`RateLimitError` (for 429) or
   :class:`RetryExhaustedError`.
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from typing import Any

import httpx

from notiondocs.config import NOTION_MAX_PAGE_SIZE, NotionDocsConfig
from notiondocs.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteRequestError,
    RemoteValidationError,
    RetryExhaustedError,
    SchemaMismatchError,
)
from notiondocs.observability import NoopMetricsHook, get_logger
from notiondocs.utils.redact import redact

from .rate_limit import AsyncTokenBucket
from .retries import compute_backoff, is_retryable_status, should_retry

log = get_logger("notiondocs.transport")

SCHEMA_MISMATCH_MARKER = "is expected to be"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _response_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`RemoteRequestError` subclass matching a failed
    response that will not be retried.
    """
    status = response.status_code
    body = _response_body(response)
    notion_message = body.get("message", response.text[:500])
    notion_code = body.get("code", "")
    ctx: dict[str, Any] = {
        "status_code": status,
        "notion_code": notion_code,
        "method": method,
        "path": path,
    }

    if status == 400:
        if SCHEMA_MISMATCH_MARKER in notion_message:
            raise SchemaMismatchError(
                message=f"Property type mismatch on {method} {path}: {notion_message}",
                context=ctx,
            )
        raise RemoteValidationError(
            message=f"Validation error on {method} {path}: {notion_message}",
            context={**ctx, "body": body},
        )
    if status == 401:
        raise AuthError(
            message=f"Authentication failed on {method} {path}: {notion_message}",
            context=ctx,
        )
    if status == 403:
        raise PermissionDeniedError(
            message=f"Permission denied on {method} {path}: {notion_message}",
            context=ctx,
        )
    if status == 404:
        raise NotFoundError(
            message=f"Resource not found on {method} {path}: {notion_message}",
            context=ctx,
        )
    if status == 429:
        raise RateLimitError(
            message=f"Rate limited on {method} {path}: {notion_message}",
            context={**ctx, "retry_after_seconds": _parse_retry_after(response)},
        )

    raise RemoteRequestError(
        message=f"Request failed with status {status} on {method} {path}: {notion_message}",
        context=ctx,
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
    token: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump, token), indent=2, default=str),
        file=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class AsyncNotionTransport:
    """Asynchronous HTTP transport with auth, retry, and rate limiting.

    Parameters
    ----------
    config:
        A :class:`NotionDocsConfig` controlling all transport behaviour.
    client:
        Optional pre-built ``httpx.AsyncClient``; mainly for tests using
        ``httpx.MockTransport``.  Auth headers are still set on it.
    """

    def __init__(
        self,
        config: NotionDocsConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._bucket = AsyncTokenBucket(rate_rps=config.rate_limit_rps)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

        headers = {
            "Authorization": f"Bearer {config.token}",
            "Notion-Version": config.notion_version,
            "Content-Type": "application/json",
        }
        if client is None:
            client = httpx.AsyncClient(
                base_url=config.base_url,
                headers=headers,
                timeout=httpx.Timeout(config.timeout_seconds),
                proxy=config.http_proxy,
            )
        else:
            client.headers.update(headers)
        self._client = client

    @property
    def config(self) -> NotionDocsConfig:
        return self._config

    # -- internals ---------------------------------------------------------

    def _backoff(self, attempt: int, retry_after: float | None = None) -> float:
        return compute_backoff(
            attempt,
            base=self._config.retry_base_delay,
            maximum=self._config.retry_max_delay,
            jitter=self._config.retry_jitter,
            retry_after=retry_after,
        )

    def _emit_debug_dump(self, method: str, response: httpx.Response, payload: Any) -> None:
        if not self._config.debug_dump_payload:
            return
        try:
            resp_body = response.json()
        except ValueError:
            resp_body = response.text[:1000]
        _dump_payload(
            method, str(response.url), payload,
            response.status_code, resp_body,
            token=self._config.token,
        )

    # -- public API --------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an HTTP request against the Notion API.

        Parameters
        ----------
        method:
            HTTP method (``GET``, ``POST``, ``PATCH``, ``DELETE``).
        path:
            API path relative to ``base_url`` (e.g. ``/pages``).
        **kwargs:
            Forwarded to :meth:`httpx.AsyncClient.request`; ``json=`` for
            bodies and ``params=`` for query strings.

        Returns
        -------
        dict
            Parsed JSON response body (``{}`` for empty responses).

        Raises
        ------
        SchemaMismatchError
            On a 400 reporting a property type mismatch.
        RemoteValidationError
            On any other 400.
        AuthError, PermissionDeniedError, NotFoundError
            On 401, 403 and 404.
        RateLimitError
            When 429 responses outlast ``retry_max_attempts``.
        RetryExhaustedError
            When retried 5xx responses outlast ``retry_max_attempts``.
        NetworkError
            On transport-level failures that are not (or no longer) retried.
        """
        max_attempts = max(self._config.retry_max_attempts, 1)
        retry_server_errors = self._config.retry_server_errors
        json_payload = kwargs.get("json")
        last_status: int | None = None

        for attempt in range(max_attempts):
            wait = await self._bucket.acquire()
            if wait > 0:
                self._metrics.timing(
                    "notiondocs.rate_limit_wait_ms",
                    wait * 1000,
                    tags={"method": method, "path": path},
                )

            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                self._metrics.increment(
                    "notiondocs.requests_total",
                    tags={"method": method, "path": path, "status": "error"},
                )
                log.warning(
                    "Request network error",
                    extra={
                        "extra_fields": {
                            "op": "request",
                            "method": method,
                            "path": path,
                            "attempt": attempt + 1,
                            "error": str(exc),
                        }
                    },
                )
                if not should_retry(
                    None, exc, attempt, max_attempts,
                    retry_server_errors=retry_server_errors,
                ):
                    raise NetworkError(
                        message=f"Network error on {method} {path}: {exc}",
                        context={"url": path, "attempt": attempt + 1},
                        cause=exc,
                    ) from exc
                self._metrics.increment(
                    "notiondocs.retries_total",
                    tags={"method": method, "path": path, "reason": "network_error"},
                )
                await asyncio.sleep(self._backoff(attempt))
                continue

            elapsed_ms = (time.monotonic() - t0) * 1000
            status = response.status_code
            last_status = status

            self._metrics.increment(
                "notiondocs.requests_total",
                tags={"method": method, "path": path, "status": str(status)},
            )
            self._metrics.timing(
                "notiondocs.request_duration_ms",
                elapsed_ms,
                tags={"method": method, "path": path, "status": str(status)},
            )
            self._emit_debug_dump(method, response, json_payload)

            if 200 <= status < 300:
                if status == 204 or not response.content:
                    return {}
                result: dict = response.json()
                return result

            if not is_retryable_status(status, retry_server_errors=retry_server_errors):
                raise_for_status(response, method, path)

            retry_after: float | None = None
            reason = "server_error"
            if status == 429:
                retry_after = _parse_retry_after(response)
                reason = "rate_limited"
                self._metrics.increment(
                    "notiondocs.rate_limited_total",
                    tags={"method": method, "path": path},
                )
                log.warning(
                    "Rate limited by Notion API",
                    extra={
                        "extra_fields": {
                            "op": "request",
                            "method": method,
                            "path": path,
                            "status_code": 429,
                            "retry_after": retry_after,
                            "attempt": attempt + 1,
                        }
                    },
                )

            if not should_retry(
                status, None, attempt, max_attempts,
                retry_server_errors=retry_server_errors,
            ):
                if status == 429:
                    raise RateLimitError(
                        message=(
                            f"Rate limited on {method} {path} after "
                            f"{max_attempts} attempts"
                        ),
                        context={
                            "retry_after_seconds": retry_after,
                            "attempt": attempt + 1,
                            "method": method,
                            "path": path,
                        },
                    )
                break

            self._metrics.increment(
                "notiondocs.retries_total",
                tags={"method": method, "path": path, "reason": reason},
            )
            await asyncio.sleep(self._backoff(attempt, retry_after))

        raise RetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context={"attempts": max_attempts, "last_status_code": last_status},
        )

    async def request_page(
        self,
        method: str,
        path: str,
        cursor: str | None = None,
        page_size: int = NOTION_MAX_PAGE_SIZE,
        **kwargs: Any,
    ) -> dict:
        """Fetch one page of a paginated list endpoint.

        ``start_cursor`` / ``page_size`` go in the JSON body for ``POST``
        and ``PATCH`` and in the query string otherwise.
        """
        if method.upper() in ("POST", "PATCH"):
            body: dict = dict(kwargs.pop("json", None) or {})
            body["page_size"] = page_size
            if cursor is not None:
                body["start_cursor"] = cursor
            kwargs["json"] = body
        else:
            params: dict = dict(kwargs.pop("params", None) or {})
            params["page_size"] = page_size
            if cursor is not None:
                params["start_cursor"] = cursor
            kwargs["params"] = params
        return await self.request(method, path, **kwargs)

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncNotionTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
