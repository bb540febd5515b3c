"""Retry decisions, backoff, and operation-level retry.

Two layers of retry exist:

* the transport asks :func:`should_retry` after every failed HTTP attempt
  and sleeps for :func:`compute_backoff` seconds before the next one;
* the orchestrator wraps whole operations in :func:`retry_with_predicate`,
  which re-runs a coroutine when a caller-supplied predicate accepts the
  raised error (a property type mismatch, in practice).
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from notiondocs.errors import SchemaMismatchError
from notiondocs.observability import get_logger

log = get_logger("notiondocs.retries")

T = TypeVar("T")

_RATE_LIMIT_STATUS = 429

_SERVER_ERROR_STATUSES: frozenset[int] = frozenset({500, 502, 503, 504})

_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def is_retryable_status(status_code: int, *, retry_server_errors: bool = False) -> bool:
    """``429`` always; ``5xx`` only when *retry_server_errors* is set."""
    if status_code == _RATE_LIMIT_STATUS:
        return True
    return retry_server_errors and status_code in _SERVER_ERROR_STATUSES


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
    *,
    retry_server_errors: bool = False,
) -> bool:
    """Decide whether a request should be retried.

    Parameters
    ----------
    status_code:
        HTTP status code from the response, or ``None`` if the request never
        received a response.
    exception:
        The exception that was raised, or ``None`` if a response was received.
    attempt:
        The current attempt number (0-indexed).
    max_attempts:
        Maximum total attempts allowed (including the initial request).
    retry_server_errors:
        Treat ``5xx`` responses and network failures as retryable.

    Returns
    -------
    bool
        ``True`` if the request should be retried; ``False`` otherwise.
    """
    if attempt + 1 >= max_attempts:
        return False

    if exception is not None:
        return retry_server_errors and isinstance(exception, _RETRYABLE_EXCEPTIONS)

    if status_code is not None:
        return is_retryable_status(status_code, retry_server_errors=retry_server_errors)

    return False


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Compute the delay before the next retry attempt.

    A server-provided ``Retry-After`` value is used as is (capped at
    *maximum*).  Otherwise the delay is ``base * 2^attempt`` capped at
    *maximum*.  With *jitter* the delay is scaled to between 50 % and 100 %
    of that value.

    Parameters
    ----------
    attempt:
        The current attempt number (0-indexed).
    base:
        Base delay in seconds for exponential backoff.
    maximum:
        Maximum delay cap in seconds.
    jitter:
        Whether to apply random jitter.
    retry_after:
        Value of the ``Retry-After`` header (in seconds), if present.

    Returns
    -------
    float
        Delay in seconds before the next retry should be issued.
    """
    if retry_after is not None:
        return min(max(retry_after, 0.0), maximum)

    delay = min(base * (2 ** attempt), maximum)
    if jitter:
        delay *= 0.5 + random.random() * 0.5
    return delay


def is_schema_mismatch(exc: BaseException) -> bool:
    return isinstance(exc, SchemaMismatchError)


async def retry_with_predicate(
    fn: Callable[[], Awaitable[T]],
    *,
    should_retry: Callable[[BaseException], bool],
    max_attempts: int = 2,
    on_retry: Callable[[BaseException, int], Awaitable[Any]] | None = None,
) -> T:
    """Await ``fn()``, running it again when *should_retry* accepts the error.

    Parameters
    ----------
    fn:
        Zero-argument coroutine factory.  Called once per attempt.
    should_retry:
        Predicate over the raised exception.
    max_attempts:
        Total attempts, including the first.
    on_retry:
        Awaited with ``(exc, attempt)`` before each re-run, e.g. to refresh
        cached state the next attempt depends on.

    Returns
    -------
    T
        The first successful result.

    Raises
    ------
    Exception
        The last error, unchanged, once the predicate rejects it or the
        attempts run out.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= max_attempts or not should_retry(exc):
                raise
            log.warning(
                "Retrying operation",
                extra={
                    "extra_fields": {
                        "op": "retry",
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error": type(exc).__name__,
                    }
                },
            )
            if on_retry is not None:
                await on_retry(exc, attempt)
            attempt += 1
