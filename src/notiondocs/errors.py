"""Error hierarchy for notiondocs.

Every error raised by the library inherits from :class:`NotionDocsError`
and carries a machine-readable ``code`` (an :class:`ErrorCode`), a
human-readable ``message``, a structured ``context`` dict and an optional
chained ``cause``.

Three families sit under the base class:

* parse and conversion errors, raised while turning Markdown into blocks
  or blocks into Markdown;
* remote request errors, raised by the Notion transport and the
  orchestrator (a property type mismatch is one of these);
* :class:`FileAccessError`, raised by the local file reader.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    PARSE_ERROR = "PARSE_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    UNSUPPORTED_BLOCK = "UNSUPPORTED_BLOCK"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    REMOTE_ERROR = "REMOTE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILE_ACCESS_ERROR = "FILE_ACCESS_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionDocsError(Exception):
    """Base exception for all notiondocs errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Structured diagnostic data.  Keys are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Parse / conversion errors
# ---------------------------------------------------------------------------

class ParseError(NotionDocsError):
    """The Markdown tokenizer itself failed.

    Malformed inline constructs never raise this; they degrade to text.

    Context keys: ``input_length``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PARSE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ConversionError(NotionDocsError):
    """Base class for errors during Markdown/Notion conversion."""

    def __init__(
        self,
        code: str = ErrorCode.CONVERSION_ERROR,
        message: str = "Conversion error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class UnsupportedBlockError(ConversionError):
    """A node or block has no counterpart and the policy is ``"error"``.

    Context keys: ``node_type`` (compile) or ``block_id``/``block_type``
    (render).
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNSUPPORTED_BLOCK,
            message=message,
            context=context,
            cause=cause,
        )


class LimitExceededError(ConversionError):
    """Content exceeds a hard Notion limit, e.g. 2000 characters of code.

    Always fatal to the conversion, whatever the unsupported-block policy.

    Context keys: ``length``, ``limit``, ``language``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.LIMIT_EXCEEDED,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Remote request errors
# ---------------------------------------------------------------------------

class RemoteRequestError(NotionDocsError):
    """A call to the Notion API failed.

    When raised by an orchestrator operation that had already created a
    page, ``context`` carries ``page_id``, ``page_created`` and
    ``cleanup_succeeded`` and the message states both outcomes.

    Context keys: ``status_code``, ``method``, ``path``, plus the cleanup
    keys above where relevant.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.REMOTE_ERROR,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            context=context,
            cause=cause,
        )


class SchemaMismatchError(RemoteRequestError):
    """Notion rejected a property value because its shape does not match
    the field's type (``"... is expected to be ..."``).

    Context keys: ``status_code``, ``database_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.SCHEMA_MISMATCH)


class RemoteValidationError(RemoteRequestError):
    """Notion API returned 400 for a reason other than a type mismatch."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.VALIDATION_ERROR)


class AuthError(RemoteRequestError):
    """Notion API returned 401; the integration token is invalid."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.AUTH_ERROR)


class PermissionDeniedError(RemoteRequestError):
    """Notion API returned 403; the integration lacks access."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.PERMISSION_ERROR)


class NotFoundError(RemoteRequestError):
    """Notion API returned 404."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.NOT_FOUND)


class RateLimitError(RemoteRequestError):
    """Notion API returned 429.

    Context keys: ``retry_after_seconds``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.RATE_LIMITED)


class RetryExhaustedError(RemoteRequestError):
    """Every transport-level retry was used up.

    Context keys: ``attempts``, ``last_status_code``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.RETRY_EXHAUSTED)


class NetworkError(RemoteRequestError):
    """Timeout, DNS or connection failure.

    Context keys: ``url``, ``attempt``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context, cause, code=ErrorCode.NETWORK_ERROR)


# ---------------------------------------------------------------------------
# Local file errors
# ---------------------------------------------------------------------------

class FileAccessError(NotionDocsError):
    """A local path was rejected or could not be read.

    Context keys: ``path``, ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.FILE_ACCESS_ERROR,
            message=message,
            context=context,
            cause=cause,
        )
