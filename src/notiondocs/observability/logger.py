"""JSON-lines logging for notiondocs.

Each record becomes one JSON object on a single line::

    {"ts": "2026-01-04T09:30:00.000000+00:00", "level": "INFO",
     "logger": "notiondocs.orchestrator", "message": "page populated",
     "page_id": "abc123", "blocks": 250}

Structured fields ride along through ``extra``::

    log = get_logger("notiondocs.schema")
    log.warning("field missing", extra={"extra_fields": {"field": "Tags"}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Render a :class:`logging.LogRecord` as a single-line JSON object.

    Guaranteed keys are ``ts``, ``level``, ``logger`` and ``message``.
    Anything passed as ``extra={"extra_fields": {...}}`` is merged into the
    top level; exception and stack information are added when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if extra_fields is not None:
            entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


# One handler per logger name, so repeated lookups never stack handlers.
_configured_loggers: set[str] = set()


def get_logger(
    name: str = "notiondocs",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Return a logger that writes JSON lines.

    Parameters
    ----------
    name:
        Logger name, conventionally ``"notiondocs.<area>"``.
    level:
        Initial level, as an ``int`` or a case-insensitive level name.
    stream:
        Handler stream.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        The configured logger.  Calling again with the same *name* returns
        the same object without adding another handler.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
        logger.setLevel(resolved)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.propagate = False

        _configured_loggers.add(name)

    return logger
