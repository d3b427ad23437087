"""JSON logging for guestlens.

Each record is one JSON line, so a wedding's upload and moderation history
can be filtered by ``image_id``, ``filename`` or ``error_code`` in whatever
log viewer the site is hosted behind.  Structured fields go through
:func:`guestlens.utils.redact` before they are written: the wedding auth
key, admin passwords and session tokens never reach the log, and image
payloads appear only as their size.

A moderation decision looks like::

    {"ts": "2025-06-14T18:02:11.507+00:00", "level": "INFO",
     "logger": "guestlens.moderation", "message": "Moderation decision recorded",
     "image_id": "41", "decision": "rejected", "admin_id": "1",
     "storage_deleted": true}

Each subsystem logs under its own name (``guestlens.upload``,
``guestlens.submission``, ``guestlens.moderation`` ...)::

    log = get_logger("guestlens.carousel")
    log.info("Carousel image added", extra={"extra_fields": {"carousel_id": "c1"}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from guestlens.utils.redact import redact


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON object.

    ``ts``, ``level``, ``logger`` and ``message`` are always present; the
    redacted ``extra_fields`` are merged alongside them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        fields: dict[str, Any] | None = getattr(record, "extra_fields", None)
        if fields:
            entry.update(redact(fields))

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


_configured: set[str] = set()


def get_logger(
    name: str = "guestlens",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
) -> logging.Logger:
    """Return the JSON logger for *name*, attaching its handler once.

    *level* accepts a level number or a name such as ``"info"``; *stream*
    defaults to ``sys.stderr``.  Only the first call for a name configures
    it, so modules can call this at import time.
    """
    logger = logging.getLogger(name)
    if name in _configured:
        return logger

    logger.setLevel(logging.getLevelName(level.upper()) if isinstance(level, str) else level)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    # Records would otherwise also reach root handlers and print twice.
    logger.propagate = False
    _configured.add(name)
    return logger
