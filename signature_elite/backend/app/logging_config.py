# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .middleware.request_context import current_context

# extras services attach with log.info(..., extra={...})
EXTRA_FIELDS = (
    "user_email",
    "user_id",
    "property_id",
    "offer_id",
    "event",
    "method",
    "path",
    "status_code",
    "latency_ms",
)

QUIET_LOGGERS = {
    "sqlalchemy.engine": "SQL_LOG_LEVEL",
    "httpx": "HTTPX_LOG_LEVEL",
    "httpcore": "HTTPX_LOG_LEVEL",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request context first, record extras win."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = current_context()
        if ctx is not None:
            payload.update(ctx.log_fields())

        for k in EXTRA_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload re-imports the app; drop handlers from the previous run
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    # the request context middleware already writes an access line
    logging.getLogger("uvicorn.access").setLevel("WARNING")
    for name, env in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel((os.getenv(env) or "WARNING").upper())
