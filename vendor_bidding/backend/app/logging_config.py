# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import settings
from .middleware.request_id import get_request_id

# extras copied into the JSON line when a caller sets them; all scalars
STRUCTURED_FIELDS = (
    "event",
    "user_id",
    "role",
    "project_id",
    "bid_id",
    "document_id",
    "channel",
    "method",
    "path",
    "status_code",
    "latency_ms",
)

# chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
_QUIET = ("celery", "kombu", "urllib3", "minio", "multipart")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, env, message, request_id
    (while a request is in flight), exc_info, plus any STRUCTURED_FIELDS set
    through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "env": settings.app_env,
            "message": record.getMessage(),
        }

        rid = getattr(record, "request_id", None) or get_request_id()
        if rid:
            payload["request_id"] = rid

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in STRUCTURED_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v if isinstance(v, (str, int, float, bool)) else str(v)

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str | None = None) -> None:
    level = (level or settings.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload re-imports the app; drop handlers from the previous import
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel((settings.sql_log_level or "WARNING").upper())
    if level != "DEBUG":
        for name in _QUIET:
            logging.getLogger(name).setLevel(logging.WARNING)
