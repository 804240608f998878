# backend/rentledger/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .config import settings
from .middleware.request_id import get_request_id

# ledger context a caller may attach with logging's extra=
LEDGER_FIELDS = ("tenant_id", "month", "year", "record_id", "transaction_id", "kind")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ledger fields are copied over when present."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "env": settings.app_env,
            "message": record.getMessage(),
        }

        rid = get_request_id()
        if rid:
            line["request_id"] = rid

        line.update({k: getattr(record, k) for k in LEDGER_FIELDS if hasattr(record, k)})

        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)

        # dates and Decimals from ORM rows fall back to str
        return json.dumps(line, ensure_ascii=False, default=str)


def _level(var: str, default: str) -> str:
    return (os.getenv(var) or default).upper()


def configure_logging() -> None:
    """Route everything through a single stdout handler (safe to call twice)."""
    level = _level("LOG_LEVEL", "INFO")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(_level("SQL_LOG_LEVEL", "WARNING"))
