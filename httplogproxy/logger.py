"""JSON logging with optional request context."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional


class JsonFormatter(logging.Formatter):
    """Formats records as single-line JSON objects, including the caller."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname.lower(),
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "func": record.funcName,
            "file": f"{record.pathname}:{record.lineno}",
        }
        if hasattr(record, "req_id"):
            entry["req_id"] = record.req_id
        return json.dumps(entry, default=str)


logger = logging.getLogger("httplogproxy")
logger.setLevel(logging.DEBUG)
if not logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(JsonFormatter())
    logger.addHandler(_handler)


def with_context(ctx: Optional[Mapping[str, Any]]) -> logging.LoggerAdapter:
    """Return a logger carrying the request id held in *ctx*, if any."""
    if ctx is None:
        return logging.LoggerAdapter(logger, {})
    return logging.LoggerAdapter(logger, {"req_id": ctx.get("X-Request-Id")})