"""Structured logging for the chat API.

Every record is one JSON line on stdout. Per-turn identifiers (``bot_id``,
``session_id``) are lifted out of the record context to top-level keys so
log queries can filter a whole conversation without parsing nested fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

PROMOTED_FIELDS = ("bot_id", "session_id")
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        for name in PROMOTED_FIELDS:
            if name in context:
                entry[name] = context.pop(name)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for local runs (``DEBUG=true``)."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"aibot.{name}")


class ContextLogger(logging.LoggerAdapter):
    """Logger carrying fixed context; per-call fields go in ``context=``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        call_context: Optional[dict] = kwargs.pop("context", None)
        merged = {**(self.extra or {}), **(call_context or {})}
        if merged:
            kwargs["extra"] = {**kwargs.get("extra", {}), "context": merged}
        return msg, kwargs

    def bind(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**(self.extra or {}), **fields})


def turn_logger(logger: logging.Logger, bot_id: str, session_id: str) -> ContextLogger:
    return ContextLogger(logger, {"bot_id": bot_id, "session_id": session_id})
