"""Logging configuration for the web backend: rotating plain and JSONL logs."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, Optional

from flask import g, has_request_context


_LOG_CONFIGURED = False
_REQUEST_LOGGER_NAME = "webui.requests"
_DEFAULT_LOG_DIR = Path(__file__).resolve().parents[2] / "logs"
_COMPONENT = os.getenv("LOG_COMPONENT", "webui")
_MAX_MESSAGE_LENGTH = int(os.getenv("LOG_MAX_MESSAGE_LENGTH", "2000"))


def _resolve_level() -> int:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _truncate(value: str, limit: int) -> str:
    if limit <= 0 or len(value) <= limit:
        return value
    return f"{value[:limit]}...[truncated {len(value) - limit} chars]"


class CorrelationIdFilter(logging.Filter):
    """Stamp every record with the current request's correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard signature
        if getattr(record, "correlation_id", None):
            return True
        correlation_id: Optional[str] = None
        if has_request_context():
            correlation_id = getattr(g, "trace_id", None)
        record.correlation_id = correlation_id
        return True


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override signature
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%d %H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "component": getattr(record, "component", _COMPONENT),
            "correlation_id": getattr(record, "correlation_id", None),
            "message": _truncate(record.getMessage(), _MAX_MESSAGE_LENGTH),
        }
        if record.exc_info:
            payload["stack"] = self.formatException(record.exc_info)
        meta = getattr(record, "meta", None)
        if isinstance(meta, dict):
            payload["meta"] = meta
        return json.dumps(payload, ensure_ascii=False, default=str)


class PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override signature
        timestamp = self.formatTime(record, datefmt="%Y-%m-%d %H:%M:%S")
        parts = [timestamp, f"[{record.levelname}]", record.name]
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            parts.append(f"cid={correlation_id}")
        line = f"{' '.join(parts)} {_truncate(record.getMessage(), _MAX_MESSAGE_LENGTH)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _rotating_handler(path: Path, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        interval=1,
        backupCount=14,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())
    return handler


def setup_logging(log_dir: Path | None = None) -> None:
    """Initialize the backend logging stack exactly once."""

    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    level = _resolve_level()
    directory = Path(log_dir or os.getenv("LOG_DIR") or _DEFAULT_LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(PlainFormatter())
    console.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [
        console,
        _rotating_handler(directory / "webui.log", PlainFormatter(), level),
        _rotating_handler(directory / "webui.jsonl", JsonlFormatter(), level),
    ]

    logging.captureWarnings(True)
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))

    _LOG_CONFIGURED = True


def get_request_logger() -> logging.Logger:
    """Return the logger used for per-request summaries."""

    return logging.getLogger(_REQUEST_LOGGER_NAME)


__all__ = ["setup_logging", "get_request_logger"]
