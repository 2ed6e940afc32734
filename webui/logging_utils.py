"""NDJSON telemetry sink for chat, model and request events."""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from webui.app.config import REPO_ROOT, resolve_path

LOGGER = logging.getLogger(__name__)

EVENTS_FILENAME = "events.ndjson"
SERVICE_NAME = "ollama_webui"
TEXT_PREVIEW_CHARS = int(os.getenv("TELEMETRY_TEXT_PREVIEW", "120"))

# Credentials that may show up in config summaries or example settings.
SECRET_KEYS = {
    "authorization",
    "ollama_password",
    "password",
    "cb_cluster_password",
}
# Chat payload fields that carry user text or base64 image data.
CHAT_TEXT_KEYS = {"message", "prompt", "content", "answer"}
IMAGE_KEYS = {"images"}

_write_lock = threading.Lock()


def events_path() -> Path:
    """Telemetry file location, from ``TELEMETRY_DIR`` or ``data/telemetry``."""

    directory = resolve_path(os.getenv("TELEMETRY_DIR"), REPO_ROOT / "data" / "telemetry")
    return directory / EVENTS_FILENAME


def console_enabled() -> bool:
    return os.getenv("LOG_EVENTS_CONSOLE", "1").strip().lower() in {"1", "true", "yes", "on"}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_request_id() -> str:
    return "req_" + uuid.uuid4().hex[:10]


def scrub(value: Any) -> Any:
    """Mask secrets and shrink chat text and images before they hit disk."""

    if isinstance(value, Mapping):
        cleaned: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key).lower()
            if name in SECRET_KEYS:
                cleaned[str(key)] = "***"
            elif name in IMAGE_KEYS and isinstance(item, (list, tuple)):
                cleaned[str(key)] = {"count": len(item)}
            elif name in CHAT_TEXT_KEYS and isinstance(item, str):
                cleaned[str(key)] = {"chars": len(item), "preview": item[:TEXT_PREVIEW_CHARS]}
            else:
                cleaned[str(key)] = scrub(item)
        return cleaned
    if isinstance(value, (list, tuple, set)):
        return [scrub(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def append_event(event: dict[str, Any]) -> None:
    """Write one event line; console echo is controlled by ``LOG_EVENTS_CONSOLE``."""

    event.setdefault("ts", utc_timestamp())
    event.setdefault("service", SERVICE_NAME)
    if "meta" in event:
        event["meta"] = scrub(event["meta"])
    line = json.dumps(event, ensure_ascii=False, default=str)
    path = events_path()
    try:
        with _write_lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
    except OSError:
        LOGGER.warning("could not append telemetry event to %s", path, exc_info=True)
    if console_enabled():
        sys.stdout.write(f"[{event.get('level', 'INFO')}] {event.get('event')}\n")


__all__ = [
    "SERVICE_NAME",
    "append_event",
    "console_enabled",
    "events_path",
    "new_request_id",
    "scrub",
    "utc_timestamp",
]
