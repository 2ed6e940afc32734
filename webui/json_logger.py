"""``log_event`` helper used by the chat service and the HTTP handlers."""

from __future__ import annotations

from typing import Any, Mapping

from webui.logging_utils import append_event

# Scalar fields emitted by chat turns, model pulls and upstream failures.
EVENT_FIELDS = frozenset(
    {
        "model",
        "history",
        "images",
        "duration_ms",
        "error",
        "error_msg",
    }
)


def log_event(
    level: str,
    event: str,
    *,
    trace: str | None = None,
    msg: str | None = None,
    meta: Mapping[str, Any] | None = None,
    **fields: Any,
) -> None:
    """Record ``event`` in the telemetry file.

    Known scalar ``fields`` stay at the top level so the file can be grepped by
    model or error; anything else is folded into ``meta``.
    """

    record: dict[str, Any] = {"level": level.upper(), "event": event}
    if trace:
        record["trace_id"] = trace
    if msg is not None:
        record["msg"] = msg

    extra = dict(meta or {})
    for key, value in fields.items():
        if key in EVENT_FIELDS and (value is None or isinstance(value, (str, int, float, bool))):
            record[key] = int(value) if key == "duration_ms" and isinstance(value, float) else value
        else:
            extra[key] = value
    if extra:
        record["meta"] = extra

    append_event(record)


__all__ = ["EVENT_FIELDS", "log_event"]
