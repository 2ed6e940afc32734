"""Per-request trace ids for the chat and model endpoints."""

from __future__ import annotations

import re
import time

from flask import Flask, Response, g, request

from webui.app.logging_setup import get_request_logger
from webui.logging_utils import new_request_id

TRACE_HEADER = "X-Request-Id"

# Client-supplied ids are echoed into headers and log lines.
_SAFE_TRACE_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _incoming_trace_id() -> str | None:
    candidate = (request.headers.get(TRACE_HEADER) or "").strip()
    if candidate and _SAFE_TRACE_ID.match(candidate):
        return candidate
    return None


def start_trace() -> None:
    g.trace_id = _incoming_trace_id() or new_request_id()
    g.started = time.perf_counter()


def finish_trace(response: Response) -> Response:
    trace_id = getattr(g, "trace_id", None)
    started = getattr(g, "started", None)
    elapsed_ms = int((time.perf_counter() - started) * 1000) if started is not None else None
    model = response.headers.get("X-LLM-Model")

    get_request_logger().info(
        "%s %s %s %sms%s",
        request.method,
        request.path,
        response.status_code,
        elapsed_ms,
        f" model={model}" if model else "",
        extra={
            "correlation_id": trace_id,
            "meta": {"status": response.status_code, "duration_ms": elapsed_ms, "model": model},
        },
    )
    if trace_id:
        response.headers[TRACE_HEADER] = trace_id
    return response


def install(app: Flask) -> None:
    app.before_request(start_trace)
    app.after_request(finish_trace)


__all__ = ["TRACE_HEADER", "finish_trace", "install", "start_trace"]
