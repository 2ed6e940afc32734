"""Chat endpoints wrapping the shared :class:`ChatService`."""

from __future__ import annotations

import json
import queue
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterator

from flask import Blueprint, Response, current_app, g, jsonify, request, stream_with_context
from pydantic import ValidationError
from werkzeug.utils import secure_filename

from webui.app.api.schemas import AskRequest
from webui.app.services.chat_service import ChatService, ChatServiceError
from webui.app.tools.database_query import DB_QUERY_MARKER
from webui.json_logger import log_event

bp = Blueprint("chat_api", __name__, url_prefix="/api/chat")

_DONE = object()


def _service() -> ChatService:
    service = current_app.config.get("CHAT_SERVICE")
    if service is None:
        raise RuntimeError("CHAT_SERVICE missing from app config")
    return service


def _default_model() -> str:
    config = current_app.config.get("APP_CONFIG")
    return getattr(config, "default_chat_model", None) or "llama3"


class _Collector:
    """Record every value the service pushes through its stream handler."""

    def __init__(self) -> None:
        self.updates: list[str] = []

    def __call__(self, text: str) -> None:
        self.updates.append(text)

    def answer(self, *, tool_call: bool) -> str:
        if not self.updates:
            return ""
        if tool_call:
            return "\n".join(self.updates)
        # Chat updates carry the accumulated reply so far.
        return self.updates[-1]


def _envelope(name: str, payload: dict[str, Any]) -> bytes:
    return (json.dumps({"event": name, "data": payload}, ensure_ascii=False) + "\n").encode("utf-8")


def _stream_ask(service: ChatService, message: str, model: str) -> Response:
    updates: "queue.Queue[Any]" = queue.Queue()
    trace_id = getattr(g, "trace_id", None)

    def _worker() -> None:
        try:
            service.ask(message, model, updates.put)
        except ChatServiceError as exc:
            updates.put(exc)
        finally:
            updates.put(_DONE)

    threading.Thread(target=_worker, name="chat-stream", daemon=True).start()

    def _events() -> Iterator[bytes]:
        yield _envelope("chat.metadata", {"model": model, "trace_id": trace_id})
        while True:
            item = updates.get()
            if item is _DONE:
                break
            if isinstance(item, Exception):
                yield _envelope("chat.error", {"error": "chat_failed", "message": str(item)})
                continue
            yield _envelope("chat.delta", {"type": "text", "content": str(item)})
        yield _envelope("chat.done", {"history": len(service.messages)})

    resp = Response(stream_with_context(_events()), mimetype="application/x-ndjson")
    resp.headers["X-LLM-Model"] = model
    return resp


def _validation_error(exc: ValidationError) -> tuple[Response, int]:
    return jsonify({"error": "invalid_request", "detail": exc.errors(include_url=False, include_context=False)}), 400


@bp.post("/ask")
def chat_ask() -> Any:
    try:
        payload = AskRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return _validation_error(exc)

    service = _service()
    model = payload.model or _default_model()
    if payload.stream:
        return _stream_ask(service, payload.message, model)

    collector = _Collector()
    try:
        service.ask(payload.message, model, collector)
    except ChatServiceError as exc:
        return jsonify({"error": "chat_failed", "message": str(exc)}), 502
    answer = collector.answer(tool_call=DB_QUERY_MARKER in payload.message)
    resp = jsonify({"model": model, "answer": answer, "history": len(service.messages)})
    resp.headers["X-LLM-Model"] = model
    return resp


@bp.post("/ask-with-images")
def chat_ask_with_images() -> Any:
    message = (request.form.get("message") or "").strip()
    if not message:
        return jsonify({"error": "message_required"}), 400
    model = (request.form.get("model") or "").strip() or "llava"
    uploads = [item for item in request.files.getlist("images") if item and item.filename]
    if not uploads:
        return jsonify({"error": "images_required"}), 400

    config = current_app.config.get("APP_CONFIG")
    max_bytes = getattr(config, "max_image_bytes", 10 * 1024 * 1024)
    upload_root = getattr(config, "upload_dir", None)
    if upload_root is not None:
        Path(upload_root).mkdir(parents=True, exist_ok=True)

    service = _service()
    collector = _Collector()
    with tempfile.TemporaryDirectory(dir=upload_root) as scratch:
        paths: list[Path] = []
        for index, upload in enumerate(uploads):
            data = upload.read()
            if len(data) > max_bytes:
                return jsonify({"error": "image_too_large", "filename": upload.filename}), 413
            target = Path(scratch) / f"{index}-{secure_filename(upload.filename) or 'image'}"
            target.write_bytes(data)
            paths.append(target)
        try:
            service.ask_with_images(message, paths, model, collector)
        except ChatServiceError as exc:
            return jsonify({"error": "chat_failed", "message": str(exc)}), 502

    log_event("INFO", "chat.images", trace=getattr(g, "trace_id", None), model=model, images=len(paths))
    return jsonify({"model": model, "answer": collector.answer(tool_call=False), "history": len(service.messages)})


@bp.post("/clear")
def chat_clear() -> Any:
    _service().clear_messages()
    return "", 204


@bp.get("/history")
def chat_history() -> Any:
    messages = [message.to_payload() for message in _service().messages]
    for entry in messages:
        if "images" in entry:
            entry["images"] = len(entry["images"])
    return jsonify({"messages": messages})


__all__ = ["bp"]
