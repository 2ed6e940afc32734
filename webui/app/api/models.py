"""Endpoints exposing the Ollama model inventory and connection status."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from pydantic import ValidationError

from webui.app.api.schemas import PullRequest
from webui.app.llm.ollama_client import OllamaBaseError
from webui.app.services.chat_service import ChatService
from webui.json_logger import log_event

bp = Blueprint("models_api", __name__, url_prefix="/api")


def _service() -> ChatService:
    service = current_app.config.get("CHAT_SERVICE")
    if service is None:
        raise RuntimeError("CHAT_SERVICE missing from app config")
    return service


def _upstream_error(exc: OllamaBaseError) -> tuple[Any, int]:
    log_event(
        "WARNING",
        "models.upstream_error",
        trace=getattr(g, "trace_id", None),
        error=exc.__class__.__name__,
        error_msg=str(exc),
    )
    return jsonify({"error": "ollama_unavailable", "message": str(exc)}), 502


@bp.get("/models")
def list_model_items() -> Any:
    try:
        items = _service().get_model_items()
    except OllamaBaseError as exc:
        return _upstream_error(exc)
    return jsonify({"models": [item.to_dict() for item in items]})


@bp.get("/models/images")
def list_image_model_items() -> Any:
    return jsonify({"models": [item.to_dict() for item in _service().get_image_model_items()]})


@bp.get("/models/list")
def list_models() -> Any:
    try:
        items = _service().get_models()
    except OllamaBaseError as exc:
        return _upstream_error(exc)
    return jsonify({"models": [item.to_dict() for item in items]})


@bp.get("/models/library")
def list_library_models() -> Any:
    try:
        models = _service().list_library_models()
    except OllamaBaseError as exc:
        return _upstream_error(exc)
    return jsonify({"models": [model.to_dict() for model in models]})


@bp.post("/models/pull")
def pull_model() -> Any:
    try:
        payload = PullRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return jsonify({"error": "invalid_request", "detail": exc.errors(include_url=False, include_context=False)}), 400
    _service().pull_model(payload.name)
    log_event("INFO", "models.pull.start", trace=getattr(g, "trace_id", None), model=payload.name)
    return jsonify({"started": True, "model": payload.name}), 202


@bp.get("/connection")
def connection() -> Any:
    service = _service()
    info = service.get_connection_info()
    payload = info.to_dict()
    payload["connected"] = service.is_connected()
    return jsonify(payload)


__all__ = ["bp"]
