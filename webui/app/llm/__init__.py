"""Ollama client and the value objects it exchanges."""

from __future__ import annotations

from .models import (
    ChatMessage,
    ChatMessageRole,
    ChatRequest,
    ChatRequestBuilder,
    ChatResult,
    GenerateResult,
    LibraryModel,
    Model,
    ModelProcess,
    ModelsProcessResponse,
    Options,
    OptionsBuilder,
)
from .ollama_client import OllamaBaseError, OllamaClient, StreamHandler

__all__ = [
    "ChatMessage",
    "ChatMessageRole",
    "ChatRequest",
    "ChatRequestBuilder",
    "ChatResult",
    "GenerateResult",
    "LibraryModel",
    "Model",
    "ModelProcess",
    "ModelsProcessResponse",
    "OllamaBaseError",
    "OllamaClient",
    "Options",
    "OptionsBuilder",
    "StreamHandler",
]
