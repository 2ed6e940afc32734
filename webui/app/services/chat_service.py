"""Chat session state and model inventory helpers backing the web UI."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

from webui.app.data import (
    ConnectionInfo,
    ModelItem,
    ModelListItem,
    byte_count_to_display_size,
    format_modified_at,
)
from webui.app.llm.models import (
    ChatMessage,
    ChatMessageRole,
    ChatRequestBuilder,
    LibraryModel,
    OptionsBuilder,
)
from webui.app.llm.ollama_client import OllamaBaseError, OllamaClient, StreamHandler
from webui.app.tools.database_query import DB_QUERY_MARKER, DatabaseQueryToolSpec
from webui.app.tools.specs import PromptBuilder, ToolInvocationError
from webui.json_logger import log_event

LOGGER = logging.getLogger(__name__)

IMAGE_MODELS: tuple[ModelItem, ...] = (ModelItem("llava", "latest"),)
DB_QUERY_DEMO_PROMPT = "Give me the details of the employee named 'Rahul Kumar'?"
DB_QUERY_TIMEOUT_SECONDS = 60


class ChatServiceError(RuntimeError):
    """Raised when a chat round trip with the model server fails."""


class ChatService:
    """Hold one conversation and forward it to the Ollama client."""

    def __init__(
        self,
        client: OllamaClient,
        *,
        employee_db_path: str | Path | None = None,
    ) -> None:
        self._client = client
        self._employee_db_path = employee_db_path
        self._messages: list[ChatMessage] = []
        self._lock = threading.Lock()
        self._pull_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-pull")

    @property
    def messages(self) -> list[ChatMessage]:
        with self._lock:
            return list(self._messages)

    def clear_messages(self) -> None:
        with self._lock:
            self._messages.clear()

    # ------------------------------------------------------------------
    # Model inventory
    # ------------------------------------------------------------------
    def list_library_models(self) -> list[LibraryModel]:
        return self._client.list_models_from_library()

    def get_model_items(self) -> list[ModelItem]:
        return [ModelItem(model.name, model.model_version) for model in self._client.list_models()]

    def get_image_model_items(self) -> list[ModelItem]:
        return list(IMAGE_MODELS)

    def get_models(self) -> list[ModelListItem]:
        return [
            ModelListItem(
                name=model.model_name,
                model=model.model,
                modified_at=format_modified_at(model.modified_at),
                digest=model.digest,
                size=byte_count_to_display_size(model.size),
            )
            for model in self._client.list_models()
        ]

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------
    def ask(self, message: str, model: str, stream_handler: StreamHandler | None = None) -> None:
        if DB_QUERY_MARKER in message:
            self.tool_calling_db_query(message, model, stream_handler, "")
            return
        self._chat(message, model, stream_handler)

    def ask_with_images(
        self,
        message: str,
        image_files: Sequence[str | Path],
        model: str,
        stream_handler: StreamHandler | None = None,
    ) -> None:
        self._chat(message, model, stream_handler, image_files=image_files)

    def _chat(
        self,
        message: str,
        model: str,
        stream_handler: StreamHandler | None,
        *,
        image_files: Sequence[str | Path] | None = None,
    ) -> None:
        try:
            request = (
                ChatRequestBuilder.get_instance(model)
                .with_messages(self.messages)
                .with_message(ChatMessageRole.USER, message, image_files=image_files)
                .build()
            )
            result = self._client.chat(request, stream_handler)
        except (OllamaBaseError, OSError) as exc:
            log_event("ERROR", "chat.ask.error", model=model, error=exc.__class__.__name__, error_msg=str(exc))
            raise ChatServiceError(f"chat with {model} failed: {exc}") from exc
        with self._lock:
            self._messages = list(result.chat_history)
        log_event(
            "INFO",
            "chat.ask",
            model=model,
            duration_ms=result.response_time,
            history=len(result.chat_history),
            images=len(image_files or ()),
        )

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def is_connected(self) -> bool:
        try:
            return self._client.ping()
        except OllamaBaseError:
            LOGGER.debug("ollama ping failed", exc_info=True)
        return False

    def get_connection_info(self) -> ConnectionInfo:
        try:
            return ConnectionInfo("Connected", self._client.ps(), host=self._client.host)
        except OllamaBaseError:
            # Status is simply unavailable while the server is down.
            LOGGER.debug("ollama ps failed", exc_info=True)
        return ConnectionInfo.NOT_AVAILABLE

    def pull_model(self, model_name: str) -> Future[None]:
        """Start pulling ``model_name`` in the background and return immediately."""

        future = self._pull_executor.submit(self._client.pull_model, model_name)
        future.add_done_callback(lambda done: self._log_pull_outcome(model_name, done))
        return future

    @staticmethod
    def _log_pull_outcome(model_name: str, future: Future[None]) -> None:
        exc = future.exception()
        if exc is None:
            log_event("INFO", "models.pull.done", model=model_name)
            return
        LOGGER.error("pull of %s failed: %s", model_name, exc)
        log_event("ERROR", "models.pull.error", model=model_name, error=exc.__class__.__name__, error_msg=str(exc))

    def shutdown(self) -> None:
        self._pull_executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Tool calling
    # ------------------------------------------------------------------
    def tool_calling_db_query(
        self,
        message: str,
        model: str,
        stream_handler: StreamHandler | None,
        db_url: str = "",
    ) -> None:
        self._client.set_verbose(False)
        self._client.set_request_timeout_seconds(DB_QUERY_TIMEOUT_SECONDS)

        spec = DatabaseQueryToolSpec.get_specification(db_url or self._employee_db_path)
        self._client.register_tool(spec)

        prompt = PromptBuilder().with_tool_specification(spec).with_prompt(DB_QUERY_DEMO_PROMPT).build()
        LOGGER.debug("db query triggered by message %r", message)
        try:
            result = self._client.generate_with_tools(model, prompt, OptionsBuilder().build())
        except (OllamaBaseError, ToolInvocationError):
            LOGGER.exception("database query tool call with %s failed", model)
            return
        for tool_result in result.tool_results:
            rendered = str(tool_result.result)
            if stream_handler is not None:
                stream_handler(rendered)
            LOGGER.info("[Result of executing tool '%s']: %s", tool_result.function_name, rendered)


__all__ = [
    "ChatService",
    "ChatServiceError",
    "DB_QUERY_DEMO_PROMPT",
    "IMAGE_MODELS",
]
