"""Thin HTTP client around the Ollama REST API."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable, Iterator, Mapping

import requests
from bs4 import BeautifulSoup

from webui.app.llm.models import (
    ChatMessage,
    ChatMessageRole,
    ChatRequest,
    ChatResult,
    GenerateResult,
    LibraryModel,
    Model,
    ModelsProcessResponse,
    Options,
)
from webui.app.tools.specs import (
    ToolInvocationError,
    ToolNotFoundError,
    ToolRegistry,
    ToolResult,
    ToolsResult,
    ToolSpecification,
    parse_tool_calls,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://127.0.0.1:11434")
DEFAULT_TIMEOUT = 10.0
LIBRARY_URL = "https://ollama.com/library"

StreamHandler = Callable[[str], None]


class OllamaBaseError(RuntimeError):
    """Raised when the Ollama API cannot be reached or returns an error."""


class OllamaClient:
    """Minimal HTTP wrapper exposing chat, generate, tool and model helpers."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        request_timeout_seconds: float = DEFAULT_TIMEOUT,
        verbose: bool = False,
        auth: tuple[str, str] | None = None,
    ) -> None:
        base = (base_url or DEFAULT_OLLAMA_HOST).rstrip("/")
        self.base_url = base or "http://127.0.0.1:11434"
        self.request_timeout_seconds = float(request_timeout_seconds)
        self.verbose = verbose
        self.tool_registry = ToolRegistry()
        self._session = requests.Session()
        if auth is not None:
            self._session.auth = auth

    @property
    def host(self) -> str:
        return self.base_url

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose

    def set_request_timeout_seconds(self, seconds: float) -> None:
        self.request_timeout_seconds = float(seconds)

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------
    def _log_request(self, method: str, url: str, payload: Mapping[str, Any] | None) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        if payload is None:
            LOGGER.log(level, "ollama %s %s", method, url)
        else:
            LOGGER.log(level, "ollama %s %s payload=%s", method, url, json.dumps(payload, ensure_ascii=False)[:2000])

    def _send(
        self,
        method: str,
        path: str,
        *,
        payload: Mapping[str, Any] | None = None,
        stream: bool = False,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        self._log_request(method, url, payload)
        try:
            response = self._session.request(
                method,
                url,
                json=payload,
                stream=stream,
                timeout=self.request_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise OllamaBaseError(f"ollama {method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            body = response.text[:200]
            response.close()
            raise OllamaBaseError(f"ollama {method} {url} returned {response.status_code}: {body}")
        return response

    @staticmethod
    def _json(response: requests.Response, label: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise OllamaBaseError(f"ollama {label} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise OllamaBaseError(f"ollama {label} returned unexpected payload")
        return data

    @staticmethod
    def _iter_json_lines(response: requests.Response) -> Iterator[dict[str, Any]]:
        try:
            for raw_line in response.iter_lines():
                if not raw_line:
                    continue
                if isinstance(raw_line, bytes):
                    raw_line = raw_line.decode("utf-8", "replace")
                try:
                    chunk = json.loads(raw_line)
                except ValueError:
                    LOGGER.debug("Ignoring non-JSON stream chunk: %s", raw_line)
                    continue
                if isinstance(chunk, dict):
                    if chunk.get("error"):
                        raise OllamaBaseError(str(chunk["error"]))
                    yield chunk
        finally:
            response.close()

    # ------------------------------------------------------------------
    # Server and model inventory
    # ------------------------------------------------------------------
    def ping(self) -> bool:
        response = self._send("GET", "/api/tags")
        return response.status_code == 200

    def list_models(self) -> list[Model]:
        data = self._json(self._send("GET", "/api/tags"), "tags")
        raw = data.get("models")
        entries = raw if isinstance(raw, list) else []
        return [Model.from_payload(entry) for entry in entries if isinstance(entry, Mapping)]

    def ps(self) -> ModelsProcessResponse:
        data = self._json(self._send("GET", "/api/ps"), "ps")
        return ModelsProcessResponse.from_payload(data)

    def list_models_from_library(self, library_url: str = LIBRARY_URL) -> list[LibraryModel]:
        """Scrape the public model library listing."""

        try:
            response = self._session.get(library_url, timeout=self.request_timeout_seconds)
        except requests.RequestException as exc:
            raise OllamaBaseError(f"library request failed: {exc}") from exc
        if response.status_code >= 400:
            raise OllamaBaseError(f"library returned {response.status_code}")
        return parse_library_html(response.text)

    def pull_model(self, model_name: str) -> None:
        if not model_name:
            raise ValueError("model name is required")
        response = self._send("POST", "/api/pull", payload={"name": model_name, "stream": True}, stream=True)
        last_status = None
        for chunk in self._iter_json_lines(response):
            status = chunk.get("status")
            if status and status != last_status:
                LOGGER.info("pull %s: %s", model_name, status)
                last_status = status

    # ------------------------------------------------------------------
    # Chat and generate
    # ------------------------------------------------------------------
    def chat(self, request: ChatRequest, stream_handler: StreamHandler | None = None) -> ChatResult:
        request.stream = stream_handler is not None
        payload = request.to_payload()
        start = time.perf_counter()
        response = self._send("POST", "/api/chat", payload=payload, stream=request.stream)
        status_code = response.status_code
        if stream_handler is None:
            data = self._json(response, "chat")
            message = data.get("message") or {}
            content = message.get("content") if isinstance(message, Mapping) else None
            if not isinstance(content, str):
                raise OllamaBaseError("ollama chat returned no message content")
            reply = ChatMessage.from_payload(message)
        else:
            content = ""
            for chunk in self._iter_json_lines(response):
                message = chunk.get("message")
                if isinstance(message, Mapping):
                    delta = message.get("content")
                    if isinstance(delta, str) and delta:
                        content += delta
                        stream_handler(content)
            reply = ChatMessage(role=ChatMessageRole.ASSISTANT, content=content)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        history = list(request.messages)
        history.append(reply)
        return ChatResult(
            response=content,
            http_status_code=status_code,
            response_time=elapsed_ms,
            chat_history=history,
        )

    def generate(
        self,
        model: str,
        prompt: str,
        raw: bool = False,
        options: Options | None = None,
        stream_handler: StreamHandler | None = None,
    ) -> GenerateResult:
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "raw": raw,
            "stream": stream_handler is not None,
        }
        if options is not None and options.values:
            payload["options"] = options.to_payload()
        start = time.perf_counter()
        response = self._send("POST", "/api/generate", payload=payload, stream=stream_handler is not None)
        status_code = response.status_code
        if stream_handler is None:
            data = self._json(response, "generate")
            text = data.get("response")
            if not isinstance(text, str):
                raise OllamaBaseError("ollama generate returned no response text")
        else:
            text = ""
            for chunk in self._iter_json_lines(response):
                delta = chunk.get("response")
                if isinstance(delta, str) and delta:
                    text += delta
                    stream_handler(text)
        return GenerateResult(
            response=text,
            response_time=int((time.perf_counter() - start) * 1000),
            http_status_code=status_code,
        )

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------
    def register_tool(self, spec: ToolSpecification) -> None:
        self.tool_registry.add(spec)

    def generate_with_tools(self, model: str, prompt: str, options: Options | None = None) -> ToolsResult:
        """Ask ``model`` to pick tools for ``prompt`` and run the ones it names."""

        model_result = self.generate(model, prompt, raw=True, options=options)
        result = ToolsResult(model_result=model_result)
        try:
            calls = parse_tool_calls(model_result.response)
        except ValueError:
            LOGGER.warning("model %s returned no usable tool calls", model, exc_info=True)
            return result
        for call in calls:
            result.tool_results.append(
                ToolResult(
                    function_name=call.name,
                    function_arguments=call.arguments,
                    result=self._invoke_tool(call.name, call.arguments),
                )
            )
        return result

    def _invoke_tool(self, name: str, arguments: Mapping[str, Any]) -> Any:
        function = self.tool_registry.get(name)
        if function is None:
            raise ToolNotFoundError(f"No such tool: {name}")
        LOGGER.debug("invoking tool %s with %s", name, dict(arguments))
        try:
            return function(arguments)
        except ToolInvocationError:
            raise
        except Exception as exc:
            raise ToolInvocationError(f"Failed to invoke tool {name}: {exc}") from exc


def parse_library_html(html: str) -> list[LibraryModel]:
    """Extract model cards from the library listing page."""

    soup = BeautifulSoup(html, "html.parser")
    models: list[LibraryModel] = []
    for item in soup.select("li[x-test-model]"):
        link = item.find("a", href=True)
        title = item.select_one("[x-test-search-response-title]") or item.find("h2")
        name = title.get_text(strip=True) if title else ""
        if not name and link is not None:
            name = str(link["href"]).rstrip("/").rsplit("/", 1)[-1]
        if not name:
            continue
        description_node = item.find("p")
        pull_count = item.select_one("[x-test-pull-count]")
        tag_count = item.select_one("[x-test-tag-count]")
        updated = item.select_one("[x-test-updated]")
        tags = [node.get_text(strip=True) for node in item.select("[x-test-size], [x-test-capability]")]
        try:
            total_tags = int(tag_count.get_text(strip=True)) if tag_count else 0
        except ValueError:
            total_tags = 0
        models.append(
            LibraryModel(
                name=name,
                description=description_node.get_text(" ", strip=True) if description_node else "",
                pull_count=pull_count.get_text(strip=True) if pull_count else "",
                total_tags=total_tags,
                popular_tags=[tag for tag in tags if tag],
                last_updated=updated.get_text(strip=True) if updated else "",
            )
        )
    return models


__all__ = [
    "DEFAULT_OLLAMA_HOST",
    "DEFAULT_TIMEOUT",
    "LIBRARY_URL",
    "OllamaBaseError",
    "OllamaClient",
    "StreamHandler",
    "parse_library_html",
]
