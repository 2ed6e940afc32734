"""ChatService behaviour against a stub Ollama client."""

from __future__ import annotations

import base64
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from webui.app.data import ConnectionInfo, ModelItem
from webui.app.llm.models import (
    ChatMessage,
    ChatMessageRole,
    ChatRequest,
    ChatResult,
    GenerateResult,
    Model,
    ModelsProcessResponse,
)
from webui.app.llm.ollama_client import OllamaBaseError, OllamaClient
from webui.app.services.chat_service import DB_QUERY_DEMO_PROMPT, ChatService, ChatServiceError
from webui.app.tools.specs import ToolResult, ToolsResult


class _StubClient:
    host = "http://ollama.local"

    def __init__(self) -> None:
        self.chat_requests: list[ChatRequest] = []
        self.registered: list[Any] = []
        self.tool_prompts: list[tuple[str, str]] = []
        self.pulled: list[str] = []
        self.verbose = True
        self.timeout = 10.0
        self.fail_with: Exception | None = None

    def chat(self, request: ChatRequest, stream_handler=None) -> ChatResult:  # type: ignore[no-untyped-def]
        if self.fail_with is not None:
            raise self.fail_with
        self.chat_requests.append(request)
        reply = f"reply {len(self.chat_requests)}"
        if stream_handler is not None:
            stream_handler(reply)
        history = list(request.messages) + [ChatMessage(ChatMessageRole.ASSISTANT, reply)]
        return ChatResult(response=reply, http_status_code=200, response_time=5, chat_history=history)

    def list_models(self) -> list[Model]:
        return [
            Model(
                name="llama3:8b",
                model="llama3:8b",
                modified_at=datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc),
                size=4_661_224_676,
                digest="sha256:abc",
            )
        ]

    def ping(self) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        return True

    def ps(self) -> ModelsProcessResponse:
        if self.fail_with is not None:
            raise self.fail_with
        return ModelsProcessResponse.from_payload({"models": [{"name": "llama3:8b"}]})

    def pull_model(self, name: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.pulled.append(name)

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose

    def set_request_timeout_seconds(self, seconds: float) -> None:
        self.timeout = seconds

    def register_tool(self, spec) -> None:  # type: ignore[no-untyped-def]
        self.registered.append(spec)

    def generate_with_tools(self, model: str, prompt: str, options=None) -> ToolsResult:  # type: ignore[no-untyped-def]
        if self.fail_with is not None:
            raise self.fail_with
        self.tool_prompts.append((model, prompt))
        spec = self.registered[-1]
        arguments = {"employee-name": "Rahul Kumar"}
        return ToolsResult(
            model_result=GenerateResult(response="[]", response_time=1, http_status_code=200),
            tool_results=[ToolResult(spec.prompt_name, arguments, spec.tool_function(arguments))],
        )


@pytest.fixture
def client() -> _StubClient:
    return _StubClient()


@pytest.fixture
def service(client: _StubClient, tmp_path: Path) -> ChatService:
    svc = ChatService(client, employee_db_path=tmp_path / "employees.sqlite3")  # type: ignore[arg-type]
    yield svc
    svc.shutdown()


def test_ask_sends_history_and_replaces_it(service: ChatService, client: _StubClient) -> None:
    seen: list[str] = []

    service.ask("first", "llama3", seen.append)
    service.ask("second", "llama3", seen.append)

    assert seen == ["reply 1", "reply 2"]
    second = client.chat_requests[1]
    assert [(m.role, m.content) for m in second.messages] == [
        (ChatMessageRole.USER, "first"),
        (ChatMessageRole.ASSISTANT, "reply 1"),
        (ChatMessageRole.USER, "second"),
    ]
    assert [m.content for m in service.messages] == ["first", "reply 1", "second", "reply 2"]


def test_ask_wraps_client_errors(service: ChatService, client: _StubClient) -> None:
    client.fail_with = OllamaBaseError("down")

    with pytest.raises(ChatServiceError) as excinfo:
        service.ask("hello", "llama3", None)
    assert isinstance(excinfo.value.__cause__, OllamaBaseError)
    assert service.messages == []


def test_clear_messages(service: ChatService) -> None:
    service.ask("hello", "llama3", None)

    service.clear_messages()

    assert service.messages == []


def test_ask_with_images_encodes_files(service: ChatService, client: _StubClient, tmp_path: Path) -> None:
    image = tmp_path / "cat.png"
    image.write_bytes(b"\x89PNG fake")

    service.ask_with_images("What is this?", [image], "llava", None)

    user_message = client.chat_requests[0].messages[-1]
    assert user_message.images == [base64.b64encode(b"\x89PNG fake").decode("ascii")]


def test_db_query_marker_routes_to_tool_call(service: ChatService, client: _StubClient) -> None:
    seen: list[str] = []

    service.ask("【数据查询】 who is Rahul?", "mistral", seen.append)

    assert client.chat_requests == []
    assert client.verbose is False
    assert client.timeout == 60
    assert client.registered[0].function_name == "database-query-tool"
    model, prompt = client.tool_prompts[0]
    assert model == "mistral"
    assert DB_QUERY_DEMO_PROMPT in prompt
    assert seen == ["Employee Details {ID: 1, Name: Rahul Kumar, Address: King St, Hyderabad, India, Phone: 9876543210}"]


def test_db_query_failures_are_logged_not_raised(service: ChatService, client: _StubClient) -> None:
    client.fail_with = OllamaBaseError("timeout")
    seen: list[str] = []

    service.tool_calling_db_query("【数据查询】", "mistral", seen.append)

    assert seen == []


def test_model_items_and_list_items(service: ChatService) -> None:
    assert service.get_model_items() == [ModelItem("llama3:8b", "8b")]
    assert service.get_image_model_items() == [ModelItem("llava", "latest")]

    (item,) = service.get_models()
    assert item.name == "llama3"
    assert item.model == "llama3:8b"
    assert item.digest == "sha256:abc"
    assert item.size == "4 GB"
    assert "2024" in item.modified_at


def test_connection_checks_swallow_errors(service: ChatService, client: _StubClient) -> None:
    assert service.is_connected() is True
    info = service.get_connection_info()
    assert info.status == "Connected"
    assert info.host == "http://ollama.local"

    client.fail_with = OllamaBaseError("refused")

    assert service.is_connected() is False
    assert service.get_connection_info() is ConnectionInfo.NOT_AVAILABLE


def test_pull_model_runs_in_background(service: ChatService, client: _StubClient) -> None:
    future = service.pull_model("phi3")

    assert future.result(timeout=5) is None
    assert client.pulled == ["phi3"]


def test_pull_model_failure_does_not_reach_caller(service: ChatService, client: _StubClient) -> None:
    client.fail_with = OllamaBaseError("no such model")

    future = service.pull_model("ghost")

    assert isinstance(future.exception(timeout=5), OllamaBaseError)


class _GenerateResponse:
    status_code = 200
    text = ""

    def __init__(self, payload: dict[str, Any]) -> None:
        self._payload = payload

    def json(self) -> dict[str, Any]:
        return self._payload

    def close(self) -> None:
        pass


class _ToolCallingSession:
    """Answers every /api/generate call with a request for the employee tool."""

    auth = None

    def __init__(self) -> None:
        self.prompts: list[str] = []

    def request(self, method: str, url: str, json: Any = None, stream: bool = False, timeout: float = 0):
        self.prompts.append(json["prompt"])
        answer = '[TOOL_CALLS] [{"name": "get-employee-details", "arguments": {"employee-name": "Rahul Kumar"}}]'
        return _GenerateResponse({"response": answer})


def _employee_db(path: Path, address: str) -> Path:
    with sqlite3.connect(path) as conn:
        conn.execute(
            "CREATE TABLE employees (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, address TEXT, phone TEXT)"
        )
        conn.execute("INSERT INTO employees (name, address, phone) VALUES (?, ?, ?)", ("Rahul Kumar", address, "555"))
    return path


def test_db_query_dispatches_to_latest_database(tmp_path: Path) -> None:
    first_db = _employee_db(tmp_path / "first.sqlite3", "FIRST DB")
    second_db = _employee_db(tmp_path / "second.sqlite3", "SECOND DB")
    client = OllamaClient("http://ollama.local")
    session = _ToolCallingSession()
    client._session = session  # type: ignore[assignment]
    svc = ChatService(client)
    seen: list[str] = []

    try:
        svc.tool_calling_db_query("【数据查询】", "mistral", seen.append, db_url=str(first_db))
        svc.tool_calling_db_query("【数据查询】", "mistral", seen.append, db_url=str(second_db))
    finally:
        svc.shutdown()

    assert len(session.prompts) == 2
    assert "FIRST DB" in seen[0]
    assert "SECOND DB" in seen[1]
    assert client.tool_registry.get("get-employee-details") is client.tool_registry.get("database-query-tool")
