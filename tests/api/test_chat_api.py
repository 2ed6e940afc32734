from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest

from webui.app import create_app
from webui.app.config import AppConfig
from webui.app.llm.models import ChatMessage, ChatMessageRole
from webui.app.services.chat_service import ChatServiceError


class _FakeChatService:
    def __init__(self) -> None:
        self.asked: list[tuple[str, str]] = []
        self.image_calls: list[tuple[str, list[bytes], str]] = []
        self.messages: list[ChatMessage] = []
        self.fail = False
        self.cleared = False

    def ask(self, message: str, model: str, stream_handler) -> None:  # type: ignore[no-untyped-def]
        if self.fail:
            raise ChatServiceError("chat with llama3 failed: down")
        self.asked.append((message, model))
        if "【数据查询】" in message:
            stream_handler("Employee Details {ID: 1}")
            stream_handler("Employee Details {ID: 2}")
            return
        stream_handler("Hel")
        stream_handler("Hello")
        self.messages = [
            ChatMessage(ChatMessageRole.USER, message),
            ChatMessage(ChatMessageRole.ASSISTANT, "Hello"),
        ]

    def ask_with_images(self, message: str, image_files, model: str, stream_handler) -> None:  # type: ignore[no-untyped-def]
        self.image_calls.append((message, [Path(path).read_bytes() for path in image_files], model))
        stream_handler("A cat")
        self.messages = [ChatMessage(ChatMessageRole.USER, message, images=["aW1n"])]

    def clear_messages(self) -> None:
        self.cleared = True
        self.messages = []


def _config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        ollama_url="http://ollama.local",
        request_timeout_seconds=5.0,
        verbose=False,
        default_chat_model="llama3",
        ollama_username=None,
        ollama_password=None,
        data_dir=tmp_path / "data",
        logs_dir=tmp_path / "logs",
        employee_db_path=tmp_path / "data" / "employees.sqlite3",
        upload_dir=tmp_path / "data" / "uploads",
        max_image_bytes=1024,
        cors_origins=("http://localhost:3100",),
    )


@pytest.fixture
def service() -> _FakeChatService:
    return _FakeChatService()


@pytest.fixture
def client(tmp_path: Path, service: _FakeChatService):
    app = create_app(_config(tmp_path), chat_service=service)
    app.testing = True
    return app.test_client()


def test_ask_returns_final_answer(client, service: _FakeChatService) -> None:
    response = client.post("/api/chat/ask", json={"message": "  hi  "})

    assert response.status_code == 200
    body = response.get_json()
    assert body == {"model": "llama3", "answer": "Hello", "history": 2}
    assert service.asked == [("hi", "llama3")]
    assert response.headers["X-LLM-Model"] == "llama3"
    assert response.headers["X-Request-Id"]


def test_ask_joins_tool_results(client) -> None:
    response = client.post("/api/chat/ask", json={"message": "【数据查询】", "model": "mistral"})

    assert response.get_json()["answer"] == "Employee Details {ID: 1}\nEmployee Details {ID: 2}"


def test_ask_rejects_empty_message(client) -> None:
    response = client.post("/api/chat/ask", json={"message": "   "})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_request"


def test_ask_surfaces_service_errors(client, service: _FakeChatService) -> None:
    service.fail = True

    response = client.post("/api/chat/ask", json={"message": "hi"})

    assert response.status_code == 502
    assert response.get_json()["error"] == "chat_failed"


def test_ask_streams_ndjson_events(client) -> None:
    response = client.post("/api/chat/ask", json={"message": "hi", "stream": "true"})

    assert response.mimetype == "application/x-ndjson"
    events: list[dict[str, Any]] = [json.loads(line) for line in response.data.decode("utf-8").splitlines()]
    assert [event["event"] for event in events] == ["chat.metadata", "chat.delta", "chat.delta", "chat.done"]
    assert events[0]["data"]["model"] == "llama3"
    assert events[2]["data"]["content"] == "Hello"
    assert events[-1]["data"]["history"] == 2


def test_stream_reports_errors_as_events(client, service: _FakeChatService) -> None:
    service.fail = True

    response = client.post("/api/chat/ask", json={"message": "hi", "stream": True})

    names = [json.loads(line)["event"] for line in response.data.decode("utf-8").splitlines()]
    assert names == ["chat.metadata", "chat.error", "chat.done"]


def test_ask_with_images_uploads_files(client, service: _FakeChatService) -> None:
    response = client.post(
        "/api/chat/ask-with-images",
        data={"message": "What is this?", "images": (io.BytesIO(b"png-bytes"), "cat.png")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert response.get_json()["answer"] == "A cat"
    assert service.image_calls == [("What is this?", [b"png-bytes"], "llava")]


def test_ask_with_images_enforces_size_limit(client) -> None:
    response = client.post(
        "/api/chat/ask-with-images",
        data={"message": "big", "images": (io.BytesIO(b"x" * 2048), "big.png")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 413


def test_history_hides_image_payloads(client) -> None:
    client.post(
        "/api/chat/ask-with-images",
        data={"message": "What is this?", "images": (io.BytesIO(b"png"), "cat.png")},
        content_type="multipart/form-data",
    )

    response = client.get("/api/chat/history")

    assert response.get_json() == {"messages": [{"role": "user", "content": "What is this?", "images": 1}]}


def test_clear_resets_history(client, service: _FakeChatService) -> None:
    response = client.post("/api/chat/clear")

    assert response.status_code == 204
    assert service.cleared is True
