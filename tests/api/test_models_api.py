from __future__ import annotations

from concurrent.futures import Future
from pathlib import Path

import pytest

from webui.app import create_app
from webui.app.config import AppConfig
from webui.app.data import ConnectionInfo, ModelItem, ModelListItem
from webui.app.llm.models import LibraryModel, ModelsProcessResponse
from webui.app.llm.ollama_client import OllamaBaseError


class _FakeService:
    def __init__(self) -> None:
        self.down = False
        self.pulled: list[str] = []

    def get_model_items(self) -> list[ModelItem]:
        if self.down:
            raise OllamaBaseError("refused")
        return [ModelItem("llama3:8b", "8b")]

    def get_image_model_items(self) -> list[ModelItem]:
        return [ModelItem("llava", "latest")]

    def get_models(self) -> list[ModelListItem]:
        return [ModelListItem("llama3", "llama3:8b", "20 May, 2024 05:12 PM", "abc", "4 GB")]

    def list_library_models(self) -> list[LibraryModel]:
        return [LibraryModel(name="phi3", total_tags=4)]

    def pull_model(self, name: str) -> Future:
        self.pulled.append(name)
        future: Future = Future()
        future.set_result(None)
        return future

    def is_connected(self) -> bool:
        return not self.down

    def get_connection_info(self) -> ConnectionInfo:
        if self.down:
            return ConnectionInfo.NOT_AVAILABLE
        ps = ModelsProcessResponse.from_payload({"models": [{"name": "llama3:8b"}]})
        return ConnectionInfo("Connected", ps, host="http://ollama.local")


@pytest.fixture
def service() -> _FakeService:
    return _FakeService()


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, service: _FakeService):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("OLLAMA_URL", "http://ollama.local/")
    app = create_app(AppConfig.from_env(), chat_service=service)
    app.testing = True
    return app.test_client()


def test_model_items(client) -> None:
    response = client.get("/api/models")

    assert response.status_code == 200
    assert response.get_json() == {"models": [{"name": "llama3:8b", "version": "8b"}]}


def test_model_items_upstream_failure(client, service: _FakeService) -> None:
    service.down = True

    response = client.get("/api/models")

    assert response.status_code == 502
    assert response.get_json()["error"] == "ollama_unavailable"


def test_image_models_and_model_list(client) -> None:
    assert client.get("/api/models/images").get_json()["models"] == [{"name": "llava", "version": "latest"}]
    listed = client.get("/api/models/list").get_json()["models"][0]
    assert listed["size"] == "4 GB"
    assert listed["model"] == "llama3:8b"


def test_library_models(client) -> None:
    models = client.get("/api/models/library").get_json()["models"]

    assert models[0]["name"] == "phi3"
    assert models[0]["total_tags"] == 4


def test_pull_accepts_and_returns_immediately(client, service: _FakeService) -> None:
    response = client.post("/api/models/pull", json={"name": " phi3 "})

    assert response.status_code == 202
    assert response.get_json() == {"started": True, "model": "phi3"}
    assert service.pulled == ["phi3"]


def test_pull_requires_name(client) -> None:
    response = client.post("/api/models/pull", json={})

    assert response.status_code == 400


def test_connection_status(client, service: _FakeService) -> None:
    body = client.get("/api/connection").get_json()

    assert body["connected"] is True
    assert body["status"] == "Connected"
    assert body["host"] == "http://ollama.local"
    assert body["models"][0]["name"] == "llama3:8b"

    service.down = True
    body = client.get("/api/connection").get_json()
    assert body == {"status": "Not available", "available": False, "host": "localhost", "models": [], "connected": False}


def test_health(client) -> None:
    assert client.get("/health").get_json() == {"ok": True}


def test_request_id_is_echoed_or_generated(client) -> None:
    echoed = client.get("/health", headers={"X-Request-Id": "ui-42"})
    replaced = client.get("/health", headers={"X-Request-Id": "bad id with spaces"})

    assert echoed.headers["X-Request-Id"] == "ui-42"
    assert replaced.headers["X-Request-Id"].startswith("req_")
