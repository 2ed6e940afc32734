"""Value objects exchanged with the Ollama REST API."""

from __future__ import annotations

import base64
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse Ollama timestamps, which carry nanosecond fractions."""

    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ChatMessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(slots=True)
class ChatMessage:
    role: ChatMessageRole
    content: str
    images: list[str] | None = None
    tool_calls: list[dict[str, Any]] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.images:
            payload["images"] = list(self.images)
        if self.tool_calls:
            payload["tool_calls"] = list(self.tool_calls)
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChatMessage":
        role_raw = str(payload.get("role") or ChatMessageRole.ASSISTANT.value).lower()
        try:
            role = ChatMessageRole(role_raw)
        except ValueError:
            role = ChatMessageRole.ASSISTANT
        images = payload.get("images")
        tool_calls = payload.get("tool_calls")
        return cls(
            role=role,
            content=str(payload.get("content") or ""),
            images=list(images) if isinstance(images, list) and images else None,
            tool_calls=list(tool_calls) if isinstance(tool_calls, list) and tool_calls else None,
        )


@dataclass(slots=True)
class Options:
    """Model parameters forwarded as the ``options`` field of a request."""

    values: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return dict(self.values)


class OptionsBuilder:
    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def set_temperature(self, value: float) -> "OptionsBuilder":
        self._values["temperature"] = value
        return self

    def set_num_ctx(self, value: int) -> "OptionsBuilder":
        self._values["num_ctx"] = value
        return self

    def set_top_k(self, value: int) -> "OptionsBuilder":
        self._values["top_k"] = value
        return self

    def set_top_p(self, value: float) -> "OptionsBuilder":
        self._values["top_p"] = value
        return self

    def set_seed(self, value: int) -> "OptionsBuilder":
        self._values["seed"] = value
        return self

    def set_custom_option(self, name: str, value: Any) -> "OptionsBuilder":
        if not isinstance(value, (int, float, str, bool)):
            raise ValueError(f"Invalid type for option {name!r}: {type(value).__name__}")
        self._values[name] = value
        return self

    def build(self) -> Options:
        return Options(values=dict(self._values))


def encode_image_file(path: str | Path) -> str:
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


@dataclass(slots=True)
class ChatRequest:
    model: str
    messages: list[ChatMessage]
    options: Options | None = None
    stream: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_payload() for message in self.messages],
            "stream": self.stream,
        }
        if self.options is not None and self.options.values:
            payload["options"] = self.options.to_payload()
        return payload


class ChatRequestBuilder:
    """Fluent builder mirroring how chat requests are assembled in the UI."""

    def __init__(self, model: str) -> None:
        self._model = model
        self._messages: list[ChatMessage] = []
        self._options: Options | None = None

    @classmethod
    def get_instance(cls, model: str) -> "ChatRequestBuilder":
        return cls(model)

    def with_messages(self, messages: Iterable[ChatMessage]) -> "ChatRequestBuilder":
        self._messages = list(messages)
        return self

    def with_message(
        self,
        role: ChatMessageRole,
        content: str,
        images: Sequence[str] | None = None,
        image_files: Sequence[str | Path] | None = None,
    ) -> "ChatRequestBuilder":
        encoded: list[str] = list(images or [])
        for image_file in image_files or ():
            encoded.append(encode_image_file(image_file))
        self._messages.append(ChatMessage(role=role, content=content, images=encoded or None))
        return self

    def with_options(self, options: Options) -> "ChatRequestBuilder":
        self._options = options
        return self

    def build(self) -> ChatRequest:
        return ChatRequest(model=self._model, messages=list(self._messages), options=self._options)


@dataclass(slots=True)
class ChatResult:
    response: str
    http_status_code: int
    response_time: int
    chat_history: list[ChatMessage]


@dataclass(slots=True)
class GenerateResult:
    response: str
    response_time: int
    http_status_code: int


@dataclass(slots=True)
class ModelDetails:
    format: str | None = None
    family: str | None = None
    families: list[str] | None = None
    parameter_size: str | None = None
    quantization_level: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ModelDetails":
        if not isinstance(payload, Mapping):
            return cls()
        families = payload.get("families")
        return cls(
            format=payload.get("format"),
            family=payload.get("family"),
            families=list(families) if isinstance(families, list) else None,
            parameter_size=payload.get("parameter_size"),
            quantization_level=payload.get("quantization_level"),
        )


@dataclass(slots=True)
class Model:
    name: str
    model: str
    modified_at: datetime | None
    size: int
    digest: str
    details: ModelDetails = field(default_factory=ModelDetails)

    @property
    def model_name(self) -> str:
        return self.name.split(":", 1)[0]

    @property
    def model_version(self) -> str:
        _, sep, tag = self.name.partition(":")
        return tag if sep and tag else "latest"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Model":
        name = str(payload.get("name") or payload.get("model") or "")
        return cls(
            name=name,
            model=str(payload.get("model") or name),
            modified_at=parse_timestamp(payload.get("modified_at")),
            size=int(payload.get("size") or 0),
            digest=str(payload.get("digest") or ""),
            details=ModelDetails.from_payload(payload.get("details")),
        )


@dataclass(slots=True)
class ModelProcess:
    name: str
    model: str
    size: int
    digest: str
    details: ModelDetails
    expires_at: datetime | None
    size_vram: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ModelProcess":
        name = str(payload.get("name") or payload.get("model") or "")
        return cls(
            name=name,
            model=str(payload.get("model") or name),
            size=int(payload.get("size") or 0),
            digest=str(payload.get("digest") or ""),
            details=ModelDetails.from_payload(payload.get("details")),
            expires_at=parse_timestamp(payload.get("expires_at")),
            size_vram=int(payload.get("size_vram") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data


@dataclass(slots=True)
class ModelsProcessResponse:
    models: list[ModelProcess] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ModelsProcessResponse":
        raw = payload.get("models")
        entries = raw if isinstance(raw, list) else []
        return cls(models=[ModelProcess.from_payload(item) for item in entries if isinstance(item, Mapping)])


@dataclass(slots=True)
class LibraryModel:
    name: str
    description: str = ""
    pull_count: str = ""
    total_tags: int = 0
    popular_tags: list[str] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "ChatMessage",
    "ChatMessageRole",
    "ChatRequest",
    "ChatRequestBuilder",
    "ChatResult",
    "GenerateResult",
    "LibraryModel",
    "Model",
    "ModelDetails",
    "ModelProcess",
    "ModelsProcessResponse",
    "Options",
    "OptionsBuilder",
    "encode_image_file",
    "parse_timestamp",
]
