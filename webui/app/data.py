"""Display-only projections handed to the web UI."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar

from webui.app.llm.models import ModelProcess, ModelsProcessResponse

MODIFIED_AT_FORMAT = "%d %b, %Y %I:%M %p"

_ONE_KB = 1024
_ONE_MB = _ONE_KB * 1024
_ONE_GB = _ONE_MB * 1024
_ONE_TB = _ONE_GB * 1024
_ONE_PB = _ONE_TB * 1024
_ONE_EB = _ONE_PB * 1024


def byte_count_to_display_size(size: int) -> str:
    """Render a byte count using the largest whole 1024-based unit."""

    for unit, label in (
        (_ONE_EB, "EB"),
        (_ONE_PB, "PB"),
        (_ONE_TB, "TB"),
        (_ONE_GB, "GB"),
        (_ONE_MB, "MB"),
        (_ONE_KB, "KB"),
    ):
        if size // unit > 0:
            return f"{size // unit} {label}"
    return f"{size} bytes"


def format_modified_at(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone().strftime(MODIFIED_AT_FORMAT)


@dataclass(slots=True, frozen=True)
class ModelItem:
    name: str
    version: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class ModelListItem:
    name: str
    model: str
    modified_at: str
    digest: str
    size: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class ConnectionInfo:
    """Connection status plus the models currently loaded on the server."""

    NOT_AVAILABLE: ClassVar["ConnectionInfo"]

    def __init__(self, status: str, ps: ModelsProcessResponse | None, host: str = "localhost") -> None:
        self.status = status
        self.ps = ps
        self._host = host

    @property
    def available(self) -> bool:
        return self.ps is not None

    @property
    def available_models(self) -> list[ModelProcess]:
        if self.ps is None:
            return []
        return self.ps.models

    @property
    def host(self) -> str:
        return self._host

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "available": self.available,
            "host": self.host,
            "models": [model.to_dict() for model in self.available_models],
        }


ConnectionInfo.NOT_AVAILABLE = ConnectionInfo("Not available", None)


__all__ = [
    "ConnectionInfo",
    "ModelItem",
    "ModelListItem",
    "byte_count_to_display_size",
    "format_modified_at",
]
