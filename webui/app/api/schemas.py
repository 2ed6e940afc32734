"""Pydantic schemas for the chat and model endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}


def _coerce_flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _BOOL_TRUE:
            return True
        if lowered in _BOOL_FALSE or not lowered:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    raise ValueError("stream must be a boolean flag")


class AskRequest(BaseModel):
    """Validated chat turn submitted by the UI."""

    message: str
    model: str | None = None
    stream: bool = False

    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    @field_validator("message")
    @classmethod
    def _require_message(cls, value: str) -> str:
        text = (value or "").strip()
        if not text:
            raise ValueError("message must not be empty")
        return text

    @field_validator("model", mode="before")
    @classmethod
    def _trim_model(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("stream", mode="before")
    @classmethod
    def _coerce_stream(cls, value: Any) -> bool:
        return _coerce_flag(value)


class PullRequest(BaseModel):
    name: str

    model_config = ConfigDict(extra="ignore")

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        name = (value or "").strip()
        if not name:
            raise ValueError("name must not be empty")
        return name


__all__ = ["AskRequest", "PullRequest"]
