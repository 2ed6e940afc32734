"""Configuration lookups shared by the example programs."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


class ExampleConfigError(RuntimeError):
    """Raised when a required example setting is missing."""


def get_from_env_var(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise ExampleConfigError(f"environment variable {name} is not set")
    return value.strip()


def _config_path(path: str | os.PathLike[str] | None) -> Path:
    if path is not None:
        return Path(path)
    override = os.getenv("LLM_EXAMPLES_CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_config(path: str | os.PathLike[str] | None = None) -> dict[str, Any]:
    resolved = _config_path(path)
    try:
        with resolved.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError as exc:
        raise ExampleConfigError(f"config file {resolved} not found") from exc
    if not isinstance(data, dict):
        raise ExampleConfigError(f"config file {resolved} must contain a mapping")
    return data


def get_from_config(key: str, path: str | os.PathLike[str] | None = None) -> str:
    data = load_config(path)
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ExampleConfigError(f"{key!r} missing from example config")
    return str(value).strip()


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ExampleConfigError",
    "get_from_config",
    "get_from_env_var",
    "load_config",
]
