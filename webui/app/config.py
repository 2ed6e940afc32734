"""Application configuration helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

LOGGER = logging.getLogger(__name__)


REPO_ROOT = Path(__file__).resolve().parents[2]

_TRUE = {"1", "true", "yes", "on"}


def resolve_path(value: str | os.PathLike[str] | None, base: Path) -> Path:
    """Return ``base`` when ``value`` is unset, else ``value`` anchored at the repo root."""

    if not value:
        return base
    candidate = Path(value)
    if candidate.is_absolute():
        return candidate
    return (REPO_ROOT / candidate).resolve()


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration resolved from environment variables."""

    ollama_url: str
    request_timeout_seconds: float
    verbose: bool
    default_chat_model: str
    ollama_username: str | None
    ollama_password: str | None
    data_dir: Path
    logs_dir: Path
    employee_db_path: Path
    upload_dir: Path
    max_image_bytes: int
    cors_origins: tuple[str, ...]

    @classmethod
    def from_env(cls) -> "AppConfig":
        data_dir = resolve_path(os.getenv("DATA_DIR"), REPO_ROOT / "data")
        logs_dir = resolve_path(os.getenv("LOG_DIR"), REPO_ROOT / "logs")
        employee_db_path = resolve_path(
            os.getenv("EMPLOYEE_DB_PATH"), data_dir / "employees.sqlite3"
        )
        upload_dir = resolve_path(os.getenv("UPLOAD_DIR"), data_dir / "uploads")
        ollama_url = os.getenv("OLLAMA_URL", os.getenv("OLLAMA_HOST", "http://127.0.0.1:11434")).rstrip("/")
        request_timeout_seconds = max(1.0, float(os.getenv("OLLAMA_REQUEST_TIMEOUT", "10")))
        verbose = os.getenv("OLLAMA_VERBOSE", "false").lower() in _TRUE
        default_chat_model = os.getenv("DEFAULT_CHAT_MODEL", "llama3").strip() or "llama3"
        max_image_bytes = max(1024, int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024))))
        origins_raw = os.getenv("CORS_ORIGINS", "http://localhost:3100,http://127.0.0.1:3100")
        cors_origins = tuple(origin.strip() for origin in origins_raw.split(",") if origin.strip())

        return cls(
            ollama_url=ollama_url,
            request_timeout_seconds=request_timeout_seconds,
            verbose=verbose,
            default_chat_model=default_chat_model,
            ollama_username=os.getenv("OLLAMA_USERNAME") or None,
            ollama_password=os.getenv("OLLAMA_PASSWORD") or None,
            data_dir=data_dir,
            logs_dir=logs_dir,
            employee_db_path=employee_db_path,
            upload_dir=upload_dir,
            max_image_bytes=max_image_bytes,
            cors_origins=cors_origins,
        )

    @property
    def ollama_auth(self) -> tuple[str, str] | None:
        if self.ollama_username and self.ollama_password:
            return (self.ollama_username, self.ollama_password)
        return None

    def ensure_dirs(self) -> None:
        """Ensure all required directories exist."""

        for directory in (
            self.data_dir,
            self.logs_dir,
            self.upload_dir,
            self.employee_db_path.parent,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def log_summary(self) -> None:
        """Log environment-derived flags for observability."""

        payload: Dict[str, Any] = {
            "ollama_url": self.ollama_url,
            "request_timeout_seconds": self.request_timeout_seconds,
            "verbose": self.verbose,
            "default_chat_model": self.default_chat_model,
            "ollama_auth": self.ollama_auth is not None,
            "data_dir": str(self.data_dir),
            "employee_db_path": str(self.employee_db_path),
            "max_image_bytes": self.max_image_bytes,
            "cors_origins": list(self.cors_origins),
        }
        LOGGER.info("runtime configuration: %s", json.dumps(payload, sort_keys=True))
