"""Flask application factory."""

from __future__ import annotations

import atexit
import logging

from flask import Flask, Response, jsonify
from flask_cors import CORS

from .config import AppConfig
from .logging_setup import setup_logging


LOGGER = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, *, chat_service=None) -> Flask:  # type: ignore[no-untyped-def]
    from .api import chat as chat_api
    from .api import models as models_api
    from .llm.ollama_client import OllamaClient
    from .middleware import request_id as request_id_middleware
    from .services.chat_service import ChatService

    app_config = config or AppConfig.from_env()
    setup_logging(app_config.logs_dir)
    app_config.ensure_dirs()
    app_config.log_summary()

    app = Flask(__name__)

    CORS(
        app,
        resources={r"/api/*": {"origins": list(app_config.cors_origins)}},
        supports_credentials=True,
    )

    if chat_service is None:
        client = OllamaClient(
            app_config.ollama_url,
            request_timeout_seconds=app_config.request_timeout_seconds,
            verbose=app_config.verbose,
            auth=app_config.ollama_auth,
        )
        chat_service = ChatService(client, employee_db_path=app_config.employee_db_path)
        atexit.register(chat_service.shutdown)

    app.config.update(
        APP_CONFIG=app_config,
        CHAT_SERVICE=chat_service,
    )

    request_id_middleware.install(app)

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True}), 200

    app.register_blueprint(chat_api.bp)
    app.register_blueprint(models_api.bp)

    LOGGER.info("web backend ready (ollama=%s)", app_config.ollama_url)
    return app


__all__ = ["create_app"]
