"""Run the chat backend: ``python -m webui.app [--host H] [--port P] [--reload]``."""

from __future__ import annotations

import argparse
import logging
import os

from dotenv import load_dotenv

from . import create_app

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ollama-webui", description="Ollama chat web backend")
    parser.add_argument("--host", default=os.getenv("BACKEND_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("BACKEND_PORT", "5050")))
    parser.add_argument(
        "--reload",
        action="store_true",
        default=os.getenv("BACKEND_RELOAD", "").strip().lower() in {"1", "true", "yes", "on"},
        help="enable the Werkzeug debugger and reloader",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = _parse_args(argv)

    app = create_app()
    LOGGER.info("serving chat backend on http://%s:%s", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.reload, use_reloader=args.reload, threaded=True)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
