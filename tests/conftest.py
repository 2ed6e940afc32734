"""Ensure the project root is importable and telemetry stays out of the repo."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

os.environ.setdefault("LOG_EVENTS_CONSOLE", "0")
os.environ.setdefault("TELEMETRY_DIR", tempfile.mkdtemp(prefix="webui-telemetry-"))

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
