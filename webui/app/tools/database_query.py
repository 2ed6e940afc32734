"""Employee lookup tool backed by a local SQLite database."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Any, Mapping

from webui.app.config import REPO_ROOT, resolve_path

from .specs import (
    Parameters,
    PromptFuncDefinition,
    PromptFuncSpec,
    Property,
    ToolInvocationError,
    ToolSpecification,
)

LOGGER = logging.getLogger(__name__)


def default_db_path() -> Path:
    """``EMPLOYEE_DB_PATH`` or ``data/employees.sqlite3``, anchored at the repo root."""

    return resolve_path(os.getenv("EMPLOYEE_DB_PATH"), REPO_ROOT / "data" / "employees.sqlite3")


DB_QUERY_MARKER = "【数据查询】"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS employees (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    address TEXT,
    phone TEXT
)
"""

_SEED_ROWS = (
    ("Rahul Kumar", "King St, Hyderabad, India", "9876543210"),
    ("Jane Doe", "42 Harbour Rd, Sydney, Australia", "0412345678"),
    ("Wei Zhang", "88 Century Ave, Shanghai, China", "13800138000"),
)


class EmployeeDirectory:
    """Small SQLite-backed employee table, seeded with demo rows on first use."""

    def __init__(self, db_path: str | os.PathLike[str] | None = None) -> None:
        self.db_path = resolve_path(db_path, default_db_path())
        self._lock = threading.Lock()
        self._initialised = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        if self._initialised:
            return
        conn.execute(_SCHEMA)
        (count,) = conn.execute("SELECT COUNT(*) FROM employees").fetchone()
        if count == 0:
            conn.executemany(
                "INSERT INTO employees (name, address, phone) VALUES (?, ?, ?)",
                _SEED_ROWS,
            )
            LOGGER.info("seeded %d demo employees into %s", len(_SEED_ROWS), self.db_path)
        conn.commit()
        self._initialised = True

    def find_by_name(self, name: str) -> sqlite3.Row | None:
        with self._lock:
            conn = self._connect()
            try:
                self._ensure_schema(conn)
                return conn.execute(
                    "SELECT id, name, address, phone FROM employees WHERE name = ? COLLATE NOCASE",
                    (name,),
                ).fetchone()
            finally:
                conn.close()


class DatabaseQueryToolFunction:
    def __init__(self, directory: EmployeeDirectory) -> None:
        self.directory = directory

    def __call__(self, arguments: Mapping[str, Any]) -> str:
        name = arguments.get("employee-name") or arguments.get("employeeName")
        if not isinstance(name, str) or not name.strip():
            raise ToolInvocationError("employee-name argument is required")
        try:
            row = self.directory.find_by_name(name.strip())
        except sqlite3.Error as exc:
            raise ToolInvocationError(f"employee lookup failed: {exc}") from exc
        if row is None:
            return "Employee not found"
        return (
            f"Employee Details {{ID: {row['id']}, Name: {row['name']}, "
            f"Address: {row['address']}, Phone: {row['phone']}}}"
        )


class DatabaseQueryToolSpec:
    @staticmethod
    def get_specification(db_path: str | os.PathLike[str] | None = None) -> ToolSpecification:
        return ToolSpecification(
            function_name="database-query-tool",
            function_description="Query the employee database for an employee's details",
            tool_function=DatabaseQueryToolFunction(EmployeeDirectory(db_path)),
            tool_prompt=PromptFuncDefinition(
                type="prompt",
                function=PromptFuncSpec(
                    name="get-employee-details",
                    description="Get employee details from the database",
                    parameters=Parameters(
                        properties={
                            "employee-name": Property(
                                type="string",
                                description="The name of the employee, e.g. John Doe",
                                required=True,
                            ),
                        },
                        required=["employee-name"],
                    ),
                ),
            ),
        )


__all__ = [
    "DB_QUERY_MARKER",
    "DatabaseQueryToolFunction",
    "DatabaseQueryToolSpec",
    "EmployeeDirectory",
    "default_db_path",
]
