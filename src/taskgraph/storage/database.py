# src/taskgraph/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from ..errors import StoreUnavailable

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
DEPENDENCIES_TABLE = "task_dependencies"

# Range of an SQLite INTEGER; ids outside it cannot name a stored row.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1

_MEMORY_PATHS = {"", ":memory:"}

# Columns added by migration when an older DB is missing them.
_TASK_COLUMNS: dict[str, str] = {
    "title": "TEXT NOT NULL DEFAULT ''",
    "description": "TEXT",
    "due_date": "TEXT",
    "assignee_id": "INTEGER",
    "category_id": "INTEGER",
    "priority_id": "INTEGER",
    "project_id": "INTEGER",
    "status_id": "INTEGER",
    "task_type_id": "INTEGER",
    "completed_at": "REAL",
    "created_at": "REAL NOT NULL DEFAULT 0",
    "updated_at": "REAL NOT NULL DEFAULT 0",
    "deleted_at": "REAL",
}

_DEPENDENCY_COLUMNS: dict[str, str] = {
    "created_at": "REAL NOT NULL DEFAULT 0",
    "updated_at": "REAL NOT NULL DEFAULT 0",
}


def _is_busy(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def storable_id(value: int) -> bool:
    """True if `value` fits an SQLite INTEGER. Larger ids are treated as missing."""
    return SQLITE_INT_MIN <= int(value) <= SQLITE_INT_MAX


class Database:
    """
    SQLite backing store shared by every repository.

    Thread-safety:
    - each call opens its own short-lived connection (no shared cursors)
    - writers take the database write lock up front (BEGIN IMMEDIATE), so a
      multi-statement operation is one atomic unit

    The schema is migration-safe: create tables if missing, then add missing
    columns with ALTER TABLE.

    Only file-backed databases are supported. An in-memory database would be
    private to each short-lived connection, so `:memory:` is rejected.
    """

    def __init__(self, db_path: str | Path = "taskgraph.sqlite3", *, timeout: float = 30.0) -> None:
        raw = str(db_path).strip()
        if raw in _MEMORY_PATHS or raw.startswith("file::memory:") or "mode=memory" in raw:
            raise ValueError(f"in-memory SQLite databases are not supported: {db_path!r}")
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = float(timeout)
        self._ensure_schema()
        logger.info("Database ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- connections ----

    def _get_conn(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly below.
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    @contextlib.contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Connection for read-only work (autocommit, read-committed view)."""
        conn = self._get_conn()
        try:
            yield conn
        except sqlite3.OperationalError as e:
            if _is_busy(e):
                raise StoreUnavailable(f"Store busy: {e}") from e
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """
        Connection inside a deferred read transaction.

        Every statement sees the same committed state, so a page of rows and
        its total come from one point in time even while writers commit.
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN")
            try:
                yield conn
            finally:
                conn.rollback()
        except sqlite3.OperationalError as e:
            if _is_busy(e):
                raise StoreUnavailable(f"Store busy: {e}") from e
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a unit of work atomically.

        Commits on normal exit, rolls back on any exception (which is re-raised).
        """
        conn = self._get_conn()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as e:
                if _is_busy(e):
                    raise StoreUnavailable(f"Store busy: {e}") from e
                raise
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        except sqlite3.OperationalError as e:
            if _is_busy(e):
                raise StoreUnavailable(f"Store busy: {e}") from e
            raise
        finally:
            conn.close()

    # ---- schema ----

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            cur = conn.cursor()

            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TASKS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    due_date TEXT,
                    assignee_id INTEGER,
                    category_id INTEGER,
                    priority_id INTEGER,
                    project_id INTEGER,
                    status_id INTEGER,
                    task_type_id INTEGER,
                    completed_at REAL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    deleted_at REAL
                )
                """
            )

            # No ON DELETE CASCADE: edges are removed explicitly before the task row.
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {DEPENDENCIES_TABLE} (
                    task_id INTEGER NOT NULL REFERENCES {TASKS_TABLE}(id),
                    depends_on_task_id INTEGER NOT NULL REFERENCES {TASKS_TABLE}(id),
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (task_id, depends_on_task_id)
                )
                """
            )

            self._add_missing_columns(cur, TASKS_TABLE, _TASK_COLUMNS)
            self._add_missing_columns(cur, DEPENDENCIES_TABLE, _DEPENDENCY_COLUMNS)

            cur.execute(f"CREATE INDEX IF NOT EXISTS idx_tasks_deleted ON {TASKS_TABLE}(deleted_at)")
            cur.execute(f"CREATE INDEX IF NOT EXISTS idx_tasks_project ON {TASKS_TABLE}(project_id, due_date)")
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_tasks_assignee_status ON {TASKS_TABLE}(assignee_id, status_id)"
            )
            cur.execute(
                f"CREATE INDEX IF NOT EXISTS idx_deps_depends_on ON {DEPENDENCIES_TABLE}(depends_on_task_id)"
            )

    @staticmethod
    def _add_missing_columns(cur: sqlite3.Cursor, table: str, columns: dict[str, str]) -> None:
        cur.execute(f"PRAGMA table_info({table})")
        existing = {row["name"] for row in cur.fetchall()}
        for name, decl in columns.items():
            if name in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
            logger.info("Database migration: added column %s.%s", table, name)
