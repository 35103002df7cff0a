# src/taskgraph/tasks/dependency_store.py

from __future__ import annotations

import logging
import sqlite3
import time

from ..errors import ConstraintViolation, DependencyNotFound, DuplicateEdge, InvalidReference
from ..storage.database import DEPENDENCIES_TABLE, Database, storable_id
from .task_models import DependencyKey, TaskDependency
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def row_to_edge(row: sqlite3.Row) -> TaskDependency:
    return TaskDependency(
        task_id=int(row["task_id"]),
        depends_on_task_id=int(row["depends_on_task_id"]),
        created_at=float(row["created_at"] or 0.0),
        updated_at=float(row["updated_at"] or 0.0),
    )


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    msg = str(exc).upper()
    return "UNIQUE" in msg or "PRIMARY KEY" in msg


def _storable_key(key: DependencyKey) -> bool:
    return storable_id(key.task_id) and storable_id(key.depends_on_task_id)


class DependencyStore:
    """
    Directed "depends-on" edges between tasks, keyed by (task_id, depends_on_task_id).

    - Endpoints must exist in the task registry when an edge is written; a
      soft-deleted task is still a valid endpoint.
    - Edges have no lifecycle of their own. They disappear when deleted
      explicitly or when either endpoint task is hard-deleted (the task
      registry removes them in its own hard-delete transaction).
    - Cycles are not checked. Self-loops are accepted unless
      `allow_self_loops=False`.
    """

    def __init__(self, db: Database, tasks: TaskStore, *, allow_self_loops: bool = True) -> None:
        self._db = db
        self._tasks = tasks
        self._allow_self_loops = bool(allow_self_loops)
        logger.info(
            "DependencyStore ready total=%s allow_self_loops=%s",
            self.count_edges(),
            self._allow_self_loops,
        )

    @property
    def allow_self_loops(self) -> bool:
        return self._allow_self_loops

    # ---- low-level helpers ----

    def _check_endpoints(self, conn: sqlite3.Connection, key: DependencyKey) -> None:
        for task_id in key:
            if not self._tasks.exists_in(conn, task_id, include_deleted=True):
                logger.warning("Edge %s rejected: unknown task id=%s", key, task_id)
                raise InvalidReference(task_id)

        if key.task_id == key.depends_on_task_id and not self._allow_self_loops:
            logger.warning("Edge %s rejected: self-loops are disabled", key)
            raise ConstraintViolation(f"Task {key.task_id} cannot depend on itself")

    @staticmethod
    def _fetch(conn: sqlite3.Connection, key: DependencyKey) -> TaskDependency | None:
        if not _storable_key(key):
            return None
        row = conn.execute(
            f"""
            SELECT * FROM {DEPENDENCIES_TABLE}
            WHERE task_id = ? AND depends_on_task_id = ?
            """,
            (key.task_id, key.depends_on_task_id),
        ).fetchone()
        return row_to_edge(row) if row else None

    @staticmethod
    def _insert(conn: sqlite3.Connection, key: DependencyKey, now: float) -> TaskDependency:
        try:
            conn.execute(
                f"""
                INSERT INTO {DEPENDENCIES_TABLE}(task_id, depends_on_task_id, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (key.task_id, key.depends_on_task_id, now, now),
            )
        except sqlite3.IntegrityError as e:
            if _is_unique_violation(e):
                logger.warning("Edge %s rejected: already exists", key)
                raise DuplicateEdge(key) from e
            raise
        return TaskDependency(key.task_id, key.depends_on_task_id, now, now)

    # ---- public API ----

    def count_edges(self) -> int:
        with self._db.read() as conn:
            (n,) = conn.execute(f"SELECT COUNT(*) FROM {DEPENDENCIES_TABLE}").fetchone()
        return int(n)

    def create_edge(self, task_id: int, depends_on_task_id: int) -> TaskDependency:
        key = DependencyKey(int(task_id), int(depends_on_task_id))
        with self._db.transaction() as conn:
            self._check_endpoints(conn, key)
            edge = self._insert(conn, key, time.time())
        logger.debug("Edge created %s", key)
        return edge

    def find_edge(self, task_id: int, depends_on_task_id: int) -> TaskDependency:
        key = DependencyKey(int(task_id), int(depends_on_task_id))
        with self._db.read() as conn:
            edge = self._fetch(conn, key)
        if edge is None:
            raise DependencyNotFound(key)
        return edge

    def replace_edge(
        self,
        old_key: DependencyKey | tuple[int, int],
        new_task_id: int,
        new_depends_on_task_id: int,
    ) -> TaskDependency:
        """
        Move an edge to a new composite key (delete + insert, one transaction).

        Replacing an edge with its own key only bumps `updated_at`.
        """
        old = DependencyKey(int(old_key[0]), int(old_key[1]))
        new = DependencyKey(int(new_task_id), int(new_depends_on_task_id))
        now = time.time()

        with self._db.transaction() as conn:
            if self._fetch(conn, old) is None:
                raise DependencyNotFound(old)
            self._check_endpoints(conn, new)

            if new == old:
                conn.execute(
                    f"""
                    UPDATE {DEPENDENCIES_TABLE} SET updated_at = ?
                    WHERE task_id = ? AND depends_on_task_id = ?
                    """,
                    (now, old.task_id, old.depends_on_task_id),
                )
                edge = self._fetch(conn, old)
                if edge is None:
                    raise DependencyNotFound(old)
                return edge

            conn.execute(
                f"DELETE FROM {DEPENDENCIES_TABLE} WHERE task_id = ? AND depends_on_task_id = ?",
                (old.task_id, old.depends_on_task_id),
            )
            edge = self._insert(conn, new, now)

        logger.debug("Edge replaced %s -> %s", old, new)
        return edge

    def delete_edge(self, task_id: int, depends_on_task_id: int) -> None:
        key = DependencyKey(int(task_id), int(depends_on_task_id))
        if not _storable_key(key):
            raise DependencyNotFound(key)
        with self._db.transaction() as conn:
            cur = conn.execute(
                f"DELETE FROM {DEPENDENCIES_TABLE} WHERE task_id = ? AND depends_on_task_id = ?",
                (key.task_id, key.depends_on_task_id),
            )
            if cur.rowcount != 1:
                raise DependencyNotFound(key)
        logger.info("Edge deleted %s", key)

    def exists_edge(self, task_id: int, depends_on_task_id: int) -> bool:
        key = DependencyKey(int(task_id), int(depends_on_task_id))
        with self._db.read() as conn:
            return self._fetch(conn, key) is not None
