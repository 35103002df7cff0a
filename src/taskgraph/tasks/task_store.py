# src/taskgraph/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import date
from typing import Any

from ..core.ports import HardDeleteHook
from ..errors import NotFound, TaskNotFound
from ..storage.database import DEPENDENCIES_TABLE, TASKS_TABLE, Database, storable_id
from ..storage.lifecycle import SoftDeleteStore, active_clause
from .task_models import Task, TaskFields

logger = logging.getLogger(__name__)

_FIELD_COLUMNS = (
    "title",
    "description",
    "due_date",
    "assignee_id",
    "category_id",
    "priority_id",
    "project_id",
    "status_id",
    "task_type_id",
    "completed_at",
)


def _date_to_db(d: date | None) -> str | None:
    return d.isoformat() if d is not None else None


def _date_from_db(raw: str | None) -> date | None:
    if not raw:
        return None
    return date.fromisoformat(raw)


def _opt_int(v: Any) -> int | None:
    return int(v) if v is not None else None


class TaskStore(SoftDeleteStore):
    """
    Task registry: owns task identity and lifecycle.

    Ids come from SQLite AUTOINCREMENT, so they are never reused, not even
    after a hard delete. Default reads see active tasks only; `find_any_by_id`
    and `list_deleted` reach soft-deleted rows.

    Hard delete removes every edge touching the task, runs any extra hooks and
    removes the row, all in one transaction.
    """

    def __init__(self, db: Database) -> None:
        super().__init__(db, TASKS_TABLE)
        self._hard_delete_hooks: list[HardDeleteHook] = []
        logger.info("TaskStore ready db=%s total=%s", db.path, self.count_tasks())

    def add_hard_delete_hook(self, hook: HardDeleteHook) -> None:
        self._hard_delete_hooks.append(hook)

    def _not_found(self, record_id: int) -> NotFound:
        return TaskNotFound(record_id)

    def _before_hard_delete(self, conn: sqlite3.Connection, record_id: int) -> None:
        cur = conn.execute(
            f"DELETE FROM {DEPENDENCIES_TABLE} WHERE task_id = ? OR depends_on_task_id = ?",
            (record_id, record_id),
        )
        if cur.rowcount:
            logger.info("Removed %s edge(s) of hard-deleted task id=%s", cur.rowcount, record_id)
        for hook in self._hard_delete_hooks:
            hook(conn, record_id)

    # ---- low-level helpers ----

    @staticmethod
    def _validate(fields: TaskFields) -> None:
        if not fields.title or not fields.title.strip():
            raise ValueError("title is required")

    @staticmethod
    def _field_params(fields: TaskFields) -> tuple[Any, ...]:
        return (
            fields.title.strip(),
            fields.description,
            _date_to_db(fields.due_date),
            fields.assignee_id,
            fields.category_id,
            fields.priority_id,
            fields.project_id,
            fields.status_id,
            fields.task_type_id,
            fields.completed_at,
        )

    @staticmethod
    def row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            due_date=_date_from_db(row["due_date"]),
            assignee_id=_opt_int(row["assignee_id"]),
            category_id=_opt_int(row["category_id"]),
            priority_id=_opt_int(row["priority_id"]),
            project_id=_opt_int(row["project_id"]),
            status_id=_opt_int(row["status_id"]),
            task_type_id=_opt_int(row["task_type_id"]),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            deleted_at=float(row["deleted_at"]) if row["deleted_at"] is not None else None,
        )

    def _fetch(self, conn: sqlite3.Connection, task_id: int, *, include_deleted: bool) -> Task | None:
        if not storable_id(task_id):
            return None
        row = conn.execute(
            f"SELECT * FROM {TASKS_TABLE} WHERE id = ? AND {active_clause(include_deleted)}",
            (int(task_id),),
        ).fetchone()
        return self.row_to_task(row) if row else None

    def _select(
        self,
        where: str = "1 = 1",
        params: tuple[Any, ...] = (),
        *,
        include_deleted: bool = False,
        limit: int | None = None,
    ) -> list[Task]:
        sql = (
            f"SELECT * FROM {TASKS_TABLE} "
            f"WHERE ({where}) AND {active_clause(include_deleted)} ORDER BY id ASC"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, int(limit))
        with self._db.read() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self.row_to_task(r) for r in rows]

    # ---- registry API ----

    def create(self, fields: TaskFields) -> Task:
        self._validate(fields)
        now = time.time()
        cols = ", ".join(_FIELD_COLUMNS)
        placeholders = ", ".join("?" for _ in _FIELD_COLUMNS)

        with self._db.transaction() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {TASKS_TABLE}({cols}, created_at, updated_at, deleted_at)
                VALUES ({placeholders}, ?, ?, NULL)
                """,
                (*self._field_params(fields), now, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task = self._fetch(conn, rowid, include_deleted=True)

        if task is None:
            raise RuntimeError(f"Inserted task id={rowid} could not be read back")
        logger.debug("Task created id=%s title=%r", task.id, task.title)
        return task

    def find_active_by_id(self, task_id: int) -> Task:
        with self._db.read() as conn:
            task = self._fetch(conn, task_id, include_deleted=False)
        if task is None:
            raise TaskNotFound(task_id, scope="active")
        return task

    def find_any_by_id(self, task_id: int) -> Task:
        with self._db.read() as conn:
            task = self._fetch(conn, task_id, include_deleted=True)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def replace(self, task_id: int, fields: TaskFields) -> Task:
        """
        Overwrite every business field of the task.

        A soft-deleted task can be replaced too; its lifecycle state is left
        untouched (replace never undeletes).
        """
        self._validate(fields)
        assignments = ", ".join(f"{c} = ?" for c in _FIELD_COLUMNS)
        if not storable_id(task_id):
            raise TaskNotFound(task_id)

        with self._db.transaction() as conn:
            cur = conn.execute(
                f"UPDATE {TASKS_TABLE} SET {assignments}, updated_at = ? WHERE id = ?",
                (*self._field_params(fields), time.time(), int(task_id)),
            )
            if cur.rowcount != 1:
                raise TaskNotFound(task_id)
            task = self._fetch(conn, task_id, include_deleted=True)

        if task is None:
            raise TaskNotFound(task_id)
        logger.debug("Task replaced id=%s", task_id)
        return task

    # ---- listings ----

    def count_tasks(self, *, include_deleted: bool = False) -> int:
        return self.count(include_deleted=include_deleted)

    def list_tasks(self, *, limit: int | None = None) -> list[Task]:
        return self._select(limit=limit)

    def list_deleted(self) -> list[Task]:
        return self._select("deleted_at IS NOT NULL", include_deleted=True)

    def find_by_assignee(self, assignee_id: int) -> list[Task]:
        return self._select("assignee_id = ?", (int(assignee_id),))

    def find_by_category(self, category_id: int) -> list[Task]:
        return self._select("category_id = ?", (int(category_id),))

    def find_by_priority(self, priority_id: int) -> list[Task]:
        return self._select("priority_id = ?", (int(priority_id),))

    def find_by_project(self, project_id: int) -> list[Task]:
        return self._select("project_id = ?", (int(project_id),))

    def find_by_status(self, status_id: int) -> list[Task]:
        return self._select("status_id = ?", (int(status_id),))

    def find_due_before(self, day: date) -> list[Task]:
        return self._select("due_date < ?", (day.isoformat(),))

    def find_due_after(self, day: date) -> list[Task]:
        return self._select("due_date > ?", (day.isoformat(),))

    def find_due_between(self, start: date, end: date) -> list[Task]:
        """Tasks due within [start, end], both ends inclusive."""
        return self._select("due_date BETWEEN ? AND ?", (start.isoformat(), end.isoformat()))

    def find_incomplete(self) -> list[Task]:
        return self._select("completed_at IS NULL")

    def find_completed(self) -> list[Task]:
        return self._select("completed_at IS NOT NULL")

    def find_by_assignee_and_status(self, assignee_id: int, status_id: int) -> list[Task]:
        return self._select("assignee_id = ? AND status_id = ?", (int(assignee_id), int(status_id)))

    def find_overdue_by_project(self, project_id: int, day: date) -> list[Task]:
        return self._select("project_id = ? AND due_date < ?", (int(project_id), day.isoformat()))
