# src/taskgraph/tasks/dependency_queries.py

from __future__ import annotations

"""
Read side of the dependency graph.

Every query is single-hop: neighbours and counts over the edge table, never a
transitive walk. `include_deleted` defaults to True, so an edge to a
soft-deleted task stays visible and keeps counting. With
`include_deleted=False` an edge is visible only while both of its endpoints
are active; listings and counts apply the same rule, so
`count_dependencies_of(x) == len(direct_dependencies_of(x))` for either value.
"""

import logging
import sqlite3
from typing import Any, overload

from ..storage.database import DEPENDENCIES_TABLE, TASKS_TABLE, Database, storable_id
from .dependency_store import row_to_edge
from .task_models import Page, PageRequest, Task, TaskDependency
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def _visible_edges(include_deleted: bool) -> str:
    """FROM clause yielding the edges a query may see, aliased as `d`."""
    if include_deleted:
        return f"{DEPENDENCIES_TABLE} d"
    return (
        f"{DEPENDENCIES_TABLE} d "
        f"JOIN {TASKS_TABLE} src ON src.id = d.task_id AND src.deleted_at IS NULL "
        f"JOIN {TASKS_TABLE} dst ON dst.id = d.depends_on_task_id AND dst.deleted_at IS NULL"
    )


class GraphQueryEngine:
    def __init__(self, db: Database) -> None:
        self._db = db

    # ---- low-level helpers ----

    def _neighbours(self, task_id: int, *, anchor: str, neighbour: str, include_deleted: bool) -> list[Task]:
        if not storable_id(task_id):
            return []
        sql = f"""
            SELECT t.*
            FROM {_visible_edges(include_deleted)}
            JOIN {TASKS_TABLE} t ON t.id = d.{neighbour}
            WHERE d.{anchor} = ?
            ORDER BY t.id ASC
        """
        with self._db.read() as conn:
            rows = conn.execute(sql, (int(task_id),)).fetchall()
        return [TaskStore.row_to_task(r) for r in rows]

    @staticmethod
    def _count(conn: sqlite3.Connection, task_id: int, *, anchor: str, include_deleted: bool) -> int:
        if not storable_id(task_id):
            return 0
        (n,) = conn.execute(
            f"SELECT COUNT(*) FROM {_visible_edges(include_deleted)} WHERE d.{anchor} = ?",
            (int(task_id),),
        ).fetchone()
        return int(n)

    def _edges(
        self,
        task_id: int,
        page: PageRequest | None,
        *,
        anchor: str,
        order_by: str,
        include_deleted: bool,
    ) -> list[TaskDependency] | Page[TaskDependency]:
        sql = (
            f"SELECT d.* FROM {_visible_edges(include_deleted)} "
            f"WHERE d.{anchor} = ? ORDER BY d.{order_by} ASC"
        )
        params: tuple[Any, ...] = (int(task_id),)
        if page is not None:
            sql += " LIMIT ? OFFSET ?"
            params = (*params, page.size, page.offset)

        if not storable_id(task_id):
            return [] if page is None else Page(items=[], page=page.page, size=page.size, total=0)

        if page is None:
            with self._db.read() as conn:
                return [row_to_edge(r) for r in conn.execute(sql, params).fetchall()]

        # Items and total share one read transaction.
        with self._db.snapshot() as conn:
            rows = conn.execute(sql, params).fetchall()
            total = self._count(conn, task_id, anchor=anchor, include_deleted=include_deleted)
        items = [row_to_edge(r) for r in rows]

        return Page(items=items, page=page.page, size=page.size, total=total)

    # ---- neighbours ----

    def direct_dependencies_of(self, task_id: int, *, include_deleted: bool = True) -> list[Task]:
        """Tasks that `task_id` depends on. Unknown ids yield []."""
        return self._neighbours(
            task_id, anchor="task_id", neighbour="depends_on_task_id", include_deleted=include_deleted
        )

    def direct_dependents_of(self, task_id: int, *, include_deleted: bool = True) -> list[Task]:
        """Tasks that depend on `task_id`. Unknown ids yield []."""
        return self._neighbours(
            task_id, anchor="depends_on_task_id", neighbour="task_id", include_deleted=include_deleted
        )

    # ---- raw edges ----

    @overload
    def edges_from(
        self, task_id: int, page: None = None, *, include_deleted: bool = True
    ) -> list[TaskDependency]: ...

    @overload
    def edges_from(
        self, task_id: int, page: PageRequest, *, include_deleted: bool = True
    ) -> Page[TaskDependency]: ...

    def edges_from(
        self, task_id: int, page: PageRequest | None = None, *, include_deleted: bool = True
    ) -> list[TaskDependency] | Page[TaskDependency]:
        """Edge rows whose dependent end is `task_id`, ordered by prerequisite id."""
        return self._edges(
            task_id, page, anchor="task_id", order_by="depends_on_task_id", include_deleted=include_deleted
        )

    @overload
    def edges_into(
        self, task_id: int, page: None = None, *, include_deleted: bool = True
    ) -> list[TaskDependency]: ...

    @overload
    def edges_into(
        self, task_id: int, page: PageRequest, *, include_deleted: bool = True
    ) -> Page[TaskDependency]: ...

    def edges_into(
        self, task_id: int, page: PageRequest | None = None, *, include_deleted: bool = True
    ) -> list[TaskDependency] | Page[TaskDependency]:
        """Edge rows whose prerequisite end is `task_id`, ordered by dependent id."""
        return self._edges(
            task_id, page, anchor="depends_on_task_id", order_by="task_id", include_deleted=include_deleted
        )

    # ---- counts ----

    def count_dependencies_of(self, task_id: int, *, include_deleted: bool = True) -> int:
        with self._db.read() as conn:
            return self._count(conn, task_id, anchor="task_id", include_deleted=include_deleted)

    def count_dependents_of(self, task_id: int, *, include_deleted: bool = True) -> int:
        with self._db.read() as conn:
            return self._count(conn, task_id, anchor="depends_on_task_id", include_deleted=include_deleted)
