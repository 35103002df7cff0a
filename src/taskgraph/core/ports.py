# src/taskgraph/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) exposed by the core.

Outer layers (HTTP controllers, the admin console, tests) depend on these
Protocols instead of the SQLite implementations.
"""

import sqlite3
from collections.abc import Callable
from datetime import date
from typing import Protocol, overload, runtime_checkable

from ..storage.lifecycle import LifecycleState
from ..tasks.task_models import (
    DependencyKey,
    Page,
    PageRequest,
    Task,
    TaskDependency,
    TaskFields,
)

# Runs inside the hard-delete transaction of a task, before the row goes away.
HardDeleteHook = Callable[[sqlite3.Connection, int], None]


@runtime_checkable
class SoftDeletable(Protocol):
    """Lifecycle capability every soft-deletable entity store composes with."""

    def soft_delete(self, record_id: int, *, now_ts: float | None = None) -> float: ...
    def hard_delete(self, record_id: int) -> None: ...
    def exists_active(self, record_id: int) -> bool: ...
    def exists_any(self, record_id: int) -> bool: ...
    def state_of(self, record_id: int) -> LifecycleState | None: ...


class TaskRepo(SoftDeletable, Protocol):
    # Core registry API
    def create(self, fields: TaskFields) -> Task: ...
    def find_active_by_id(self, task_id: int) -> Task: ...
    def find_any_by_id(self, task_id: int) -> Task: ...
    def replace(self, task_id: int, fields: TaskFields) -> Task: ...
    def add_hard_delete_hook(self, hook: HardDeleteHook) -> None: ...

    # Listings
    def count_tasks(self, *, include_deleted: bool = False) -> int: ...
    def list_tasks(self, *, limit: int | None = None) -> list[Task]: ...
    def list_deleted(self) -> list[Task]: ...
    def find_by_assignee(self, assignee_id: int) -> list[Task]: ...
    def find_by_category(self, category_id: int) -> list[Task]: ...
    def find_by_priority(self, priority_id: int) -> list[Task]: ...
    def find_by_project(self, project_id: int) -> list[Task]: ...
    def find_by_status(self, status_id: int) -> list[Task]: ...
    def find_due_before(self, day: date) -> list[Task]: ...
    def find_due_after(self, day: date) -> list[Task]: ...
    def find_due_between(self, start: date, end: date) -> list[Task]: ...
    def find_incomplete(self) -> list[Task]: ...
    def find_completed(self) -> list[Task]: ...
    def find_by_assignee_and_status(self, assignee_id: int, status_id: int) -> list[Task]: ...
    def find_overdue_by_project(self, project_id: int, day: date) -> list[Task]: ...


class DependencyRepo(Protocol):
    @property
    def allow_self_loops(self) -> bool: ...

    def count_edges(self) -> int: ...
    def create_edge(self, task_id: int, depends_on_task_id: int) -> TaskDependency: ...
    def find_edge(self, task_id: int, depends_on_task_id: int) -> TaskDependency: ...
    def replace_edge(
            self,
            old_key: DependencyKey,
            new_task_id: int,
            new_depends_on_task_id: int,
    ) -> TaskDependency: ...
    def delete_edge(self, task_id: int, depends_on_task_id: int) -> None: ...
    def exists_edge(self, task_id: int, depends_on_task_id: int) -> bool: ...


class DependencyQueries(Protocol):
    def direct_dependencies_of(self, task_id: int, *, include_deleted: bool = True) -> list[Task]: ...
    def direct_dependents_of(self, task_id: int, *, include_deleted: bool = True) -> list[Task]: ...

    @overload
    def edges_from(self, task_id: int, page: None = None, *, include_deleted: bool = True) -> list[TaskDependency]: ...
    @overload
    def edges_from(self, task_id: int, page: PageRequest, *, include_deleted: bool = True) -> Page[TaskDependency]: ...

    @overload
    def edges_into(self, task_id: int, page: None = None, *, include_deleted: bool = True) -> list[TaskDependency]: ...
    @overload
    def edges_into(self, task_id: int, page: PageRequest, *, include_deleted: bool = True) -> Page[TaskDependency]: ...

    def count_dependencies_of(self, task_id: int, *, include_deleted: bool = True) -> int: ...
    def count_dependents_of(self, task_id: int, *, include_deleted: bool = True) -> int: ...
