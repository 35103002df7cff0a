# src/taskgraph/tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Generic, NamedTuple, TypeVar

from ..storage.lifecycle import LifecycleState

T = TypeVar("T")


@dataclass(slots=True)
class TaskFields:
    """Replaceable business fields of a task (the payload of create/replace)."""

    title: str
    description: str | None = None
    due_date: date | None = None

    # Opaque references to entities owned elsewhere.
    assignee_id: int | None = None
    category_id: int | None = None
    priority_id: int | None = None
    project_id: int | None = None
    status_id: int | None = None
    task_type_id: int | None = None

    completed_at: float | None = None


@dataclass(slots=True)
class Task:
    id: int
    title: str
    description: str | None
    due_date: date | None

    assignee_id: int | None
    category_id: int | None
    priority_id: int | None
    project_id: int | None
    status_id: int | None
    task_type_id: int | None

    completed_at: float | None
    created_at: float
    updated_at: float
    deleted_at: float | None = None

    @property
    def state(self) -> LifecycleState:
        return LifecycleState.from_deleted_at(self.deleted_at)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def fields(self) -> TaskFields:
        return TaskFields(
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            assignee_id=self.assignee_id,
            category_id=self.category_id,
            priority_id=self.priority_id,
            project_id=self.project_id,
            status_id=self.status_id,
            task_type_id=self.task_type_id,
            completed_at=self.completed_at,
        )


class DependencyKey(NamedTuple):
    """Composite identity of an edge: `task_id` depends on `depends_on_task_id`."""

    task_id: int
    depends_on_task_id: int

    def __str__(self) -> str:
        return f"({self.task_id} -> {self.depends_on_task_id})"


@dataclass(frozen=True, slots=True)
class TaskDependency:
    task_id: int
    depends_on_task_id: int
    created_at: float
    updated_at: float

    @property
    def key(self) -> DependencyKey:
        return DependencyKey(self.task_id, self.depends_on_task_id)

    @property
    def is_self_loop(self) -> bool:
        return self.task_id == self.depends_on_task_id


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 0
    size: int = 20

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("page must be >= 0")
        if self.size < 1:
            raise ValueError("size must be >= 1")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    size: int
    total: int = 0

    @property
    def total_pages(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.size)

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages
