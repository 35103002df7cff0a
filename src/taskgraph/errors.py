# src/taskgraph/errors.py

"""
Failure kinds raised by the core.

Callers (HTTP layer, console) map these to user-visible responses; the core
only guarantees that each kind is distinguishable.
"""

from __future__ import annotations

from typing import Any


class TaskGraphError(Exception):
    """Base class for every typed failure of the task graph core."""


class NotFound(TaskGraphError, LookupError):
    pass


class TaskNotFound(NotFound):
    def __init__(self, task_id: int, *, scope: str = "any") -> None:
        self.task_id = int(task_id)
        self.scope = scope
        super().__init__(f"Task not found with ID: {self.task_id} (scope={scope})")


class RecordNotFound(NotFound):
    """Generic lifecycle-store miss for tables other than tasks."""

    def __init__(self, table: str, record_id: int) -> None:
        self.table = table
        self.record_id = int(record_id)
        super().__init__(f"{table} record not found with ID: {self.record_id}")


class DependencyNotFound(NotFound):
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Task dependency not found with ID: {key}")


class InvalidReference(TaskGraphError, ValueError):
    def __init__(self, task_id: int) -> None:
        self.task_id = int(task_id)
        super().__init__(f"Task dependency references unknown task ID: {self.task_id}")


class DuplicateEdge(TaskGraphError):
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Task dependency already exists: {key}")


class ConstraintViolation(TaskGraphError, ValueError):
    pass


class StoreUnavailable(TaskGraphError):
    """The backing store is locked or timed out; safe for the caller to retry."""
