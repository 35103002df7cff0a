# tests/test_task_store.py

from __future__ import annotations

from datetime import date

import pytest

from taskgraph.errors import TaskNotFound
from taskgraph.storage.lifecycle import LifecycleState
from taskgraph.tasks.task_models import TaskFields


def test_create_assigns_ids_and_defaults(state) -> None:
    a = state.tasks.create(TaskFields(title="  Write report  ", description="q3"))
    b = state.tasks.create(TaskFields(title="Write report"))

    assert a.id > 0
    assert b.id > a.id
    assert a.title == "Write report"
    assert a.description == "q3"
    assert a.deleted_at is None
    assert a.state is LifecycleState.ACTIVE
    # Titles are not unique.
    assert state.tasks.count_tasks() == 2


def test_create_requires_title(state) -> None:
    with pytest.raises(ValueError):
        state.tasks.create(TaskFields(title="   "))
    assert state.tasks.count_tasks(include_deleted=True) == 0


def test_find_active_hides_soft_deleted_find_any_does_not(state, make_task) -> None:
    t = make_task("archive me")

    assert state.tasks.find_active_by_id(t.id).id == t.id

    state.tasks.soft_delete(t.id)

    with pytest.raises(TaskNotFound):
        state.tasks.find_active_by_id(t.id)
    found = state.tasks.find_any_by_id(t.id)
    assert found.is_deleted
    assert found.state is LifecycleState.SOFT_DELETED


def test_find_unknown_task(state) -> None:
    with pytest.raises(TaskNotFound):
        state.tasks.find_active_by_id(12345)
    with pytest.raises(TaskNotFound):
        state.tasks.find_any_by_id(12345)


def test_replace_overwrites_every_field(state, make_task) -> None:
    t = make_task(
        "old",
        description="old description",
        due_date=date(2030, 1, 1),
        assignee_id=7,
        project_id=3,
    )

    updated = state.tasks.replace(
        t.id,
        TaskFields(title="new", priority_id=2, status_id=5, completed_at=1234.5),
    )

    assert updated.id == t.id
    assert updated.title == "new"
    assert updated.description is None
    assert updated.due_date is None
    assert updated.assignee_id is None
    assert updated.project_id is None
    assert updated.priority_id == 2
    assert updated.status_id == 5
    assert updated.completed_at == 1234.5
    assert updated.created_at == t.created_at
    assert updated.updated_at >= t.updated_at


def test_replace_soft_deleted_task_keeps_it_deleted(state, make_task) -> None:
    t = make_task("gone soon")
    state.tasks.soft_delete(t.id)

    updated = state.tasks.replace(t.id, TaskFields(title="edited while deleted"))

    assert updated.title == "edited while deleted"
    assert updated.is_deleted
    assert state.tasks.state_of(t.id) is LifecycleState.SOFT_DELETED


def test_replace_unknown_task(state) -> None:
    with pytest.raises(TaskNotFound):
        state.tasks.replace(999, TaskFields(title="x"))


def test_ids_are_never_reused_after_hard_delete(state, make_task) -> None:
    first = make_task("first")
    state.tasks.hard_delete(first.id)

    second = make_task("second")
    assert second.id > first.id
    with pytest.raises(TaskNotFound):
        state.tasks.hard_delete(first.id)


def test_finders_skip_soft_deleted_tasks(state, make_task) -> None:
    a = make_task("a", assignee_id=1, status_id=10, project_id=100, category_id=4, priority_id=2)
    b = make_task("b", assignee_id=1, status_id=11, project_id=100, category_id=4, priority_id=2)
    c = make_task("c", assignee_id=2, status_id=10, project_id=200)
    state.tasks.soft_delete(b.id)

    assert [t.id for t in state.tasks.find_by_assignee(1)] == [a.id]
    assert [t.id for t in state.tasks.find_by_status(10)] == [a.id, c.id]
    assert [t.id for t in state.tasks.find_by_project(100)] == [a.id]
    assert [t.id for t in state.tasks.find_by_category(4)] == [a.id]
    assert [t.id for t in state.tasks.find_by_priority(2)] == [a.id]
    assert [t.id for t in state.tasks.find_by_assignee_and_status(1, 10)] == [a.id]
    assert state.tasks.find_by_assignee_and_status(1, 11) == []

    assert [t.id for t in state.tasks.list_tasks()] == [a.id, c.id]
    assert [t.id for t in state.tasks.list_tasks(limit=1)] == [a.id]
    assert [t.id for t in state.tasks.list_deleted()] == [b.id]


def test_due_date_and_completion_finders(state, make_task) -> None:
    early = make_task("early", due_date=date(2024, 1, 10), project_id=1)
    mid = make_task("mid", due_date=date(2024, 2, 15), project_id=1, completed_at=50.0)
    late = make_task("late", due_date=date(2024, 3, 20), project_id=2)
    undated = make_task("undated", project_id=1)

    assert [t.id for t in state.tasks.find_due_before(date(2024, 2, 15))] == [early.id]
    assert [t.id for t in state.tasks.find_due_after(date(2024, 2, 15))] == [late.id]
    assert [t.id for t in state.tasks.find_due_between(date(2024, 1, 10), date(2024, 2, 15))] == [
        early.id,
        mid.id,
    ]
    assert [t.id for t in state.tasks.find_overdue_by_project(1, date(2024, 3, 1))] == [
        early.id,
        mid.id,
    ]

    assert [t.id for t in state.tasks.find_completed()] == [mid.id]
    assert [t.id for t in state.tasks.find_incomplete()] == [early.id, late.id, undated.id]

    assert state.tasks.find_any_by_id(mid.id).due_date == date(2024, 2, 15)


def test_fields_round_trip_through_replace(state, make_task) -> None:
    t = make_task("keep", description="d", assignee_id=9, due_date=date(2025, 5, 5))

    fields = t.fields()
    fields.title = "renamed"
    updated = state.tasks.replace(t.id, fields)

    assert updated.title == "renamed"
    assert updated.description == "d"
    assert updated.assignee_id == 9
    assert updated.due_date == date(2025, 5, 5)


@pytest.mark.parametrize("huge", [2**64, -(2**70)])
def test_ids_beyond_sqlite_range_are_not_found(state, huge: int) -> None:
    with pytest.raises(TaskNotFound):
        state.tasks.find_active_by_id(huge)
    with pytest.raises(TaskNotFound):
        state.tasks.find_any_by_id(huge)
    with pytest.raises(TaskNotFound):
        state.tasks.replace(huge, TaskFields(title="x"))
    with pytest.raises(TaskNotFound):
        state.tasks.soft_delete(huge)
    with pytest.raises(TaskNotFound):
        state.tasks.hard_delete(huge)

    assert not state.tasks.exists_any(huge)
    assert not state.tasks.exists_active(huge)
    assert state.tasks.state_of(huge) is None
