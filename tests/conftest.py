# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskgraph.cli.bootstrap import create_initial_state
from taskgraph.core.state import AppState
from taskgraph.tasks.task_models import Task, TaskFields


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_initial_state.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskgraph-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "taskgraph.sqlite3",
        db_timeout_seconds=5.0,
        allow_self_loops=True,
        console_enabled=False,
        console_list_limit=50,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired with a real SQLite file per test."""
    return create_initial_state(settings=settings)


@pytest.fixture()
def make_task(state: AppState) -> Callable[..., Task]:
    def _make(title: str = "task", **kwargs) -> Task:
        return state.tasks.create(TaskFields(title=title, **kwargs))

    return _make
