# src/taskgraph/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires Database -> TaskStore -> DependencyStore -> GraphQueryEngine into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..storage.database import Database
from ..tasks.dependency_queries import GraphQueryEngine
from ..tasks.dependency_store import DependencyStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = Database(settings.db_path, timeout=settings.db_timeout_seconds)
    tasks = TaskStore(db)
    dependencies = DependencyStore(db, tasks, allow_self_loops=settings.allow_self_loops)
    graph = GraphQueryEngine(db)

    logger.debug("AppState wired db=%s", settings.db_path)
    return AppState(
        settings=settings,
        db=db,
        tasks=tasks,
        dependencies=dependencies,
        graph=graph,
    )
