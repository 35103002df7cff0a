# src/taskgraph/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..storage.database import Database
from .ports import DependencyQueries, DependencyRepo, TaskRepo


@dataclass
class AppState:
    """The wired core: one Database and the three stores built on it."""

    # Settings object (real Settings or a test double with the same attributes).
    settings: Any

    db: Database
    tasks: TaskRepo
    dependencies: DependencyRepo
    graph: DependencyQueries

    # Serializes console command handling; the stores themselves need no lock.
    lock: threading.Lock = field(default_factory=threading.Lock)

    def close(self) -> None:
        self.db.close()
