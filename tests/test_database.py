# tests/test_database.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskgraph.storage.database import SQLITE_INT_MAX, SQLITE_INT_MIN, Database, storable_id


@pytest.mark.parametrize("path", [":memory:", "", "file::memory:?cache=shared"])
def test_in_memory_databases_are_rejected(path: str) -> None:
    with pytest.raises(ValueError):
        Database(path)


def test_file_database_survives_reconnects(tmp_path: Path) -> None:
    db = Database(tmp_path / "a.sqlite3", timeout=5.0)
    with db.transaction() as conn:
        conn.execute("INSERT INTO tasks(title, created_at, updated_at) VALUES ('x', 0, 0)")

    with db.read() as conn:
        (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
    assert n == 1


def test_snapshot_reads_one_point_in_time(state, make_task) -> None:
    make_task("first")

    with state.db.snapshot() as conn:
        (before,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        # A writer on another connection commits meanwhile.
        make_task("second")
        (after,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()

    assert before == after == 1
    assert state.tasks.count_tasks() == 2


def test_storable_id_bounds() -> None:
    assert storable_id(1)
    assert storable_id(SQLITE_INT_MAX)
    assert storable_id(SQLITE_INT_MIN)
    assert not storable_id(SQLITE_INT_MAX + 1)
    assert not storable_id(SQLITE_INT_MIN - 1)
    assert not storable_id(2**70)
