# src/taskgraph/storage/lifecycle.py

"""
Logical-deletion layer shared by every soft-deletable table.

A record is ACTIVE while `deleted_at` is NULL, SOFT_DELETED once it is
stamped, and gone after a hard delete. Default reads see ACTIVE rows only;
callers ask for `include_deleted=True` explicitly.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from enum import StrEnum

from ..errors import NotFound, RecordNotFound
from .database import Database, storable_id

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LifecycleState(StrEnum):
    """
    Lifecycle of a soft-deletable record.

    Hard-deleted rows have no member: they are gone, and lookups report them
    as None / NotFound. There is no transition back to ACTIVE.
    """

    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"

    @classmethod
    def from_deleted_at(cls, deleted_at: float | None) -> LifecycleState:
        return cls.ACTIVE if deleted_at is None else cls.SOFT_DELETED


def active_clause(include_deleted: bool, alias: str | None = None) -> str:
    """SQL predicate selecting the rows a lookup may see."""
    if include_deleted:
        return "1 = 1"
    col = f"{alias}.deleted_at" if alias else "deleted_at"
    return f"{col} IS NULL"


class SoftDeleteStore:
    """
    Soft/hard delete and existence checks for one table.

    The table needs an INTEGER `id` primary key, a nullable REAL
    `deleted_at` column and a REAL `updated_at` column. Subclasses add
    cascades by overriding `_before_hard_delete`, which runs in the same
    transaction as the row removal.
    """

    def __init__(self, db: Database, table: str) -> None:
        if not _TABLE_NAME_RE.match(table):
            raise ValueError(f"invalid table name: {table!r}")
        self._db = db
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    def _not_found(self, record_id: int) -> NotFound:
        return RecordNotFound(self._table, record_id)

    def _before_hard_delete(self, conn: sqlite3.Connection, record_id: int) -> None:
        return

    # ---- lifecycle transitions ----

    def soft_delete(self, record_id: int, *, now_ts: float | None = None) -> float:
        """
        Stamp `deleted_at` on the record.

        An already soft-deleted record is re-stamped (the call still succeeds).
        Returns the timestamp written.
        """
        ts = time.time() if now_ts is None else float(now_ts)
        if not storable_id(record_id):
            raise self._not_found(record_id)
        with self._db.transaction() as conn:
            cur = conn.execute(
                f"UPDATE {self._table} SET deleted_at = ?, updated_at = ? WHERE id = ?",
                (ts, ts, int(record_id)),
            )
            if cur.rowcount != 1:
                raise self._not_found(record_id)
        logger.info("Soft-deleted %s id=%s", self._table, record_id)
        return ts

    def hard_delete(self, record_id: int) -> None:
        """Physically remove the record (any lifecycle state), cascades included."""
        with self._db.transaction() as conn:
            if not self.exists_in(conn, record_id, include_deleted=True):
                raise self._not_found(record_id)
            self._before_hard_delete(conn, int(record_id))
            conn.execute(f"DELETE FROM {self._table} WHERE id = ?", (int(record_id),))
        logger.info("Hard-deleted %s id=%s", self._table, record_id)

    # ---- existence ----

    def exists_in(self, conn: sqlite3.Connection, record_id: int, *, include_deleted: bool) -> bool:
        """Existence check on a connection the caller already holds (transaction-aware)."""
        if not storable_id(record_id):
            return False
        row = conn.execute(
            f"SELECT 1 FROM {self._table} WHERE id = ? AND {active_clause(include_deleted)}",
            (int(record_id),),
        ).fetchone()
        return row is not None

    def exists_active(self, record_id: int) -> bool:
        with self._db.read() as conn:
            return self.exists_in(conn, record_id, include_deleted=False)

    def exists_any(self, record_id: int) -> bool:
        with self._db.read() as conn:
            return self.exists_in(conn, record_id, include_deleted=True)

    def state_of(self, record_id: int) -> LifecycleState | None:
        """Current lifecycle state, or None if the record does not exist."""
        if not storable_id(record_id):
            return None
        with self._db.read() as conn:
            row = conn.execute(
                f"SELECT deleted_at FROM {self._table} WHERE id = ?", (int(record_id),)
            ).fetchone()
        if row is None:
            return None
        return LifecycleState.from_deleted_at(row["deleted_at"])

    def count(self, *, include_deleted: bool = False) -> int:
        with self._db.read() as conn:
            (n,) = conn.execute(
                f"SELECT COUNT(*) FROM {self._table} WHERE {active_clause(include_deleted)}"
            ).fetchone()
        return int(n)
