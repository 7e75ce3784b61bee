"""
Common plumbing for the fleet planner's SQLite repositories.

Each repository wraps one caller-owned ``sqlite3.Connection`` and exposes
methods in terms of the pydantic models (``Trainset``, ``FleetMetrics``,
``RunMetadata``...). Transactions belong to whoever opened the connection:
``get_connection()`` commits at the end of its block and ``set_status``
drives its own ``BEGIN IMMEDIATE``. Repositories never commit.

Rows come back as ``sqlite3.Row`` so columns are read by name.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

Params = Sequence[Any] | dict[str, Any]


class BaseRepository:
    """Thin SQL helpers shared by the concrete repositories."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("execute %s %r", " ".join(sql.split()), params)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, rows: Sequence[Params]) -> sqlite3.Cursor:
        logger.debug("executemany %s (%d rows)", " ".join(sql.split()), len(rows))
        return self.conn.executemany(sql, rows)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()
