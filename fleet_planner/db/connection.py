"""
SQLite connections for the fleet planner.

``get_connection(db_path)`` is the only way library code opens the database.
Every connection it yields has:

  * ``foreign_keys`` on, so job cards and certificates cannot outlive their
    trainset,
  * a busy timeout, so a concurrent ``set-status`` waits for the writer
    instead of failing with "database is locked",
  * WAL journaling (optional) so reads are not blocked by a schedule run,
  * ``sqlite3.Row`` rows.

The block commits when it exits normally and rolls back when it raises::

    with get_connection(config.database.db_path) as conn:
        fleet = TrainsetRepository(conn).load_fleet_snapshot()
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _apply_pragmas(conn: sqlite3.Connection, wal_mode: bool, busy_timeout_ms: int) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    if wal_mode and conn.execute("PRAGMA journal_mode;").fetchone()[0] != "wal":
        conn.execute("PRAGMA journal_mode = WAL;")


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Iterator[sqlite3.Connection]:
    """Yield a configured connection to ``db_path``.

    Args:
        db_path:         SQLite file; parent directories are created.
                         ``":memory:"`` gives a throwaway database.
        wal_mode:        Switch the file to WAL journaling.
        busy_timeout_ms: How long a statement waits on a locked database.

    Raises:
        sqlite3.OperationalError: The file cannot be opened, or the lock
            was not released within ``busy_timeout_ms``.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    try:
        _apply_pragmas(conn, wal_mode, busy_timeout_ms)
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
    finally:
        conn.close()
        logger.debug("Closed SQLite connection: %s", db_path)
