"""
Forward-only schema migrations for the fleet planner database.

``apply_schema()`` creates the baseline tables; anything that changes an
existing table afterwards goes here as a numbered step. Applied step ids are
stored in ``schema_versions`` so each runs exactly once per database.

To add a step, write ``migration_NNNN_<what>(conn)`` and append it to
``MIGRATIONS``. Steps run in list order and must be safe to re-run against
a database that already has the change (e.g. one created by a newer
``apply_schema``).
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from typing import NamedTuple

logger = logging.getLogger(__name__)

MigrationFn = Callable[[sqlite3.Connection], None]


class Migration(NamedTuple):
    version_id: str
    apply: MigrationFn
    description: str


_VERSION_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS schema_versions (
    version_id  TEXT NOT NULL PRIMARY KEY,
    description TEXT,
    applied_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table});").fetchall()}


# ── Steps ─────────────────────────────────────────────────────────────────────

def migration_0001_bootstrap(conn: sqlite3.Connection) -> None:
    """Baseline marker; the tables themselves come from ``apply_schema``."""


def migration_0002_add_schedule_scoring_mode(conn: sqlite3.Connection) -> None:
    """Record which rule set (simple / certificate_aware) produced each schedule row."""
    if "scoring_mode" not in _table_columns(conn, "daily_schedules"):
        conn.execute(
            "ALTER TABLE daily_schedules "
            "ADD COLUMN scoring_mode TEXT NOT NULL DEFAULT 'simple';"
        )


MIGRATIONS: list[Migration] = [
    Migration("0001_bootstrap", migration_0001_bootstrap, "Baseline schema"),
    Migration(
        "0002_schedule_scoring_mode",
        migration_0002_add_schedule_scoring_mode,
        "Add scoring_mode to daily_schedules",
    ),
]


# ── Runner ────────────────────────────────────────────────────────────────────

def run_migrations(conn: sqlite3.Connection) -> int:
    """Apply every step not yet recorded in ``schema_versions``.

    Each step and its version row are committed together; a failing step is
    rolled back and re-raised, leaving earlier steps in place.

    Returns:
        How many steps were applied by this call.
    """
    conn.execute(_VERSION_TABLE_DDL)
    conn.commit()
    done = {row[0] for row in conn.execute("SELECT version_id FROM schema_versions;")}

    pending = [m for m in MIGRATIONS if m.version_id not in done]
    for migration in pending:
        logger.info("Migration %s: %s", migration.version_id, migration.description)
        try:
            migration.apply(conn)
            conn.execute(
                "INSERT INTO schema_versions (version_id, description) VALUES (?, ?);",
                (migration.version_id, migration.description),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            logger.exception("Migration %s failed", migration.version_id)
            raise

    logger.debug("%d migration(s) applied, %d already present", len(pending), len(done))
    return len(pending)
