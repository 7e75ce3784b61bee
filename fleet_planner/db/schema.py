"""
Baseline SQLite schema for the fleet planner.

Tables, in foreign-key order:

  trainsets             one row per unit, keyed by ``trainset_id``
  fitness_certificates  per-unit certificates, cascade-deleted with the unit
  job_cards             per-unit work orders, cascade-deleted with the unit
  fleet_metrics         one row per refresh; the newest is the current view
  planning_status       exactly one row (``planning_id = 1``)
  run_metadata          audit record of every pipeline run
  daily_schedules       one planned status per unit per service day

``has_certificate_data`` and ``has_job_card_data`` on ``trainsets`` say
whether those lists were supplied at all. A trainset read back from the
database therefore keeps ``None`` apart from ``[]``, which decides whether
it is scored in simple or certificate-aware mode.

Every statement is ``IF NOT EXISTS``; ``apply_schema()`` can run on each
start. Later column changes live in ``migrations.py``.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_TRAINSETS = """
CREATE TABLE IF NOT EXISTS trainsets (
    trainset_id             TEXT    PRIMARY KEY,
    number                  TEXT    NOT NULL UNIQUE,
    status                  TEXT    NOT NULL
                                CHECK (status IN ('ready', 'standby', 'maintenance', 'critical')),
    bay_position            INTEGER NOT NULL DEFAULT 1 CHECK (bay_position >= 1),
    mileage                 REAL    NOT NULL CHECK (mileage >= 0),
    last_cleaning           TEXT    NOT NULL,
    branding_priority       INTEGER NOT NULL CHECK (branding_priority BETWEEN 1 AND 10),
    availability_percentage REAL    NOT NULL
                                CHECK (availability_percentage BETWEEN 0 AND 100),
    has_certificate_data    INTEGER NOT NULL DEFAULT 0,
    has_job_card_data       INTEGER NOT NULL DEFAULT 0,
    created_at              TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    updated_at              TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_trainsets_status ON trainsets(status);
"""

_DDL_FITNESS_CERTIFICATES = """
CREATE TABLE IF NOT EXISTS fitness_certificates (
    certificate_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    trainset_id      TEXT    NOT NULL REFERENCES trainsets(trainset_id) ON DELETE CASCADE,
    certificate_type TEXT    NOT NULL DEFAULT 'general',
    expiry_date      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_certificates_trainset
    ON fitness_certificates(trainset_id, expiry_date);
"""

_DDL_JOB_CARDS = """
CREATE TABLE IF NOT EXISTS job_cards (
    job_card_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    trainset_id  TEXT    NOT NULL REFERENCES trainsets(trainset_id) ON DELETE CASCADE,
    status       TEXT    NOT NULL CHECK (status IN ('open', 'closed')),
    priority     INTEGER NOT NULL DEFAULT 3 CHECK (priority BETWEEN 1 AND 5),
    description  TEXT
);

CREATE INDEX IF NOT EXISTS idx_job_cards_trainset
    ON job_cards(trainset_id, status);
"""

_DDL_FLEET_METRICS = """
CREATE TABLE IF NOT EXISTS fleet_metrics (
    metric_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    total_fleet       INTEGER NOT NULL,
    ready             INTEGER NOT NULL,
    standby           INTEGER NOT NULL,
    maintenance       INTEGER NOT NULL,
    critical          INTEGER NOT NULL,
    serviceability    INTEGER NOT NULL,
    avg_availability  INTEGER NOT NULL,
    recorded_at       TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_fleet_metrics_recorded
    ON fleet_metrics(recorded_at DESC, metric_id DESC);
"""

_DDL_PLANNING_STATUS = """
CREATE TABLE IF NOT EXISTS planning_status (
    planning_id          INTEGER PRIMARY KEY CHECK (planning_id = 1),
    schedules_generated  INTEGER NOT NULL DEFAULT 0,
    ai_confidence_avg    INTEGER NOT NULL DEFAULT 0,
    last_optimization    TEXT,
    updated_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    pipeline_stage  TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'started',
    schedule_date   TEXT,
    config_snapshot TEXT    NOT NULL,
    rows_processed  INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TEXT    NOT NULL,
    finished_at     TEXT
);

CREATE INDEX IF NOT EXISTS idx_run_metadata_stage
    ON run_metadata(pipeline_stage, started_at DESC);
"""

_DDL_DAILY_SCHEDULES = """
CREATE TABLE IF NOT EXISTS daily_schedules (
    schedule_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    schedule_date    TEXT    NOT NULL,
    trainset_id      TEXT    NOT NULL REFERENCES trainsets(trainset_id) ON DELETE CASCADE,
    planned_status   TEXT    NOT NULL,
    confidence_score REAL    NOT NULL,
    priority_score   INTEGER NOT NULL,
    reasoning        TEXT    NOT NULL,
    risk_factors     TEXT    NOT NULL,
    run_id           INTEGER REFERENCES run_metadata(run_id),
    created_at       TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (schedule_date, trainset_id)
);

CREATE INDEX IF NOT EXISTS idx_daily_schedules_date
    ON daily_schedules(schedule_date, planned_status);
"""

_TABLE_DDL: dict[str, str] = {
    "trainsets": _DDL_TRAINSETS,
    "fitness_certificates": _DDL_FITNESS_CERTIFICATES,
    "job_cards": _DDL_JOB_CARDS,
    "fleet_metrics": _DDL_FLEET_METRICS,
    "planning_status": _DDL_PLANNING_STATUS,
    "run_metadata": _DDL_RUN_METADATA,
    "daily_schedules": _DDL_DAILY_SCHEDULES,
}

ALL_TABLE_NAMES = list(_TABLE_DDL)


def _statements(block: str) -> list[str]:
    return [part.strip() for part in block.split(";") if part.strip()]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create any missing tables and indexes, then commit."""
    for table, block in _TABLE_DDL.items():
        for statement in _statements(block):
            conn.execute(statement)
        logger.debug("Ensured table %s", table)
    conn.commit()
    logger.info("Schema ready (%d tables)", len(_TABLE_DDL))


def _sqlite_master_names(conn: sqlite3.Connection, kind: str) -> list[str]:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = ? ORDER BY name;", (kind,)
    )
    return [row[0] for row in cursor.fetchall()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Table names in the database, sorted."""
    return _sqlite_master_names(conn, "table")


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Index names in the database, sorted."""
    return _sqlite_master_names(conn, "index")
