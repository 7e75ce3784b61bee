"""
Shared pytest fixtures for the Metro Fleet Planner test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema and migrations applied. Created anew for each test that requests it.
  - ``now``: The fixed reference time used across engine tests.
  - ``file_db_config``: An ``AppConfig`` pointing at a temporary on-disk DB
    (schema applied) for pipeline stages, which open their own connections.
  - Sample trainset factories for use in multiple test modules.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from fleet_planner.config import AppConfig, DataConfig, DatabaseConfig, LoggingConfig
from fleet_planner.db.connection import get_connection
from fleet_planner.db.migrations import run_migrations
from fleet_planner.db.schema import apply_schema
from fleet_planner.models.trainset import FitnessCertificate, JobCard, Trainset
from fleet_planner.taxonomy.fleet_taxonomy import JobCardStatus, TrainsetStatus

NOW = datetime(2026, 10, 19, 6, 0, 0, tzinfo=timezone.utc)


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def file_db_config(tmp_path: Path) -> AppConfig:
    """AppConfig backed by an initialized SQLite file under ``tmp_path``."""
    db_path = str(tmp_path / "fleet.db")
    with get_connection(db_path) as conn:
        apply_schema(conn)
        run_migrations(conn)
    return AppConfig(
        database=DatabaseConfig(db_path=db_path),
        data=DataConfig(output_dir=str(tmp_path / "schedules")),
        logging=LoggingConfig(log_file=""),
    )


# ── Sample domain objects ─────────────────────────────────────────────────────

@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def sample_trainset() -> Trainset:
    """A healthy trainset with no certificate or job-card data (simple mode)."""
    return Trainset(
        id="ts-001",
        number="KMRL-001",
        status=TrainsetStatus.READY,
        bay_position=1,
        mileage=27_000,
        last_cleaning=NOW - timedelta(days=1),
        branding_priority=9,
        availability_percentage=100.0,
    )


@pytest.fixture
def certified_trainset() -> Trainset:
    """A trainset carrying a valid certificate and a closed job card."""
    return Trainset(
        id="ts-004",
        number="KMRL-004",
        status=TrainsetStatus.STANDBY,
        bay_position=4,
        mileage=15_000,
        last_cleaning=NOW - timedelta(days=2),
        branding_priority=5,
        availability_percentage=96.0,
        fitness_certificates=[
            FitnessCertificate(
                certificate_type="rolling_stock",
                expiry_date=NOW + timedelta(days=200),
            )
        ],
        job_cards=[JobCard(status=JobCardStatus.CLOSED, priority=2)],
    )
