"""
Tests for fleet_planner/pipeline/status_update.py.

What we test
------------
  - A status change persists the new status and a fresh metrics row that
    reflects it.
  - Unknown trainset ids raise TrainsetNotFoundError and write nothing.
  - Invalid status strings raise ValueError before touching the DB.
  - Concurrent updates from several threads each produce a complete,
    internally consistent metrics row.
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from fleet_planner.db.connection import get_connection
from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository
from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
from fleet_planner.models.trainset import Trainset
from fleet_planner.pipeline.status_update import (
    TrainsetNotFoundError,
    update_status_and_recompute,
)
from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus

from conftest import NOW


# ── Helpers ────────────────────────────────────────────────────────────────────

def _seed(conn, n: int = 4) -> list[str]:
    fleet = [
        Trainset(
            id=f"ts-{i}",
            number=f"KMRL-{i:03d}",
            status=TrainsetStatus.READY,
            mileage=20_000,
            last_cleaning=NOW - timedelta(days=1),
            branding_priority=5,
            availability_percentage=90.0,
        )
        for i in range(1, n + 1)
    ]
    TrainsetRepository(conn).upsert_many(fleet)
    conn.commit()
    return [t.id for t in fleet]


def _metrics_rows(conn) -> int:
    return conn.execute("SELECT COUNT(*) FROM fleet_metrics;").fetchone()[0]


# ── Single-connection behaviour ───────────────────────────────────────────────

class TestUpdateStatusAndRecompute:
    def test_status_and_metrics_are_persisted(self, in_memory_db):
        _seed(in_memory_db)
        metrics = update_status_and_recompute(in_memory_db, "ts-2", "maintenance", now=NOW)

        assert metrics.total_fleet == 4
        assert metrics.ready == 3
        assert metrics.maintenance == 1
        assert metrics.serviceability == 75
        assert TrainsetRepository(in_memory_db).get_by_id("ts-2").status == TrainsetStatus.MAINTENANCE
        assert FleetMetricsRepository(in_memory_db).get_latest() == metrics

    def test_each_update_appends_a_row(self, in_memory_db):
        _seed(in_memory_db)
        update_status_and_recompute(in_memory_db, "ts-1", TrainsetStatus.STANDBY, now=NOW)
        update_status_and_recompute(in_memory_db, "ts-1", TrainsetStatus.CRITICAL, now=NOW)
        assert _metrics_rows(in_memory_db) == 2
        latest = FleetMetricsRepository(in_memory_db).get_latest()
        assert latest.critical == 1
        assert latest.standby == 0

    def test_unknown_trainset_writes_nothing(self, in_memory_db):
        _seed(in_memory_db)
        with pytest.raises(TrainsetNotFoundError) as exc_info:
            update_status_and_recompute(in_memory_db, "ts-99", "ready", now=NOW)
        assert exc_info.value.trainset_id == "ts-99"
        assert _metrics_rows(in_memory_db) == 0

    def test_invalid_status_rejected(self, in_memory_db):
        _seed(in_memory_db)
        with pytest.raises(ValueError):
            update_status_and_recompute(in_memory_db, "ts-1", "decommissioned", now=NOW)
        assert TrainsetRepository(in_memory_db).get_by_id("ts-1").status == TrainsetStatus.READY

    def test_pending_changes_are_committed_first(self, in_memory_db):
        _seed(in_memory_db, n=1)
        in_memory_db.execute("UPDATE trainsets SET mileage = 1 WHERE trainset_id = 'ts-1';")
        update_status_and_recompute(in_memory_db, "ts-1", "standby", now=NOW)
        assert TrainsetRepository(in_memory_db).get_by_id("ts-1").mileage == 1


# ── Concurrency ───────────────────────────────────────────────────────────────

class TestConcurrentUpdates:
    def test_parallel_updates_serialize(self, file_db_config):
        db_path = file_db_config.database.db_path
        with get_connection(db_path) as conn:
            ids = _seed(conn, n=8)

        errors: list[BaseException] = []

        def _worker(trainset_id: str) -> None:
            try:
                with get_connection(db_path) as conn:
                    update_status_and_recompute(conn, trainset_id, "maintenance", now=NOW)
            except BaseException as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=_worker, args=(tid,)) for tid in ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with get_connection(db_path) as conn:
            rows = conn.execute(
                "SELECT total_fleet, ready, standby, maintenance, critical "
                "FROM fleet_metrics ORDER BY metric_id;"
            ).fetchall()
        assert len(rows) == 8
        for row in rows:
            assert row["ready"] + row["standby"] + row["maintenance"] + row["critical"] == 8
        # Each row sees one more maintenance unit than the previous
        assert [row["maintenance"] for row in rows] == list(range(1, 9))
