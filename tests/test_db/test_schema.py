"""Tests for SQLite schema and migrations: idempotency, tables, indexes, constraints."""

from __future__ import annotations

import sqlite3

import pytest

from fleet_planner.db.migrations import MIGRATIONS, run_migrations
from fleet_planner.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


def _columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table});").fetchall()]


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables, (
                f"Expected table '{expected_table}' not found. Found: {tables}"
            )

    def test_idempotent_double_apply(self, in_memory_db):
        apply_schema(in_memory_db)
        assert set(ALL_TABLE_NAMES) <= set(get_existing_tables(in_memory_db))

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in (
            "idx_trainsets_status",
            "idx_certificates_trainset",
            "idx_job_cards_trainset",
            "idx_fleet_metrics_recorded",
            "idx_daily_schedules_date",
        ):
            assert idx in indexes, f"Expected index '{idx}' not found. Found: {indexes}"

    def test_trainset_maintenance_data_flags(self, in_memory_db):
        cols = _columns(in_memory_db, "trainsets")
        assert "has_certificate_data" in cols
        assert "has_job_card_data" in cols


class TestConstraints:
    def _insert_trainset(self, conn, **overrides):
        values = dict(
            trainset_id="ts-1", number="KMRL-1", status="ready", mileage=100.0,
            last_cleaning="2026-10-18T00:00:00+00:00", branding_priority=5,
            availability_percentage=90.0,
        )
        values.update(overrides)
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        conn.execute(f"INSERT INTO trainsets ({cols}) VALUES ({marks});", tuple(values.values()))

    def test_unknown_status_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            self._insert_trainset(in_memory_db, status="retired")

    def test_out_of_range_availability_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            self._insert_trainset(in_memory_db, availability_percentage=120.0)

    def test_duplicate_number_rejected(self, in_memory_db):
        self._insert_trainset(in_memory_db)
        with pytest.raises(sqlite3.IntegrityError):
            self._insert_trainset(in_memory_db, trainset_id="ts-2")

    def test_fk_enforcement_is_on(self, in_memory_db):
        row = in_memory_db.execute("PRAGMA foreign_keys;").fetchone()
        assert row[0] == 1

    def test_orphan_job_card_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO job_cards (trainset_id, status, priority) VALUES ('nope', 'open', 3);"
            )

    def test_single_planning_row(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute("INSERT INTO planning_status (planning_id) VALUES (2);")


class TestMigrations:
    def test_scoring_mode_column_added(self, in_memory_db):
        assert "scoring_mode" in _columns(in_memory_db, "daily_schedules")

    def test_all_versions_recorded(self, in_memory_db):
        rows = in_memory_db.execute("SELECT version_id FROM schema_versions;").fetchall()
        assert {r[0] for r in rows} == {m.version_id for m in MIGRATIONS}

    def test_second_run_is_a_no_op(self, in_memory_db):
        assert run_migrations(in_memory_db) == 0

    def test_fresh_database_applies_every_migration(self):
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        try:
            apply_schema(conn)
            assert run_migrations(conn) == len(MIGRATIONS)
        finally:
            conn.close()
