"""
``run_metadata`` persistence: one audit row per ``schedule`` or
``metrics_refresh`` run, written by ``PipelineStage``.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, Optional

from fleet_planner.db.repositories.base import BaseRepository
from fleet_planner.models.meta import RunMetadata


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _run_params(run: RunMetadata) -> dict[str, Any]:
    return {
        "run_id": run.run_id,
        "run_slug": run.run_slug,
        "pipeline_stage": run.pipeline_stage,
        "status": run.status,
        "schedule_date": run.schedule_date,
        "config_snapshot": json.dumps(run.config_snapshot, default=str, sort_keys=True),
        "rows_processed": run.rows_processed,
        "error_message": run.error_message,
        "started_at": _iso(run.started_at),
        "finished_at": _iso(run.finished_at),
    }


class RunMetadataRepository(BaseRepository):
    """Audit records of pipeline runs."""

    def insert_run(self, run: RunMetadata) -> int:
        """Store a new run and return the ``run_id`` SQLite assigned."""
        cursor = self.execute(
            """
            INSERT INTO run_metadata (
                run_slug, pipeline_stage, status, schedule_date, config_snapshot,
                rows_processed, error_message, started_at, finished_at
            ) VALUES (
                :run_slug, :pipeline_stage, :status, :schedule_date, :config_snapshot,
                :rows_processed, :error_message, :started_at, :finished_at
            );
            """,
            _run_params(run),
        )
        return int(cursor.lastrowid)

    def update_run(self, run: RunMetadata) -> None:
        """Write back the fields a stage changes while it runs.

        Raises:
            ValueError: ``run`` was never inserted.
        """
        if run.run_id is None:
            raise ValueError(f"Run {run.run_slug} has no run_id; insert it first.")
        self.execute(
            """
            UPDATE run_metadata
               SET status = :status,
                   schedule_date = :schedule_date,
                   rows_processed = :rows_processed,
                   error_message = :error_message,
                   finished_at = :finished_at
             WHERE run_id = :run_id;
            """,
            _run_params(run),
        )

    def get_run_by_slug(self, run_slug: str) -> Optional[RunMetadata]:
        row = self.fetchone("SELECT * FROM run_metadata WHERE run_slug = ?;", (run_slug,))
        return _row_to_run(row) if row else None

    def get_recent_runs(
        self, pipeline_stage: Optional[str] = None, limit: int = 20
    ) -> list[RunMetadata]:
        """Newest runs first, optionally only those of ``pipeline_stage``."""
        where = "WHERE pipeline_stage = :stage" if pipeline_stage else ""
        rows = self.fetchall(
            f"SELECT * FROM run_metadata {where} "
            "ORDER BY started_at DESC, run_id DESC LIMIT :limit;",
            {"stage": pipeline_stage, "limit": limit},
        )
        return [_row_to_run(r) for r in rows]


def _row_to_run(row: sqlite3.Row) -> RunMetadata:
    data = dict(row)
    data["config_snapshot"] = json.loads(data["config_snapshot"])
    return RunMetadata.model_validate(data)
