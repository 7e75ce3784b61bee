"""
Repository for fleet metrics snapshots and planning counters.

``fleet_metrics`` is append-only: every recompute inserts a new row and the
"current" metrics are simply the latest one. ``planning_status`` holds a
single row (``planning_id = 1``).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fleet_planner.db.repositories.base import BaseRepository
from fleet_planner.models.fleet import FleetMetricsSnapshot, PlanningStatus

logger = logging.getLogger(__name__)


class FleetMetricsRepository(BaseRepository):
    """Read/write access to ``fleet_metrics`` and ``planning_status``."""

    def persist_metrics(self, metrics: FleetMetricsSnapshot, recorded_at: datetime) -> int:
        """Append a metrics snapshot and return its ``metric_id``.

        Args:
            metrics:     Output of ``recompute``.
            recorded_at: Timestamp for the row (the caller's ``now``).
        """
        cursor = self.execute(
            """
            INSERT INTO fleet_metrics (
                total_fleet, ready, standby, maintenance, critical,
                serviceability, avg_availability, recorded_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                metrics.total_fleet,
                metrics.ready,
                metrics.standby,
                metrics.maintenance,
                metrics.critical,
                metrics.serviceability,
                metrics.avg_availability,
                recorded_at.isoformat(),
            ),
        )
        logger.debug("Fleet metrics persisted: %s", metrics.model_dump())
        return int(cursor.lastrowid)

    def get_latest(self) -> Optional[FleetMetricsSnapshot]:
        """Return the most recent metrics snapshot, or ``None`` if none exist."""
        row = self.fetchone(
            """
            SELECT total_fleet, ready, standby, maintenance, critical,
                   serviceability, avg_availability
              FROM fleet_metrics
             ORDER BY recorded_at DESC, metric_id DESC
             LIMIT 1;
            """
        )
        return FleetMetricsSnapshot(**dict(row)) if row else None

    def get_planning_status(self) -> PlanningStatus:
        """Return the planning counters; defaults if never saved."""
        row = self.fetchone(
            """
            SELECT schedules_generated, ai_confidence_avg, last_optimization
              FROM planning_status WHERE planning_id = 1;
            """
        )
        if row is None:
            return PlanningStatus()
        return PlanningStatus(
            schedules_generated=row["schedules_generated"],
            ai_confidence_avg=row["ai_confidence_avg"],
            last_optimization=(
                datetime.fromisoformat(row["last_optimization"])
                if row["last_optimization"] else None
            ),
        )

    def save_planning_status(self, planning: PlanningStatus) -> None:
        """Insert or replace the single planning row."""
        self.execute(
            """
            INSERT INTO planning_status (
                planning_id, schedules_generated, ai_confidence_avg, last_optimization
            ) VALUES (1, ?, ?, ?)
            ON CONFLICT(planning_id) DO UPDATE SET
                schedules_generated = excluded.schedules_generated,
                ai_confidence_avg   = excluded.ai_confidence_avg,
                last_optimization   = excluded.last_optimization,
                updated_at          = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                planning.schedules_generated,
                planning.ai_confidence_avg,
                planning.last_optimization.isoformat() if planning.last_optimization else None,
            ),
        )
