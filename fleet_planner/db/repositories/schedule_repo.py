"""
Repository for per-day schedule rows (one per trainset per service date).

``reasoning`` and ``risk_factors`` are stored as JSON arrays.
Re-running a schedule for the same date replaces the earlier rows.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Optional

from fleet_planner.db.repositories.base import BaseRepository
from fleet_planner.models.recommendation import Recommendation

logger = logging.getLogger(__name__)


class ScheduleRepository(BaseRepository):
    """Read/write access to ``daily_schedules``."""

    def upsert_recommendation(
        self,
        schedule_date: date,
        rec: Recommendation,
        run_id: Optional[int] = None,
    ) -> None:
        """Insert or replace the schedule row for ``(schedule_date, trainset)``."""
        self.execute(
            """
            INSERT INTO daily_schedules (
                schedule_date, trainset_id, planned_status, confidence_score,
                priority_score, reasoning, risk_factors, scoring_mode, run_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(schedule_date, trainset_id) DO UPDATE SET
                planned_status   = excluded.planned_status,
                confidence_score = excluded.confidence_score,
                priority_score   = excluded.priority_score,
                reasoning        = excluded.reasoning,
                risk_factors     = excluded.risk_factors,
                scoring_mode     = excluded.scoring_mode,
                run_id           = excluded.run_id;
            """,
            (
                schedule_date.isoformat(),
                rec.trainset_id,
                rec.recommended_status.value,
                rec.confidence_score,
                rec.priority_score,
                json.dumps(rec.reasoning),
                json.dumps(rec.risk_factors),
                rec.scoring_mode.value,
                run_id,
            ),
        )

    def upsert_many(
        self,
        schedule_date: date,
        recommendations: list[Recommendation],
        run_id: Optional[int] = None,
    ) -> int:
        for rec in recommendations:
            self.upsert_recommendation(schedule_date, rec, run_id)
        logger.debug("Stored %d schedule row(s) for %s", len(recommendations), schedule_date)
        return len(recommendations)

    def get_for_date(self, schedule_date: date) -> list[Recommendation]:
        """Return the stored recommendations for one service date, by trainset number."""
        rows = self.fetchall(
            """
            SELECT s.*, t.number AS trainset_number
              FROM daily_schedules s
              LEFT JOIN trainsets t ON t.trainset_id = s.trainset_id
             WHERE s.schedule_date = ?
             ORDER BY t.number, s.trainset_id;
            """,
            (schedule_date.isoformat(),),
        )
        return [
            Recommendation(
                trainset_id=row["trainset_id"],
                recommended_status=row["planned_status"],
                confidence_score=row["confidence_score"],
                priority_score=row["priority_score"],
                reasoning=json.loads(row["reasoning"]),
                risk_factors=json.loads(row["risk_factors"]),
                trainset_number=row["trainset_number"],
                scoring_mode=row["scoring_mode"],
            )
            for row in rows
        ]
