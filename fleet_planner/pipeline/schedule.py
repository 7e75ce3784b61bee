"""
ScheduleStage - produce next-day status recommendations for the whole fleet.

Schedule flow
-------------
  1. Load the fleet snapshot from ``trainsets`` (DB).
  2. Run ``schedule_all()`` with ``config.engine`` thresholds and the
     optional ``config.scheduler.max_ready_fraction`` cap.
  3. Persist one ``daily_schedules`` row per recommendation.
  4. Fold the run into ``planning_status`` via ``apply_schedule()``.
  5. Write ``schedule_{date}.json`` to ``config.data.output_dir``.

Steps 3-5 share one transaction: if the JSON export fails, the schedule
rows and the planning counters are rolled back and the run is ``failed``.

With ``dry_run=True`` steps 3-5 are skipped; the result is still available
on ``stage.last_result``.

Returns the number of recommendations produced.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository
from fleet_planner.db.repositories.schedule_repo import ScheduleRepository
from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
from fleet_planner.metrics.aggregator import apply_schedule
from fleet_planner.models.meta import RunMetadata
from fleet_planner.models.recommendation import ScheduleResult
from fleet_planner.pipeline.base import PipelineStage
from fleet_planner.recommendations.reporter import write_schedule_json
from fleet_planner.recommendations.scheduler import schedule_all
from fleet_planner.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class ScheduleStage(PipelineStage):
    """Recommend a status for every trainset and store the day's schedule."""

    stage_name = "schedule"

    last_result: Optional[ScheduleResult] = None
    last_output_path: Optional[Path] = None

    def _execute(
        self,
        run: RunMetadata,
        schedule_date: date | None = None,
        now: datetime | None = None,
        dry_run: bool = False,
        output_dir: Path | None = None,
        **kwargs,
    ) -> int:
        """Generate and persist the schedule.

        Args:
            run:           In-progress RunMetadata (mutable).
            schedule_date: Service date being planned. Defaults to the day
                           after ``now``.
            now:           Reference time for the engine. Defaults to UTC now.
            dry_run:       If True, compute only; nothing is written.
            output_dir:    Override for ``config.data.output_dir``.

        Returns:
            Number of recommendations produced.
        """
        now = ensure_utc(now) if now else utcnow()
        if schedule_date is None:
            schedule_date = (now + timedelta(days=1)).date()
        run.schedule_date = schedule_date.isoformat()

        if not dry_run:
            # Insert the run row up front so schedule rows can reference run_id
            self._persist_run(run)

        with self._connect() as conn:
            fleet = TrainsetRepository(conn).load_fleet_snapshot()
            result = schedule_all(
                fleet,
                now,
                thresholds=self.config.engine,
                max_ready_fraction=self.config.scheduler.max_ready_fraction,
            )
            self.last_result = result

            if not dry_run:
                ScheduleRepository(conn).upsert_many(
                    schedule_date, result.recommendations, run_id=run.run_id
                )
                metrics_repo = FleetMetricsRepository(conn)
                planning = apply_schedule(metrics_repo.get_planning_status(), result, now)
                metrics_repo.save_planning_status(planning)

                # Export before commit: a failed write rolls back the rows above.
                if self.config.scheduler.write_json:
                    self.last_output_path = write_schedule_json(
                        result,
                        Path(output_dir or self.config.data.output_dir),
                        schedule_date=schedule_date,
                        run_slug=run.run_slug,
                    )

        logger.info(
            "Schedule for %s: %s (dry_run=%s)",
            schedule_date, result.summary.recommendations, dry_run,
        )
        return len(result.recommendations)
