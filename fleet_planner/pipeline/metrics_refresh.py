"""
MetricsRefreshStage - recompute fleet metrics from the stored snapshot and
append them to ``fleet_metrics``.

Returns the fleet size.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fleet_planner.db.repositories.metrics_repo import FleetMetricsRepository
from fleet_planner.db.repositories.trainset_repo import TrainsetRepository
from fleet_planner.metrics.aggregator import recompute
from fleet_planner.models.fleet import FleetMetricsSnapshot
from fleet_planner.models.meta import RunMetadata
from fleet_planner.pipeline.base import PipelineStage
from fleet_planner.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


class MetricsRefreshStage(PipelineStage):
    """Recompute and persist the fleet metrics rollup."""

    stage_name = "metrics_refresh"

    last_metrics: Optional[FleetMetricsSnapshot] = None

    def _execute(self, run: RunMetadata, now: datetime | None = None, **kwargs) -> int:
        now = ensure_utc(now) if now else utcnow()

        with self._connect() as conn:
            metrics = recompute(TrainsetRepository(conn).load_fleet_snapshot())
            FleetMetricsRepository(conn).persist_metrics(metrics, now)

        self.last_metrics = metrics
        logger.info(
            "Fleet metrics: %d trainsets, serviceability=%d%%, avg_availability=%d%%",
            metrics.total_fleet, metrics.serviceability, metrics.avg_availability,
        )
        return metrics.total_fleet
