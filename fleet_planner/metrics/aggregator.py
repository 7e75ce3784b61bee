"""
Fleet metrics aggregator.

``recompute`` derives a ``FleetMetricsSnapshot`` from the full fleet:

    serviceability   = round(100 * (ready + standby) / total_fleet)
    avg_availability = round(mean(availability_percentage))

Both are 0 for an empty fleet. ``round`` is half-up, not banker's rounding.

``apply_schedule`` folds one scheduling run into the ``PlanningStatus``
counters. Neither function touches the database; callers persist the
returned values.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from fleet_planner.models.fleet import FleetMetricsSnapshot, PlanningStatus
from fleet_planner.models.recommendation import ScheduleResult
from fleet_planner.models.trainset import Trainset
from fleet_planner.taxonomy.fleet_taxonomy import SERVICEABLE_STATUSES, TrainsetStatus
from fleet_planner.utils.time_utils import round_half_up

logger = logging.getLogger(__name__)


def recompute(trainsets: Iterable[Trainset]) -> FleetMetricsSnapshot:
    """Count trainsets per status and derive fleet percentages.

    Args:
        trainsets: Complete fleet snapshot.

    Returns:
        A new ``FleetMetricsSnapshot``; all zeros for an empty fleet.
    """
    fleet = list(trainsets)
    total = len(fleet)
    if total == 0:
        return FleetMetricsSnapshot()

    counts = Counter(t.status for t in fleet)
    serviceable = sum(counts[s] for s in SERVICEABLE_STATUSES)
    mean_availability = sum(t.availability_percentage for t in fleet) / total

    snapshot = FleetMetricsSnapshot(
        total_fleet=total,
        ready=counts[TrainsetStatus.READY],
        standby=counts[TrainsetStatus.STANDBY],
        maintenance=counts[TrainsetStatus.MAINTENANCE],
        critical=counts[TrainsetStatus.CRITICAL],
        serviceability=round_half_up(100 * serviceable / total),
        avg_availability=round_half_up(mean_availability),
    )
    logger.debug("Fleet metrics recomputed: %s", snapshot.model_dump())
    return snapshot


def apply_schedule(
    planning: PlanningStatus,
    result: ScheduleResult,
    now: datetime,
) -> PlanningStatus:
    """Return ``planning`` updated with one scheduling run.

    ``ai_confidence_avg`` becomes the run's mean confidence in percent; it is
    left unchanged when the run produced no recommendation.
    """
    confidence_avg = planning.ai_confidence_avg
    if result.recommendations:
        mean = sum(r.confidence_score for r in result.recommendations) / len(
            result.recommendations
        )
        confidence_avg = round_half_up(100 * mean)

    return planning.model_copy(
        update={
            "schedules_generated": planning.schedules_generated + 1,
            "ai_confidence_avg":   confidence_avg,
            "last_optimization":   now,
        }
    )
