"""
Batch scheduler: runs the recommendation engine over a fleet snapshot and
derives the fleet-level summary.

Usage flow
----------
1. schedule_all(trainsets, now)
   -> ScheduleResult  (recommendations in input order + summary + errors)

   Internally:
     recommend() per record; InvalidTrainsetError is caught, recorded as a
     ScheduleError and the batch continues.
     balance_ready_standby() if a ready cap is configured.
     build_summary() over the final recommendations.

Ready/standby balancing
-----------------------
With ``max_ready_fraction`` set, at most ``floor(fraction * n)`` units stay
``ready`` (n = recommendations produced). Ready units are ordered by
priority desc, confidence desc, trainset_id asc; the tail of that order is
moved to ``standby``. The ordering is total, so the split is reproducible.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Optional

from fleet_planner.config import EngineConfig
from fleet_planner.models.recommendation import (
    Recommendation,
    ScheduleError,
    ScheduleResult,
    ScheduleSummary,
)
from fleet_planner.models.trainset import InvalidTrainsetError, Trainset
from fleet_planner.recommendations.engine import recommend
from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus
from fleet_planner.utils.time_utils import ensure_utc, round_half_up

logger = logging.getLogger(__name__)

BALANCED_STANDBY_REASON = "Held in standby to balance ready fleet"


def schedule_all(
    trainsets: Sequence[Trainset | Mapping[str, Any]],
    now: datetime,
    thresholds: Optional[EngineConfig] = None,
    max_ready_fraction: Optional[float] = None,
) -> ScheduleResult:
    """Recommend a status for every trainset and summarise the run.

    Args:
        trainsets:          Fleet snapshot; ``Trainset`` objects or raw mappings.
        now:                Reference time shared by every recommendation.
        thresholds:         Rule thresholds; defaults to ``EngineConfig()``.
        max_ready_fraction: Optional cap on the share of ``ready`` units.

    Returns:
        ``ScheduleResult`` with recommendations in input order (skipped
        records omitted), the summary, and one ``ScheduleError`` per skip.
    """
    now = ensure_utc(now)
    recommendations: list[Recommendation] = []
    errors: list[ScheduleError] = []

    for index, record in enumerate(trainsets):
        try:
            recommendations.append(recommend(record, now, thresholds))
        except InvalidTrainsetError as exc:
            logger.warning("Skipping trainset at index %d: %s", index, exc)
            errors.append(
                ScheduleError(index=index, trainset_id=exc.trainset_id, message=str(exc))
            )

    if max_ready_fraction is not None:
        recommendations = balance_ready_standby(recommendations, max_ready_fraction)

    summary = build_summary(recommendations, total_trainsets=len(trainsets), now=now)
    logger.info(
        "Scheduled %d/%d trainsets (%d skipped) avg_conf=%.2f high_risk=%d",
        len(recommendations), len(trainsets), len(errors),
        summary.average_confidence, summary.high_risk_count,
    )
    return ScheduleResult(recommendations=recommendations, summary=summary, errors=errors)


def balance_ready_standby(
    recommendations: list[Recommendation],
    max_ready_fraction: float,
) -> list[Recommendation]:
    """Demote surplus ``ready`` recommendations to ``standby``.

    Args:
        recommendations:    Engine output in input order.
        max_ready_fraction: Share of the batch allowed to stay ``ready``.

    Returns:
        A new list in the same order; demoted entries carry an extra
        reasoning line.
    """
    cap = math.floor(max_ready_fraction * len(recommendations))
    ready = [r for r in recommendations if r.recommended_status == TrainsetStatus.READY]
    if len(ready) <= cap:
        return list(recommendations)

    ranked = sorted(
        ready,
        key=lambda r: (-r.priority_score, -r.confidence_score, r.trainset_id),
    )
    demoted = {id(r) for r in ranked[cap:]}
    logger.info("Ready cap %d reached: moving %d unit(s) to standby", cap, len(demoted))

    balanced: list[Recommendation] = []
    for rec in recommendations:
        if id(rec) in demoted:
            rec = rec.model_copy(
                update={
                    "recommended_status": TrainsetStatus.STANDBY,
                    "reasoning": [*rec.reasoning, BALANCED_STANDBY_REASON],
                }
            )
        balanced.append(rec)
    return balanced


def build_summary(
    recommendations: list[Recommendation],
    total_trainsets: int,
    now: datetime,
) -> ScheduleSummary:
    """Fleet-level rollup of one scheduling run.

    ``recommendations`` only has keys for statuses that occur;
    ``average_confidence`` is 0.0 when nothing was recommended.
    """
    counts = Counter(r.recommended_status.value for r in recommendations)
    if recommendations:
        mean = sum(r.confidence_score for r in recommendations) / len(recommendations)
        average_confidence = round_half_up(100 * mean) / 100
    else:
        average_confidence = 0.0

    return ScheduleSummary(
        total_trainsets=total_trainsets,
        recommendations=dict(counts),
        average_confidence=average_confidence,
        high_risk_count=sum(1 for r in recommendations if r.is_high_risk),
        optimization_timestamp=now.isoformat(),
    )
