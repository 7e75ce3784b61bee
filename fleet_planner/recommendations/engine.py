"""
Recommendation engine entry point.

``recommend(trainset, now)`` validates its input, selects the scoring mode,
runs the rule cascade and the secondary annotations, and returns a frozen
``Recommendation``. It is a pure function of ``(trainset, now, thresholds)``:
two calls with identical arguments return identical output.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from fleet_planner.config import EngineConfig
from fleet_planner.models.recommendation import Recommendation
from fleet_planner.models.trainset import Trainset, coerce_trainset
from fleet_planner.recommendations.rules import (
    annotate,
    primary_verdict,
    select_mode,
)
from fleet_planner.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)

_DEFAULT_THRESHOLDS = EngineConfig()


def recommend(
    trainset: Trainset | Mapping[str, Any],
    now: datetime,
    thresholds: Optional[EngineConfig] = None,
) -> Recommendation:
    """Produce a next-day status recommendation for one trainset.

    Args:
        trainset:   A ``Trainset`` or a raw mapping in the same shape.
        now:        Reference time for certificate expiry and cleaning age.
                    Naive values are taken as UTC.
        thresholds: Rule thresholds; defaults to ``EngineConfig()``.

    Returns:
        A ``Recommendation`` with non-empty reasoning.

    Raises:
        InvalidTrainsetError: If ``trainset`` is a mapping that fails validation.
    """
    record = coerce_trainset(trainset)
    t = thresholds or _DEFAULT_THRESHOLDS
    now = ensure_utc(now)

    mode = select_mode(record)
    verdict = annotate(primary_verdict(record, now, mode, t), record, now, mode, t)

    logger.debug(
        "Trainset %s (%s): %s conf=%.2f prio=%d risks=%d",
        record.number, mode.value, verdict.status.value,
        verdict.confidence, verdict.priority, len(verdict.risk_factors),
    )

    return Recommendation(
        trainset_id=record.id,
        recommended_status=verdict.status,
        confidence_score=verdict.confidence,
        priority_score=verdict.priority,
        reasoning=verdict.reasoning,
        risk_factors=verdict.risk_factors,
        trainset_number=record.number,
        current_status=record.status,
        scoring_mode=mode,
    )
