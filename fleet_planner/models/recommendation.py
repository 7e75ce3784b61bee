"""
Recommendation output models.

``Recommendation`` is the engine's verdict for one trainset: a recommended
next-day status with confidence, urgency, and human-readable reasoning.
It is ephemeral (logged and displayed, persisted only as a schedule row),
never authoritative fleet state.

``ScheduleResult`` bundles a batch run: per-trainset recommendations in input
order, a fleet-level ``ScheduleSummary``, and a list of ``ScheduleError``
entries for records that were skipped.

All models are frozen.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleet_planner.taxonomy.fleet_taxonomy import ScoringMode, TrainsetStatus


class Recommendation(BaseModel):
    """Recommended service status for one trainset.

    Attributes:
        trainset_id: ID of the scored trainset.
        recommended_status: Target status for the next service day.
        confidence_score: 0-1 confidence in the recommendation.
        priority_score: 1-10 urgency (10 = act first).
        reasoning: Ordered decision factors; never empty.
        risk_factors: Ordered risk annotations; possibly empty.
        trainset_number: Display number, for reports only.
        current_status: Status at scoring time, for reports only.
        scoring_mode: Which rule set produced this recommendation.
    """

    model_config = ConfigDict(frozen=True)

    trainset_id: str
    recommended_status: TrainsetStatus
    confidence_score: float
    priority_score: int
    reasoning: list[str]
    risk_factors: list[str] = Field(default_factory=list)
    trainset_number: Optional[str] = None
    current_status: Optional[TrainsetStatus] = None
    scoring_mode: ScoringMode = ScoringMode.SIMPLE

    @field_validator("confidence_score")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence_score must be in [0, 1], got {v}.")
        return v

    @field_validator("priority_score")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError(f"priority_score must be in [1, 10], got {v}.")
        return v

    @field_validator("reasoning")
    @classmethod
    def validate_reasoning(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("reasoning must contain at least one entry.")
        return v

    @property
    def is_high_risk(self) -> bool:
        return bool(self.risk_factors)

    @property
    def is_status_change(self) -> bool:
        return self.current_status is not None and self.current_status != self.recommended_status


class ScheduleSummary(BaseModel):
    """Fleet-level rollup of one scheduling run.

    Attributes:
        total_trainsets: Number of input records (including skipped ones).
        recommendations: Count per recommended status; only statuses that
            occur appear as keys.
        average_confidence: Mean confidence, rounded to 2 decimals.
        high_risk_count: Recommendations with at least one risk factor.
        optimization_timestamp: The ``now`` used for the run (ISO-8601).
    """

    model_config = ConfigDict(frozen=True)

    total_trainsets: int
    recommendations: dict[str, int]
    average_confidence: float
    high_risk_count: int
    optimization_timestamp: str


class ScheduleError(BaseModel):
    """A record the scheduler had to skip.

    Attributes:
        index: 0-based position of the record in the input list.
        trainset_id: ID of the record, when it could be read.
        message: Validation failure description.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    trainset_id: Optional[str] = None
    message: str


class ScheduleResult(BaseModel):
    """Output of one batch scheduling run."""

    model_config = ConfigDict(frozen=True)

    recommendations: list[Recommendation]
    summary: ScheduleSummary
    errors: list[ScheduleError] = Field(default_factory=list)
