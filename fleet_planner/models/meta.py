"""
Audit records for fleet planner batch runs.

A ``schedule`` or ``metrics_refresh`` run stores the whole ``AppConfig`` it
ran with in ``config_snapshot``. Replaying that config against the same fleet
snapshot and ``now`` gives the same schedule.

Unlike the domain models, ``RunMetadata`` is mutable: ``PipelineStage``
fills in ``status``, ``rows_processed``, ``error_message`` and
``finished_at`` as the run progresses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

RunStatus = Literal["started", "success", "failed", "skipped"]

VALID_PIPELINE_STAGES = frozenset({"schedule", "metrics_refresh"})


class RunMetadata(BaseModel):
    """One row of ``run_metadata``.

    Attributes:
        run_id:          Database key, assigned on first insert.
        run_slug:        UUID4 string for log correlation.
        pipeline_stage:  ``"schedule"`` or ``"metrics_refresh"``.
        status:          Lifecycle state, ``"started"`` until the stage ends.
        schedule_date:   Service day a ``schedule`` run planned for.
        config_snapshot: ``AppConfig.model_dump(mode="json")`` at start.
        rows_processed:  Trainsets (or metric rows) handled.
        error_message:   Exception text when the run failed.
        started_at:      UTC start time.
        finished_at:     UTC end time, ``None`` while running.
    """

    model_config = ConfigDict(frozen=False)

    run_id: Optional[int] = None
    run_slug: str
    pipeline_stage: str
    status: RunStatus = "started"
    schedule_date: Optional[str] = None
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def _known_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"pipeline_stage must be one of {sorted(VALID_PIPELINE_STAGES)}, got {v!r}"
            )
        return v
