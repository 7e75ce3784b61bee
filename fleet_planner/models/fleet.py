"""
Fleet-level aggregate models.

``FleetMetricsSnapshot`` is the status rollup recomputed after every status
change. It is an explicit value handed to the persistence layer; the
"current" snapshot is simply the most recent row in ``fleet_metrics``.

``PlanningStatus`` tracks scheduling activity (runs generated, rolling
average confidence). ``FleetAlert`` is a single operator-facing warning.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from fleet_planner.taxonomy.fleet_taxonomy import AlertPriority, AlertType


class FleetMetricsSnapshot(BaseModel):
    """Status counts and derived percentages for the whole fleet.

    Attributes:
        total_fleet: Number of trainsets.
        ready: Trainsets in ``ready``.
        standby: Trainsets in ``standby``.
        maintenance: Trainsets in ``maintenance``.
        critical: Trainsets in ``critical``.
        serviceability: Percent of fleet in ready or standby (0-100).
        avg_availability: Mean availability percentage, rounded (0-100).
    """

    model_config = ConfigDict(frozen=True)

    total_fleet: int = 0
    ready: int = 0
    standby: int = 0
    maintenance: int = 0
    critical: int = 0
    serviceability: int = 0
    avg_availability: int = 0

    @model_validator(mode="after")
    def validate_counts(self) -> "FleetMetricsSnapshot":
        counts = (self.ready, self.standby, self.maintenance, self.critical)
        if any(c < 0 for c in counts) or self.total_fleet < 0:
            raise ValueError("Fleet status counts must be non-negative.")
        if sum(counts) != self.total_fleet:
            raise ValueError(
                f"Status counts sum to {sum(counts)} but total_fleet is {self.total_fleet}."
            )
        if not 0 <= self.serviceability <= 100:
            raise ValueError(f"serviceability must be in [0, 100], got {self.serviceability}.")
        if not 0 <= self.avg_availability <= 100:
            raise ValueError(f"avg_availability must be in [0, 100], got {self.avg_availability}.")
        return self


class PlanningStatus(BaseModel):
    """Scheduling activity counters.

    Attributes:
        schedules_generated: Number of scheduling runs applied.
        ai_confidence_avg: Mean confidence of the latest run, in percent.
        last_optimization: UTC time of the latest run, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    schedules_generated: int = 0
    ai_confidence_avg: int = 0
    last_optimization: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_ranges(self) -> "PlanningStatus":
        if self.schedules_generated < 0:
            raise ValueError("schedules_generated must be non-negative.")
        if not 0 <= self.ai_confidence_avg <= 100:
            raise ValueError(
                f"ai_confidence_avg must be in [0, 100], got {self.ai_confidence_avg}."
            )
        return self


class FleetAlert(BaseModel):
    """Operator-facing alert about one trainset."""

    model_config = ConfigDict(frozen=True)

    type: AlertType
    trainset: str
    message: str
    priority: AlertPriority
