"""
Trainset models - the fixed-shape fleet record consumed by the engine.

``Trainset`` is one physical rail unit. Its optional ``fitness_certificates``
and ``job_cards`` lists are explicitly nullable: ``None`` means "no data was
attached" (and selects the simple scoring mode), while an empty list means
"data attached, nothing on file".

All models are frozen. Status changes produce a new record via
``model_copy(update=...)``; they never mutate a snapshot in place.

Timestamps are normalized to timezone-aware UTC. Naive datetimes are assumed
to already be UTC; bare ``YYYY-MM-DD`` values are read as midnight UTC.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from fleet_planner.taxonomy.fleet_taxonomy import JobCardStatus, TrainsetStatus

# Job cards at or above this priority are "critical".
CRITICAL_JOB_PRIORITY = 4


class InvalidTrainsetError(ValueError):
    """Raised when a trainset record cannot be scored.

    Attributes:
        trainset_id: ID of the offending record, if one could be read.
    """

    def __init__(self, message: str, trainset_id: Optional[str] = None) -> None:
        self.trainset_id = trainset_id
        prefix = f"Trainset '{trainset_id}' is invalid" if trainset_id else "Invalid trainset record"
        super().__init__(f"{prefix}: {message}")


def _to_utc(value: Any) -> Any:
    """Coerce dates, ISO strings and naive datetimes to aware UTC datetimes."""
    if isinstance(value, str) and len(value) == 10:
        value = date.fromisoformat(value)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FitnessCertificate(BaseModel):
    """Time-bounded safety/regulatory approval.

    Attributes:
        certificate_type: Issuing department, e.g. ``"rolling_stock"``.
        expiry_date: UTC instant after which the certificate is void.
    """

    model_config = ConfigDict(frozen=True)

    certificate_type: str = "general"
    expiry_date: datetime

    @field_validator("expiry_date", mode="before")
    @classmethod
    def normalize_expiry(cls, v: Any) -> Any:
        return _to_utc(v)

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date <= now


class JobCard(BaseModel):
    """Maintenance work order attached to a trainset.

    Attributes:
        status: ``"open"`` or ``"closed"``.
        priority: 1 (routine) to 5 (urgent); ``>= 4`` is critical.
        description: Free-text summary, optional.
    """

    model_config = ConfigDict(frozen=True)

    status: JobCardStatus
    priority: int = 3
    description: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if not 1 <= v <= 5:
            raise ValueError(f"Job card priority must be in [1, 5], got {v}.")
        return v

    @property
    def is_open(self) -> bool:
        return self.status == JobCardStatus.OPEN

    @property
    def is_critical(self) -> bool:
        return self.is_open and self.priority >= CRITICAL_JOB_PRIORITY


class Trainset(BaseModel):
    """One physical rail unit.

    Attributes:
        id: Opaque unique identifier.
        number: Display identifier (unique, immutable), e.g. ``"KMRL-001"``.
        status: Current operational status.
        bay_position: Physical stabling bay (>= 1). Not used by the engine.
        mileage: Cumulative kilometres (>= 0).
        last_cleaning: UTC timestamp of the most recent completed cleaning.
        branding_priority: 1-10; higher means a more valuable advertising
            commitment.
        availability_percentage: 0-100 pre-computed readiness indicator.
        fitness_certificates: Attached certificates, or ``None`` if no
            certificate data is available.
        job_cards: Attached job cards, or ``None`` if no job-card data is
            available.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    number: str
    status: TrainsetStatus
    bay_position: int = 1
    mileage: float
    last_cleaning: datetime
    branding_priority: int
    availability_percentage: float
    fitness_certificates: Optional[list[FitnessCertificate]] = None
    job_cards: Optional[list[JobCard]] = None

    @field_validator("id", "number", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("id", "number")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Trainset identifiers must not be empty.")
        return v.strip()

    @field_validator("last_cleaning", mode="before")
    @classmethod
    def normalize_last_cleaning(cls, v: Any) -> Any:
        return _to_utc(v)

    @field_validator("bay_position")
    @classmethod
    def validate_bay_position(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"bay_position must be >= 1, got {v}.")
        return v

    @field_validator("mileage")
    @classmethod
    def validate_mileage(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError(f"mileage must be a finite non-negative number, got {v}.")
        return v

    @field_validator("branding_priority")
    @classmethod
    def validate_branding_priority(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError(f"branding_priority must be in [1, 10], got {v}.")
        return v

    @field_validator("availability_percentage")
    @classmethod
    def validate_availability(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"availability_percentage must be in [0, 100], got {v}.")
        return v

    @property
    def has_maintenance_data(self) -> bool:
        """True if certificate or job-card data is attached (even if empty)."""
        return self.fitness_certificates is not None or self.job_cards is not None


def coerce_trainset(record: Trainset | Mapping[str, Any]) -> Trainset:
    """Return ``record`` as a validated :class:`Trainset`.

    Args:
        record: An existing ``Trainset`` (returned unchanged) or a raw mapping
            in the collaborator-facing input shape.

    Returns:
        A validated ``Trainset``.

    Raises:
        InvalidTrainsetError: If the mapping is missing required fields or
            any field is out of bounds.
    """
    if isinstance(record, Trainset):
        return record
    if not isinstance(record, Mapping):
        raise InvalidTrainsetError(
            f"expected a mapping or Trainset, got {type(record).__name__}"
        )

    raw_id = record.get("id")
    trainset_id = str(raw_id) if raw_id is not None else None
    try:
        return Trainset.model_validate(dict(record))
    except (ValidationError, ValueError) as exc:
        raise InvalidTrainsetError(_summarize_validation(exc), trainset_id) from exc


def _summarize_validation(exc: Exception) -> str:
    """Collapse a pydantic ValidationError into a single line."""
    if isinstance(exc, ValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
            parts.append(f"{loc}: {err.get('msg', 'invalid')}")
        return "; ".join(parts)
    return str(exc)
