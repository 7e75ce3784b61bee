"""
Rule cascade: turns one validated Trainset into a Verdict (status,
confidence, priority, reasoning, risk factors).

Scoring modes
-------------
    certificate_aware : trainset carries certificate or job-card data
                        (either list is not None, even if empty).
    simple            : neither list is attached.

Primary cascade (first match wins)
----------------------------------
    1. CRITICAL    : expired fitness certificate            (aware)   0.98 / 10
    2. CRITICAL    : mileage > 65 000 km                    (simple)  0.98 / 10
    3. CRITICAL    : availability < 60 (simple) / < 75 (aware)        0.95 / 9
    4. CRITICAL    : open job cards with priority >= 4      (aware)   0.85-0.90 / 8
    5. MAINTENANCE : mileage/availability/job-card conditions         0.75-0.90 / 6-8
    6. READY       : high availability with branding or low wear      0.80-0.95 / 8-9
    7. STANDBY     : everything else                                  0.65-0.85 / 4-5

Maintenance confidence
----------------------
    base of the first matching condition + 0.05 per further matching
    condition, capped at 0.90. Priority is the max over matching conditions.

Secondary annotations
---------------------
Appended after the cascade regardless of the branch. They add reasoning or
risk factors and may bump priority (cleaning overdue: +1, capped at 10) but
never change the recommended status.

All functions here are pure: no DB, no I/O, no clock reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fleet_planner.config import EngineConfig
from fleet_planner.models.trainset import Trainset
from fleet_planner.taxonomy.fleet_taxonomy import ScoringMode, TrainsetStatus
from fleet_planner.utils.time_utils import days_since, days_until

MAX_PRIORITY = 10
MAX_MAINTENANCE_CONFIDENCE = 0.90
CO_OCCURRENCE_BONUS = 0.05

_MILEAGE_RISKS = (
    "Potential mechanical failure risk",
    "Extended service intervals exceeded",
)


@dataclass
class Verdict:
    """Mutable working result of the cascade for one trainset.

    Attributes:
        status:       Recommended next-day status.
        confidence:   0-1 confidence score.
        priority:     1-10 urgency.
        reasoning:    Ordered decision factors.
        risk_factors: Ordered risk annotations.
    """

    status:       TrainsetStatus
    confidence:   float
    priority:     int
    reasoning:    list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)


def select_mode(trainset: Trainset) -> ScoringMode:
    """Pick the rule set for ``trainset`` from the data it carries."""
    if trainset.has_maintenance_data:
        return ScoringMode.CERTIFICATE_AWARE
    return ScoringMode.SIMPLE


def _fmt(value: float) -> str:
    """Render a number without a trailing ``.0`` (``82.0`` -> ``82``)."""
    return f"{value:g}"


# ── Primary cascade ───────────────────────────────────────────────────────────


def critical_verdict(
    trainset: Trainset,
    now: datetime,
    mode: ScoringMode,
    t: EngineConfig,
) -> Optional[Verdict]:
    """Return a CRITICAL verdict if any critical trigger fires, else ``None``."""
    aware = mode == ScoringMode.CERTIFICATE_AWARE
    availability = trainset.availability_percentage

    if aware and any(c.is_expired(now) for c in trainset.fitness_certificates or []):
        return Verdict(
            status=TrainsetStatus.CRITICAL,
            confidence=0.98,
            priority=10,
            reasoning=["Fitness certificate expired"],
            risk_factors=["Safety certificate expired - service prohibited"],
        )

    if not aware and trainset.mileage > t.critical_mileage_km:
        return Verdict(
            status=TrainsetStatus.CRITICAL,
            confidence=0.98,
            priority=10,
            reasoning=[
                f"Extremely high mileage ({_fmt(trainset.mileage)} km) - "
                "immediate attention required"
            ],
            risk_factors=list(_MILEAGE_RISKS),
        )

    threshold = t.critical_availability_aware if aware else t.critical_availability_simple
    if availability < threshold:
        return Verdict(
            status=TrainsetStatus.CRITICAL,
            confidence=0.95,
            priority=9,
            reasoning=[
                f"Critical availability: {_fmt(availability)}% "
                f"(below {_fmt(threshold)}% threshold)"
            ],
            risk_factors=["Service reliability compromised"],
        )

    if aware:
        critical_jobs = sum(1 for jc in trainset.job_cards or [] if jc.is_critical)
        if critical_jobs:
            return Verdict(
                status=TrainsetStatus.CRITICAL,
                confidence=0.9 if critical_jobs >= 2 else 0.85,
                priority=8,
                reasoning=[f"{critical_jobs} critical job card(s) open"],
                risk_factors=["Critical maintenance pending"],
            )

    return None


def maintenance_verdict(
    trainset: Trainset,
    mode: ScoringMode,
    t: EngineConfig,
) -> Optional[Verdict]:
    """Return a MAINTENANCE verdict if any maintenance condition holds.

    Conditions are evaluated in a fixed order; each is a
    ``(matches, base_confidence, priority, reason)`` tuple.
    """
    mileage = trainset.mileage
    availability = trainset.availability_percentage

    if mode == ScoringMode.CERTIFICATE_AWARE:
        open_jobs = sum(1 for jc in trainset.job_cards or [] if jc.is_open)
        conditions = [
            (
                availability < t.maintenance_availability_aware,
                0.80, 6,
                f"Availability {_fmt(availability)}% below "
                f"{_fmt(t.maintenance_availability_aware)}% - preventive maintenance recommended",
            ),
            (
                open_jobs > t.max_open_job_cards,
                0.75, 6,
                f"Multiple open job cards ({open_jobs})",
            ),
        ]
    else:
        conditions = [
            (
                mileage > t.heavy_mileage_km and availability < t.heavy_mileage_availability,
                0.90, 8,
                "High mileage with reduced availability",
            ),
            (
                availability < t.maintenance_availability_simple,
                0.85, 7,
                f"Availability {_fmt(availability)}% below "
                f"{_fmt(t.maintenance_availability_simple)}% - maintenance recommended",
            ),
            (
                mileage > t.maintenance_mileage_km,
                0.80, 6,
                f"Mileage {_fmt(mileage)} km approaching service interval",
            ),
        ]

    matched = [c for c in conditions if c[0]]
    if not matched:
        return None

    confidence = min(
        matched[0][1] + CO_OCCURRENCE_BONUS * (len(matched) - 1),
        MAX_MAINTENANCE_CONFIDENCE,
    )
    return Verdict(
        status=TrainsetStatus.MAINTENANCE,
        confidence=round(confidence, 2),
        priority=max(c[2] for c in matched),
        reasoning=[c[3] for c in matched],
    )


def ready_verdict(
    trainset: Trainset,
    mode: ScoringMode,
    t: EngineConfig,
) -> Optional[Verdict]:
    """Return a READY verdict for high-value, healthy units."""
    availability = trainset.availability_percentage
    branding = trainset.branding_priority

    if availability >= t.excellent_availability and branding >= t.excellent_branding:
        return Verdict(
            status=TrainsetStatus.READY,
            confidence=0.95,
            priority=9,
            reasoning=[
                "Excellent performance metrics",
                "High revenue potential - premium branding",
            ],
        )
    if availability >= t.strong_availability and trainset.mileage < t.strong_max_mileage_km:
        return Verdict(
            status=TrainsetStatus.READY,
            confidence=0.90,
            priority=8,
            reasoning=["Strong operational performance", "Low wear and tear profile"],
        )
    if mode == ScoringMode.CERTIFICATE_AWARE and branding > t.premium_branding_aware:
        return Verdict(
            status=TrainsetStatus.READY,
            confidence=0.80,
            priority=8,
            reasoning=["High branding priority"],
        )
    return None


def standby_verdict(trainset: Trainset, t: EngineConfig) -> Verdict:
    """Default branch: every unit that reaches here is held in standby."""
    availability = trainset.availability_percentage
    if availability >= t.good_availability and trainset.branding_priority < t.backup_branding_below:
        return Verdict(
            status=TrainsetStatus.STANDBY,
            confidence=0.85,
            priority=5,
            reasoning=["Good availability - suitable as standby reserve"],
        )
    if availability >= t.good_availability:
        return Verdict(
            status=TrainsetStatus.STANDBY,
            confidence=0.75,
            priority=4,
            reasoning=["Good availability - backup service candidate"],
        )
    return Verdict(
        status=TrainsetStatus.STANDBY,
        confidence=0.65,
        priority=4,
        reasoning=["Suitable for backup service"],
    )


def primary_verdict(
    trainset: Trainset,
    now: datetime,
    mode: ScoringMode,
    t: EngineConfig,
) -> Verdict:
    """Run the cascade top-down and return the first matching verdict."""
    return (
        critical_verdict(trainset, now, mode, t)
        or maintenance_verdict(trainset, mode, t)
        or ready_verdict(trainset, mode, t)
        or standby_verdict(trainset, t)
    )


# ── Secondary annotations ─────────────────────────────────────────────────────


def annotate(
    verdict: Verdict,
    trainset: Trainset,
    now: datetime,
    mode: ScoringMode,
    t: EngineConfig,
) -> Verdict:
    """Append secondary risk annotations to ``verdict`` in place and return it."""
    aware = mode == ScoringMode.CERTIFICATE_AWARE

    cleaning_limit = t.cleaning_days_aware if aware else t.cleaning_days_simple
    days_dirty = days_since(trainset.last_cleaning, now)
    if days_dirty > cleaning_limit:
        verdict.risk_factors.append(
            f"Extended cleaning interval detected ({days_dirty} days since last cleaning)"
        )
        verdict.priority = min(verdict.priority + 1, MAX_PRIORITY)

    if (
        trainset.branding_priority <= t.low_branding
        and trainset.availability_percentage < t.declining_availability
    ):
        verdict.risk_factors.append("Low priority train with declining performance")

    if aware:
        remaining = [
            days_until(c.expiry_date, now)
            for c in trainset.fitness_certificates or []
            if not c.is_expired(now)
        ]
        if remaining and min(remaining) <= t.certificate_warning_days:
            verdict.risk_factors.append(f"Certificate expires in {min(remaining)} days")

        if trainset.mileage > t.critical_mileage_km:
            for risk in _MILEAGE_RISKS:
                if risk not in verdict.risk_factors:
                    verdict.risk_factors.append(risk)
        if trainset.mileage > t.wear_mileage_km:
            verdict.risk_factors.append("High mileage - increased wear risk")

    return verdict
