"""
Operator alerts derived from a fleet snapshot.

Checks per trainset, in this order:
  - each fitness certificate: expired (critical) or expiring within
    ``CERTIFICATE_ALERT_DAYS`` days (warning; high priority within 3 days)
  - open job cards with priority >= 4 (warning / high)
  - availability below 85% (warning), below 75% (critical)
  - cleaning age of 5+ days (info), 7+ days (warning)

The result is sorted by alert priority, critical first; alerts of the same
priority keep their generation order.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from fleet_planner.models.fleet import FleetAlert
from fleet_planner.models.trainset import Trainset
from fleet_planner.taxonomy.fleet_taxonomy import (
    ALERT_PRIORITY_ORDER,
    AlertPriority,
    AlertType,
)
from fleet_planner.utils.time_utils import days_since_ceil, days_until, ensure_utc

CERTIFICATE_ALERT_DAYS = 7
CERTIFICATE_URGENT_DAYS = 3
LOW_AVAILABILITY = 85.0
CRITICAL_AVAILABILITY = 75.0
CLEANING_DUE_DAYS = 5
CLEANING_OVERDUE_DAYS = 7


def _trainset_alerts(trainset: Trainset, now: datetime) -> list[FleetAlert]:
    alerts: list[FleetAlert] = []
    number = trainset.number

    for cert in trainset.fitness_certificates or []:
        remaining = days_until(cert.expiry_date, now)
        if remaining <= 0:
            alerts.append(FleetAlert(
                type=AlertType.CRITICAL,
                trainset=number,
                message=f"{cert.certificate_type} certificate expired",
                priority=AlertPriority.CRITICAL,
            ))
        elif remaining <= CERTIFICATE_ALERT_DAYS:
            alerts.append(FleetAlert(
                type=AlertType.WARNING,
                trainset=number,
                message=f"{cert.certificate_type} certificate expires in {remaining} days",
                priority=(
                    AlertPriority.HIGH
                    if remaining <= CERTIFICATE_URGENT_DAYS
                    else AlertPriority.MEDIUM
                ),
            ))

    high_priority_jobs = sum(1 for jc in trainset.job_cards or [] if jc.is_critical)
    if high_priority_jobs:
        alerts.append(FleetAlert(
            type=AlertType.WARNING,
            trainset=number,
            message=f"{high_priority_jobs} high priority job card(s) open",
            priority=AlertPriority.HIGH,
        ))

    availability = trainset.availability_percentage
    if availability < LOW_AVAILABILITY:
        critical = availability < CRITICAL_AVAILABILITY
        alerts.append(FleetAlert(
            type=AlertType.CRITICAL if critical else AlertType.WARNING,
            trainset=number,
            message=f"Low availability: {availability:g}%",
            priority=AlertPriority.CRITICAL if critical else AlertPriority.MEDIUM,
        ))

    days_dirty = days_since_ceil(trainset.last_cleaning, now)
    if days_dirty >= CLEANING_DUE_DAYS:
        overdue = days_dirty >= CLEANING_OVERDUE_DAYS
        alerts.append(FleetAlert(
            type=AlertType.WARNING if overdue else AlertType.INFO,
            trainset=number,
            message=f"Cleaning due ({days_dirty} days since last cleaning)",
            priority=AlertPriority.MEDIUM if overdue else AlertPriority.LOW,
        ))

    return alerts


def generate_alerts(trainsets: Iterable[Trainset], now: datetime) -> list[FleetAlert]:
    """Build the operator alert list for a fleet snapshot.

    Args:
        trainsets: Fleet snapshot.
        now:       Reference time for expiry and cleaning age.

    Returns:
        Alerts sorted critical -> high -> medium -> low (stable).
    """
    now = ensure_utc(now)
    alerts = [a for t in trainsets for a in _trainset_alerts(t, now)]
    return sorted(alerts, key=lambda a: -ALERT_PRIORITY_ORDER[a.priority])
