"""
Fleet taxonomy for trainset operations.

Four small vocabularies describe the fleet:
  - ``TrainsetStatus``  - the operational status of a trainset (also the
                           recommendation target).
  - ``JobCardStatus``   - open/closed state of a maintenance work order.
  - ``ScoringMode``     - which rule set the recommendation engine applied.
  - ``AlertType`` / ``AlertPriority`` - fleet alert classification.

Usage example::

    from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus

    status = TrainsetStatus.READY

This module has NO imports from any other ``fleet_planner`` package.
"""

from enum import StrEnum


class TrainsetStatus(StrEnum):
    """Operational status of a trainset."""

    READY = "ready"
    """Fit for revenue service tomorrow."""

    STANDBY = "standby"
    """Serviceable backup; can be inducted if a ready unit fails."""

    MAINTENANCE = "maintenance"
    """Withdrawn for preventive or corrective maintenance."""

    CRITICAL = "critical"
    """Immediate attention required; must not enter service."""


class JobCardStatus(StrEnum):
    """State of a maintenance work order."""

    OPEN = "open"
    CLOSED = "closed"


class ScoringMode(StrEnum):
    """Rule set applied by the recommendation engine.

    The certificate-aware mode is used whenever certificate or job-card data
    is attached to the trainset; the simple mode uses absolute mileage and
    availability thresholds only.
    """

    SIMPLE = "simple"
    CERTIFICATE_AWARE = "certificate_aware"


class AlertType(StrEnum):
    """Severity class of a fleet alert."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertPriority(StrEnum):
    """Sort priority of a fleet alert."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Statuses that count toward fleet serviceability.
SERVICEABLE_STATUSES: frozenset[TrainsetStatus] = frozenset({
    TrainsetStatus.READY,
    TrainsetStatus.STANDBY,
})

# Alert sort order, most urgent first.
ALERT_PRIORITY_ORDER: dict[AlertPriority, int] = {
    AlertPriority.CRITICAL: 3,
    AlertPriority.HIGH:     2,
    AlertPriority.MEDIUM:   1,
    AlertPriority.LOW:      0,
}
