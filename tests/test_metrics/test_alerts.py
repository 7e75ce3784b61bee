"""
Tests for fleet_planner/metrics/alerts.py.

What we test
------------
  - Certificate alerts: expired (critical), within 3 days (high),
    within 7 days (medium), later (none).
  - Open high-priority job cards raise one warning per trainset.
  - Availability below 85 warns, below 75 is critical.
  - Cleaning age of 5+ days is info, 7+ days is a warning.
  - Ordering: critical first, generation order kept within a priority.
"""

from __future__ import annotations

from datetime import timedelta

from fleet_planner.metrics.alerts import generate_alerts
from fleet_planner.models.trainset import FitnessCertificate, JobCard, Trainset
from fleet_planner.taxonomy.fleet_taxonomy import (
    AlertPriority,
    AlertType,
    JobCardStatus,
    TrainsetStatus,
)

from conftest import NOW


# ── Helpers ────────────────────────────────────────────────────────────────────

def _make(number: str = "KMRL-001", **overrides) -> Trainset:
    fields = dict(
        id=number,
        number=number,
        status=TrainsetStatus.READY,
        mileage=20_000,
        last_cleaning=NOW - timedelta(days=1),
        branding_priority=5,
        availability_percentage=96.0,
    )
    fields.update(overrides)
    return Trainset(**fields)


def _cert(days: float, kind: str = "rolling_stock") -> FitnessCertificate:
    return FitnessCertificate(certificate_type=kind, expiry_date=NOW + timedelta(days=days))


# ── Per-check behaviour ───────────────────────────────────────────────────────

class TestCertificateAlerts:
    def test_healthy_trainset_has_no_alerts(self):
        assert generate_alerts([_make(fitness_certificates=[_cert(30)])], NOW) == []

    def test_expired(self):
        [alert] = generate_alerts([_make(fitness_certificates=[_cert(-1, "telecom")])], NOW)
        assert alert.type == AlertType.CRITICAL
        assert alert.priority == AlertPriority.CRITICAL
        assert alert.message == "telecom certificate expired"
        assert alert.trainset == "KMRL-001"

    def test_expiring_within_three_days_is_high(self):
        [alert] = generate_alerts([_make(fitness_certificates=[_cert(2)])], NOW)
        assert alert.type == AlertType.WARNING
        assert alert.priority == AlertPriority.HIGH
        assert alert.message == "rolling_stock certificate expires in 2 days"

    def test_expiring_within_a_week_is_medium(self):
        [alert] = generate_alerts([_make(fitness_certificates=[_cert(5)])], NOW)
        assert alert.priority == AlertPriority.MEDIUM

    def test_one_alert_per_certificate(self):
        alerts = generate_alerts(
            [_make(fitness_certificates=[_cert(2), _cert(-3, "signalling"), _cert(8)])], NOW
        )
        assert [a.message for a in alerts] == [
            "signalling certificate expired",
            "rolling_stock certificate expires in 2 days",
        ]


class TestJobCardAlerts:
    def test_counts_open_high_priority_cards(self):
        jobs = [
            JobCard(status=JobCardStatus.OPEN, priority=4),
            JobCard(status=JobCardStatus.OPEN, priority=5),
            JobCard(status=JobCardStatus.CLOSED, priority=5),
            JobCard(status=JobCardStatus.OPEN, priority=2),
        ]
        [alert] = generate_alerts([_make(job_cards=jobs)], NOW)
        assert alert.message == "2 high priority job card(s) open"
        assert alert.priority == AlertPriority.HIGH


class TestAvailabilityAlerts:
    def test_low_availability_warns(self):
        [alert] = generate_alerts([_make(availability_percentage=80.0)], NOW)
        assert alert.type == AlertType.WARNING
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.message == "Low availability: 80%"

    def test_very_low_availability_is_critical(self):
        [alert] = generate_alerts([_make(availability_percentage=70.5)], NOW)
        assert alert.type == AlertType.CRITICAL
        assert alert.message == "Low availability: 70.5%"


class TestCleaningAlerts:
    def test_five_days_is_info(self):
        [alert] = generate_alerts([_make(last_cleaning=NOW - timedelta(days=5))], NOW)
        assert alert.type == AlertType.INFO
        assert alert.priority == AlertPriority.LOW

    def test_partial_days_round_up(self):
        [alert] = generate_alerts([_make(last_cleaning=NOW - timedelta(days=6, hours=12))], NOW)
        assert alert.type == AlertType.WARNING
        assert "7 days" in alert.message

    def test_four_days_is_quiet(self):
        assert generate_alerts([_make(last_cleaning=NOW - timedelta(days=4))], NOW) == []


# ── Ordering ──────────────────────────────────────────────────────────────────

class TestOrdering:
    def test_critical_first_then_stable(self):
        fleet = [
            _make("KMRL-001", last_cleaning=NOW - timedelta(days=5)),
            _make("KMRL-002", availability_percentage=80.0),
            _make("KMRL-003", availability_percentage=60.0),
            _make("KMRL-004", availability_percentage=84.0),
        ]
        alerts = generate_alerts(fleet, NOW)
        assert [(a.trainset, a.priority) for a in alerts] == [
            ("KMRL-003", AlertPriority.CRITICAL),
            ("KMRL-002", AlertPriority.MEDIUM),
            ("KMRL-004", AlertPriority.MEDIUM),
            ("KMRL-001", AlertPriority.LOW),
        ]

    def test_empty_fleet(self):
        assert generate_alerts([], NOW) == []
