"""
Tests for fleet_planner/recommendations/scheduler.py.

What we test
------------
schedule_all():
  - A six-unit mixed fleet summarises to 2 ready / 1 standby /
    2 maintenance / 1 critical with total 6.
  - Recommendations come back in input order.
  - Malformed records are skipped, recorded as ScheduleError and logged;
    total_trainsets still counts them.
  - Empty input gives a zero summary.
  - The summary timestamp is the supplied ``now``.

balance_ready_standby():
  - Surplus ready units are demoted lowest-ranked first.
  - Ties on priority and confidence break on trainset_id.
  - No cap (None) leaves the batch untouched.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from fleet_planner.metrics.aggregator import apply_schedule
from fleet_planner.models.fleet import PlanningStatus
from fleet_planner.models.recommendation import Recommendation
from fleet_planner.models.trainset import Trainset
from fleet_planner.recommendations.scheduler import (
    BALANCED_STANDBY_REASON,
    balance_ready_standby,
    build_summary,
    schedule_all,
)
from fleet_planner.taxonomy.fleet_taxonomy import TrainsetStatus

from conftest import NOW


# ── Helpers ────────────────────────────────────────────────────────────────────

def _make(trainset_id: str, **overrides) -> Trainset:
    fields = dict(
        id=trainset_id,
        number=f"KMRL-{trainset_id}",
        status=TrainsetStatus.STANDBY,
        mileage=30_000,
        last_cleaning=NOW - timedelta(days=1),
        branding_priority=5,
        availability_percentage=92.0,
    )
    fields.update(overrides)
    return Trainset(**fields)


def _mixed_fleet() -> list[Trainset]:
    return [
        _make("r1", availability_percentage=100.0, branding_priority=9, mileage=27_000),
        _make("r2", availability_percentage=92.0),
        _make("s1", availability_percentage=88.0, mileage=42_000),
        _make("m1", availability_percentage=79.0),
        _make("m2", availability_percentage=92.0, mileage=46_000),
        _make("c1", availability_percentage=55.0),
    ]


def _ready_rec(trainset_id: str, priority: int = 8, confidence: float = 0.9) -> Recommendation:
    return Recommendation(
        trainset_id=trainset_id,
        recommended_status=TrainsetStatus.READY,
        confidence_score=confidence,
        priority_score=priority,
        reasoning=["Strong operational performance"],
    )


# ── schedule_all ───────────────────────────────────────────────────────────────

class TestScheduleAll:
    def test_mixed_fleet_summary(self):
        result = schedule_all(_mixed_fleet(), NOW)
        summary = result.summary
        assert summary.total_trainsets == 6
        assert summary.recommendations == {
            "ready": 2, "standby": 1, "maintenance": 2, "critical": 1,
        }
        assert summary.average_confidence == pytest.approx(0.88)
        assert summary.high_risk_count == 1
        assert result.errors == []

    def test_input_order_is_preserved(self):
        fleet = _mixed_fleet()
        result = schedule_all(fleet, NOW)
        assert [r.trainset_id for r in result.recommendations] == [t.id for t in fleet]

    def test_timestamp_is_the_supplied_now(self):
        result = schedule_all(_mixed_fleet(), NOW)
        assert result.summary.optimization_timestamp == NOW.isoformat()

    def test_malformed_record_is_skipped(self, caplog):
        fleet = [
            _make("good-1"),
            {"id": "bad", "number": "KMRL-BAD", "status": "ready"},
            _make("good-2"),
        ]
        with caplog.at_level(logging.WARNING):
            result = schedule_all(fleet, NOW)

        assert [r.trainset_id for r in result.recommendations] == ["good-1", "good-2"]
        assert result.summary.total_trainsets == 3
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.index == 1
        assert error.trainset_id == "bad"
        assert "mileage" in error.message
        assert "Skipping trainset at index 1" in caplog.text

    def test_empty_fleet(self):
        result = schedule_all([], NOW)
        assert result.recommendations == []
        assert result.summary.total_trainsets == 0
        assert result.summary.recommendations == {}
        assert result.summary.average_confidence == 0.0
        assert result.summary.high_risk_count == 0

    def test_repeated_runs_are_identical(self):
        fleet = _mixed_fleet()
        assert schedule_all(fleet, NOW) == schedule_all(fleet, NOW)

    def test_ready_cap_applies_through_schedule_all(self):
        result = schedule_all(_mixed_fleet(), NOW, max_ready_fraction=0.2)
        # floor(0.2 * 6) = 1 ready slot; r1 outranks r2
        assert result.summary.recommendations["ready"] == 1
        assert result.summary.recommendations["standby"] == 2
        demoted = {r.trainset_id: r for r in result.recommendations}["r2"]
        assert demoted.recommended_status == TrainsetStatus.STANDBY
        assert demoted.reasoning[-1] == BALANCED_STANDBY_REASON


# ── balance_ready_standby ─────────────────────────────────────────────────────

class TestBalanceReadyStandby:
    def test_lowest_ranked_ready_units_are_demoted(self):
        recs = [
            _ready_rec("d"),
            _ready_rec("b", priority=9, confidence=0.95),
            _ready_rec("c"),
            _ready_rec("a", priority=9, confidence=0.95),
        ]
        balanced = balance_ready_standby(recs, 0.5)
        statuses = {r.trainset_id: r.recommended_status for r in balanced}
        assert statuses == {
            "a": TrainsetStatus.READY,
            "b": TrainsetStatus.READY,
            "c": TrainsetStatus.STANDBY,
            "d": TrainsetStatus.STANDBY,
        }
        assert [r.trainset_id for r in balanced] == ["d", "b", "c", "a"]

    def test_ties_break_on_trainset_id(self):
        recs = [_ready_rec("t3"), _ready_rec("t1"), _ready_rec("t2")]
        balanced = balance_ready_standby(recs, 0.34)
        ready = [r.trainset_id for r in balanced if r.recommended_status == TrainsetStatus.READY]
        assert ready == ["t1"]

    def test_under_cap_is_unchanged(self):
        recs = [_ready_rec("a"), _ready_rec("b")]
        assert balance_ready_standby(recs, 1.0) == recs

    def test_demoted_units_keep_original_scores(self):
        recs = [_ready_rec("a", priority=9), _ready_rec("b", priority=7, confidence=0.8)]
        demoted = balance_ready_standby(recs, 0.5)[1]
        assert demoted.priority_score == 7
        assert demoted.confidence_score == 0.8
        assert demoted.reasoning == ["Strong operational performance", BALANCED_STANDBY_REASON]

    def test_no_cap_means_no_demotion(self):
        result = schedule_all(_mixed_fleet(), NOW, max_ready_fraction=None)
        assert result.summary.recommendations["ready"] == 2


# ── build_summary ─────────────────────────────────────────────────────────────

class TestBuildSummary:
    def test_only_occurring_statuses_are_keys(self):
        summary = build_summary([_ready_rec("a")], total_trainsets=1, now=NOW)
        assert summary.recommendations == {"ready": 1}

    def test_average_confidence_is_rounded(self):
        recs = [_ready_rec("a", confidence=0.9), _ready_rec("b", confidence=0.85),
                _ready_rec("c", confidence=0.8)]
        summary = build_summary(recs, total_trainsets=3, now=NOW)
        assert summary.average_confidence == pytest.approx(0.85)

    def test_average_confidence_rounds_half_up(self):
        fleet = [
            _make("s1", availability_percentage=88.0),
            _make("m1", availability_percentage=92.0, mileage=46_000),
        ]
        result = schedule_all(fleet, NOW)
        assert [r.confidence_score for r in result.recommendations] == [0.85, 0.8]
        assert result.summary.average_confidence == 0.83

    def test_average_confidence_agrees_with_planning_percent(self):
        fleet = [
            _make("s1", availability_percentage=88.0),
            _make("m1", availability_percentage=92.0, mileage=46_000),
        ]
        result = schedule_all(fleet, NOW)
        planning = apply_schedule(PlanningStatus(), result, NOW)
        assert planning.ai_confidence_avg == round(100 * result.summary.average_confidence)
