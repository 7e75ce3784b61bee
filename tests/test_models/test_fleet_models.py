"""Tests for fleet aggregate, recommendation and run metadata models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from fleet_planner.models.fleet import FleetMetricsSnapshot, PlanningStatus
from fleet_planner.models.meta import RunMetadata
from fleet_planner.models.recommendation import Recommendation
from fleet_planner.taxonomy.fleet_taxonomy import ScoringMode, TrainsetStatus

from conftest import NOW


class TestFleetMetricsSnapshot:
    def test_defaults_are_zero(self):
        snapshot = FleetMetricsSnapshot()
        assert snapshot.total_fleet == 0
        assert snapshot.serviceability == 0

    def test_counts_must_sum_to_total(self):
        with pytest.raises(ValidationError, match="sum to"):
            FleetMetricsSnapshot(total_fleet=3, ready=1, standby=1)

    def test_percentages_bounded(self):
        with pytest.raises(ValidationError, match="serviceability"):
            FleetMetricsSnapshot(total_fleet=1, ready=1, serviceability=101)


class TestPlanningStatus:
    def test_confidence_bounded(self):
        with pytest.raises(ValidationError):
            PlanningStatus(ai_confidence_avg=120)

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            PlanningStatus(schedules_generated=-1)


class TestRecommendation:
    def _make(self, **overrides) -> Recommendation:
        fields = dict(
            trainset_id="ts-1",
            recommended_status=TrainsetStatus.READY,
            confidence_score=0.9,
            priority_score=8,
            reasoning=["Strong operational performance"],
        )
        fields.update(overrides)
        return Recommendation(**fields)

    def test_defaults(self):
        rec = self._make()
        assert rec.risk_factors == []
        assert rec.scoring_mode == ScoringMode.SIMPLE
        assert not rec.is_high_risk

    def test_empty_reasoning_rejected(self):
        with pytest.raises(ValidationError, match="reasoning"):
            self._make(reasoning=[])

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_bounds(self, confidence):
        with pytest.raises(ValidationError):
            self._make(confidence_score=confidence)

    @pytest.mark.parametrize("priority", [0, 11])
    def test_priority_bounds(self, priority):
        with pytest.raises(ValidationError):
            self._make(priority_score=priority)

    def test_status_change(self):
        assert self._make(current_status=TrainsetStatus.STANDBY).is_status_change
        assert not self._make(current_status=TrainsetStatus.READY).is_status_change
        assert not self._make().is_status_change

    def test_high_risk(self):
        assert self._make(risk_factors=["Service reliability compromised"]).is_high_risk


class TestRunMetadata:
    def test_unknown_stage_rejected(self):
        with pytest.raises(ValidationError, match="pipeline_stage"):
            RunMetadata(run_slug="x", pipeline_stage="train", config_snapshot={}, started_at=NOW)

    def test_status_is_mutable(self):
        run = RunMetadata(run_slug="x", pipeline_stage="schedule", config_snapshot={}, started_at=NOW)
        run.status = "success"
        assert run.status == "success"
