from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from orbwarden.core.risk import (
    CollisionRisk,
    RiskLevel,
    assess,
    assess_events,
    collision_probability,
    risk_level,
)
from orbwarden.core.screening import ConjunctionEvent

NOW = datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)


def _event(miss_km: float, minutes_to_tca: float, object2: str = "48274") -> ConjunctionEvent:
    return ConjunctionEvent(
        object1_id="25544",
        object2_id=object2,
        tca=NOW + timedelta(minutes=minutes_to_tca),
        miss_distance_km=miss_km,
        relative_speed_km_s=7.8,
    )


class TestCollisionProbability:
    """Test suite for the miss-distance probability heuristic."""

    def test_inside_combined_radius_is_certain(self):
        assert collision_probability(0.0, 7.8) == 1.0
        assert collision_probability(0.02, 7.8) == 1.0

    def test_custom_radii(self):
        assert collision_probability(0.5, 7.8, radius_a_km=0.3, radius_b_km=0.3) == 1.0
        assert collision_probability(0.5, 7.8) < 1.0

    @pytest.mark.parametrize("miss", [0.021, 0.1, 0.5, 1.0, 3.0, 5.0, 10.0, 100.0, 5000.0])
    def test_bounded(self, miss):
        probability = collision_probability(miss, 7.8)
        assert 0.0 <= probability <= 1.0

    def test_non_increasing_with_distance(self):
        distances = [0.01 * i for i in range(1, 2000)]
        values = [collision_probability(d, 7.8) for d in distances]
        for closer, farther in zip(values, values[1:]):
            assert farther <= closer

    def test_far_approach_is_negligible(self):
        assert collision_probability(50.0, 7.8) < 1e-10


class TestRiskLevel:
    @pytest.mark.parametrize(
        "miss, minutes, expected",
        [
            (0.9, 30, RiskLevel.CRITICAL),
            (4.9, 30, RiskLevel.HIGH),
            (9.9, 30, RiskLevel.MODERATE),
            (10.0, 30, RiskLevel.LOW),
            (0.4, 120, RiskLevel.CRITICAL),
            (0.5, 120, RiskLevel.HIGH),
            (1.9, 120, RiskLevel.HIGH),
            (4.9, 120, RiskLevel.MODERATE),
            (5.0, 120, RiskLevel.LOW),
            (0.4, 2000, RiskLevel.HIGH),
            (0.9, 2000, RiskLevel.MODERATE),
            (1.0, 2000, RiskLevel.LOW),
        ],
    )
    def test_bands(self, miss, minutes, expected):
        assert risk_level(miss, minutes) is expected

    @pytest.mark.parametrize("minutes", [-5.0, 30.0, 120.0, 2000.0])
    def test_severity_never_increases_with_miss_distance(self, minutes):
        previous = risk_level(0.0, minutes).severity
        for step in range(1, 2001):
            severity = risk_level(step * 0.01, minutes).severity
            assert severity <= previous, f"severity rose at {step * 0.01:.2f} km"
            previous = severity

    def test_band_boundaries(self):
        # 60 minutes already belongs to the near-term band, 1440 to the far band.
        assert risk_level(0.9, 59.9) is RiskLevel.CRITICAL
        assert risk_level(0.9, 60.0) is RiskLevel.HIGH
        assert risk_level(0.4, 1439.9) is RiskLevel.CRITICAL
        assert risk_level(0.4, 1440.0) is RiskLevel.HIGH

    def test_never_critical_far_out(self):
        for miss in (0.0, 0.1, 0.49):
            assert risk_level(miss, 5000) is not RiskLevel.CRITICAL

    def test_close_imminent_approach(self):
        assert risk_level(0.4, 8) is RiskLevel.CRITICAL

    def test_severity_order(self):
        assert RiskLevel.CRITICAL.severity > RiskLevel.HIGH.severity > RiskLevel.MODERATE.severity
        assert RiskLevel.MODERATE.severity > RiskLevel.LOW.severity


class TestAssess:
    def test_target_is_counterpart(self):
        risk = assess(_event(0.4, 8), primary_id="25544", now=NOW)
        assert isinstance(risk, CollisionRisk)
        assert risk.target_id == "48274"
        assert risk.risk_level is RiskLevel.CRITICAL
        assert risk.relative_velocity_km_s == 7.8
        assert 0.0 <= risk.probability <= 1.0

    def test_primary_as_second_object(self):
        risk = assess(_event(0.4, 8), primary_id="48274", now=NOW)
        assert risk.target_id == "25544"

    def test_defaults_to_object1_as_primary(self):
        assert assess(_event(3.0, 30), now=NOW).target_id == "48274"

    def test_past_tca_uses_imminent_band(self):
        risk = assess(_event(3.0, -30), now=NOW)
        assert risk.risk_level is RiskLevel.HIGH

    def test_assess_events_sorted_by_severity(self):
        events = [
            _event(8.0, 30, object2="1"),   # MODERATE
            _event(0.3, 30, object2="2"),   # CRITICAL
            _event(20.0, 30, object2="3"),  # LOW
            _event(0.8, 30, object2="4"),   # CRITICAL, farther
        ]
        risks = assess_events(events, primary_id="25544", now=NOW)
        assert [r.target_id for r in risks] == ["2", "4", "1", "3"]

    def test_assess_events_empty(self):
        assert assess_events([], now=NOW) == []
