"""Tests for closest-approach geometry."""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.geometry import (
    ClosestApproach,
    MissDistanceMethod,
    approximate_separation_km,
    closest_approach,
    haversine_km,
)
from orbwarden.core.propagation import NO_SOLUTION, GeodeticPoint, Sgp4Propagator, geodetic_at
from orbwarden.exceptions import NoSolutionError

EPOCH = datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)

LOW = OrbitalElementSet(
    inclination_deg=51.64,
    raan_deg=30.0,
    eccentricity=0.0009,
    arg_perigee_deg=0.0,
    mean_anomaly_deg=0.0,
    mean_motion_rev_per_day=15.50,
    epoch=EPOCH,
    catalog_id=11111,
)
HIGH = OrbitalElementSet(
    inclination_deg=97.5,
    raan_deg=200.0,
    eccentricity=0.001,
    arg_perigee_deg=90.0,
    mean_anomaly_deg=45.0,
    mean_motion_rev_per_day=14.2,
    epoch=EPOCH,
    catalog_id=22222,
)


def _reference_haversine(a: GeodeticPoint, b: GeodeticPoint) -> float:
    r = 6371.0
    lat1, lat2 = np.radians(a.latitude_deg), np.radians(b.latitude_deg)
    dlat = lat2 - lat1
    dlon = np.radians(b.longitude_deg - a.longitude_deg)
    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    ground = 2 * r * np.arctan2(np.sqrt(h), np.sqrt(1 - h))
    return float(np.hypot(ground, a.altitude_km - b.altitude_km))


class NoSolutionPropagator(Sgp4Propagator):
    def propagate(self, elements, at):
        if elements.catalog_id == 22222:
            return NO_SOLUTION
        return super().propagate(elements, at)


@pytest.mark.parametrize("minutes", [0, 17, 45, 90])
def test_miss_distance_matches_reference(minutes):
    tca = EPOCH + timedelta(minutes=minutes)
    approach = closest_approach(LOW, HIGH, tca)
    a = geodetic_at(LOW, tca)
    b = geodetic_at(HIGH, tca)
    assert approach.miss_distance_km == pytest.approx(_reference_haversine(a, b), abs=0.01)
    assert approach.method is MissDistanceMethod.HAVERSINE


def test_positions_are_reported():
    approach = closest_approach(LOW, HIGH, EPOCH)
    assert approach.position_a == geodetic_at(LOW, EPOCH)
    assert approach.position_b == geodetic_at(HIGH, EPOCH)


def test_same_object_has_zero_miss():
    assert closest_approach(LOW, LOW, EPOCH).miss_distance_km == pytest.approx(0.0, abs=1e-9)


def test_euclidean_method():
    approach = closest_approach(LOW, HIGH, EPOCH, method=MissDistanceMethod.EUCLIDEAN)
    propagator = Sgp4Propagator()
    expected = np.linalg.norm(
        propagator.propagate(LOW, EPOCH).as_array() - propagator.propagate(HIGH, EPOCH).as_array()
    )
    assert approach.miss_distance_km == pytest.approx(expected)
    assert approach.method is MissDistanceMethod.EUCLIDEAN


def test_no_solution_raises():
    with pytest.raises(NoSolutionError, match="22222"):
        closest_approach(LOW, HIGH, EPOCH, propagator=NoSolutionPropagator())


def test_marker_is_midpoint():
    approach = ClosestApproach(
        position_a=GeodeticPoint(10.0, 20.0, 400.0),
        position_b=GeodeticPoint(12.0, 24.0, 410.0),
        miss_distance_km=1.0,
    )
    marker = approach.marker
    assert marker.latitude_deg == pytest.approx(11.0)
    assert marker.longitude_deg == pytest.approx(22.0)
    assert marker.altitude_km == pytest.approx(405.0)


class TestHaversine:
    def test_zero(self):
        assert haversine_km(10.0, 20.0, 10.0, 20.0) == 0.0

    def test_quarter_meridian(self):
        assert haversine_km(0.0, 0.0, 90.0, 0.0) == pytest.approx(math.pi / 2 * 6371.0)

    def test_antipodal(self):
        assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6371.0)

    def test_symmetric(self):
        assert haversine_km(1.0, 2.0, 3.0, 4.0) == pytest.approx(haversine_km(3.0, 4.0, 1.0, 2.0))

    def test_altitude_leg(self):
        a = GeodeticPoint(0.0, 0.0, 400.0)
        b = GeodeticPoint(0.0, 0.0, 403.0)
        assert approximate_separation_km(a, b) == pytest.approx(3.0)
