"""Orbital propagation via SGP4.

The SGP4 algorithm itself comes from the ``sgp4`` package; this module wraps
it behind the :class:`StatePropagator` interface and converts inertial
positions to geodetic coordinates.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Protocol, Sequence

import numpy as np
from numpy.typing import NDArray
from sgp4.api import WGS72, Satrec, SatrecArray, jday
from sgp4.propagation import gstime

from orbwarden.core.elements import OrbitalElementSet, as_utc
from orbwarden.utils.constants import EARTH_FLATTENING, EARTH_RADIUS_KM, MINUTES_PER_DAY

logger = logging.getLogger(__name__)

_SGP4_EPOCH_ORIGIN = datetime(1949, 12, 31, tzinfo=timezone.utc)


class NoSolution(Enum):
    """Returned when the propagator cannot resolve a position.

    This is an expected outcome for some epochs, not an error. The single
    member is falsy so callers can write ``if not result: ...``.
    """

    NO_SOLUTION = "no_solution"

    def __bool__(self) -> bool:
        return False


NO_SOLUTION = NoSolution.NO_SOLUTION


@dataclass(frozen=True)
class EciVector:
    """Position in the Earth-centered inertial (TEME) frame, km."""

    x: float
    y: float
    z: float

    def as_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def norm(self) -> float:
        return float(np.linalg.norm(self.as_array()))


@dataclass(frozen=True)
class GeodeticPoint:
    """Latitude/longitude in degrees and altitude above the ellipsoid in km."""

    latitude_deg: float
    longitude_deg: float
    altitude_km: float

    def is_finite(self) -> bool:
        return (
            math.isfinite(self.latitude_deg)
            and math.isfinite(self.longitude_deg)
            and math.isfinite(self.altitude_km)
        )


@dataclass
class StateVector:
    """Position and velocity in TEME frame.

    Attributes:
        position_km: [x, y, z] position in km.
        velocity_km_s: [vx, vy, vz] velocity in km/s.
        epoch: Time of this state vector.
    """

    position_km: NDArray[np.float64]  # shape (3,)
    velocity_km_s: NDArray[np.float64]  # shape (3,)
    epoch: datetime


class StatePropagator(Protocol):
    """Anything that can place an element set in inertial space."""

    def propagate(self, elements: OrbitalElementSet, at: datetime) -> EciVector | NoSolution:
        ...

    def sidereal_time(self, at: datetime) -> float:
        """Greenwich mean sidereal time at ``at`` in radians."""
        ...


def julian_date(t: datetime) -> tuple[float, float]:
    t = as_utc(t)
    return jday(t.year, t.month, t.day, t.hour, t.minute, t.second + t.microsecond / 1e6)


@lru_cache(maxsize=1024)
def build_satrec(elements: OrbitalElementSet) -> Satrec:
    """Initialise an SGP4 record from an element set (cached per element set)."""
    epoch_days = (as_utc(elements.epoch) - _SGP4_EPOCH_ORIGIN).total_seconds() / 86400.0
    satrec = Satrec()
    satrec.sgp4init(
        WGS72,
        "i",
        elements.catalog_id or 0,
        epoch_days,
        elements.bstar,
        0.0,
        0.0,
        elements.eccentricity,
        math.radians(elements.arg_perigee_deg),
        math.radians(elements.inclination_deg),
        math.radians(elements.mean_anomaly_deg),
        elements.mean_motion_rev_per_day * 2 * math.pi / 1440.0,  # rad/min
        math.radians(elements.raan_deg),
    )
    return satrec


class Sgp4Propagator:
    """:class:`StatePropagator` backed by the ``sgp4`` package."""

    def propagate(self, elements: OrbitalElementSet, at: datetime) -> EciVector | NoSolution:
        state = self.state(elements, at)
        if state is NO_SOLUTION:
            return NO_SOLUTION
        x, y, z = state.position_km
        return EciVector(float(x), float(y), float(z))

    def state(self, elements: OrbitalElementSet, at: datetime) -> StateVector | NoSolution:
        """Full position/velocity state, or ``NO_SOLUTION``."""
        satrec = build_satrec(elements)
        jd, fr = julian_date(at)
        error_code, pos, vel = satrec.sgp4(jd, fr)

        if error_code != 0:
            logger.debug("SGP4 has no solution for %s at %s: error code %d", elements.label(), at, error_code)
            return NO_SOLUTION

        return StateVector(
            position_km=np.array(pos, dtype=np.float64),
            velocity_km_s=np.array(vel, dtype=np.float64),
            epoch=at,
        )

    def sidereal_time(self, at: datetime) -> float:
        jd, fr = julian_date(at)
        return gstime(jd + fr)


DEFAULT_PROPAGATOR = Sgp4Propagator()


def eci_to_geodetic(eci: EciVector, gmst: float) -> GeodeticPoint:
    """Convert an inertial position to geodetic coordinates.

    Rotates by the sidereal angle, then solves latitude and height on the
    WGS-84 ellipsoid iteratively.

    Args:
        eci: Inertial position in km.
        gmst: Greenwich mean sidereal time in radians.

    Returns:
        Geodetic point with longitude wrapped to [-180, 180).
    """
    a = EARTH_RADIUS_KM
    e2 = EARTH_FLATTENING * (2 - EARTH_FLATTENING)

    r = math.hypot(eci.x, eci.y)
    longitude = math.atan2(eci.y, eci.x) - gmst
    longitude = (longitude + math.pi) % (2 * math.pi) - math.pi

    latitude = math.atan2(eci.z, r)
    c = 1.0
    for _ in range(20):
        sin_lat = math.sin(latitude)
        c = 1.0 / math.sqrt(1 - e2 * sin_lat * sin_lat)
        latitude = math.atan2(eci.z + a * c * e2 * sin_lat, r)

    cos_lat = math.cos(latitude)
    if abs(cos_lat) > 1e-10:
        height = r / cos_lat - a * c
    else:
        # Over a pole the horizontal radius carries no information.
        height = abs(eci.z) - a * c * (1 - e2)

    return GeodeticPoint(
        latitude_deg=math.degrees(latitude),
        longitude_deg=math.degrees(longitude),
        altitude_km=height,
    )


def geodetic_at(
    elements: OrbitalElementSet,
    at: datetime,
    propagator: StatePropagator | None = None,
) -> GeodeticPoint | NoSolution:
    """Geodetic position of ``elements`` at ``at``, or ``NO_SOLUTION``."""
    propagator = propagator or DEFAULT_PROPAGATOR
    eci = propagator.propagate(elements, at)
    if eci is NO_SOLUTION:
        return NO_SOLUTION
    return eci_to_geodetic(eci, propagator.sidereal_time(at))


def propagate_many(
    elements: OrbitalElementSet,
    times: Sequence[datetime],
    propagator: StatePropagator | None = None,
) -> list[EciVector | NoSolution]:
    """Propagate a single element set to multiple times.

    Args:
        elements: Element set to propagate.
        times: UTC datetimes to propagate to.
        propagator: Propagator to use; SGP4 by default.

    Returns:
        One entry per requested time: the position, or ``NO_SOLUTION``.
    """
    propagator = propagator or DEFAULT_PROPAGATOR
    result = [propagator.propagate(elements, t) for t in times]
    failures = sum(1 for r in result if r is NO_SOLUTION)
    if failures:
        logger.warning("No solution for %s at %d of %d times", elements.label(), failures, len(times))
    logger.debug("Propagated %s to %d times", elements.label(), len(times))
    return result


def propagate_grid(
    element_sets: Sequence[OrbitalElementSet],
    start: datetime,
    step_minutes: float,
    steps: int,
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    """Propagate many element sets over an evenly spaced time grid.

    All objects are propagated together through ``SatrecArray``, which runs
    SGP4 in C over every (object, time) pair.

    Args:
        element_sets: Element sets to propagate.
        start: First grid time (UTC).
        step_minutes: Grid spacing in minutes.
        steps: Number of grid times.

    Returns:
        Tuple of:
            - states: Array of shape (n, steps, 6) with [x,y,z,vx,vy,vz] in km, km/s
            - valid_mask: Boolean array of shape (n, steps); False where SGP4
              reported an error or produced a non-finite state
    """
    n = len(element_sets)
    if n == 0 or steps <= 0:
        return np.empty((n, max(steps, 0), 6), dtype=np.float64), np.zeros((n, max(steps, 0)), dtype=np.bool_)

    satrec_array = SatrecArray([build_satrec(e) for e in element_sets])

    base_jd, base_fr = julian_date(start)
    jd = np.full(steps, base_jd, dtype=np.float64)
    fr = base_fr + np.arange(steps, dtype=np.float64) * (step_minutes / MINUTES_PER_DAY)

    # errors (n, steps), positions and velocities (n, steps, 3)
    errors, positions, velocities = satrec_array.sgp4(jd, fr)

    states = np.concatenate([positions, velocities], axis=2)
    valid_mask = (errors == 0) & np.all(np.isfinite(states), axis=2)

    logger.debug("Propagated %d objects over %d grid times", n, steps)
    return states, valid_mask


def propagate_batch(
    element_sets: Sequence[OrbitalElementSet], time: datetime
) -> tuple[NDArray[np.float64], NDArray[np.bool_]]:
    """State of every element set at one instant.

    Returns:
        ``(states, valid_mask)`` with shapes (n, 6) and (n,).
    """
    states, valid_mask = propagate_grid(element_sets, time, 0.0, 1)
    return states[:, 0, :], valid_mask[:, 0]
