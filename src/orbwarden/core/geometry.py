"""Closest-approach geometry between two objects."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.propagation import (
    DEFAULT_PROPAGATOR,
    NO_SOLUTION,
    GeodeticPoint,
    StatePropagator,
    eci_to_geodetic,
)
from orbwarden.exceptions import NoSolutionError
from orbwarden.utils.constants import EARTH_MEAN_RADIUS_KM

logger = logging.getLogger(__name__)


class MissDistanceMethod(Enum):
    """How the miss distance between two positions is computed."""

    HAVERSINE = "haversine"
    EUCLIDEAN = "euclidean"


@dataclass(frozen=True)
class ClosestApproach:
    """Positions of two objects at a TCA and their separation.

    Attributes:
        position_a: Geodetic position of the first object.
        position_b: Geodetic position of the second object.
        miss_distance_km: Separation in km.
        method: How ``miss_distance_km`` was computed.
    """

    position_a: GeodeticPoint
    position_b: GeodeticPoint
    miss_distance_km: float
    method: MissDistanceMethod = MissDistanceMethod.HAVERSINE

    @property
    def marker(self) -> GeodeticPoint:
        """Display location for the event: plain midpoint of both positions.

        Good enough for placing a marker; not for geometry (it ignores
        longitude wrap and the curvature between the two points).
        """
        return GeodeticPoint(
            latitude_deg=(self.position_a.latitude_deg + self.position_b.latitude_deg) / 2,
            longitude_deg=(self.position_a.longitude_deg + self.position_b.longitude_deg) / 2,
            altitude_km=(self.position_a.altitude_km + self.position_b.altitude_km) / 2,
        )


def haversine_km(lat1_deg: float, lon1_deg: float, lat2_deg: float, lon2_deg: float) -> float:
    """Great-circle distance in km on a sphere of radius 6371 km."""
    phi1 = math.radians(lat1_deg)
    phi2 = math.radians(lat2_deg)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2_deg - lon1_deg)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_MEAN_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def approximate_separation_km(a: GeodeticPoint, b: GeodeticPoint) -> float:
    """Ground distance and altitude difference combined as legs of a right triangle.

    This approximates, but is not, the straight-line distance between the two
    positions.
    """
    ground = haversine_km(a.latitude_deg, a.longitude_deg, b.latitude_deg, b.longitude_deg)
    altitude_delta = abs(a.altitude_km - b.altitude_km)
    return math.sqrt(ground ** 2 + altitude_delta ** 2)


def closest_approach(
    elements_a: OrbitalElementSet,
    elements_b: OrbitalElementSet,
    tca: datetime,
    propagator: StatePropagator | None = None,
    method: MissDistanceMethod = MissDistanceMethod.HAVERSINE,
) -> ClosestApproach:
    """Positions of two objects at ``tca`` and their miss distance.

    Args:
        elements_a: Element set of the first object.
        elements_b: Element set of the second object.
        tca: Time of closest approach.
        propagator: Propagator to use; SGP4 by default.
        method: ``HAVERSINE`` (default) combines great-circle ground distance
            with the altitude difference; ``EUCLIDEAN`` uses the inertial
            position vectors.

    Returns:
        The closest-approach geometry.

    Raises:
        NoSolutionError: If either object has no position at ``tca``.
    """
    propagator = propagator or DEFAULT_PROPAGATOR

    eci_a = propagator.propagate(elements_a, tca)
    eci_b = propagator.propagate(elements_b, tca)
    for elements, eci in ((elements_a, eci_a), (elements_b, eci_b)):
        if eci is NO_SOLUTION:
            logger.error("No position for %s at %s", elements.label(), tca)
            raise NoSolutionError(f"No position for {elements.label()} at {tca.isoformat()}")

    gmst = propagator.sidereal_time(tca)
    position_a = eci_to_geodetic(eci_a, gmst)
    position_b = eci_to_geodetic(eci_b, gmst)

    if method == MissDistanceMethod.HAVERSINE:
        miss = approximate_separation_km(position_a, position_b)
    elif method == MissDistanceMethod.EUCLIDEAN:
        miss = math.dist((eci_a.x, eci_a.y, eci_a.z), (eci_b.x, eci_b.y, eci_b.z))
    else:
        raise ValueError(f"Unknown method: {method}")

    logger.debug(
        "Closest approach %s/%s at %s: %.3f km (%s)",
        elements_a.label(), elements_b.label(), tca.isoformat(), miss, method.value,
    )
    return ClosestApproach(
        position_a=position_a,
        position_b=position_b,
        miss_distance_km=miss,
        method=method,
    )
