from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from orbwarden.core.elements import as_utc
from orbwarden.core.screening import ConjunctionEvent
from orbwarden.utils.constants import (
    DEFAULT_OBJECT_RADIUS_KM,
    IMMEDIATE_WINDOW_MINUTES,
    MIN_POSITION_SIGMA_KM,
    NEAR_TERM_WINDOW_MINUTES,
    POSITION_SIGMA_FRACTION,
)

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """Tiered collision-risk classification."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"

    @property
    def severity(self) -> int:
        """Ordinal where larger means more severe (LOW=0 ... CRITICAL=3)."""
        return _SEVERITY[self]


_SEVERITY = {
    RiskLevel.LOW: 0,
    RiskLevel.MODERATE: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


@dataclass(frozen=True)
class CollisionRisk:
    target_id: str
    miss_distance_km: float
    tca: datetime
    relative_velocity_km_s: float
    probability: float    # 0-1, heuristic
    risk_level: RiskLevel


def collision_probability(
    miss_distance_km: float,
    relative_velocity_km_s: float,
    radius_a_km: float = DEFAULT_OBJECT_RADIUS_KM,
    radius_b_km: float = DEFAULT_OBJECT_RADIUS_KM,
) -> float:
    """
    Illustrative collision probability from miss distance alone.

    Positional uncertainty is modelled as growing with distance
    (sigma = max(0.5 km, 10% of the miss distance)). This is a display
    heuristic, not a covariance-based Pc.

    Args:
        miss_distance_km: Predicted miss distance in kilometers
        relative_velocity_km_s: Relative velocity in km/s (currently unused by the model)
        radius_a_km: Hard-body radius of the first object
        radius_b_km: Hard-body radius of the second object

    Returns:
        Probability in [0, 1]; exactly 1.0 inside the combined radius
    """
    combined = radius_a_km + radius_b_km

    if miss_distance_km <= combined:
        return 1.0

    sigma = max(MIN_POSITION_SIGMA_KM, miss_distance_km * POSITION_SIGMA_FRACTION)
    probability = math.exp(-((miss_distance_km / sigma) ** 2) / 2) * (combined / miss_distance_km)

    return min(1.0, max(0.0, probability))


def risk_level(miss_distance_km: float, time_to_tca_minutes: float) -> RiskLevel:
    """
    Classify risk from miss distance, tightening thresholds as TCA nears.

    - under 1 hour: <1 km CRITICAL, <5 HIGH, <10 MODERATE
    - under 24 hours: <0.5 km CRITICAL, <2 HIGH, <5 MODERATE
    - later: <0.5 km HIGH, <1 MODERATE (never CRITICAL this far out)
    """
    if time_to_tca_minutes < IMMEDIATE_WINDOW_MINUTES:
        if miss_distance_km < 1:
            return RiskLevel.CRITICAL
        if miss_distance_km < 5:
            return RiskLevel.HIGH
        if miss_distance_km < 10:
            return RiskLevel.MODERATE
        return RiskLevel.LOW

    if time_to_tca_minutes < NEAR_TERM_WINDOW_MINUTES:
        if miss_distance_km < 0.5:
            return RiskLevel.CRITICAL
        if miss_distance_km < 2:
            return RiskLevel.HIGH
        if miss_distance_km < 5:
            return RiskLevel.MODERATE
        return RiskLevel.LOW

    if miss_distance_km < 0.5:
        return RiskLevel.HIGH
    if miss_distance_km < 1:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def assess(
    event: ConjunctionEvent,
    primary_id: str | None = None,
    now: datetime | None = None,
) -> CollisionRisk:
    """
    Turn a conjunction event into a risk record seen from one object.

    Args:
        event: Normalized conjunction event
        primary_id: The object being protected; the other object becomes the
            target. Defaults to ``event.object1_id``.
        now: Reference time (e.g. the simulation clock); defaults to wall-clock UTC

    Returns:
        CollisionRisk for the counterpart object
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if primary_id is None:
        primary_id = event.object1_id

    time_to_tca_minutes = (as_utc(event.tca) - as_utc(now)).total_seconds() / 60.0
    level = risk_level(event.miss_distance_km, time_to_tca_minutes)
    probability = collision_probability(event.miss_distance_km, event.relative_speed_km_s)

    logger.debug(
        "Risk for %s vs %s: %s, Pc~%.2e, miss=%.3f km, %.0f min to TCA",
        primary_id, event.other(primary_id), level.value, probability,
        event.miss_distance_km, time_to_tca_minutes,
    )
    return CollisionRisk(
        target_id=event.other(primary_id),
        miss_distance_km=event.miss_distance_km,
        tca=event.tca,
        relative_velocity_km_s=event.relative_speed_km_s,
        probability=probability,
        risk_level=level,
    )


def assess_events(
    events: list[ConjunctionEvent],
    primary_id: str | None = None,
    now: datetime | None = None,
) -> list[CollisionRisk]:
    """
    Batch assess events, most severe first (ties broken by miss distance).
    """
    if now is None:
        now = datetime.now(timezone.utc)
    risks = [assess(event, primary_id=primary_id, now=now) for event in events]
    risks.sort(key=lambda r: (-r.risk_level.severity, r.miss_distance_km))
    return risks
