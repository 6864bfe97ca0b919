"""Collision-avoidance maneuver planning.

Proposes an altitude change for a given miss distance, applies it to an
element set, and estimates the delta-v. Every function here is pure: input
element sets are never modified and identical inputs give identical results.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from orbwarden.core.elements import OrbitalElementSet, mean_motion_from_semi_major_axis
from orbwarden.exceptions import InvalidElementError, ManeuverRejected
from orbwarden.utils.constants import (
    EARTH_MU_KM3_S2 as MU,
    MANEUVER_MARGIN_MINUTES,
    NEXT_CONTACT_MINUTES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvoidanceSuggestion:
    altitude_change_km: float
    description: str


@dataclass(frozen=True)
class ManeuverIntent:
    """Requested element changes for one maneuver.

    Passed explicitly to :func:`apply_intent` / :func:`plan_maneuver`; angular
    changes are wrapped modulo 360 degrees when applied.
    """

    altitude_change_km: float = 0.0
    inclination_change_deg: float = 0.0
    raan_change_deg: float = 0.0
    eccentricity_change: float = 0.0
    arg_perigee_change_deg: float = 0.0
    mean_anomaly_change_deg: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class ManeuverPlan:
    """A maneuver ready to be applied.

    Attributes:
        altitude_change_km: Semi-major axis change in km.
        estimated_delta_v_ms: Circular-orbit delta-v estimate in m/s.
        description: Human-readable summary.
        produced_elements: Element set after the maneuver.
        base_elements: Element set the plan was computed from.
    """

    altitude_change_km: float
    estimated_delta_v_ms: float
    description: str
    produced_elements: OrbitalElementSet
    base_elements: OrbitalElementSet


@dataclass(frozen=True)
class ManeuverWindow:
    can_maneuver_now: bool
    next_window_minutes: float
    description: str


def suggest_avoidance(miss_distance_km: float) -> AvoidanceSuggestion:
    """Tiered altitude change for a predicted miss distance.

    Closer approaches get larger maneuvers: at least 5 km below 1 km miss,
    3 km below 5 km, 2 km below 10 km, otherwise a 1 km precautionary raise.
    """
    if miss_distance_km < 1:
        return AvoidanceSuggestion(max(5.0, miss_distance_km * 5), "CRITICAL avoidance maneuver")
    if miss_distance_km < 5:
        return AvoidanceSuggestion(max(3.0, miss_distance_km * 2), "HIGH RISK avoidance maneuver")
    if miss_distance_km < 10:
        return AvoidanceSuggestion(max(2.0, miss_distance_km), "MODERATE RISK avoidance maneuver")
    return AvoidanceSuggestion(1.0, "Precautionary maneuver")


def apply_intent(elements: OrbitalElementSet, intent: ManeuverIntent) -> OrbitalElementSet:
    """Apply an intent and return the new element set.

    The semi-major axis moves by ``intent.altitude_change_km`` and mean
    motion is recomputed from it. Angles and eccentricity are shifted by
    the intent; the element set wraps the shifted angles to [0, 360).

    Raises:
        ManeuverRejected: If the new semi-major axis is not positive or the
            new eccentricity is outside [0, 1).
    """
    new_sma = elements.semi_major_axis_km + intent.altitude_change_km
    if not math.isfinite(new_sma) or new_sma <= 0:
        logger.warning("Rejected maneuver for %s: semi-major axis %.3f km", elements.label(), new_sma)
        raise ManeuverRejected(f"Resulting semi-major axis must be positive, got {new_sma!r} km")

    new_ecc = elements.eccentricity + intent.eccentricity_change
    if not 0.0 <= new_ecc < 1.0:
        logger.warning("Rejected maneuver for %s: eccentricity %r", elements.label(), new_ecc)
        raise ManeuverRejected(f"Resulting eccentricity must be within [0, 1), got {new_ecc!r}")

    if intent.inclination_change_deg:
        inclination = (elements.inclination_deg + intent.inclination_change_deg) % 360.0
        if inclination > 180.0:
            inclination = 360.0 - inclination
    else:
        inclination = elements.inclination_deg

    produced = elements.replace(
        inclination_deg=inclination,
        raan_deg=elements.raan_deg + intent.raan_change_deg,
        eccentricity=new_ecc,
        arg_perigee_deg=elements.arg_perigee_deg + intent.arg_perigee_change_deg,
        mean_anomaly_deg=elements.mean_anomaly_deg + intent.mean_anomaly_change_deg,
        mean_motion_rev_per_day=mean_motion_from_semi_major_axis(new_sma),
    )

    try:
        produced.validate()
    except InvalidElementError as e:
        raise ManeuverRejected(f"Maneuver produces invalid elements: {e}") from e
    return produced


def apply_altitude_change(elements: OrbitalElementSet, delta_altitude_km: float) -> OrbitalElementSet:
    """Raise (or lower) the orbit by ``delta_altitude_km``.

    Only the mean motion changes; every angle and the eccentricity are
    carried over.

    Raises:
        ManeuverRejected: If the resulting semi-major axis is not positive.
    """
    return apply_intent(elements, ManeuverIntent(altitude_change_km=delta_altitude_km))


def estimate_delta_v_ms(old: OrbitalElementSet, new: OrbitalElementSet) -> float:
    """Delta-v in m/s between two circular orbits at the old and new radii.

    A simplified estimate, not a full Hohmann transfer.
    """
    r1 = old.semi_major_axis_km
    r2 = new.semi_major_axis_km
    return abs(math.sqrt(MU / r2) - math.sqrt(MU / r1)) * 1000.0


def plan_maneuver(
    elements: OrbitalElementSet,
    miss_distance_km: float,
    intent: ManeuverIntent | None = None,
) -> ManeuverPlan:
    """Plan an avoidance maneuver.

    Args:
        elements: Current element set of the object to move.
        miss_distance_km: Predicted miss distance of the threatening event.
        intent: Explicit element changes (e.g. from an operator or an
            assistant). When omitted, :func:`suggest_avoidance` decides the
            altitude change.

    Returns:
        The plan, including the produced element set.

    Raises:
        ManeuverRejected: If the produced elements would be invalid.
    """
    if intent is None:
        suggestion = suggest_avoidance(miss_distance_km)
        intent = ManeuverIntent(
            altitude_change_km=suggestion.altitude_change_km,
            description=suggestion.description,
        )

    produced = apply_intent(elements, intent)
    delta_v = estimate_delta_v_ms(elements, produced)
    description = (
        f"{intent.description or 'Manual adjustment'} | "
        f"ΔV ≈ {delta_v:.2f} m/s | Alt change: {intent.altitude_change_km:.2f}km"
    )

    logger.info("Planned maneuver for %s: %s", elements.label(), description)
    return ManeuverPlan(
        altitude_change_km=intent.altitude_change_km,
        estimated_delta_v_ms=delta_v,
        description=description,
        produced_elements=produced,
        base_elements=elements,
    )


def maneuver_window(time_to_tca_minutes: float) -> ManeuverWindow:
    """Whether there is time to uplink a maneuver before TCA.

    Assumes the next ground-station contact is ``NEXT_CONTACT_MINUTES`` away.
    """
    can_maneuver_now = time_to_tca_minutes > NEXT_CONTACT_MINUTES + MANEUVER_MARGIN_MINUTES
    if can_maneuver_now:
        description = (
            f"Maneuver window available. Execute within "
            f"{math.floor(time_to_tca_minutes - NEXT_CONTACT_MINUTES)} minutes."
        )
    else:
        description = "URGENT: Limited time before TCA. Immediate action required."
    return ManeuverWindow(
        can_maneuver_now=can_maneuver_now,
        next_window_minutes=NEXT_CONTACT_MINUTES,
        description=description,
    )
