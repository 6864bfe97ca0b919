"""Conjunction screening: identify close approaches between space objects."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from orbwarden.core.elements import OrbitalElementSet, as_utc
from orbwarden.core.geometry import closest_approach
from orbwarden.core.propagation import (
    DEFAULT_PROPAGATOR,
    NO_SOLUTION,
    StatePropagator,
    propagate_grid,
)
from orbwarden.exceptions import NoSolutionError
from orbwarden.utils.constants import DEFAULT_MISS_DISTANCE_KM, DEFAULT_SCREENING_STEP_MINUTES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConjunctionEvent:
    """A predicted close approach between two space objects.

    This is the one input shape the risk and maneuver code accepts; external
    feeds are converted by :mod:`orbwarden.data.conjunctions` first.

    Attributes:
        object1_id: Identifier of the first (usually protected) object.
        object2_id: Identifier of the second object.
        tca: Time of closest approach (UTC).
        miss_distance_km: Predicted miss distance in km.
        relative_speed_km_s: Relative speed at TCA in km/s.
    """

    object1_id: str
    object2_id: str
    tca: datetime
    miss_distance_km: float
    relative_speed_km_s: float

    def other(self, object_id: str) -> str:
        """The id of the counterpart of ``object_id`` in this event."""
        return self.object2_id if object_id == self.object1_id else self.object1_id

    def involves(self, object_id: str) -> bool:
        return object_id in (self.object1_id, self.object2_id)


def _pair_distance(
    a: OrbitalElementSet, b: OrbitalElementSet, t: datetime, propagator: StatePropagator
) -> float | None:
    eci_a = propagator.propagate(a, t)
    if eci_a is NO_SOLUTION:
        return None
    eci_b = propagator.propagate(b, t)
    if eci_b is NO_SOLUTION:
        return None
    return float(np.linalg.norm(eci_a.as_array() - eci_b.as_array()))


def _velocity(
    elements: OrbitalElementSet, t: datetime, propagator: StatePropagator, half_step_sec: float = 1.0
) -> NDArray[np.float64] | None:
    """Central-difference velocity in km/s."""
    h = timedelta(seconds=half_step_sec)
    before = propagator.propagate(elements, t - h)
    after = propagator.propagate(elements, t + h)
    if before is NO_SOLUTION or after is NO_SOLUTION:
        return None
    return (after.as_array() - before.as_array()) / (2 * half_step_sec)


def find_tca(
    elements_a: OrbitalElementSet,
    elements_b: OrbitalElementSet,
    start: datetime,
    end: datetime,
    step_minutes: float = 1.0,
    propagator: StatePropagator | None = None,
) -> ConjunctionEvent | None:
    """Find the time of closest approach of two objects within a window.

    A coarse scan at ``step_minutes`` locates the nearest sample, which is
    then refined by repeatedly halving the step around the best time. The
    reported miss distance comes from :func:`closest_approach`.

    Args:
        elements_a: First element set.
        elements_b: Second element set.
        start: Start of the search window.
        end: End of the search window.
        step_minutes: Coarse scan step in minutes.
        propagator: Propagator to use; SGP4 by default.

    Returns:
        The conjunction event, or None if no instant in the window has a
        solution for both objects.

    Raises:
        ValueError: If the window is reversed or ``step_minutes`` is not
            positive.
    """
    propagator = propagator or DEFAULT_PROPAGATOR
    start, end = as_utc(start), as_utc(end)
    if end < start:
        raise ValueError(f"Window end {end} precedes start {start}")
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes!r}")

    best_time: datetime | None = None
    best_dist = float("inf")

    step_sec = step_minutes * 60.0
    t_start, t_end = start, end
    while True:
        current = t_start
        while current <= t_end:
            distance = _pair_distance(elements_a, elements_b, current, propagator)
            if distance is not None and distance < best_dist:
                best_dist = distance
                best_time = current
            current += timedelta(seconds=step_sec)

        if best_time is None or step_sec <= 1.0:
            break
        t_start = max(start, best_time - timedelta(seconds=step_sec))
        t_end = min(end, best_time + timedelta(seconds=step_sec))
        step_sec /= 2

    if best_time is None:
        logger.warning(
            "No common solution for %s/%s between %s and %s",
            elements_a.label(), elements_b.label(), start, end,
        )
        return None

    try:
        approach = closest_approach(elements_a, elements_b, best_time, propagator=propagator)
    except NoSolutionError:
        return None

    vel_a = _velocity(elements_a, best_time, propagator)
    vel_b = _velocity(elements_b, best_time, propagator)
    rel_speed = float(np.linalg.norm(vel_a - vel_b)) if vel_a is not None and vel_b is not None else 0.0

    logger.debug(
        "TCA %s/%s at %s: %.3f km, %.3f km/s",
        elements_a.label(), elements_b.label(), best_time.isoformat(), approach.miss_distance_km, rel_speed,
    )
    return ConjunctionEvent(
        object1_id=elements_a.label(),
        object2_id=elements_b.label(),
        tca=best_time,
        miss_distance_km=approach.miss_distance_km,
        relative_speed_km_s=rel_speed,
    )


def screen_catalog(
    element_sets: list[OrbitalElementSet],
    hours: float = 24.0,
    step_minutes: float = DEFAULT_SCREENING_STEP_MINUTES,
    threshold_km: float = DEFAULT_MISS_DISTANCE_KM,
    reference_time: datetime | None = None,
) -> list[ConjunctionEvent]:
    """Screen every object against every other object in a time window.

    The whole catalog is propagated over a grid with :func:`propagate_grid`,
    and a KD-tree over each grid epoch picks the pairs whose inertial
    separation is within ``threshold_km``. Each such pair is then refined
    with :func:`find_tca` around its closest grid epoch, so the events
    carry the same miss distance :func:`find_tca` and
    :func:`closest_approach` report.

    Args:
        element_sets: The catalog to screen.
        hours: Screening window in hours from reference_time.
        step_minutes: Time step in minutes for the propagation grid.
        threshold_km: Miss distance threshold in km.
        reference_time: Start time for screening. Defaults to now (UTC).

    Returns:
        One event per pair whose refined miss distance is within
        ``threshold_km``, sorted by miss distance.

    Raises:
        ValueError: If ``step_minutes`` is not positive or ``hours`` is
            negative.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes!r}")
    if hours < 0:
        raise ValueError(f"hours must not be negative, got {hours!r}")

    if reference_time is None:
        reference_time = datetime.now(timezone.utc)
    reference_time = as_utc(reference_time)
    window_end = reference_time + timedelta(hours=hours)

    if len(element_sets) < 2:
        logger.info("Fewer than 2 objects, nothing to screen")
        return []

    steps = int(hours * 60 / step_minutes) + 1
    logger.info(
        "Screening %d objects: %d grid epochs %.1f min apart, %.1f km threshold",
        len(element_sets), steps, step_minutes, threshold_km,
    )

    states, valid = propagate_grid(element_sets, reference_time, step_minutes, steps)

    # Closest grid epoch per candidate pair.
    candidates: dict[tuple[int, int], tuple[float, int]] = {}
    for ti in range(steps):
        idx_map = np.flatnonzero(valid[:, ti])
        if len(idx_map) < 2:
            continue
        positions = states[idx_map, ti, :3]
        for i, j in cKDTree(positions).query_pairs(threshold_km):
            key = tuple(sorted((int(idx_map[i]), int(idx_map[j]))))
            separation = float(np.linalg.norm(positions[i] - positions[j]))
            if key not in candidates or separation < candidates[key][0]:
                candidates[key] = (separation, ti)

    logger.debug("%d candidate pairs within %.1f km on the grid", len(candidates), threshold_km)

    events: list[ConjunctionEvent] = []
    refine_step = min(step_minutes, 1.0)
    for (ia, ib), (_, ti) in candidates.items():
        grid_time = reference_time + timedelta(minutes=ti * step_minutes)
        event = find_tca(
            element_sets[ia],
            element_sets[ib],
            max(reference_time, grid_time - timedelta(minutes=step_minutes)),
            min(window_end, grid_time + timedelta(minutes=step_minutes)),
            step_minutes=refine_step,
        )
        if event is not None and event.miss_distance_km <= threshold_km:
            events.append(event)

    events.sort(key=lambda ev: ev.miss_distance_km)
    logger.info("Screening found %d conjunctions within %.1f km", len(events), threshold_km)
    return events
