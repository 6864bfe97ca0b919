"""Trajectory sampling for path rendering.

Produces time-ordered geodetic samples over a window centered on a
reference time, filtered for plausibility and split at the antimeridian.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import cached_property
from typing import Iterator

from orbwarden.core.elements import OrbitalElementSet, as_utc
from orbwarden.core.propagation import (
    DEFAULT_PROPAGATOR,
    NO_SOLUTION,
    GeodeticPoint,
    StatePropagator,
    eci_to_geodetic,
)
from orbwarden.exceptions import ImplausibleOrbitError
from orbwarden.utils.constants import (
    ANTIMERIDIAN_JUMP_DEG,
    DEFAULT_STEP_MINUTES,
    MAX_PLAUSIBLE_ALTITUDE_KM,
    MIN_PLAUSIBLE_ALTITUDE_KM,
    MIN_SAMPLES_PER_ORBIT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplePoint:
    """A geodetic position tagged with its sample time."""

    time: datetime
    position: GeodeticPoint


def check_altitude(point: GeodeticPoint) -> GeodeticPoint:
    """Return ``point`` if its altitude is plausible.

    Raises:
        ImplausibleOrbitError: If the altitude is outside
            [MIN_PLAUSIBLE_ALTITUDE_KM, MAX_PLAUSIBLE_ALTITUDE_KM].
    """
    if not (MIN_PLAUSIBLE_ALTITUDE_KM <= point.altitude_km <= MAX_PLAUSIBLE_ALTITUDE_KM):
        raise ImplausibleOrbitError(point.altitude_km)
    return point


def effective_step_minutes(elements: OrbitalElementSet, step_minutes: float) -> float:
    """The requested step, capped so one orbit gets at least 100 samples."""
    return min(step_minutes, elements.period_minutes / MIN_SAMPLES_PER_ORBIT)


class Trajectory:
    """Lazy, finite and restartable sequence of :class:`SamplePoint`.

    Nothing is propagated until the trajectory is first iterated; the
    evaluated points are then kept so iterating again yields the same
    sequence.
    """

    def __init__(
        self,
        elements: OrbitalElementSet,
        start: datetime,
        step_minutes: float,
        raw_count: int,
        propagator: StatePropagator,
    ) -> None:
        self.elements = elements
        self.start = start
        self.step_minutes = step_minutes
        self.raw_count = raw_count
        self._propagator = propagator

    @property
    def times(self) -> list[datetime]:
        """Raw evaluation times, before any filtering."""
        step = timedelta(minutes=self.step_minutes)
        return [self.start + i * step for i in range(self.raw_count)]

    @cached_property
    def _points(self) -> tuple[SamplePoint, ...]:
        points: list[SamplePoint] = []
        skipped = 0
        dropped = 0

        for t in self.times:
            eci = self._propagator.propagate(self.elements, t)
            if eci is NO_SOLUTION:
                skipped += 1
                continue

            position = eci_to_geodetic(eci, self._propagator.sidereal_time(t))
            if not position.is_finite():
                logger.warning(
                    "Non-finite sample for %s at %s, discarding trajectory",
                    self.elements.label(), t,
                )
                return ()

            try:
                points.append(SamplePoint(time=t, position=check_altitude(position)))
            except ImplausibleOrbitError as e:
                logger.debug("Dropping sample for %s at %s: %s", self.elements.label(), t, e)
                dropped += 1

        if not points:
            logger.warning("No valid samples for %s (%d raw)", self.elements.label(), self.raw_count)
        logger.debug(
            "Sampled %s: %d points, %d without solution, %d implausible",
            self.elements.label(), len(points), skipped, dropped,
        )
        return tuple(points)

    def __iter__(self) -> Iterator[SamplePoint]:
        return iter(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __bool__(self) -> bool:
        return bool(self._points)

    def positions(self) -> list[GeodeticPoint]:
        return [p.position for p in self._points]

    def segments(self) -> list[list[SamplePoint]]:
        """Split the path into contiguous runs at antimeridian crossings.

        Consecutive samples whose longitudes differ by more than 180 degrees
        start a new run, so a 2D map never draws a line across the whole map.
        """
        runs: list[list[SamplePoint]] = []
        current: list[SamplePoint] = []
        for point in self._points:
            if current and abs(point.position.longitude_deg - current[-1].position.longitude_deg) > ANTIMERIDIAN_JUMP_DEG:
                runs.append(current)
                current = []
            current.append(point)
        if current:
            runs.append(current)
        return runs


def sample(
    elements: OrbitalElementSet,
    center: datetime,
    duration_minutes: float | None = None,
    step_minutes: float = DEFAULT_STEP_MINUTES,
    propagator: StatePropagator | None = None,
) -> Trajectory:
    """Sample an orbit over a window centered on ``center``.

    The window starts half a duration before ``center`` so the object's
    current position lands near the middle of the path.

    Args:
        elements: Element set to sample.
        center: Reference time at the middle of the window.
        duration_minutes: Window length; one orbital period by default.
        step_minutes: Requested resolution. The effective step is
            ``min(step_minutes, period / 100)``.
        propagator: Propagator to use; SGP4 by default.

    Returns:
        A lazy :class:`Trajectory` with ``floor(duration / step) + 1`` raw
        evaluation times.
    """
    if duration_minutes is None:
        duration_minutes = elements.period_minutes
    if step_minutes <= 0 or duration_minutes < 0:
        raise ValueError(
            f"step_minutes must be positive and duration_minutes non-negative, "
            f"got {step_minutes!r} and {duration_minutes!r}"
        )

    step = effective_step_minutes(elements, step_minutes)
    # The epsilon keeps an exact multiple from losing its last sample to rounding.
    raw_count = int(math.floor(duration_minutes / step + 1e-9)) + 1
    start = as_utc(center) - timedelta(minutes=duration_minutes / 2)

    logger.debug(
        "Sampling %s: %.1f min window, %.3f min step, %d raw points",
        elements.label(), duration_minutes, step, raw_count,
    )
    return Trajectory(
        elements=elements,
        start=start,
        step_minutes=step,
        raw_count=raw_count,
        propagator=propagator or DEFAULT_PROPAGATOR,
    )
