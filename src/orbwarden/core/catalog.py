"""Tracked objects and the coordinator that owns them.

:class:`ObjectCatalog` is the single writer of tracked-object state and the
simulation clock. Everything it derives (positions, trajectories, risks) is
recomputed from element sets and the clock instant on demand.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from datetime import datetime

from orbwarden.core.clock import SimulationClock
from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.maneuver import ManeuverIntent, ManeuverPlan, plan_maneuver
from orbwarden.core.propagation import (
    DEFAULT_PROPAGATOR,
    GeodeticPoint,
    NoSolution,
    StatePropagator,
    geodetic_at,
)
from orbwarden.core.risk import CollisionRisk, assess_events
from orbwarden.core.screening import ConjunctionEvent
from orbwarden.core.tle import TleEncoding, decode, encode
from orbwarden.core.trajectory import Trajectory, sample
from orbwarden.exceptions import ManeuverRejected
from orbwarden.utils.constants import DEFAULT_STEP_MINUTES

logger = logging.getLogger(__name__)


@dataclass
class TrackedObject:
    """An object under tracking.

    ``elements`` is owned exclusively by the object and only ever replaced
    as a whole by :class:`ObjectCatalog`.
    """

    id: str
    name: str
    catalog_id: int | None
    elements: OrbitalElementSet


@dataclass(frozen=True)
class ManeuverRecord:
    """One applied maneuver, kept in the append-only history."""

    id: str
    object_id: str
    object_name: str
    timestamp: datetime
    description: str
    old_tle: TleEncoding
    new_tle: TleEncoding
    plan: ManeuverPlan


class ObjectCatalog:
    """Owns tracked objects, the simulation clock and the maneuver history.

    Args:
        clock: Simulation clock; a fresh live clock by default.
        propagator: Propagator for all derived quantities; SGP4 by default.
    """

    def __init__(
        self,
        clock: SimulationClock | None = None,
        propagator: StatePropagator | None = None,
    ) -> None:
        self.clock = clock or SimulationClock()
        self.propagator = propagator or DEFAULT_PROPAGATOR
        self._objects: dict[str, TrackedObject] = {}
        self._history: list[ManeuverRecord] = []
        self._maneuver_seq = itertools.count(1)

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._objects

    def __iter__(self):
        return iter(list(self._objects.values()))

    def get(self, object_id: str) -> TrackedObject:
        try:
            return self._objects[object_id]
        except KeyError:
            raise KeyError(f"Unknown object: {object_id!r}") from None

    @property
    def maneuver_history(self) -> tuple[ManeuverRecord, ...]:
        """Applied maneuvers, newest first."""
        return tuple(reversed(self._history))

    def ingest(self, elements: OrbitalElementSet, object_id: str | None = None) -> TrackedObject:
        """Start tracking ``elements`` or replace the elements of a tracked id.

        Args:
            elements: Element set to track.
            object_id: Identifier; defaults to the catalog number or name.

        Returns:
            The tracked object.

        Raises:
            InvalidElementError: If the elements are invalid or do not fit
                a TLE (so no maneuver record could be written for them).
                Nothing is stored and any existing object keeps its
                previous state.
        """
        encode(elements)
        object_id = object_id or elements.label()

        obj = TrackedObject(
            id=object_id,
            name=elements.name,
            catalog_id=elements.catalog_id,
            elements=elements,
        )
        replaced = object_id in self._objects
        self._objects[object_id] = obj
        logger.debug("%s %s", "Updated" if replaced else "Tracking", object_id)
        return obj

    def ingest_tle(self, line1: str, line2: str, name: str = "", object_id: str | None = None) -> TrackedObject:
        """Decode and ingest a TLE.

        Raises:
            ParseError: If the lines are malformed; nothing is stored.
            InvalidElementError: If the decoded elements are invalid.
        """
        return self.ingest(decode(line1, line2, name=name), object_id=object_id)

    def remove(self, object_id: str) -> TrackedObject:
        obj = self._objects.pop(object_id, None)
        if obj is None:
            raise KeyError(f"Unknown object: {object_id!r}")
        logger.debug("Stopped tracking %s", object_id)
        return obj

    def plan(
        self,
        object_id: str,
        miss_distance_km: float,
        intent: ManeuverIntent | None = None,
    ) -> ManeuverPlan:
        """Plan an avoidance maneuver for a tracked object."""
        return plan_maneuver(self.get(object_id).elements, miss_distance_km, intent=intent)

    def apply_plan(self, object_id: str, plan: ManeuverPlan) -> ManeuverRecord:
        """Atomically replace an object's elements with the plan's result.

        The previous element set survives only in the maneuver history.

        Raises:
            ManeuverRejected: If the plan was computed from a different
                element set than the object currently has, or its result
                cannot be encoded. The object is left untouched.
        """
        obj = self.get(object_id)
        if plan.base_elements != obj.elements:
            logger.warning("Rejected stale maneuver plan for %s", object_id)
            raise ManeuverRejected(f"Plan for {object_id!r} was computed from outdated elements")

        try:
            old_tle = encode(obj.elements)
            new_tle = encode(plan.produced_elements)
        except ValueError as e:
            raise ManeuverRejected(f"Cannot encode maneuver result for {object_id!r}: {e}") from e

        record = ManeuverRecord(
            id=f"maneuver_{next(self._maneuver_seq)}_{object_id}",
            object_id=object_id,
            object_name=obj.name,
            timestamp=self.clock.current_instant(),
            description=plan.description,
            old_tle=old_tle,
            new_tle=new_tle,
            plan=plan,
        )
        self._objects[object_id] = TrackedObject(
            id=obj.id,
            name=obj.name,
            catalog_id=obj.catalog_id,
            elements=plan.produced_elements,
        )
        self._history.append(record)

        logger.info("Maneuver applied to %s: %s", obj.name or object_id, plan.description)
        return record

    def apply_maneuver(
        self,
        object_id: str,
        miss_distance_km: float,
        intent: ManeuverIntent | None = None,
    ) -> ManeuverRecord:
        """Plan and apply in one step."""
        return self.apply_plan(object_id, self.plan(object_id, miss_distance_km, intent=intent))

    def positions(self, at: datetime | None = None) -> dict[str, GeodeticPoint | NoSolution]:
        """Geodetic position of every object at ``at`` (clock instant by default)."""
        at = at or self.clock.current_instant()
        return {
            object_id: geodetic_at(obj.elements, at, propagator=self.propagator)
            for object_id, obj in self._objects.items()
        }

    def trajectories(
        self,
        step_minutes: float = DEFAULT_STEP_MINUTES,
        center: datetime | None = None,
    ) -> dict[str, Trajectory]:
        """One-period trajectories centered on the clock instant."""
        center = center or self.clock.current_instant()
        return {
            object_id: sample(obj.elements, center, step_minutes=step_minutes, propagator=self.propagator)
            for object_id, obj in self._objects.items()
        }

    def assess(self, events: list[ConjunctionEvent]) -> dict[str, list[CollisionRisk]]:
        """Risks per tracked object for the events that involve it.

        Events involving no tracked object are ignored.
        """
        now = self.clock.current_instant()
        result: dict[str, list[CollisionRisk]] = {}
        for object_id in self._objects:
            relevant = [e for e in events if e.involves(object_id)]
            if relevant:
                result[object_id] = assess_events(relevant, primary_id=object_id, now=now)
        return result

    def step(self, real_elapsed_seconds: float) -> dict[str, GeodeticPoint | NoSolution]:
        """One scheduler tick: advance the clock, then re-derive positions."""
        self.clock.tick(real_elapsed_seconds)
        return self.positions()
