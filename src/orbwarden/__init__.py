"""
orbwarden: orbit tracking and collision avoidance for Python.

Converts and propagates two-line element sets, samples ground tracks,
measures close approaches, scores collision risk, and plans avoidance
maneuvers, all driven by a single simulation clock.
"""

from __future__ import annotations

__version__ = "0.1.0"

from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.tle import TleEncoding, encode, decode, parse_tle
from orbwarden.core.propagation import (
    NO_SOLUTION,
    EciVector,
    GeodeticPoint,
    NoSolution,
    Sgp4Propagator,
    StatePropagator,
    propagate_many,
)
from orbwarden.core.trajectory import SamplePoint, Trajectory, sample
from orbwarden.core.geometry import ClosestApproach, MissDistanceMethod, closest_approach
from orbwarden.core.screening import ConjunctionEvent, find_tca, screen_catalog
from orbwarden.core.risk import CollisionRisk, RiskLevel, collision_probability, risk_level
from orbwarden.core.maneuver import ManeuverIntent, ManeuverPlan, plan_maneuver
from orbwarden.core.clock import SimulationClock
from orbwarden.core.catalog import ObjectCatalog, TrackedObject
from orbwarden.data.conjunctions import normalize_conjunction
from orbwarden.exceptions import (
    ImplausibleOrbitError,
    InvalidElementError,
    ManeuverRejected,
    NoSolutionError,
    ParseError,
)

__all__ = [
    "__version__",
    "OrbitalElementSet",
    "TleEncoding",
    "encode",
    "decode",
    "parse_tle",
    "NO_SOLUTION",
    "EciVector",
    "GeodeticPoint",
    "NoSolution",
    "Sgp4Propagator",
    "StatePropagator",
    "propagate_many",
    "SamplePoint",
    "Trajectory",
    "sample",
    "ClosestApproach",
    "MissDistanceMethod",
    "closest_approach",
    "ConjunctionEvent",
    "find_tca",
    "screen_catalog",
    "CollisionRisk",
    "RiskLevel",
    "collision_probability",
    "risk_level",
    "ManeuverIntent",
    "ManeuverPlan",
    "plan_maneuver",
    "SimulationClock",
    "ObjectCatalog",
    "TrackedObject",
    "normalize_conjunction",
    "ImplausibleOrbitError",
    "InvalidElementError",
    "ManeuverRejected",
    "NoSolutionError",
    "ParseError",
]
