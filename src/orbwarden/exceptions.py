"""Exception hierarchy for orbwarden.

The domain errors subclass :class:`ValueError` so that code written against
plain ``ValueError`` handling keeps working.
"""

from __future__ import annotations


class OrbwardenError(Exception):
    """Base class for all orbwarden errors."""


class InvalidElementError(OrbwardenError, ValueError):
    """A Keplerian element set violates its domain (e.g. eccentricity >= 1)."""


class ParseError(OrbwardenError, ValueError):
    """Malformed two-line element text or external record."""


class ImplausibleOrbitError(OrbwardenError, ValueError):
    """A propagated altitude falls outside the plausible band."""

    def __init__(self, altitude_km: float, message: str | None = None) -> None:
        self.altitude_km = altitude_km
        super().__init__(message or f"Implausible altitude: {altitude_km:.1f} km")


class ManeuverRejected(OrbwardenError, ValueError):
    """A maneuver would produce elements that violate domain invariants."""


class NoSolutionError(OrbwardenError):
    """Raised where a position is mandatory but the propagator has none."""
