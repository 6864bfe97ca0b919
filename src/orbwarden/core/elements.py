"""Keplerian element sets and the quantities derived from them."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from orbwarden.exceptions import InvalidElementError
from orbwarden.utils.constants import (
    EARTH_MEAN_RADIUS_KM,
    EARTH_MU_KM3_S2 as MU,
    MINUTES_PER_DAY,
    SECONDS_PER_DAY,
)

logger = logging.getLogger(__name__)


def as_utc(t: datetime) -> datetime:
    """Return ``t`` as an aware UTC datetime (naive values are taken as UTC)."""
    if t.tzinfo is None:
        return t.replace(tzinfo=timezone.utc)
    return t.astimezone(timezone.utc)


def wrap_degrees(value: float) -> float:
    """Wrap an angle in degrees to [0, 360)."""
    wrapped = value % 360.0
    # A tiny negative input wraps to exactly 360.0 in floating point.
    return 0.0 if wrapped >= 360.0 else wrapped


def semi_major_axis_from_mean_motion(mean_motion_rev_per_day: float) -> float:
    """Semi-major axis in km for a mean motion in revolutions per day."""
    n_rad_per_sec = mean_motion_rev_per_day * 2 * math.pi / SECONDS_PER_DAY
    return (MU / (n_rad_per_sec ** 2)) ** (1.0 / 3.0)


def mean_motion_from_semi_major_axis(semi_major_axis_km: float) -> float:
    """Mean motion in revolutions per day for a semi-major axis in km."""
    n_rad_per_sec = math.sqrt(MU / semi_major_axis_km ** 3)
    return n_rad_per_sec * SECONDS_PER_DAY / (2 * math.pi)


@dataclass(frozen=True)
class OrbitalElementSet:
    """Mean Keplerian elements at an epoch.

    RAAN, argument of perigee and mean anomaly are wrapped to [0, 360) on
    construction, so ``OrbitalElementSet(raan_deg=-10.0, ...).raan_deg`` is
    350.0.

    Attributes:
        inclination_deg: Orbital inclination in degrees.
        raan_deg: Right ascension of ascending node in degrees.
        eccentricity: Orbital eccentricity, in [0, 1).
        arg_perigee_deg: Argument of perigee in degrees.
        mean_anomaly_deg: Mean anomaly in degrees.
        mean_motion_rev_per_day: Mean motion in revolutions per day.
        epoch: Element epoch (UTC).
        catalog_id: Optional NORAD catalog number.
        name: Optional object name.
        bstar: BSTAR drag term (1/earth radii).
    """

    inclination_deg: float
    raan_deg: float
    eccentricity: float
    arg_perigee_deg: float
    mean_anomaly_deg: float
    mean_motion_rev_per_day: float
    epoch: datetime
    catalog_id: int | None = None
    name: str = ""
    bstar: float = 0.0

    def __post_init__(self) -> None:
        # RAAN, argument of perigee and mean anomaly are stored in [0, 360).
        # Non-finite values are kept so validate() can name the field.
        for field_name in ("raan_deg", "arg_perigee_deg", "mean_anomaly_deg"):
            value = getattr(self, field_name)
            if math.isfinite(value):
                object.__setattr__(self, field_name, wrap_degrees(value))

    @property
    def semi_major_axis_km(self) -> float:
        return semi_major_axis_from_mean_motion(self.mean_motion_rev_per_day)

    @property
    def period_minutes(self) -> float:
        return MINUTES_PER_DAY / self.mean_motion_rev_per_day

    @property
    def altitude_km(self) -> float:
        """Mean altitude above a spherical Earth."""
        return self.semi_major_axis_km - EARTH_MEAN_RADIUS_KM

    @property
    def perigee_altitude_km(self) -> float:
        return self.semi_major_axis_km * (1 - self.eccentricity) - EARTH_MEAN_RADIUS_KM

    @property
    def apogee_altitude_km(self) -> float:
        return self.semi_major_axis_km * (1 + self.eccentricity) - EARTH_MEAN_RADIUS_KM

    def validate(self) -> OrbitalElementSet:
        """Check the element domain.

        Returns:
            ``self``, so the call can be chained.

        Raises:
            InvalidElementError: If eccentricity is outside [0, 1), mean
                motion is not positive, or any angle is non-finite.
        """
        angles = {
            "inclination_deg": self.inclination_deg,
            "raan_deg": self.raan_deg,
            "arg_perigee_deg": self.arg_perigee_deg,
            "mean_anomaly_deg": self.mean_anomaly_deg,
        }
        for field_name, value in angles.items():
            if not math.isfinite(value):
                logger.error("Non-finite %s for %r", field_name, self.name or self.catalog_id)
                raise InvalidElementError(f"{field_name} must be finite, got {value!r}")

        if not (0.0 <= self.inclination_deg <= 180.0):
            raise InvalidElementError(
                f"inclination_deg must be within [0, 180], got {self.inclination_deg!r}"
            )
        if not (math.isfinite(self.eccentricity) and 0.0 <= self.eccentricity < 1.0):
            logger.error("Eccentricity out of range for %r: %r", self.name or self.catalog_id, self.eccentricity)
            raise InvalidElementError(f"eccentricity must be within [0, 1), got {self.eccentricity!r}")
        if not (math.isfinite(self.mean_motion_rev_per_day) and self.mean_motion_rev_per_day > 0):
            logger.error("Non-positive mean motion for %r: %r", self.name or self.catalog_id, self.mean_motion_rev_per_day)
            raise InvalidElementError(
                f"mean_motion_rev_per_day must be positive, got {self.mean_motion_rev_per_day!r}"
            )
        return self

    def replace(self, **changes) -> OrbitalElementSet:
        """Return a copy with ``changes`` applied; ``self`` is never mutated."""
        return replace(self, **changes)

    def label(self) -> str:
        """Short identifier for log lines and event ids."""
        if self.catalog_id is not None:
            return str(self.catalog_id)
        return self.name or "UNKNOWN"
