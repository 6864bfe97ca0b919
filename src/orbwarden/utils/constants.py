from __future__ import annotations

"""Physical constants and default thresholds for orbital mechanics.

All values in km, seconds and degrees unless otherwise noted.
"""

# --- Earth parameters ---
EARTH_RADIUS_KM: float = 6378.137
"""WGS-84 equatorial radius of Earth in km."""

EARTH_FLATTENING: float = 1.0 / 298.257223563
"""WGS-84 flattening."""

EARTH_MEAN_RADIUS_KM: float = 6371.0
"""Mean spherical radius in km (haversine and altitude approximations)."""

EARTH_MU_KM3_S2: float = 398600.4418
"""Earth gravitational parameter (GM) in km³/s²."""

SECONDS_PER_DAY: float = 86400.0
MINUTES_PER_DAY: float = 1440.0

# --- Trajectory sampling ---
DEFAULT_STEP_MINUTES: float = 2.0
"""Requested resolution for trajectory sampling in minutes."""

MIN_SAMPLES_PER_ORBIT: int = 100
"""The effective step never exceeds period / MIN_SAMPLES_PER_ORBIT."""

MIN_PLAUSIBLE_ALTITUDE_KM: float = 100.0
"""Samples below this altitude are dropped as erroneous."""

MAX_PLAUSIBLE_ALTITUDE_KM: float = 100000.0
"""Samples above this altitude are dropped as erroneous."""

ANTIMERIDIAN_JUMP_DEG: float = 180.0
"""Longitude jump between consecutive samples that splits a path."""

# --- Collision risk ---
DEFAULT_OBJECT_RADIUS_KM: float = 0.01
"""Typical hard-body radius of a satellite (~10 m) in km."""

MIN_POSITION_SIGMA_KM: float = 0.5
"""Lower bound for the heuristic positional uncertainty in km."""

POSITION_SIGMA_FRACTION: float = 0.1
"""Positional uncertainty as a fraction of the miss distance."""

IMMEDIATE_WINDOW_MINUTES: float = 60.0
"""TCA closer than this uses the tightest risk thresholds."""

NEAR_TERM_WINDOW_MINUTES: float = 1440.0
"""TCA closer than this (and beyond the immediate window) is near-term."""

# --- Maneuver planning ---
NEXT_CONTACT_MINUTES: float = 45.0
"""Average wait for the next ground-station contact in minutes."""

MANEUVER_MARGIN_MINUTES: float = 10.0
"""Minimum slack after contact before TCA for a maneuver to be executable."""

# --- Screening ---
DEFAULT_MISS_DISTANCE_KM: float = 10.0
"""Default miss distance threshold for conjunction screening in km."""

DEFAULT_SCREENING_STEP_MINUTES: float = 10.0
"""Default coarse step for catalog screening in minutes."""
