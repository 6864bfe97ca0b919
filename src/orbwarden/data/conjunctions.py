"""Normalization of external conjunction records.

Conjunction feeds spell the same fields many ways and mix units (miss
distance in meters or kilometers, speeds in m/s or km/s). Everything is
converted here into :class:`~orbwarden.core.screening.ConjunctionEvent`
before the rest of the library sees it.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from orbwarden.core.screening import ConjunctionEvent
from orbwarden.exceptions import ParseError

logger = logging.getLogger(__name__)

# Canonical (already in km) spellings first, then spellings in meters.
_MISS_KM_KEYS = ["missDistanceKm", "MISS_DISTANCE_KM"]
_MISS_M_KEYS = ["missDistanceMeters", "MISS_DISTANCE_M"]
_MISS_RAW_KEYS = ["MISS_DISTANCE", "RANGE_AT_TCA", "RANGE", "MISS_DIST", "MD", "MIN_RNG"]
_MISS_UNIT_KEYS = ["MISS_DISTANCE_UNITS", "MISS_DISTANCE_UNIT", "MD_UNITS"]

_SPEED_KEYS = [
    "relativeSpeedKmS", "relativeSpeedKms", "RELATIVE_SPEED_KM_S", "RELATIVE_SPEED_KMS",
    "RELATIVE_SPEED", "V_REL", "RELATIVE_VELOCITY", "TCA_RELATIVE_SPEED",
]
_SPEED_UNIT_KEYS = ["RELATIVE_SPEED_UNITS", "RELATIVE_VELOCITY_UNITS", "V_REL_UNITS"]

_TCA_KEYS = ["tca", "TCA", "TIME_OF_CLOSEST_APPROACH", "TCA_TIME", "TIME_TCA"]

_OBJECT1_KEYS = ["object1Id", "OBJECT1_CATID", "OBJECT1_ID", "SAT_1_ID", "OBJECT1_DESIGNATOR", "SAT1_ID"]
_OBJECT2_KEYS = ["object2Id", "OBJECT2_CATID", "OBJECT2_ID", "SAT_2_ID", "OBJECT2_DESIGNATOR", "SAT2_ID"]

_NUMBER_WITH_UNIT = re.compile(r"^\s*([-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)\s*([a-zA-Z/]*)\s*$")


def _pick_first(record: Mapping[str, Any], keys: list[str]) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _split_unit(value: Any) -> tuple[float, str] | None:
    """Split ``'523 m'`` / ``'0.5km'`` / ``12.0`` into (number, unit)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return (number, "") if math.isfinite(number) else None
    match = _NUMBER_WITH_UNIT.match(str(value))
    if match is None:
        return None
    number = float(match.group(1))
    if not math.isfinite(number):
        return None
    return number, match.group(2).lower()


def parse_distance_km(value: Any, unit_hint: str | None = None, default_unit: str = "m") -> float | None:
    """Distance in km from a number or a string with an optional unit suffix.

    Bare numbers use ``unit_hint`` if given, else ``default_unit``.
    """
    parsed = _split_unit(value)
    if parsed is None:
        return None
    number, unit = parsed
    unit = unit or (unit_hint or default_unit).strip().lower()
    if unit == "km":
        return number
    if unit == "m":
        return number / 1000.0
    logger.debug("Unknown distance unit %r", unit)
    return None


def parse_speed_km_s(value: Any, unit_hint: str | None = None) -> float | None:
    """Speed in km/s; bare numbers are km/s unless ``unit_hint`` says m/s."""
    parsed = _split_unit(value)
    if parsed is None:
        return None
    number, unit = parsed
    unit = unit or (unit_hint or "km/s").strip().lower()
    if unit == "km/s":
        return number
    if unit == "m/s":
        return number / 1000.0
    logger.debug("Unknown speed unit %r", unit)
    return None


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC.

    Raises:
        ParseError: If the value is not a recognizable instant.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ParseError(f"Invalid instant: {value!r}") from e
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _object_id(value: Any) -> str:
    text = str(value).strip()
    digits = re.sub(r"[^0-9]", "", text)
    return digits or text


def normalize_conjunction(record: Mapping[str, Any]) -> ConjunctionEvent:
    """Convert one external conjunction record into a ConjunctionEvent.

    A nested ``raw`` mapping (as produced by proxies that keep the original
    payload) is consulted for fields missing at the top level. Unit-less
    ``MISS_DISTANCE`` style fields are meters, following the public CDM feed.

    Args:
        record: External record in any supported spelling.

    Returns:
        The canonical event.

    Raises:
        ParseError: If object ids, miss distance or TCA cannot be found.
    """
    raw = record.get("raw")
    layers: list[Mapping[str, Any]] = [record]
    if isinstance(raw, Mapping):
        layers.append(raw)

    def find(keys: list[str]) -> Any:
        for layer in layers:
            value = _pick_first(layer, keys)
            if value is not None:
                return value
        return None

    object1 = find(_OBJECT1_KEYS)
    object2 = find(_OBJECT2_KEYS)
    if object1 is None or object2 is None:
        logger.error("Conjunction record without object ids: %r", record)
        raise ParseError("Conjunction record is missing object ids")

    miss_km = None
    value = find(_MISS_KM_KEYS)
    if value is not None:
        miss_km = parse_distance_km(value, default_unit="km")
    if miss_km is None:
        value = find(_MISS_M_KEYS)
        if value is not None:
            miss_km = parse_distance_km(value, default_unit="m")
    if miss_km is None:
        value = find(_MISS_RAW_KEYS)
        if value is not None:
            miss_km = parse_distance_km(value, unit_hint=find(_MISS_UNIT_KEYS), default_unit="m")
    if miss_km is None:
        logger.error("Conjunction record without usable miss distance: %r", record)
        raise ParseError("Conjunction record is missing a miss distance")

    speed = None
    value = find(_SPEED_KEYS)
    if value is not None:
        speed = parse_speed_km_s(value, unit_hint=find(_SPEED_UNIT_KEYS))
    if speed is None:
        logger.debug("No relative speed for %s/%s, using 0", object1, object2)
        speed = 0.0

    tca = find(_TCA_KEYS)
    if tca is None:
        raise ParseError("Conjunction record is missing a TCA")

    return ConjunctionEvent(
        object1_id=_object_id(object1),
        object2_id=_object_id(object2),
        tca=parse_instant(tca),
        miss_distance_km=miss_km,
        relative_speed_km_s=speed,
    )


def normalize_conjunctions(payload: Any) -> list[ConjunctionEvent]:
    """Normalize a feed payload, skipping records that cannot be parsed.

    Accepts a list of records or an envelope ``{"items": [...]}``.
    """
    if isinstance(payload, Mapping):
        items = payload.get("items", [])
    else:
        items = payload or []

    events: list[ConjunctionEvent] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        try:
            events.append(normalize_conjunction(item))
        except ParseError as e:
            logger.warning("Skipping conjunction record: %s", e)

    logger.debug("Normalized %d of %d conjunction records", len(events), len(items))
    return events
