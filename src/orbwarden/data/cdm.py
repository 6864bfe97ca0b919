"""Conjunction Data Message (CDM) parser.

CDMs are the standard format (CCSDS 508.0-B-1) for exchanging conjunction
assessment information between space operators and agencies. Only the
fields needed to build a :class:`ConjunctionEvent` are kept.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from orbwarden.core.screening import ConjunctionEvent
from orbwarden.data.conjunctions import parse_distance_km, parse_speed_km_s
from orbwarden.exceptions import ParseError

logger = logging.getLogger(__name__)


@dataclass
class CDMObject:
    """One object's data within a CDM."""

    designator: str  # NORAD ID as string
    name: str
    international_designator: str
    object_type: str
    maneuverable: str


@dataclass
class CDM:
    """A parsed Conjunction Data Message."""

    ccsds_cdm_vers: str
    creation_date: datetime
    originator: str
    message_id: str
    tca: datetime
    miss_distance_km: float
    relative_speed_km_s: float
    collision_probability: float | None
    object1: CDMObject
    object2: CDMObject

    @classmethod
    def from_kvn(cls, text: str) -> CDM:
        """Parse a CDM from KVN (Key-Value Notation) format.

        Args:
            text: Raw CDM text in CCSDS KVN format.

        Returns:
            A parsed CDM object.

        Raises:
            ParseError: If the CDM is malformed or missing required fields.
        """
        header: dict[str, str] = {}
        units: dict[str, str] = {}
        objects: dict[str, dict[str, str]] = {}
        current_obj: str | None = None

        for line in text.strip().splitlines():
            line = line.strip()
            if not line or line.startswith("COMMENT") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            unit = re.search(r"\[(.*?)\]", value)
            # Remove units in brackets
            value = re.sub(r"\s*\[.*?\]\s*", "", value)

            if key == "OBJECT":
                current_obj = value
                objects[current_obj] = {}
            elif current_obj is None:
                header[key] = value
                if unit:
                    units[key] = unit.group(1)
            else:
                objects[current_obj][key] = value

        try:
            ccsds_cdm_vers = header.get("CCSDS_CDM_VERS", "1.0")
            creation_date = _parse_datetime(header["CREATION_DATE"])
            originator = header["ORIGINATOR"]
            message_id = header["MESSAGE_ID"]
            tca = _parse_datetime(header["TCA"])
            miss_distance_km = parse_distance_km(header["MISS_DISTANCE"], unit_hint=units.get("MISS_DISTANCE"))
            relative_speed_km_s = parse_speed_km_s(header["RELATIVE_SPEED"], unit_hint=units.get("RELATIVE_SPEED"))
            if miss_distance_km is None or relative_speed_km_s is None:
                raise ValueError("unparsable MISS_DISTANCE or RELATIVE_SPEED")
        except (KeyError, ValueError) as e:
            logger.error("Missing or invalid required CDM header field: %s", e)
            raise ParseError(f"Missing or invalid required CDM header field: {e}") from e

        # Collision probability is optional
        collision_probability = None
        if "COLLISION_PROBABILITY" in header:
            try:
                collision_probability = float(header["COLLISION_PROBABILITY"])
            except ValueError:
                logger.debug("Ignoring unparsable COLLISION_PROBABILITY %r", header["COLLISION_PROBABILITY"])

        if "OBJECT1" not in objects or "OBJECT2" not in objects:
            raise ParseError("CDM must contain OBJECT1 and OBJECT2 sections")

        return cls(
            ccsds_cdm_vers=ccsds_cdm_vers,
            creation_date=creation_date,
            originator=originator,
            message_id=message_id,
            tca=tca,
            miss_distance_km=miss_distance_km,
            relative_speed_km_s=relative_speed_km_s,
            collision_probability=collision_probability,
            object1=_parse_cdm_object(objects["OBJECT1"]),
            object2=_parse_cdm_object(objects["OBJECT2"]),
        )

    def to_event(self) -> ConjunctionEvent:
        """The canonical event for this message."""
        return ConjunctionEvent(
            object1_id=self.object1.designator,
            object2_id=self.object2.designator,
            tca=self.tca,
            miss_distance_km=self.miss_distance_km,
            relative_speed_km_s=self.relative_speed_km_s,
        )


def split_kvn(text: str) -> list[str]:
    """Split concatenated KVN messages (each starts with CCSDS_CDM_VERS)."""
    parts = text.split("CCSDS_CDM_VERS")
    return ["CCSDS_CDM_VERS" + part for part in parts[1:] if part.strip()]


def _parse_datetime(dt_str: str) -> datetime:
    """Parse CCSDS datetime format (ISO 8601). Returns timezone-aware UTC datetime."""
    # Handle both with and without fractional seconds
    dt_str = dt_str.strip()
    for fmt in ["%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S"]:
        try:
            return datetime.strptime(dt_str, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f"Invalid datetime format: {dt_str}")


def _parse_cdm_object(data: dict[str, str]) -> CDMObject:
    """Parse a CDMObject from KVN key-value dict."""
    return CDMObject(
        designator=data.get("OBJECT_DESIGNATOR", ""),
        name=data.get("OBJECT_NAME", ""),
        international_designator=data.get("INTERNATIONAL_DESIGNATOR", ""),
        object_type=data.get("OBJECT_TYPE", ""),
        maneuverable=data.get("MANEUVERABLE", ""),
    )
