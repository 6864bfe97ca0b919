"""TLE (Two-Line Element) encoding and decoding.

Converts between :class:`~orbwarden.core.elements.OrbitalElementSet` and the
fixed-width two-line text format, including the per-line modulo-10 checksum.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from orbwarden.core.elements import OrbitalElementSet, as_utc, wrap_degrees
from orbwarden.exceptions import InvalidElementError, ParseError

logger = logging.getLogger(__name__)

TLE_LINE_LENGTH = 69


@dataclass(frozen=True)
class TleEncoding:
    """A two-line element set as text.

    Attributes:
        line1: TLE line 1 (69 characters, checksum last).
        line2: TLE line 2 (69 characters, checksum last).
        name: Optional satellite name (line 0).
    """

    line1: str
    line2: str
    name: str = ""

    def __str__(self) -> str:
        header = f"0 {self.name}\n" if self.name else ""
        return f"{header}{self.line1}\n{self.line2}"


def checksum(line: str) -> int:
    """Modulo-10 checksum over the first 68 columns of a TLE line.

    Digits count at face value, '-' counts as 1, everything else is ignored.
    """
    total = 0
    for ch in line[:68]:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1
    return total % 10


def verify_checksum(line: str) -> bool:
    """True if the trailing digit of ``line`` matches :func:`checksum`."""
    line = line.rstrip()
    if len(line) < TLE_LINE_LENGTH or not line[68].isdigit():
        return False
    return int(line[68]) == checksum(line)


def _format_epoch(epoch: datetime) -> str:
    epoch = as_utc(epoch)
    start_of_year = datetime(epoch.year, 1, 1, tzinfo=timezone.utc)
    day_of_year = (epoch - start_of_year).total_seconds() / 86400.0 + 1.0
    return f"{epoch.year % 100:02d}{day_of_year:012.8f}"


def _format_angle(value: float) -> str:
    # 359.99996 would otherwise print as "360.0000".
    return f"{wrap_degrees(round(value, 4)):8.4f}"


def _format_exponent(value: float) -> str:
    """Render a value in the TLE implied-decimal form, e.g. ' 30093-3'."""
    if value == 0.0 or not math.isfinite(value):
        return " 00000-0"
    sign = "-" if value < 0 else " "
    exponent = math.floor(math.log10(abs(value))) + 1
    mantissa = round(abs(value) / 10 ** exponent * 1e5)
    if mantissa >= 100000:
        mantissa = 10000
        exponent += 1
    if abs(exponent) > 9:
        return " 00000-0"
    exp_sign = "-" if exponent < 0 else "+"
    return f"{sign}{mantissa:05d}{exp_sign}{abs(exponent)}"


def _parse_exponent(field: str) -> float:
    field = field.strip()
    if not field:
        return 0.0
    sign = -1.0 if field[0] == "-" else 1.0
    body = field.lstrip("+-")
    mantissa, exponent = body[:-2], body[-2:]
    return sign * float(f"0.{mantissa}e{exponent}")


def encode(elements: OrbitalElementSet) -> TleEncoding:
    """Encode an element set as two TLE lines.

    Args:
        elements: Element set to encode.

    Returns:
        The TLE lines, each terminated by its checksum digit.

    Raises:
        InvalidElementError: If the elements are outside their domain or do
            not fit the fixed-width fields.
    """
    elements.validate()
    if round(elements.mean_motion_rev_per_day, 8) >= 100.0:
        raise InvalidElementError(
            f"mean_motion_rev_per_day does not fit the TLE field: {elements.mean_motion_rev_per_day!r}"
        )

    catalog_id = elements.catalog_id or 0
    if not 0 <= catalog_id <= 99999:
        raise InvalidElementError(f"catalog_id does not fit the TLE field: {catalog_id!r}")

    ecc_digits = min(round(elements.eccentricity * 1e7), 9999999)

    body1 = (
        f"1 {catalog_id:05d}U {'':8s} {_format_epoch(elements.epoch)}"
        f"  .00000000  00000-0 {_format_exponent(elements.bstar)} 0  999"
    )
    body2 = (
        f"2 {catalog_id:05d} "
        f"{elements.inclination_deg:8.4f} "
        f"{_format_angle(elements.raan_deg)} "
        f"{ecc_digits:07d} "
        f"{_format_angle(elements.arg_perigee_deg)} "
        f"{_format_angle(elements.mean_anomaly_deg)} "
        f"{elements.mean_motion_rev_per_day:11.8f}"
        f"{0:5d}"
    )
    line1 = f"{body1}{checksum(body1)}"
    line2 = f"{body2}{checksum(body2)}"

    logger.debug("Encoded TLE for %s", elements.label())
    return TleEncoding(line1=line1, line2=line2, name=elements.name)


def decode(line1: str, line2: str, name: str = "") -> OrbitalElementSet:
    """Decode two TLE lines into an element set.

    Args:
        line1: TLE line 1 (69 characters).
        line2: TLE line 2 (69 characters).
        name: Optional satellite name (line 0).

    Returns:
        The decoded element set.

    Raises:
        ParseError: If a line is too short, lacks its line-number prefix, or
            a fixed-width field is not numeric.
    """
    line1 = line1.rstrip()
    line2 = line2.rstrip()

    if len(line1) < TLE_LINE_LENGTH or not line1.startswith("1 "):
        logger.error("Invalid TLE line 1: %r", line1)
        raise ParseError(f"Invalid TLE line 1: {line1!r}")
    if len(line2) < TLE_LINE_LENGTH or not line2.startswith("2 "):
        logger.error("Invalid TLE line 2: %r", line2)
        raise ParseError(f"Invalid TLE line 2: {line2!r}")

    for number, line in ((1, line1), (2, line2)):
        if not verify_checksum(line):
            logger.warning("Checksum mismatch on TLE line %d: %r", number, line)

    try:
        year = int(line1[18:20])
        year = year + 2000 if year < 57 else year + 1900
        day_of_year = float(line1[20:32])
        epoch = datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=day_of_year - 1)

        elements = OrbitalElementSet(
            inclination_deg=float(line2[8:16]),
            raan_deg=float(line2[17:25]),
            eccentricity=float("0." + line2[26:33].replace(" ", "0")),
            arg_perigee_deg=float(line2[34:42]),
            mean_anomaly_deg=float(line2[43:51]),
            mean_motion_rev_per_day=float(line2[52:63]),
            epoch=epoch,
            catalog_id=int(line1[2:7]) or None,
            name=name.strip(),
            bstar=_parse_exponent(line1[53:61]),
        )
    except ValueError as e:
        logger.error("Malformed TLE field: %s", e)
        raise ParseError(f"Malformed TLE field: {e}") from e

    logger.debug("Decoded TLE for %s (epoch %s)", elements.label(), epoch.isoformat())
    return elements


def parse_tle(text: str) -> list[OrbitalElementSet]:
    """Parse one or more TLEs from text.

    Handles both 2-line and 3-line (with name) formats. A leading ``"0 "`` on
    the name line is dropped.

    Args:
        text: Raw TLE text, one or more TLE sets separated by newlines.

    Returns:
        A list of decoded element sets.
    """
    lines = [l.rstrip() for l in text.strip().splitlines() if l.strip()]
    result: list[OrbitalElementSet] = []
    i = 0

    while i < len(lines):
        if lines[i].startswith("1 ") and i + 1 < len(lines) and lines[i + 1].startswith("2 "):
            result.append(decode(lines[i], lines[i + 1]))
            i += 2
        elif (
            not lines[i].startswith("1 ")
            and not lines[i].startswith("2 ")
            and i + 2 < len(lines)
            and lines[i + 1].startswith("1 ")
            and lines[i + 2].startswith("2 ")
        ):
            name = lines[i][2:] if lines[i].startswith("0 ") else lines[i]
            result.append(decode(lines[i + 1], lines[i + 2], name=name))
            i += 3
        else:
            i += 1  # skip unrecognized lines

    logger.debug("Parsed %d TLEs from text", len(result))
    return result
