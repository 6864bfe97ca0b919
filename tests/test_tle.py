"""Tests for TLE encoding and decoding."""

from datetime import datetime, timezone

import pytest

from orbwarden.core.elements import OrbitalElementSet
from orbwarden.core.tle import TleEncoding, checksum, decode, encode, parse_tle, verify_checksum
from orbwarden.exceptions import InvalidElementError, ParseError

# ISS (ZARYA) TLE, a well-known reference
ISS_NAME = "ISS (ZARYA)"
ISS_LINE1 = "1 25544U 98067A   24045.54896019  .00016717  00000-0  30093-3 0  9997"
ISS_LINE2 = "2 25544  51.6412 207.4925 0004948 290.5508 178.9792 15.49583488439592"


def _elements(**overrides) -> OrbitalElementSet:
    values = dict(
        inclination_deg=51.64,
        raan_deg=120.0,
        eccentricity=0.0009,
        arg_perigee_deg=80.0,
        mean_anomaly_deg=10.0,
        mean_motion_rev_per_day=15.5,
        epoch=datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc),
        catalog_id=25544,
        name="ISS (ZARYA)",
    )
    values.update(overrides)
    return OrbitalElementSet(**values)


class TestDecode:
    def test_fields(self) -> None:
        elements = decode(ISS_LINE1, ISS_LINE2, name=ISS_NAME)
        assert elements.catalog_id == 25544
        assert elements.name == ISS_NAME
        assert elements.inclination_deg == pytest.approx(51.6412)
        assert elements.raan_deg == pytest.approx(207.4925)
        assert elements.eccentricity == pytest.approx(0.0004948)
        assert elements.arg_perigee_deg == pytest.approx(290.5508)
        assert elements.mean_anomaly_deg == pytest.approx(178.9792)
        assert elements.mean_motion_rev_per_day == pytest.approx(15.49583488)

    def test_epoch_parsed(self) -> None:
        elements = decode(ISS_LINE1, ISS_LINE2)
        assert elements.epoch.tzinfo is not None
        assert elements.epoch.year == 2024
        assert elements.epoch.month == 2  # day 45 ~ Feb 14
        assert elements.epoch.day == 14

    def test_bstar(self) -> None:
        elements = decode(ISS_LINE1, ISS_LINE2)
        assert abs(elements.bstar - 3.0093e-4) < 1e-10

    def test_derived_quantities(self) -> None:
        elements = decode(ISS_LINE1, ISS_LINE2)
        assert 6700 < elements.semi_major_axis_km < 6850
        assert 90 < elements.period_minutes < 95
        assert 350 < elements.altitude_km < 450

    def test_short_line_raises(self) -> None:
        with pytest.raises(ParseError, match="Invalid TLE line 1"):
            decode("garbage", ISS_LINE2)

    def test_wrong_prefix_raises(self) -> None:
        with pytest.raises(ParseError, match="Invalid TLE line 2"):
            decode(ISS_LINE1, "3" + ISS_LINE2[1:])

    def test_non_numeric_field_raises(self) -> None:
        bad = ISS_LINE2[:8] + "  XX.XXX" + ISS_LINE2[16:]
        with pytest.raises(ParseError, match="Malformed"):
            decode(ISS_LINE1, bad)

    def test_parse_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode("garbage", "garbage")

    def test_checksum_mismatch_is_tolerated(self) -> None:
        tampered = ISS_LINE1[:-1] + "0"
        assert not verify_checksum(tampered)
        assert decode(tampered, ISS_LINE2).catalog_id == 25544


class TestEncode:
    def test_line_layout(self) -> None:
        encoded = encode(_elements())
        assert len(encoded.line1) == 69
        assert len(encoded.line2) == 69
        assert encoded.line1.startswith("1 25544U")
        assert encoded.line2.startswith("2 25544 ")

    def test_checksum_digit(self) -> None:
        encoded = encode(_elements())
        for line in (encoded.line1, encoded.line2):
            assert int(line[-1]) == checksum(line)
            assert verify_checksum(line)

    def test_checksum_counts_minus_as_one(self) -> None:
        assert checksum("1-1") == 3
        assert checksum("abc") == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            pytest.param({}, id="leo"),
            pytest.param({"eccentricity": 0.0}, id="circular"),
            pytest.param({"eccentricity": 1e-7}, id="ecc-smallest-digit"),
            pytest.param({"eccentricity": 0.9999, "mean_motion_rev_per_day": 2.0}, id="ecc-near-one"),
            pytest.param({"raan_deg": 0.0, "arg_perigee_deg": 0.0, "mean_anomaly_deg": 0.0}, id="angles-zero"),
            pytest.param({"raan_deg": 359.9, "arg_perigee_deg": 359.9, "mean_anomaly_deg": 359.9}, id="angles-high"),
            pytest.param({"inclination_deg": 0.0}, id="equatorial"),
            pytest.param({"inclination_deg": 180.0}, id="retrograde-equatorial"),
            pytest.param({"mean_motion_rev_per_day": 1.0027}, id="geo"),
            pytest.param({"mean_motion_rev_per_day": 16.0}, id="low-leo"),
            pytest.param({"epoch": datetime(2023, 12, 31, 23, 59, 59, tzinfo=timezone.utc)}, id="year-end"),
            pytest.param({"epoch": datetime(2024, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)}, id="year-start"),
            pytest.param({"epoch": datetime(2024, 12, 31, 12, 0, tzinfo=timezone.utc)}, id="leap-year-day-366"),
            pytest.param({"epoch": datetime(2056, 6, 1, tzinfo=timezone.utc)}, id="pivot-2056"),
            pytest.param({"epoch": datetime(1957, 10, 4, tzinfo=timezone.utc)}, id="pivot-1957"),
            pytest.param({"raan_deg": -10.0, "mean_anomaly_deg": 370.0}, id="angles-outside-range"),
        ],
    )
    def test_round_trip(self, overrides) -> None:
        original = _elements(**overrides)
        decoded = decode(*_lines(encode(original)))
        assert decoded.inclination_deg == pytest.approx(original.inclination_deg, abs=1e-3)
        assert decoded.raan_deg == pytest.approx(original.raan_deg, abs=1e-3)
        assert decoded.eccentricity == pytest.approx(original.eccentricity, abs=1e-6)
        assert decoded.arg_perigee_deg == pytest.approx(original.arg_perigee_deg, abs=1e-3)
        assert decoded.mean_anomaly_deg == pytest.approx(original.mean_anomaly_deg, abs=1e-3)
        assert decoded.mean_motion_rev_per_day == pytest.approx(original.mean_motion_rev_per_day, abs=1e-3)
        assert abs((decoded.epoch - original.epoch).total_seconds()) < 1e-3
        assert decoded.catalog_id == original.catalog_id

    def test_reference_tle_fields_survive(self) -> None:
        decoded = decode(ISS_LINE1, ISS_LINE2)
        encoded = encode(decoded)
        assert encoded.line1[18:32] == ISS_LINE1[18:32]
        assert encoded.line1[53:61] == ISS_LINE1[53:61]
        assert encoded.line2[8:63] == ISS_LINE2[8:63]

    def test_angles_wrapped_on_construction(self) -> None:
        elements = _elements(raan_deg=370.0, arg_perigee_deg=-0.0, mean_anomaly_deg=-10.0)
        assert elements.raan_deg == pytest.approx(10.0)
        assert elements.arg_perigee_deg == 0.0
        assert elements.mean_anomaly_deg == pytest.approx(350.0)
        assert _elements(raan_deg=-1e-20).raan_deg == 0.0

    def test_angle_rounding_up_to_360_encodes_as_zero(self) -> None:
        encoded = encode(_elements(raan_deg=359.99999))
        assert len(encoded.line2) == 69
        assert encoded.line2[17:25] == "  0.0000"

    def test_invalid_eccentricity(self) -> None:
        with pytest.raises(InvalidElementError, match="eccentricity"):
            encode(_elements(eccentricity=1.2))

    def test_negative_eccentricity(self) -> None:
        with pytest.raises(InvalidElementError):
            encode(_elements(eccentricity=-0.1))

    def test_non_positive_mean_motion(self) -> None:
        with pytest.raises(InvalidElementError, match="mean_motion"):
            encode(_elements(mean_motion_rev_per_day=0.0))

    def test_non_finite_angle(self) -> None:
        with pytest.raises(InvalidElementError, match="raan_deg"):
            encode(_elements(raan_deg=float("nan")))

    def test_catalog_id_too_large(self) -> None:
        with pytest.raises(InvalidElementError, match="catalog_id"):
            encode(_elements(catalog_id=123456))

    def test_missing_catalog_id_encodes_as_zero(self) -> None:
        encoded = encode(_elements(catalog_id=None))
        assert encoded.line1.startswith("1 00000U")
        assert decode(encoded.line1, encoded.line2).catalog_id is None

    def test_str_includes_name(self) -> None:
        text = str(encode(_elements()))
        lines = text.splitlines()
        assert lines[0] == "0 ISS (ZARYA)"
        assert len(lines) == 3

    def test_str_without_name(self) -> None:
        encoding = TleEncoding(line1=ISS_LINE1, line2=ISS_LINE2)
        assert str(encoding) == f"{ISS_LINE1}\n{ISS_LINE2}"


def _lines(encoding: TleEncoding) -> tuple[str, str]:
    return encoding.line1, encoding.line2


class TestParseTLE:
    def test_two_line_format(self) -> None:
        result = parse_tle(f"{ISS_LINE1}\n{ISS_LINE2}")
        assert len(result) == 1
        assert result[0].catalog_id == 25544
        assert result[0].name == ""

    def test_three_line_format(self) -> None:
        result = parse_tle(f"{ISS_NAME}\n{ISS_LINE1}\n{ISS_LINE2}")
        assert len(result) == 1
        assert result[0].name == ISS_NAME

    def test_zero_prefixed_name(self) -> None:
        result = parse_tle(f"0 {ISS_NAME}\n{ISS_LINE1}\n{ISS_LINE2}")
        assert result[0].name == ISS_NAME

    def test_multiple_sets(self) -> None:
        text = f"{ISS_LINE1}\n{ISS_LINE2}\n\nSECOND\n{ISS_LINE1}\n{ISS_LINE2}\n"
        result = parse_tle(text)
        assert len(result) == 2
        assert result[1].name == "SECOND"

    def test_garbage_is_skipped(self) -> None:
        assert parse_tle("nothing to see here\n") == []
