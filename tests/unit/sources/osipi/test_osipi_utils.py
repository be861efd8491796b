"""Unit tests for interval, time and name helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from pisync.sources.osipi.osipi_errors import InvalidInterval
from pisync.sources.osipi.osipi_utils import (
    as_bool,
    as_int,
    format_pi_time,
    is_number,
    is_relative_time,
    make_valid_name,
    parse_absolute_time,
    parse_interval,
    parse_ts_lenient,
    split_list_option,
    unique_names,
)


class TestParseInterval:
    @pytest.mark.parametrize(
        "text, magnitude, unit, duration",
        [
            ("500ms", 500, "ms", timedelta(milliseconds=500)),
            ("1s", 1, "s", timedelta(seconds=1)),
            ("15m", 15, "m", timedelta(minutes=15)),
            ("1h", 1, "h", timedelta(seconds=3600)),
            ("2d", 2, "d", timedelta(seconds=2 * 86400)),
            ("1y", 1, "y", timedelta(days=365.2425)),
            ("1.5h", 1.5, "h", timedelta(minutes=90)),
        ],
    )
    def test_units_and_durations(self, text, magnitude, unit, duration):
        iv = parse_interval(text)
        assert iv.magnitude == magnitude
        assert iv.unit == unit
        assert iv.duration == duration

    def test_str_round_trips(self):
        assert str(parse_interval("10m")) == "10m"
        assert str(parse_interval("0.5s")) == "0.5s"

    @pytest.mark.parametrize("text", ["1mo", "1w", "h", "abc", "", "1 hour", "-1h", "0s", None])
    def test_invalid(self, text):
        with pytest.raises(InvalidInterval):
            parse_interval(text)

    def test_invalid_interval_is_a_value_error(self):
        with pytest.raises(ValueError, match="unknown unit"):
            parse_interval("3mo")

    @pytest.mark.parametrize("text", ["1.0000005s", "0.0004ms", "0.0000001s"])
    def test_sub_microsecond_durations_are_rejected(self, text):
        with pytest.raises(InvalidInterval, match="finer than 1 microsecond"):
            parse_interval(text)

    def test_microsecond_resolution_is_kept(self):
        assert parse_interval("1.000001s").duration == timedelta(microseconds=1_000_001)
        assert parse_interval("0.001ms").duration == timedelta(microseconds=1)


class TestTimeHelpers:
    @pytest.mark.parametrize("value", ["*", "*-1h", "*+1h", "-1d", "+2h", "t", "Today", None, ""])
    def test_relative(self, value):
        assert is_relative_time(value)

    @pytest.mark.parametrize(
        "value", ["2023-04-26 06:35", "2023-04-26T06:35:00", "2023-04-26T06:35:00Z"]
    )
    def test_absolute(self, value):
        assert not is_relative_time(value)

    def test_parse_absolute_naive(self):
        assert parse_absolute_time("2023-04-26 06:35") == datetime(2023, 4, 26, 6, 35)
        assert parse_absolute_time("2023-04-26") == datetime(2023, 4, 26)

    def test_parse_absolute_with_offset_and_fraction(self):
        dt = parse_absolute_time("2023-09-24T12:04:17.5870418+02:00")
        assert dt == datetime(2023, 9, 24, 10, 4, 17, 587041, tzinfo=timezone.utc)

    def test_parse_absolute_rejects_relative(self):
        assert parse_absolute_time("*-1d") is None
        assert parse_absolute_time("2023-13-01") is None

    def test_format_pi_time(self):
        assert format_pi_time(datetime(2023, 4, 26, 6, 35)) == "2023-04-26T06:35:00"
        assert format_pi_time(datetime(2023, 4, 26, 6, 35, 0, 500000)) == "2023-04-26T06:35:00.5"
        assert format_pi_time(datetime(2023, 4, 26, tzinfo=timezone.utc)) == "2023-04-26T00:00:00Z"
        cest = timezone(timedelta(hours=2))
        assert format_pi_time(datetime(2023, 4, 26, 8, tzinfo=cest)) == "2023-04-26T08:00:00+02:00"

    def test_format_then_parse_keeps_the_instant(self):
        dt = datetime(2024, 1, 2, 3, 4, 5, 6000, tzinfo=timezone(timedelta(hours=1)))
        assert parse_absolute_time(format_pi_time(dt)) == dt

    def test_lenient_parser(self):
        assert parse_ts_lenient("2023-08-29 22:00:00") == datetime(
            2023, 8, 29, 22, tzinfo=timezone.utc
        )
        assert parse_ts_lenient("8/29/2023 10:00:00 PM") == datetime(
            2023, 8, 29, 22, tzinfo=timezone.utc
        )
        assert parse_ts_lenient("2023-08-29T22:00:00.123456789+00:00") == datetime(
            2023, 8, 29, 22, 0, 0, 123456, tzinfo=timezone.utc
        )
        assert parse_ts_lenient("not a time") is None
        assert parse_ts_lenient(None) is None


class TestNames:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("InsAcPow", "InsAcPow"),
            ("Active Power", "Active_Power"),
            ("1st stage", "x1st_stage"),
            ("_hidden", "x_hidden"),
            ("Temp (°C)", "Temp___C_"),
            ("class", "xClass"),
            ("", "x"),
            ("Rengård", "Rengård"),
        ],
    )
    def test_make_valid_name(self, raw, expected):
        assert make_valid_name(raw) == expected
        assert make_valid_name(raw).isidentifier()

    def test_unique_names(self):
        assert unique_names(["Value", "Flow", "Value", "Value"]) == [
            "Value",
            "Flow",
            "Value_1",
            "Value_2",
        ]
        assert unique_names(["A", "A_1", "A"]) == ["A", "A_1", "A_2"]


class TestOptionHelpers:
    def test_split_list_option(self):
        assert split_list_option("a|x, b|y") == ["a|x", "b|y"]
        assert split_list_option("a|x;b|y\nc|z") == ["a|x", "b|y", "c|z"]
        assert split_list_option('["\\\\\\\\S\\\\E|A"]') == ["\\\\S\\E|A"]
        assert split_list_option(["a", " "]) == ["a"]
        assert split_list_option(None) == []

    def test_as_bool_and_as_int(self):
        assert as_bool("yes") is True
        assert as_bool("0") is False
        assert as_bool("maybe", default=True) is True
        assert as_int("42", 1) == 42
        assert as_int("", 7) == 7
        assert as_int("x", 7) == 7

    def test_is_number(self):
        assert is_number(1) and is_number(2.5)
        assert not is_number(True)
        assert not is_number({"Name": "No Data", "Value": 248})
        assert not is_number(None)
