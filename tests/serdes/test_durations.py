"""Tests for duration text formats."""

from datetime import timedelta

import pytest

from dataapi.core.types import TableDuration
from dataapi.serdes import durations


def iso(value: timedelta) -> str:
    return durations.format_iso(*durations.timedelta_parts(value))


def compact(value: timedelta) -> str:
    return durations.format_compact(*durations.timedelta_parts(value))


class TestFormatting:
    """timedelta and TableDuration rendering."""

    @pytest.mark.parametrize(
        "value, iso_text, compact_text",
        [
            (timedelta(hours=1, minutes=30), "PT1H30M", "1h30m"),
            (timedelta(days=1), "PT24H", "24h"),
            (timedelta(seconds=-90), "-PT1M30S", "-1m30s"),
            (timedelta(seconds=1.5), "PT1.5S", "1s500ms"),
            (timedelta(microseconds=7), "PT0.000007S", "7us"),
            (timedelta(0), "PT0S", "0s"),
        ],
    )
    def test_timedelta(self, value, iso_text, compact_text):
        assert iso(value) == iso_text
        assert compact(value) == compact_text

    def test_table_duration(self):
        parts = durations.table_duration_parts(TableDuration(14, 3, 3_600_000_000_000))
        assert durations.format_iso(*parts) == "P1Y2M3DT1H"
        assert durations.format_compact(*parts) == "1y2mo3d1h"

    def test_negative_table_duration(self):
        parts = durations.table_duration_parts(TableDuration(months=-2, days=-1))
        assert durations.format_iso(*parts) == "-P2M1D"


class TestParsing:
    """parse_duration accepts both formats."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("PT1H30M", (False, 0, 0, 90 * durations.NANOS_PER_MINUTE)),
            ("-PT1M30S", (True, 0, 0, 90 * durations.NANOS_PER_SECOND)),
            ("P1Y2M3DT1H", (False, 14, 3, durations.NANOS_PER_HOUR)),
            ("P2W", (False, 0, 14, 0)),
            ("PT0,5S", (False, 0, 0, 500 * durations.NANOS_PER_MILLI)),
            ("pt1h", (False, 0, 0, durations.NANOS_PER_HOUR)),
            ("1h30m", (False, 0, 0, 90 * durations.NANOS_PER_MINUTE)),
            ("1y2mo3d", (False, 14, 3, 0)),
            ("1s500ms", (False, 0, 0, 1500 * durations.NANOS_PER_MILLI)),
            ("2us3ns", (False, 0, 0, 2003)),
            ("-1w", (True, 0, 7, 0)),
        ],
    )
    def test_parse(self, text, expected):
        assert durations.parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "P", "PT", "1x", "h1", "P1H", "1h 30m"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            durations.parse_duration(text)


class TestBridges:
    """Conversions between parts and Python values."""

    def test_to_timedelta(self):
        assert durations.to_timedelta(*durations.parse_duration("P1DT2H")) == timedelta(days=1, hours=2)
        assert durations.to_timedelta(*durations.parse_duration("-1m30s")) == timedelta(seconds=-90)

    def test_to_timedelta_truncates_nanoseconds(self):
        assert durations.to_timedelta(False, 0, 0, 1_999) == timedelta(microseconds=1)

    def test_to_timedelta_rejects_months(self):
        with pytest.raises(ValueError, match="months"):
            durations.to_timedelta(*durations.parse_duration("1mo"))

    def test_to_table_duration(self):
        assert durations.to_table_duration(*durations.parse_duration("-P1M2D")) == TableDuration(
            months=-1, days=-2
        )
