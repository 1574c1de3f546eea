"""Tests for date/time parsing of new doses."""

from __future__ import annotations

from datetime import datetime

import pytest

from doselog.core.errors import ConfigurationError
from doselog.domains.doses.domain_logic.timestamps import load_timezone, parse_dose_timestamp

from conftest import TORONTO, UTC


def _parse(date_text, time_text, zone=UTC, now=None):
    now = now or datetime(2026, 1, 4, 10, 15, 42, tzinfo=UTC)
    return parse_dose_timestamp(date_text, time_text, zone, now)


class TestDates:
    @pytest.mark.parametrize(
        "text",
        ["2025/12/31", "2025-12-31", "12/31/2025", "12-31-2025", "20251231"],
    )
    def test_full_date_layouts(self, text):
        assert _parse(text, "15:04") == datetime(2025, 12, 31, 15, 4, tzinfo=UTC)

    def test_month_day_gets_current_year(self):
        assert _parse("12-25", "08:00").date() == datetime(2026, 12, 25).date()

    def test_compact_month_day_gets_current_year(self):
        assert _parse("0115", "08:00").date() == datetime(2026, 1, 15).date()

    def test_empty_date_is_today(self):
        assert _parse("", "08:00") == datetime(2026, 1, 4, 8, 0, tzinfo=UTC)

    def test_today_is_taken_in_target_zone(self):
        now = datetime(2026, 1, 4, 2, 0, tzinfo=UTC)
        parsed = _parse("", "08:00", zone=TORONTO, now=now)
        assert parsed.date() == datetime(2026, 1, 3).date()
        assert parsed.tzinfo is TORONTO

    def test_unparseable_date(self):
        with pytest.raises(ConfigurationError, match="Failed to parse date"):
            _parse("yesterday", "")


class TestTimes:
    @pytest.mark.parametrize(
        "text,hour,minute",
        [
            ("15:04", 15, 4),
            ("3:04pm", 15, 4),
            ("3:04PM", 15, 4),
            ("9:30am", 9, 30),
            ("1504", 15, 4),
        ],
    )
    def test_time_layouts(self, text, hour, minute):
        parsed = _parse("2026/01/02", text)
        assert (parsed.hour, parsed.minute) == (hour, minute)

    def test_empty_time_is_current_minute(self):
        parsed = _parse("2026/01/02", "")
        assert parsed == datetime(2026, 1, 2, 10, 15, tzinfo=UTC)

    def test_unparseable_time(self):
        with pytest.raises(ConfigurationError, match="Failed to parse time"):
            _parse("", "noon")


class TestLoadTimezone:
    def test_known_zone(self):
        assert load_timezone("Europe/Berlin").key == "Europe/Berlin"

    def test_unknown_zone(self):
        with pytest.raises(ConfigurationError, match="Mars/Olympus"):
            load_timezone("Mars/Olympus")

    def test_empty_zone(self):
        with pytest.raises(ConfigurationError):
            load_timezone("")
