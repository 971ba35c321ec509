"""
Tests for utils.time module - UTC timestamp utilities.

Uses freezegun for deterministic time.
"""

from datetime import UTC, datetime

from freezegun import freeze_time

from bookshelf_migrate.utils.time import utc_now, utc_timestamp


class TestUtcNow:
    """Test utc_now() function."""

    def test_returns_timezone_aware_utc(self):
        result = utc_now()
        assert isinstance(result, datetime)
        assert result.tzinfo == UTC

    @freeze_time("2025-11-02 08:30:45")
    def test_frozen_time(self):
        result = utc_now()
        assert (result.year, result.month, result.day) == (2025, 11, 2)
        assert (result.hour, result.minute, result.second) == (8, 30, 45)


class TestUtcTimestamp:
    """Test utc_timestamp() function."""

    @freeze_time("2025-11-02 08:30:45")
    def test_format_is_iso8601_with_z_suffix(self):
        assert utc_timestamp() == "2025-11-02T08:30:45Z"

    @freeze_time("2025-11-02 08:30:45.987654")
    def test_drops_microseconds(self):
        assert utc_timestamp() == "2025-11-02T08:30:45Z"

    def test_length(self):
        # YYYY-MM-DDTHH:MM:SSZ
        assert len(utc_timestamp()) == 20
