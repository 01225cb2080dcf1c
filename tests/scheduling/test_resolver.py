"""Tests for reminder and purge rule resolution."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from wellwisher.core.errors import ResolutionError
from wellwisher.scheduling.resolver import (
    FiringRule,
    OneShotRule,
    ReminderRule,
    resolve_purge,
    resolve_reminder,
)


class TestResolvePurge:
    """Test purge instant derivation."""

    def test_thirty_days_after_archive(self):
        """2024-01-01T00:00Z archives purge at exactly 2024-01-31T00:00Z."""
        archived_at = datetime(2024, 1, 1, tzinfo=UTC)
        assert resolve_purge(archived_at) == datetime(2024, 1, 31, tzinfo=UTC)

    def test_rounds_up_to_next_minute(self):
        """Sub-minute remainders never make the purge early."""
        archived_at = datetime(2024, 1, 1, 0, 0, 30, tzinfo=UTC)
        assert resolve_purge(archived_at) == datetime(2024, 1, 31, 0, 1, tzinfo=UTC)

    def test_whole_minute_unchanged(self):
        archived_at = datetime(2024, 3, 5, 14, 27, tzinfo=UTC)
        assert resolve_purge(archived_at) == datetime(2024, 4, 4, 14, 27, tzinfo=UTC)

    def test_custom_retention(self):
        archived_at = datetime(2024, 1, 1, tzinfo=UTC)
        assert resolve_purge(archived_at, retention_days=7) == datetime(2024, 1, 8, tzinfo=UTC)

    def test_naive_treated_as_utc(self):
        assert resolve_purge(datetime(2024, 1, 1)) == datetime(2024, 1, 31, tzinfo=UTC)

    def test_other_offset_normalized_to_utc(self):
        archived_at = datetime(2024, 1, 1, 5, 45, tzinfo=ZoneInfo("Asia/Kathmandu"))
        result = resolve_purge(archived_at)
        assert result == datetime(2024, 1, 31, tzinfo=UTC)
        assert result.utcoffset() == timedelta(0)

    def test_missing_raises(self):
        with pytest.raises(ResolutionError, match="archived_at is missing"):
            resolve_purge(None)

    def test_malformed_raises(self):
        with pytest.raises(ResolutionError):
            resolve_purge("2024-01-01")  # type: ignore[arg-type]


class TestResolveReminder:
    """Test reminder rule derivation from the message date."""

    def test_day_and_month_from_message_date(self):
        rule = resolve_reminder(datetime(2023, 6, 10, 15, 30, tzinfo=UTC), "UTC")
        assert (rule.day, rule.month, rule.hour, rule.minute) == (10, 6, 7, 0)
        assert rule.zone == "UTC"

    def test_calendar_day_read_in_utc(self):
        """20:00Z on Jun 9 is Jun 10 in Kathmandu, but the day stays Jun 9."""
        rule = resolve_reminder(datetime(2024, 6, 9, 20, 0, tzinfo=UTC), "Asia/Kathmandu")
        assert (rule.day, rule.month) == (9, 6)
        assert rule.zone == "Asia/Kathmandu"

    def test_late_utc_date_fires_at_seven_local_same_day(self):
        rule = resolve_reminder(datetime(2024, 6, 9, 20, 0, tzinfo=UTC), "Asia/Kathmandu")
        now = datetime(2024, 1, 1, tzinfo=UTC)
        assert rule.first_fire(now) == datetime(2024, 6, 9, 1, 15, tzinfo=UTC)

    def test_offset_date_normalized_to_utc_day(self):
        """Jun 10 02:00 at +05:45 is Jun 9 20:15Z."""
        message_date = datetime(2024, 6, 10, 2, 0, tzinfo=ZoneInfo("Asia/Kathmandu"))
        rule = resolve_reminder(message_date, "Asia/Kathmandu")
        assert (rule.day, rule.month) == (9, 6)

    def test_custom_time_of_day(self):
        rule = resolve_reminder(datetime(2024, 6, 10, tzinfo=UTC), "UTC", hour=9, minute=30)
        assert rule.cron_expression == "30 9 10 6 *"

    def test_missing_raises(self):
        with pytest.raises(ResolutionError, match="message_date is missing"):
            resolve_reminder(None, "UTC")

    def test_malformed_raises(self):
        with pytest.raises(ResolutionError):
            resolve_reminder("June 10", "UTC")  # type: ignore[arg-type]

    def test_unknown_zone_raises(self):
        with pytest.raises(ResolutionError, match="unknown time zone"):
            resolve_reminder(datetime(2024, 6, 10, tzinfo=UTC), "Mars/Olympus_Mons")


class TestReminderRule:
    """Test yearly firing instants."""

    def test_implements_protocol(self):
        assert isinstance(ReminderRule(day=1, month=1), FiringRule)
        assert isinstance(OneShotRule(datetime(2024, 1, 1, tzinfo=UTC)), FiringRule)

    def test_first_fire_later_this_year(self):
        rule = ReminderRule(day=10, month=6, zone="UTC")
        now = datetime(2024, 1, 1, tzinfo=UTC)
        assert rule.first_fire(now) == datetime(2024, 6, 10, 7, 0, tzinfo=UTC)

    def test_first_fire_rolls_to_next_year(self):
        rule = ReminderRule(day=10, month=6, zone="UTC")
        now = datetime(2024, 6, 10, 7, 0, tzinfo=UTC)
        assert rule.first_fire(now) == datetime(2025, 6, 10, 7, 0, tzinfo=UTC)

    def test_next_fire_is_one_year_later(self):
        rule = ReminderRule(day=10, month=6, zone="UTC")
        assert rule.next_fire(datetime(2024, 6, 10, 7, tzinfo=UTC)) == datetime(2025, 6, 10, 7, tzinfo=UTC)

    def test_fires_at_local_seven_in_zone(self):
        """07:00 Kathmandu is 01:15 UTC."""
        rule = ReminderRule(day=10, month=6, zone="Asia/Kathmandu")
        fire_at = rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC))
        assert fire_at == datetime(2024, 6, 10, 1, 15, tzinfo=UTC)

    def test_result_is_utc(self):
        rule = ReminderRule(day=10, month=6, zone="Asia/Kathmandu")
        assert rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC)).tzinfo == UTC


class TestShortMonthClamp:
    """Days some years lack fire on the month's last day."""

    def test_feb_29_clamps_to_feb_28_in_common_year(self):
        rule = ReminderRule(day=29, month=2, zone="UTC")
        assert rule.clamped
        assert rule.first_fire(datetime(2025, 1, 1, tzinfo=UTC)) == datetime(2025, 2, 28, 7, tzinfo=UTC)

    def test_feb_29_fires_on_feb_29_in_leap_year(self):
        rule = ReminderRule(day=29, month=2, zone="UTC")
        assert rule.first_fire(datetime(2027, 6, 1, tzinfo=UTC)) == datetime(2028, 2, 29, 7, tzinfo=UTC)

    def test_feb_29_recurs_every_year(self):
        rule = ReminderRule(day=29, month=2, zone="UTC")
        first = rule.first_fire(datetime(2025, 1, 1, tzinfo=UTC))
        second = rule.next_fire(first)
        third = rule.next_fire(second)
        assert [d.date().isoformat() for d in (first, second, third)] == [
            "2025-02-28",
            "2026-02-28",
            "2027-02-28",
        ]

    def test_leap_day_message_date_resolves(self):
        rule = resolve_reminder(datetime(2024, 2, 29, 12, tzinfo=UTC), "UTC")
        assert (rule.day, rule.month) == (29, 2)
        assert rule.first_fire(datetime(2024, 3, 1, tzinfo=UTC)) == datetime(2025, 2, 28, 7, tzinfo=UTC)

    def test_impossible_day_clamps(self):
        """Apr 31 fires on Apr 30."""
        rule = ReminderRule(day=31, month=4, zone="UTC")
        assert rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC)) == datetime(2024, 4, 30, 7, tzinfo=UTC)

    def test_full_months_not_clamped(self):
        rule = ReminderRule(day=31, month=1, zone="UTC")
        assert not rule.clamped
        assert rule.cron_expression == "0 7 31 1 *"

    @pytest.mark.parametrize("month", range(1, 13))
    def test_every_day_of_every_month_resolves(self, month):
        now = datetime(2025, 1, 1, tzinfo=UTC)
        for day in range(1, 32):
            fire_at = ReminderRule(day=day, month=month, zone="Asia/Kathmandu").first_fire(now)
            assert fire_at > now

    def test_out_of_range_rejected(self):
        with pytest.raises(ResolutionError):
            ReminderRule(day=32, month=1)
        with pytest.raises(ResolutionError):
            ReminderRule(day=1, month=13)
        with pytest.raises(ResolutionError):
            ReminderRule(day=1, month=1, hour=24)


class TestDaylightSaving:
    """Local time of day is stable across DST transitions."""

    def test_same_local_hour_either_side_of_transition(self):
        winter = ReminderRule(day=15, month=1, zone="America/New_York")
        summer = ReminderRule(day=15, month=7, zone="America/New_York")
        now = datetime(2024, 1, 1, tzinfo=UTC)
        assert winter.first_fire(now) == datetime(2024, 1, 15, 12, tzinfo=UTC)
        assert summer.first_fire(now) == datetime(2024, 7, 15, 11, tzinfo=UTC)

    def test_on_transition_day(self):
        """Mar 10 2024 is the US spring-forward day; 07:00 EDT is 11:00Z."""
        rule = ReminderRule(day=10, month=3, zone="America/New_York")
        assert rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC)) == datetime(2024, 3, 10, 11, tzinfo=UTC)

    def test_recurrence_across_years_keeps_local_time(self):
        rule = ReminderRule(day=31, month=3, zone="Europe/London")
        first = rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC))
        second = rule.next_fire(first)
        for fire_at in (first, second):
            local = fire_at.astimezone(ZoneInfo("Europe/London"))
            assert (local.hour, local.minute) == (7, 0)


class TestOneShotRule:
    def test_fires_once(self):
        at = datetime(2024, 1, 31, tzinfo=UTC)
        rule = OneShotRule(at)
        assert rule.first_fire(datetime(2024, 1, 1, tzinfo=UTC)) == at
        assert rule.next_fire(at) is None

    def test_past_instant_kept(self):
        """A past instant is returned as-is; the backend fires it immediately."""
        at = datetime(2020, 1, 1, tzinfo=UTC)
        assert OneShotRule(at).first_fire(datetime(2024, 1, 1, tzinfo=UTC)) == at
