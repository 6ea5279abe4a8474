from datetime import datetime, time, timezone

from leadflow.services.night_window import (
    in_window,
    is_quiet_now,
    minutes_until_end,
    parse_time,
    tenant_local_time,
)


def at(hour, minute=0):
    return datetime(2026, 3, 10, hour, minute)


class TestParseTime:
    def test_hh_mm(self):
        assert parse_time("22:00") == time(22, 0)
        assert parse_time(" 8:05 ") == time(8, 5)

    def test_invalid_values(self):
        assert parse_time(None) is None
        assert parse_time("") is None
        assert parse_time("25:00") is None
        assert parse_time("ночь") is None

    def test_time_passthrough(self):
        assert parse_time(time(7, 30)) == time(7, 30)


class TestInWindow:
    def test_late_evening_inside_wrapping_window(self):
        assert in_window(at(23, 30), "22:00", "08:00") is True

    def test_morning_outside_wrapping_window(self):
        assert in_window(at(9, 0), "22:00", "08:00") is False

    def test_early_morning_inside_wrapping_window(self):
        assert in_window(at(2, 0), "22:00", "08:00") is True

    def test_end_is_exclusive(self):
        assert in_window(at(8, 0), "22:00", "08:00") is False
        assert in_window(at(22, 0), "22:00", "08:00") is True

    def test_same_day_window(self):
        assert in_window(at(10, 0), "09:00", "17:00") is True
        assert in_window(at(17, 0), "09:00", "17:00") is False
        assert in_window(at(8, 59), "09:00", "17:00") is False

    def test_equal_bounds_cover_whole_day(self):
        assert in_window(at(12, 0), "00:00", "00:00") is True

    def test_missing_bound_means_no_window(self):
        assert in_window(at(23, 30), None, "08:00") is False
        assert in_window(at(23, 30), "22:00", "") is False


class TestMinutesUntilEnd:
    def test_end_is_tomorrow(self):
        assert minutes_until_end(at(23, 30), "08:00") == 510

    def test_end_is_later_today(self):
        assert minutes_until_end(at(2, 0), "08:00") == 360

    def test_never_negative(self):
        assert minutes_until_end(at(8, 0), "08:00") == 1440
        assert minutes_until_end(at(7, 59), "08:00") == 1

    def test_partial_minute_rounds_up(self):
        assert minutes_until_end(datetime(2026, 3, 11, 7, 59, 45), "08:00") == 1
        assert minutes_until_end(datetime(2026, 3, 10, 23, 29, 30), "08:00") == 511

    def test_invalid_end(self):
        assert minutes_until_end(at(23, 30), "x") is None


class TestTenantLocalTime:
    def test_naive_time_is_local(self):
        now = at(23, 30)
        assert tenant_local_time(now, None) == now

    def test_converts_to_tenant_zone(self):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
        local = tenant_local_time(now, "Asia/Tokyo")
        assert (local.hour, local.minute) == (3, 0)

    def test_quiet_now_uses_tenant_zone(self):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
        assert is_quiet_now(now, True, "22:00", "08:00", "Asia/Tokyo") is True
        assert is_quiet_now(now, False, "22:00", "08:00", "Asia/Tokyo") is False
