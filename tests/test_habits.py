"""Tests for habit detection and streaks."""

from datetime import date, datetime, timedelta, timezone

import pytest

from claude_stats.core import Streak
from claude_stats.habits import (
    calculate_streak,
    detect_all_patterns,
    detect_day_patterns,
    detect_focus_patterns,
    detect_time_patterns,
    longest_run,
    run_ending_at,
)

from conftest import NOW


def at(day: int, hour: int = 10, month: int = 1, year: int = 2025) -> datetime:
    return datetime(year, month, day, hour, 0, tzinfo=timezone.utc)


class TestTimePatterns:
    def test_no_sessions(self, store, now):
        assert detect_time_patterns(store, now) == []

    def test_morning_coder(self, store, make_session, now):
        for day in (10, 11, 13, 14):
            make_session("/home/dev/app", at(day, hour=9))

        patterns = detect_time_patterns(store, now)
        assert [p.name for p in patterns] == ["Morning Coder"]
        assert patterns[0].confidence == pytest.approx(95)
        assert patterns[0].frequency == 4
        assert patterns[0].metadata == {"hour_range": [6, 12]}
        assert patterns[0].last_occurrence == at(14, hour=9)

    def test_night_owl_wraps_midnight(self, store, make_session, now):
        make_session("/home/dev/app", at(10, hour=23))
        make_session("/home/dev/app", at(11, hour=2))
        make_session("/home/dev/app", at(12, hour=14))
        make_session("/home/dev/app", at(13, hour=15))

        names = {p.name: p for p in detect_time_patterns(store, now)}
        assert names["Night Owl"].frequency == 2
        assert names["Night Owl"].confidence == pytest.approx(50)
        assert names["Afternoon Achiever"].frequency == 2

    def test_ignores_sessions_outside_window(self, store, make_session, now):
        make_session("/home/dev/app", now - timedelta(days=45))
        assert detect_time_patterns(store, now) == []

    def test_buckets_in_the_clock_timezone(self, store, make_session):
        # 03:00 UTC is 12:00 in UTC+9
        tokyo = timezone(timedelta(hours=9))
        for day in (10, 11, 12):
            make_session("/home/dev/app", at(day, hour=3))

        utc_names = [p.name for p in detect_time_patterns(store, NOW)]
        tokyo_names = [p.name for p in detect_time_patterns(store, NOW.astimezone(tokyo))]
        assert utc_names == ["Night Owl"]
        assert tokyo_names == ["Afternoon Achiever"]


class TestDayPatterns:
    def test_weekend_warrior_is_boosted(self, store, make_session, now):
        # Jan 11 and 12 2025 are a Saturday and Sunday
        make_session("/home/dev/app", at(11))
        make_session("/home/dev/app", at(12))
        make_session("/home/dev/app", at(13))
        make_session("/home/dev/app", at(14))
        make_session("/home/dev/app", at(15))

        patterns = detect_day_patterns(store, now)
        weekend = next(p for p in patterns if p.name == "Weekend Warrior")
        assert weekend.frequency == 2
        assert weekend.confidence == pytest.approx(60)
        assert weekend.metadata == {"days": ["Saturday", "Sunday"]}
        assert "Weekday Grinder" not in [p.name for p in patterns]

    def test_weekday_grinder(self, store, make_session, now):
        for day in (13, 14, 15):
            make_session("/home/dev/app", at(day))

        patterns = detect_day_patterns(store, now)
        assert [p.name for p in patterns] == ["Weekday Grinder"]
        assert patterns[0].confidence == pytest.approx(95)


class TestFocusPatterns:
    def test_single_project_focus(self, store, make_session, now):
        make_session("/home/dev/alpha", at(13), minutes=90)
        make_session("/home/dev/beta", at(14), minutes=10)

        patterns = detect_focus_patterns(store, now)
        focus = next(p for p in patterns if p.name == "Single Project Focus")
        assert focus.description == "Deep focus on alpha"
        assert focus.confidence == pytest.approx(90)
        assert focus.metadata == {"projects": ["/home/dev/alpha"]}

    def test_zero_duration_yields_nothing(self, store, make_session, now):
        make_session("/home/dev/alpha", at(13), minutes=0)
        make_session("/home/dev/beta", at(14), minutes=0)
        assert detect_focus_patterns(store, now) == []

    def test_multi_project_juggler(self, store, make_session, now):
        for i in range(8):
            make_session(f"/home/dev/proj{i}", at(5 + i), minutes=30)

        patterns = {p.name: p for p in detect_focus_patterns(store, now)}
        juggler = patterns["Multi-Project Juggler"]
        assert juggler.description == "Active across 8 projects"
        assert juggler.confidence == pytest.approx(80)
        assert juggler.frequency == 8


class TestStreakHelpers:
    def test_run_ending_at(self):
        dates = [date(2025, 1, 15), date(2025, 1, 14), date(2025, 1, 13), date(2025, 1, 10)]
        assert run_ending_at(dates, date(2025, 1, 15)) == 3
        assert run_ending_at(dates, date(2025, 1, 14)) == 2
        assert run_ending_at(dates, date(2025, 1, 12)) == 0

    def test_longest_run(self):
        dates = [date(2025, 1, 15), date(2025, 1, 12), date(2025, 1, 11), date(2025, 1, 10)]
        assert longest_run(dates) == 3
        assert longest_run([date(2025, 1, 15)]) == 1
        assert longest_run([]) == 0


class TestCalculateStreak:
    def test_no_sessions(self, store, now):
        assert calculate_streak(store, now) == Streak()

    def test_current_streak_ending_today(self, store, make_session, now):
        for day in (13, 14, 15):
            make_session("/home/dev/app", at(day, hour=8))

        streak = calculate_streak(store, now)
        assert streak.current == 3
        assert streak.longest == 3
        assert streak.last_active == at(15, hour=8)

    def test_single_active_day(self, store, make_session, now):
        make_session("/home/dev/app", at(15, hour=8))
        streak = calculate_streak(store, now)
        assert streak.current == 1
        assert streak.longest == 1

    def test_broken_streak(self, store, make_session, now):
        for day in (10, 11, 12):
            make_session("/home/dev/app", at(day))

        streak = calculate_streak(store, now)
        assert streak.current == 0
        assert streak.longest == 3

    def test_multiple_sessions_per_day_count_once(self, store, make_session, now):
        make_session("/home/dev/app", at(14, hour=8))
        make_session("/home/dev/app", at(14, hour=20))
        make_session("/home/dev/app", at(15, hour=8))
        assert calculate_streak(store, now).current == 2


def test_detect_all_patterns(store, make_session, now):
    for day in (13, 14, 15):
        make_session("/home/dev/app", at(day, hour=9), minutes=30)

    report = detect_all_patterns(store, now)
    assert [p.name for p in report.time_patterns] == ["Morning Coder"]
    assert [p.name for p in report.day_patterns] == ["Weekday Grinder"]
    assert [p.name for p in report.focus_patterns] == ["Single Project Focus"]
    assert report.streak.current == 3
