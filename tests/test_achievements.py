"""Tests for achievement rules and unlock tracking."""

from datetime import datetime, timedelta, timezone

import pytest

from claude_stats import achievements
from claude_stats.achievements import (
    cache_hit_ratio,
    check_cost_achievements,
    check_milestone_achievements,
    check_productivity_achievements,
    check_skill_achievements,
    check_streak_achievements,
    current_streak_days,
    get_new_achievements,
    near_misses,
    skill_slug,
)
from claude_stats.core import SkillProficiency

from conftest import NOW


def ids(checks):
    return [c.achievement.id for c in checks if c.achieved]


def days_ago(n: int, hour: int = 10) -> datetime:
    return (NOW - timedelta(days=n)).replace(hour=hour)


class TestStreakAchievements:
    def test_no_sessions(self, store, now):
        assert check_streak_achievements(store, now) == []
        assert current_streak_days(store, now) == 0

    def test_three_day_streak(self, store, make_session, now):
        for n in (2, 1, 0):
            make_session("/home/dev/app", days_ago(n))

        checks = check_streak_achievements(store, now)
        assert ids(checks) == ["streak_3"]
        unlocked = checks[0].achievement
        assert unlocked.title == "3-Day Streak"
        assert unlocked.icon == "🔥"
        assert unlocked.metadata == {"streak_days": 3}
        assert unlocked.unlocked_at == now

    def test_near_miss_within_two_days(self, store, make_session, now):
        for n in range(5):
            make_session("/home/dev/app", days_ago(n))

        progress = near_misses(store, now)
        assert len(progress) == 1
        assert progress[0].current == 5
        assert progress[0].target == 7
        assert progress[0].percentage == pytest.approx(5 / 7 * 100)

    def test_streak_counts_back_from_most_recent_active_day(self, store, make_session, now):
        for n in (12, 11, 10):
            make_session("/home/dev/app", days_ago(n))
        assert current_streak_days(store, now) == 3
        assert ids(check_streak_achievements(store, now)) == ["streak_3"]


class TestSkillAchievements:
    def _fake(self, monkeypatch, *levels):
        skills = [
            SkillProficiency(
                skill=name, category="language", level=level, proficiency=score,
                usage_count=100, first_used=NOW, last_used=NOW, days_since_first_use=0,
                consistency=100, depth=100,
            )
            for name, level, score in levels
        ]
        monkeypatch.setattr(achievements, "analyze_skill_proficiency", lambda *a, **kw: skills)

    def test_level_specific_ids(self, store, now, monkeypatch):
        self._fake(
            monkeypatch,
            ("Claude Code", "expert", 85),
            ("Python", "advanced", 70),
            ("Rust", "intermediate", 40),
        )
        checks = check_skill_achievements(store, now)
        assert ids(checks) == ["skill_expert_claude_code", "skill_advanced_python"]
        assert checks[0].achievement.title == "Claude Code Expert"
        assert checks[0].achievement.metadata == {"skill": "Claude Code", "proficiency": 85, "usage_count": 100}

    def test_slug(self):
        assert skill_slug("Claude Code") == "claude_code"
        assert skill_slug("Next.js") == "next.js"


class TestCostAchievements:
    def test_no_cache_data(self, store, now, make_project):
        make_project("/p", cache_read_tokens=500)
        assert cache_hit_ratio(store) is None
        assert check_cost_achievements(store, now) == []

    def test_ninety_percent_unlocks_both_tiers(self, store, now, make_project):
        make_project("/p", cache_read_tokens=900, cache_creation_tokens=100)
        checks = check_cost_achievements(store, now)
        assert ids(checks) == ["cache_master", "cache_optimizer"]
        assert checks[0].achievement.metadata == {"hit_ratio": 90}

    def test_eighty_five_percent(self, store, now, make_project):
        make_project("/p", cache_read_tokens=850, cache_creation_tokens=150)
        assert ids(check_cost_achievements(store, now)) == ["cache_optimizer"]


class TestProductivityAchievements:
    def test_session_and_prompt_milestones(self, store, make_session, now):
        for n in range(10):
            make_session("/home/dev/app", days_ago(n * 2), prompts=10)

        assert ids(check_productivity_achievements(store, now)) == ["sessions_10", "prompts_100"]

    def test_nothing_below_thresholds(self, store, make_session, now):
        make_session("/home/dev/app", now, prompts=99)
        assert check_productivity_achievements(store, now) == []


class TestMilestoneAchievements:
    def test_days_since_first_session(self, store, make_session, now):
        make_session("/home/dev/app", now - timedelta(days=8))
        assert ids(check_milestone_achievements(store, now)) == ["milestone_1_days", "milestone_7_days"]

    def test_weekend_warrior(self, store, make_session, now):
        saturdays = [datetime(2025, 1, 11, 10, tzinfo=timezone.utc) - timedelta(weeks=w) for w in range(5)]
        for saturday in saturdays:
            make_session("/home/dev/app", saturday)
            make_session("/home/dev/app", saturday + timedelta(days=1))

        checks = check_milestone_achievements(store, now)
        assert "weekend_warrior" in ids(checks)
        warrior = next(c.achievement for c in checks if c.achieved and c.achievement.id == "weekend_warrior")
        assert warrior.metadata == {"weekend_count": 10}


class TestGetNewAchievements:
    def test_empty_store(self, store, now):
        assert get_new_achievements(store, now) == []

    def test_saved_achievements_are_not_new_again(self, store, make_session, now):
        for n in (2, 1, 0):
            make_session("/home/dev/app", days_ago(n))

        first = get_new_achievements(store, now)
        assert {"streak_3", "milestone_1_days"} <= {a.id for a in first}
        for a in first:
            store.save_achievement(a)

        assert get_new_achievements(store, now + timedelta(hours=1)) == []

    def test_unsaved_achievements_stay_new(self, store, make_session, now):
        for n in (2, 1, 0):
            make_session("/home/dev/app", days_ago(n))

        first = {a.id for a in get_new_achievements(store, now)}
        second = {a.id for a in get_new_achievements(store, now)}
        assert first
        assert first == second
