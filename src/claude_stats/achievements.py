"""Achievement rules and unlock tracking.

Five rule families each return AchievementChecks for the current state of
the store. A check is either achieved (with the Achievement to unlock) or a
near miss carrying progress toward a threshold. Unlocks are persisted by id,
so evaluating the same state twice yields nothing new the second time.
"""

import logging
import re
from datetime import datetime

from .core import (
    Achievement,
    AchievementCheck,
    AchievementProgress,
    SkillDefinition,
    from_iso,
    resolve_now,
)
from .habits import active_dates, run_ending_at
from .skills import analyze_skill_proficiency
from .store import AnalyticsStore, row_to_session

logger = logging.getLogger(__name__)

STREAK_MILESTONES = (
    (3, "3-Day Streak", "🔥"),
    (7, "Week Warrior", "⚡"),
    (14, "Two Week Champion", "💪"),
    (30, "Month Master", "🏆"),
    (60, "60-Day Legend", "👑"),
    (90, "90-Day Elite", "💎"),
    (180, "Half-Year Hero", "🌟"),
    (365, "Year of Excellence", "🎖️"),
)

SESSION_MILESTONES = (
    (10, "Getting Started", "🌱"),
    (50, "Regular User", "📊"),
    (100, "Power User", "⚡"),
    (250, "Super User", "🚀"),
    (500, "Elite Coder", "💎"),
    (1000, "Master Developer", "👑"),
)

PROMPT_MILESTONES = (
    (100, "Curious Explorer", "🔍"),
    (500, "Active Learner", "📖"),
    (1000, "Dedicated Developer", "💻"),
    (5000, "Prompt Master", "🎯"),
    (10000, "Prompt Legend", "🏅"),
)

CALENDAR_MILESTONES = (
    (1, "Welcome Aboard", "👋"),
    (7, "One Week In", "📅"),
    (30, "One Month Strong", "📆"),
    (90, "Three Month Veteran", "🎖️"),
    (180, "Six Month Pro", "⭐"),
    (365, "One Year Anniversary", "🎂"),
)

WEEKEND_SESSION_TARGET = 10
STREAK_NEAR_MISS_DAYS = 2


def skill_slug(name: str) -> str:
    return re.sub(r"\s+", "_", name.lower())


def _unlocked(now: datetime, **kwargs) -> AchievementCheck:
    return AchievementCheck(achieved=True, achievement=Achievement(unlocked_at=now, **kwargs))


def current_streak_days(store: AnalyticsStore, now: datetime | None = None) -> int:
    """Consecutive active days ending at the most recent active date."""
    now = resolve_now(now)
    sessions = [row_to_session(r) for r in store.query("SELECT * FROM sessions")]
    dates = active_dates(sessions, now.tzinfo)
    if not dates:
        return 0
    return run_ending_at(dates, dates[0])


def check_streak_achievements(store: AnalyticsStore, now: datetime | None = None) -> list[AchievementCheck]:
    now = resolve_now(now)
    streak = current_streak_days(store, now)

    results = []
    for days, title, icon in STREAK_MILESTONES:
        if streak >= days:
            results.append(_unlocked(
                now,
                id=f"streak_{days}",
                category="streak",
                title=title,
                description=f"Maintained a {days}-day coding streak!",
                icon=icon,
                metadata={"streak_days": streak},
            ))
        elif streak >= days - STREAK_NEAR_MISS_DAYS:
            results.append(AchievementCheck(
                achieved=False,
                progress=AchievementProgress(
                    current=streak,
                    target=days,
                    percentage=streak / days * 100,
                ),
            ))
    return results


def check_skill_achievements(
    store: AnalyticsStore,
    now: datetime | None = None,
    taxonomy: list[SkillDefinition] | None = None,
) -> list[AchievementCheck]:
    now = resolve_now(now)
    results = []
    for skill in analyze_skill_proficiency(store, taxonomy, now):
        metadata = {
            "skill": skill.skill,
            "proficiency": skill.proficiency,
            "usage_count": skill.usage_count,
        }
        slug = skill_slug(skill.skill)
        if skill.level == "expert":
            results.append(_unlocked(
                now,
                id=f"skill_expert_{slug}",
                category="skill",
                title=f"{skill.skill} Expert",
                description=f"Achieved expert level proficiency in {skill.skill}!",
                icon="🎓",
                metadata=metadata,
            ))
        elif skill.level == "advanced":
            results.append(_unlocked(
                now,
                id=f"skill_advanced_{slug}",
                category="skill",
                title=f"{skill.skill} Advanced",
                description=f"Reached advanced level in {skill.skill}!",
                icon="📚",
                metadata=metadata,
            ))
    return results


def cache_hit_ratio(store: AnalyticsStore) -> float | None:
    """Cache reads as a percentage of cache reads plus writes.

    Only projects that wrote to the cache count. Returns None when there is
    nothing to measure.
    """
    row = store.query_one(
        """
        SELECT
            SUM(cache_read_tokens) AS cache_read,
            SUM(cache_creation_tokens) AS cache_creation
        FROM projects
        WHERE cache_creation_tokens > 0
        """
    )
    if not row or not row["cache_read"] or not row["cache_creation"]:
        return None
    return row["cache_read"] / (row["cache_read"] + row["cache_creation"]) * 100


def check_cost_achievements(store: AnalyticsStore, now: datetime | None = None) -> list[AchievementCheck]:
    now = resolve_now(now)
    ratio = cache_hit_ratio(store)
    if ratio is None:
        return []

    results = []
    if ratio >= 90:
        results.append(_unlocked(
            now,
            id="cache_master",
            category="cost",
            title="Cache Master",
            description="Achieved 90%+ cache hit ratio!",
            icon="💰",
            metadata={"hit_ratio": round(ratio)},
        ))
    if ratio >= 80:
        results.append(_unlocked(
            now,
            id="cache_optimizer",
            category="cost",
            title="Cache Optimizer",
            description="Achieved 80%+ cache hit ratio!",
            icon="💸",
            metadata={"hit_ratio": round(ratio)},
        ))
    return results


def check_productivity_achievements(store: AnalyticsStore, now: datetime | None = None) -> list[AchievementCheck]:
    now = resolve_now(now)
    row = store.query_one(
        "SELECT COUNT(*) AS sessions, COALESCE(SUM(prompt_count), 0) AS prompts FROM sessions"
    )
    sessions, prompts = row["sessions"], row["prompts"]

    results = []
    for count, title, icon in SESSION_MILESTONES:
        if sessions >= count:
            results.append(_unlocked(
                now,
                id=f"sessions_{count}",
                category="productivity",
                title=title,
                description=f"Completed {count} sessions!",
                icon=icon,
                metadata={"session_count": sessions},
            ))
    for count, title, icon in PROMPT_MILESTONES:
        if prompts >= count:
            results.append(_unlocked(
                now,
                id=f"prompts_{count}",
                category="productivity",
                title=title,
                description=f"Sent {count} prompts!",
                icon=icon,
                metadata={"prompt_count": prompts},
            ))
    return results


def check_milestone_achievements(store: AnalyticsStore, now: datetime | None = None) -> list[AchievementCheck]:
    now = resolve_now(now)
    results = []

    row = store.query_one("SELECT MIN(start_time) AS first_session FROM sessions")
    first_session = from_iso(row["first_session"]) if row else None
    if first_session:
        days_since_start = (now - first_session).days
        for days, title, icon in CALENDAR_MILESTONES:
            if days_since_start >= days:
                results.append(_unlocked(
                    now,
                    id=f"milestone_{days}_days",
                    category="milestone",
                    title=title,
                    description=f"{days} days since your first session!",
                    icon=icon,
                    metadata={"days_since_start": days_since_start},
                ))

    weekend_count = sum(
        1
        for r in store.query("SELECT start_time FROM sessions")
        if from_iso(r["start_time"]).astimezone(now.tzinfo).weekday() >= 5
    )
    if weekend_count >= WEEKEND_SESSION_TARGET:
        results.append(_unlocked(
            now,
            id="weekend_warrior",
            category="milestone",
            title="Weekend Warrior",
            description="Completed 10+ weekend coding sessions!",
            icon="🏖️",
            metadata={"weekend_count": weekend_count},
        ))

    return results


def evaluate_all(
    store: AnalyticsStore,
    now: datetime | None = None,
    taxonomy: list[SkillDefinition] | None = None,
) -> list[AchievementCheck]:
    """Run every rule family and return all checks, achieved or not."""
    now = resolve_now(now)
    return [
        *check_streak_achievements(store, now),
        *check_skill_achievements(store, now, taxonomy),
        *check_cost_achievements(store, now),
        *check_productivity_achievements(store, now),
        *check_milestone_achievements(store, now),
    ]


def get_new_achievements(
    store: AnalyticsStore,
    now: datetime | None = None,
    taxonomy: list[SkillDefinition] | None = None,
) -> list[Achievement]:
    """Achievements satisfied now that have not been unlocked before.

    Nothing is persisted; callers save what they want to keep.
    """
    unlocked = store.unlocked_achievement_ids()
    new = [
        check.achievement
        for check in evaluate_all(store, now, taxonomy)
        if check.achieved and check.achievement and check.achievement.id not in unlocked
    ]
    logger.debug("%d new achievements (%d already unlocked)", len(new), len(unlocked))
    return new


def near_misses(store: AnalyticsStore, now: datetime | None = None) -> list[AchievementProgress]:
    return [c.progress for c in check_streak_achievements(store, now) if c.progress]
