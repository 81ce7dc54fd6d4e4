"""Skill proficiency scoring.

Skills are inferred from project paths via the taxonomy. Each project's
session count, first/last session and mean prompts per session feed into a
per-skill aggregate, which is scored as:

    0.4 * usage + 0.2 * time + 0.2 * consistency + 0.2 * depth

where usage is logarithmic in session count, time grows linearly over a year
of use, consistency mixes recency and regularity, and depth is the mean
prompt count scaled so that ten prompts per session scores 100. Across the
projects of one skill depth is folded pairwise, each new project averaged
with the running value, so later projects weigh more.
"""

import logging
import math
from datetime import datetime

from .core import SkillDefinition, SkillProficiency, from_iso, resolve_now
from .store import AnalyticsStore
from .taxonomy import DEFAULT_TAXONOMY, detect_skills, get_skill_definition

logger = logging.getLogger(__name__)

LEVEL_THRESHOLDS = (
    (80, "expert"),
    (60, "advanced"),
    (30, "intermediate"),
)

# Session counts used for milestone hints. These are proxies and do not
# track the composite score.
MILESTONE_SESSIONS = {
    "beginner": (10, "intermediate"),
    "intermediate": (50, "advanced"),
    "advanced": (150, "expert"),
}


def calculate_proficiency_score(
    usage_count: int,
    days_since_first_use: int,
    consistency: float,
    depth: float,
) -> float:
    usage_score = min(100, math.log10(usage_count + 1) * 40)
    time_score = min(100, (days_since_first_use / 365) * 50)
    return usage_score * 0.4 + time_score * 0.2 + consistency * 0.2 + depth * 0.2


def proficiency_level(score: float) -> str:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return "beginner"


def next_milestone(level: str, usage_count: int) -> str:
    if level == "expert":
        return "Mastery achieved! Consider mentoring others"

    target, next_level = MILESTONE_SESSIONS[level]
    needed = max(0, target - usage_count)
    if needed > 0:
        return f"{needed} more sessions to reach {next_level}"
    return f"Ready for {next_level} level!"


def _days_between(earlier: datetime, later: datetime) -> int:
    return (later - earlier).days


def analyze_skill_proficiency(
    store: AnalyticsStore,
    taxonomy: list[SkillDefinition] | None = None,
    now: datetime | None = None,
) -> list[SkillProficiency]:
    """Score every skill detected in the stored projects, strongest first."""
    taxonomy = taxonomy if taxonomy is not None else DEFAULT_TAXONOMY
    now = resolve_now(now)

    rows = store.query(
        """
        SELECT
            project,
            COUNT(*) AS session_count,
            AVG(prompt_count) AS avg_prompts,
            MIN(start_time) AS first_session,
            MAX(start_time) AS last_session
        FROM sessions
        GROUP BY project
        HAVING session_count > 0
        ORDER BY project
        """
    )

    aggregates: dict[str, dict] = {}
    for row in rows:
        first_used = from_iso(row["first_session"])
        last_used = from_iso(row["last_session"])
        for skill in detect_skills(row["project"], taxonomy):
            agg = aggregates.get(skill)
            if agg is None:
                aggregates[skill] = {
                    "sessions": row["session_count"],
                    "first_used": first_used,
                    "last_used": last_used,
                    "avg_depth": row["avg_prompts"],
                    "projects": [row["project"]],
                }
                continue
            agg["sessions"] += row["session_count"]
            agg["first_used"] = min(agg["first_used"], first_used)
            agg["last_used"] = max(agg["last_used"], last_used)
            # two-term running average, not a true mean over projects
            agg["avg_depth"] = (agg["avg_depth"] + row["avg_prompts"]) / 2
            agg["projects"].append(row["project"])

    proficiencies = []
    for skill, agg in aggregates.items():
        days_since_first = max(0, _days_between(agg["first_used"], now))
        days_since_last = max(0, _days_between(agg["last_used"], now))

        recency = max(0, 100 - days_since_last * 2)
        regularity = min(100, (agg["sessions"] / max(1, days_since_first)) * 100)
        consistency = (recency + regularity) / 2
        depth = min(100, (agg["avg_depth"] / 10) * 100)

        score = calculate_proficiency_score(agg["sessions"], days_since_first, consistency, depth)
        level = proficiency_level(score)
        definition = get_skill_definition(skill, taxonomy)

        proficiencies.append(SkillProficiency(
            skill=skill,
            category=definition.category if definition else "concept",
            level=level,
            proficiency=round(score),
            usage_count=agg["sessions"],
            first_used=agg["first_used"],
            last_used=agg["last_used"],
            days_since_first_use=days_since_first,
            consistency=round(consistency),
            depth=round(depth),
            related_skills=list(definition.related_skills) if definition else [],
            next_milestone=next_milestone(level, agg["sessions"]),
        ))

    logger.debug("Scored %d skills across %d projects", len(proficiencies), len(rows))
    proficiencies.sort(key=lambda p: p.proficiency, reverse=True)
    return proficiencies


def get_skill_progress(
    store: AnalyticsStore,
    skill: str,
    taxonomy: list[SkillDefinition] | None = None,
) -> list[dict]:
    """Monthly session counts and mean prompts per session for one skill."""
    taxonomy = taxonomy if taxonomy is not None else DEFAULT_TAXONOMY
    projects = [
        row["project"]
        for row in store.query("SELECT DISTINCT project FROM sessions")
        if skill in detect_skills(row["project"], taxonomy)
    ]
    if not projects:
        return []

    placeholders = ",".join("?" for _ in projects)
    rows = store.query(
        f"""
        SELECT
            substr(start_time, 1, 7) AS month,
            COUNT(*) AS sessions,
            AVG(prompt_count) AS avg_depth
        FROM sessions
        WHERE project IN ({placeholders})
        GROUP BY month
        ORDER BY month ASC
        """,
        projects,
    )
    return [
        {
            "month": row["month"],
            "sessions": row["sessions"],
            "avg_depth": round(row["avg_depth"], 1),
        }
        for row in rows
    ]


def compare_skills(
    proficiencies: list[SkillProficiency],
    now: datetime | None = None,
) -> dict[str, list[SkillProficiency]]:
    """Split scored skills into strongest, emerging and needs-practice groups."""
    now = resolve_now(now)
    ranked = sorted(proficiencies, key=lambda p: p.proficiency, reverse=True)

    return {
        "strongest": [p for p in ranked[:5] if p.proficiency >= 60],
        "emerging": [
            p for p in ranked
            if p.level == "intermediate" and _days_between(p.first_used, now) < 90
        ][:3],
        "needs_practice": [
            p for p in ranked
            if p.consistency < 50 and _days_between(p.last_used, now) > 30
        ][:3],
    }
