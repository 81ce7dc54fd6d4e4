"""Personalized best-practice recommendations."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .core import resolve_now
from .habits import recent_sessions
from .store import AnalyticsStore

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass
class Recommendation:
    category: str  # "cost" | "productivity" | "quality" | "workflow"
    priority: str  # "high" | "medium" | "low"
    title: str
    description: str
    impact: str
    action_items: list[str] = field(default_factory=list)


@dataclass
class SkillRecommendation:
    skill: str
    current_level: str
    next_steps: list[str] = field(default_factory=list)


def generate_recommendations(store: AnalyticsStore, now: datetime | None = None) -> list[Recommendation]:
    """Recommendations from the last 30 days of sessions, highest priority first."""
    now = resolve_now(now)
    sessions = recent_sessions(store, now, 30)
    recommendations = []

    session_count = len(sessions)
    avg_prompts = sum(s.prompt_count for s in sessions) / session_count if sessions else 0.0
    avg_minutes = sum(s.duration_ms for s in sessions) / session_count / 60000 if sessions else 0.0
    project_count = len({s.project for s in sessions})

    totals = store.query_one(
        """
        SELECT
            COALESCE(SUM(total_cost), 0) AS total_cost,
            COALESCE(SUM(cache_creation_tokens + cache_read_tokens), 0) AS cache_tokens,
            COALESCE(SUM(input_tokens + output_tokens), 0) AS regular_tokens
        FROM projects
        """
    )
    token_total = totals["cache_tokens"] + totals["regular_tokens"]
    if totals["total_cost"] > 50 and token_total > 0:
        if totals["cache_tokens"] / token_total < 0.5:
            recommendations.append(Recommendation(
                category="cost",
                priority="high",
                title="Enable Prompt Caching Across More Projects",
                description="You could save significant costs by enabling prompt caching in more projects",
                impact=f"Potential savings: ${totals['total_cost'] * 0.3:.2f}/month",
                action_items=[
                    "Create .claude/CLAUDE.md files in active projects",
                    "Document project context and common patterns",
                    "Keep context files stable (avoid frequent changes)",
                ],
            ))

    if sessions and avg_prompts < 5:
        recommendations.append(Recommendation(
            category="productivity",
            priority="medium",
            title="Increase Session Depth",
            description="Your sessions tend to be short. Longer, focused sessions are more productive",
            impact="Better context retention and deeper problem-solving",
            action_items=[
                "Plan 30-60 minute focused coding blocks",
                "Batch related tasks together",
                "Use TODO lists within sessions to stay on track",
            ],
        ))

    if sessions and avg_minutes < 10:
        recommendations.append(Recommendation(
            category="productivity",
            priority="medium",
            title="Extend Session Length",
            description="Very short sessions may indicate context switching",
            impact="Reduce context switching overhead",
            action_items=[
                "Block dedicated time for coding",
                "Minimize distractions during sessions",
                "Complete full features in single sessions when possible",
            ],
        ))

    per_project: dict[str, list[int]] = {}
    for s in sessions:
        per_project.setdefault(s.project, []).append(s.prompt_count)
    if any(len(counts) >= 3 and sum(counts) / len(counts) > 15 for counts in per_project.values()):
        recommendations.append(Recommendation(
            category="quality",
            priority="low",
            title="Break Down Complex Tasks",
            description="Some sessions have many prompts, which can indicate unclear requirements",
            impact="Clearer goals and faster iteration",
            action_items=[
                "Start sessions with clear objectives",
                "Break large features into smaller tasks",
                "Use plan mode for complex features",
            ],
        ))

    if project_count > 10:
        switches = sum(1 for prev, cur in zip(sessions, sessions[1:]) if cur.project != prev.project)
        if switches / session_count > 0.5:
            recommendations.append(Recommendation(
                category="workflow",
                priority="medium",
                title="Reduce Project Context Switching",
                description=f"You switch between {project_count} projects frequently",
                impact="Improved focus and reduced mental overhead",
                action_items=[
                    "Dedicate specific days to specific projects",
                    "Batch similar work across projects",
                    "Use time blocking for project work",
                ],
            ))

    cache = store.query_one(
        """
        SELECT AVG(cache_read_tokens * 100.0 / (cache_creation_tokens + cache_read_tokens)) AS avg_hit_ratio
        FROM projects
        WHERE cache_creation_tokens > 0 AND cache_read_tokens > 0
        """
    )
    if cache["avg_hit_ratio"] is not None and cache["avg_hit_ratio"] < 70:
        recommendations.append(Recommendation(
            category="cost",
            priority="high",
            title="Improve Cache Hit Ratio",
            description=f"Average cache hit ratio is {cache['avg_hit_ratio']:.1f}%",
            impact="Reduce costs by 20-40%",
            action_items=[
                "Keep CLAUDE.md stable (avoid frequent updates)",
                "Structure prompts consistently",
                "Reference cached context in prompts",
            ],
        ))

    week = recent_sessions(store, now, 7)
    active_days = len({s.start_time.astimezone(now.tzinfo).date() for s in week})
    if active_days >= 5:
        recommendations.append(Recommendation(
            category="productivity",
            priority="low",
            title="Great Consistency!",
            description=f"You've been active {active_days} days this week",
            impact="Momentum builds skills faster",
            action_items=[
                "Keep the streak going",
                "Consider increasing session depth",
                "Share your productivity patterns",
            ],
        ))

    logger.debug("Generated %d recommendations", len(recommendations))
    return sorted(recommendations, key=lambda r: PRIORITY_ORDER[r.priority])


def get_skill_recommendations(store: AnalyticsStore, now: datetime | None = None) -> list[SkillRecommendation]:
    """Next steps for getting more out of the assistant itself."""
    now = resolve_now(now)
    count = len(recent_sessions(store, now, 30))

    if count < 20:
        return [SkillRecommendation(
            skill="Claude Code Basics",
            current_level="beginner",
            next_steps=[
                "Explore different commands (week, month, cost)",
                "Set up CLAUDE.md in main projects",
                "Learn about prompt caching",
            ],
        )]
    if count < 100:
        return [SkillRecommendation(
            skill="Claude Code Proficiency",
            current_level="intermediate",
            next_steps=[
                "Optimize cache hit ratios",
                "Use plan mode for complex features",
                "Create custom slash commands",
            ],
        )]
    return [SkillRecommendation(
        skill="Claude Code Mastery",
        current_level="advanced",
        next_steps=[
            "Share productivity patterns with team",
            "Create custom hooks and automation",
            "Mentor others on AI-assisted development",
        ],
    )]
