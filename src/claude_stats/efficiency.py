"""Context efficiency: how well prompt caching and session shape are working."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .core import resolve_now, to_iso
from .store import AnalyticsStore

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30


@dataclass
class ContextEfficiency:
    cache_hit_ratio: float  # 0-100
    average_prompts_per_session: float
    average_session_minutes: float
    context_resets: int
    grade: str  # "excellent" | "good" | "fair" | "poor"
    recommendations: list[str] = field(default_factory=list)


@dataclass
class OptimizationOpportunity:
    project: str
    issue: str
    recommendation: str
    potential_savings: str


def efficiency_grade(cache_hit_ratio: float, avg_prompts: float) -> str:
    if cache_hit_ratio >= 80 and avg_prompts >= 5:
        return "excellent"
    if cache_hit_ratio >= 60 and avg_prompts >= 3:
        return "good"
    if cache_hit_ratio >= 40 or avg_prompts >= 2:
        return "fair"
    return "poor"


def analyze_context_efficiency(store: AnalyticsStore, now: datetime | None = None) -> ContextEfficiency:
    now = resolve_now(now)
    since = to_iso(now - timedelta(days=WINDOW_DAYS))

    cache = store.query_one(
        """
        SELECT
            COALESCE(SUM(cache_creation_tokens), 0) AS creation,
            COALESCE(SUM(cache_read_tokens), 0) AS read
        FROM projects
        """
    )
    cache_total = cache["creation"] + cache["read"]
    hit_ratio = cache["read"] / cache_total * 100 if cache_total > 0 else 0.0

    sessions = store.query_one(
        """
        SELECT
            AVG(prompt_count) AS avg_prompts,
            AVG(duration_ms / 1000.0 / 60.0) AS avg_minutes,
            COUNT(*) AS total,
            SUM(CASE WHEN prompt_count <= 2 AND duration_ms < 60000 THEN 1 ELSE 0 END) AS resets
        FROM sessions
        WHERE start_time >= ?
        """,
        (since,),
    )
    avg_prompts = sessions["avg_prompts"] or 0.0
    avg_minutes = sessions["avg_minutes"] or 0.0
    resets = sessions["resets"] or 0

    recommendations = []
    if hit_ratio < 50:
        recommendations.append("Low cache hit ratio - add CLAUDE.md files to enable prompt caching")
    if hit_ratio >= 90:
        recommendations.append("Excellent cache utilization! Your context setup is working well")
    if avg_prompts < 3:
        recommendations.append("Short sessions detected - consider batching related tasks together")
    if avg_prompts > 20:
        recommendations.append("Long sessions detected - break complex tasks into smaller, focused sessions")
    if resets > sessions["total"] * 0.2:
        recommendations.append("Many context resets detected - work in longer, more focused sessions")
    if avg_minutes < 5:
        recommendations.append("Very short sessions - aim for 15-30 minute focused coding blocks")
    if avg_minutes > 120:
        recommendations.append(
            "Very long sessions - take breaks and clear context periodically for fresh perspective"
        )

    return ContextEfficiency(
        cache_hit_ratio=round(hit_ratio, 1),
        average_prompts_per_session=round(avg_prompts, 1),
        average_session_minutes=round(avg_minutes, 1),
        context_resets=resets,
        grade=efficiency_grade(hit_ratio, avg_prompts),
        recommendations=recommendations,
    )


def get_optimization_opportunities(store: AnalyticsStore, limit: int = 5) -> list[OptimizationOpportunity]:
    """Projects with more than ten prompts whose caching or verbosity could improve."""
    opportunities = []

    for row in store.query(
        """
        SELECT project_path, input_tokens
        FROM projects
        WHERE cache_creation_tokens = 0 AND cache_read_tokens = 0 AND total_prompts > 10
        ORDER BY total_cost DESC
        LIMIT ?
        """,
        (limit,),
    ):
        # assumes 75% cache hits on a tenth of input, priced per million tokens
        savings = row["input_tokens"] * 0.1 * 0.75 / 1_000_000
        opportunities.append(OptimizationOpportunity(
            project=row["project_path"],
            issue="No prompt caching enabled",
            recommendation="Add .claude/CLAUDE.md with project context",
            potential_savings=f"~${savings:.2f}/month",
        ))

    for row in store.query(
        """
        SELECT
            project_path,
            cache_read_tokens * 100.0 / (cache_creation_tokens + cache_read_tokens) AS hit_ratio
        FROM projects
        WHERE cache_creation_tokens > 0
          AND cache_read_tokens > 0
          AND total_prompts > 10
          AND cache_read_tokens * 1.0 / (cache_creation_tokens + cache_read_tokens) < 0.5
        ORDER BY total_cost DESC
        LIMIT ?
        """,
        (limit,),
    ):
        opportunities.append(OptimizationOpportunity(
            project=row["project_path"],
            issue=f"Low cache hit ratio ({row['hit_ratio']:.1f}%)",
            recommendation="Structure CLAUDE.md consistently, avoid changing context frequently",
            potential_savings="Improve by 40-50%",
        ))

    for row in store.query(
        """
        SELECT project_path, output_tokens * 1.0 / input_tokens AS ratio
        FROM projects
        WHERE input_tokens > 0 AND output_tokens > input_tokens * 3 AND total_prompts > 10
        ORDER BY ratio DESC
        LIMIT ?
        """,
        (limit,),
    ):
        opportunities.append(OptimizationOpportunity(
            project=row["project_path"],
            issue=f"High output/input ratio ({row['ratio']:.1f}:1)",
            recommendation="Request more concise responses or break down prompts",
            potential_savings="Reduce output tokens by 30-50%",
        ))

    logger.debug("Found %d optimization opportunities", len(opportunities))
    return opportunities
