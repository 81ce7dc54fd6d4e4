"""CLI entry point for claude-stats."""

import asyncio
import logging
import os
import sqlite3
import sys
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

import click
import uvicorn

from .achievements import current_streak_days, evaluate_all, get_new_achievements
from .config import get_db_path, get_taxonomy_path
from .core import ClaudeStatsError, from_iso, resolve_now, to_iso
from .efficiency import analyze_context_efficiency, get_optimization_opportunities
from .export import EXPORT_FORMATS, default_export_filename, write_export
from .habits import detect_all_patterns
from .notifications import (
    NotificationConfig,
    format_achievement_message,
    format_streak_message,
    format_weekly_report,
    send_notification,
)
from .recommendations import generate_recommendations, get_skill_recommendations
from .reports import (
    EXPORT_TYPES,
    PROJECT_SORT_FIELDS,
    activity_heatmap,
    cost_breakdown,
    daily_breakdown,
    export_rows,
    format_duration,
    list_projects,
    optimization_candidates,
    period_bounds,
    period_summary,
    project_name,
    token_totals,
    top_projects_in_range,
    weekly_breakdown,
)
from .skills import analyze_skill_proficiency, compare_skills, get_skill_progress
from .store import open_store
from .sync import sync as run_sync
from .taxonomy import SKILL_CATEGORIES, load_taxonomy

logger = logging.getLogger(__name__)

LEVEL_COLORS = {"expert": "magenta", "advanced": "green", "intermediate": "yellow", "beginner": "bright_black"}
WEEKLY_REPORT_KEY = "last_weekly_report"


def _title(text: str) -> None:
    click.secho(f"{text}\n", fg="cyan", bold=True)


def _heading(text: str) -> None:
    click.secho(text, bold=True)


def _value(value) -> str:
    return click.style(str(value), fg="yellow")


def _money(value: float, places: int = 2) -> str:
    return _value(f"${value:.{places}f}")


def _dim(text: str) -> str:
    return click.style(text, dim=True)


def _confidence(value: float) -> str:
    color = "green" if value >= 80 else "yellow" if value >= 60 else None
    return click.style(f"{value:.0f}%", fg=color, dim=color is None)


def _days(n: int) -> str:
    return "day" if n == 1 else "days"


@contextmanager
def _open(ctx: click.Context):
    """Open the store for a command, turning failures into a clean exit."""
    try:
        with open_store(ctx.obj["db_path"]) as store:
            yield store
    except (sqlite3.Error, ClaudeStatsError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        raise click.ClickException(str(e)) from e


def _taxonomy():
    path = get_taxonomy_path()
    if path is None:
        return None
    try:
        return load_taxonomy(path)
    except ClaudeStatsError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Analytics database (default: ~/.claude/analytics.db).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, db_path: Path | None, verbose: bool):
    """Analytics and habit tracking for Claude Code usage."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or get_db_path()


# ── Sync ─────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def sync(ctx: click.Context):
    """Sync ~/.claude/history.jsonl and ~/.claude.json into the database."""
    _title("Claude Analytics - Data Sync")
    with _open(ctx) as store:
        result = run_sync(store)

    if result.errors and not (result.events_processed or result.sessions_created or result.projects_updated):
        if any(e.startswith("Sync failed") for e in result.errors):
            raise click.ClickException(result.errors[0])

    click.secho("✓ Sync completed\n", fg="green")
    _heading("Summary:")
    click.echo(f"  Prompts processed: {_value(result.events_processed)}")
    click.echo(f"  Sessions created: {_value(result.sessions_created)}")
    click.echo(f"  Projects updated: {_value(result.projects_updated)}")

    if result.errors:
        click.secho(f"\n⚠ {len(result.errors)} errors occurred:", fg="red")
        for error in result.errors:
            click.secho(f"  - {error}", fg="red")


# ── Period reports ───────────────────────────────────────────────


def _print_period(store, period: str, label: str) -> None:
    now = resolve_now()
    start, end = period_bounds(period, now)
    summary = period_summary(store, start, end)

    _heading(label)
    click.echo(f"  Sessions: {_value(summary['sessions'])}")
    click.echo(f"  Prompts: {_value(summary['prompts'])}")
    click.echo(f"  Projects: {_value(summary['projects'])}")
    click.echo(f"  Total time: {_value(format_duration(summary['duration_ms']))}")

    if period == "month":
        days_in_month = (end - start).days
        _heading("\nAverages:")
        click.echo(f"  Prompts per day: {_value(round(summary['prompts'] / days_in_month))}")
        click.echo(f"  Sessions per day: {_value(round(summary['sessions'] / days_in_month, 1))}")

    if period == "week":
        days = daily_breakdown(store, start, end)
        if days:
            _heading("\nDaily Breakdown:")
            for day in days:
                label_day = datetime.fromisoformat(day["date"]).strftime("%a, %b %d")
                click.echo(
                    f"  {click.style(label_day, fg='cyan')}: {day['prompts']} prompts, "
                    f"{day['sessions']} sessions, {format_duration(day['duration_ms'])}"
                )
    elif period == "month":
        weeks = weekly_breakdown(store, start, end)
        if weeks:
            _heading("\nWeekly Breakdown:")
            for i, week in enumerate(weeks, 1):
                label_week = datetime.fromisoformat(week["week_start"]).strftime("%b %d")
                click.echo(
                    f"  Week {i} ({click.style(label_week, fg='cyan')}): {week['prompts']} prompts, "
                    f"{week['sessions']} sessions, {format_duration(week['duration_ms'])}"
                )

    top = top_projects_in_range(store, start, end)
    if top:
        _heading("\nTop Projects:")
        for i, proj in enumerate(top, 1):
            click.echo(
                f"  {i}. {click.style(project_name(proj['project']), fg='cyan')} - "
                f"{proj['prompts']} prompts, {format_duration(proj['duration_ms'])}"
            )


@main.command()
@click.pass_context
def today(ctx: click.Context):
    """Show today's usage statistics."""
    _title("Claude Analytics - Today")
    with _open(ctx) as store:
        _print_period(store, "today", "Overview:")


@main.command()
@click.pass_context
def week(ctx: click.Context):
    """Show this week's usage statistics."""
    _title("Claude Analytics - This Week")
    with _open(ctx) as store:
        _print_period(store, "week", "Week Overview:")


@main.command()
@click.pass_context
def month(ctx: click.Context):
    """Show this month's usage statistics."""
    _title("Claude Analytics - This Month")
    with _open(ctx) as store:
        _print_period(store, "month", f"Month Overview ({resolve_now().strftime('%B %Y')}):")


# ── Projects and cost ────────────────────────────────────────────


@main.command()
@click.option("-l", "--limit", default=10, show_default=True, help="Number of projects shown.")
@click.option(
    "-s", "--sort",
    type=click.Choice(list(PROJECT_SORT_FIELDS)),
    default="duration",
    show_default=True,
    help="Sort field.",
)
@click.pass_context
def projects(ctx: click.Context, limit: int, sort: str):
    """List projects with statistics."""
    _title("Claude Analytics - Projects")
    with _open(ctx) as store:
        rows = list_projects(store, sort, limit)

    if not rows:
        click.secho('No projects found. Run "claude-stats sync" first.', fg="yellow")
        return

    _heading(f"Top {len(rows)} Projects (sorted by {sort}):\n")
    for i, proj in enumerate(rows, 1):
        click.secho(f"{i}. {project_name(proj['project_path'])}", fg="cyan", bold=True)
        click.echo(f"   Path: {_dim(proj['project_path'])}")
        click.echo(
            f"   Stats: {proj['total_prompts']} prompts, {proj['total_sessions']} sessions, "
            f"{format_duration(proj['total_duration_ms'])}"
        )
        click.echo(f"   Code: +{proj['lines_added']} / -{proj['lines_removed']} lines")
        if proj["total_cost"] > 0:
            click.echo(f"   Cost: ${proj['total_cost']:.4f}")
        last_active = from_iso(proj["last_active"]).astimezone()
        click.echo(f"   Last active: {last_active.strftime('%b %d, %Y')}\n")


@main.command()
@click.option("-l", "--limit", default=10, show_default=True, help="Number of projects shown.")
@click.option("--min", "min_cost", default=0.0, show_default=True, help="Minimum cost to display.")
@click.pass_context
def cost(ctx: click.Context, limit: int, min_cost: float):
    """Show cost breakdown by project."""
    _title("Claude Analytics - Cost Breakdown")
    with _open(ctx) as store:
        report = cost_breakdown(store, limit, min_cost)

    _heading("Overall Cost:")
    click.echo(f"  Total: {_money(report['total_cost'])}\n")

    if not report["projects"]:
        click.secho("No projects with costs found.", fg="yellow")
        return

    _heading(f"Top {len(report['projects'])} Projects by Cost:\n")
    for i, proj in enumerate(report["projects"], 1):
        click.secho(f"{i}. {project_name(proj['project_path'])}", fg="cyan", bold=True)
        click.echo(
            f"   Total cost: {_money(proj['total_cost'], 4)} "
            f"({proj['cost_percent']:.1f}% of total)"
        )
        click.echo(f"   Cost per prompt: {_money(proj['cost_per_prompt'], 4)}")
        click.echo(f"   Prompts: {proj['total_prompts']}")
        tokens = (
            proj["input_tokens"] + proj["output_tokens"]
            + proj["cache_creation_tokens"] + proj["cache_read_tokens"]
        )
        if tokens > 0:
            click.echo("   Tokens:")
            click.echo(f"     Input: {proj['input_tokens']:,}")
            click.echo(f"     Output: {proj['output_tokens']:,}")
            if proj["cache_creation_tokens"] > 0:
                click.echo(f"     Cache creation: {proj['cache_creation_tokens']:,}")
            if proj["cache_read_tokens"] > 0:
                click.echo(f"     Cache read: {proj['cache_read_tokens']:,}")
        click.echo()

    _heading("💡 Optimization Tips:")
    if report["high_cost_projects"]:
        click.secho(f"  • {report['high_cost_projects']} projects have high cost per prompt (>$0.10)", fg="yellow")
        click.echo(_dim("    Consider using prompt caching or breaking down complex prompts"))
    if report["cache_hit_ratio"] is None:
        click.echo("  • Prompt caching not being used - consider enabling for repeated contexts")
    else:
        click.echo(f"  • Cache hit ratio: {report['cache_hit_ratio']:.1f}%")
        if report["cache_hit_ratio"] < 30:
            click.echo(_dim("    Low cache hit ratio - consider structuring prompts for better caching"))


@main.command()
@click.pass_context
def optimize(ctx: click.Context):
    """Show token usage optimization suggestions."""
    _title("Claude Analytics - Optimization Suggestions")
    with _open(ctx) as store:
        totals = token_totals(store)
        candidates = optimization_candidates(store)

    _heading("📊 Overall Token Usage:\n")
    click.echo(f"  Input tokens: {_value(format(totals['input_tokens'], ','))}")
    click.echo(f"  Output tokens: {_value(format(totals['output_tokens'], ','))}")
    click.echo(f"  Cache creation: {_value(format(totals['cache_creation_tokens'], ','))}")
    click.echo(f"  Cache read: {_value(format(totals['cache_read_tokens'], ','))}")
    click.echo(f"  Total: {_value(format(totals['total_tokens'], ','))} tokens")
    click.echo(f"  Total cost: {_money(totals['total_cost'])}\n")

    ratio = totals["cache_hit_ratio"]
    _heading("💾 Cache Efficiency:\n")
    click.echo(f"  Cache hit ratio: {_value(f'{ratio:.1f}%')}")
    if ratio >= 80:
        click.secho("  ✓ Excellent cache utilization!", fg="green")
    elif ratio >= 50:
        click.secho("  ⚠ Good cache usage, but room for improvement", fg="yellow")
    elif ratio > 0:
        click.secho("  ✗ Poor cache utilization", fg="red")
    else:
        click.secho("  ✗ Prompt caching not being used", fg="red")
    click.echo()

    _heading("🎯 Optimization Opportunities:\n")
    if candidates["no_cache"]:
        click.secho("1. Enable Prompt Caching", fg="yellow")
        click.echo(_dim("   These projects could benefit from prompt caching:"))
        for proj in candidates["no_cache"]:
            click.echo(_dim(
                f"     • {project_name(proj['project_path'])} "
                f"({proj['total_prompts']} prompts, ${proj['total_cost']:.2f})"
            ))
        click.echo(_dim("   → Add repeated context (CLAUDE.md, etc.) to enable caching\n"))

    if candidates["high_output"]:
        click.secho("2. Reduce Output Token Usage", fg="yellow")
        click.echo(_dim("   These projects generate high output:"))
        for proj in candidates["high_output"]:
            click.echo(_dim(
                f"     • {project_name(proj['project_path'])} "
                f"({proj['ratio']:.1f}:1 output/input ratio, ${proj['total_cost']:.2f})"
            ))
        click.echo(_dim("   → Use more focused prompts or request concise responses\n"))

    if candidates["expensive"]:
        click.secho("3. Optimize Expensive Projects", fg="yellow")
        click.echo(_dim("   These projects have high cost per prompt (>$0.20):"))
        for proj in candidates["expensive"]:
            click.echo(_dim(
                f"     • {project_name(proj['project_path'])} "
                f"(${proj['cost_per_prompt']:.4f} per prompt, {proj['total_prompts']} prompts)"
            ))
        click.echo(_dim("   → Break complex tasks into smaller prompts"))
        click.echo(_dim("   → Review if Opus is needed or if Sonnet/Haiku suffices\n"))

    _heading("💡 General Tips:\n")
    for tip in (
        "Use CLAUDE.md for project context to enable prompt caching",
        "Structure prompts consistently to maximize cache hits",
        "Use Haiku for simple tasks, Sonnet for most work, Opus for complex reasoning",
        "Break large tasks into focused smaller prompts",
        "Request concise responses when detailed output isn't needed",
    ):
        click.echo(_dim(f"  • {tip}"))


# ── Heatmap and habits ───────────────────────────────────────────


def _bar(value: int, peak: int, width: int) -> str:
    length = round(value / peak * width) if peak else 0
    color = "green" if value > peak * 0.7 else "yellow" if value > peak * 0.3 else None
    return click.style("█" * length, fg=color, dim=color is None)


@main.command()
@click.option("-d", "--days", default=30, show_default=True, help="Number of days to include.")
@click.pass_context
def heatmap(ctx: click.Context, days: int):
    """Show when you code most."""
    _title("Claude Analytics - Activity Heatmap")
    with _open(ctx) as store:
        data = activity_heatmap(store, days)

    _heading(f"Activity Over Last {days} Days:\n")
    _heading("⏰ Hourly Distribution:")
    click.echo(_dim("   Time of day when you're most active\n"))
    peak = max(h["prompts"] for h in data["hourly"])
    for h in data["hourly"]:
        stats = f" {h['prompts']} prompts, {h['sessions']} sessions" if h["prompts"] else ""
        click.echo(f"  {h['hour']:02d}:00 {_bar(h['prompts'], peak, 20)}{_dim(stats)}")

    _heading("\n📅 Day of Week Distribution:\n")
    peak = max(d["prompts"] for d in data["weekday"])
    for d in data["weekday"]:
        stats = f" {d['prompts']} prompts, {d['sessions']} sessions" if d["prompts"] else ""
        click.echo(f"  {d['day']:<4} {_bar(d['prompts'], peak, 30)}{_dim(stats)}")

    _heading("\n🎯 Peak Productivity:\n")
    if data["top_hours"]:
        click.secho("  Most active hours:", fg="yellow")
        for i, h in enumerate(data["top_hours"], 1):
            click.echo(_dim(f"    {i}. {h['hour']:02d}:00-{(h['hour'] + 1) % 24:02d}:00 - {h['prompts']} prompts"))
    if data["top_days"]:
        click.secho("\n  Most active days:", fg="yellow")
        for i, d in enumerate(data["top_days"], 1):
            click.echo(_dim(f"    {i}. {d['day']} - {d['prompts']} prompts"))

    if data["current_streak"] > 0:
        _heading("\n🔥 Current Streak:\n")
        click.echo(f"  {_value(data['current_streak'])} {_days(data['current_streak'])} with activity")


@main.command()
@click.pass_context
def habits(ctx: click.Context):
    """Analyze productivity habits and patterns."""
    _title("Claude Analytics - Habit Analysis")
    with _open(ctx) as store:
        report = detect_all_patterns(store)
        efficiency = analyze_context_efficiency(store)
        recommendations = generate_recommendations(store)
        skill_recs = get_skill_recommendations(store)
        opportunities = get_optimization_opportunities(store)

    streak = report.streak
    _heading("🔥 Productivity Streak:\n")
    if streak.current > 0:
        click.echo(f"  Current: {_value(streak.current)} {_days(streak.current)}")
        click.echo(f"  Longest: {_value(streak.longest)} {_days(streak.longest)}")
        if streak.last_active:
            click.echo(f"  Last active: {_dim(streak.last_active.strftime('%b %d, %Y'))}")
    else:
        click.echo(_dim("  No recent activity"))
    click.echo()

    for title, patterns, limit in (
        ("⏰ Time-of-Day Patterns:", report.time_patterns, 3),
        ("📅 Day-of-Week Patterns:", report.day_patterns, None),
        ("🎯 Focus Patterns:", report.focus_patterns, 2),
    ):
        if not patterns:
            continue
        _heading(f"{title}\n")
        for i, p in enumerate(patterns[:limit], 1):
            click.secho(f"  {i}. {p.name}", fg="cyan")
            click.echo(f"     {p.description}")
            click.echo(f"     Confidence: {_confidence(p.confidence)} • {p.frequency} sessions\n")

    grade_color = {"excellent": "green", "good": "yellow", "fair": "yellow"}.get(efficiency.grade, "red")
    _heading("💾 Context Efficiency:\n")
    click.echo(f"  Overall: {click.style(efficiency.grade.upper(), fg=grade_color)}")
    click.echo(f"  Cache hit ratio: {_value(f'{efficiency.cache_hit_ratio}%')}")
    click.echo(f"  Avg prompts/session: {_value(efficiency.average_prompts_per_session)}")
    click.echo(f"  Avg session length: {_value(f'{efficiency.average_session_minutes:.1f} min')}")
    click.echo(f"  Context resets: {_value(efficiency.context_resets)}\n")
    if efficiency.recommendations:
        _heading("  Recommendations:")
        for rec in efficiency.recommendations:
            click.echo(_dim(f"    • {rec}"))
        click.echo()

    if recommendations:
        _heading("💡 Top Recommendations:\n")
        priority_color = {"high": "red", "medium": "yellow"}
        for i, rec in enumerate(recommendations[:3], 1):
            tag = click.style(f"[{rec.priority}]", fg=priority_color.get(rec.priority), dim=rec.priority == "low")
            click.echo(click.style(f"  {i}. {rec.title}", fg="cyan") + f" {tag}")
            click.echo(f"     {rec.description}")
            click.secho(f"     Impact: {rec.impact}", fg="green")
            if rec.action_items:
                _heading("     Action items:")
                for item in rec.action_items:
                    click.echo(_dim(f"       • {item}"))
            click.echo()

    if skill_recs:
        _heading("🚀 Skill Development:\n")
        for rec in skill_recs:
            level = click.style(rec.current_level, fg=LEVEL_COLORS.get(rec.current_level))
            click.echo(click.style(f"  {rec.skill}", fg="cyan") + f" • {level}")
            _heading("  Next steps:")
            for step in rec.next_steps:
                click.echo(_dim(f"    • {step}"))
            click.echo()

    if opportunities:
        _heading("💰 Cost Optimization Opportunities:\n")
        for i, opp in enumerate(opportunities[:3], 1):
            click.secho(f"  {i}. {project_name(opp.project)}", fg="cyan")
            click.echo(f"     Issue: {opp.issue}")
            click.echo(f"     Recommendation: {opp.recommendation}")
            click.secho(f"     Potential savings: {opp.potential_savings}\n", fg="green")


# ── Skills and achievements ──────────────────────────────────────


@main.command()
@click.option("-s", "--skill", "skill_name", default=None, help="Show detailed progress for one skill.")
@click.option("-c", "--category", type=click.Choice(SKILL_CATEGORIES), default=None, help="Filter by category.")
@click.option("-l", "--limit", default=20, show_default=True, help="Number of skills shown.")
@click.pass_context
def skills(ctx: click.Context, skill_name: str | None, category: str | None, limit: int):
    """Analyze skill proficiency and learning progress."""
    _title("Claude Analytics - Skill Proficiency")
    taxonomy = _taxonomy()
    with _open(ctx) as store:
        proficiencies = analyze_skill_proficiency(store, taxonomy)
        if not proficiencies:
            click.secho("No skills detected yet. Start working on projects to track your skill progression!", fg="yellow")
            return

        if skill_name:
            skill = next((s for s in proficiencies if s.skill.lower() == skill_name.lower()), None)
            if skill is None:
                click.secho(f'Skill "{skill_name}" not found.', fg="red")
                click.echo(_dim("\nAvailable skills:"))
                for s in proficiencies[:10]:
                    click.echo(_dim(f"  - {s.skill}"))
                return
            progress = get_skill_progress(store, skill.skill, taxonomy)
            _print_skill_detail(skill, progress)
            return

    now = resolve_now()
    comparison = compare_skills(proficiencies, now)

    if comparison["strongest"]:
        _heading("💪 Strongest Skills:\n")
        for i, s in enumerate(comparison["strongest"], 1):
            level = click.style(s.level.upper(), fg=LEVEL_COLORS[s.level])
            click.echo(f"  {i}. {click.style(s.skill, fg='cyan')} - {level} {_dim(f'({s.proficiency}%)')}")
            click.echo(f"     {s.usage_count} sessions, {s.days_since_first_use} days experience")
            click.echo(_dim(f"     {s.next_milestone}\n"))

    if comparison["emerging"]:
        _heading("🌱 Emerging Skills:\n")
        for i, s in enumerate(comparison["emerging"], 1):
            click.echo(
                f"  {i}. {click.style(s.skill, fg='green')} - "
                f"{click.style(s.level.upper(), fg='yellow')} {_dim(f'({s.proficiency}%)')}"
            )
            click.echo(f"     Recently started, {s.usage_count} sessions so far")
            click.echo(_dim(f"     {s.next_milestone}\n"))

    if comparison["needs_practice"]:
        _heading("⚠️  Skills Needing Practice:\n")
        for i, s in enumerate(comparison["needs_practice"], 1):
            days_since = (now - s.last_used).days
            click.echo(f"  {i}. {_dim(s.skill)} - {_dim(s.level.upper())} {_dim(f'({s.proficiency}%)')}")
            click.echo(_dim(f"     Last used {days_since} days ago, consistency: {s.consistency}%\n"))

    shown = [s for s in proficiencies if category is None or s.category == category]
    if not shown:
        click.secho(f'No skills found in category "{category}"', fg="red")
        return

    _heading(f"\n📊 All Skills (top {min(limit, len(shown))}):\n")
    click.echo(_dim("  " + "Skill".ljust(20) + "Category".ljust(12) + "Level".ljust(15) + "Score".ljust(8) + "Sessions"))
    click.echo(_dim("  " + "-" * 65))
    for s in shown[:limit]:
        click.echo(
            "  "
            + click.style(s.skill.ljust(20), fg="cyan")
            + _dim(s.category.ljust(12))
            + click.style(s.level.ljust(15), fg=LEVEL_COLORS[s.level])
            + click.style(f"{s.proficiency}%".ljust(8), fg="green")
            + str(s.usage_count)
        )
    click.echo(_dim("\n  Use --skill <name> to see detailed progress for a specific skill"))
    click.echo(_dim("  Use --category <category> to filter by category"))


def _print_skill_detail(skill, progress: list[dict]) -> None:
    _heading(f"📚 {skill.skill}\n")
    click.echo(f"  Category: {click.style(skill.category, fg='cyan')}")
    click.echo(f"  Level: {_value(skill.level.upper())}")
    click.echo(f"  Proficiency: {click.style(f'{skill.proficiency}%', fg='green')}")
    click.echo(f"  Usage: {skill.usage_count} sessions")
    click.echo(f"  First used: {skill.first_used.astimezone().strftime('%b %d, %Y')}")
    click.echo(f"  Last used: {skill.last_used.astimezone().strftime('%b %d, %Y')}")
    click.echo(f"  Experience: {skill.days_since_first_use} days")
    click.echo(f"  Consistency: {skill.consistency}%")
    click.echo(f"  Depth: {skill.depth}%")

    if skill.related_skills:
        _heading("\n  Related Skills:")
        for related in skill.related_skills:
            click.echo(_dim(f"    - {related}"))

    _heading("\n  Next Milestone:")
    click.secho(f"    {skill.next_milestone}", fg="green")

    if progress:
        _heading("\n  Progress Over Time:\n")
        for p in progress[-6:]:
            bar = click.style("█" * (p["sessions"] // 2), fg="cyan")
            click.echo(f"    {p['month']}: {bar} {p['sessions']} sessions (avg {p['avg_depth']} prompts)")


@main.command()
@click.option("--all", "show_all", is_flag=True, help="Also list achievements that are close to unlocking.")
@click.pass_context
def achievements(ctx: click.Context, show_all: bool):
    """Show unlocked achievements."""
    _title("Claude Analytics - Achievements")
    with _open(ctx) as store:
        unlocked = store.get_unlocked_achievements()
        checks = evaluate_all(store, taxonomy=_taxonomy()) if show_all else []

    if not unlocked:
        click.secho('No achievements unlocked yet. Run "claude-stats hook" after a session to check.', fg="yellow")
    for a in unlocked:
        when = a.unlocked_at.astimezone().strftime("%b %d, %Y")
        click.echo(f"  {a.icon} {click.style(a.title, bold=True)}: {a.description} {_dim(when)}")

    if show_all:
        unlocked_ids = {a.id for a in unlocked}
        pending = [c.achievement for c in checks if c.achieved and c.achievement.id not in unlocked_ids]
        progress = [c.progress for c in checks if c.progress]
        if pending:
            _heading("\nReady to unlock:")
            for a in pending:
                click.echo(f"  {a.icon} {a.title}: {_dim(a.description)}")
        if progress:
            _heading("\nAlmost there:")
            for p in progress:
                click.echo(f"  {p.current:g}/{p.target:g}-day streak ({p.percentage:.0f}%)")


# ── Export ───────────────────────────────────────────────────────


@main.command()
@click.argument("export_type", metavar="TYPE", type=click.Choice(EXPORT_TYPES))
@click.option("-f", "--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="csv", show_default=True)
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output file.")
@click.option("--days", default=30, show_default=True, help="Limit to the last N days.")
@click.pass_context
def export(ctx: click.Context, export_type: str, fmt: str, output: Path | None, days: int):
    """Export sessions, projects, prompts or daily rollups to CSV or JSON."""
    _title(f"Claude Analytics - Export {export_type}")
    with _open(ctx) as store:
        rows = export_rows(store, export_type, days)

    if fmt == "csv" and not rows:
        click.secho("No data to export", fg="yellow")
        return

    path = output or Path(default_export_filename(export_type, fmt))
    try:
        write_export(rows, fmt, path)
    except OSError as e:
        raise click.ClickException(f"Export failed: {e}") from e

    click.secho(f"✓ Exported {len(rows)} records to {path}", fg="green")


# ── Hook ─────────────────────────────────────────────────────────


async def _notify(config: NotificationConfig, store, new: list, now: datetime) -> None:
    announced = [
        a for a in new
        if (config.milestones if a.category == "milestone" else config.achievements)
    ]
    if announced:
        await send_notification(config, format_achievement_message(announced), announced)

    if config.streaks and any(a.category == "streak" for a in new):
        await send_notification(config, format_streak_message(current_streak_days(store, now)))

    if config.weekly_report:
        this_week, _ = period_bounds("week", now)
        if store.get_metadata(WEEKLY_REPORT_KEY) != to_iso(this_week):
            last_week = this_week - timedelta(days=7)
            summary = period_summary(store, last_week, this_week)
            message = format_weekly_report(
                summary["sessions"],
                summary["prompts"],
                summary["projects"],
                format_duration(summary["duration_ms"]),
            )
            if await send_notification(config, message):
                store.set_metadata(WEEKLY_REPORT_KEY, to_iso(this_week))


@main.command()
@click.pass_context
def hook(ctx: click.Context):
    """Post-session hook: sync, unlock achievements and notify. Never fails."""
    debug = os.environ.get("CLAUDE_STATS_DEBUG") == "true"
    if debug:
        logging.getLogger("claude_stats").setLevel(logging.DEBUG)

    try:
        with open_store(ctx.obj["db_path"]) as store:
            now = resolve_now()
            result = run_sync(store, now=now)
            new = get_new_achievements(store, now, _taxonomy())

            if new:
                click.secho("\n🎉 New Achievements Unlocked!\n", fg="yellow")
                for a in new:
                    click.secho(f"{a.icon} {click.style(a.title, bold=True)}: {a.description}", fg="green")
                    store.save_achievement(a)
                click.echo()

            config = NotificationConfig.from_env()
            if config is not None:
                asyncio.run(_notify(config, store, new, now))

            if debug:
                click.echo(
                    f"[Analytics] Synced: {result.events_processed} prompts, "
                    f"{result.sessions_created} sessions, {result.projects_updated} projects",
                    err=True,
                )
    except Exception as e:
        # the hook runs inside the assistant's session and must not interrupt it
        logger.debug("Hook failed", exc_info=True)
        if debug:
            click.secho(f"[Analytics] Hook error: {e}", fg="red", err=True)


# ── Dashboard ────────────────────────────────────────────────────


@main.command()
@click.option("--port", default=3000, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.pass_context
def serve(ctx: click.Context, port: int, host: str):
    """Start the web dashboard."""
    os.environ["CLAUDE_STATS_DB_PATH"] = str(ctx.obj["db_path"])
    click.echo(f"Starting claude-stats dashboard on http://{host}:{port}")
    uvicorn.run("claude_stats.server:app", host=host, port=port, reload=False)
