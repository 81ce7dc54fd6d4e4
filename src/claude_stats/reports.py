"""Read-only report queries used by the CLI, the dashboard and exports.

Calendar periods and day/hour buckets are taken in the timezone of ``now``.
Functions return plain dicts and lists so callers can print, serialize or
export them directly.
"""

from collections import defaultdict
from datetime import datetime, timedelta

from .core import Session, resolve_now, to_iso
from .habits import active_dates, run_ending_at
from .store import AnalyticsStore, row_to_session

PROJECT_SORT_FIELDS = {
    "duration": "total_duration_ms",
    "prompts": "total_prompts",
    "cost": "total_cost",
    "sessions": "total_sessions",
    "recent": "last_active",
}

EXPORT_TYPES = ("sessions", "projects", "prompts", "daily")
PROMPT_EXPORT_LIMIT = 1000

DAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def project_name(path: str) -> str:
    return path.rstrip("/").split("/")[-1] or path


def format_duration(ms: int | float) -> str:
    """Render milliseconds as "2h 5m", or "5m" under an hour."""
    total_minutes = int(ms // 60000)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def period_bounds(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of today, this week or this month.

    Weeks start on Monday.
    """
    now = resolve_now(now)
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == "today":
        return day_start, day_start + timedelta(days=1)
    if period == "week":
        start = day_start - timedelta(days=day_start.weekday())
        return start, start + timedelta(days=7)
    if period == "month":
        start = day_start.replace(day=1)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end
    raise ValueError(f"Unknown period: {period}")


def sessions_between(store: AnalyticsStore, start: datetime, end: datetime) -> list[Session]:
    rows = store.query(
        "SELECT * FROM sessions WHERE start_time >= ? AND start_time < ? ORDER BY start_time",
        (to_iso(start), to_iso(end)),
    )
    return [row_to_session(row) for row in rows]


def _totals(sessions: list[Session]) -> dict:
    return {
        "sessions": len(sessions),
        "prompts": sum(s.prompt_count for s in sessions),
        "projects": len({s.project for s in sessions}),
        "duration_ms": sum(s.duration_ms for s in sessions),
    }


def period_summary(store: AnalyticsStore, start: datetime, end: datetime) -> dict:
    return _totals(sessions_between(store, start, end))


def daily_breakdown(store: AnalyticsStore, start: datetime, end: datetime) -> list[dict]:
    """Per-day totals in ``start``'s timezone, oldest first."""
    buckets: dict = defaultdict(list)
    for s in sessions_between(store, start, end):
        buckets[s.start_time.astimezone(start.tzinfo).date()].append(s)
    return [{"date": day.isoformat(), **_totals(buckets[day])} for day in sorted(buckets)]


def weekly_breakdown(store: AnalyticsStore, start: datetime, end: datetime) -> list[dict]:
    """Per-week totals keyed by the Monday each week starts on."""
    buckets: dict = defaultdict(list)
    for s in sessions_between(store, start, end):
        day = s.start_time.astimezone(start.tzinfo).date()
        buckets[day - timedelta(days=day.weekday())].append(s)
    return [{"week_start": week.isoformat(), **_totals(buckets[week])} for week in sorted(buckets)]


def top_projects_in_range(store: AnalyticsStore, start: datetime, end: datetime, limit: int = 5) -> list[dict]:
    rows = store.query(
        """
        SELECT
            project,
            COUNT(*) AS sessions,
            SUM(prompt_count) AS prompts,
            SUM(duration_ms) AS duration_ms
        FROM sessions
        WHERE start_time >= ? AND start_time < ?
        GROUP BY project
        ORDER BY duration_ms DESC, prompts DESC
        LIMIT ?
        """,
        (to_iso(start), to_iso(end), limit),
    )
    return [dict(row) for row in rows]


def list_projects(store: AnalyticsStore, sort: str = "duration", limit: int = 10) -> list[dict]:
    try:
        field = PROJECT_SORT_FIELDS[sort]
    except KeyError:
        raise ValueError(f"Unknown sort field: {sort}") from None
    rows = store.query(
        f"SELECT * FROM projects ORDER BY {field} DESC LIMIT ?",
        (limit,),
    )
    return [dict(row) for row in rows]


def _hit_ratio(cache_read: float, cache_creation: float) -> float:
    total = cache_read + cache_creation
    return cache_read / total * 100 if total > 0 else 0.0


def cost_breakdown(store: AnalyticsStore, limit: int = 10, min_cost: float = 0.0) -> dict:
    """Projects costing more than ``min_cost``, most expensive first."""
    total = store.query_one(
        "SELECT COALESCE(SUM(total_cost), 0) AS total FROM projects WHERE total_cost > ?",
        (min_cost,),
    )["total"]

    rows = store.query(
        """
        SELECT
            project_path, total_cost, total_prompts, input_tokens, output_tokens,
            cache_creation_tokens, cache_read_tokens
        FROM projects
        WHERE total_cost > ?
        ORDER BY total_cost DESC
        LIMIT ?
        """,
        (min_cost, limit),
    )

    projects = []
    for row in rows:
        entry = dict(row)
        entry["cost_percent"] = row["total_cost"] / total * 100 if total > 0 else 0.0
        entry["cost_per_prompt"] = row["total_cost"] / row["total_prompts"] if row["total_prompts"] > 0 else 0.0
        projects.append(entry)

    cache_read = sum(p["cache_read_tokens"] for p in projects)
    cache_creation = sum(p["cache_creation_tokens"] for p in projects)
    uses_cache = cache_read > 0 and cache_creation > 0

    return {
        "total_cost": total,
        "projects": projects,
        "high_cost_projects": sum(1 for p in projects if p["cost_per_prompt"] > 0.10),
        "cache_hit_ratio": _hit_ratio(cache_read, cache_creation) if uses_cache else None,
    }


def token_totals(store: AnalyticsStore) -> dict:
    row = store.query_one(
        """
        SELECT
            COALESCE(SUM(input_tokens), 0) AS input_tokens,
            COALESCE(SUM(output_tokens), 0) AS output_tokens,
            COALESCE(SUM(cache_creation_tokens), 0) AS cache_creation_tokens,
            COALESCE(SUM(cache_read_tokens), 0) AS cache_read_tokens,
            COALESCE(SUM(total_cost), 0) AS total_cost,
            COUNT(*) AS project_count
        FROM projects
        """
    )
    totals = dict(row)
    totals["total_tokens"] = (
        totals["input_tokens"]
        + totals["output_tokens"]
        + totals["cache_creation_tokens"]
        + totals["cache_read_tokens"]
    )
    totals["cache_hit_ratio"] = _hit_ratio(totals["cache_read_tokens"], totals["cache_creation_tokens"])
    return totals


def optimization_candidates(store: AnalyticsStore, limit: int = 3) -> dict:
    """Projects worth a second look: uncached, output-heavy, or expensive per prompt."""
    no_cache = store.query(
        """
        SELECT project_path, total_prompts, total_cost
        FROM projects
        WHERE cache_creation_tokens = 0 AND cache_read_tokens = 0 AND total_prompts > 5
        ORDER BY total_cost DESC
        LIMIT ?
        """,
        (limit,),
    )
    high_output = store.query(
        """
        SELECT
            project_path, total_prompts, total_cost,
            output_tokens * 1.0 / input_tokens AS ratio
        FROM projects
        WHERE input_tokens > 0 AND output_tokens > input_tokens * 2 AND total_prompts > 5
        ORDER BY ratio DESC
        LIMIT ?
        """,
        (limit,),
    )
    expensive = store.query(
        """
        SELECT
            project_path, total_prompts, total_cost,
            total_cost * 1.0 / total_prompts AS cost_per_prompt
        FROM projects
        WHERE total_prompts > 0 AND total_cost * 1.0 / total_prompts > 0.20
        ORDER BY cost_per_prompt DESC
        LIMIT ?
        """,
        (limit,),
    )
    return {
        "no_cache": [dict(r) for r in no_cache],
        "high_output": [dict(r) for r in high_output],
        "expensive": [dict(r) for r in expensive],
    }


def activity_heatmap(store: AnalyticsStore, days: int = 30, now: datetime | None = None) -> dict:
    """Session and prompt counts by hour of day and by weekday."""
    now = resolve_now(now)
    sessions = sessions_between(store, now - timedelta(days=days), now + timedelta(days=1))
    tz = now.tzinfo

    hourly = [{"hour": h, "sessions": 0, "prompts": 0} for h in range(24)]
    weekday = [{"day": name, "sessions": 0, "prompts": 0} for name in DAY_ABBREVIATIONS]
    for s in sessions:
        local = s.start_time.astimezone(tz)
        for bucket in (hourly[local.hour], weekday[local.weekday()]):
            bucket["sessions"] += 1
            bucket["prompts"] += s.prompt_count

    dates = active_dates(sessions, tz)
    current_streak = run_ending_at(dates, now.date()) if dates and dates[0] == now.date() else 0

    active_hours = [h for h in hourly if h["prompts"] > 0]
    active_days = [d for d in weekday if d["prompts"] > 0]
    return {
        "days": days,
        "hourly": hourly,
        "weekday": weekday,
        "top_hours": sorted(active_hours, key=lambda h: h["prompts"], reverse=True)[:3],
        "top_days": sorted(active_days, key=lambda d: d["prompts"], reverse=True)[:2],
        "current_streak": current_streak,
    }


def overview(store: AnalyticsStore, now: datetime | None = None) -> dict:
    now = resolve_now(now)
    totals = store.query_one(
        """
        SELECT
            COUNT(*) AS sessions,
            COALESCE(SUM(prompt_count), 0) AS prompts,
            COUNT(DISTINCT project) AS projects,
            COALESCE(SUM(duration_ms), 0) AS duration_ms
        FROM sessions
        """
    )
    week = _totals(sessions_between(store, now - timedelta(days=7), now + timedelta(days=1)))
    return {
        "total_sessions": totals["sessions"],
        "total_prompts": totals["prompts"],
        "total_projects": totals["projects"],
        "total_hours": round(totals["duration_ms"] / 3_600_000, 1),
        "this_week": {"sessions": week["sessions"], "prompts": week["prompts"]},
    }


def activity(store: AnalyticsStore, days: int = 30, now: datetime | None = None) -> list[dict]:
    """Sessions and prompts per active day over the trailing window, oldest first."""
    now = resolve_now(now)
    start = now - timedelta(days=days)
    return [
        {"date": d["date"], "sessions": d["sessions"], "prompts": d["prompts"]}
        for d in daily_breakdown(store, start, now + timedelta(days=1))
    ]


def export_rows(store: AnalyticsStore, export_type: str, days: int = 30, now: datetime | None = None) -> list[dict]:
    """Rows for one export type. ``days`` bounds everything except projects."""
    now = resolve_now(now)
    since = now - timedelta(days=days)

    if export_type == "sessions":
        rows = store.query(
            """
            SELECT session_id, project, start_time, end_time, prompt_count,
                   duration_ms, first_prompt, last_prompt
            FROM sessions
            WHERE start_time >= ?
            ORDER BY start_time DESC
            """,
            (to_iso(since),),
        )
    elif export_type == "projects":
        rows = store.query(
            """
            SELECT project_path, first_seen, last_active, total_prompts, total_sessions,
                   total_duration_ms, lines_added, lines_removed, total_cost,
                   input_tokens, output_tokens, cache_creation_tokens, cache_read_tokens
            FROM projects
            ORDER BY total_cost DESC
            """
        )
    elif export_type == "prompts":
        rows = store.query(
            """
            SELECT id, session_id, project, display, timestamp, pasted_contents_count
            FROM prompts
            WHERE timestamp >= ?
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            (to_iso(since), PROMPT_EXPORT_LIMIT),
        )
    elif export_type == "daily":
        return [
            {
                "date": d["date"],
                "session_count": d["sessions"],
                "total_prompts": d["prompts"],
                "total_duration_ms": d["duration_ms"],
                "unique_projects": d["projects"],
            }
            for d in reversed(daily_breakdown(store, since, now + timedelta(days=1)))
        ]
    else:
        raise ValueError(f"Unknown export type: {export_type}")

    return [dict(row) for row in rows]
