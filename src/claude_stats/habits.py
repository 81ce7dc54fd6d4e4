"""Habit detection over recent sessions.

All bucketing (hour of day, weekday, calendar date) happens in the timezone
of ``now``. Sessions are selected by start time within a trailing window.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .core import HabitPattern, Session, Streak, resolve_now, to_iso
from .store import AnalyticsStore, row_to_session

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
STREAK_WINDOW_DAYS = 90

# (name, description, start hour, end hour, minimum share)
TIME_WINDOWS = (
    ("Morning Coder", "Most productive in the morning (6am-12pm)", 6, 12, 0.30),
    ("Afternoon Achiever", "Peak productivity in the afternoon (12pm-5pm)", 12, 17, 0.30),
    ("Evening Engineer", "Most active in the evening (5pm-10pm)", 17, 22, 0.30),
    ("Night Owl", "Codes late into the night (10pm-6am)", 22, 6, 0.20),
)

WEEKEND = (5, 6)
WEEKDAYS = (0, 1, 2, 3, 4)
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass
class HabitReport:
    time_patterns: list[HabitPattern] = field(default_factory=list)
    day_patterns: list[HabitPattern] = field(default_factory=list)
    focus_patterns: list[HabitPattern] = field(default_factory=list)
    streak: Streak = field(default_factory=Streak)


def recent_sessions(store: AnalyticsStore, now: datetime, days: int) -> list[Session]:
    """Sessions that started within ``days`` before ``now``."""
    since = to_iso(now - timedelta(days=days))
    rows = store.query(
        "SELECT * FROM sessions WHERE start_time >= ? ORDER BY start_time",
        (since,),
    )
    return [row_to_session(row) for row in rows]


def _in_window(hour: int, start: int, end: int) -> bool:
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def _by_confidence(patterns: list[HabitPattern]) -> list[HabitPattern]:
    return sorted(patterns, key=lambda p: p.confidence, reverse=True)


def detect_time_patterns(
    store: AnalyticsStore,
    now: datetime | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[HabitPattern]:
    now = resolve_now(now)
    sessions = recent_sessions(store, now, days)
    if not sessions:
        return []

    tz = now.tzinfo
    hours = Counter(s.start_time.astimezone(tz).hour for s in sessions)
    total = len(sessions)

    patterns = []
    for name, description, start, end, min_share in TIME_WINDOWS:
        count = sum(n for hour, n in hours.items() if _in_window(hour, start, end))
        share = count / total
        if share <= min_share:
            continue
        last = max(
            (s.start_time for s in sessions if _in_window(s.start_time.astimezone(tz).hour, start, end)),
            default=None,
        )
        patterns.append(HabitPattern(
            kind="time",
            name=name,
            description=description,
            frequency=count,
            confidence=min(95, share * 100),
            last_occurrence=last,
            metadata={"hour_range": [start, end]},
        ))

    return _by_confidence(patterns)


def detect_day_patterns(
    store: AnalyticsStore,
    now: datetime | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[HabitPattern]:
    now = resolve_now(now)
    sessions = recent_sessions(store, now, days)
    if not sessions:
        return []

    tz = now.tzinfo
    weekdays = Counter(s.start_time.astimezone(tz).weekday() for s in sessions)
    total = len(sessions)
    patterns = []

    weekend_count = sum(weekdays[d] for d in WEEKEND)
    weekend_share = weekend_count / total
    if weekend_share > 0.35:
        patterns.append(HabitPattern(
            kind="day",
            name="Weekend Warrior",
            description="Most active on weekends",
            frequency=weekend_count,
            # weekend share is scaled by 1.5
            confidence=min(95, weekend_share * 100 * 1.5),
            metadata={"days": [DAY_NAMES[d] for d in WEEKEND]},
        ))

    weekday_count = sum(weekdays[d] for d in WEEKDAYS)
    weekday_share = weekday_count / total
    if weekday_share > 0.6:
        patterns.append(HabitPattern(
            kind="day",
            name="Weekday Grinder",
            description="Consistent weekday productivity",
            frequency=weekday_count,
            confidence=min(95, weekday_share * 100),
            metadata={"days": [DAY_NAMES[d] for d in WEEKDAYS]},
        ))

    return _by_confidence(patterns)


def detect_focus_patterns(
    store: AnalyticsStore,
    now: datetime | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[HabitPattern]:
    now = resolve_now(now)
    sessions = recent_sessions(store, now, days)
    if not sessions:
        return []

    counts: dict[str, int] = defaultdict(int)
    durations: dict[str, int] = defaultdict(int)
    for s in sessions:
        counts[s.project] += 1
        durations[s.project] += s.duration_ms

    projects = sorted(durations, key=lambda p: durations[p], reverse=True)
    total_sessions = len(sessions)
    total_duration = sum(durations.values())
    patterns = []

    # every focus pattern, Context Switcher included, is a duration share;
    # a window of zero-length sessions yields none of them
    if total_duration > 0:
        top = projects[0]
        top_share = durations[top] / total_duration
        if top_share > 0.5:
            name = top.rstrip("/").split("/")[-1] or top
            patterns.append(HabitPattern(
                kind="focus",
                name="Single Project Focus",
                description=f"Deep focus on {name}",
                frequency=counts[top],
                confidence=min(95, top_share * 100),
                metadata={"projects": [top]},
            ))

        if len(projects) >= 5:
            top5_share = sum(durations[p] for p in projects[:5]) / total_duration
            if top5_share < 0.8:
                patterns.append(HabitPattern(
                    kind="focus",
                    name="Multi-Project Juggler",
                    description=f"Active across {len(projects)} projects",
                    frequency=total_sessions,
                    confidence=min(85, len(projects) * 10),
                    metadata={"projects": projects},
                ))

        mean_duration = total_duration / total_sessions
        short = [p for p in projects if durations[p] / counts[p] < mean_duration * 0.5]
        short_share = len(short) / len(projects)
        if short_share > 0.4:
            patterns.append(HabitPattern(
                kind="focus",
                name="Context Switcher",
                description="Frequent project switching with short sessions",
                frequency=sum(counts[p] for p in short),
                confidence=min(90, short_share * 100),
                metadata={"projects": short},
            ))

    return _by_confidence(patterns)


def active_dates(sessions: list[Session], tz) -> list[date]:
    """Distinct local calendar dates with at least one session, newest first."""
    return sorted({s.start_time.astimezone(tz).date() for s in sessions}, reverse=True)


def run_ending_at(dates: list[date], end: date) -> int:
    """Length of the run of consecutive dates ending at ``end``.

    ``dates`` must be distinct and sorted newest first.
    """
    run = 0
    expected = end
    for d in dates:
        if d > expected:
            continue
        if d != expected:
            break
        run += 1
        expected -= timedelta(days=1)
    return run


def longest_run(dates: list[date]) -> int:
    """Longest run of consecutive dates; ``dates`` sorted newest first."""
    if not dates:
        return 0
    longest = current = 1
    for prev, d in zip(dates, dates[1:]):
        if (prev - d).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def calculate_streak(
    store: AnalyticsStore,
    now: datetime | None = None,
    days: int = STREAK_WINDOW_DAYS,
) -> Streak:
    """Current and longest runs of consecutive active days.

    The current streak counts back from today and is zero if today has no
    session yet.
    """
    now = resolve_now(now)
    sessions = recent_sessions(store, now, days)
    if not sessions:
        return Streak()

    dates = active_dates(sessions, now.tzinfo)
    current = run_ending_at(dates, now.date()) if dates[0] == now.date() else 0
    last_active = max(s.start_time for s in sessions).astimezone(now.tzinfo)

    return Streak(
        current=current,
        longest=max(longest_run(dates), current),
        last_active=last_active,
    )


def detect_all_patterns(store: AnalyticsStore, now: datetime | None = None) -> HabitReport:
    now = resolve_now(now)
    report = HabitReport(
        time_patterns=detect_time_patterns(store, now),
        day_patterns=detect_day_patterns(store, now),
        focus_patterns=detect_focus_patterns(store, now),
        streak=calculate_streak(store, now),
    )
    logger.debug(
        "Detected %d time, %d day, %d focus patterns",
        len(report.time_patterns),
        len(report.day_patterns),
        len(report.focus_patterns),
    )
    return report
