"""Core data models for claude-stats."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ClaudeStatsError(Exception):
    """Base class for claude-stats errors."""


class ConfigError(ClaudeStatsError):
    """A source file exists but cannot be read as a whole."""


@dataclass(frozen=True)
class Event:
    """A single prompt from the history log."""

    content: str
    project: str
    timestamp: int  # epoch milliseconds
    session_id: Optional[str] = None
    pasted_contents: dict = field(default_factory=dict)

    @property
    def time(self) -> datetime:
        return ms_to_datetime(self.timestamp)

    @property
    def pasted_count(self) -> int:
        return len(self.pasted_contents)


@dataclass
class Session:
    """A contiguous run of prompts on one project."""

    session_id: str
    project: str
    start_time: datetime
    end_time: datetime
    prompt_count: int
    duration_ms: int
    first_prompt: str
    last_prompt: str


@dataclass
class ProjectMetrics:
    """Per-project figures from the assistant's config snapshot."""

    cost: float = 0.0
    api_duration_ms: float = 0
    duration_ms: float = 0
    lines_added: int = 0
    lines_removed: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    web_search_requests: int = 0
    last_session_id: Optional[str] = None


@dataclass
class ProjectStats:
    """One row of the projects table."""

    project_path: str
    first_seen: datetime
    last_active: datetime
    total_prompts: int = 0
    total_sessions: int = 0
    total_duration_ms: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    total_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0


@dataclass
class SyncResult:
    events_processed: int = 0
    sessions_created: int = 0
    projects_updated: int = 0
    errors: list[str] = field(default_factory=list)
    last_sync_time: Optional[datetime] = None


@dataclass
class HabitPattern:
    """A detected usage habit."""

    kind: str  # "time" | "day" | "focus"
    name: str
    description: str
    frequency: int
    confidence: float  # 0-100
    last_occurrence: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)  # hour range, days, projects


@dataclass
class Streak:
    current: int = 0
    longest: int = 0
    last_active: Optional[datetime] = None


@dataclass
class SkillDefinition:
    name: str
    category: str  # "framework" | "language" | "tool" | "platform" | "concept"
    keywords: list[str]
    related_skills: list[str] = field(default_factory=list)
    learning_path: list[str] = field(default_factory=list)


@dataclass
class SkillProficiency:
    skill: str
    category: str
    level: str  # "beginner" | "intermediate" | "advanced" | "expert"
    proficiency: int  # 0-100
    usage_count: int  # sessions
    first_used: datetime
    last_used: datetime
    days_since_first_use: int
    consistency: int  # 0-100
    depth: int  # 0-100
    related_skills: list[str] = field(default_factory=list)
    next_milestone: str = ""


@dataclass
class Achievement:
    id: str
    category: str  # "streak" | "skill" | "cost" | "productivity" | "milestone"
    title: str
    description: str
    icon: str
    unlocked_at: datetime
    metadata: dict = field(default_factory=dict)


@dataclass
class AchievementProgress:
    current: float
    target: float
    percentage: float


@dataclass
class AchievementCheck:
    achieved: bool
    achievement: Optional[Achievement] = None
    progress: Optional[AchievementProgress] = None


# ── Time helpers ─────────────────────────────────────────────────


def ms_to_datetime(ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=ms)


def datetime_to_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def to_iso(dt: datetime) -> str:
    """Serialize a datetime the way the store keeps it (UTC, milliseconds)."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def from_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 string into an aware datetime."""
    if not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def resolve_now(now: datetime | None = None) -> datetime:
    """Return an aware "now", defaulting to the local wall clock.

    Calendar bucketing (hours, weekdays, dates) happens in the timezone of
    the returned value.
    """
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        return now.astimezone()
    return now
