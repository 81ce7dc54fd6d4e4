"""SQLite storage for synced sessions, prompts, project rollups and achievements.

The database lives at ~/.claude/analytics.db by default. Every timestamp
column holds an ISO 8601 UTC string with millisecond precision, so string
comparison in SQL matches temporal order.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .config import get_db_path
from .core import (
    Achievement,
    Event,
    ProjectStats,
    Session,
    from_iso,
    to_iso,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    project TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    prompt_count INTEGER NOT NULL DEFAULT 0,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    first_prompt TEXT,
    last_prompt TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_sessions_project ON sessions(project);
CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time);

CREATE TABLE IF NOT EXISTS prompts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    project TEXT NOT NULL,
    display TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    pasted_contents_count INTEGER DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    FOREIGN KEY (session_id) REFERENCES sessions(session_id),
    UNIQUE (project, timestamp, display)
);
CREATE INDEX IF NOT EXISTS idx_prompts_session ON prompts(session_id);
CREATE INDEX IF NOT EXISTS idx_prompts_timestamp ON prompts(timestamp);

CREATE TABLE IF NOT EXISTS projects (
    project_path TEXT PRIMARY KEY,
    first_seen TEXT NOT NULL,
    last_active TEXT NOT NULL,
    total_prompts INTEGER DEFAULT 0,
    total_sessions INTEGER DEFAULT 0,
    total_duration_ms INTEGER DEFAULT 0,
    lines_added INTEGER DEFAULT 0,
    lines_removed INTEGER DEFAULT 0,
    total_cost REAL DEFAULT 0,
    input_tokens INTEGER DEFAULT 0,
    output_tokens INTEGER DEFAULT 0,
    cache_creation_tokens INTEGER DEFAULT 0,
    cache_read_tokens INTEGER DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS achievements (
    achievement_id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    icon TEXT NOT NULL,
    unlocked_at TEXT NOT NULL,
    metadata TEXT
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


@contextmanager
def open_store(db_path: Path | str | None = None) -> Iterator["AnalyticsStore"]:
    """Open the analytics database for the duration of a block.

    The connection is closed on every exit path.
    """
    path = Path(db_path) if db_path is not None else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    try:
        store = AnalyticsStore(conn)
        store.initialize()
        yield store
    finally:
        conn.close()


class AnalyticsStore:
    """Thin wrapper over a sqlite3 connection with the analytics schema."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def initialize(self) -> None:
        """Enable WAL and apply the schema if it is missing or outdated."""
        self.conn.execute("PRAGMA journal_mode = WAL")
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version ("
            " version INTEGER PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT (datetime('now')))"
        )
        row = self.conn.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        if row is None or row["version"] < SCHEMA_VERSION:
            self.conn.executescript(_SCHEMA)
            with self.conn:
                self.conn.execute(
                    "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,),
                )
            logger.debug("Applied schema version %d", SCHEMA_VERSION)

    # ── Generic queries ──────────────────────────────────────────

    def query(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        return self.conn.execute(sql, tuple(params)).fetchall()

    def query_one(self, sql: str, params: Sequence = ()) -> sqlite3.Row | None:
        return self.conn.execute(sql, tuple(params)).fetchone()

    # ── Sessions and prompts ─────────────────────────────────────

    def get_session(self, session_id: str) -> Session | None:
        row = self.query_one("SELECT * FROM sessions WHERE session_id = ?", (session_id,))
        if row is None:
            return None
        return row_to_session(row)

    def session_owners(self, session_ids: Iterable[str]) -> dict[str, str]:
        """Map each stored session id among ``session_ids`` to its project."""
        ids = sorted(set(session_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self.query(
            f"SELECT session_id, project FROM sessions WHERE session_id IN ({placeholders})",
            ids,
        )
        return {row["session_id"]: row["project"] for row in rows}

    def upsert_session(self, session: Session) -> bool:
        """Insert a session, or extend the stored one with the same id.

        Start time and first prompt are fixed once written. Returns True when
        a new row was inserted. Raises ValueError if the stored row
        belongs to another project.
        """
        existing = self.get_session(session.session_id)
        merged = merge_sessions(existing, session) if existing else session
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO sessions (
                    session_id, project, start_time, end_time,
                    prompt_count, duration_ms, first_prompt, last_prompt
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    end_time = excluded.end_time,
                    prompt_count = excluded.prompt_count,
                    duration_ms = excluded.duration_ms,
                    last_prompt = excluded.last_prompt
                """,
                (
                    merged.session_id,
                    merged.project,
                    to_iso(merged.start_time),
                    to_iso(merged.end_time),
                    merged.prompt_count,
                    merged.duration_ms,
                    merged.first_prompt,
                    merged.last_prompt,
                ),
            )
        return existing is None

    def insert_prompt(self, session_id: str, event: Event) -> bool:
        """Record a prompt; returns False if it was already stored."""
        with self.conn:
            cur = self.conn.execute(
                """
                INSERT OR IGNORE INTO prompts
                    (session_id, project, display, timestamp, pasted_contents_count)
                VALUES (?, ?, ?, ?, ?)
                """,
                (session_id, event.project, event.content, to_iso(event.time), event.pasted_count),
            )
        return cur.rowcount > 0

    # ── Projects ─────────────────────────────────────────────────

    def project_rollups(self, projects: Sequence[str]) -> dict[str, dict]:
        """Aggregate all stored sessions of the given projects."""
        if not projects:
            return {}
        placeholders = ",".join("?" for _ in projects)
        rows = self.query(
            f"""
            SELECT
                project,
                MIN(start_time) AS first_seen,
                MAX(end_time) AS last_active,
                SUM(prompt_count) AS total_prompts,
                COUNT(*) AS total_sessions,
                SUM(duration_ms) AS total_duration_ms
            FROM sessions
            WHERE project IN ({placeholders})
            GROUP BY project
            """,
            list(projects),
        )
        return {
            row["project"]: {
                "first_seen": from_iso(row["first_seen"]),
                "last_active": from_iso(row["last_active"]),
                "total_prompts": row["total_prompts"] or 0,
                "total_sessions": row["total_sessions"] or 0,
                "total_duration_ms": row["total_duration_ms"] or 0,
            }
            for row in rows
        }

    def upsert_project(self, stats: ProjectStats) -> None:
        """Insert or update a project row without ever lowering a figure."""
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO projects (
                    project_path, first_seen, last_active, total_prompts, total_sessions,
                    total_duration_ms, lines_added, lines_removed, total_cost,
                    input_tokens, output_tokens, cache_creation_tokens, cache_read_tokens
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_path) DO UPDATE SET
                    first_seen = MIN(projects.first_seen, excluded.first_seen),
                    last_active = CASE
                        WHEN excluded.total_sessions > 0
                        THEN MAX(projects.last_active, excluded.last_active)
                        ELSE projects.last_active
                    END,
                    total_prompts = MAX(projects.total_prompts, excluded.total_prompts),
                    total_sessions = MAX(projects.total_sessions, excluded.total_sessions),
                    total_duration_ms = MAX(projects.total_duration_ms, excluded.total_duration_ms),
                    lines_added = MAX(projects.lines_added, excluded.lines_added),
                    lines_removed = MAX(projects.lines_removed, excluded.lines_removed),
                    total_cost = MAX(projects.total_cost, excluded.total_cost),
                    input_tokens = MAX(projects.input_tokens, excluded.input_tokens),
                    output_tokens = MAX(projects.output_tokens, excluded.output_tokens),
                    cache_creation_tokens = MAX(projects.cache_creation_tokens, excluded.cache_creation_tokens),
                    cache_read_tokens = MAX(projects.cache_read_tokens, excluded.cache_read_tokens),
                    updated_at = datetime('now')
                """,
                (
                    stats.project_path,
                    to_iso(stats.first_seen),
                    to_iso(stats.last_active),
                    stats.total_prompts,
                    stats.total_sessions,
                    stats.total_duration_ms,
                    stats.lines_added,
                    stats.lines_removed,
                    stats.total_cost,
                    stats.input_tokens,
                    stats.output_tokens,
                    stats.cache_creation_tokens,
                    stats.cache_read_tokens,
                ),
            )

    def get_project(self, project_path: str) -> ProjectStats | None:
        row = self.query_one("SELECT * FROM projects WHERE project_path = ?", (project_path,))
        if row is None:
            return None
        return ProjectStats(
            project_path=row["project_path"],
            first_seen=from_iso(row["first_seen"]),
            last_active=from_iso(row["last_active"]),
            total_prompts=row["total_prompts"],
            total_sessions=row["total_sessions"],
            total_duration_ms=row["total_duration_ms"],
            lines_added=row["lines_added"],
            lines_removed=row["lines_removed"],
            total_cost=row["total_cost"],
            input_tokens=row["input_tokens"],
            output_tokens=row["output_tokens"],
            cache_creation_tokens=row["cache_creation_tokens"],
            cache_read_tokens=row["cache_read_tokens"],
        )

    # ── Metadata ─────────────────────────────────────────────────

    def get_metadata(self, key: str) -> str | None:
        row = self.query_one("SELECT value FROM metadata WHERE key = ?", (key,))
        return row["value"] if row else None

    def set_metadata(self, key: str, value: str) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO metadata (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now')
                """,
                (key, value),
            )

    # ── Achievements ─────────────────────────────────────────────

    def save_achievement(self, achievement: Achievement) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO achievements
                    (achievement_id, type, title, description, icon, unlocked_at, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    achievement.id,
                    achievement.category,
                    achievement.title,
                    achievement.description,
                    achievement.icon,
                    to_iso(achievement.unlocked_at),
                    json.dumps(achievement.metadata) if achievement.metadata else None,
                ),
            )

    def unlocked_achievement_ids(self) -> set[str]:
        return {row["achievement_id"] for row in self.query("SELECT achievement_id FROM achievements")}

    def get_unlocked_achievements(self) -> list[Achievement]:
        rows = self.query("SELECT * FROM achievements ORDER BY unlocked_at DESC")
        return [
            Achievement(
                id=row["achievement_id"],
                category=row["type"],
                title=row["title"],
                description=row["description"],
                icon=row["icon"],
                unlocked_at=from_iso(row["unlocked_at"]),
                metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            )
            for row in rows
        ]


def merge_sessions(existing: Session, update: Session) -> Session:
    """Combine a stored session with a newly built one carrying the same id.

    A fragment that starts after the stored end continues the session and
    its prompts are added. Anything else is a re-sync of prompts already
    counted, so the larger count wins.
    """
    if update.project != existing.project:
        raise ValueError(
            f"Session {existing.session_id} belongs to {existing.project}, not {update.project}"
        )
    if update.start_time > existing.end_time:
        prompt_count = existing.prompt_count + update.prompt_count
    else:
        prompt_count = max(existing.prompt_count, update.prompt_count)

    if update.end_time >= existing.end_time:
        end_time, last_prompt = update.end_time, update.last_prompt
    else:
        end_time, last_prompt = existing.end_time, existing.last_prompt

    return Session(
        session_id=existing.session_id,
        project=existing.project,
        start_time=existing.start_time,
        end_time=end_time,
        prompt_count=prompt_count,
        duration_ms=_ms_between(existing.start_time, end_time),
        first_prompt=existing.first_prompt,
        last_prompt=last_prompt,
    )


def _ms_between(start: datetime, end: datetime) -> int:
    return int(round((end - start).total_seconds() * 1000))


def row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        session_id=row["session_id"],
        project=row["project"],
        start_time=from_iso(row["start_time"]),
        end_time=from_iso(row["end_time"]),
        prompt_count=row["prompt_count"],
        duration_ms=row["duration_ms"],
        first_prompt=row["first_prompt"] or "",
        last_prompt=row["last_prompt"] or "",
    )
