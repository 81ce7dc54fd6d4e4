"""Shared test fixtures for claude-stats."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from claude_stats.core import ProjectStats, Session
from claude_stats.store import open_store

# A Wednesday
NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "analytics.db"


@pytest.fixture
def store(db_path):
    with open_store(db_path) as s:
        yield s


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "history.jsonl"


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / ".claude.json"


@pytest.fixture
def write_history(history_path):
    """Append prompts to a synthetic history.jsonl.

    Each entry is (display, project, datetime) or
    (display, project, datetime, session_id).
    """

    def _write(*entries):
        with history_path.open("a", encoding="utf-8") as f:
            for entry in entries:
                display, project, when, *rest = entry
                line = {"display": display, "project": project, "timestamp": to_ms(when)}
                if rest:
                    line["sessionId"] = rest[0]
                f.write(json.dumps(line) + "\n")
        return history_path

    return _write


@pytest.fixture
def write_config(config_path):
    """Write a synthetic .claude.json with the given projects map."""

    def _write(projects: dict):
        config_path.write_text(json.dumps({"numStartups": 3, "projects": projects}), encoding="utf-8")
        return config_path

    return _write


@pytest.fixture
def make_session(store):
    """Insert a session directly into the store."""
    counter = iter(range(1, 100_000))

    def _make(project: str, start: datetime, minutes: float = 10, prompts: int = 5, session_id: str | None = None):
        session = Session(
            session_id=session_id or f"session-{next(counter)}",
            project=project,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            prompt_count=prompts,
            duration_ms=int(minutes * 60_000),
            first_prompt="first",
            last_prompt="last",
        )
        store.upsert_session(session)
        return session

    return _make


@pytest.fixture
def make_project(store):
    """Insert a project row with the given cost and token figures."""

    def _make(project_path: str, **figures):
        stats = ProjectStats(
            project_path=project_path,
            first_seen=NOW - timedelta(days=10),
            last_active=NOW - timedelta(days=1),
            **figures,
        )
        store.upsert_project(stats)
        return stats

    return _make
