"""FastAPI dashboard server for claude-stats."""

import logging
import sqlite3
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse

from .config import get_db_path
from .core import Achievement, HabitPattern, SkillProficiency
from .efficiency import analyze_context_efficiency
from .habits import detect_all_patterns
from .reports import activity, overview
from .skills import analyze_skill_proficiency
from .store import open_store

logger = logging.getLogger(__name__)

app = FastAPI(title="claude-stats", version="0.1.0")


def _iso(dt):
    return dt.isoformat() if dt else None


def _achievement_to_dict(a: Achievement) -> dict:
    return {
        "id": a.id,
        "type": a.category,
        "title": a.title,
        "description": a.description,
        "icon": a.icon,
        "unlocked_at": _iso(a.unlocked_at),
        "metadata": a.metadata,
    }


def _skill_to_dict(s: SkillProficiency) -> dict:
    return {
        "skill": s.skill,
        "category": s.category,
        "level": s.level,
        "proficiency": s.proficiency,
        "usage_count": s.usage_count,
        "first_used": _iso(s.first_used),
        "last_used": _iso(s.last_used),
        "days_since_first_use": s.days_since_first_use,
        "consistency": s.consistency,
        "depth": s.depth,
        "related_skills": s.related_skills,
        "next_milestone": s.next_milestone,
    }


def _pattern_to_dict(p: HabitPattern) -> dict:
    return {
        "kind": p.kind,
        "name": p.name,
        "description": p.description,
        "frequency": p.frequency,
        "confidence": round(p.confidence, 1),
        "last_occurrence": _iso(p.last_occurrence),
        "metadata": p.metadata,
    }


# ── Routes ───────────────────────────────────────────────────────


@app.get("/")
async def index():
    """Serve the dashboard page."""
    html_path = Path(__file__).parent / "static" / "index.html"
    if not html_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return HTMLResponse(html_path.read_text(encoding="utf-8"))


@app.get("/api/overview")
async def get_overview():
    """Return all-time totals and the last seven days."""
    try:
        with open_store(get_db_path()) as store:
            return overview(store)
    except sqlite3.Error as e:
        logger.error("Failed to fetch overview: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch overview")


@app.get("/api/achievements")
async def get_achievements():
    """Return unlocked achievements, newest first."""
    try:
        with open_store(get_db_path()) as store:
            unlocked = store.get_unlocked_achievements()
    except sqlite3.Error as e:
        logger.error("Failed to fetch achievements: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch achievements")
    return [_achievement_to_dict(a) for a in unlocked]


@app.get("/api/skills")
async def get_skills():
    try:
        with open_store(get_db_path()) as store:
            skills = analyze_skill_proficiency(store)
    except sqlite3.Error as e:
        logger.error("Failed to fetch skills: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch skills")
    return [_skill_to_dict(s) for s in skills]


@app.get("/api/habits")
async def get_habits():
    """Return habit patterns, the streak and context efficiency."""
    try:
        with open_store(get_db_path()) as store:
            report = detect_all_patterns(store)
            efficiency = analyze_context_efficiency(store)
    except sqlite3.Error as e:
        logger.error("Failed to fetch habits: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch habits")

    return {
        "patterns": {
            "time_patterns": [_pattern_to_dict(p) for p in report.time_patterns],
            "day_patterns": [_pattern_to_dict(p) for p in report.day_patterns],
            "focus_patterns": [_pattern_to_dict(p) for p in report.focus_patterns],
            "streak": {
                "current": report.streak.current,
                "longest": report.streak.longest,
                "last_active": _iso(report.streak.last_active),
            },
        },
        "efficiency": {
            "cache_hit_ratio": efficiency.cache_hit_ratio,
            "average_prompts_per_session": efficiency.average_prompts_per_session,
            "average_session_minutes": efficiency.average_session_minutes,
            "context_resets": efficiency.context_resets,
            "grade": efficiency.grade,
            "recommendations": efficiency.recommendations,
        },
    }


@app.get("/api/activity")
async def get_activity(days: int = Query(30, ge=1, le=3650)):
    """Return sessions and prompts per active day."""
    try:
        with open_store(get_db_path()) as store:
            return activity(store, days)
    except sqlite3.Error as e:
        logger.error("Failed to fetch activity: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch activity")


@app.get("/api/projects")
async def get_projects(limit: int = Query(10, ge=1, le=1000)):
    """Return the most expensive projects."""
    try:
        with open_store(get_db_path()) as store:
            rows = store.query(
                """
                SELECT
                    project_path, total_cost, total_prompts, total_sessions,
                    input_tokens, output_tokens, cache_read_tokens, cache_creation_tokens
                FROM projects
                ORDER BY total_cost DESC
                LIMIT ?
                """,
                (limit,),
            )
    except sqlite3.Error as e:
        logger.error("Failed to fetch projects: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch projects")
    return [dict(row) for row in rows]
