"""Sync history.jsonl and .claude.json into the analytics database.

Only events newer than the last sync are processed. Sessions and prompts are
upserted, then every touched project is re-rolled up from all stored
sessions and merged with the config snapshot's cost and token figures.
"""

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from .core import ConfigError, ProjectStats, SyncResult, from_iso, resolve_now, to_iso
from .readers import read_history_file, read_project_metrics
from .sessions import DEFAULT_IDLE_GAP_MS, find_owning_session, group_into_sessions
from .store import AnalyticsStore

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "last_sync_time"


def sync(
    store: AnalyticsStore,
    history_path: Path | None = None,
    config_path: Path | None = None,
    now: datetime | None = None,
    idle_gap_ms: int = DEFAULT_IDLE_GAP_MS,
) -> SyncResult:
    """Run one sync pass and return a summary.

    Per-record failures are collected in ``errors``. A source that cannot be
    read at all aborts the pass with a single error and leaves the watermark
    where it was.
    """
    now = resolve_now(now)
    result = SyncResult(last_sync_time=now)

    last_sync = from_iso(store.get_metadata(LAST_SYNC_KEY))
    if last_sync:
        logger.info("Syncing (last sync: %s)", last_sync.isoformat())
    else:
        logger.info("Syncing (first sync)")

    try:
        events = read_history_file(history_path)
        config_projects = read_project_metrics(config_path)
    except (ConfigError, OSError) as e:
        logger.error("Sync failed: %s", e)
        result.errors.append(f"Sync failed: {e}")
        return result

    if last_sync:
        events = [e for e in events if e.time > last_sync]
        logger.info("%d new events since last sync", len(events))
    else:
        logger.info("Found %d history events", len(events))

    owners = store.session_owners(e.session_id for e in events if e.session_id)
    sessions = group_into_sessions(events, idle_gap_ms, owners)
    logger.info("Grouped into %d sessions", len(sessions))

    for session in sessions:
        try:
            if store.upsert_session(session):
                result.sessions_created += 1
        except (sqlite3.Error, ValueError) as e:
            result.errors.append(f"Failed to insert session {session.session_id}: {e}")

    for event in events:
        owner = find_owning_session(event, sessions)
        if owner is None:
            msg = f"No session found for prompt at {event.time.isoformat()} in {event.project}"
            logger.warning(msg)
            result.errors.append(msg)
            continue
        try:
            if store.insert_prompt(owner.session_id, event):
                result.events_processed += 1
        except sqlite3.Error as e:
            result.errors.append(f"Failed to insert prompt: {e}")

    touched = sorted({s.project for s in sessions} | set(config_projects))
    try:
        rollups = store.project_rollups(touched)
    except sqlite3.Error as e:
        logger.error("Failed to roll up projects: %s", e)
        result.errors.append(f"Failed to roll up projects: {e}")
        rollups = {}

    for project_path in touched:
        stats = _build_project_stats(project_path, rollups.get(project_path), config_projects.get(project_path), now)
        try:
            store.upsert_project(stats)
            result.projects_updated += 1
        except sqlite3.Error as e:
            result.errors.append(f"Failed to update project {project_path}: {e}")

    store.set_metadata(LAST_SYNC_KEY, to_iso(now))

    logger.info(
        "Sync complete: %d prompts, %d sessions, %d projects, %d errors",
        result.events_processed,
        result.sessions_created,
        result.projects_updated,
        len(result.errors),
    )
    return result


def _build_project_stats(project_path, rollup, metrics, now) -> ProjectStats:
    stats = ProjectStats(
        project_path=project_path,
        first_seen=now,
        last_active=now,
    )
    if rollup:
        stats.first_seen = rollup["first_seen"]
        stats.last_active = rollup["last_active"]
        stats.total_prompts = rollup["total_prompts"]
        stats.total_sessions = rollup["total_sessions"]
        stats.total_duration_ms = rollup["total_duration_ms"]
    if metrics:
        stats.lines_added = metrics.lines_added
        stats.lines_removed = metrics.lines_removed
        stats.total_cost = metrics.cost
        stats.input_tokens = metrics.input_tokens
        stats.output_tokens = metrics.output_tokens
        stats.cache_creation_tokens = metrics.cache_creation_tokens
        stats.cache_read_tokens = metrics.cache_read_tokens
    return stats
