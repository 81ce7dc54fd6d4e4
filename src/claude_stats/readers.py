"""Readers for the assistant's local data files.

history.jsonl holds one JSON object per prompt:
- "display": the prompt text (required)
- "timestamp": epoch milliseconds (required)
- "project": absolute project path (required)
- "sessionId": explicit session identifier (optional)
- "pastedContents": map of pasted blobs (optional)

.claude.json is a single document; only its "projects" map is read. Each
entry carries "last*" counters from the most recent session in that project.
"""

import json
import logging
from pathlib import Path

from .config import get_claude_config_path, get_history_path
from .core import ConfigError, Event, ProjectMetrics

logger = logging.getLogger(__name__)

# .claude.json key -> ProjectMetrics attribute
_METRIC_FIELDS = {
    "lastCost": "cost",
    "lastAPIDuration": "api_duration_ms",
    "lastDuration": "duration_ms",
    "lastLinesAdded": "lines_added",
    "lastLinesRemoved": "lines_removed",
    "lastTotalInputTokens": "input_tokens",
    "lastTotalOutputTokens": "output_tokens",
    "lastTotalCacheCreationInputTokens": "cache_creation_tokens",
    "lastTotalCacheReadInputTokens": "cache_read_tokens",
    "lastTotalWebSearchRequests": "web_search_requests",
}


def read_history_file(path: Path | None = None) -> list[Event]:
    """Read every valid event from history.jsonl, in file order."""
    path = Path(path) if path is not None else get_history_path()
    if not path.exists():
        logger.info("History file not found: %s", path)
        return []

    events = []
    with path.open(encoding="utf-8", errors="replace") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            event = parse_history_line(line)
            if event is None:
                logger.warning("Skipping malformed history line %s:%d", path.name, line_num)
                continue
            events.append(event)

    logger.debug("Read %d events from %s", len(events), path)
    return events


def parse_history_line(line: str) -> Event | None:
    """Parse one history line, returning None if it fails validation."""
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return None

    if not isinstance(entry, dict):
        return None

    display = entry.get("display")
    project = entry.get("project")
    timestamp = entry.get("timestamp")
    session_id = entry.get("sessionId")
    pasted = entry.get("pastedContents")

    if not isinstance(display, str) or not isinstance(project, str):
        return None
    if not _is_number(timestamp):
        return None
    if session_id is not None and not isinstance(session_id, str):
        return None
    if pasted is not None and not isinstance(pasted, dict):
        return None

    return Event(
        content=display,
        project=project,
        timestamp=int(timestamp),
        session_id=session_id,
        pasted_contents=pasted or {},
    )


def read_project_metrics(path: Path | None = None) -> dict[str, ProjectMetrics]:
    """Read the per-project metrics map from .claude.json.

    Raises ConfigError when the file exists but is not a usable document.
    """
    path = Path(path) if path is not None else get_claude_config_path()
    if not path.exists():
        logger.info("Claude config not found: %s", path)
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}")

    projects = data.get("projects", {})
    if not isinstance(projects, dict):
        raise ConfigError(f'"projects" in {path} is not an object')

    metrics = {}
    for project_path, entry in projects.items():
        parsed = _parse_metrics(entry)
        if parsed is None:
            logger.warning("Skipping malformed metrics for project %s", project_path)
            continue
        metrics[project_path] = parsed

    return metrics


def _parse_metrics(entry) -> ProjectMetrics | None:
    if not isinstance(entry, dict):
        return None

    metrics = ProjectMetrics()
    for key, attr in _METRIC_FIELDS.items():
        value = entry.get(key)
        if value is None:
            continue
        if not _is_number(value):
            return None
        setattr(metrics, attr, value)

    last_session = entry.get("lastSessionId")
    if isinstance(last_session, str):
        metrics.last_session_id = last_session

    return metrics


def _is_number(value) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, (int, float)) and not isinstance(value, bool)
