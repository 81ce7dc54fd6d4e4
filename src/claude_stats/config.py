"""Path resolution for the assistant's data files and the analytics database."""

import os
from pathlib import Path


def get_history_path() -> Path:
    """Return the path to the prompt history log (history.jsonl)."""
    env = os.environ.get("CLAUDE_STATS_HISTORY_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude" / "history.jsonl"


def get_claude_config_path() -> Path:
    """Return the path to the per-project metrics snapshot (.claude.json)."""
    env = os.environ.get("CLAUDE_STATS_CONFIG_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude.json"


def get_db_path() -> Path:
    """Return the path to the analytics SQLite database."""
    env = os.environ.get("CLAUDE_STATS_DB_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude" / "analytics.db"


def get_taxonomy_path() -> Path | None:
    """Return a custom skill taxonomy file, if one is configured."""
    env = os.environ.get("CLAUDE_STATS_TAXONOMY_PATH")
    if env:
        return Path(env)
    return None


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean toggle; only the literal opposite of the default flips it."""
    value = os.environ.get(name)
    if value is None:
        return default
    if default:
        return value.strip().lower() != "false"
    return value.strip().lower() == "true"
