"""Tests for the click command line."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from claude_stats.cli import main
from claude_stats.store import open_store


@pytest.fixture
def env(tmp_path, history_path, config_path, monkeypatch):
    for name in ("CLAUDE_STATS_WEBHOOK_URL", "CLAUDE_STATS_TAXONOMY_PATH", "CLAUDE_STATS_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CLAUDE_STATS_HISTORY_PATH", str(history_path))
    monkeypatch.setenv("CLAUDE_STATS_CONFIG_PATH", str(config_path))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def recent_history(write_history, write_config):
    """Three prompts in the last few minutes of the real clock."""
    start = datetime.now(timezone.utc) - timedelta(minutes=15)
    write_history(
        ("add tests", "/home/dev/python-tools", start),
        ("fix lint", "/home/dev/python-tools", start + timedelta(minutes=5)),
        ("ship it", "/home/dev/python-tools", start + timedelta(minutes=12)),
    )
    write_config({
        "/home/dev/python-tools": {
            "lastCost": 1.5,
            "lastTotalInputTokens": 2000,
            "lastTotalCacheReadInputTokens": 900,
            "lastTotalCacheCreationInputTokens": 100,
        },
    })


def invoke(db_path, *args):
    return CliRunner().invoke(main, ["--db", str(db_path), *args])


class TestSync:
    def test_sync_reports_counts(self, env, recent_history, db_path):
        result = invoke(db_path, "sync")
        assert result.exit_code == 0, result.output
        assert "Sync completed" in result.output
        assert "Prompts processed: 3" in result.output
        assert "Sessions created: 1" in result.output

        with open_store(db_path) as store:
            assert store.get_project("/home/dev/python-tools").total_cost == 1.5

    def test_sync_with_broken_config_fails(self, env, write_history, config_path, db_path):
        write_history(("a", "/p", datetime.now(timezone.utc) - timedelta(hours=1)))
        config_path.write_text("{nope", encoding="utf-8")

        result = invoke(db_path, "sync")
        assert result.exit_code == 1
        assert "Sync failed" in result.output


class TestReports:
    @pytest.mark.parametrize("command,heading", [
        ("today", "Claude Analytics - Today"),
        ("week", "Claude Analytics - This Week"),
        ("month", "Claude Analytics - This Month"),
    ])
    def test_period_commands(self, env, recent_history, db_path, command, heading):
        invoke(db_path, "sync")
        result = invoke(db_path, command)
        assert result.exit_code == 0, result.output
        assert heading in result.output
        assert "Prompts: 3" in result.output

    def test_projects(self, env, recent_history, db_path):
        invoke(db_path, "sync")
        result = invoke(db_path, "projects", "--sort", "cost")
        assert result.exit_code == 0, result.output
        assert "1. python-tools" in result.output
        assert "Cost: $1.5000" in result.output

    def test_projects_empty(self, env, db_path):
        result = invoke(db_path, "projects")
        assert result.exit_code == 0
        assert "No projects found" in result.output

    def test_projects_rejects_unknown_sort(self, env, db_path):
        result = invoke(db_path, "projects", "--sort", "name")
        assert result.exit_code == 2

    @pytest.mark.parametrize("command", ["cost", "optimize", "heatmap", "habits", "achievements"])
    def test_commands_run_on_empty_database(self, env, db_path, command):
        result = invoke(db_path, command)
        assert result.exit_code == 0, result.output

    def test_cost(self, env, recent_history, db_path):
        invoke(db_path, "sync")
        result = invoke(db_path, "cost")
        assert result.exit_code == 0, result.output
        assert "Total: $1.50" in result.output
        assert "Cache hit ratio: 90.0%" in result.output

    def test_skills(self, env, recent_history, db_path):
        invoke(db_path, "sync")
        result = invoke(db_path, "skills")
        assert result.exit_code == 0, result.output
        assert "Python" in result.output

        detail = invoke(db_path, "skills", "--skill", "python")
        assert detail.exit_code == 0, detail.output
        assert "Usage: 1 sessions" in detail.output

    def test_skills_empty(self, env, db_path):
        result = invoke(db_path, "skills")
        assert result.exit_code == 0
        assert "No skills detected yet" in result.output

    def test_skills_with_broken_taxonomy(self, env, recent_history, db_path, tmp_path, monkeypatch):
        taxonomy = tmp_path / "skills.json"
        taxonomy.write_text("{}", encoding="utf-8")
        monkeypatch.setenv("CLAUDE_STATS_TAXONOMY_PATH", str(taxonomy))
        result = invoke(db_path, "skills")
        assert result.exit_code == 1
        assert "must be a JSON array" in result.output


class TestExport:
    def test_export_projects_csv(self, env, recent_history, db_path, tmp_path):
        invoke(db_path, "sync")
        out = tmp_path / "projects.csv"
        result = invoke(db_path, "export", "projects", "--output", str(out))
        assert result.exit_code == 0, result.output
        assert "Exported 1 records" in result.output
        assert out.read_text(encoding="utf-8").startswith("project_path,first_seen,last_active")

    def test_export_sessions_json_default_name(self, env, recent_history, db_path, tmp_path):
        invoke(db_path, "sync")
        result = invoke(db_path, "export", "sessions", "--format", "json")
        assert result.exit_code == 0, result.output
        (path,) = tmp_path.glob("claude-sessions-*.json")
        (row,) = json.loads(path.read_text(encoding="utf-8"))
        assert row["prompt_count"] == 3

    def test_empty_csv_export_writes_nothing(self, env, db_path, tmp_path):
        result = invoke(db_path, "export", "daily")
        assert result.exit_code == 0
        assert "No data to export" in result.output
        assert list(tmp_path.glob("claude-daily-*")) == []

    def test_unknown_type(self, env, db_path):
        assert invoke(db_path, "export", "habits").exit_code == 2


class TestHook:
    def test_hook_syncs_and_unlocks(self, env, recent_history, db_path):
        result = invoke(db_path, "hook")
        assert result.exit_code == 0, result.output
        assert "New Achievements Unlocked" in result.output
        assert "Cache Master" in result.output

        with open_store(db_path) as store:
            assert store.query_one("SELECT COUNT(*) AS n FROM prompts")["n"] == 3
            assert store.unlocked_achievement_ids()

        again = invoke(db_path, "hook")
        assert again.exit_code == 0
        assert "New Achievements Unlocked" not in again.output

    def test_hook_never_fails(self, env, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        result = invoke(blocker / "analytics.db", "hook")
        assert result.exit_code == 0
        assert result.output == ""
