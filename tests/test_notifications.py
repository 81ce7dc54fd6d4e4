"""Tests for webhook notifications."""

import json

import httpx
import pytest

from claude_stats.core import Achievement
from claude_stats.notifications import (
    NotificationConfig,
    build_payload,
    discord_payload,
    format_achievement_message,
    format_streak_message,
    format_weekly_report,
    send_notification,
    slack_payload,
    webhook_payload,
)

from conftest import NOW

ENV_VARS = (
    "CLAUDE_STATS_WEBHOOK_URL",
    "CLAUDE_STATS_PLATFORM",
    "CLAUDE_STATS_NOTIFY_ACHIEVEMENTS",
    "CLAUDE_STATS_NOTIFY_STREAKS",
    "CLAUDE_STATS_NOTIFY_MILESTONES",
    "CLAUDE_STATS_NOTIFY_WEEKLY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def achievement():
    return Achievement(
        id="streak_7",
        category="streak",
        title="Week Warrior",
        description="Maintained a 7-day coding streak!",
        icon="⚡",
        unlocked_at=NOW,
        metadata={"streak_days": 7},
    )


class TestConfigFromEnv:
    def test_disabled_without_url(self):
        assert NotificationConfig.from_env() is None

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_STATS_WEBHOOK_URL", "https://hooks.example.com/x")
        config = NotificationConfig.from_env()
        assert config.platform == "slack"
        assert config.achievements and config.streaks and config.milestones
        assert config.weekly_report is False

    def test_toggles(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_STATS_WEBHOOK_URL", "https://hooks.example.com/x")
        monkeypatch.setenv("CLAUDE_STATS_PLATFORM", "Discord")
        monkeypatch.setenv("CLAUDE_STATS_NOTIFY_STREAKS", "false")
        monkeypatch.setenv("CLAUDE_STATS_NOTIFY_WEEKLY", "true")
        config = NotificationConfig.from_env()
        assert config.platform == "discord"
        assert config.streaks is False
        assert config.weekly_report is True

    def test_unknown_platform_falls_back_to_slack(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_STATS_WEBHOOK_URL", "https://hooks.example.com/x")
        monkeypatch.setenv("CLAUDE_STATS_PLATFORM", "pager")
        assert NotificationConfig.from_env().platform == "slack"


class TestPayloads:
    def test_slack(self, achievement):
        blocks = slack_payload("hello", [achievement])["blocks"]
        assert blocks[0]["type"] == "header"
        assert blocks[1]["text"]["text"] == "hello"
        assert blocks[-1]["text"]["text"] == "⚡ *Week Warrior*\nMaintained a 7-day coding streak!"

    def test_slack_without_achievements(self):
        assert len(slack_payload("hello")["blocks"]) == 2

    def test_discord(self, achievement):
        payload = discord_payload("hello", [achievement], NOW)
        assert payload["username"] == "Claude Analytics"
        (embed,) = payload["embeds"]
        assert embed["description"] == "hello"
        assert embed["color"] == 0x5865F2
        assert embed["timestamp"] == "2025-01-15T12:00:00.000+00:00"
        assert embed["fields"] == [
            {"name": "⚡ Week Warrior", "value": "Maintained a 7-day coding streak!", "inline": False},
        ]

    def test_generic_webhook(self, achievement):
        payload = webhook_payload("hello", [achievement], NOW)
        assert payload["message"] == "hello"
        assert payload["achievements"][0]["id"] == "streak_7"
        assert payload["achievements"][0]["type"] == "streak"
        assert payload["achievements"][0]["metadata"] == {"streak_days": 7}

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            build_payload("pager", "hello")


class TestSendNotification:
    @pytest.mark.asyncio
    async def test_posts_payload(self, achievement):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        config = NotificationConfig(webhook_url="https://hooks.example.com/x", platform="webhook")
        ok = await send_notification(config, "hi", [achievement], transport=httpx.MockTransport(handler))

        assert ok is True
        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == "https://hooks.example.com/x"
        body = json.loads(request.content)
        assert body["message"] == "hi"
        assert body["achievements"][0]["title"] == "Week Warrior"

    @pytest.mark.asyncio
    async def test_rejected_response(self):
        config = NotificationConfig(webhook_url="https://hooks.example.com/x")
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        assert await send_notification(config, "hi", transport=transport) is False

    @pytest.mark.asyncio
    async def test_network_error_is_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        config = NotificationConfig(webhook_url="https://hooks.example.com/x")
        assert await send_notification(config, "hi", transport=httpx.MockTransport(handler)) is False

    @pytest.mark.asyncio
    async def test_malformed_url_is_not_raised(self):
        sent = []
        transport = httpx.MockTransport(lambda request: sent.append(request) or httpx.Response(200))
        config = NotificationConfig(webhook_url="http://[::1/x", platform="webhook")

        assert await send_notification(config, "hi", transport=transport) is False
        assert sent == []


class TestMessages:
    def test_achievement_message(self, achievement):
        assert format_achievement_message([]) == "No new achievements."
        assert format_achievement_message([achievement]) == "You unlocked a new achievement: *Week Warrior*!"
        assert format_achievement_message([achievement, achievement]) == "You unlocked 2 new achievements!"

    @pytest.mark.parametrize("days,expected", [
        (1, "🔥 New streak started! Keep it going!"),
        (14, "🔥 *14-day streak!* You're on fire!"),
        (31, "🔥 *31-day streak!* Incredible consistency!"),
        (5, "🔥 5-day streak! Keep coding!"),
    ])
    def test_streak_message(self, days, expected):
        assert format_streak_message(days) == expected

    def test_weekly_report(self):
        report = format_weekly_report(12, 140, 3, "6h 10m")
        assert report.startswith("📊 *Weekly Report*")
        assert "• Prompts: 140" in report
        assert report.endswith("• Total time: 6h 10m")
