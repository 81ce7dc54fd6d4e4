"""Outbound webhook notifications for Slack, Discord or a generic endpoint.

Configured entirely from the environment:
- CLAUDE_STATS_WEBHOOK_URL: target URL; notifications are off without it
- CLAUDE_STATS_PLATFORM: "slack" (default), "discord" or "webhook"
- CLAUDE_STATS_NOTIFY_ACHIEVEMENTS / _STREAKS / _MILESTONES: on unless "false"
- CLAUDE_STATS_NOTIFY_WEEKLY: off unless "true"

Sending is a single POST without retries. Failures are logged at debug level
and never raised.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime

import httpx

from .config import env_flag
from .core import Achievement, resolve_now, to_iso

logger = logging.getLogger(__name__)

PLATFORMS = ("slack", "discord", "webhook")
HEADER = "🎉 Claude Analytics"
DISCORD_COLOR = 0x5865F2


@dataclass
class NotificationConfig:
    webhook_url: str
    platform: str = "slack"
    achievements: bool = True
    streaks: bool = True
    milestones: bool = True
    weekly_report: bool = False

    @classmethod
    def from_env(cls) -> "NotificationConfig | None":
        """Build a config from the environment, or None if no webhook is set."""
        url = os.environ.get("CLAUDE_STATS_WEBHOOK_URL")
        if not url:
            return None

        platform = os.environ.get("CLAUDE_STATS_PLATFORM", "slack").strip().lower()
        if platform not in PLATFORMS:
            logger.warning("Unknown notification platform %r, using slack", platform)
            platform = "slack"

        return cls(
            webhook_url=url,
            platform=platform,
            achievements=env_flag("CLAUDE_STATS_NOTIFY_ACHIEVEMENTS", True),
            streaks=env_flag("CLAUDE_STATS_NOTIFY_STREAKS", True),
            milestones=env_flag("CLAUDE_STATS_NOTIFY_MILESTONES", True),
            weekly_report=env_flag("CLAUDE_STATS_NOTIFY_WEEKLY", False),
        )


# ── Payloads ─────────────────────────────────────────────────────


def slack_payload(message: str, achievements: list[Achievement] | None = None) -> dict:
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": HEADER, "emoji": True}},
        {"type": "section", "text": {"type": "mrkdwn", "text": message}},
    ]
    if achievements:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "*New Achievements:*"}})
        for a in achievements:
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"{a.icon} *{a.title}*\n{a.description}"},
            })
    return {"blocks": blocks}


def discord_payload(
    message: str,
    achievements: list[Achievement] | None = None,
    now: datetime | None = None,
) -> dict:
    embed = {
        "title": HEADER,
        "description": message,
        "color": DISCORD_COLOR,
        "timestamp": to_iso(resolve_now(now)),
    }
    if achievements:
        embed["fields"] = [
            {"name": f"{a.icon} {a.title}", "value": a.description, "inline": False}
            for a in achievements
        ]
    return {"username": "Claude Analytics", "embeds": [embed]}


def webhook_payload(
    message: str,
    achievements: list[Achievement] | None = None,
    now: datetime | None = None,
) -> dict:
    return {
        "message": message,
        "achievements": [
            {
                "id": a.id,
                "type": a.category,
                "title": a.title,
                "description": a.description,
                "icon": a.icon,
                "unlocked_at": to_iso(a.unlocked_at),
                "metadata": a.metadata,
            }
            for a in achievements or []
        ],
        "timestamp": to_iso(resolve_now(now)),
    }


def build_payload(
    platform: str,
    message: str,
    achievements: list[Achievement] | None = None,
    now: datetime | None = None,
) -> dict:
    if platform == "slack":
        return slack_payload(message, achievements)
    if platform == "discord":
        return discord_payload(message, achievements, now)
    if platform == "webhook":
        return webhook_payload(message, achievements, now)
    raise ValueError(f"Unknown notification platform: {platform}")


async def send_notification(
    config: NotificationConfig,
    message: str,
    achievements: list[Achievement] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """POST one notification. Returns True on a 2xx response."""
    payload = build_payload(config.platform, message, achievements)
    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(config.webhook_url, json=payload)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug("Failed to send %s notification: %s", config.platform, e)
        return False

    if not response.is_success:
        logger.debug("%s notification rejected with HTTP %d", config.platform, response.status_code)
        return False
    return True


# ── Messages ─────────────────────────────────────────────────────


def format_achievement_message(achievements: list[Achievement]) -> str:
    if not achievements:
        return "No new achievements."
    if len(achievements) == 1:
        return f"You unlocked a new achievement: *{achievements[0].title}*!"
    return f"You unlocked {len(achievements)} new achievements!"


def format_streak_message(streak_days: int) -> str:
    if streak_days == 1:
        return "🔥 New streak started! Keep it going!"
    if streak_days % 7 == 0:
        return f"🔥 *{streak_days}-day streak!* You're on fire!"
    if streak_days >= 30:
        return f"🔥 *{streak_days}-day streak!* Incredible consistency!"
    return f"🔥 {streak_days}-day streak! Keep coding!"


def format_weekly_report(sessions: int, prompts: int, projects: int, total_time: str) -> str:
    return (
        "📊 *Weekly Report*\n\n"
        f"• Sessions: {sessions}\n"
        f"• Prompts: {prompts}\n"
        f"• Projects: {projects}\n"
        f"• Total time: {total_time}"
    )
