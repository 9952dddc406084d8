"""Moderator alerts for flagged submissions.

Delivery is fire-and-forget: routes schedule :meth:`ModerationNotifier.notify`
as a background task after the submission is committed, and every failure
is logged as ``notification_failed`` and swallowed. Two channels, each
optional:

- the moderation channel webhook (``MODERATION_WEBHOOK_URL``)
- a direct message to the owner through the bot identity
  (``OWNER_DISCORD_ID`` + ``DISCORD_BOT_TOKEN``)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from backend.app.core.clock import utcnow
from backend.app.core.logging import log_event
from backend.app.core.settings import Settings, settings

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
ALERT_COLOR = 0xFFA500
ALERT_DESCRIPTION_LIMIT = 200


@dataclass(frozen=True)
class ModerationAlert:
    """What moderators need to review a flagged preset."""

    preset_id: str
    preset_name: str
    description: str
    author_name: str | None
    author_id: str | None
    reason: str
    dyes: list[int] = field(default_factory=list)


def build_alert_embed(alert: ModerationAlert) -> dict:
    """Build the Discord embed for *alert* (description capped at 200 chars)."""
    return {
        "title": "⚠️ Palette Pending Review",
        "color": ALERT_COLOR,
        "fields": [
            {"name": "Name", "value": alert.preset_name, "inline": True},
            {
                "name": "Submitted by",
                "value": alert.author_name or "Unknown",
                "inline": True,
            },
            {"name": "Flagged Reason", "value": alert.reason, "inline": False},
            {
                "name": "Description",
                "value": alert.description[:ALERT_DESCRIPTION_LIMIT],
                "inline": False,
            },
            {"name": "Preset ID", "value": f"`{alert.preset_id}`", "inline": False},
        ],
        "footer": {
            "text": (
                "Use /preset moderate approve <id> or "
                "/preset moderate reject <id> <reason>"
            ),
        },
        "timestamp": utcnow().isoformat() + "Z",
    }


class ModerationNotifier:
    """Posts alerts to the configured channels; never raises."""

    def __init__(
        self,
        *,
        webhook_url: str | None = None,
        owner_id: str | None = None,
        bot_token: str | None = None,
        timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._owner_id = owner_id
        self._bot_token = bot_token
        self._timeout = timeout_seconds
        self._client = client

    @property
    def channels(self) -> list[str]:
        configured = []
        if self._webhook_url:
            configured.append("webhook")
        if self._owner_id and self._bot_token:
            configured.append("dm")
        return configured

    def notify(self, alert: ModerationAlert) -> None:
        if not self.channels:
            return
        payload = {"embeds": [build_alert_embed(alert)]}
        if self._client is not None:
            self._deliver(self._client, alert, payload)
            return
        with httpx.Client(timeout=self._timeout) as client:
            self._deliver(client, alert, payload)

    def _deliver(
        self, client: httpx.Client, alert: ModerationAlert, payload: dict,
    ) -> None:
        if self._webhook_url:
            try:
                response = client.post(self._webhook_url, json=payload)
                response.raise_for_status()
            except Exception as exc:
                self._failed(alert, "webhook", exc)

        if self._owner_id and self._bot_token:
            try:
                self._send_dm(client, payload)
            except Exception as exc:
                self._failed(alert, "dm", exc)

    def _send_dm(self, client: httpx.Client, payload: dict) -> None:
        headers = {"Authorization": f"Bot {self._bot_token}"}
        channel = client.post(
            f"{DISCORD_API_BASE}/users/@me/channels",
            headers=headers,
            json={"recipient_id": self._owner_id},
        )
        channel.raise_for_status()
        channel_id = channel.json()["id"]
        message = client.post(
            f"{DISCORD_API_BASE}/channels/{channel_id}/messages",
            headers=headers,
            json=payload,
        )
        message.raise_for_status()

    @staticmethod
    def _failed(alert: ModerationAlert, channel: str, exc: Exception) -> None:
        log_event(
            logger, "warning", "notification_failed",
            preset_id=alert.preset_id,
            channel=channel,
            error=type(exc).__name__,
        )


def build_notifier(config: Settings) -> ModerationNotifier:
    return ModerationNotifier(
        webhook_url=config.moderation_webhook_url,
        owner_id=config.owner_discord_id,
        bot_token=config.discord_bot_token,
        timeout_seconds=config.notification_timeout_seconds,
    )


def get_notifier() -> ModerationNotifier:
    """FastAPI dependency; overridden in tests."""
    return build_notifier(settings)
