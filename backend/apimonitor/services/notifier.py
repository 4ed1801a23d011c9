"""Notification dispatcher - routes alerts to Slack, Discord and email channels."""
import abc
import html
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

import httpx

from ..models import Monitor, NotificationChannel
from .email_sender import EmailSenderService, email_sender_service

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 10

# Discord embed colours
_DISCORD_RED = 0xFF0000
_DISCORD_GREEN = 0x00FF00


@dataclass
class SendResult:
    """Outcome of one delivery attempt."""
    success: bool
    error: Optional[str] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChannelSender(abc.ABC):
    """Delivers an alert for one channel type."""

    channel_type: str = ""

    @abc.abstractmethod
    async def send(
        self,
        config: dict,
        monitor: Monitor,
        status: str,
        message: str,
    ) -> SendResult:
        """Deliver the alert. Failures are returned, not raised."""


class WebhookSender(ChannelSender):
    """POSTs a JSON payload to the channel's webhook_url."""

    label = "Webhook"

    def __init__(
        self,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    @abc.abstractmethod
    def build_payload(self, monitor: Monitor, status: str, message: str) -> dict:
        """Channel-specific request body."""

    async def send(self, config, monitor, status, message):
        webhook_url = (config or {}).get("webhook_url")
        if not webhook_url:
            return SendResult(success=False, error=f"{self.label} webhook URL not configured")

        payload = self.build_payload(monitor, status, message)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(webhook_url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Failed to send {self.label} webhook for {monitor.name}: {e}")
            return SendResult(success=False, error=str(e) or type(e).__name__)

        if not response.is_success:
            logger.warning(f"{self.label} webhook returned {response.status_code}")
            return SendResult(success=False, error=f"{self.label} API error: {response.text}")

        logger.info(f"{self.label} alert sent: {status} for {monitor.name}")
        return SendResult(success=True)


class SlackSender(WebhookSender):
    channel_type = "slack"
    label = "Slack"

    def build_payload(self, monitor, status, message):
        emoji = ":red_circle:" if status == "down" else ":large_green_circle:"
        return {
            "text": message,
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"{emoji} *{monitor.name}* is *{status.upper()}*"},
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": message},
                },
                {
                    "type": "context",
                    "elements": [{"type": "mrkdwn", "text": f"_Sent at {_timestamp()}_"}],
                },
            ],
        }


class DiscordSender(WebhookSender):
    channel_type = "discord"
    label = "Discord"

    def build_payload(self, monitor, status, message):
        return {
            "embeds": [
                {
                    "title": f"{monitor.name} is {status.upper()}",
                    "description": message,
                    "color": _DISCORD_RED if status == "down" else _DISCORD_GREEN,
                    "timestamp": _timestamp(),
                    "footer": {"text": "API Monitor"},
                }
            ]
        }


class EmailSender(ChannelSender):
    channel_type = "email"

    def __init__(self, email_sender: Optional[EmailSenderService] = None):
        self._email_sender = email_sender or email_sender_service

    def build_subject(self, monitor: Monitor, status: str) -> str:
        return f"[{status.upper()}] {monitor.name}"

    def build_html(self, monitor: Monitor, status: str, message: str) -> str:
        color = "#dc2626" if status == "down" else "#16a34a"
        return (
            '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
            f'<h2 style="color: {color};">{html.escape(monitor.name)} is {status.upper()}</h2>'
            f'<p style="color: #374151; line-height: 1.5;">{html.escape(message)}</p>'
            '<hr style="border: none; border-top: 1px solid #e5e7eb; margin: 20px 0;" />'
            f'<p style="color: #9ca3af; font-size: 12px;">Sent at {_timestamp()} by API Monitor</p>'
            "</div>"
        )

    def build_text(self, monitor: Monitor, status: str, message: str) -> str:
        lines = [
            f"{monitor.name} is {status.upper()}",
            "=" * 40,
            "",
            message,
            "",
            f"URL: {monitor.url}",
            f"Time: {_timestamp()}",
            "",
            "--",
            "API Monitor",
        ]
        return "\n".join(lines)

    async def send(self, config, monitor, status, message):
        address = (config or {}).get("email")
        if not address:
            return SendResult(success=False, error="Email address not configured")

        success, error = await self._email_sender.send_email(
            address,
            self.build_subject(monitor, status),
            self.build_html(monitor, status, message),
            self.build_text(monitor, status, message),
        )
        return SendResult(success=success, error=error)


def default_senders() -> list:
    return [SlackSender(), DiscordSender(), EmailSender()]


class NotificationDispatcher:
    """Dispatches an alert to the sender registered for the channel's type."""

    def __init__(self, senders: Optional[Iterable[ChannelSender]] = None):
        self._senders: Dict[str, ChannelSender] = {}
        for sender in senders if senders is not None else default_senders():
            self.register(sender)

    def register(self, sender: ChannelSender):
        """Add or replace the sender for a channel type."""
        self._senders[sender.channel_type] = sender

    @property
    def channel_types(self) -> list:
        return sorted(self._senders)

    async def send(
        self,
        channel: Optional[NotificationChannel],
        monitor: Monitor,
        status: str,
        message: str,
    ) -> SendResult:
        """Send an alert. Inactive channels fail without any network call."""
        if channel is None:
            return SendResult(success=False, error="Channel not found")

        if not channel.is_active:
            return SendResult(success=False, error="Channel is not active")

        sender = self._senders.get(channel.type)
        if sender is None:
            return SendResult(success=False, error=f"Unknown channel type: {channel.type}")

        return await sender.send(channel.config or {}, monitor, status, message)


# Global instance
notification_dispatcher = NotificationDispatcher()
