"""
Slack client adapter for RallyBot.
"""

import asyncio
from typing import Iterable, Optional

import structlog
from slack_sdk.web.async_client import AsyncWebClient

from ..challenge.notifications import ChannelMessage, EphemeralMessage, Notification
from ..config import get_config

logger = structlog.get_logger(__name__)


class SlackNotifier:
    """Delivers notifications through the Slack Web API."""

    def __init__(self, client: Optional[AsyncWebClient] = None):
        self.client = client or AsyncWebClient(token=get_config().slack_bot_token)

    async def send(self, notification: Notification):
        """Send one notification."""
        if isinstance(notification, EphemeralMessage):
            kwargs = {}
            if notification.attachments:
                kwargs["attachments"] = notification.attachments
            return await self.client.chat_postEphemeral(
                channel=notification.channel_id,
                user=notification.user_id,
                text=notification.text,
                **kwargs,
            )
        if isinstance(notification, ChannelMessage):
            return await self.client.chat_postMessage(
                channel=notification.channel_id,
                text=notification.text,
            )
        raise TypeError(f"Unknown notification type: {type(notification).__name__}")

    async def deliver(self, notifications: Iterable[Notification]) -> int:
        """Send notifications concurrently and return how many went out.

        Store changes are already committed by the time this runs, so a failed
        send is logged and not raised.
        """
        notifications = list(notifications)
        if not notifications:
            return 0

        results = await asyncio.gather(
            *(self.send(notification) for notification in notifications),
            return_exceptions=True,
        )

        delivered = 0
        for notification, result in zip(notifications, results):
            if isinstance(result, Exception):
                logger.error(
                    "Failed to deliver notification",
                    error=str(result),
                    kind=type(notification).__name__,
                    channel_id=notification.channel_id,
                )
            else:
                delivered += 1
        return delivered

    async def close(self):
        session = getattr(self.client, "session", None)
        if session is not None and not session.closed:
            await session.close()
