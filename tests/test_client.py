"""Tests for notification delivery."""

from unittest.mock import AsyncMock, MagicMock

from slack_sdk.errors import SlackApiError

from rallybot.bot.client import SlackNotifier
from rallybot.challenge.notifications import ChannelMessage, EphemeralMessage


def make_client():
    client = MagicMock()
    client.chat_postMessage = AsyncMock(return_value={"ok": True})
    client.chat_postEphemeral = AsyncMock(return_value={"ok": True})
    return client


class TestSlackNotifier:

    async def test_channel_message(self):
        client = make_client()
        notifier = SlackNotifier(client)

        await notifier.send(ChannelMessage(channel_id="C1", text="hello"))

        client.chat_postMessage.assert_awaited_once_with(channel="C1", text="hello")

    async def test_ephemeral_with_buttons(self):
        client = make_client()
        notifier = SlackNotifier(client)
        attachments = [{"callback_id": "tender_button", "actions": []}]

        await notifier.send(EphemeralMessage(channel_id="C1", user_id="U2", text="Accept?",
                                             attachments=attachments))

        client.chat_postEphemeral.assert_awaited_once_with(
            channel="C1", user="U2", text="Accept?", attachments=attachments
        )

    async def test_failed_send_is_not_raised(self):
        client = make_client()
        client.chat_postMessage.side_effect = SlackApiError("channel_not_found", {"ok": False})
        notifier = SlackNotifier(client)

        delivered = await notifier.deliver([
            ChannelMessage(channel_id="C1", text="hello"),
            EphemeralMessage(channel_id="C1", user_id="U2", text="psst"),
        ])

        assert delivered == 1
        client.chat_postEphemeral.assert_awaited_once()

    async def test_nothing_to_deliver(self):
        assert await SlackNotifier(make_client()).deliver([]) == 0
