"""Shared fixtures for RallyBot tests."""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import urlencode

import pytest

from rallybot.bot.handlers import WebhookHandler
from rallybot.challenge.state_machine import ChallengeStateMachine
from rallybot.database.memory import MemoryChallengeStore
from rallybot.security import compute_signature

SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
TIMESTAMP = "1531420618"
BOT_ID = "UBOT"
CHANNEL = "C100"


@pytest.fixture
def store():
    return MemoryChallengeStore()


@pytest.fixture
def machine(store):
    return ChallengeStateMachine(store)


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.deliver = AsyncMock(side_effect=lambda notifications: len(list(notifications)))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def handler(machine, notifier):
    return WebhookHandler(machine, notifier, signing_secret=SIGNING_SECRET)


@pytest.fixture
def sign():
    """Build Slack signature headers for a raw body."""
    def _sign(raw_body, timestamp=TIMESTAMP, secret=SIGNING_SECRET):
        signature = "v0=" + compute_signature("v0", timestamp, raw_body, secret)
        return {
            "X-Slack-Signature": signature,
            "X-Slack-Request-Timestamp": timestamp,
        }
    return _sign


@pytest.fixture
def message_body():
    """Build a JSON message event body."""
    def _body(text, user="U1", channel=CHANNEL, **event_fields):
        event = {"type": "message", "channel": channel, "user": user, "text": text}
        event.update(event_fields)
        return json.dumps({
            "type": "event_callback",
            "authed_users": [BOT_ID],
            "event": event,
        })
    return _body


@pytest.fixture
def interaction_body():
    """Build a URL-encoded interaction callback body."""
    def _body(user, action, challenger, channel=CHANNEL):
        payload = {
            "type": "interactive_message",
            "callback_id": "tender_button",
            "user": {"id": user, "name": user.lower()},
            "channel": {"id": channel, "name": "games"},
            "actions": [{"name": action, "type": "button", "value": challenger}],
        }
        return urlencode({"payload": json.dumps(payload)})
    return _body
