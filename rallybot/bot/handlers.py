"""
Webhook handlers for RallyBot.

Both endpoints authenticate first, then parse the request into intents,
run them through the state machine and deliver the resulting
notifications. Handlers return a ``WebhookResponse`` and leave the HTTP
framework to the caller.
"""

import json
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qs

import structlog
from pydantic import BaseModel

from ..challenge.intents import load_interaction, parse_interaction, parse_message
from ..challenge.notifications import Outcome, OutcomeStatus
from ..challenge.state_machine import ChallengeStateMachine
from ..database.store import StoreUnavailableError
from ..security import AuthError, verify_request
from .client import SlackNotifier

logger = structlog.get_logger(__name__)

STATUS_CODES: Dict[OutcomeStatus, int] = {
    OutcomeStatus.OK: 200,
    OutcomeStatus.CONFLICT: 200,
    OutcomeStatus.FORBIDDEN: 403,
    OutcomeStatus.NOT_FOUND: 400,
    OutcomeStatus.UNRECOGNIZED: 400,
    OutcomeStatus.UNAVAILABLE: 500,
}

RETRY_HEADER = "X-Slack-Retry-Num"
STORE_FAILURE_TEXT = "Something went wrong, please try again."


class WebhookResponse(BaseModel):
    """Status code and body to return to Slack."""

    status_code: int = 200
    body: str = ""


def decode_interaction_body(raw_body: str) -> Dict[str, Any]:
    """Decode a ``payload=<json>`` form body.

    Raises ``ValueError`` when there is no payload or it is not JSON.
    """
    fields = parse_qs(raw_body)
    payload = fields.get("payload")
    if not payload:
        raise ValueError("Interaction body has no payload field")
    decoded = json.loads(payload[0])
    if not isinstance(decoded, dict):
        raise ValueError("Interaction payload is not an object")
    return decoded


def bot_user_id(body: Mapping[str, Any]) -> Optional[str]:
    """The bot's own user id, as reported in an event envelope."""
    for authorization in body.get("authorizations") or []:
        if authorization.get("is_bot") and authorization.get("user_id"):
            return authorization["user_id"]
    authed_users = body.get("authed_users") or []
    if authed_users:
        return authed_users[0]
    return None


class WebhookHandler:
    """Handles Slack event and interaction webhooks."""

    def __init__(self, state_machine: ChallengeStateMachine, notifier: SlackNotifier,
                 signing_secret: str, signature_max_age: Optional[int] = None,
                 signature_version: str = "v0"):
        self.state_machine = state_machine
        self.notifier = notifier
        self.signing_secret = signing_secret
        self.signature_max_age = signature_max_age
        self.signature_version = signature_version

    def _authenticate(self, headers: Mapping[str, str], raw_body: str) -> Optional[WebhookResponse]:
        try:
            verify_request(headers, raw_body, self.signing_secret,
                           version=self.signature_version,
                           max_age=self.signature_max_age)
        except AuthError as e:
            return WebhookResponse(status_code=403, body=str(e))
        return None

    async def handle_event(self, headers: Mapping[str, str], raw_body: str) -> WebhookResponse:
        """Handle an Events API delivery."""
        rejected = self._authenticate(headers, raw_body)
        if rejected:
            return rejected

        try:
            body = json.loads(raw_body)
        except ValueError:
            logger.warning("Event body is not JSON")
            return WebhookResponse(status_code=400)

        if body.get("type") == "url_verification":
            return WebhookResponse(status_code=200, body=body.get("challenge", ""))

        event = body.get("event") or {}
        if event.get("type") != "message" or event.get("bot_id") or event.get("subtype"):
            logger.debug("Ignoring event", event_type=event.get("type"),
                         subtype=event.get("subtype"))
            return WebhookResponse(status_code=200)

        channel_id = event.get("channel")
        user_id = event.get("user")
        if not channel_id or not user_id:
            logger.warning("Message event missing channel or user")
            return WebhookResponse(status_code=400)

        retry = headers.get(RETRY_HEADER)
        if retry:
            logger.info("Handling redelivered event", retry=retry, channel_id=channel_id)

        intents = parse_message(event.get("text"), user_id)
        outcome = await self.state_machine.handle_all(intents, channel_id, bot_user_id(body))
        return await self._respond(outcome)

    async def handle_interaction(self, headers: Mapping[str, str], raw_body: str) -> WebhookResponse:
        """Handle an interactive message (button) callback."""
        rejected = self._authenticate(headers, raw_body)
        if rejected:
            return rejected

        try:
            interaction = load_interaction(decode_interaction_body(raw_body))
        except ValueError as e:
            logger.warning("Invalid interaction payload", error=str(e))
            return WebhookResponse(status_code=400)

        channel_id = interaction.channel.id
        intent = parse_interaction(interaction)
        try:
            outcome = await self.state_machine.handle(intent, channel_id)
        except StoreUnavailableError as e:
            return self._store_failure(e, channel_id)

        return await self._respond(outcome)

    async def _respond(self, outcome: Outcome) -> WebhookResponse:
        # Notifications here belong to writes that already committed.
        if outcome.notifications:
            await self.notifier.deliver(outcome.notifications)
        if outcome.status == OutcomeStatus.UNAVAILABLE:
            return WebhookResponse(status_code=500, body=STORE_FAILURE_TEXT)
        return WebhookResponse(
            status_code=STATUS_CODES[outcome.status],
            body=outcome.reply or "",
        )

    def _store_failure(self, error: StoreUnavailableError, channel_id: str) -> WebhookResponse:
        logger.error("Challenge store unavailable", error=str(error), channel_id=channel_id)
        return WebhookResponse(status_code=500, body=STORE_FAILURE_TEXT)
