"""
Outbound notifications and handling outcomes.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class OutcomeStatus(str, Enum):
    """Result of handling one request, mapped to a response by the transport."""
    OK = "ok"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNRECOGNIZED = "unrecognized"
    UNAVAILABLE = "unavailable"


class ChannelMessage(BaseModel):
    """Public announcement in a channel."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    text: str


class EphemeralMessage(BaseModel):
    """Private message shown to one user in a channel."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    user_id: str
    text: str
    attachments: Optional[List[Dict[str, Any]]] = None


Notification = Union[ChannelMessage, EphemeralMessage]


class Outcome(BaseModel):
    """What the state machine decided: a status, messages to send, and an
    optional text replied directly to the requesting user."""

    status: OutcomeStatus = OutcomeStatus.OK
    notifications: List[Notification] = Field(default_factory=list)
    reply: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def combine(cls, outcomes: Iterable["Outcome"]) -> "Outcome":
        """Merge the outcomes of several intents from one message.

        An unavailable store wins over every other status, then the first
        non-OK status; notifications keep their order.
        """
        status = OutcomeStatus.OK
        notifications: List[Notification] = []
        reply = None
        for outcome in outcomes:
            if status == OutcomeStatus.OK or outcome.status == OutcomeStatus.UNAVAILABLE:
                status = outcome.status
            notifications.extend(outcome.notifications)
            reply = reply or outcome.reply
        return cls(status=status, notifications=notifications, reply=reply)
