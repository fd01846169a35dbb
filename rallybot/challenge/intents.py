"""
Intent parsing for RallyBot.

Messages and button clicks are parsed once into one of a closed set of
intents. Patterns are compiled without the global flag and every call
builds its own match, so no parser state is shared between requests.
"""

import re
from enum import Enum
from typing import List, Mapping, Any, Optional, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

logger = structlog.get_logger(__name__)

MENTION = r"<@([^>|\s]+)(?:\|[^>]*)?>"

ISSUE_CHALLENGE_PATTERN = re.compile(rf"\bchallenge\s+{MENTION}", re.IGNORECASE)
ENTER_LOSS_PATTERN = re.compile(rf"\blost\s+to\s+{MENTION}", re.IGNORECASE)
SHOW_RESULTS_PATTERN = re.compile(rf"\bresults\s+(?:for\s+)?{MENTION}", re.IGNORECASE)
SCORE_PATTERN = re.compile(r"(?<!\d)(\d{1,4})\s?[-–—]\s?(\d{1,4})(?!\d)")


class Decision(str, Enum):
    """Response to a challenge prompt."""
    ACCEPT = "accept"
    DECLINE = "decline"


class Intent(BaseModel):
    """Base class for parsed intents."""

    model_config = ConfigDict(frozen=True)


class IssueChallenge(Intent):
    challenger_id: str
    challengee_id: str


class EnterLoss(Intent):
    loser_id: str
    victor_id: str
    score: Optional[Tuple[int, int]] = None


class RespondToChallenge(Intent):
    interactor_id: str
    target_challenger_id: str
    decision: Decision


class ShowResults(Intent):
    requester_id: str
    subject_id: str


class Unrecognized(Intent):
    reason: str = "no intent matched"


AnyIntent = Union[IssueChallenge, EnterLoss, RespondToChallenge, ShowResults, Unrecognized]


def parse_message(text: Optional[str], author_id: str) -> List[AnyIntent]:
    """Parse a chat message into intents.

    The challenge, loss and results patterns are matched independently,
    so one message can yield several intents. A message matching none of
    them yields a single ``Unrecognized``.
    """
    text = text or ""
    intents: List[AnyIntent] = []

    issue_match = ISSUE_CHALLENGE_PATTERN.search(text)
    if issue_match:
        intents.append(IssueChallenge(
            challenger_id=author_id,
            challengee_id=issue_match.group(1),
        ))

    loss_match = ENTER_LOSS_PATTERN.search(text)
    if loss_match:
        intents.append(EnterLoss(
            loser_id=author_id,
            victor_id=loss_match.group(1),
            score=parse_score(text),
        ))

    results_match = SHOW_RESULTS_PATTERN.search(text)
    if results_match:
        intents.append(ShowResults(
            requester_id=author_id,
            subject_id=results_match.group(1),
        ))

    if not intents:
        return [Unrecognized()]

    return intents


def parse_score(text: str) -> Optional[Tuple[int, int]]:
    """Find the first ``a-b`` score in ``text``, in the order written."""
    match = SCORE_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class InteractionUser(BaseModel):
    id: str


class InteractionChannel(BaseModel):
    id: str


class InteractionAction(BaseModel):
    name: str
    value: str


class InteractionPayload(BaseModel):
    """The fields RallyBot reads from a Slack interactive message callback."""

    model_config = ConfigDict(extra="ignore")

    user: InteractionUser
    channel: InteractionChannel
    actions: List[InteractionAction]


def load_interaction(payload: Mapping[str, Any]) -> InteractionPayload:
    """Validate a decoded interaction payload.

    Raises ``ValueError`` when required fields are missing.
    """
    try:
        interaction = InteractionPayload.model_validate(payload)
    except ValidationError as e:
        raise ValueError(f"Invalid interaction payload: {e.error_count()} errors") from e
    if not interaction.actions:
        raise ValueError("Interaction payload has no actions")
    return interaction


def parse_interaction(interaction: InteractionPayload) -> AnyIntent:
    """Map a button click to a ``RespondToChallenge`` intent."""
    action = interaction.actions[0]
    try:
        decision = Decision(action.name)
    except ValueError:
        logger.info("Unknown interaction action", action=action.name)
        return Unrecognized(reason=f"unknown action {action.name!r}")

    return RespondToChallenge(
        interactor_id=interaction.user.id,
        target_challenger_id=action.value,
        decision=decision,
    )
