"""
Challenge management package for RallyBot.
"""

from .intents import (
    Decision,
    EnterLoss,
    IssueChallenge,
    RespondToChallenge,
    ShowResults,
    Unrecognized,
    load_interaction,
    parse_interaction,
    parse_message,
)
from .notifications import ChannelMessage, EphemeralMessage, Outcome, OutcomeStatus
from .state_machine import ChallengeStateMachine, ChallengeState

__all__ = [
    "Decision",
    "EnterLoss",
    "IssueChallenge",
    "RespondToChallenge",
    "ShowResults",
    "Unrecognized",
    "load_interaction",
    "parse_interaction",
    "parse_message",
    "ChannelMessage",
    "EphemeralMessage",
    "Outcome",
    "OutcomeStatus",
    "ChallengeStateMachine",
    "ChallengeState",
]
