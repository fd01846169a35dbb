"""
Challenge state machine for RallyBot.

Per ``(channel_id, challenger_id)`` a challenge moves through
``NONE -> PENDING -> {ACCEPTED, DECLINED}``; a resolved challenge (or no
challenge) lets the challenger issue a new one. The machine keeps no state
of its own: each intent is decided from a fresh read plus one conditional
store write, so concurrent or repeated webhook deliveries resolve as
first-writer-wins inside the store.
"""

from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set, Type

import structlog

from ..database.models import Challenge
from ..database.store import (
    ChallengeConflictError,
    ChallengeNotFoundError,
    ChallengeStore,
    StoreUnavailableError,
)
from . import messages
from .intents import (
    AnyIntent,
    Decision,
    EnterLoss,
    IssueChallenge,
    RespondToChallenge,
    ShowResults,
    Unrecognized,
)
from .notifications import ChannelMessage, EphemeralMessage, Outcome, OutcomeStatus

logger = structlog.get_logger(__name__)

RESULTS_LIMIT = 5


class ChallengeState(str, Enum):
    """Challenge state enumeration."""
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


VALID_TRANSITIONS: Dict[ChallengeState, Set[ChallengeState]] = {
    ChallengeState.NONE: {ChallengeState.PENDING},
    ChallengeState.PENDING: {ChallengeState.ACCEPTED, ChallengeState.DECLINED},
    ChallengeState.ACCEPTED: {ChallengeState.PENDING},
    ChallengeState.DECLINED: {ChallengeState.PENDING},
}


def state_of(challenge: Optional[Challenge]) -> ChallengeState:
    """Derive the state of a stored challenge record."""
    if challenge is None:
        return ChallengeState.NONE
    if challenge.is_pending:
        return ChallengeState.PENDING
    return ChallengeState.ACCEPTED


def can_transition(current: ChallengeState, new: ChallengeState) -> bool:
    return new in VALID_TRANSITIONS.get(current, set())


class ChallengeStateMachine:
    """Applies intents to the challenge store and decides what to announce."""

    def __init__(self, store: ChallengeStore):
        self.store = store
        self._handlers: Dict[Type, Callable[..., Awaitable[Outcome]]] = {
            IssueChallenge: self._issue_challenge,
            RespondToChallenge: self._respond_to_challenge,
            EnterLoss: self._enter_loss,
            ShowResults: self._show_results,
            Unrecognized: self._unrecognized,
        }

    async def handle(self, intent: AnyIntent, channel_id: str,
                     bot_id: Optional[str] = None) -> Outcome:
        """Handle a single intent in ``channel_id``.

        ``StoreUnavailableError`` propagates; every business outcome is
        returned as an ``Outcome``.
        """
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise TypeError(f"Unhandled intent type: {type(intent).__name__}")
        return await handler(intent, channel_id, bot_id)

    async def handle_all(self, intents: Iterable[AnyIntent], channel_id: str,
                         bot_id: Optional[str] = None) -> Outcome:
        """Handle every intent parsed from one message, in order.

        A store failure on one intent does not discard the notifications of
        intents already committed; the combined outcome is then
        ``UNAVAILABLE``.
        """
        outcomes = []
        for intent in intents:
            try:
                outcomes.append(await self.handle(intent, channel_id, bot_id))
            except StoreUnavailableError as e:
                logger.error("Challenge store unavailable", error=str(e),
                             channel_id=channel_id, intent=type(intent).__name__)
                outcomes.append(Outcome(status=OutcomeStatus.UNAVAILABLE))
        return Outcome.combine(outcomes)

    async def _issue_challenge(self, intent: IssueChallenge, channel_id: str,
                               bot_id: Optional[str]) -> Outcome:
        challenger_id = intent.challenger_id
        challengee_id = intent.challengee_id

        if bot_id is not None and challengee_id == bot_id:
            logger.info("Challenge to bot ignored", channel_id=channel_id,
                        challenger_id=challenger_id)
            return Outcome(notifications=[
                ChannelMessage(channel_id=channel_id, text=messages.challenged_bot(challenger_id)),
            ])

        if challenger_id == challengee_id:
            logger.info("Self challenge ignored", channel_id=channel_id,
                        challenger_id=challenger_id)
            return Outcome(notifications=[
                ChannelMessage(channel_id=channel_id, text=messages.feeling_lonely(challenger_id)),
            ])

        try:
            await self.store.create_challenge(channel_id, challenger_id, challengee_id)
        except ChallengeConflictError:
            logger.info("Challenger already has a pending challenge",
                        channel_id=channel_id, challenger_id=challenger_id)
            return Outcome(
                status=OutcomeStatus.CONFLICT,
                notifications=[
                    EphemeralMessage(
                        channel_id=channel_id,
                        user_id=challenger_id,
                        text=messages.already_pending(),
                    ),
                ],
            )

        self._log_transition(channel_id, challenger_id, ChallengeState.NONE, ChallengeState.PENDING)
        return Outcome(notifications=[
            ChannelMessage(
                channel_id=channel_id,
                text=messages.challenge_issued(challenger_id, challengee_id),
            ),
            EphemeralMessage(
                channel_id=channel_id,
                user_id=challengee_id,
                text=messages.challenge_prompt(challenger_id),
                attachments=messages.challenge_buttons(challenger_id),
            ),
        ])

    async def _respond_to_challenge(self, intent: RespondToChallenge, channel_id: str,
                                    bot_id: Optional[str]) -> Outcome:
        interactor_id = intent.interactor_id
        challenger_id = intent.target_challenger_id

        try:
            challenge = await self.store.get_challenge(channel_id, challenger_id)
        except ChallengeNotFoundError:
            if intent.decision == Decision.DECLINE:
                # Declines are not persisted, so a missing record is still announced.
                return self._declined(channel_id, interactor_id, challenger_id)
            logger.warning("Challenge not found", channel_id=channel_id,
                           challenger_id=challenger_id, interactor_id=interactor_id)
            return Outcome(status=OutcomeStatus.NOT_FOUND, reply=messages.challenge_not_found())

        if interactor_id != challenge.challengee_id:
            logger.warning("Interactor is not the challengee", channel_id=channel_id,
                           challenger_id=challenger_id, interactor_id=interactor_id)
            return Outcome(
                status=OutcomeStatus.FORBIDDEN,
                notifications=[
                    EphemeralMessage(
                        channel_id=channel_id,
                        user_id=interactor_id,
                        text=messages.not_your_challenge(intent.decision.value),
                    ),
                ],
            )

        if intent.decision == Decision.ACCEPT:
            return await self._accept(channel_id, challenge)
        return await self._decline(channel_id, challenge)

    async def _accept(self, channel_id: str, challenge: Challenge) -> Outcome:
        challenger_id = challenge.challenger_id
        challengee_id = challenge.challengee_id

        try:
            await self.store.accept_challenge(channel_id, challenger_id, challengee_id)
        except ChallengeConflictError:
            logger.info("Challenge already answered", channel_id=channel_id,
                        challenger_id=challenger_id)
            return self._already_resolved(channel_id, challengee_id, challenger_id)

        self._log_transition(channel_id, challenger_id, ChallengeState.PENDING, ChallengeState.ACCEPTED)
        return Outcome(
            notifications=[
                ChannelMessage(
                    channel_id=channel_id,
                    text=messages.challenge_response(challengee_id, challenger_id, "accepted"),
                ),
            ],
            reply=messages.challenge_response_reply(challenger_id, "accepted"),
        )

    async def _decline(self, channel_id: str, challenge: Challenge) -> Outcome:
        challenger_id = challenge.challenger_id
        challengee_id = challenge.challengee_id

        # A decline is always announced; only a pending record is removed, an
        # accepted one is left as it is.
        if not can_transition(state_of(challenge), ChallengeState.DECLINED):
            logger.info("Decline of an answered challenge", channel_id=channel_id,
                        challenger_id=challenger_id)
            return self._declined(channel_id, challengee_id, challenger_id)

        try:
            await self.store.decline_challenge(channel_id, challenger_id, challengee_id)
        except ChallengeConflictError:
            logger.info("Challenge answered before decline", channel_id=channel_id,
                        challenger_id=challenger_id)
        else:
            self._log_transition(channel_id, challenger_id,
                                 ChallengeState.PENDING, ChallengeState.DECLINED)
        return self._declined(channel_id, challengee_id, challenger_id)

    def _declined(self, channel_id: str, challengee_id: str, challenger_id: str) -> Outcome:
        return Outcome(
            notifications=[
                ChannelMessage(
                    channel_id=channel_id,
                    text=messages.challenge_response(challengee_id, challenger_id, "declined"),
                ),
            ],
            reply=messages.challenge_response_reply(challenger_id, "declined"),
        )

    def _already_resolved(self, channel_id: str, challengee_id: str, challenger_id: str) -> Outcome:
        text = messages.already_resolved(challenger_id)
        return Outcome(
            status=OutcomeStatus.CONFLICT,
            notifications=[
                EphemeralMessage(channel_id=channel_id, user_id=challengee_id, text=text),
            ],
            reply=text,
        )

    async def _enter_loss(self, intent: EnterLoss, channel_id: str,
                          bot_id: Optional[str]) -> Outcome:
        loser_id = intent.loser_id
        victor_id = intent.victor_id

        if loser_id == victor_id:
            return Outcome(notifications=[
                ChannelMessage(channel_id=channel_id, text=messages.feeling_lonely(loser_id)),
            ])

        if intent.score is None:
            return Outcome(notifications=[
                ChannelMessage(channel_id=channel_id, text=messages.bare_loss(loser_id, victor_id)),
            ])

        first, second = intent.score
        if first == second:
            logger.info("Draw reported", channel_id=channel_id, score=first)
            return Outcome(notifications=[
                ChannelMessage(channel_id=channel_id, text=messages.draw(loser_id, victor_id, first)),
            ])

        losing_score, winning_score = min(first, second), max(first, second)
        await self.store.record_score(channel_id, victor_id, loser_id, winning_score, losing_score)

        return Outcome(notifications=[
            ChannelMessage(
                channel_id=channel_id,
                text=messages.scored_loss(loser_id, victor_id, losing_score, winning_score),
            ),
        ])

    async def _show_results(self, intent: ShowResults, channel_id: str,
                            bot_id: Optional[str]) -> Outcome:
        subject_id = intent.subject_id
        scores = await self.store.list_scores(channel_id, subject_id, limit=RESULTS_LIMIT)

        if not scores:
            text = messages.no_results(subject_id)
        else:
            lines = [messages.results_header(subject_id)]
            lines.extend(
                messages.result_line(score.victor_id, score.loser_id,
                                     score.winning_score, score.losing_score)
                for score in scores
            )
            text = "\n".join(lines)

        return Outcome(notifications=[
            EphemeralMessage(channel_id=channel_id, user_id=intent.requester_id, text=text),
        ])

    async def _unrecognized(self, intent: Unrecognized, channel_id: str,
                            bot_id: Optional[str]) -> Outcome:
        logger.info("Unrecognized request", channel_id=channel_id, reason=intent.reason)
        return Outcome(status=OutcomeStatus.UNRECOGNIZED)

    def _log_transition(self, channel_id: str, challenger_id: str,
                        old_state: ChallengeState, new_state: ChallengeState):
        logger.info(
            "Challenge state transitioned",
            channel_id=channel_id,
            challenger_id=challenger_id,
            old_state=old_state.value,
            new_state=new_state.value,
        )
