"""
Challenge store contract for RallyBot.

Every check-then-act sequence on challenges goes through one of the
conditional operations below. Implementations must make each of them a
single atomic step against their storage engine.
"""

from abc import ABC, abstractmethod
from typing import List

from .models import Challenge, Score


class StoreError(Exception):
    """Base class for store errors."""


class ChallengeConflictError(StoreError):
    """A conditional write's precondition no longer holds."""

    def __init__(self, channel_id: str, challenger_id: str, message: str = "challenge conflict"):
        super().__init__(f"{message}: {channel_id}/{challenger_id}")
        self.channel_id = channel_id
        self.challenger_id = challenger_id


class ChallengeNotFoundError(StoreError):
    """No challenge exists for the given key."""

    def __init__(self, channel_id: str, challenger_id: str):
        super().__init__(f"challenge not found: {channel_id}/{challenger_id}")
        self.channel_id = channel_id
        self.challenger_id = challenger_id


class StoreUnavailableError(StoreError):
    """The backing storage could not be reached or failed."""


class ChallengeStore(ABC):
    """Persistence for challenges and scores, scoped by channel."""

    @abstractmethod
    async def create_challenge(self, channel_id: str, challenger_id: str,
                               challengee_id: str) -> Challenge:
        """Insert a pending challenge.

        Succeeds when the challenger has no record in the channel, or only an
        accepted one. Raises ``ChallengeConflictError`` when a pending
        challenge already exists; it is never overwritten.
        """

    @abstractmethod
    async def get_challenge(self, channel_id: str, challenger_id: str) -> Challenge:
        """Raises ``ChallengeNotFoundError`` when there is no record."""

    @abstractmethod
    async def accept_challenge(self, channel_id: str, challenger_id: str,
                               accepter_id: str) -> Challenge:
        """Set ``accepter_id`` if it is unset and ``accepter_id`` is the challengee.

        Raises ``ChallengeConflictError`` when the challenge was already
        accepted or no longer exists.
        """

    @abstractmethod
    async def decline_challenge(self, channel_id: str, challenger_id: str,
                                challengee_id: str) -> None:
        """Remove a pending challenge addressed to ``challengee_id``.

        Raises ``ChallengeConflictError`` when the challenge was accepted or
        no longer exists.
        """

    @abstractmethod
    async def record_score(self, channel_id: str, victor_id: str, loser_id: str,
                           winning_score: int, losing_score: int) -> Score:
        """Append a score record."""

    @abstractmethod
    async def list_scores(self, channel_id: str, user_id: str, limit: int = 10) -> List[Score]:
        """Scores ``user_id`` took part in, newest first."""

    async def close(self) -> None:
        """Release any resources held by the store."""
