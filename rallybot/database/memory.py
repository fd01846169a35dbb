"""
In-process challenge store, used for tests and local runs.
"""

import asyncio
from typing import Dict, List, Tuple

import structlog

from .models import Challenge, Score, utcnow
from .store import ChallengeConflictError, ChallengeNotFoundError, ChallengeStore

logger = structlog.get_logger(__name__)


class MemoryChallengeStore(ChallengeStore):
    """Dictionary-backed store; a single lock makes each operation atomic."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._challenges: Dict[Tuple[str, str], Challenge] = {}
        self._scores: List[Score] = []

    async def create_challenge(self, channel_id: str, challenger_id: str,
                               challengee_id: str) -> Challenge:
        key = (channel_id, challenger_id)
        async with self._lock:
            existing = self._challenges.get(key)
            if existing is not None and existing.is_pending:
                raise ChallengeConflictError(channel_id, challenger_id, "challenge already pending")

            challenge = Challenge(
                channel_id=channel_id,
                challenger_id=challenger_id,
                challengee_id=challengee_id,
            )
            self._challenges[key] = challenge

        logger.info("Challenge created", channel_id=channel_id,
                    challenger_id=challenger_id, challengee_id=challengee_id)
        return challenge.model_copy()

    async def get_challenge(self, channel_id: str, challenger_id: str) -> Challenge:
        async with self._lock:
            challenge = self._challenges.get((channel_id, challenger_id))
        if challenge is None:
            raise ChallengeNotFoundError(channel_id, challenger_id)
        return challenge.model_copy()

    async def accept_challenge(self, channel_id: str, challenger_id: str,
                               accepter_id: str) -> Challenge:
        key = (channel_id, challenger_id)
        async with self._lock:
            challenge = self._challenges.get(key)
            if (challenge is None or not challenge.is_pending
                    or challenge.challengee_id != accepter_id):
                raise ChallengeConflictError(channel_id, challenger_id, "challenge already resolved")

            accepted = challenge.model_copy(update={
                "accepter_id": accepter_id,
                "accepted_at": utcnow(),
            })
            self._challenges[key] = accepted

        logger.info("Challenge accepted", channel_id=channel_id,
                    challenger_id=challenger_id, accepter_id=accepter_id)
        return accepted.model_copy()

    async def decline_challenge(self, channel_id: str, challenger_id: str,
                                challengee_id: str) -> None:
        key = (channel_id, challenger_id)
        async with self._lock:
            challenge = self._challenges.get(key)
            if (challenge is None or not challenge.is_pending
                    or challenge.challengee_id != challengee_id):
                raise ChallengeConflictError(channel_id, challenger_id, "challenge already resolved")
            del self._challenges[key]

        logger.info("Challenge declined", channel_id=channel_id, challenger_id=challenger_id)

    async def record_score(self, channel_id: str, victor_id: str, loser_id: str,
                           winning_score: int, losing_score: int) -> Score:
        score = Score(
            channel_id=channel_id,
            victor_id=victor_id,
            loser_id=loser_id,
            winning_score=winning_score,
            losing_score=losing_score,
        )
        async with self._lock:
            self._scores.append(score)
        return score.model_copy()

    async def list_scores(self, channel_id: str, user_id: str, limit: int = 10) -> List[Score]:
        async with self._lock:
            matching = [
                score for score in reversed(self._scores)
                if score.channel_id == channel_id and user_id in (score.victor_id, score.loser_id)
            ]
        return [score.model_copy() for score in matching[:limit]]

    def challenge_count(self) -> int:
        return len(self._challenges)

    def score_count(self) -> int:
        return len(self._scores)
