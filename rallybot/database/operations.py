"""
MongoDB challenge store for RallyBot.
"""

from typing import List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import DatabaseConfig, get_db_config
from .connection import close_database, get_database
from .models import Challenge, Score, utcnow
from .store import (
    ChallengeConflictError,
    ChallengeNotFoundError,
    ChallengeStore,
    StoreUnavailableError,
)

logger = structlog.get_logger(__name__)

NO_ID = {"_id": False}


class MongoChallengeStore(ChallengeStore):
    """Challenge store backed by MongoDB.

    Relies on the unique ``(channel_id, challenger_id)`` index created by
    ``DatabaseManager``; conditional writes are single-document operations.
    """

    def __init__(self, database: Optional[AsyncIOMotorDatabase] = None,
                 db_config: Optional[DatabaseConfig] = None):
        self.database = database
        self.db_config = db_config or get_db_config()

    async def get_db(self) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if self.database is None:
            try:
                self.database = await get_database()
            except RuntimeError as e:
                raise StoreUnavailableError(str(e)) from e
        return self.database

    async def close(self) -> None:
        await close_database()
        self.database = None

    async def _challenges(self):
        db = await self.get_db()
        return db[self.db_config.challenges_collection]

    async def _scores(self):
        db = await self.get_db()
        return db[self.db_config.scores_collection]

    async def create_challenge(self, channel_id: str, challenger_id: str,
                               challengee_id: str) -> Challenge:
        challenge = Challenge(
            channel_id=channel_id,
            challenger_id=challenger_id,
            challengee_id=challengee_id,
        )
        try:
            collection = await self._challenges()
            # Only an accepted record matches the filter and gets replaced. With a
            # pending record present the upsert inserts and hits the unique index.
            await collection.replace_one(
                {**challenge.key(), "accepter_id": {"$ne": None}},
                challenge.model_dump(),
                upsert=True,
            )
        except DuplicateKeyError:
            logger.info("Challenge already pending", channel_id=channel_id,
                        challenger_id=challenger_id)
            raise ChallengeConflictError(channel_id, challenger_id, "challenge already pending")
        except PyMongoError as e:
            logger.error("Failed to create challenge", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e

        logger.info("Challenge created", channel_id=channel_id,
                    challenger_id=challenger_id, challengee_id=challengee_id)
        return challenge

    async def get_challenge(self, channel_id: str, challenger_id: str) -> Challenge:
        try:
            collection = await self._challenges()
            challenge_data = await collection.find_one(
                {"channel_id": channel_id, "challenger_id": challenger_id},
                projection=NO_ID,
            )
        except PyMongoError as e:
            logger.error("Failed to get challenge", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e

        if not challenge_data:
            raise ChallengeNotFoundError(channel_id, challenger_id)
        return Challenge(**challenge_data)

    async def accept_challenge(self, channel_id: str, challenger_id: str,
                               accepter_id: str) -> Challenge:
        try:
            collection = await self._challenges()
            challenge_data = await collection.find_one_and_update(
                {
                    "channel_id": channel_id,
                    "challenger_id": challenger_id,
                    "challengee_id": accepter_id,
                    "accepter_id": None,
                },
                {"$set": {"accepter_id": accepter_id, "accepted_at": utcnow()}},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Failed to accept challenge", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e

        if not challenge_data:
            raise ChallengeConflictError(channel_id, challenger_id, "challenge already resolved")

        logger.info("Challenge accepted", channel_id=channel_id,
                    challenger_id=challenger_id, accepter_id=accepter_id)
        return Challenge(**challenge_data)

    async def decline_challenge(self, channel_id: str, challenger_id: str,
                                challengee_id: str) -> None:
        try:
            collection = await self._challenges()
            result = await collection.delete_one({
                "channel_id": channel_id,
                "challenger_id": challenger_id,
                "challengee_id": challengee_id,
                "accepter_id": None,
            })
        except PyMongoError as e:
            logger.error("Failed to decline challenge", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e

        if result.deleted_count == 0:
            raise ChallengeConflictError(channel_id, challenger_id, "challenge already resolved")

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
        try:
            collection = await self._scores()
            await collection.insert_one(score.model_dump())
        except PyMongoError as e:
            logger.error("Failed to record score", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e

        logger.info("Score recorded", channel_id=channel_id, victor_id=victor_id,
                    loser_id=loser_id, score=f"{winning_score}-{losing_score}")
        return score

    async def list_scores(self, channel_id: str, user_id: str, limit: int = 10) -> List[Score]:
        try:
            collection = await self._scores()
            cursor = collection.find(
                {
                    "channel_id": channel_id,
                    "$or": [{"victor_id": user_id}, {"loser_id": user_id}],
                },
                projection=NO_ID,
            ).sort("created_at", -1).limit(limit)

            scores = []
            async for score_data in cursor:
                scores.append(Score(**score_data))
            return scores

        except PyMongoError as e:
            logger.error("Failed to list scores", error=str(e), channel_id=channel_id)
            raise StoreUnavailableError(str(e)) from e
