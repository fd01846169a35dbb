"""
Database connection management for RallyBot.
"""

from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError
import structlog

from ..config import get_config, get_db_config

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Database connection manager."""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.config = get_config()
        self.db_config = get_db_config()

    async def connect(self) -> bool:
        """Connect to MongoDB database."""
        try:
            self.client = AsyncIOMotorClient(
                self.config.mongodb_url,
                serverSelectionTimeoutMS=self.db_config.connection_timeout * 1000
            )

            # Test the connection
            await self.client.admin.command('ping')

            self.database = self.client[self.config.database_name]

            if self.db_config.enable_indexes:
                await self._create_indexes()

            logger.info("Connected to MongoDB", database=self.config.database_name)
            return True

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            return False
        except PyMongoError as e:
            logger.error("Unexpected error connecting to MongoDB", error=str(e))
            return False

    async def disconnect(self):
        """Disconnect from MongoDB database."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self):
        """Create the indexes the conditional writes depend on."""
        # The unique challenge key turns a duplicate insert into a conflict;
        # without it the connection is unusable.
        challenges_collection = self.database[self.db_config.challenges_collection]
        await challenges_collection.create_index(
            [("channel_id", ASCENDING), ("challenger_id", ASCENDING)],
            unique=True,
            name="challenge_key",
        )
        await challenges_collection.create_index("challengee_id")

        scores_collection = self.database[self.db_config.scores_collection]
        await scores_collection.create_index([("channel_id", ASCENDING), ("victor_id", ASCENDING)])
        await scores_collection.create_index([("channel_id", ASCENDING), ("loser_id", ASCENDING)])
        await scores_collection.create_index([("created_at", DESCENDING)])

        logger.info("Database indexes created successfully")

    def get_database(self) -> Optional[AsyncIOMotorDatabase]:
        """Get the database instance."""
        return self.database


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


async def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseManager()
        connected = await _db_manager.connect()
        if not connected:
            _db_manager = None
            raise RuntimeError("Failed to connect to database")

    return _db_manager


async def get_database() -> AsyncIOMotorDatabase:
    """Get the database instance."""
    db_manager = await get_database_manager()
    db = db_manager.get_database()
    if db is None:
        raise RuntimeError("Database not connected")
    return db


async def close_database():
    """Close the database connection."""
    global _db_manager
    if _db_manager:
        await _db_manager.disconnect()
        _db_manager = None
