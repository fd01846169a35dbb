"""
Database package for RallyBot.
"""

from .connection import DatabaseManager, get_database, get_database_manager, close_database
from .models import Challenge, ChallengeStatus, Score
from .store import (
    ChallengeStore,
    StoreError,
    ChallengeConflictError,
    ChallengeNotFoundError,
    StoreUnavailableError,
)
from .operations import MongoChallengeStore
from .memory import MemoryChallengeStore

__all__ = [
    "DatabaseManager",
    "get_database",
    "get_database_manager",
    "close_database",
    "Challenge",
    "ChallengeStatus",
    "Score",
    "ChallengeStore",
    "StoreError",
    "ChallengeConflictError",
    "ChallengeNotFoundError",
    "StoreUnavailableError",
    "MongoChallengeStore",
    "MemoryChallengeStore",
]
