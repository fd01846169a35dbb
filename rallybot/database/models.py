"""
Database models for RallyBot.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


MAX_SCORE = 9999


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeStatus(str, Enum):
    """Persisted challenge status."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class Challenge(BaseModel):
    """Challenge model, keyed by ``(channel_id, challenger_id)``."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str = Field(..., description="Channel the challenge was issued in")
    challenger_id: str = Field(..., description="User who issued the challenge")
    challengee_id: str = Field(..., description="User who was challenged")
    accepter_id: Optional[str] = Field(None, description="Set once, when the challengee accepts")

    created_at: datetime = Field(default_factory=utcnow)
    accepted_at: Optional[datetime] = Field(None)

    @property
    def status(self) -> ChallengeStatus:
        if self.accepter_id is None:
            return ChallengeStatus.PENDING
        return ChallengeStatus.ACCEPTED

    @property
    def is_pending(self) -> bool:
        return self.status == ChallengeStatus.PENDING

    def key(self) -> dict:
        return {"channel_id": self.channel_id, "challenger_id": self.challenger_id}


class Score(BaseModel):
    """Recorded result between two users in a channel."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str = Field(..., description="Channel the result was reported in")
    victor_id: str = Field(..., description="Winner")
    loser_id: str = Field(..., description="Loser, who reported the result")
    winning_score: int = Field(..., ge=0, le=MAX_SCORE)
    losing_score: int = Field(..., ge=0, le=MAX_SCORE)

    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_ordering(self) -> "Score":
        if self.losing_score >= self.winning_score:
            raise ValueError("losing_score must be lower than winning_score")
        return self
