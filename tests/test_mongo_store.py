"""Tests for the MongoDB challenge store, against mocked motor collections."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from rallybot.config import DatabaseConfig
from rallybot.database.operations import MongoChallengeStore
from rallybot.database.store import (
    ChallengeConflictError,
    ChallengeNotFoundError,
    StoreUnavailableError,
)

CHANNEL = "C100"


@pytest.fixture
def collections():
    return {"challenges": MagicMock(), "scores": MagicMock()}


@pytest.fixture
def mongo_store(collections):
    database = MagicMock()
    database.__getitem__.side_effect = lambda name: collections[name]
    return MongoChallengeStore(database=database, db_config=DatabaseConfig())


def challenge_doc(**overrides):
    doc = {
        "channel_id": CHANNEL,
        "challenger_id": "U1",
        "challengee_id": "U2",
        "accepter_id": None,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "accepted_at": None,
    }
    doc.update(overrides)
    return doc


class TestMongoCreateChallenge:

    async def test_upsert_only_replaces_accepted_record(self, mongo_store, collections):
        collections["challenges"].replace_one = AsyncMock()

        challenge = await mongo_store.create_challenge(CHANNEL, "U1", "U2")

        filter_, document = collections["challenges"].replace_one.call_args.args
        assert filter_ == {"channel_id": CHANNEL, "challenger_id": "U1",
                           "accepter_id": {"$ne": None}}
        assert document["challengee_id"] == "U2"
        assert document["accepter_id"] is None
        assert collections["challenges"].replace_one.call_args.kwargs["upsert"] is True
        assert challenge.is_pending

    async def test_duplicate_key_is_conflict(self, mongo_store, collections):
        collections["challenges"].replace_one = AsyncMock(
            side_effect=DuplicateKeyError("E11000 duplicate key error")
        )
        with pytest.raises(ChallengeConflictError):
            await mongo_store.create_challenge(CHANNEL, "U1", "U2")

    async def test_server_error_is_unavailable(self, mongo_store, collections):
        collections["challenges"].replace_one = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers")
        )
        with pytest.raises(StoreUnavailableError):
            await mongo_store.create_challenge(CHANNEL, "U1", "U2")


class TestMongoGetChallenge:

    async def test_found(self, mongo_store, collections):
        collections["challenges"].find_one = AsyncMock(return_value=challenge_doc())
        challenge = await mongo_store.get_challenge(CHANNEL, "U1")
        assert challenge.challengee_id == "U2"

    async def test_not_found(self, mongo_store, collections):
        collections["challenges"].find_one = AsyncMock(return_value=None)
        with pytest.raises(ChallengeNotFoundError):
            await mongo_store.get_challenge(CHANNEL, "U1")


class TestMongoAcceptChallenge:

    async def test_conditional_update(self, mongo_store, collections):
        collections["challenges"].find_one_and_update = AsyncMock(
            return_value=challenge_doc(accepter_id="U2")
        )

        challenge = await mongo_store.accept_challenge(CHANNEL, "U1", "U2")

        filter_, update = collections["challenges"].find_one_and_update.call_args.args
        assert filter_ == {"channel_id": CHANNEL, "challenger_id": "U1",
                           "challengee_id": "U2", "accepter_id": None}
        assert update["$set"]["accepter_id"] == "U2"
        assert challenge.accepter_id == "U2"

    async def test_no_match_is_conflict(self, mongo_store, collections):
        collections["challenges"].find_one_and_update = AsyncMock(return_value=None)
        with pytest.raises(ChallengeConflictError):
            await mongo_store.accept_challenge(CHANNEL, "U1", "U2")


class TestMongoDeclineChallenge:

    async def test_conditional_delete(self, mongo_store, collections):
        collections["challenges"].delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
        await mongo_store.decline_challenge(CHANNEL, "U1", "U2")
        filter_ = collections["challenges"].delete_one.call_args.args[0]
        assert filter_["accepter_id"] is None
        assert filter_["challengee_id"] == "U2"

    async def test_nothing_deleted_is_conflict(self, mongo_store, collections):
        collections["challenges"].delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))
        with pytest.raises(ChallengeConflictError):
            await mongo_store.decline_challenge(CHANNEL, "U1", "U2")


class TestMongoScores:

    async def test_record_score(self, mongo_store, collections):
        collections["scores"].insert_one = AsyncMock()
        score = await mongo_store.record_score(CHANNEL, "U2", "U1", 5, 3)
        document = collections["scores"].insert_one.call_args.args[0]
        assert document["victor_id"] == "U2"
        assert document["losing_score"] == 3
        assert score.winning_score == 5

    async def test_oversized_score_never_reaches_mongo(self, mongo_store, collections):
        collections["scores"].insert_one = AsyncMock()
        with pytest.raises(ValueError):
            await mongo_store.record_score(CHANNEL, "U2", "U1", 10**20, 3)
        collections["scores"].insert_one.assert_not_called()

    async def test_list_scores(self, mongo_store, collections):
        cursor = MagicMock()
        cursor.__aiter__.return_value = [
            {"channel_id": CHANNEL, "victor_id": "U2", "loser_id": "U1",
             "winning_score": 5, "losing_score": 3,
             "created_at": datetime(2024, 1, 2, tzinfo=timezone.utc)},
        ]
        collections["scores"].find.return_value.sort.return_value.limit.return_value = cursor

        scores = await mongo_store.list_scores(CHANNEL, "U1", limit=5)

        assert [s.victor_id for s in scores] == ["U2"]
        collections["scores"].find.return_value.sort.return_value.limit.assert_called_once_with(5)
