"""Tests for the at-most-once creator reward on comments."""

import asyncio

import pytest
from pymongo.errors import AutoReconnect

from linkguess.core.errors import ErrorCode

from .fakes import make_challenge


@pytest.fixture
def challenge(store):
    return store.add_challenge(make_challenge(creator_id="creator-1", post_id="t3_post"))


@pytest.mark.asyncio
async def test_first_comment_rewards_creator(guard, store, leaderboard, challenge):
    result = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert result.success and result.data is True
    assert store.users["creator-1"].total_points == 1
    assert store.users["creator-1"].total_experience == 1
    assert await leaderboard.get_user_score("creator-1") == 1


@pytest.mark.asyncio
async def test_same_comment_is_rewarded_once(guard, store, challenge):
    await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    again = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert again.success and again.data is False
    assert store.users["creator-1"].total_points == 1


@pytest.mark.asyncio
async def test_concurrent_duplicates_grant_exactly_once(guard, store, challenge):
    results = await asyncio.gather(
        *(guard.track_comment(challenge.id, "c1", "player-9", "creator-1") for _ in range(20))
    )

    assert sum(1 for r in results if r.data) == 1
    assert all(r.success for r in results)
    assert store.users["creator-1"].total_points == 1
    assert len(store.comment_rewards) == 1


@pytest.mark.asyncio
async def test_self_comment_never_grants(guard, store, challenge):
    results = await asyncio.gather(
        *(guard.track_comment(challenge.id, f"c{i}", "creator-1", "creator-1") for i in range(5))
    )

    assert all(r.success and r.data is False for r in results)
    assert store.calls == []
    assert "creator-1" not in store.users


@pytest.mark.asyncio
async def test_distinct_comments_each_grant(guard, store, challenge):
    for i in range(3):
        await guard.track_comment(challenge.id, f"c{i}", f"player-{i}", "creator-1")

    assert store.users["creator-1"].total_points == 3
    assert await guard.comment_count(challenge.id) == 3
    stats = await guard.creator_stats("creator-1")
    assert (stats.total_comments, stats.total_points) == (3, 3)


@pytest.mark.asyncio
async def test_transient_grant_failure_is_retried(guard, store, challenge):
    store.fail("grant_comment_reward", AutoReconnect("blip"))

    result = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert result.data is True
    assert store.calls.count("grant_comment_reward") == 2


@pytest.mark.asyncio
async def test_exhausted_retries_report_persistence_failure(guard, store, challenge):
    store.fail("grant_comment_reward", *(AutoReconnect("down") for _ in range(3)))

    result = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert not result.success
    assert result.error.code == ErrorCode.PERSISTENCE_FAILURE
    assert store.comment_rewards == {}
    assert "creator-1" not in store.users

    redelivered = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert redelivered.data is True
    assert store.users["creator-1"].total_points == 1


@pytest.mark.asyncio
async def test_lost_commit_response_never_credits_twice(guard, store, challenge):
    store.fail_after_write("grant_comment_reward", AutoReconnect("connection closed"))

    first = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")
    again = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert first.success and again.success
    assert len(store.comment_rewards) == 1
    assert store.users["creator-1"].total_points == 1
    assert store.users["creator-1"].total_experience == 1


@pytest.mark.asyncio
async def test_cache_outage_does_not_undo_grant(guard, store, redis, challenge):
    redis.down = True

    result = await guard.track_comment(challenge.id, "c1", "player-9", "creator-1")

    assert result.data is True
    assert store.users["creator-1"].total_points == 1


class TestHandleCommentEvent:
    @pytest.mark.asyncio
    async def test_resolves_challenge_by_post(self, guard, store, challenge):
        result = await guard.handle_comment_event("t3_post", "c1", "player-9")

        assert result.data is True
        reward = store.comment_rewards["c1"]
        assert reward.challenge_id == challenge.id
        assert reward.creator_id == "creator-1"

    @pytest.mark.asyncio
    async def test_unknown_post(self, guard):
        result = await guard.handle_comment_event("t3_missing", "c1", "player-9")

        assert result.error.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_creator_commenting_own_post(self, guard, store, challenge):
        result = await guard.handle_comment_event("t3_post", "c1", "creator-1")

        assert result.data is False
        assert store.comment_rewards == {}
