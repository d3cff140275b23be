"""Tests for the ranked leaderboard projection."""

import pytest


@pytest.fixture
def players(store):
    store.add_user("alice", points=50, username="Alice")
    store.add_user("bob", points=30, username="Bob")
    store.add_user("carol", points=30, username="Carol")
    store.add_user("dave", points=10, username="Dave")
    store.add_user("mod", points=500, role="mod")
    return store


@pytest.mark.asyncio
async def test_increment_creates_and_accumulates(leaderboard, store):
    await leaderboard.increment_score("u1", 30)
    await leaderboard.increment_score("u1", 1)

    assert await leaderboard.get_user_score("u1") == 31


@pytest.mark.asyncio
async def test_moderators_are_never_ranked(leaderboard, players):
    assert await leaderboard.increment_score("mod", 10) is None
    assert await leaderboard.get_user_score("mod") is None


@pytest.mark.asyncio
async def test_rebuild_then_competition_ranks(leaderboard, players):
    assert await leaderboard.rebuild() == 4

    assert (await leaderboard.get_user_rank("alice")).rank == 1
    assert (await leaderboard.get_user_rank("bob")).rank == 2
    assert (await leaderboard.get_user_rank("carol")).rank == 2
    assert (await leaderboard.get_user_rank("dave")).rank == 4
    assert (await leaderboard.get_user_rank("nobody")).rank is None


@pytest.mark.asyncio
async def test_top_page_projects_profiles(leaderboard, players):
    await leaderboard.rebuild()

    page = await leaderboard.get_top(limit=3, current_user_id="dave")

    assert [e.user_id for e in page.entries] == ["alice", "bob", "carol"]
    assert [e.rank for e in page.entries] == [1, 2, 2]
    assert page.entries[0].username == "Alice"
    assert page.user_rank.rank == 4
    assert page.total_players == 4


@pytest.mark.asyncio
async def test_offset_page_keeps_tied_rank(leaderboard, players):
    await leaderboard.rebuild()

    page = await leaderboard.get_top(limit=2, offset=2)

    assert [(e.user_id, e.rank) for e in page.entries] == [("carol", 2), ("dave", 4)]


@pytest.mark.asyncio
async def test_empty_sorted_set_falls_back_to_store(leaderboard, players):
    page = await leaderboard.get_top(limit=2, offset=1)

    assert [(e.user_id, e.rank) for e in page.entries] == [("bob", 2), ("carol", 2)]
    assert page.total_players == 4
