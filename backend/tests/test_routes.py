# tests/test_routes.py
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from linkguess.api.deps import GameServices, get_services
from linkguess.main import create_app
from linkguess.services.attempts.attempt_tracker import AttemptTracker
from linkguess.services.comment_rewards import CommentRewardGuard
from linkguess.services.leaderboard import LeaderboardService
from linkguess.services.preload import PreloadCache
from linkguess.services.profile_cache import ProfileCache
from linkguess.services.propagation import LeaderboardCoordinator
from linkguess.services.request_dedup import RequestDeduplicator

from .conftest import FAST_RETRY
from .fakes import FakeGameStore, FakeRedis, make_challenge, no_sleep

PLAYER = {"X-User-Id": "player-1"}


@pytest.fixture
def services():
    store = FakeGameStore()
    redis = FakeRedis()
    profile_cache = ProfileCache(redis, ttl_s=300)
    leaderboard = LeaderboardService(redis, store, key="leaderboard:points")
    coordinator = LeaderboardCoordinator(profile_cache, leaderboard)
    return GameServices(
        store=store,
        redis=redis,
        profile_cache=profile_cache,
        leaderboard=leaderboard,
        coordinator=coordinator,
        attempts=AttemptTracker(store, coordinator, retry_policy=FAST_RETRY, sleep=no_sleep),
        comments=CommentRewardGuard(store, coordinator, retry_policy=FAST_RETRY, sleep=no_sleep),
        dedup=RequestDeduplicator(timeout_s=30),
        preload=PreloadCache(preload_count=2, max_cache_size=10, delay_s=0),
    )


@pytest.fixture
def client(services):
    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def challenge(services):
    return services.store.add_challenge(make_challenge(image_count=3, answer="Ocean", post_id="post-1"))


# --- Base ---
def test_ping(client):
    r = client.get("/ping")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "message": "pong"}


def test_health_ok_and_degraded(client, services):
    services.store.db = MagicMock()
    services.store.db.command = AsyncMock(return_value={"ok": 1})

    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["checks"] == {"database": "ok", "redis": "ok"}

    services.redis.down = True
    r = client.get("/health")
    assert r.status_code == 503
    body = r.json()
    assert body["status"] == "degraded"
    assert body["checks"]["redis"].startswith("error")


# --- Attempts ---
class TestAttemptRoutes:
    def test_missing_user_header_is_401(self, client, challenge):
        r = client.post("/attempts/guess", json={"challenge_id": str(challenge.id), "guess": "ocean"})
        assert r.status_code == 401
        assert r.json()["success"] is False

    def test_correct_guess_awards_points(self, client, challenge, services):
        r = client.post(
            "/attempts/guess", json={"challenge_id": str(challenge.id), "guess": "  OCEAN "}, headers=PLAYER
        )
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["is_correct"] is True
        assert data["game_over"] is True
        assert data["reward"] == {"points": 30, "exp": 30}
        assert services.store.users["player-1"].total_points == 30

    def test_wrong_guess_keeps_game_open(self, client, challenge):
        r = client.post(
            "/attempts/guess", json={"challenge_id": str(challenge.id), "guess": "sky"}, headers=PLAYER
        )
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["is_correct"] is False
        assert data["attempts_remaining"] == 9

        r = client.get(f"/attempts/{challenge.id}", headers=PLAYER)
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "in_progress"

    def test_unknown_challenge_is_404(self, client):
        r = client.post(
            "/attempts/guess", json={"challenge_id": "507f1f77bcf86cd799439011", "guess": "x"}, headers=PLAYER
        )
        assert r.status_code == 404
        assert r.json()["error"]["code"] == "NOT_FOUND"

    def test_empty_guess_fails_validation(self, client, challenge):
        r = client.post("/attempts/guess", json={"challenge_id": str(challenge.id), "guess": ""}, headers=PLAYER)
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_hint_out_of_range_is_422(self, client, challenge):
        r = client.post(
            "/attempts/hint", json={"challenge_id": str(challenge.id), "image_index": 7}, headers=PLAYER
        )
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "INVALID_ATTEMPT"

    def test_hint_reveals_description(self, client, challenge):
        r = client.post(
            "/attempts/hint", json={"challenge_id": str(challenge.id), "image_index": 1}, headers=PLAYER
        )
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["hint"] == "hint 1"
        assert data["hints_used"] == [1]

    def test_hint_after_give_up_is_409(self, client, challenge):
        r = client.post("/attempts/giveup", json={"challenge_id": str(challenge.id)}, headers=PLAYER)
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "gave_up"

        r = client.post(
            "/attempts/hint", json={"challenge_id": str(challenge.id), "image_index": 0}, headers=PLAYER
        )
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "ALREADY_COMPLETE"

    def test_give_up_twice_is_idempotent(self, client, challenge):
        first = client.post("/attempts/giveup", json={"challenge_id": str(challenge.id)}, headers=PLAYER)
        second = client.post("/attempts/giveup", json={"challenge_id": str(challenge.id)}, headers=PLAYER)
        assert first.status_code == second.status_code == 200
        assert second.json()["data"]["already_complete"] is True


# --- Triggers ---
class TestCommentTrigger:
    def _event(self, client, comment_id="c-1", author_id="player-2", post_id="post-1"):
        return client.post(
            "/internal/triggers/comment-submit",
            json={"post_id": post_id, "comment_id": comment_id, "author_id": author_id},
        )

    def test_first_comment_granted_once(self, client, challenge, services):
        assert self._event(client).json()["data"] == {"granted": True}
        assert self._event(client).json()["data"] == {"granted": False}
        assert services.store.users[challenge.creator_id].total_points == 1

    def test_unknown_post_still_200(self, client, challenge):
        r = self._event(client, post_id="post-unknown")
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is False
        assert body["data"] == {"granted": False}
        assert body["message"].startswith("NOT_FOUND")

    def test_persistence_failure_still_200(self, client, challenge, services):
        services.store.fail("get_challenge_by_post", *[ConnectionError("down")] * 3)
        r = self._event(client)
        assert r.status_code == 200
        assert r.json()["message"].startswith("PERSISTENCE_FAILURE")


# --- Leaderboard / profile ---
def test_leaderboard_ranks_players(client, services):
    services.store.add_user("alice", points=50)
    services.store.add_user("bob", points=50)
    services.store.add_user("carol", points=10)
    services.store.add_user("mod", points=999, role="mod")

    r = client.post("/leaderboard/rebuild")
    assert r.status_code == 200
    assert r.json()["data"] == {"players": 3}

    r = client.get("/leaderboard?limit=10", headers={"X-User-Id": "carol"})
    assert r.status_code == 200
    page = r.json()["data"]
    assert {e["user_id"] for e in page["entries"][:2]} == {"alice", "bob"}
    assert page["entries"][2]["user_id"] == "carol"
    assert [e["rank"] for e in page["entries"]] == [1, 1, 3]
    assert page["user_rank"]["rank"] == 3
    assert page["total_players"] == 3


def test_my_profile_after_solve(client, challenge):
    assert client.get("/my/profile", headers=PLAYER).status_code == 404

    client.post("/attempts/guess", json={"challenge_id": str(challenge.id), "guess": "ocean"}, headers=PLAYER)
    r = client.get("/my/profile", headers=PLAYER)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total_points"] == 30
    assert data["level"] == 1
    assert data["exp_to_next_level"] == 70
    assert data["rank"] == 1


def test_my_comment_stats(client, challenge):
    client.post(
        "/internal/triggers/comment-submit",
        json={"post_id": "post-1", "comment_id": "c-9", "author_id": "player-1"},
    )
    r = client.get("/my/profile/comment-stats", headers={"X-User-Id": challenge.creator_id})
    assert r.status_code == 200
    assert r.json()["data"] == {"total_comments": 1, "total_points": 1, "total_experience": 1}


# --- Challenges ---
class TestChallengeRoutes:
    def test_feed_hides_answers_and_preloads_next(self, client, services):
        first = services.store.add_challenge(make_challenge(answer="Ocean"))
        second = services.store.add_challenge(make_challenge(answer="Fire", creator_id="creator-2"))
        services.store.add_user("creator-2", username="Blaze")

        r = client.get("/challenges/feed?index=0")
        assert r.status_code == 200
        data = r.json()["data"]
        assert [c["id"] for c in data["items"]] == [str(first.id), str(second.id)]
        assert data["preloading"] == 1
        assert all("correct_answer" not in c for c in data["items"])
        assert services.preload.has(str(second.id))

        r = client.get(f"/challenges/{second.id}")
        assert r.status_code == 200
        detail = r.json()["data"]
        assert detail["extras"]["creator_username"] == "Blaze"
        assert "correct_answer" not in detail
        assert not services.preload.has(str(second.id))

    def test_detail_from_store(self, client, challenge):
        r = client.get(f"/challenges/{challenge.id}")
        assert r.status_code == 200
        assert r.json()["data"]["image_count"] == 3

    def test_unknown_challenge_is_404(self, client):
        r = client.get("/challenges/507f1f77bcf86cd799439011")
        assert r.status_code == 404
        assert r.json()["error"]["code"] == "NOT_FOUND"


# --- Username sync ---
class TestUsernameSync:
    def test_username_header_names_new_player(self, client, challenge, services):
        headers = {**PLAYER, "X-Username": "Marin"}
        client.post("/attempts/guess", json={"challenge_id": str(challenge.id), "guess": "ocean"}, headers=headers)

        r = client.get("/my/profile", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["username"] == "Marin"
        assert r.json()["data"]["total_points"] == 30
        assert services.store.calls.count("upsert_user") == 1

        client.post("/leaderboard/rebuild")
        page = client.get("/leaderboard?limit=10").json()["data"]
        assert page["entries"][0]["username"] == "Marin"

    def test_renamed_player_refreshes_cached_profile(self, client, services):
        services.store.add_user("player-1", points=40, username="Marin")
        assert client.get("/my/profile", headers=PLAYER).json()["data"]["username"] == "Marin"

        r = client.get("/my/profile", headers={**PLAYER, "X-Username": "Marina"})
        assert r.json()["data"]["username"] == "Marina"
        assert services.store.users["player-1"].total_points == 40

    def test_without_header_profile_is_untouched(self, client, services):
        services.store.add_user("player-1", username="Marin")
        client.get("/my/profile", headers={**PLAYER, "X-Username": "  "})
        assert "upsert_user" not in services.store.calls
