"""Shared fixtures: in-memory store/redis and the service graph wired on top of them."""

import pytest

from linkguess.core.retry import RetryPolicy
from linkguess.services.attempts.attempt_tracker import AttemptTracker
from linkguess.services.comment_rewards import CommentRewardGuard
from linkguess.services.leaderboard import LeaderboardService
from linkguess.services.profile_cache import ProfileCache
from linkguess.services.propagation import LeaderboardCoordinator

from .fakes import FakeGameStore, FakeRedis, no_sleep

FAST_RETRY = RetryPolicy(max_attempts=3, initial_delay_s=0.0, max_delay_s=0.0, jitter_ratio=0.0)


@pytest.fixture
def store():
    return FakeGameStore()


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def profile_cache(redis):
    return ProfileCache(redis, ttl_s=300)


@pytest.fixture
def leaderboard(redis, store):
    return LeaderboardService(redis, store, key="leaderboard:points")


@pytest.fixture
def coordinator(profile_cache, leaderboard):
    return LeaderboardCoordinator(profile_cache, leaderboard)


@pytest.fixture
def tracker(store, coordinator):
    return AttemptTracker(store, coordinator, retry_policy=FAST_RETRY, sleep=no_sleep)


@pytest.fixture
def guard(store, coordinator):
    return CommentRewardGuard(store, coordinator, retry_policy=FAST_RETRY, sleep=no_sleep)
