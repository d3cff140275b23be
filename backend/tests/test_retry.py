"""Tests for the transient-error retry helper."""

import pytest
from pymongo.errors import AutoReconnect, DuplicateKeyError
from redis.exceptions import TimeoutError as RedisTimeoutError

from linkguess.core.errors import PersistenceFailure
from linkguess.core.retry import RetryPolicy, with_retry


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class Sleeps:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestRetryPolicy:
    def test_exponential_backoff_without_jitter(self):
        policy = RetryPolicy(max_attempts=6, initial_delay_s=1.0, max_delay_s=10.0, jitter_ratio=0.3)
        delays = [policy.delay_for(i, rand=lambda: 0.0) for i in range(6)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    def test_jitter_adds_at_most_thirty_percent(self):
        policy = RetryPolicy()
        assert policy.delay_for(1, rand=lambda: 0.999) == pytest.approx(2.0 + 0.999 * 0.6)
        assert policy.delay_for(10, rand=lambda: 1.0) <= 13.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_time(self):
        op = Flaky([])
        sleeps = Sleeps()

        assert await with_retry(op, label="op", policy=RetryPolicy(), sleep=sleeps) == "ok"
        assert op.calls == 1 and sleeps.delays == []

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        op = Flaky([AutoReconnect("a"), RedisTimeoutError("b")])
        sleeps = Sleeps()

        result = await with_retry(op, label="op", policy=RetryPolicy(jitter_ratio=0.0), sleep=sleeps)

        assert result == "ok"
        assert op.calls == 3
        assert sleeps.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_persistence_failure(self):
        op = Flaky([AutoReconnect("x")] * 3)

        with pytest.raises(PersistenceFailure) as exc:
            await with_retry(op, label="op", policy=RetryPolicy(), sleep=Sleeps())

        assert op.calls == 3
        assert isinstance(exc.value.__cause__, AutoReconnect)

    @pytest.mark.asyncio
    async def test_logical_rejections_are_not_retried(self):
        op = Flaky([DuplicateKeyError("E11000 duplicate key")])

        with pytest.raises(DuplicateKeyError):
            await with_retry(op, label="op", policy=RetryPolicy(), sleep=Sleeps())

        assert op.calls == 1
