"""
Tests for sliding window rate limits.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core import rate_limit
from app.core.rate_limit import RateLimitExceeded, check_rate_limit, enforce_rate_limit


@pytest.fixture(autouse=True)
def clear_memory_store():
    rate_limit._memory_store.clear()
    yield
    rate_limit._memory_store.clear()


def _redis_client(execute):
    pipe = MagicMock()
    pipe.execute = execute
    client = MagicMock()
    client.pipeline.return_value = pipe
    return client, pipe


class TestMemoryFallback:
    """Tests for limits counted in process memory."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self):
        with patch("app.core.rate_limit.get_redis", return_value=None):
            results = [await check_rate_limit("staff:decide:u1", 3, 60) for _ in range(4)]

        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        with patch("app.core.rate_limit.get_redis", return_value=None):
            assert await check_rate_limit("staff:decide:u1", 1, 60)
            assert not await check_rate_limit("staff:decide:u1", 1, 60)
            assert await check_rate_limit("staff:decide:u2", 1, 60)

    @pytest.mark.asyncio
    async def test_window_slides(self):
        with (
            patch("app.core.rate_limit.get_redis", return_value=None),
            patch("app.core.rate_limit.time.time") as mock_time,
        ):
            mock_time.return_value = 1000.0
            assert await check_rate_limit("status_check:1.2.3.4", 1, 60)
            assert not await check_rate_limit("status_check:1.2.3.4", 1, 60)

            mock_time.return_value = 1061.0
            assert await check_rate_limit("status_check:1.2.3.4", 1, 60)


class TestRedisBackend:
    """Tests for limits counted in Redis sorted sets."""

    @pytest.mark.asyncio
    async def test_count_under_limit(self):
        client, pipe = _redis_client(AsyncMock(return_value=[0, 2, 1, True]))

        with patch("app.core.rate_limit.get_redis", return_value=client):
            assert await check_rate_limit("staff:promote:u1", 3, 60)

        client.pipeline.assert_called_once_with(transaction=True)
        pipe.zremrangebyscore.assert_called_once()
        pipe.zadd.assert_called_once()
        pipe.expire.assert_called_once_with("staff:promote:u1", 60)

    @pytest.mark.asyncio
    async def test_count_at_limit(self):
        client, _ = _redis_client(AsyncMock(return_value=[0, 3, 1, True]))

        with patch("app.core.rate_limit.get_redis", return_value=client):
            assert not await check_rate_limit("staff:promote:u1", 3, 60)

    @pytest.mark.asyncio
    async def test_redis_failure_uses_memory(self):
        client, _ = _redis_client(AsyncMock(side_effect=RedisConnectionError("down")))

        with patch("app.core.rate_limit.get_redis", return_value=client):
            assert await check_rate_limit("staff:enroll:u1", 1, 60)
            assert not await check_rate_limit("staff:enroll:u1", 1, 60)

        assert len(rate_limit._memory_store["staff:enroll:u1"]) == 1


class TestEnforce:
    """Tests for enforce_rate_limit."""

    @pytest.mark.asyncio
    async def test_over_limit_raises_429(self):
        with patch("app.core.rate_limit.check_rate_limit", AsyncMock(return_value=False)):
            with pytest.raises(RateLimitExceeded) as exc_info:
                await enforce_rate_limit("staff:decide:u1", 30, 60)

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail["error"] == "RATE_LIMIT_EXCEEDED"
        assert exc_info.value.headers["Retry-After"] == "60"
