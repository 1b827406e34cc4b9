# tests/infra/test_redis_client.py
"""
Тесты клиента Redis.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.infra.redis_client import RedisClient


@pytest.fixture
def redis_client():
    """Свежий экземпляр RedisClient с моком соединения."""
    RedisClient._instance = None
    client = RedisClient()
    client._client = AsyncMock()
    yield client
    RedisClient._instance = None


class TestRedisClient:
    """Тесты для RedisClient."""

    def test_make_key(self, redis_client: RedisClient) -> None:
        assert redis_client._make_key("lock:grouping") == "delivery:lock:grouping"

    def test_not_connected(self) -> None:
        RedisClient._instance = None
        try:
            with pytest.raises(RuntimeError):
                _ = RedisClient().client
        finally:
            RedisClient._instance = None

    @pytest.mark.asyncio
    async def test_acquire_lock(self, redis_client: RedisClient) -> None:
        redis_client._client.set = AsyncMock(return_value=True)

        token = await redis_client.acquire_lock("grouping_scheduler", 55)

        assert token
        redis_client._client.set.assert_awaited_once_with(
            "delivery:lock:grouping_scheduler", token, nx=True, ex=55
        )

    @pytest.mark.asyncio
    async def test_acquire_lock_busy(self, redis_client: RedisClient) -> None:
        redis_client._client.set = AsyncMock(return_value=None)

        assert await redis_client.acquire_lock("grouping_scheduler", 55) is None

    @pytest.mark.asyncio
    async def test_release_lock_checks_owner(self, redis_client: RedisClient) -> None:
        redis_client._client.eval = AsyncMock(return_value=0)

        released = await redis_client.release_lock("grouping_scheduler", "other-token")

        assert released is False
        args = redis_client._client.eval.await_args.args
        assert args[1:] == (1, "delivery:lock:grouping_scheduler", "other-token")

    @pytest.mark.asyncio
    async def test_health_check_failure(self, redis_client: RedisClient) -> None:
        redis_client._client.ping = AsyncMock(side_effect=ConnectionError("refused"))

        assert await redis_client.health_check() is False
