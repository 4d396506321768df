"""Unit tests for session storage backends."""

from unittest.mock import AsyncMock, patch

import pytest

from src.auth_starter.core.models.session import AuthTicket
from src.auth_starter.core.storage.session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
    create_session_storage,
)
from src.auth_starter.runtime.config.config_data import RedisConfig


def make_ticket(session_id: str = "abc") -> AuthTicket:
    return AuthTicket.create(session_id, "Identity.Application", "user-1", ttl_seconds=60)


class TestInMemorySessionStorage:
    """Test the in-memory backend."""

    async def test_set_and_get(self):
        storage = InMemorySessionStorage()
        await storage.set("Identity.Application:abc", make_ticket(), 60)

        ticket = await storage.get("Identity.Application:abc", AuthTicket)

        assert ticket is not None
        assert ticket.user_id == "user-1"

    async def test_expired_entries_are_dropped(self):
        storage = InMemorySessionStorage()
        await storage.set("key", make_ticket(), 60)

        with patch("src.auth_starter.core.storage.session_storage.time.time", return_value=10**12):
            assert await storage.get("key", AuthTicket) is None

    async def test_cleanup_expired(self):
        storage = InMemorySessionStorage()
        await storage.set("old", make_ticket("old"), 0)
        await storage.set("new", make_ticket("new"), 60)

        with patch(
            "src.auth_starter.core.storage.session_storage.time.time",
            return_value=make_ticket().created_at + 1,
        ):
            assert await storage.cleanup_expired() == 1

        assert await storage.get("new", AuthTicket) is not None

    async def test_set_purges_expired_entries_after_interval(self):
        storage = InMemorySessionStorage(purge_interval_seconds=60)
        start = make_ticket().created_at
        clock = "src.auth_starter.core.storage.session_storage.time.time"

        with patch(clock, return_value=start):
            await storage.set("old", make_ticket("old"), 10)
        with patch(clock, return_value=start + 100):
            await storage.set("new", make_ticket("new"), 60)
            assert await storage.cleanup_expired() == 0

    async def test_set_does_not_purge_within_interval(self):
        storage = InMemorySessionStorage(purge_interval_seconds=60)
        start = make_ticket().created_at
        clock = "src.auth_starter.core.storage.session_storage.time.time"

        with patch(clock, return_value=start):
            await storage.set("old", make_ticket("old"), 10)
        with patch(clock, return_value=start + 30):
            await storage.set("new", make_ticket("new"), 60)
            assert await storage.cleanup_expired() == 1

    async def test_delete(self):
        storage = InMemorySessionStorage()
        await storage.set("key", make_ticket(), 60)
        await storage.delete("key")
        await storage.delete("key")
        assert await storage.get("key", AuthTicket) is None


class TestRedisSessionStorage:
    """Test the Redis backend against a mocked client."""

    async def test_set_uses_ttl(self):
        client = AsyncMock()
        storage = RedisSessionStorage(client)
        ticket = make_ticket()

        await storage.set("key", ticket, 60)

        client.setex.assert_awaited_once_with("key", 60, ticket.model_dump_json())

    async def test_get_parses_json(self):
        client = AsyncMock()
        client.get.return_value = make_ticket().model_dump_json().encode("utf-8")

        ticket = await RedisSessionStorage(client).get("key", AuthTicket)

        assert ticket is not None and ticket.id == "abc"

    async def test_corrupted_entry_is_deleted(self):
        client = AsyncMock()
        client.get.return_value = "not json"

        assert await RedisSessionStorage(client).get("key", AuthTicket) is None
        client.delete.assert_awaited_once_with("key")

    async def test_errors_are_wrapped(self):
        client = AsyncMock()
        client.get.side_effect = ConnectionError("down")

        with pytest.raises(RuntimeError, match="Redis get failed"):
            await RedisSessionStorage(client).get("key", AuthTicket)

    async def test_ping_failure_reports_false(self):
        client = AsyncMock()
        client.ping.side_effect = ConnectionError("down")
        assert await RedisSessionStorage(client).ping() is False


class TestCreateSessionStorage:
    def test_in_memory_without_url(self):
        assert isinstance(create_session_storage(RedisConfig()), InMemorySessionStorage)

    def test_redis_with_url(self):
        storage = create_session_storage(RedisConfig(url="redis://localhost:6379/0"))
        assert isinstance(storage, RedisSessionStorage)

    def test_password_is_added_to_url(self):
        config = RedisConfig(url="redis://cache:6379/0", password="s3cret")
        assert config.connection_string == "redis://:s3cret@cache:6379/0"
