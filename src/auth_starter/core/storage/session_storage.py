"""Session storage interface and implementations.

Authentication tickets live server-side; the cookie only carries the ticket
id. Redis is used when configured, otherwise an in-memory store.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from src.auth_starter.runtime.config.config_data import RedisConfig

T = TypeVar("T", bound=BaseModel)


class SessionStorage(ABC):
    """Abstract interface for session storage backends."""

    @abstractmethod
    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store a session with TTL.

        Args:
            key: Session identifier
            value: Session data (Pydantic model)
            ttl_seconds: Time to live in seconds
        """

    @abstractmethod
    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve a session.

        Returns:
            Session data or None if not found/expired
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a session."""

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Clean up expired sessions.

        Returns:
            Number of sessions cleaned up
        """

    async def ping(self) -> bool:
        return True


class InMemorySessionStorage(SessionStorage):
    """In-memory session storage with TTL support.

    Expired entries are dropped on read and swept from ``set`` at most once
    per ``purge_interval_seconds``.
    """

    def __init__(self, purge_interval_seconds: float = 60.0) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._purge_interval = purge_interval_seconds
        self._last_purge = time.time()

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Store session in memory with expiration."""
        now = time.time()
        if now - self._last_purge >= self._purge_interval:
            await self.cleanup_expired()
        self._data[key] = {
            "data": json.loads(value.model_dump_json()),
            "expires_at": now + ttl_seconds,
        }

    async def get(self, key: str, model_class: type[T]) -> T | None:
        """Retrieve session from memory if not expired."""
        entry = self._data.get(key)
        if entry is None:
            return None

        if time.time() > entry["expires_at"]:
            del self._data[key]
            return None

        try:
            return model_class.model_validate(entry["data"])
        except ValueError:
            # Clean up corrupted data
            del self._data[key]
            return None

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def cleanup_expired(self) -> int:
        now = time.time()
        self._last_purge = now
        expired_keys = [
            key for key, entry in self._data.items() if now > entry["expires_at"]
        ]
        for key in expired_keys:
            del self._data[key]
        return len(expired_keys)


class RedisSessionStorage(SessionStorage):
    """Redis-based session storage with JSON serialization."""

    def __init__(self, redis_client: Any) -> None:
        self._redis = redis_client

    async def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(key, ttl_seconds, value.model_dump_json())
        except Exception as e:
            raise RuntimeError(f"Redis set failed: {e}") from e

    async def get(self, key: str, model_class: type[T]) -> T | None:
        try:
            data = await self._redis.get(key)
        except Exception as e:
            raise RuntimeError(f"Redis get failed: {e}") from e
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return model_class.model_validate_json(data)
        except ValueError:
            await self.delete(key)
            return None

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except Exception as e:
            raise RuntimeError(f"Redis delete failed: {e}") from e

    async def cleanup_expired(self) -> int:
        """Redis handles expiration automatically."""
        return 0

    async def ping(self) -> bool:
        try:
            await self._redis.ping()
            return True
        except Exception as e:
            logger.warning("Redis ping failed: {}", e)
            return False

    async def aclose(self) -> None:
        await self._redis.aclose()


def create_session_storage(redis_config: RedisConfig) -> SessionStorage:
    """Redis-backed storage when a URL is configured, in-memory otherwise."""
    connection_string = redis_config.connection_string
    if not connection_string:
        logger.info("Session storage: in-memory")
        return InMemorySessionStorage()

    import redis.asyncio as redis_async

    client = redis_async.from_url(
        connection_string,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    logger.info("Session storage: Redis")
    return RedisSessionStorage(client)
