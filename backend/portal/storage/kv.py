"""Key-value store adapter backed by Redis.

All project and credential state lives in one Redis database. This module is
the only place that talks to the Redis client: every call is bounded by
``settings.store_timeout_seconds`` and any timeout or connection failure is
raised as :class:`UnavailableError` so callers can tell "try later" apart
from "this request is wrong".
"""
import asyncio
import json
from typing import Any, Awaitable, List, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError, WatchError

from portal.config import settings
from portal.utils.exceptions import UnavailableError
from portal.utils.logger import logger


class KeyValueStore:
    """Uniform get/set/delete/expire, set membership and prefix scans."""

    def __init__(self, client: redis.Redis, timeout: float = 3.0):
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_url(cls, url: str, timeout: float = 3.0) -> "KeyValueStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, timeout=timeout)

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (asyncio.TimeoutError, RedisError, OSError) as e:
            logger.error(f"Key-value store {operation} failed: {e}", exc_info=True)
            raise UnavailableError("Key-value store unavailable, try again later") from e

    # Scalars

    async def get(self, key: str) -> Optional[str]:
        return await self._call("get", self.client.get(key))

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        await self._call("set", self.client.set(key, value, ex=ttl))

    async def pop(self, key: str) -> Optional[str]:
        """Read and delete a key in one round trip (single-use credentials)."""
        return await self._call("getdel", self.client.getdel(key))

    async def delete(self, *keys: str) -> int:
        return await self._call("delete", self.client.delete(*keys))

    async def expire(self, key: str, ttl: int) -> bool:
        return await self._call("expire", self.client.expire(key, ttl))

    async def move(self, src: str, dst: str) -> bool:
        """
        Rename ``src`` to ``dst``, keeping its TTL.

        Returns:
            True if moved, False if ``src`` is missing or ``dst`` already exists
        """

        async def _move() -> bool:
            if not await self.client.exists(src):
                return False
            try:
                return bool(await self.client.renamenx(src, dst))
            except ResponseError:
                # ``src`` was removed between the two calls
                return False

        return await self._call("move", _move())

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.get(key)
        return json.loads(raw) if raw is not None else None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self.set(key, json.dumps(value), ttl=ttl)

    async def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        """
        Write ``value`` only if the key still holds ``expected``.

        Uses WATCH/MULTI so a concurrent writer between our read and our
        write makes the transaction fail instead of being overwritten.

        Returns:
            True if written, False if the stored value changed underneath us
        """

        async def _transaction() -> bool:
            async with self.client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                current = await pipe.get(key)
                if current != expected:
                    await pipe.reset()
                    return False
                pipe.multi()
                pipe.set(key, value)
                try:
                    await pipe.execute()
                except WatchError:
                    return False
                return True

        return await self._call("compare_and_set", _transaction())

    # Sets

    async def add_member(self, set_key: str, member: str) -> None:
        await self._call("sadd", self.client.sadd(set_key, member))

    async def remove_member(self, set_key: str, member: str) -> None:
        await self._call("srem", self.client.srem(set_key, member))

    async def members(self, set_key: str) -> Set[str]:
        return await self._call("smembers", self.client.smembers(set_key))

    # Lists

    async def push_json(self, list_key: str, value: Any) -> None:
        await self._call("lpush", self.client.lpush(list_key, json.dumps(value)))

    async def range_json(self, list_key: str, start: int = 0, end: int = -1) -> List[Any]:
        items = await self._call("lrange", self.client.lrange(list_key, start, end))
        return [json.loads(item) for item in items]

    # Enumeration

    async def scan_prefix(self, prefix: str) -> List[str]:
        """Best-effort enumeration of keys starting with ``prefix``."""

        async def _scan() -> List[str]:
            return [key async for key in self.client.scan_iter(match=f"{prefix}*")]

        return await self._call("scan", _scan())

    async def ping(self) -> bool:
        return await self._call("ping", self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


_store: Optional[KeyValueStore] = None


def get_kv_store() -> KeyValueStore:
    """Dependency returning the process-wide key-value store."""
    global _store
    if _store is None:
        _store = KeyValueStore.from_url(settings.redis_url, timeout=settings.store_timeout_seconds)
    return _store


async def close_kv_store() -> None:
    """Close the process-wide store (application shutdown)."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
