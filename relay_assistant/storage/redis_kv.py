"""Redis key-value store; TTLs map onto native key expiry."""

import math
from typing import Any, Optional

import redis.asyncio as redis

from relay_assistant.storage.kv import KeyValueStore


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, redis_url: str = "redis://localhost:6379", client: Optional[Any] = None):
        self.redis_url = redis_url
        self._client = client

    @property
    def backend(self) -> str:
        return "redis"

    async def connect(self) -> None:
        if self._client is None:
            self._client = redis.from_url(self.redis_url, decode_responses=True)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Optional[str]:
        await self.connect()
        return await self._client.get(key)

    async def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        await self.connect()
        if ttl:
            await self._client.set(key, value, ex=max(1, math.ceil(ttl)))
        else:
            await self._client.set(key, value)

    async def delete(self, key: str) -> None:
        await self.connect()
        await self._client.delete(key)
