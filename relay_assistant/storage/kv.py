"""Key-value store interface and the in-memory implementation.

Every entity the assistant persists lives under its own key with no
cross-key transactions:

    user_<id>          session JSON
    msg_<message_id>   last text pushed to a streamed message (short TTL)
    search:<sha256>    cached search results (TTL)
    models:catalog     cached model id list (TTL)
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from relay_assistant._serialization import from_json


class KeyValueStore(ABC):
    """Async string key-value store with optional per-key TTL (seconds)."""

    @property
    @abstractmethod
    def backend(self) -> str:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def get_json(self, key: str) -> Any:
        """Return the decoded JSON value, or None when the key is absent."""
        raw = await self.get(key)
        if raw is None:
            return None
        return from_json(raw)

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None


@dataclass
class _Entry:
    value: str
    expires_at: Optional[float] = None


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; expired keys vanish on the next read or write."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, _Entry] = {}

    @property
    def backend(self) -> str:
        return "memory"

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._data[key]
            return None
        return entry.value

    async def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        now = self._clock()
        expired = [k for k, e in self._data.items() if e.expires_at is not None and now >= e.expires_at]
        for k in expired:
            del self._data[k]
        expires_at = now + ttl if ttl else None
        self._data[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        return entry.expires_at is None or self._clock() < entry.expires_at
