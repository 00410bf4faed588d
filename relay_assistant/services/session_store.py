"""SessionStore: per-user settings and conversation history.

Reads never fail: a storage error or a missing record yields the default
session. Writes are best effort: a storage error is logged and swallowed so
a reply already sent to the user is never undone by a persistence problem.

Read-modify-write sequences go through ``update`` which serializes them per
user with an in-process asyncio lock.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from relay_assistant._logging import get_component_logger
from relay_assistant._serialization import to_json
from relay_assistant.config.settings import Settings
from relay_assistant.config.thresholds import MAX_HISTORY_MESSAGES
from relay_assistant.orchestration.types import HistoryEntry, UserSession
from relay_assistant.storage.kv import KeyValueStore

# Older records used camelCase keys
_LEGACY_KEYS = {
    "apiKey": "api_key",
    "systemPrompt": "system_prompt",
    "searchEnabled": "search_enabled",
    "lastSearchQuery": "last_search_query",
    "lastSearchTimestamp": "last_search_timestamp",
}


@dataclass
class SessionMutationLock:
    """Asyncio lock manager keyed by user id.

    Locks are dropped once nobody holds or waits for them, so the map only
    contains users with a mutation in flight.
    """

    _locks: Dict[str, asyncio.Lock] = field(default_factory=dict)
    _holders: Dict[str, int] = field(default_factory=dict)

    @asynccontextmanager
    async def acquire(self, user_id: Union[int, str]):
        """Hold the user's lock for the duration of the block."""
        key = str(user_id)

        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._holders[key] = self._holders.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def is_locked(self, user_id: Union[int, str]) -> bool:
        lock = self._locks.get(str(user_id))
        return lock is not None and lock.locked()


Mutator = Callable[[UserSession], Union[None, Awaitable[None]]]


class SessionStore:
    """Loads and saves UserSession records in the key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        settings: Settings,
        log: Optional[Any] = None,
        max_history: int = MAX_HISTORY_MESSAGES,
    ):
        self.kv = kv
        self.settings = settings
        self.max_history = max_history
        self.lock = SessionMutationLock()
        self.logger = get_component_logger("session_store", log)

    @staticmethod
    def key_for(user_id: Union[int, str]) -> str:
        return f"user_{user_id}"

    def default_session(self) -> UserSession:
        return UserSession(
            model=self.settings.default_model,
            system_prompt=self.settings.default_system_prompt,
            language=self.settings.default_language,
        )

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    async def get(self, user_id: Union[int, str]) -> UserSession:
        """Stored record merged over defaults; defaults on any storage error."""
        try:
            stored = await self.kv.get_json(self.key_for(user_id))
        except Exception as e:
            self.logger.error("session_read_failed", user_id=str(user_id), error=str(e))
            return self.default_session()
        return self.merge(stored)

    async def put(self, user_id: Union[int, str], session: UserSession) -> None:
        """Persist the session, truncating history first. Never raises."""
        self.truncate_history(session)
        try:
            await self.kv.put(self.key_for(user_id), to_json(session.to_dict()))
        except Exception as e:
            self.logger.error("session_write_failed", user_id=str(user_id), error=str(e))
            return
        self.logger.debug("session_written", user_id=str(user_id), history=len(session.history))

    async def update(self, user_id: Union[int, str], mutate: Mutator) -> UserSession:
        """Read, mutate and write the session while holding the user's lock."""
        async with self.lock.acquire(user_id):
            session = await self.get(user_id)
            result = mutate(session)
            if asyncio.iscoroutine(result):
                await result
            await self.put(user_id, session)
            return session

    async def reset(self, user_id: Union[int, str]) -> UserSession:
        """Replace the record with one holding only the language preference."""
        async with self.lock.acquire(user_id):
            current = await self.get(user_id)
            try:
                await self.kv.put(self.key_for(user_id), to_json({"language": current.language}))
            except Exception as e:
                self.logger.error("session_reset_failed", user_id=str(user_id), error=str(e))
            fresh = self.default_session()
            fresh.language = current.language
            return fresh

    # =========================================================================
    # HELPERS
    # =========================================================================

    def truncate_history(self, session: UserSession) -> None:
        """Keep only the most recent ``max_history`` entries."""
        if len(session.history) > self.max_history:
            session.history = session.history[-self.max_history:]

    def merge(self, stored: Any) -> UserSession:
        """Shallow-merge a stored record over the defaults."""
        session = self.default_session()
        if not isinstance(stored, dict):
            return session

        data = dict(stored)
        for legacy, current in _LEGACY_KEYS.items():
            if legacy in data and current not in data:
                data[current] = data.pop(legacy)

        if isinstance(data.get("api_key"), str) and data["api_key"].strip():
            session.api_key = data["api_key"].strip()
        for name in ("model", "system_prompt", "language"):
            value = data.get(name)
            if isinstance(value, str) and value.strip():
                setattr(session, name, value)
        if isinstance(data.get("search_enabled"), bool):
            session.search_enabled = data["search_enabled"]
        if isinstance(data.get("last_search_query"), str):
            session.last_search_query = data["last_search_query"]
        timestamp = data.get("last_search_timestamp")
        if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
            # Milliseconds in legacy records
            session.last_search_timestamp = float(timestamp) / 1000 if timestamp > 1e12 else float(timestamp)

        history = data.get("history")
        entries: List[HistoryEntry] = []
        if isinstance(history, list):
            for item in history:
                entry = HistoryEntry.from_dict(item)
                if entry is not None:
                    entries.append(entry)
        session.history = entries
        self.truncate_history(session)
        return session
