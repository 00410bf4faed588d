"""SQLite key-value store for the relay assistant.

Implements KeyValueStore on a single table using aiosqlite. Expiry is
stored as a wall-clock timestamp and enforced on read; expired rows are
also swept opportunistically on write.
"""

import asyncio
import os
import time
from pathlib import Path
from typing import Callable, Optional

import aiosqlite

from relay_assistant.storage.kv import KeyValueStore

DEFAULT_DB_PATH = "./data/relay_assistant.db"

KV_DDL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL
)
"""

KV_EXPIRY_INDEX_DDL = "CREATE INDEX IF NOT EXISTS idx_kv_expires ON kv(expires_at)"


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite key-value store."""

    def __init__(self, database_path: Optional[str] = None, clock: Callable[[], float] = time.time):
        self.database_path = database_path or os.getenv("RELAY_SQLITE_PATH", DEFAULT_DB_PATH)
        self._clock = clock
        self._db: Optional[aiosqlite.Connection] = None
        self._connect_lock = asyncio.Lock()

    @property
    def backend(self) -> str:
        return "sqlite"

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> None:
        if self._db is not None:
            return  # idempotent
        async with self._connect_lock:
            if self._db is not None:
                return
            if self.database_path != ":memory:":
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self.database_path)
            if self.database_path != ":memory:":
                await db.execute("PRAGMA journal_mode = WAL")
            await db.execute(KV_DDL)
            await db.execute(KV_EXPIRY_INDEX_DDL)
            await db.commit()
            self._db = db

    async def disconnect(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def get(self, key: str) -> Optional[str]:
        await self.connect()
        cursor = await self._db.execute(
            "SELECT value, expires_at FROM kv WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        value, expires_at = row
        if expires_at is not None and self._clock() >= expires_at:
            await self.delete(key)
            return None
        return value

    async def put(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        await self.connect()
        now = self._clock()
        expires_at = now + ttl if ttl else None
        await self._db.execute(
            "INSERT INTO kv (key, value, expires_at) VALUES (?, ?, ?) "
            "ON CONFLICT (key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at",
            (key, value, expires_at),
        )
        await self._db.execute(
            "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?", (now,)
        )
        await self._db.commit()

    async def delete(self, key: str) -> None:
        await self.connect()
        await self._db.execute("DELETE FROM kv WHERE key = ?", (key,))
        await self._db.commit()
