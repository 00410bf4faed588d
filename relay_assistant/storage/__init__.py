"""Key-value storage backends owned by this capability."""

from relay_assistant.config.settings import Settings
from relay_assistant.storage.kv import KeyValueStore, MemoryKeyValueStore


def create_kv_store(settings: Settings) -> KeyValueStore:
    """Build the backend named by ``settings.kv_backend``."""
    backend = settings.kv_backend
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "sqlite":
        from relay_assistant.storage.sqlite_kv import SQLiteKeyValueStore
        return SQLiteKeyValueStore(settings.sqlite_path)
    if backend == "redis":
        from relay_assistant.storage.redis_kv import RedisKeyValueStore
        return RedisKeyValueStore(settings.redis_url)
    raise ValueError(f"Unknown key-value backend: {backend}")


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "create_kv_store"]
