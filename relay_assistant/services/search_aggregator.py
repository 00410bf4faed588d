"""SearchAggregator: cached web search over an ordered provider fallback chain."""

from __future__ import annotations

import hashlib
from typing import Any, List, Optional, Tuple

from relay_assistant._logging import get_component_logger
from relay_assistant._serialization import to_json
from relay_assistant.config.thresholds import SEARCH_CACHE_TTL_SECONDS, SEARCH_MAX_RESULTS
from relay_assistant.storage.kv import KeyValueStore
from relayframe.adapters.base import categorize_exception
from relayframe.registry import SearchProviderRegistry
from relayframe.types import RelayframeError, SearchResult

CACHE_KEY_PREFIX = "search:"


class SearchUnavailableError(Exception):
    """Every configured provider failed, or none is configured."""

    def __init__(self, errors: List[Tuple[str, RelayframeError]]):
        self.errors = errors
        if errors:
            detail = "; ".join(f"{name}: {err}" for name, err in errors)
        else:
            detail = "no search provider configured"
        super().__init__(f"search unavailable ({detail})")


def normalize_query(query: str) -> str:
    return " ".join(query.lower().split())


def cache_key(query: str) -> str:
    digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


class SearchAggregator:
    """
    Resolves a query via cache, then each configured provider in order.

    Empty result lists are successes and are cached like any other answer.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        registry: SearchProviderRegistry,
        log: Optional[Any] = None,
        ttl: float = SEARCH_CACHE_TTL_SECONDS,
        max_results: int = SEARCH_MAX_RESULTS,
    ):
        self.kv = kv
        self.registry = registry
        self.ttl = ttl
        self.max_results = max_results
        self.logger = get_component_logger("search_aggregator", log)

    @property
    def available(self) -> bool:
        return bool(self.registry.list_configured())

    async def search(self, query: str) -> List[SearchResult]:
        key = cache_key(query)

        cached = await self._read_cache(key)
        if cached is not None:
            self.logger.info("search_cache_hit", key=key, results=len(cached))
            return cached

        errors: List[Tuple[str, RelayframeError]] = []
        for provider in self.registry.list_configured():
            try:
                results = await provider.search(query, limit=self.max_results)
            except Exception as e:
                err = categorize_exception(e)
                errors.append((provider.name, err))
                self.logger.warning(
                    "search_provider_failed",
                    provider=provider.name,
                    category=err.category.value,
                    status_code=err.status_code,
                    error=err.message,
                )
                continue

            self.logger.info("search_provider_succeeded", provider=provider.name, results=len(results))
            await self._write_cache(key, results)
            return results

        self.logger.error("search_unavailable", providers=[name for name, _ in errors])
        raise SearchUnavailableError(errors)

    async def _read_cache(self, key: str) -> Optional[List[SearchResult]]:
        try:
            data = await self.kv.get_json(key)
        except Exception as e:
            self.logger.warning("search_cache_read_failed", key=key, error=str(e))
            return None
        if not isinstance(data, list):
            return None
        return [SearchResult.from_dict(item) for item in data if isinstance(item, dict)]

    async def _write_cache(self, key: str, results: List[SearchResult]) -> None:
        try:
            await self.kv.put(key, to_json([r.to_dict() for r in results]), ttl=self.ttl)
        except Exception as e:
            self.logger.warning("search_cache_write_failed", key=key, error=str(e))
