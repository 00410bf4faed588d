from typing import List

import pytest

from relayframe.adapters.base import SearchProvider
from relayframe.registry import SearchProviderRegistry
from relayframe.types import SearchResult


class StaticProvider(SearchProvider):
    def __init__(self, name: str, configured: bool = True):
        self.name = name
        self._configured = configured

    @property
    def configured(self) -> bool:
        return self._configured

    async def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        return []


def test_registration_order_is_attempt_order():
    registry = SearchProviderRegistry([StaticProvider("google"), StaticProvider("bing")])
    assert [p.name for p in registry.list_providers()] == ["google", "bing"]


def test_list_configured_skips_unconfigured():
    registry = SearchProviderRegistry([
        StaticProvider("google", configured=False),
        StaticProvider("bing"),
    ])
    assert [p.name for p in registry.list_configured()] == ["bing"]


def test_duplicate_name_rejected():
    registry = SearchProviderRegistry([StaticProvider("google")])
    with pytest.raises(ValueError):
        registry.register(StaticProvider("google"))


def test_get_and_unregister():
    registry = SearchProviderRegistry([StaticProvider("google"), StaticProvider("bing")])
    assert registry.get("bing").name == "bing"
    assert registry.get("duckduckgo") is None

    registry.unregister("google")
    assert [p.name for p in registry.list_providers()] == ["bing"]
