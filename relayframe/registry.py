from __future__ import annotations

from typing import Iterable, List, Optional

from .adapters.base import SearchProvider


class SearchProviderRegistry:
    """
    Ordered fallback chain of search providers.

    Registration order is attempt order: the first provider is the primary,
    every later one is a fallback.

    Usage:
        registry = SearchProviderRegistry([google, bing])
        for provider in registry.list_configured():
            ...
    """

    def __init__(self, providers: Iterable[SearchProvider] = ()):
        self._providers: List[SearchProvider] = []
        for provider in providers:
            self.register(provider)

    def register(self, provider: SearchProvider) -> None:
        if self.get(provider.name) is not None:
            raise ValueError(f"Search provider '{provider.name}' already registered")
        self._providers.append(provider)

    def unregister(self, name: str) -> None:
        self._providers = [p for p in self._providers if p.name != name]

    def get(self, name: str) -> Optional[SearchProvider]:
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def list_providers(self) -> List[SearchProvider]:
        return list(self._providers)

    def list_configured(self) -> List[SearchProvider]:
        """Return only providers whose credentials are present, in order."""
        return [p for p in self._providers if p.configured]
