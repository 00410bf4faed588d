"""Bing Web Search v7 provider."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from relayframe.adapters.base import SearchProvider, categorize_exception
from relayframe.endpoints import BING_SEARCH_API_BASE
from relayframe.types import ErrorCategory, RelayframeError, SearchResult


class BingSearchProvider(SearchProvider):
    """
    Credential travels in the ``Ocp-Apim-Subscription-Key`` header.

    Native shape: ``{"webPages": {"value": [{"name", "url", "snippet"}, ...]}}``.
    """

    name = "bing"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BING_SEARCH_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        if not self.configured:
            raise RelayframeError(ErrorCategory.AUTH, "bing search is not configured")

        headers = {"Ocp-Apim-Subscription-Key": self.api_key}
        params = {"q": query, "count": max(1, limit), "textFormat": "Raw"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=params, headers=headers)
        except Exception as exc:
            raise categorize_exception(exc) from exc

        if resp.status_code >= 400:
            raise RelayframeError(
                ErrorCategory.AUTH if resp.status_code in (401, 403) else ErrorCategory.BACKEND,
                "bing search request failed",
                status_code=resp.status_code,
                raw_backend=resp.text[:500],
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise RelayframeError(ErrorCategory.PARSE, str(exc), raw_backend=resp.text[:500]) from exc
        return self._normalize(data)[:limit]

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> List[SearchResult]:
        pages = (data.get("webPages") or {}) if isinstance(data, dict) else {}
        results: List[SearchResult] = []
        for item in pages.get("value") or []:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            results.append(
                SearchResult(
                    title=str(item.get("name") or item["url"]),
                    link=str(item["url"]),
                    snippet=str(item.get("snippet") or "").strip(),
                )
            )
        return results
