"""Google Custom Search JSON API provider."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from relayframe.adapters.base import SearchProvider, categorize_exception
from relayframe.endpoints import GOOGLE_SEARCH_API_BASE
from relayframe.types import ErrorCategory, RelayframeError, SearchResult

# The API rejects num > 10
MAX_RESULTS_PER_CALL = 10


class GoogleSearchProvider(SearchProvider):
    """
    Credentials travel as query parameters (``key`` and ``cx``).

    Native shape: ``{"items": [{"title", "link", "snippet"}, ...]}``; the
    ``items`` key is absent when nothing matched.
    """

    name = "google"

    def __init__(
        self,
        api_key: Optional[str],
        cx: Optional[str],
        base_url: str = GOOGLE_SEARCH_API_BASE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.cx = cx
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.cx)

    async def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        if not self.configured:
            raise RelayframeError(ErrorCategory.AUTH, "google search is not configured")

        params = {
            "key": self.api_key,
            "cx": self.cx,
            "q": query,
            "num": max(1, min(limit, MAX_RESULTS_PER_CALL)),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=params)
        except Exception as exc:
            raise categorize_exception(exc) from exc

        if resp.status_code >= 400:
            raise RelayframeError(
                ErrorCategory.BACKEND,
                "google search request failed",
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
        items = data.get("items") if isinstance(data, dict) else None
        results: List[SearchResult] = []
        for item in items or []:
            if not isinstance(item, dict) or not item.get("link"):
                continue
            results.append(
                SearchResult(
                    title=str(item.get("title") or item["link"]),
                    link=str(item["link"]),
                    snippet=str(item.get("snippet") or "").replace("\n", " ").strip(),
                )
            )
        return results
