from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class BackendKind(str, Enum):
    OPENROUTER_CHAT = "openrouter_chat"
    GOOGLE_SEARCH = "google_search"
    BING_SEARCH = "bing_search"


OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
GOOGLE_SEARCH_API_BASE = "https://www.googleapis.com/customsearch/v1"
BING_SEARCH_API_BASE = "https://api.bing.microsoft.com/v7.0/search"


@dataclass
class EndpointSpec:
    name: str
    base_url: str
    backend_kind: BackendKind
    timeout: float = 120.0
    headers: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)  # credentials, engine ids, etc.

    def credential(self, key: str) -> Optional[str]:
        value = self.metadata.get(key)
        return value or None


def openrouter_endpoint(
    base_url: str = OPENROUTER_API_BASE,
    referer: Optional[str] = None,
    title: Optional[str] = None,
) -> EndpointSpec:
    headers: Dict[str, str] = {}
    if referer:
        headers["HTTP-Referer"] = referer
    if title:
        headers["X-Title"] = title
    return EndpointSpec(
        name="openrouter",
        base_url=base_url,
        backend_kind=BackendKind.OPENROUTER_CHAT,
        headers=headers,
    )
