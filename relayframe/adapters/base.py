from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, List

from relayframe.endpoints import EndpointSpec
from relayframe.types import (
    CompletionRequest,
    CompletionStreamEvent,
    ErrorCategory,
    RelayframeError,
    SearchResult,
)


def categorize_exception(exc: Exception) -> RelayframeError:
    if isinstance(exc, RelayframeError):
        return exc
    name = exc.__class__.__name__
    if "Timeout" in name:
        return RelayframeError(ErrorCategory.TIMEOUT, str(exc))
    if "Network" in name or "Connect" in name:
        return RelayframeError(ErrorCategory.CONNECTION, str(exc))
    if isinstance(exc, ValueError):
        return RelayframeError(ErrorCategory.PARSE, str(exc))
    return RelayframeError(ErrorCategory.BACKEND, str(exc))


class BackendAdapter(ABC):
    @abstractmethod
    async def stream_chat(
        self, endpoint: EndpointSpec, request: CompletionRequest
    ) -> AsyncIterator[CompletionStreamEvent]:
        ...


class SearchProvider(ABC):
    """One search backend; native responses are normalized to SearchResult here."""

    name: str = "search"

    @property
    @abstractmethod
    def configured(self) -> bool:
        ...

    @abstractmethod
    async def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        """Return ranked results, or raise RelayframeError."""
        ...
