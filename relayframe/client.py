from __future__ import annotations

from typing import AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import httpx

from relayframe.adapters.base import BackendAdapter, categorize_exception
from relayframe.adapters.openrouter_chat import OpenRouterChatAdapter
from relayframe.credentials import CredentialProbe, CredentialState, HttpCredentialProbe
from relayframe.endpoints import BackendKind, EndpointSpec
from relayframe.types import (
    CompletionRequest,
    CompletionStreamEvent,
    ErrorCategory,
    ModelInfo,
    RelayframeError,
    StreamEventType,
)


class RelayframeClient:
    """Completion-provider facade: streaming chat, key checks and the model catalog."""

    def __init__(
        self,
        endpoint: EndpointSpec,
        adapter_overrides: Dict[BackendKind, BackendAdapter] | None = None,
        probe: Optional[CredentialProbe] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint
        self._transport = transport
        self.adapters: Dict[BackendKind, BackendAdapter] = {
            BackendKind.OPENROUTER_CHAT: OpenRouterChatAdapter(transport=transport),
        }
        if adapter_overrides:
            self.adapters.update(adapter_overrides)
        self.probe = probe or HttpCredentialProbe(transport=transport)

    async def stream_chat(self, request: CompletionRequest) -> AsyncIterator[CompletionStreamEvent]:
        adapter = self.adapters.get(self.endpoint.backend_kind)
        if adapter is None:
            err = RelayframeError(
                ErrorCategory.UNKNOWN, f"No adapter for backend {self.endpoint.backend_kind}"
            )
            yield CompletionStreamEvent(type=StreamEventType.ERROR, error=err)
            return
        async for event in adapter.stream_chat(self.endpoint, request):
            yield event

    async def verify_key(self, api_key: str) -> CredentialState:
        return await self.probe.verify(self.endpoint, api_key)

    async def list_models(self, api_key: str) -> List[ModelInfo]:
        """``GET /models``; raises RelayframeError on any failure."""
        data = await self._get_json("/models", api_key)
        models: List[ModelInfo] = []
        for item in data.get("data") or []:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            models.append(
                ModelInfo(
                    id=str(item["id"]),
                    name=item.get("name"),
                    context_length=item.get("context_length"),
                )
            )
        return models

    async def check_model(self, api_key: str, model_id: str) -> bool:
        """``GET /models/{id}``; False on any failure."""
        if not api_key or not model_id:
            return False
        try:
            await self._get_json(f"/models/{quote(model_id, safe='/:')}", api_key)
        except RelayframeError:
            return False
        return True

    async def _get_json(self, path: str, api_key: str) -> dict:
        headers = {"Authorization": f"Bearer {api_key}", **self.endpoint.headers}
        try:
            async with httpx.AsyncClient(
                base_url=self.endpoint.base_url.rstrip("/"),
                timeout=httpx.Timeout(15.0, connect=10.0),
                headers=headers,
                transport=self._transport,
            ) as client:
                resp = await client.get(path)
        except Exception as exc:
            raise categorize_exception(exc) from exc

        if resp.status_code >= 400:
            raise RelayframeError(
                ErrorCategory.AUTH if resp.status_code in (401, 403) else ErrorCategory.BACKEND,
                f"GET {path} failed",
                status_code=resp.status_code,
                raw_backend=resp.text[:500],
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise RelayframeError(ErrorCategory.PARSE, str(exc), raw_backend=resp.text[:500]) from exc
        if not isinstance(data, dict):
            raise RelayframeError(ErrorCategory.PARSE, f"GET {path} returned non-object", raw_backend=data)
        return data
