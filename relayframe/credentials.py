from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from .endpoints import EndpointSpec


@dataclass
class CredentialState:
    valid: bool
    checked_at: Optional[float] = None
    detail: Optional[str] = None


class CredentialProbe(ABC):
    @abstractmethod
    async def verify(self, endpoint: EndpointSpec, api_key: str) -> CredentialState:
        ...


class HttpCredentialProbe(CredentialProbe):
    """
    Verifies a provider key with ``GET /auth/key``.

    Any non-2xx status, timeout or connection failure counts as invalid; the
    reason is kept in ``detail`` for logging and never shown to users.
    """

    path = "/auth/key"

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def verify(self, endpoint: EndpointSpec, api_key: str) -> CredentialState:
        if not api_key:
            return CredentialState(valid=False, checked_at=time.time(), detail="empty key")

        url = f"{endpoint.base_url.rstrip('/')}{self.path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, headers={"Authorization": f"Bearer {api_key}"})
        except httpx.TimeoutException:
            return CredentialState(valid=False, checked_at=time.time(), detail="timeout")
        except httpx.HTTPError as exc:
            return CredentialState(
                valid=False,
                checked_at=time.time(),
                detail=f"connection error: {type(exc).__name__}: {exc}",
            )

        return CredentialState(
            valid=resp.is_success,
            checked_at=time.time(),
            detail=f"HTTP {resp.status_code}",
        )
