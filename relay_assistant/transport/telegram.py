"""Telegram Bot API transport.

Thin request/response facade over the four methods the assistant uses.
Every call raises TransportError when the HTTP call fails or Telegram
answers ``ok: false``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from relay_assistant._logging import get_component_logger

TELEGRAM_API_BASE = "https://api.telegram.org"


class TransportError(Exception):
    def __init__(self, method: str, message: str, status_code: Optional[int] = None):
        self.method = method
        self.status_code = status_code
        super().__init__(f"{method}: {message}" + (f" (status {status_code})" if status_code else ""))


class MessagingTransport(ABC):
    @abstractmethod
    async def send_message(
        self, chat_id: int, text: str, reply_markup: Optional[Dict[str, Any]] = None
    ) -> int:
        """Send a message and return its message id."""
        ...

    @abstractmethod
    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    @abstractmethod
    async def answer_callback_query(self, callback_id: str, text: Optional[str] = None) -> None:
        ...

    @abstractmethod
    async def delete_message(self, chat_id: int, message_id: int) -> None:
        ...


class TelegramClient(MessagingTransport):
    def __init__(
        self,
        token: str,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = 15.0,
        parse_mode: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log: Optional[Any] = None,
    ):
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.parse_mode = parse_mode
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = get_component_logger("telegram_client", log)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.api_base}/bot{self.token}",
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        try:
            resp = await self._get_client().post(f"/{method}", json=payload)
        except httpx.HTTPError as e:
            raise TransportError(method, f"{type(e).__name__}: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400 or not body.get("ok"):
            description = body.get("description") or resp.reason_phrase
            raise TransportError(method, str(description), status_code=resp.status_code)
        return body.get("result")

    def _with_parse_mode(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode
        return payload

    async def send_message(
        self, chat_id: int, text: str, reply_markup: Optional[Dict[str, Any]] = None
    ) -> int:
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        result = await self._call("sendMessage", self._with_parse_mode(payload))
        try:
            return int(result["message_id"])
        except (TypeError, KeyError, ValueError) as e:
            raise TransportError("sendMessage", "response has no message_id") from e

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageText", self._with_parse_mode(payload))

    async def answer_callback_query(self, callback_id: str, text: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})
