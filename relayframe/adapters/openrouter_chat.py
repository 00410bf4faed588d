"""
OpenRouter Chat Completions adapter.

Speaks the OpenAI-compatible ``/chat/completions`` protocol with
``stream: true`` and decodes the SSE body incrementally.
"""
from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

import httpx

from relayframe.adapters.base import BackendAdapter, categorize_exception
from relayframe.endpoints import EndpointSpec
from relayframe.types import (
    CompletionRequest,
    CompletionStreamEvent,
    ErrorCategory,
    RelayframeError,
    StreamEventType,
)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SSELineBuffer:
    """Incremental byte -> line splitter.

    Bytes are decoded with an incremental UTF-8 decoder, so a multi-byte
    character split across reads is reassembled. A trailing partial line is
    held back until the next ``feed`` (or ``flush`` at end of body).
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        self._pending += self._decoder.decode(chunk)
        lines = self._pending.split("\n")
        self._pending = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        tail = tail.rstrip("\r")
        return [tail] if tail.strip() else []


def _parse_sse_lines(lines: Iterable[str]) -> Iterable[str]:
    """Yield the payload of each ``data:`` line; stops after the [DONE] sentinel."""
    for line in lines:
        if not line.startswith(DATA_PREFIX):
            continue
        payload = line[len(DATA_PREFIX):].strip()
        if not payload:
            continue
        yield payload
        if payload == DONE_SENTINEL:
            return


def _error_detail(raw: bytes) -> str:
    try:
        data = json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")[:200]
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return str(data["error"].get("message") or data["error"])
    return str(data)[:200]


class OpenRouterChatAdapter(BackendAdapter):
    """
    Adapter for OpenRouter (and other OpenAI-compatible) chat completions.

    Emits TOKEN events for each content fragment, PARSE errors for malformed
    chunks (the stream continues), and ends with a single DONE event or a
    terminal ERROR event.
    """

    path = "/chat/completions"

    def __init__(self, timeout: float = 120.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def stream_chat(
        self, endpoint: EndpointSpec, request: CompletionRequest
    ) -> AsyncIterator[CompletionStreamEvent]:
        headers = {"Content-Type": "application/json", **endpoint.headers}
        headers["Authorization"] = f"Bearer {request.api_key}"
        payload = self._build_payload(request)

        try:
            async with httpx.AsyncClient(
                base_url=endpoint.base_url.rstrip("/"),
                timeout=httpx.Timeout(endpoint.timeout or self.timeout, connect=10.0),
                headers=headers,
                transport=self._transport,
            ) as client:
                async with client.stream("POST", self.path, json=payload) as resp:
                    if resp.status_code >= 400:
                        raw = await resp.aread()
                        category = (
                            ErrorCategory.AUTH
                            if resp.status_code in (401, 403)
                            else ErrorCategory.BACKEND
                        )
                        err = RelayframeError(
                            category,
                            _error_detail(raw),
                            status_code=resp.status_code,
                            raw_backend=raw,
                        )
                        yield CompletionStreamEvent(type=StreamEventType.ERROR, error=err)
                        return
                    async for event in self._stream_sse(resp):
                        yield event
        except Exception as exc:
            err = categorize_exception(exc)
            yield CompletionStreamEvent(type=StreamEventType.ERROR, error=err, raw=str(exc))

    def _build_payload(self, request: CompletionRequest) -> Dict[str, Any]:
        """Build chat completions request payload."""
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "stream": request.stream,
        }
        return payload

    async def _stream_sse(self, response: "httpx.Response") -> AsyncIterator[CompletionStreamEvent]:
        """Parse the SSE body; a final unterminated line is still honoured."""
        buffer = SSELineBuffer()
        finish_reason: Optional[str] = None

        async for chunk in response.aiter_bytes():
            for event in self._events_from_lines(buffer.feed(chunk)):
                if event.type == StreamEventType.DONE:
                    event.finish_reason = event.finish_reason or finish_reason
                    yield event
                    return
                if event.finish_reason:
                    finish_reason = event.finish_reason
                yield event
                if event.type == StreamEventType.ERROR and event.error.category != ErrorCategory.PARSE:
                    return

        for event in self._events_from_lines(buffer.flush()):
            if event.type == StreamEventType.DONE:
                break
            if event.finish_reason:
                finish_reason = event.finish_reason
            yield event
            if event.type == StreamEventType.ERROR and event.error.category != ErrorCategory.PARSE:
                return

        yield CompletionStreamEvent(type=StreamEventType.DONE, finish_reason=finish_reason)

    def _events_from_lines(self, lines: Iterable[str]) -> Iterable[CompletionStreamEvent]:
        for payload in _parse_sse_lines(lines):
            if payload == DONE_SENTINEL:
                yield CompletionStreamEvent(type=StreamEventType.DONE)
                return
            try:
                data = json.loads(payload)
            except json.JSONDecodeError as exc:
                yield self._malformed(str(exc), payload)
                continue
            if not isinstance(data, dict):
                yield self._malformed("chunk is not an object", payload)
                continue

            # Mid-stream provider failure
            error = data.get("error")
            if isinstance(error, dict):
                code = error.get("code")
                err = RelayframeError(
                    ErrorCategory.BACKEND,
                    str(error.get("message") or error),
                    status_code=code if isinstance(code, int) else None,
                    raw_backend=data,
                )
                yield CompletionStreamEvent(type=StreamEventType.ERROR, error=err, raw=data)
                return

            choices = data.get("choices") or []
            if not isinstance(choices, list):
                yield self._malformed("choices is not a list", payload)
                continue
            if not choices:
                continue
            choice = choices[0] or {}
            if not isinstance(choice, dict):
                yield self._malformed("choice is not an object", payload)
                continue
            delta = choice.get("delta") or {}
            if not isinstance(delta, dict):
                yield self._malformed("delta is not an object", payload)
                continue
            content = delta.get("content")
            if content is not None and not isinstance(content, str):
                yield self._malformed("delta content is not a string", payload)
                continue
            if content:
                yield CompletionStreamEvent(
                    type=StreamEventType.TOKEN,
                    content=content,
                    raw=data,
                    finish_reason=choice.get("finish_reason"),
                )

    @staticmethod
    def _malformed(reason: str, payload: str) -> CompletionStreamEvent:
        err = RelayframeError(ErrorCategory.PARSE, reason, raw_backend=payload)
        return CompletionStreamEvent(type=StreamEventType.ERROR, error=err, raw=payload)
