"""StreamingCompletionEngine: relays a streamed completion into one chat message.

Lifecycle of a run: STARTED -> STREAMING -> COMPLETED | FAILED.

The visible message is edited while tokens arrive, at most once per
``edit_interval`` seconds and only when the text changed since the last
push. The last pushed text lives in the key-value store under
``msg_<message_id>`` so duplicate edits are detected without keeping the
edit history in memory. Whatever happens, the run ends with exactly one
closing edit: the full text, or a failure notice.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional

from relay_assistant._logging import get_component_logger
from relay_assistant.config.thresholds import (
    MAX_HISTORY_MESSAGES,
    MAX_MESSAGE_LENGTH,
    STREAM_EDIT_INTERVAL_SECONDS,
    STREAM_MARKER_TTL_SECONDS,
)
from relay_assistant.i18n import t
from relay_assistant.orchestration.types import (
    HistoryEntry,
    MessageRole,
    StreamJob,
    StreamOutcome,
    StreamState,
    UserSession,
)
from relay_assistant.services.session_store import SessionStore
from relay_assistant.storage.kv import KeyValueStore
from relay_assistant.transport.telegram import MessagingTransport, TransportError
from relayframe.client import RelayframeClient
from relayframe.types import CompletionRequest, ErrorCategory, Message, StreamEventType


# Telegram's description when an edit repeats the current text
NOT_MODIFIED = "message is not modified"


def display_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Clip text to what a single message can show."""
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class EditThrottle:
    """Tracks when the last edit went out."""

    def __init__(self, interval: float, clock: Callable[[], float]):
        self.interval = interval
        self.clock = clock
        self.last_edit_at: Optional[float] = None

    def due(self) -> bool:
        if self.last_edit_at is None:
            return True
        return self.clock() - self.last_edit_at >= self.interval

    def mark(self) -> None:
        self.last_edit_at = self.clock()


class StreamingCompletionEngine:
    def __init__(
        self,
        client: RelayframeClient,
        transport: MessagingTransport,
        store: SessionStore,
        kv: KeyValueStore,
        log: Optional[Any] = None,
        clock: Callable[[], float] = time.monotonic,
        edit_interval: float = STREAM_EDIT_INTERVAL_SECONDS,
        max_history: int = MAX_HISTORY_MESSAGES,
    ):
        self.client = client
        self.transport = transport
        self.store = store
        self.kv = kv
        self.clock = clock
        self.edit_interval = edit_interval
        self.max_history = max_history
        self.logger = get_component_logger("streaming_engine", log)

    @staticmethod
    def marker_key(message_id: int) -> str:
        return f"msg_{message_id}"

    def build_messages(self, session: UserSession, prompt: str) -> List[Message]:
        """System prompt, the most recent history, then the new prompt."""
        messages = [Message(role=MessageRole.SYSTEM.value, content=session.system_prompt)]
        recent = session.history[-self.max_history:] if self.max_history > 0 else []
        messages.extend(Message(role=e.role.value, content=e.content) for e in recent)
        messages.append(Message(role=MessageRole.USER.value, content=prompt))
        return messages

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self, job: StreamJob) -> StreamOutcome:
        session = job.session
        lang = session.language
        log = self.logger.bind(user_id=str(job.user_id), message_id=job.message_id)

        if not session.has_credential:
            await self._safe_edit(job, t(lang, "key_required"))
            return StreamOutcome(state=StreamState.FAILED, error="key_required", edits=1)

        state = StreamState.STARTED
        throttle = EditThrottle(self.edit_interval, self.clock)
        text = ""
        edits = 0
        finish_reason: Optional[str] = None
        request = CompletionRequest(
            messages=self.build_messages(session, job.prompt),
            model=session.model,
            api_key=session.api_key,
        )
        log.info("stream_started", model=session.model, history=len(request.messages) - 2)

        try:
            async for event in self.client.stream_chat(request):
                if event.type == StreamEventType.TOKEN:
                    state = StreamState.STREAMING
                    text += event.content or ""
                    if await self._push_if_due(job, text, throttle, log):
                        edits += 1

                elif event.type == StreamEventType.ERROR:
                    err = event.error
                    if err is not None and err.category == ErrorCategory.PARSE:
                        log.warning("stream_chunk_malformed", error=err.message, raw=str(event.raw)[:200])
                        continue
                    status = err.status_code if err is not None else None
                    log.error(
                        "stream_provider_failed",
                        state=state.value,
                        category=err.category.value if err is not None else None,
                        status_code=status,
                        error=err.message if err is not None else None,
                    )
                    notice = t(lang, "ask_error")
                    if status is not None:
                        notice = f"{notice} (Status: {status})"
                    await self.transport.edit_message_text(job.chat_id, job.message_id, notice)
                    return StreamOutcome(
                        state=StreamState.FAILED,
                        text=text,
                        error=err.message if err is not None else "provider error",
                        status_code=status,
                        edits=edits + 1,
                    )

                elif event.type == StreamEventType.DONE:
                    finish_reason = event.finish_reason
                    break

            if not text.strip():
                log.warning("stream_empty")
                notice = f"{t(lang, 'ask_error')} ({t(lang, 'ask_no_content')})"
                await self.transport.edit_message_text(job.chat_id, job.message_id, notice)
                return StreamOutcome(state=StreamState.FAILED, error="no_content", edits=edits + 1)

            await self._closing_edit(job, display_text(text), log)
            edits += 1

        except Exception as e:
            log.error("stream_failed", state=state.value, error=str(e), error_type=type(e).__name__)
            await self._safe_edit(job, t(lang, "ask_error"))
            return StreamOutcome(state=StreamState.FAILED, text=text, error=str(e), edits=edits + 1)

        finally:
            await self._clear_marker(job, log)

        await self._commit(job, text)
        log.info("stream_completed", chars=len(text), edits=edits, finish_reason=finish_reason)
        return StreamOutcome(
            state=StreamState.COMPLETED, text=text, edits=edits, finish_reason=finish_reason
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _push_if_due(self, job: StreamJob, text: str, throttle: EditThrottle, log: Any) -> bool:
        if not throttle.due() or not text.strip():
            return False
        if text == await self._read_marker(job, log):
            return False

        try:
            await self.transport.edit_message_text(job.chat_id, job.message_id, display_text(text))
        except TransportError as e:
            # Rate limits and "not modified" replies; the closing edit still follows
            log.warning("stream_edit_failed", error=str(e), status_code=e.status_code)
            throttle.mark()
            return False

        throttle.mark()
        try:
            await self.kv.put(self.marker_key(job.message_id), text, ttl=STREAM_MARKER_TTL_SECONDS)
        except Exception as e:
            log.warning("stream_marker_write_failed", error=str(e))
        return True

    async def _closing_edit(self, job: StreamJob, text: str, log: Any) -> None:
        """Final edit with the full answer; a transport refusal does not undo it."""
        try:
            await self.transport.edit_message_text(job.chat_id, job.message_id, text)
        except TransportError as e:
            if NOT_MODIFIED in str(e).lower():
                # The last throttled push already showed the full text
                log.debug("stream_final_edit_unchanged")
                return
            log.warning("stream_final_edit_failed", error=str(e), status_code=e.status_code)

    async def _read_marker(self, job: StreamJob, log: Any) -> Optional[str]:
        try:
            return await self.kv.get(self.marker_key(job.message_id))
        except Exception as e:
            log.warning("stream_marker_read_failed", error=str(e))
            return None

    async def _clear_marker(self, job: StreamJob, log: Any) -> None:
        try:
            await self.kv.delete(self.marker_key(job.message_id))
        except Exception as e:
            log.warning("stream_marker_delete_failed", error=str(e))

    async def _safe_edit(self, job: StreamJob, text: str) -> None:
        try:
            await self.transport.edit_message_text(job.chat_id, job.message_id, text)
        except Exception as e:
            self.logger.error(
                "stream_notice_failed",
                user_id=str(job.user_id),
                message_id=job.message_id,
                error=str(e),
            )

    async def _commit(self, job: StreamJob, text: str) -> None:
        """Append the exchange to a freshly read session under the user's lock."""

        def mutate(session: UserSession) -> None:
            user_turn = job.history_prompt or job.prompt
            session.history.append(HistoryEntry(role=MessageRole.USER, content=user_turn))
            session.history.append(HistoryEntry(role=MessageRole.ASSISTANT, content=text))
            for name, value in job.session_updates.items():
                setattr(session, name, value)

        await self.store.update(job.user_id, mutate)
