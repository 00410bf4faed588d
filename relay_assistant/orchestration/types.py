"""
Domain Types for the Relay Assistant.

Session state, inbound update shapes and streaming job/outcome records.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MessageRole(str, Enum):
    """Message role in conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class DispatchStatus(str, Enum):
    """How the dispatcher disposed of an inbound update."""

    HANDLED = "handled"
    IGNORED = "ignored"
    UNAUTHORIZED = "unauthorized"


class StreamState(str, Enum):
    STARTED = "started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class HistoryEntry:
    """A single stored conversation turn."""

    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["HistoryEntry"]:
        if not isinstance(data, dict):
            return None
        try:
            role = MessageRole(data.get("role"))
        except ValueError:
            return None
        if role == MessageRole.SYSTEM or not isinstance(data.get("content"), str):
            return None
        return cls(role=role, content=data["content"])


@dataclass
class UserSession:
    """Persisted per-user configuration and conversation state."""

    model: str
    system_prompt: str
    language: str
    api_key: Optional[str] = None
    history: List[HistoryEntry] = field(default_factory=list)
    search_enabled: bool = True
    last_search_query: Optional[str] = None
    last_search_timestamp: Optional[float] = None

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_key": self.api_key,
            "model": self.model,
            "system_prompt": self.system_prompt,
            "language": self.language,
            "history": [entry.to_dict() for entry in self.history],
            "search_enabled": self.search_enabled,
            "last_search_query": self.last_search_query,
            "last_search_timestamp": self.last_search_timestamp,
        }


@dataclass
class InboundMessage:
    """The parts of a chat message update the dispatcher needs."""

    chat_id: int
    user_id: int
    message_id: Optional[int]
    text: str

    @classmethod
    def from_update(cls, message: Dict[str, Any]) -> Optional["InboundMessage"]:
        chat = message.get("chat") or {}
        sender = message.get("from") or {}
        if "id" not in chat or "id" not in sender:
            return None
        return cls(
            chat_id=chat["id"],
            user_id=sender["id"],
            message_id=message.get("message_id"),
            text=message.get("text") or "",
        )


@dataclass
class InboundCallback:
    """An inline-keyboard button press."""

    callback_id: str
    user_id: int
    chat_id: Optional[int]
    message_id: Optional[int]
    data: str

    @classmethod
    def from_update(cls, query: Dict[str, Any]) -> Optional["InboundCallback"]:
        sender = query.get("from") or {}
        if "id" not in query or "id" not in sender:
            return None
        message = query.get("message") or {}
        return cls(
            callback_id=str(query["id"]),
            user_id=sender["id"],
            chat_id=(message.get("chat") or {}).get("id"),
            message_id=message.get("message_id"),
            data=query.get("data") or "",
        )


@dataclass
class StreamJob:
    """Everything the streaming engine needs for one detached completion."""

    user_id: int
    chat_id: int
    message_id: int
    session: UserSession
    prompt: str
    # Applied to the freshly re-read session when history is committed
    session_updates: Dict[str, Any] = field(default_factory=dict)
    # Stored as the user turn instead of ``prompt`` when set
    history_prompt: Optional[str] = None


@dataclass
class StreamOutcome:
    state: StreamState
    text: str = ""
    error: Optional[str] = None
    status_code: Optional[int] = None
    edits: int = 0
    finish_reason: Optional[str] = None


__all__ = [
    "MessageRole",
    "DispatchStatus",
    "StreamState",
    "HistoryEntry",
    "UserSession",
    "InboundMessage",
    "InboundCallback",
    "StreamJob",
    "StreamOutcome",
]
