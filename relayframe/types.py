from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(str, Enum):
    TIMEOUT = "timeout"
    BACKEND = "backend"
    CONNECTION = "connection"
    PARSE = "parse"
    AUTH = "auth"
    UNKNOWN = "unknown"


class StreamEventType(str, Enum):
    TOKEN = "token"
    ERROR = "error"
    DONE = "done"


@dataclass
class RelayframeError(Exception):
    category: ErrorCategory
    message: str
    status_code: Optional[int] = None
    raw_backend: Optional[Any] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.category.value}: {self.message} (status {self.status_code})"
        return f"{self.category.value}: {self.message}"


@dataclass
class Message:
    role: str
    content: str


@dataclass
class CompletionRequest:
    messages: List[Message]
    model: str
    api_key: str
    stream: bool = True


@dataclass
class CompletionStreamEvent:
    """
    Stream-first contract:
      - type: token | error | done
      - a stream ends with exactly one done, or with a non-parse error
      - parse errors are informational; the stream continues after them
    """
    type: StreamEventType
    content: Optional[str] = None
    raw: Optional[Any] = None
    error: Optional[RelayframeError] = None
    finish_reason: Optional[str] = None


@dataclass
class SearchResult:
    title: str
    link: str
    snippet: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            title=str(data.get("title") or ""),
            link=str(data.get("link") or ""),
            snippet=str(data.get("snippet") or ""),
        )


@dataclass
class ModelInfo:
    id: str
    name: Optional[str] = None
    context_length: Optional[int] = None
