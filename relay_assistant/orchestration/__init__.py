"""
Relay assistant orchestration.

The Dispatcher routes webhook updates to command handlers and hands
completions to the BackgroundTaskRegistry. Only the domain types are
re-exported here; services import them from this package, so the
dispatcher and wiring modules are imported by their full path:

    from relay_assistant.orchestration.wiring import create_assistant
"""

from .types import (
    DispatchStatus,
    HistoryEntry,
    InboundCallback,
    InboundMessage,
    MessageRole,
    StreamJob,
    StreamOutcome,
    StreamState,
    UserSession,
)

__all__ = [
    "DispatchStatus",
    "HistoryEntry",
    "InboundCallback",
    "InboundMessage",
    "MessageRole",
    "StreamJob",
    "StreamOutcome",
    "StreamState",
    "UserSession",
]
