"""
Root conftest to ensure proper import paths.

This file exists at the project root to ensure that the project directory
is in Python's sys.path before pytest starts collecting tests. It also hosts
the fixtures shared by the provider-layer and capability-layer suites.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

# Ensure project root is in Python path
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from relay_assistant.config.settings import Settings  # noqa: E402
from relay_assistant.storage.kv import MemoryKeyValueStore  # noqa: E402
from relay_assistant.transport.telegram import MessagingTransport, TransportError  # noqa: E402


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "regression: mark test as regression test"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================

@pytest.fixture
def mock_logger():
    """Create a mock structlog-style logger.

    The logger supports:
    - bind(**kwargs) -> logger (returns itself with context)
    - debug/info/warning/error/critical methods
    """
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger


class FakeClock:
    """Manually advanced clock for TTL and throttle tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport(MessagingTransport):
    """In-memory messaging transport that records every call."""

    def __init__(self):
        self.sent: List[Tuple[int, str, Optional[Dict[str, Any]]]] = []
        self.edits: List[Tuple[int, int, str, Optional[Dict[str, Any]]]] = []
        self.answers: List[Tuple[str, Optional[str]]] = []
        self.deleted: List[Tuple[int, int]] = []
        self.fail_send = False
        self.fail_edits = False
        self._next_id = 100

    async def send_message(self, chat_id, text, reply_markup=None):
        if self.fail_send:
            self.fail_send = False
            raise TransportError("sendMessage", "Too Many Requests", status_code=429)
        self._next_id += 1
        self.sent.append((chat_id, text, reply_markup))
        return self._next_id

    async def edit_message_text(self, chat_id, message_id, text, reply_markup=None):
        if self.fail_edits:
            raise TransportError("editMessageText", "Bad Request", status_code=400)
        self.edits.append((chat_id, message_id, text, reply_markup))

    async def answer_callback_query(self, callback_id, text=None):
        self.answers.append((callback_id, text))

    async def delete_message(self, chat_id, message_id):
        self.deleted.append((chat_id, message_id))

    @property
    def sent_texts(self) -> List[str]:
        return [text for _, text, _ in self.sent]

    @property
    def edit_texts(self) -> List[str]:
        return [text for _, _, text, _ in self.edits]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_kv():
    return MemoryKeyValueStore()


@pytest.fixture
def recording_transport():
    return RecordingTransport()


@pytest.fixture
def settings():
    return Settings(telegram_bot_token="123:abc")
