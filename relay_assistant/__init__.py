"""
Relay Assistant - streaming chat assistant for Telegram.

Relays user questions to OpenRouter models and streams the answer back by
editing a single chat message. Web search runs through Google Custom Search
with Bing as the fallback, and results are cached.

Key components:
- commands/: fuzzy command matcher and inline-keyboard callback codec
- services/: session store, search aggregator, model catalog, streaming engine
- orchestration/: dispatcher, background task registry, wiring
- storage/: key-value backends (memory, SQLite, Redis)
- transport/: Telegram Bot API client and keyboards
- server.py: FastAPI webhook app

Usage:
    from relay_assistant import Settings, create_assistant

    assistant = create_assistant(Settings.from_env())
    await assistant.start()
    status = await assistant.dispatcher.handle_update(update)
"""

from relay_assistant.config.settings import Settings
from relay_assistant.orchestration.wiring import Assistant, create_assistant

__version__ = "0.1.0"

__all__ = [
    "Assistant",
    "Settings",
    "create_assistant",
    "__version__",
]
