"""
Orchestration wiring for the relay assistant.

Factory functions create every component with its dependencies injected.
Apps call create_assistant() instead of constructing services directly, so
the dependency graph lives in one place:

    Settings
      -> KeyValueStore ------------------------------+
      -> RelayframeClient (OpenRouter endpoint)      |
      -> SearchProviderRegistry (google, then bing)  |
      -> SessionStore, SearchAggregator, ModelCatalog (kv)
      -> StreamingCompletionEngine
      -> Dispatcher (+ BackgroundTaskRegistry)
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from relay_assistant.config.settings import Settings
from relay_assistant.orchestration.dispatcher import Dispatcher
from relay_assistant.orchestration.tasks import BackgroundTaskRegistry
from relay_assistant.services.model_catalog import ModelCatalog
from relay_assistant.services.search_aggregator import SearchAggregator
from relay_assistant.services.session_store import SessionStore
from relay_assistant.services.streaming import StreamingCompletionEngine
from relay_assistant.storage import create_kv_store
from relay_assistant.storage.kv import KeyValueStore
from relay_assistant.transport.telegram import MessagingTransport, TelegramClient
from relayframe.adapters.bing_search import BingSearchProvider
from relayframe.adapters.google_search import GoogleSearchProvider
from relayframe.client import RelayframeClient
from relayframe.endpoints import openrouter_endpoint
from relayframe.registry import SearchProviderRegistry


def get_logger() -> Any:
    """Get logger for wiring module."""
    return structlog.get_logger("orchestration.wiring")


@dataclass
class Assistant:
    """The wired component graph plus its lifecycle hooks."""

    settings: Settings
    kv: KeyValueStore
    transport: MessagingTransport
    client: RelayframeClient
    registry: SearchProviderRegistry
    store: SessionStore
    aggregator: SearchAggregator
    catalog: ModelCatalog
    engine: StreamingCompletionEngine
    tasks: BackgroundTaskRegistry
    dispatcher: Dispatcher

    async def start(self) -> None:
        await self.kv.connect()

    async def shutdown(self, drain_timeout: Optional[float] = 30.0) -> None:
        """Let detached streams finish, then release connections."""
        await self.tasks.drain(timeout=drain_timeout)
        if isinstance(self.transport, TelegramClient):
            await self.transport.aclose()
        await self.kv.disconnect()


def create_search_registry(
    settings: Settings,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SearchProviderRegistry:
    """Google Custom Search first, Bing Web Search as the fallback."""
    return SearchProviderRegistry([
        GoogleSearchProvider(settings.google_api_key, settings.google_cx, transport=http_transport),
        BingSearchProvider(settings.bing_api_key, transport=http_transport),
    ])


def create_assistant(
    settings: Settings,
    *,
    kv: Optional[KeyValueStore] = None,
    transport: Optional[MessagingTransport] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[Any] = None,
) -> Assistant:
    """
    Build the assistant from settings.

    Args:
        settings: Runtime configuration
        kv: Key-value store; defaults to the backend named in settings
        transport: Messaging transport; defaults to a TelegramClient
        http_transport: httpx transport shared by the provider clients (tests)
        logger: Optional logger (creates one if None)

    Returns:
        Assistant with every component wired
    """
    log = logger or get_logger()

    kv = kv or create_kv_store(settings)
    if transport is None:
        transport = TelegramClient(
            settings.telegram_bot_token,
            api_base=settings.telegram_api_base,
            log=log,
        )

    endpoint = openrouter_endpoint(
        base_url=settings.openrouter_api_base,
        referer=settings.app_referer,
        title=settings.app_title,
    )
    client = RelayframeClient(endpoint, transport=http_transport)
    registry = create_search_registry(settings, http_transport)

    store = SessionStore(kv, settings, log=log)
    aggregator = SearchAggregator(kv, registry, log=log)
    catalog = ModelCatalog(client, kv, log=log)
    engine = StreamingCompletionEngine(client, transport, store, kv, log=log)
    tasks = BackgroundTaskRegistry(log=log)
    dispatcher = Dispatcher(
        settings=settings,
        store=store,
        transport=transport,
        engine=engine,
        aggregator=aggregator,
        catalog=catalog,
        client=client,
        tasks=tasks,
        log=log,
    )

    log.info(
        "assistant_wired",
        kv_backend=kv.backend,
        search_providers=[p.name for p in registry.list_configured()],
        allow_list=len(settings.allowed_user_ids),
    )
    return Assistant(
        settings=settings,
        kv=kv,
        transport=transport,
        client=client,
        registry=registry,
        store=store,
        aggregator=aggregator,
        catalog=catalog,
        engine=engine,
        tasks=tasks,
        dispatcher=dispatcher,
    )


__all__ = ["Assistant", "create_assistant", "create_search_registry", "get_logger"]
