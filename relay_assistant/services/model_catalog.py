"""ModelCatalog: the provider's model ids, cached for keyboard pagination."""

from __future__ import annotations

from typing import Any, List, Optional

from relay_assistant._logging import get_component_logger
from relay_assistant._serialization import to_json
from relay_assistant.config.thresholds import MODEL_CATALOG_TTL_SECONDS
from relay_assistant.storage.kv import KeyValueStore
from relayframe.client import RelayframeClient

CATALOG_KEY = "models:catalog"


class ModelCatalog:
    def __init__(
        self,
        client: RelayframeClient,
        kv: KeyValueStore,
        log: Optional[Any] = None,
        ttl: float = MODEL_CATALOG_TTL_SECONDS,
    ):
        self.client = client
        self.kv = kv
        self.ttl = ttl
        self.logger = get_component_logger("model_catalog", log)

    async def model_ids(self, api_key: str) -> List[str]:
        """Sorted model ids; raises RelayframeError when the fetch fails."""
        try:
            cached = await self.kv.get_json(CATALOG_KEY)
        except Exception as e:
            self.logger.warning("model_catalog_read_failed", error=str(e))
            cached = None
        if isinstance(cached, list) and cached:
            return [str(m) for m in cached]

        models = await self.client.list_models(api_key)
        ids = sorted({m.id for m in models})
        self.logger.info("model_catalog_fetched", count=len(ids))
        if ids:
            try:
                await self.kv.put(CATALOG_KEY, to_json(ids), ttl=self.ttl)
            except Exception as e:
                self.logger.warning("model_catalog_write_failed", error=str(e))
        return ids
