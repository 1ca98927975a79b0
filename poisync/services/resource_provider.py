import threading
from typing import Any, Dict, List, Mapping, Optional

import structlog

from poisync.core.config import Settings
from poisync.exceptions import UnsupportedOperationError
from poisync.services.resource_store import (
    CATEGORY_PREFIX,
    NOTES_BUCKET,
    POI_CATEGORIES,
    ResourceStore,
    category_bucket,
)

logger = structlog.get_logger(__name__)


class ResourceProvider:
    """
    Read-only list/get contract over one bucket of the store.

    Holds a reference to the live store, so each call sees the data as of
    that call. Writes are rejected; only the sync cycle fills buckets.
    """

    def __init__(self, store: ResourceStore, resource_type: str):
        self.store = store
        self.resource_type = resource_type

    def list_resources(self, query: Optional[Mapping[str, Any]] = None) -> Dict[str, Dict[str, Any]]:
        # Query parameters are for the caller to interpret
        logger.debug("resource_list", resource_type=self.resource_type, query=dict(query or {}))
        return self.store.snapshot(self.resource_type)

    def get_resource(self, resource_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(self.resource_type, resource_id)

    def set_resource(self, resource_id: str, value: Any):
        raise UnsupportedOperationError("set", self.resource_type, resource_id)

    def delete_resource(self, resource_id: str):
        raise UnsupportedOperationError("delete", self.resource_type, resource_id)


def collection_table(settings: Settings) -> List[str]:
    """Collection names to register for the given toggles."""
    names: List[str] = []
    if settings.NOTE_RESOURCES:
        names.append(NOTES_BUCKET)
    if settings.CATEGORY_RESOURCES:
        names.extend(category_bucket(category) for category in POI_CATEGORIES)
    return names


class ResourceRegistry:
    """Registered collections by name."""

    def __init__(self, store: ResourceStore, categories_enabled: bool = False):
        self.store = store
        self.categories_enabled = categories_enabled
        self._providers: Dict[str, ResourceProvider] = {}
        self._lock = threading.Lock()

    def register(self, resource_type: str) -> ResourceProvider:
        with self._lock:
            provider = self._providers.get(resource_type)
            if provider is None:
                provider = self._providers[resource_type] = ResourceProvider(self.store, resource_type)
                logger.info("resource_provider_registered", resource_type=resource_type)
            return provider

    def get(self, resource_type: str) -> Optional[ResourceProvider]:
        """
        Provider for `resource_type`. Category buckets for categories outside
        the fixed table are registered the first time they are asked for.
        """
        with self._lock:
            provider = self._providers.get(resource_type)
        if provider is not None:
            return provider
        if (
            self.categories_enabled
            and resource_type.startswith(CATEGORY_PREFIX)
            and self.store.has_bucket(resource_type)
        ):
            return self.register(resource_type)
        return None

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._providers)


def register_collections(store: ResourceStore, settings: Settings) -> ResourceRegistry:
    registry = ResourceRegistry(store, categories_enabled=settings.CATEGORY_RESOURCES)
    for resource_type in collection_table(settings):
        registry.register(resource_type)
    return registry
