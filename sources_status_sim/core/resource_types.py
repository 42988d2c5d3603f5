"""Process-wide map of the application types this simulator reports status for."""

import logging
from collections.abc import Iterable

from sources_status_sim.core.catalog import CatalogError, SourcesClient
from sources_status_sim.core.types import ResourceType

COST = "cost"
METERING = "metering"

# application type names look like "/insights/platform/cost-management"
_SUFFIXES = {
    COST: "cost-management",
    METERING: "cloud-meter",
}

logger = logging.getLogger(__name__)


class ResourceTypeCache:
    """Application type ids keyed by short name; filled once at startup."""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def populate(self, resource_types: Iterable[ResourceType]) -> None:
        """Record ids of recognized types by name suffix; later duplicates win."""

        for resource_type in resource_types:
            for key, suffix in _SUFFIXES.items():
                if resource_type.name.endswith(suffix):
                    self._ids[key] = resource_type.id

    def get(self, key: str) -> str | None:
        return self._ids.get(key)

    def as_dict(self) -> dict[str, str | None]:
        return {key: self._ids.get(key) for key in _SUFFIXES}


async def bootstrap_resource_types(client: SourcesClient, system_identity: str) -> ResourceTypeCache:
    """Fetch all application types and build the cache.

    Raises CatalogError when the Sources API is unreachable or answers with a
    non-success status; callers treat that as fatal.
    """

    cache = ResourceTypeCache()
    try:
        resource_types = await client.list_application_types(system_identity)
    except CatalogError:
        logger.error("resource_types_fetch_failed")
        raise

    cache.populate(resource_types)
    resolved = cache.as_dict()
    for key, type_id in resolved.items():
        if type_id is None:
            logger.warning("resource_type_unresolved", extra={"resource_type": key})
    logger.info("resource_types_loaded", extra={"resource_types": resolved})
    return cache
