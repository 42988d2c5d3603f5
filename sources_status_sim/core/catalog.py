"""Sources API client and the application lookup used by every status request."""

import logging
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx

from sources_status_sim.core.types import DependentResource, ResourceType

_IDENTITY_HEADER = "x-rh-identity"
_PAGE_LIMIT = 100

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Sources API could not be queried or returned an unusable response."""


class ResolutionNotFound(CatalogError):
    """No application matches the requested source and application type."""


class SourcesClient:
    """Thin async wrapper over the two Sources API collections this service reads."""

    def __init__(
        self,
        base_url: str,
        prefix: str = "/api/sources/v3.1",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport)
        self._prefix = "/" + prefix.strip("/")

    async def list_application_types(self, identity: str | bytes) -> list[ResourceType]:
        records = await self._list(f"{self._prefix}/application_types", identity)
        return [
            ResourceType(name=str(record.get("name", "")), id=str(record.get("id", "")))
            for record in records
        ]

    async def list_applications(self, identity: str | bytes, source_id: str) -> list[DependentResource]:
        # source_id comes from the webhook body; keep it inside one path segment
        path = f"{self._prefix}/sources/{quote(source_id, safe='')}/applications"
        records = await self._list(path, identity)
        return [
            DependentResource(
                id=str(record.get("id", "")),
                source_id=str(record.get("source_id", "")),
                application_type_id=str(record.get("application_type_id", "")),
            )
            for record in records
        ]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _list(self, path: str, identity: str | bytes) -> list[dict[str, Any]]:
        """Collect every record of a paginated collection, following ``links.next``."""

        headers = {_IDENTITY_HEADER: identity}
        url: str | None = path
        params: dict[str, Any] | None = {"limit": _PAGE_LIMIT}
        records: list[dict[str, Any]] = []
        fetched: set[str] = set()

        while url:
            fetched.add(url)
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except httpx.HTTPError as exc:
                raise CatalogError(f"GET {url} failed: {exc}") from exc

            if response.status_code != httpx.codes.OK:
                raise CatalogError(f"GET {url} returned {response.status_code}")

            try:
                body = response.json()
            except ValueError as exc:
                raise CatalogError(f"GET {url} returned invalid JSON") from exc

            data = body.get("data") if isinstance(body, dict) else None
            if not isinstance(data, list):
                raise CatalogError(f"GET {url} response has no data list")
            records.extend(record for record in data if isinstance(record, dict))

            links = body.get("links") or {}
            next_url = links.get("next") if isinstance(links, dict) else None
            if not next_url or not data:
                break
            if next_url in fetched:
                logger.warning("catalog_pagination_loop", extra={"url": next_url})
                break
            # links.next already carries limit/offset
            url, params = next_url, None

        return records


def select_application(
    applications: Iterable[DependentResource],
    source_id: str,
    resource_type_id: str,
) -> str:
    """Return the id of the first application matching both source and type."""

    for application in applications:
        if application.source_id == source_id and application.application_type_id == resource_type_id:
            return application.id
    raise ResolutionNotFound(
        f"no application for source {source_id} with application type {resource_type_id}"
    )


async def resolve_dependent_resource(
    client: SourcesClient,
    identity: bytes,
    source_id: str,
    resource_type_id: str | None,
) -> str:
    """Look up the application id owned by ``source_id`` for one application type."""

    if not resource_type_id:
        raise ResolutionNotFound(f"application type unresolved for source {source_id}")

    applications = await client.list_applications(identity, source_id)
    logger.debug(
        "catalog_applications_listed",
        extra={"source_id": source_id, "application_count": len(applications)},
    )
    return select_application(applications, source_id, resource_type_id)
