"""Shared lightweight types to keep module interfaces explicit and typed."""

from dataclasses import dataclass

AVAILABLE = "available"
UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class ResourceType:
    """Catalog application type, e.g. ``/insights/platform/cost-management``."""

    name: str
    id: str


@dataclass(frozen=True, slots=True)
class DependentResource:
    """Catalog application linking a source to an application type."""

    id: str
    source_id: str
    application_type_id: str


@dataclass(frozen=True, slots=True)
class StatusVerdict:
    """Availability status reported for one resource.

    ``error`` is non-empty exactly when ``status`` is ``unavailable``.
    """

    resource_type: str
    resource_id: str
    status: str
    error: str = ""


@dataclass(frozen=True, slots=True)
class StatusJob:
    """One queued notify request awaiting resolve, synthesize and publish."""

    identity: bytes
    source_id: str
    resource_type_id: str | None
