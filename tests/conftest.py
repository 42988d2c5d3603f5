"""Shared fakes standing in for the Sources API and the Kafka producer."""

import asyncio
from typing import Any

import pytest

from sources_status_sim.core.types import DependentResource

IDENTITY = "eyJpZGVudGl0eSI6IHsiYWNjb3VudF9udW1iZXIiOiAiMTIzNDUiLCAib3JnX2lkIjogIjU0MzIxIn19"

APPLICATIONS = [
    DependentResource(id="10", source_id="7", application_type_id="5"),
    DependentResource(id="11", source_id="7", application_type_id="2"),
    DependentResource(id="12", source_id="8", application_type_id="2"),
]


class FakeCatalog:
    """Records application lookups; ``gate`` holds lookups until it is set."""

    def __init__(self, applications: list[DependentResource]) -> None:
        self.applications = applications
        self.calls: list[tuple[bytes, str]] = []
        self.gate: asyncio.Event | None = None

    async def list_applications(self, identity: bytes, source_id: str) -> list[DependentResource]:
        self.calls.append((identity, source_id))
        if self.gate is not None:
            await self.gate.wait()
        return [application for application in self.applications if application.source_id == source_id]


class FakeProducer:
    """Captures sent messages, or raises ``error`` on every send.

    ``start_error`` fails ``start``; ``partitions`` is what ``partitions_for`` reports.
    """

    def __init__(self, **config: Any) -> None:
        self.config = config
        self.sent: list[dict[str, Any]] = []
        self.error: Exception | None = None
        self.start_error: Exception | None = None
        self.partitions: set[int] | None = {0}
        self.started = False
        self.stopped = False
        self.topics_checked: list[str] = []

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def partitions_for(self, topic: str) -> set[int] | None:
        self.topics_checked.append(topic)
        return self.partitions

    async def send_and_wait(
        self,
        topic: str,
        value: bytes | None = None,
        key: bytes | None = None,
        partition: int | None = None,
        timestamp_ms: int | None = None,
        headers: list[tuple[str, bytes]] | None = None,
    ) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"topic": topic, "value": value, "key": key, "partition": partition, "headers": headers}
        )


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog(list(APPLICATIONS))


@pytest.fixture
def producer() -> FakeProducer:
    return FakeProducer()
