"""Kafka publisher for availability status messages."""

import json
import logging
from typing import Any, Protocol

from sources_status_sim.core.types import StatusVerdict

IDENTITY_HEADER = "x-rh-identity"
EVENT_TYPE_HEADER = "event_type"
EVENT_TYPE = b"availability_status"

logger = logging.getLogger(__name__)


class Producer(Protocol):
    """The slice of ``aiokafka.AIOKafkaProducer`` the publisher relies on."""

    async def send_and_wait(
        self,
        topic: str,
        value: bytes | None = None,
        key: bytes | None = None,
        partition: int | None = None,
        timestamp_ms: int | None = None,
        headers: list[tuple[str, bytes]] | None = None,
    ) -> Any: ...


def encode_verdict(verdict: StatusVerdict) -> bytes:
    """Encode a verdict as JSON, omitting ``error`` when it is empty."""

    payload: dict[str, str] = {
        "resource_type": verdict.resource_type,
        "resource_id": verdict.resource_id,
        "status": verdict.status,
    }
    if verdict.error:
        payload["error"] = verdict.error
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class StatusPublisher:
    """Appends status messages to one topic through a shared producer."""

    def __init__(self, producer: Producer, topic: str) -> None:
        self.producer = producer
        self.topic = topic

    async def publish(self, verdict: StatusVerdict, identity: bytes) -> bool:
        """Send one message; failures are logged and reported as False."""

        headers = [
            (IDENTITY_HEADER, identity),
            (EVENT_TYPE_HEADER, EVENT_TYPE),
        ]
        try:
            await self.producer.send_and_wait(self.topic, value=encode_verdict(verdict), headers=headers)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "status_publish_failed",
                extra={
                    "topic": self.topic,
                    "resource_id": verdict.resource_id,
                    "error": str(exc),
                },
            )
            return False

        logger.info(
            "status_published",
            extra={
                "topic": self.topic,
                "resource_id": verdict.resource_id,
                "status": verdict.status,
            },
        )
        return True
