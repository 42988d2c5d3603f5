"""Status message encoding and correlated publishing."""

import asyncio
import logging

from sources_status_sim.core.publisher import StatusPublisher, encode_verdict
from sources_status_sim.core.types import StatusVerdict

from conftest import IDENTITY


def test_encode_available_omits_error() -> None:
    """Empty error text is left out of the encoding entirely."""

    verdict = StatusVerdict(resource_type="application", resource_id="11", status="available")

    assert encode_verdict(verdict) == (
        b'{"resource_type":"application","resource_id":"11","status":"available"}'
    )


def test_encode_unavailable_keeps_field_order() -> None:
    """Fields are emitted in resource_type, resource_id, status, error order."""

    verdict = StatusVerdict(
        resource_type="application",
        resource_id="11",
        status="unavailable",
        error="I have spoken.",
    )

    assert encode_verdict(verdict) == (
        b'{"resource_type":"application","resource_id":"11",'
        b'"status":"unavailable","error":"I have spoken."}'
    )


def test_publish_sends_exactly_two_headers(producer) -> None:
    """Identity is forwarded byte-for-byte next to the event type."""

    publisher = StatusPublisher(producer, "platform.sources.status")
    verdict = StatusVerdict(resource_type="application", resource_id="11", status="available")

    assert asyncio.run(publisher.publish(verdict, IDENTITY.encode())) is True

    assert producer.sent == [
        {
            "topic": "platform.sources.status",
            "value": encode_verdict(verdict),
            "key": None,
            "partition": None,
            "headers": [
                ("x-rh-identity", IDENTITY.encode()),
                ("event_type", b"availability_status"),
            ],
        }
    ]


def test_publish_failure_is_logged_and_swallowed(producer, caplog) -> None:
    """Broker errors are reported as False instead of raising."""

    producer.error = ConnectionError("broker unavailable")
    publisher = StatusPublisher(producer, "platform.sources.status")
    verdict = StatusVerdict(resource_type="application", resource_id="11", status="available")

    with caplog.at_level(logging.ERROR, logger="sources_status_sim.core.publisher"):
        assert asyncio.run(publisher.publish(verdict, b"")) is False

    assert producer.sent == []
    assert any(record.getMessage() == "status_publish_failed" for record in caplog.records)
