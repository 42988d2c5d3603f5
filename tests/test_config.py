"""Settings helpers and Clowder overrides."""

import json

import pytest

from sources_status_sim.core.config import Settings, apply_clowder_config

CLOWDER_CONFIG = {
    "webPort": 9000,
    "kafka": {
        "brokers": [
            {"hostname": "kafka-0.svc", "port": 9092},
            {"hostname": "kafka-1.svc", "port": 9092},
        ],
        "topics": [
            {"requestedName": "platform.other", "name": "platform.other-abc"},
            {"requestedName": "platform.sources.status", "name": "platform.sources.status-xyz"},
        ],
    },
    "endpoints": [
        {"app": "rbac", "name": "service", "hostname": "rbac.svc", "port": 8000},
        {"app": "sources-api", "name": "svc", "hostname": "sources-api.svc", "port": 8080},
    ],
}


def test_kafka_brokers_are_split_and_deduplicated() -> None:
    settings = Settings(KAFKA_BROKERS=" kafka:9092, ,kafka:9092,other:9093")

    assert settings.kafka_brokers() == ("kafka:9092", "other:9093")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("", None),
        ("available", "available"),
        (" Unavailable ", "unavailable"),
        ("flaky", None),
    ],
)
def test_forced_status_normalization(value, expected) -> None:
    assert Settings(STATUS_FORCE=value).forced_status() == expected


def test_clowder_config_overrides_kafka_sources_and_port(tmp_path) -> None:
    path = tmp_path / "cdappconfig.json"
    path.write_text(json.dumps(CLOWDER_CONFIG), encoding="utf-8")

    settings = apply_clowder_config(Settings(ACG_CONFIG=str(path)))

    assert settings.kafka_brokers() == ("kafka-0.svc:9092", "kafka-1.svc:9092")
    assert settings.STATUS_TOPIC == "platform.sources.status-xyz"
    assert settings.SOURCES_API_URL == "http://sources-api.svc:8080"
    assert settings.PORT == 9000


def test_without_clowder_config_settings_are_unchanged() -> None:
    settings = Settings(ACG_CONFIG="", KAFKA_BROKERS="kafka:9092")

    assert apply_clowder_config(settings) is settings


def test_unreadable_clowder_config_raises(tmp_path) -> None:
    with pytest.raises(OSError):
        apply_clowder_config(Settings(ACG_CONFIG=str(tmp_path / "missing.json")))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        apply_clowder_config(Settings(ACG_CONFIG=str(broken)))


def test_clowder_config_without_status_topic_raises(tmp_path) -> None:
    config = dict(CLOWDER_CONFIG)
    config["kafka"] = {"brokers": CLOWDER_CONFIG["kafka"]["brokers"], "topics": []}
    path = tmp_path / "cdappconfig.json"
    path.write_text(json.dumps(config), encoding="utf-8")

    with pytest.raises(ValueError):
        apply_clowder_config(Settings(ACG_CONFIG=str(path)))
