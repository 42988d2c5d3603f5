"""Environment-driven settings for the status simulator, with optional Clowder overrides."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

from pydantic_settings import BaseSettings, SettingsConfigDict

# {"identity": {"account_number": "nil", "user": {"is_org_admin": true}}}
_SYSTEM_IDENTITY = (
    "eyJpZGVudGl0eSI6IHsiYWNjb3VudF9udW1iZXIiOiAibmlsIiwgInVzZXIiOiB7ImlzX29yZ19hZG1pbiI6IHRydWV9fX0="
)
_SOURCES_APP_NAME = "sources-api"
_STATUS_CHOICES = ("available", "unavailable")


class Settings(BaseSettings):
    """Simple application settings loaded from environment variables or a local .env file."""

    APP_NAME: str = "Sources Status Simulator"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    KAFKA_BROKERS: str = "localhost:9092"
    STATUS_TOPIC: str = "platform.sources.status"
    SOURCES_API_URL: str = "http://localhost:8000"
    SOURCES_API_PREFIX: str = "/api/sources/v3.1"
    SOURCES_TIMEOUT_S: float = 10.0
    SYSTEM_IDENTITY: str = _SYSTEM_IDENTITY
    STATUS_FORCE: str = ""
    PIPELINE_WORKERS: int = 8
    PIPELINE_QUEUE_SIZE: int = 1000
    ACG_CONFIG: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def kafka_brokers(self) -> tuple[str, ...]:
        """Return normalized broker list from KAFKA_BROKERS."""

        return self._split_csv(self.KAFKA_BROKERS, transform=str.strip)

    def forced_status(self) -> str | None:
        """Return the pinned status from STATUS_FORCE, or None to randomize."""

        value = self.STATUS_FORCE.strip().lower()
        if value in _STATUS_CHOICES:
            return value
        return None

    @staticmethod
    def _split_csv(value: str, transform: Callable[[str], str]) -> tuple[str, ...]:
        """Split comma-separated values while removing empty entries and duplicates."""

        items: list[str] = []
        seen: set[str] = set()

        for raw in value.split(","):
            item = transform(raw.strip())
            if not item or item in seen:
                continue
            seen.add(item)
            items.append(item)

        return tuple(items)


def _clowder_overrides(config: dict[str, Any], requested_topic: str) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    kafka = config.get("kafka") or {}
    brokers = [
        f"{broker['hostname']}:{broker['port']}"
        for broker in kafka.get("brokers") or []
        if broker.get("hostname") and broker.get("port")
    ]
    if brokers:
        overrides["KAFKA_BROKERS"] = ",".join(brokers)

    for topic in kafka.get("topics") or []:
        if topic.get("requestedName") == requested_topic and topic.get("name"):
            overrides["STATUS_TOPIC"] = topic["name"]
            break
    else:
        raise ValueError(f"clowder config has no kafka topic requested as {requested_topic}")

    for endpoint in config.get("endpoints") or []:
        if endpoint.get("app") == _SOURCES_APP_NAME and endpoint.get("hostname"):
            overrides["SOURCES_API_URL"] = f"http://{endpoint['hostname']}:{endpoint.get('port', 8000)}"
            break

    if isinstance(config.get("webPort"), int):
        overrides["PORT"] = config["webPort"]

    return overrides


def apply_clowder_config(settings: Settings) -> Settings:
    """Return settings updated from the Clowder JSON named by ACG_CONFIG, if any.

    Raises OSError or ValueError when the file cannot be read or parsed, or
    when it does not provide the requested status topic.
    """

    path = settings.ACG_CONFIG.strip()
    if not path:
        return settings

    config = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(config, dict):
        raise ValueError(f"clowder config {path} is not a JSON object")

    return settings.model_copy(update=_clowder_overrides(config, settings.STATUS_TOPIC))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings to avoid repeated environment parsing."""

    return Settings()
