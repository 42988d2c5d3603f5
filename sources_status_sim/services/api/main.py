"""FastAPI webhook service that fabricates availability status for new or updated sources.

Both notify routes answer ``OK`` immediately; resolving the source's
application, fabricating its status and publishing it to Kafka happen on the
background pipeline after the response is sent.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, AsyncExitStack, asynccontextmanager
from functools import partial
from typing import Any

import httpx
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, StrictStr

from sources_status_sim.core.catalog import CatalogError, SourcesClient
from sources_status_sim.core.config import Settings, apply_clowder_config, get_settings
from sources_status_sim.core.logging import configure_logging
from sources_status_sim.core.pipeline import RelayContext, StatusPipeline, run_status_job
from sources_status_sim.core.publisher import IDENTITY_HEADER, StatusPublisher
from sources_status_sim.core.resource_types import COST, METERING, bootstrap_resource_types
from sources_status_sim.core.types import StatusJob

COST_STATUS_PATH = "/api/cost-management/v1/source-status/"
METERING_STATUS_PATH = "/internal/api/cloudigrade/v1/availability_status"

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class StartupError(Exception):
    """The service cannot start serving traffic."""


class SourceStatusRequest(BaseModel):
    """Webhook body sent when a source is created or updated."""

    model_config = ConfigDict(extra="ignore")

    source_id: StrictStr


@asynccontextmanager
async def open_relay(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    producer_factory: Callable[..., Any] = AIOKafkaProducer,
) -> AsyncIterator[RelayContext]:
    """Load application types and connect the Kafka producer for the process lifetime.

    ``transport`` and ``producer_factory`` replace the Sources API transport and
    the Kafka producer class.
    """

    try:
        settings = apply_clowder_config(settings)
    except (OSError, ValueError) as exc:
        raise StartupError(f"cannot read clowder config: {exc}") from exc

    brokers = settings.kafka_brokers()
    topic = settings.STATUS_TOPIC.strip()
    if not brokers or not topic:
        raise StartupError("kafka brokers and status topic must be configured")

    forced_status = settings.forced_status()
    if settings.STATUS_FORCE.strip() and forced_status is None:
        logger.warning("status_force_ignored", extra={"value": settings.STATUS_FORCE})

    catalog = SourcesClient(
        settings.SOURCES_API_URL,
        prefix=settings.SOURCES_API_PREFIX,
        timeout_s=settings.SOURCES_TIMEOUT_S,
        transport=transport,
    )
    try:
        try:
            resource_types = await bootstrap_resource_types(catalog, settings.SYSTEM_IDENTITY)
        except CatalogError as exc:
            raise StartupError(f"cannot load application types: {exc}") from exc

        producer = producer_factory(bootstrap_servers=list(brokers))
        try:
            await producer.start()
            partitions = await producer.partitions_for(topic)
        except (KafkaError, OSError) as exc:
            await producer.stop()
            raise StartupError(f"cannot connect to kafka {list(brokers)}: {exc}") from exc
        if not partitions:
            await producer.stop()
            raise StartupError(f"kafka topic {topic} is not available")
        logger.info("kafka_connected", extra={"brokers": list(brokers), "topic": topic})

        try:
            yield RelayContext(
                catalog=catalog,
                resource_types=resource_types,
                publisher=StatusPublisher(producer, topic),
                forced_status=forced_status,
            )
        finally:
            await producer.stop()
    finally:
        await catalog.aclose()


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "invalid request body"


def handle_source_status(request: Request, payload: SourceStatusRequest, resource_type: str) -> str:
    """Queue the status pipeline for one notification and answer right away."""

    relay: RelayContext = request.app.state.relay
    pipeline: StatusPipeline = request.app.state.pipeline

    # header values are latin-1 on the wire; re-encode to forward the exact bytes
    identity = request.headers.get(IDENTITY_HEADER, "").encode("latin-1")
    job = StatusJob(
        identity=identity,
        source_id=payload.source_id,
        resource_type_id=relay.resource_types.get(resource_type),
    )
    logger.debug(
        "source_status_received",
        extra={"source_id": payload.source_id, "resource_type": resource_type},
    )
    pipeline.submit(job)
    return "OK"


def create_app(
    open_context: Callable[[Settings], AbstractAsyncContextManager[RelayContext]] = open_relay,
    app_settings: Settings | None = None,
) -> FastAPI:
    """Build the webhook app; ``open_context`` supplies the process-scoped collaborators."""

    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "api_startup",
            extra={"service": "api", "env": app_settings.ENV, "version": app_settings.VERSION},
        )
        async with AsyncExitStack() as stack:
            try:
                relay = await stack.enter_async_context(open_context(app_settings))
            except StartupError as exc:
                logger.critical("startup_failed", extra={"error": str(exc)})
                raise

            pipeline = StatusPipeline(
                partial(run_status_job, relay),
                workers=app_settings.PIPELINE_WORKERS,
                queue_size=app_settings.PIPELINE_QUEUE_SIZE,
            )
            await pipeline.start()
            stack.push_async_callback(pipeline.stop)

            app.state.relay = relay
            app.state.pipeline = pipeline
            yield
        logger.info("api_shutdown")

    app = FastAPI(title=app_settings.APP_NAME, version=app_settings.VERSION, lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> PlainTextResponse:
        detail = _describe_validation_error(exc)
        logger.info("source_status_rejected", extra={"path": request.url.path, "detail": detail})
        return PlainTextResponse(detail, status_code=400)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz() -> str:
        """Return process liveness status."""

        return "OK"

    @app.get("/version")
    def version() -> dict[str, str]:
        """Return application metadata from shared settings."""

        return {
            "name": app_settings.APP_NAME,
            "version": app_settings.VERSION,
            "env": app_settings.ENV,
        }

    @app.post(COST_STATUS_PATH, response_class=PlainTextResponse)
    async def cost_source_status(payload: SourceStatusRequest, request: Request) -> str:
        return handle_source_status(request, payload, COST)

    @app.post(METERING_STATUS_PATH, response_class=PlainTextResponse)
    async def metering_availability_status(payload: SourceStatusRequest, request: Request) -> str:
        return handle_source_status(request, payload, METERING)

    return app


app = create_app()
