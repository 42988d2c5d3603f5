"""Background resolve, synthesize and publish pipeline with a bounded worker pool."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sources_status_sim.core.catalog import CatalogError, SourcesClient, resolve_dependent_resource
from sources_status_sim.core.publisher import StatusPublisher
from sources_status_sim.core.resource_types import ResourceTypeCache
from sources_status_sim.core.status import RESOURCE_TYPE, synthesize
from sources_status_sim.core.types import StatusJob

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RelayContext:
    """Process-scoped collaborators shared by the HTTP handlers and workers."""

    catalog: SourcesClient
    resource_types: ResourceTypeCache
    publisher: StatusPublisher
    forced_status: str | None = None
    rng: random.Random | None = None


async def run_status_job(context: RelayContext, job: StatusJob) -> None:
    """Resolve the source's application, fabricate its status and publish it."""

    resource_id = await resolve_dependent_resource(
        context.catalog,
        job.identity,
        job.source_id,
        job.resource_type_id,
    )
    verdict = synthesize(RESOURCE_TYPE, resource_id, forced=context.forced_status, rng=context.rng)
    logger.debug(
        "status_synthesized",
        extra={"source_id": job.source_id, "resource_id": resource_id, "status": verdict.status},
    )
    await context.publisher.publish(verdict, job.identity)


class StatusPipeline:
    """Fixed pool of workers draining a bounded job queue.

    ``submit`` never blocks the caller; ``join`` waits until every submitted
    job has finished, successfully or not.
    """

    def __init__(
        self,
        process: Callable[[StatusJob], Awaitable[None]],
        workers: int = 8,
        queue_size: int = 1000,
    ) -> None:
        self._process = process
        self._worker_count = max(1, workers)
        self._queue_size = max(1, queue_size)
        self._queue: asyncio.Queue[StatusJob] | None = None
        self._workers: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._workers = [
            asyncio.create_task(self._worker(self._queue), name=f"status-worker-{index}")
            for index in range(self._worker_count)
        ]
        logger.info(
            "pipeline_started",
            extra={"workers": self._worker_count, "queue_size": self._queue_size},
        )

    def submit(self, job: StatusJob) -> bool:
        """Queue a job; returns False when the job was dropped."""

        if self._queue is None:
            raise RuntimeError("status pipeline is not started")
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(
                "pipeline_queue_full",
                extra={"source_id": job.source_id, "queue_size": self._queue_size},
            )
            return False
        return True

    async def join(self) -> None:
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Let queued jobs finish, then stop the workers."""

        if not self._workers:
            return
        await self.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("pipeline_stopped")

    async def _worker(self, queue: asyncio.Queue[StatusJob]) -> None:
        while True:
            job = await queue.get()
            try:
                await self._process(job)
            except CatalogError as exc:
                logger.warning(
                    "status_resolution_failed",
                    extra={"source_id": job.source_id, "error": str(exc)},
                )
            except Exception:  # noqa: BLE001
                logger.exception("pipeline_job_failed", extra={"source_id": job.source_id})
            finally:
                queue.task_done()
