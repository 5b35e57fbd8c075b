"""
Queue service: the public face of the job queue.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from taskq.core.exceptions import NotFoundError
from taskq.core.registries import JobRegistry
from taskq.queue.dispatcher import Dispatcher
from taskq.queue.job import JobDefinition
from taskq.queue.repository.base import JobRepository
from taskq.queue.runner import JobRunner
from taskq.queue.scheduler import QueueScheduler
from taskq.queue.schemas import JobInstance, JobStatsResponse, JobStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(UTC)


class QueueService:
    """
    Registers job definitions, dispatches work and exposes admin operations.

    Each service owns its registry, dispatcher, runner and scheduler on top
    of one repository. Handlers must be idempotent: delivery is
    at-least-once.

    ``find`` and ``update`` treat a missing id as a caller bug and raise
    ``NotFoundError``; ``get`` is the lookup for callers expecting absence.
    """

    def __init__(
        self,
        repository: JobRepository,
        clock: Callable[[], datetime] = utc_now,
        tick_interval_s: float = 1.0,
        shutdown_timeout_s: float = 30.0,
    ):
        self.repository = repository
        self.clock = clock
        self.registry = JobRegistry()
        self.dispatcher = Dispatcher(repository, clock)
        self.runner = JobRunner(repository, clock)
        self.scheduler = QueueScheduler(
            self.registry,
            repository,
            self.runner,
            clock,
            interval_s=tick_interval_s,
            shutdown_timeout_s=shutdown_timeout_s,
        )

    # Lifecycle

    def register(self, definitions: Iterable[JobDefinition[Any]]) -> None:
        definitions = list(definitions)
        self.registry.register(definitions)
        logger.info(
            "Job definitions registered",
            extra={"registered_jobs": [d.name for d in definitions]},
        )

    async def start(self) -> None:
        """Prepare the repository and start ticking."""
        await self.repository.setup()
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def tick(self) -> bool:
        """Run one scheduler tick immediately."""
        return await self.scheduler.tick()

    # Dispatch

    async def dispatch(
        self,
        definition: JobDefinition[T],
        input: T,
        delay: timedelta | None = None,
    ) -> JobInstance:
        return await self.dispatcher.dispatch(definition, input, delay)

    async def dispatch_all(
        self,
        definition: JobDefinition[T],
        inputs: Iterable[T],
        delay: timedelta | None = None,
    ) -> list[JobInstance]:
        return await self.dispatcher.dispatch_all(definition, inputs, delay)

    # Administration

    async def query(self) -> list[JobInstance]:
        return await self.repository.query()

    async def get(self, instance_id: str) -> JobInstance | None:
        return await self.repository.find(instance_id)

    async def find(self, instance_id: str) -> JobInstance:
        instance = await self.repository.find(instance_id)
        if instance is None:
            raise NotFoundError(
                f"Failed to find job instance with id {instance_id}",
                {"job_id": instance_id},
            )
        return instance

    async def update(self, instance: JobInstance) -> JobInstance:
        """Persist ``instance`` and return the stored copy."""
        await self.repository.update(instance)
        stored = await self.repository.find(instance.id)
        if stored is None:
            raise NotFoundError(
                f"Failed to update job instance {instance.id}",
                {"job_id": instance.id, "job_name": instance.name},
            )
        return stored

    async def cancel(self, instance: JobInstance) -> JobInstance:
        cancelled = await self.update(
            instance.model_copy(update={"status": JobStatus.CANCELLED})
        )
        logger.info(
            "Job cancelled",
            extra={"job_id": instance.id, "job_name": instance.name},
        )
        return cancelled

    async def requeue(self, instance: JobInstance) -> JobInstance:
        requeued = await self.update(
            instance.model_copy(
                update={
                    "status": JobStatus.PENDING,
                    "tries": 0,
                    "next_run_at": self.clock(),
                }
            )
        )
        logger.info(
            "Job requeued",
            extra={"job_id": instance.id, "job_name": instance.name},
        )
        return requeued

    async def stats(self) -> JobStatsResponse:
        """Instance counts by status and by name."""
        instances = await self.repository.query()
        now = self.clock()

        by_status = Counter(instance.status.value for instance in instances)
        by_name = Counter(instance.name for instance in instances)

        return JobStatsResponse(
            total_jobs=len(instances),
            by_status={status.value: by_status.get(status.value, 0) for status in JobStatus},
            by_name=dict(by_name),
            queue_depth=by_status.get(JobStatus.PENDING.value, 0),
            due_now=sum(1 for instance in instances if instance.should_run(now)),
        )
