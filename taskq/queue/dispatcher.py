"""
Turns a job definition and its input into persisted job instances.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import TypeVar

from taskq.core.exceptions import ValidationError
from taskq.queue.job import JobDefinition
from taskq.queue.repository.base import JobRepository
from taskq.queue.schemas import JobInstance, JobStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_instance(
    definition: JobDefinition[T],
    input: T,
    now: datetime,
    delay: timedelta | None = None,
) -> JobInstance:
    """Build a pending instance; raises EncodeError if the input can't be stored."""
    if delay is not None and delay < timedelta(0):
        raise ValidationError("delay cannot be negative", {"job": definition.name})

    return JobInstance(
        name=definition.name,
        input=definition.serialize(input),
        tries=0,
        next_run_at=now + delay if delay is not None else now,
        max_tries=definition.max_tries,
        status=JobStatus.PENDING,
    )


class Dispatcher:
    """Persists new job instances; never runs handlers itself."""

    def __init__(self, repository: JobRepository, clock: Callable[[], datetime]):
        self.repository = repository
        self.clock = clock

    async def dispatch(
        self,
        definition: JobDefinition[T],
        input: T,
        delay: timedelta | None = None,
    ) -> JobInstance:
        instance = create_instance(definition, input, self.clock(), delay)
        await self.repository.enqueue(instance)

        logger.debug(
            "Job dispatched",
            extra={
                "job_id": instance.id,
                "job_name": definition.name,
                "next_run_at": instance.next_run_at.isoformat(),
            },
        )
        return instance

    async def dispatch_all(
        self,
        definition: JobDefinition[T],
        inputs: Iterable[T],
        delay: timedelta | None = None,
    ) -> list[JobInstance]:
        now = self.clock()
        # Encode everything first so a bad input persists nothing
        instances = [
            create_instance(definition, input, now, delay) for input in inputs
        ]
        await self.repository.enqueue_all(instances)

        logger.debug(
            "Jobs dispatched",
            extra={"job_name": definition.name, "count": len(instances)},
        )
        return instances
