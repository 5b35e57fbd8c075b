import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

from taskq.core.exceptions import RepositoryError
from taskq.queue.schemas import JobInstance, JobStatus

logger = logging.getLogger(__name__)


class InMemoryJobRepository:
    """Process-local repository, for development and tests."""

    def __init__(self):
        self._instances: dict[str, JobInstance] = {}
        self._lock = asyncio.Lock()

    async def setup(self) -> None:
        logger.debug("In-memory job repository ready")

    async def enqueue(self, instance: JobInstance) -> None:
        await self.enqueue_all([instance])

    async def enqueue_all(self, instances: Sequence[JobInstance]) -> None:
        async with self._lock:
            ids = [instance.id for instance in instances]
            duplicates = [i for i in ids if i in self._instances]
            if duplicates or len(set(ids)) != len(ids):
                raise RepositoryError(
                    "Job instance ids must be unique",
                    {"duplicate_ids": duplicates},
                )
            for instance in instances:
                self._instances[instance.id] = instance.model_copy()

    async def find_workable(self, now: datetime) -> list[JobInstance]:
        async with self._lock:
            return [
                instance.model_copy()
                for instance in self._instances.values()
                if instance.status == JobStatus.PENDING and instance.next_run_at <= now
            ]

    async def find(self, instance_id: str) -> JobInstance | None:
        async with self._lock:
            instance = self._instances.get(instance_id)
            return instance.model_copy() if instance else None

    async def update(self, instance: JobInstance) -> None:
        async with self._lock:
            if instance.id in self._instances:
                self._instances[instance.id] = instance.model_copy()

    async def update_if_pending(self, instance: JobInstance) -> bool:
        async with self._lock:
            stored = self._instances.get(instance.id)
            if stored is None or stored.status != JobStatus.PENDING:
                return False
            self._instances[instance.id] = instance.model_copy()
            return True

    async def query(self) -> list[JobInstance]:
        async with self._lock:
            return [instance.model_copy() for instance in self._instances.values()]

    async def clean(self) -> None:
        async with self._lock:
            self._instances.clear()

    async def close(self) -> None:
        return None
