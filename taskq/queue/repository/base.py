"""
Storage contract every job instance backend satisfies.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from taskq.queue.schemas import JobInstance


@runtime_checkable
class JobRepository(Protocol):
    """
    Durable store of job instances.

    Backend faults are raised as ``RepositoryError``. ``find_workable``
    results carry no ordering guarantee.
    """

    async def setup(self) -> None:
        """Prepare the backend (create tables and the like)."""
        ...

    async def enqueue(self, instance: JobInstance) -> None:
        ...

    async def enqueue_all(self, instances: Sequence[JobInstance]) -> None:
        """Insert a batch in a single write."""
        ...

    async def find_workable(self, now: datetime) -> list[JobInstance]:
        """All pending instances with ``next_run_at <= now``."""
        ...

    async def find(self, instance_id: str) -> JobInstance | None:
        ...

    async def update(self, instance: JobInstance) -> None:
        """Replace the stored instance with the same id; no-op if absent."""
        ...

    async def update_if_pending(self, instance: JobInstance) -> bool:
        """
        Replace the stored instance only while it is still pending.

        Returns ``False`` when the instance is absent or has left pending.
        """
        ...

    async def query(self) -> list[JobInstance]:
        """All instances, for administrative listing."""
        ...

    async def clean(self) -> None:
        """Delete every instance. Only used by tests and development tooling."""
        ...

    async def close(self) -> None:
        ...
