"""
Periodic scheduler loop polling the repository for due job instances.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime

from taskq.config.logging import get_logger
from taskq.core.registries import JobRegistry
from taskq.queue.repository.base import JobRepository
from taskq.queue.runner import JobRunner

logger = get_logger(__name__)


class QueueScheduler:
    """
    Ticks at a fixed cadence and runs every due instance sequentially.

    Ticks are single-flight: a tick requested while another one is still
    running is skipped. ``stop`` never aborts in-flight work.
    """

    def __init__(
        self,
        registry: JobRegistry,
        repository: JobRepository,
        runner: JobRunner,
        clock: Callable[[], datetime],
        interval_s: float = 1.0,
        shutdown_timeout_s: float = 30.0,
    ):
        self.registry = registry
        self.repository = repository
        self.runner = runner
        self.clock = clock
        self.interval_s = interval_s
        self.shutdown_timeout_s = shutdown_timeout_s
        self._tick_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """
        Work the queue once.

        Returns ``False`` when skipped because another tick is in progress.
        """
        if self._tick_lock.locked():
            logger.warning("Previous tick still in progress, skipping tick")
            return False

        async with self._tick_lock:
            await self._work_queue()
        return True

    async def _work_queue(self) -> None:
        if self.registry.is_empty():
            logger.debug("No jobs registered, trying again later")
            return

        logger.debug(
            "Run job queue with registered jobs",
            jobs=", ".join(self.registry.names()),
        )

        instances = await self.repository.find_workable(self.clock())
        if not instances:
            return

        logger.debug("Start working queue", queue_length=len(instances))
        for instance in instances:
            definition = self.registry.find(instance.name)
            if definition is None:
                logger.debug(
                    "No registered job for instance, skipping",
                    job_id=instance.id,
                    job_name=instance.name,
                )
                continue
            await self.runner.work_job(definition, instance)
        logger.debug("Finish working queue")

    def start(self) -> None:
        """Schedule the tick loop on the running event loop."""
        if self.is_running:
            raise RuntimeError("Scheduler is already running")

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="taskq-scheduler")
        logger.info("Job queue scheduler started", interval_s=self.interval_s)

    async def stop(self) -> None:
        """Stop scheduling ticks, wait for the in-flight one, clear the registry."""
        if self._task is None:
            logger.warning("Can not stop scheduler, it was never started")
            self.registry.clear()
            return

        logger.info("Stopping job queue scheduler")
        self._stop_event.set()

        done, _ = await asyncio.wait({self._task}, timeout=self.shutdown_timeout_s)
        if not done:
            logger.warning(
                "Scheduler stopped with a tick still in progress",
                timeout_s=self.shutdown_timeout_s,
            )
        self._task = None
        self.registry.clear()

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                await self.tick()
            except Exception:
                # Retried on the next cadence
                logger.exception("Error in scheduler tick")

            remaining = max(0.0, self.interval_s - (time.monotonic() - started))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass
