import asyncio
import signal

from taskq.config.logging import get_logger, setup_logging
from taskq.config.settings import QueueBackend, Settings, settings
from taskq.infra.database import Database
from taskq.queue.registry_init import load_job_definitions
from taskq.queue.repository.base import JobRepository
from taskq.queue.repository.memory import InMemoryJobRepository
from taskq.queue.repository.sql import SqlJobRepository
from taskq.queue.service import QueueService

logger = get_logger(__name__)


def create_repository(settings: Settings) -> JobRepository:
    """Create the job repository selected by QUEUE_BACKEND."""
    if settings.queue_backend == QueueBackend.MEMORY:
        return InMemoryJobRepository()
    return SqlJobRepository(Database(settings))


def create_queue_service(settings: Settings = settings) -> QueueService:
    """Create and configure the queue service."""
    return QueueService(
        create_repository(settings),
        tick_interval_s=settings.tick_interval_seconds,
        shutdown_timeout_s=settings.queue_shutdown_timeout_s,
    )


async def serve(settings: Settings = settings) -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    setup_logging(settings)

    service = create_queue_service(settings)
    service.register(load_job_definitions(settings.job_modules))

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    await service.start()
    logger.info(
        "Job queue worker running",
        backend=settings.queue_backend.value,
        jobs=service.registry.names(),
    )

    try:
        await stop_requested.wait()
    finally:
        await service.stop()
        await service.repository.close()
        logger.info("Job queue worker stopped")


if __name__ == "__main__":
    asyncio.run(serve())
