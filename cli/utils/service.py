"""Queue service access for CLI commands"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from taskq.config.settings import get_settings
from taskq.main import create_queue_service
from taskq.queue.service import QueueService

T = TypeVar("T")


def run_with_service(operation: Callable[[QueueService], Awaitable[T]]) -> T:
    """Run an async operation against a fresh queue service"""

    async def _run() -> T:
        service = create_queue_service(get_settings())
        try:
            return await operation(service)
        finally:
            await service.repository.close()

    return asyncio.run(_run())
