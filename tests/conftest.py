import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest

from taskq.config.settings import Settings
from taskq.infra.database import Database
from taskq.queue.job import JobDefinition, JobResult
from taskq.queue.repository.memory import InMemoryJobRepository
from taskq.queue.repository.sql import SqlJobRepository
from taskq.queue.service import QueueService

T0 = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def service(repository, clock) -> QueueService:
    """Queue service over an in-memory repository and a fake clock."""
    return QueueService(repository, clock=clock, tick_interval_s=0.01)


@pytest.fixture
def succeeding_job() -> JobDefinition:
    async def handle(input):
        return JobResult.success()

    return JobDefinition(name="noop", handle=handle)


@pytest.fixture
async def sql_repository() -> AsyncGenerator[SqlJobRepository, None]:
    """SQL repository against the PostgreSQL database in DATABASE_URL."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url or "postgresql" not in database_url:
        pytest.skip("No PostgreSQL database available for testing")

    repository = SqlJobRepository(
        Database(Settings(database_url=database_url, debug=False))
    )
    await repository.setup()
    await repository.clean()

    yield repository

    await repository.clean()
    await repository.close()
