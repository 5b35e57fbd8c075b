"""Tests for the SQL job repository (requires PostgreSQL in DATABASE_URL)."""

from datetime import timedelta

import pytest

from taskq.queue.job import JobDefinition, JobResult
from taskq.queue.repository.base import JobRepository
from taskq.queue.schemas import JobInstance, JobStatus
from taskq.queue.service import QueueService


def make_instance(clock, **overrides) -> JobInstance:
    values = {
        "name": "noop",
        "input": '{"to": "a@example.com"}',
        "next_run_at": clock.now,
        "max_tries": 5,
    }
    values.update(overrides)
    return JobInstance(**values)


@pytest.mark.asyncio
async def test_satisfies_repository_contract(sql_repository):
    assert isinstance(sql_repository, JobRepository)


@pytest.mark.asyncio
async def test_enqueue_find_round_trip(sql_repository, clock):
    instance = make_instance(clock)

    await sql_repository.enqueue(instance)

    stored = await sql_repository.find(instance.id)
    assert stored.model_dump() == instance.model_dump()
    assert stored.status == JobStatus.PENDING
    assert await sql_repository.find("unknown") is None


@pytest.mark.asyncio
async def test_find_workable_filters_status_and_time(sql_repository, clock):
    due = make_instance(clock)
    future = make_instance(clock, next_run_at=clock.now + timedelta(minutes=1))
    failed = make_instance(clock, status=JobStatus.FAILED)
    cancelled = make_instance(clock, status=JobStatus.CANCELLED)
    await sql_repository.enqueue_all([due, future, failed, cancelled])

    workable = await sql_repository.find_workable(clock.now)

    assert [i.id for i in workable] == [due.id]


@pytest.mark.asyncio
async def test_update_persists_every_field(sql_repository, clock):
    instance = make_instance(clock)
    await sql_repository.enqueue(instance)

    changed = instance.model_copy(
        update={
            "tries": 5,
            "status": JobStatus.FAILED,
            "next_run_at": clock.now + timedelta(minutes=5),
            "last_error": "smtp down",
            "last_error_at": clock.now,
        }
    )
    await sql_repository.update(changed)

    assert (await sql_repository.find(instance.id)).model_dump() == changed.model_dump()


@pytest.mark.asyncio
async def test_query_and_clean(sql_repository, clock):
    await sql_repository.enqueue_all([make_instance(clock), make_instance(clock)])

    assert len(await sql_repository.query()) == 2

    await sql_repository.clean()
    assert await sql_repository.query() == []


@pytest.mark.asyncio
async def test_retry_scenario_against_sql(sql_repository, clock):
    async def handle(input):
        return JobResult.failure("smtp down")

    service = QueueService(sql_repository, clock=clock)
    definition = JobDefinition(
        name="send_email", handle=handle, max_tries=2, retry_delay=timedelta(seconds=60)
    )
    service.register([definition])
    instance = await service.dispatch(definition, {"to": "a@example.com"})

    await service.tick()
    clock.advance(seconds=60)
    await service.tick()

    stored = await service.find(instance.id)
    assert stored.tries == 2
    assert stored.status == JobStatus.FAILED
    assert stored.last_error == "smtp down"


@pytest.mark.asyncio
async def test_update_if_pending_respects_cancel(sql_repository, clock):
    pending = make_instance(clock)
    cancelled = make_instance(clock, status=JobStatus.CANCELLED)
    await sql_repository.enqueue_all([pending, cancelled])

    succeeded = {"tries": 1, "status": JobStatus.SUCCEEDED}
    assert await sql_repository.update_if_pending(pending.model_copy(update=succeeded))
    assert not await sql_repository.update_if_pending(cancelled.model_copy(update=succeeded))
    assert not await sql_repository.update_if_pending(make_instance(clock))

    assert (await sql_repository.find(pending.id)).status == JobStatus.SUCCEEDED
    stored = await sql_repository.find(cancelled.id)
    assert stored.status == JobStatus.CANCELLED
    assert stored.tries == 0
