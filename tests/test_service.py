"""Tests for queue service administrative operations."""

from datetime import timedelta

import pytest

from taskq.core.exceptions import NotFoundError
from taskq.queue.job import JobDefinition, JobResult
from taskq.queue.schemas import JobInstance, JobStatus
from taskq.queue.service import QueueService


async def always_fail(input):
    return JobResult.failure("boom")


class TestLookups:
    @pytest.mark.asyncio
    async def test_find_missing_raises(self, service):
        with pytest.raises(NotFoundError, match="Failed to find job instance with id missing"):
            await service.find("missing")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, service):
        assert await service.get("missing") is None

    @pytest.mark.asyncio
    async def test_query_lists_everything(self, service, succeeding_job):
        dispatched = await service.dispatch_all(succeeding_job, [1, 2])

        assert {i.id for i in await service.query()} == {i.id for i in dispatched}

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, service, clock):
        ghost = JobInstance(name="ghost", input="{}", next_run_at=clock.now, max_tries=1)

        with pytest.raises(NotFoundError, match="Failed to update job instance"):
            await service.update(ghost)

        assert await service.query() == []


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_sets_cancelled(self, service, succeeding_job):
        instance = await service.dispatch(succeeding_job, 1)

        cancelled = await service.cancel(instance)

        assert cancelled.status == JobStatus.CANCELLED
        assert cancelled.is_terminal()
        assert await service.repository.find_workable(service.clock()) == []

    @pytest.mark.asyncio
    async def test_cancel_missing_raises(self, service, clock):
        ghost = JobInstance(name="ghost", input="{}", next_run_at=clock.now, max_tries=1)

        with pytest.raises(NotFoundError):
            await service.cancel(ghost)


class TestRequeue:
    @pytest.mark.asyncio
    async def test_requeue_failed_instance(self, service, clock):
        definition = JobDefinition(name="fails", handle=always_fail, max_tries=1)
        service.register([definition])
        instance = await service.dispatch(definition, None)
        await service.tick()
        failed = await service.find(instance.id)
        assert failed.status == JobStatus.FAILED

        clock.advance(minutes=10)
        requeued = await service.requeue(failed)

        assert requeued.tries == 0
        assert requeued.status == JobStatus.PENDING
        assert requeued.next_run_at <= clock.now
        assert requeued.last_error == "boom"
        workable = await service.repository.find_workable(clock.now)
        assert [i.id for i in workable] == [instance.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [JobStatus.SUCCEEDED, JobStatus.CANCELLED])
    async def test_requeue_other_terminal_states(self, service, succeeding_job, terminal):
        instance = await service.dispatch(succeeding_job, 1, delay=timedelta(hours=1))
        finished = await service.update(
            instance.model_copy(update={"status": terminal, "tries": 1})
        )

        requeued = await service.requeue(finished)

        assert requeued.tries == 0
        assert requeued.status == JobStatus.PENDING
        assert requeued.next_run_at == service.clock()

    @pytest.mark.asyncio
    async def test_requeued_instance_runs_on_next_tick(self, service, succeeding_job):
        service.register([succeeding_job])
        instance = await service.dispatch(succeeding_job, 1)
        await service.cancel(instance)

        await service.requeue(await service.find(instance.id))
        await service.tick()

        assert (await service.find(instance.id)).status == JobStatus.SUCCEEDED


class TestStats:
    @pytest.mark.asyncio
    async def test_stats(self, service, succeeding_job, clock):
        other = JobDefinition(name="report", handle=succeeding_job.handle)
        await service.dispatch_all(succeeding_job, [1, 2])
        await service.dispatch(other, None, delay=timedelta(hours=1))
        cancelled = await service.dispatch(other, None)
        await service.cancel(cancelled)

        stats = await service.stats()

        assert stats.total_jobs == 4
        assert stats.by_status == {
            "pending": 3,
            "succeeded": 0,
            "failed": 0,
            "cancelled": 1,
        }
        assert stats.by_name == {"noop": 2, "report": 2}
        assert stats.queue_depth == 3
        assert stats.due_now == 2


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_is_additive(self, service, succeeding_job):
        service.register([succeeding_job])
        service.register([succeeding_job])

        assert service.registry.names() == ["noop", "noop"]

    def test_services_do_not_share_registries(self, repository, clock, succeeding_job):
        first = QueueService(repository, clock=clock)
        second = QueueService(repository, clock=clock)

        first.register([succeeding_job])

        assert second.registry.is_empty()

    def test_frozen_registry_rejects_registration(self, service, succeeding_job):
        service.registry.freeze()

        with pytest.raises(RuntimeError, match="registry is frozen"):
            service.register([succeeding_job])
