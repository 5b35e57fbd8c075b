"""
Executes one due job instance and applies the retry state machine.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from taskq.config.logging import bind_job_context, clear_job_context, get_logger
from taskq.core.exceptions import FailureHookError, HandlerError
from taskq.queue.job import JobDefinition, JobResult
from taskq.queue.repository.base import JobRepository
from taskq.queue.schemas import JobInstance, JobStatus

logger = get_logger(__name__)


class JobRunner:
    """
    Runs a job instance against its definition and persists the outcome.

    Every attempt increments ``tries`` and moves ``next_run_at`` forward by
    the definition's ``retry_delay``. A failed attempt leaves the instance
    pending until ``tries`` reaches the instance's ``max_tries`` snapshot,
    at which point it is marked failed.

    Execution is at-least-once: a crash after the handler returns but before
    the update is written runs the handler again on a later tick.
    """

    def __init__(self, repository: JobRepository, clock: Callable[[], datetime]):
        self.repository = repository
        self.clock = clock

    async def run_job(
        self, definition: JobDefinition[Any], instance: JobInstance
    ) -> JobResult:
        """Invoke the handler, converting faults into failure results."""
        try:
            result = await definition.run(instance.input)
        except Exception as e:
            error = HandlerError.from_exception(e)
            logger.error(
                "Exception caught while running job, this is a bug in the job "
                "handler; report failures with JobResult.failure instead",
                error=error.message,
                exception=error.details["exception"],
                exc_info=True,
            )
            result = JobResult.failure(error.message)

        if result.ok:
            logger.debug("Job instance ran successfully")
            return result

        logger.warning("Job instance failed", error=result.error, tries=instance.tries + 1)
        await self._call_failure_hook(definition, result.error, instance)
        return result

    async def work_job(
        self, definition: JobDefinition[Any], instance: JobInstance
    ) -> JobInstance | None:
        """
        Run ``instance`` if it is due and persist the new state.

        Returns the updated instance, or ``None`` when the instance was not
        run or its result was discarded.
        """
        now = self.clock()
        if not instance.should_run(now):
            logger.debug(
                "Not going to run job instance",
                job_id=instance.id,
                status=instance.status.value,
                next_run_at=instance.next_run_at.isoformat(),
            )
            return None

        bind_job_context(instance.id, job_name=instance.name)
        try:
            result = await self.run_job(definition, instance)
            updated = self.apply_result(definition, instance, result)

            # Written only while still pending, so an admin cancel always wins
            if not await self.repository.update_if_pending(updated):
                logger.warning(
                    "Job instance left pending while running, discarding result"
                )
                return None

            self._log_outcome(updated)
            return updated
        finally:
            clear_job_context()

    def apply_result(
        self,
        definition: JobDefinition[Any],
        instance: JobInstance,
        result: JobResult,
    ) -> JobInstance:
        """Compute the next state of ``instance`` after one attempt."""
        changes: dict[str, Any] = {
            "tries": instance.tries + 1,
            "next_run_at": instance.next_run_at + definition.retry_delay,
        }

        if result.ok:
            changes["status"] = JobStatus.SUCCEEDED
        else:
            changes["last_error"] = result.error
            changes["last_error_at"] = self.clock()
            if changes["tries"] >= instance.max_tries:
                changes["status"] = JobStatus.FAILED

        return instance.model_copy(update=changes)

    async def _call_failure_hook(
        self, definition: JobDefinition[Any], error: str, instance: JobInstance
    ) -> None:
        try:
            await definition.failed(error, instance)
        except Exception as e:
            hook_error = FailureHookError.from_exception(e)
            logger.error(
                "Exception caught while cleaning up job, this is a bug in the "
                "job failure handler",
                error=hook_error.message,
                exception=hook_error.details["exception"],
                exc_info=True,
            )

    def _log_outcome(self, instance: JobInstance) -> None:
        if instance.status == JobStatus.SUCCEEDED:
            logger.info("Job instance succeeded", tries=instance.tries)
        elif instance.status == JobStatus.FAILED:
            logger.error(
                "Job instance failed permanently",
                tries=instance.tries,
                max_tries=instance.max_tries,
                last_error=instance.last_error,
            )
        else:
            logger.info(
                "Job instance scheduled for retry",
                tries=instance.tries,
                max_tries=instance.max_tries,
                next_run_at=instance.next_run_at.isoformat(),
            )
