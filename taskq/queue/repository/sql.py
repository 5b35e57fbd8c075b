"""
SQLAlchemy-backed job repository.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from taskq.core.exceptions import RepositoryError
from taskq.infra.database import Database
from taskq.queue.models import JobInstanceRecord, column_values
from taskq.queue.schemas import JobInstance, JobStatus

logger = logging.getLogger(__name__)


class SqlJobRepository:
    """Job repository storing instances in the ``job_instances`` table."""

    def __init__(self, database: Database):
        self.database = database

    async def setup(self) -> None:
        """Create the job table if it does not exist yet."""
        try:
            await self.database.create_all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to create job tables: {e}") from e

        logger.info("Job repository schema ready", extra={"table": "job_instances"})

    async def enqueue(self, instance: JobInstance) -> None:
        await self.enqueue_all([instance])

    async def enqueue_all(self, instances: Sequence[JobInstance]) -> None:
        if not instances:
            return

        async with self.database.SessionLocal() as session:
            try:
                session.add_all(
                    [JobInstanceRecord.from_instance(i) for i in instances]
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise RepositoryError(
                    f"Failed to enqueue job instances: {e}",
                    {"count": len(instances)},
                ) from e

    async def find_workable(self, now: datetime) -> list[JobInstance]:
        query = (
            select(JobInstanceRecord)
            .where(
                and_(
                    JobInstanceRecord.status == JobStatus.PENDING.value,
                    JobInstanceRecord.next_run_at <= now,
                )
            )
            .order_by(JobInstanceRecord.next_run_at)
        )
        return await self._fetch(query)

    async def find(self, instance_id: str) -> JobInstance | None:
        async with self.database.SessionLocal() as session:
            try:
                record = await session.get(JobInstanceRecord, instance_id)
            except SQLAlchemyError as e:
                raise RepositoryError(
                    f"Failed to load job instance: {e}", {"job_id": instance_id}
                ) from e
            return record.to_instance() if record else None

    async def update(self, instance: JobInstance) -> None:
        async with self.database.SessionLocal() as session:
            try:
                await session.execute(
                    update(JobInstanceRecord)
                    .where(JobInstanceRecord.id == instance.id)
                    .values(**column_values(instance))
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise RepositoryError(
                    f"Failed to update job instance: {e}", {"job_id": instance.id}
                ) from e

    async def update_if_pending(self, instance: JobInstance) -> bool:
        async with self.database.SessionLocal() as session:
            try:
                result = await session.execute(
                    update(JobInstanceRecord)
                    .where(
                        and_(
                            JobInstanceRecord.id == instance.id,
                            JobInstanceRecord.status == JobStatus.PENDING.value,
                        )
                    )
                    .values(**column_values(instance))
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise RepositoryError(
                    f"Failed to update job instance: {e}", {"job_id": instance.id}
                ) from e
            return result.rowcount == 1

    async def query(self) -> list[JobInstance]:
        return await self._fetch(
            select(JobInstanceRecord).order_by(JobInstanceRecord.created_at.desc())
        )

    async def clean(self) -> None:
        async with self.database.SessionLocal() as session:
            try:
                await session.execute(delete(JobInstanceRecord))
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise RepositoryError(f"Failed to clean job instances: {e}") from e

    async def close(self) -> None:
        await self.database.close()

    async def _fetch(self, query) -> list[JobInstance]:
        async with self.database.SessionLocal() as session:
            try:
                result = await session.execute(query)
            except SQLAlchemyError as e:
                raise RepositoryError(f"Failed to query job instances: {e}") from e
            return [record.to_instance() for record in result.scalars().all()]
