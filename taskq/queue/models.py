"""
SQL table backing the job queue.
"""

from datetime import UTC, datetime

from sqlalchemy import TIMESTAMP, CheckConstraint, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from taskq.infra.database import Base
from taskq.queue.schemas import JobInstance, JobStatus


class JobInstanceRecord(Base):
    """
    Persisted job instance.

    The status column stores the lowercase status name. Rows are never
    deleted by the queue itself; retention is left to the operator.
    """

    __tablename__ = "job_instances"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Job definition name"
    )
    input: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Serialized job input"
    )
    tries: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Number of attempts made"
    )
    next_run_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, comment="Earliest time to run job"
    )
    max_tries: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Max attempts snapshot taken at dispatch"
    )
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.PENDING.value,
        comment="Job status: pending|succeeded|failed|cancelled",
    )
    last_error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Last error message"
    )
    last_error_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="When the last error happened"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'succeeded', 'failed', 'cancelled')",
            name="job_instances_status_check",
        ),
        CheckConstraint("tries >= 0", name="job_instances_tries_check"),
        CheckConstraint("max_tries > 0", name="job_instances_max_tries_check"),
        Index("ix_job_instances_status_next_run_at", "status", "next_run_at"),
    )

    @classmethod
    def from_instance(cls, instance: JobInstance) -> "JobInstanceRecord":
        return cls(**column_values(instance), id=instance.id)

    def to_instance(self) -> JobInstance:
        return JobInstance.model_validate(self)


def column_values(instance: JobInstance) -> dict:
    """Every mutable column of an instance, status as its stored string."""
    return {
        "name": instance.name,
        "input": instance.input,
        "tries": instance.tries,
        "next_run_at": instance.next_run_at,
        "max_tries": instance.max_tries,
        "status": instance.status.value,
        "last_error": instance.last_error,
        "last_error_at": instance.last_error_at,
    }


