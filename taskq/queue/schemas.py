"""
Job instance schema shared by every repository backend.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    """Job instance status enumeration."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELLED}
)


def new_instance_id() -> str:
    return str(uuid4())


class JobInstance(BaseModel):
    """One durable, stateful execution record of a dispatched job."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_instance_id, description="Opaque unique id")
    name: str = Field(..., description="Job definition name")
    input: str = Field(..., description="Serialized job input")
    tries: int = Field(default=0, ge=0, description="Attempts made so far")
    next_run_at: datetime = Field(..., description="Earliest time to run")
    max_tries: int = Field(..., ge=1, description="Snapshot of the definition's max_tries")
    status: JobStatus = Field(default=JobStatus.PENDING)
    last_error: str | None = None
    last_error_at: datetime | None = None

    @field_validator("next_run_at", "last_error_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        # Some drivers hand back naive timestamps; they are stored as UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def should_run(self, now: datetime) -> bool:
        """Pending and due."""
        return self.status == JobStatus.PENDING and self.next_run_at <= now

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class JobStatsResponse(BaseModel):
    """Queue statistics for administrative listing."""

    total_jobs: int
    by_status: dict[str, int]
    by_name: dict[str, int]
    queue_depth: int
    due_now: int
