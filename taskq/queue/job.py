"""
Job definitions: the registered, reusable description of one kind of work.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from taskq.core.exceptions import EncodeError, ValidationError

if TYPE_CHECKING:
    from taskq.queue.schemas import JobInstance

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DEFAULT_MAX_TRIES = 5
DEFAULT_RETRY_DELAY = timedelta(minutes=1)


@dataclass(frozen=True)
class JobResult:
    """Outcome reported by a job handler."""

    error: str | None = None

    @classmethod
    def success(cls) -> "JobResult":
        return cls()

    @classmethod
    def failure(cls, message: str) -> "JobResult":
        return cls(error=message)

    @property
    def ok(self) -> bool:
        return self.error is None


Handler = Callable[[T], Awaitable[JobResult | None]]
FailureHook = Callable[[str, "JobInstance"], Awaitable[None]]


def _json_encode(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _json_decode(raw: str) -> Any:
    return json.loads(raw)


async def _ignore_failure(error: str, instance: "JobInstance") -> None:
    return None


@dataclass(frozen=True)
class JobDefinition(Generic[T]):
    """
    Describes one named unit of deferrable work.

    Instances are matched to definitions by ``name``. ``encode``/``decode``
    map the typed input to the string stored on the instance and must
    round-trip. ``handle`` returns a ``JobResult`` (``None`` counts as
    success); ``failed`` is awaited after every failed attempt.
    """

    name: str
    handle: Handler[T]
    encode: Callable[[T], str] = _json_encode
    decode: Callable[[str], T] = _json_decode
    failed: FailureHook = _ignore_failure
    max_tries: int = DEFAULT_MAX_TRIES
    retry_delay: timedelta = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Job name cannot be empty")
        if self.max_tries < 1:
            raise ValidationError(
                f"max_tries must be positive, got: {self.max_tries}",
                {"job": self.name},
            )
        if self.retry_delay < timedelta(0):
            raise ValidationError(
                "retry_delay cannot be negative", {"job": self.name}
            )

    @classmethod
    def for_model(
        cls,
        name: str,
        model: type[M],
        handle: Handler[M],
        **options: Any,
    ) -> "JobDefinition[M]":
        """Build a definition whose input is a pydantic model."""
        return cls(
            name=name,
            handle=handle,
            encode=lambda value: value.model_dump_json(),
            decode=model.model_validate_json,
            **options,
        )

    def with_max_tries(self, max_tries: int) -> "JobDefinition[T]":
        return replace(self, max_tries=max_tries)

    def with_retry_delay(self, retry_delay: timedelta) -> "JobDefinition[T]":
        return replace(self, retry_delay=retry_delay)

    def serialize(self, value: T) -> str:
        """Encode an input, raising EncodeError when it cannot be stored."""
        try:
            encoded = self.encode(value)
        except Exception as e:
            raise EncodeError(
                f"Failed to encode input for job '{self.name}': {e}",
                {"job": self.name},
            ) from e

        if not isinstance(encoded, str):
            raise EncodeError(
                f"Encoder for job '{self.name}' returned "
                f"{type(encoded).__name__}, expected str",
                {"job": self.name},
            )
        return encoded

    async def run(self, raw_input: str) -> JobResult:
        """Decode the stored input and invoke the handler."""
        try:
            value = self.decode(raw_input)
        except (TypeError, ValueError) as e:
            return JobResult.failure(
                f"Failed to decode input for job '{self.name}': {e}"
            )

        result = await self.handle(value)
        return result if result is not None else JobResult.success()
