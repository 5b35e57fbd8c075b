from datetime import UTC, datetime
from typing import Any


class TaskQException(Exception):
    """Base exception for the job queue."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(TaskQException):
    """Raised when a job definition or dispatch argument is invalid."""


class EncodeError(TaskQException):
    """Raised when a job input cannot be serialized at dispatch time."""


class HandlerError(TaskQException):
    """Wraps an unexpected fault raised by a job handler."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "HandlerError":
        return cls(_describe(exc), {"exception": exc.__class__.__name__})


class FailureHookError(TaskQException):
    """Wraps a fault raised by a job's failure hook."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureHookError":
        return cls(_describe(exc), {"exception": exc.__class__.__name__})


class NotFoundError(TaskQException):
    """Raised when a job instance is not found."""


class RepositoryError(TaskQException):
    """Raised when the storage backend fails."""


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return text if text else exc.__class__.__name__


def create_error_response(
    message: str,
    details: dict[str, Any] | None = None,
    code: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response envelope."""
    return {
        "ok": False,
        "error": {
            "message": message,
            "code": code,
            "details": details or {},
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }


def create_success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create standardized success response envelope."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "timestamp": datetime.now(UTC).isoformat(),
    }
