"""
POSETRACK Tracking Service - Errors

Error kinds returned by tracking commands and the decorator that keeps
unexpected faults from escaping a command.
"""

import logging
from enum import Enum
from functools import wraps

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""
    INVALID_CREDENTIAL = "InvalidCredential"
    NOT_INITIALIZED = "NotInitialized"
    INVALID_EXERCISE = "InvalidExercise"
    INVALID_ARGUMENTS = "InvalidArguments"
    INITIALIZATION_FAILED = "InitializationFailed"
    TRACKING_FAILED = "TrackingFailed"
    STOP_FAILED = "StopFailed"
    GET_RESULTS_FAILED = "GetResultsFailed"
    DISPOSE_FAILED = "DisposeFailed"
    NOT_IMPLEMENTED = "NotImplemented"

    @property
    def is_internal(self) -> bool:
        return self.value.endswith("Failed")


class TrackingError(Exception):
    """A command failure carrying an error kind and a readable message."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"TrackingError({self.kind.value!r}, {self.message!r})"


class CommandNotImplemented(TrackingError):
    """Raised for command names the dispatcher does not know."""

    def __init__(self, method: str):
        super().__init__(ErrorKind.NOT_IMPLEMENTED, f"Method '{method}' is not implemented")
        self.method = method


def command_boundary(failure_kind: ErrorKind):
    """
    Decorator for async commands converting unexpected exceptions into
    `TrackingError`.

    TrackingError passes through untouched; anything else is logged and
    re-raised as `failure_kind`.
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except TrackingError:
                raise
            except Exception as e:
                logger.exception(f"Unhandled error in {func.__name__}: {e}")
                raise TrackingError(failure_kind, str(e) or type(e).__name__) from e

        return async_wrapper

    return decorator
