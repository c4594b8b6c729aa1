"""
POSETRACK Tracking Service - Command Dispatcher

Maps command names and their argument maps onto TrackingSession calls.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from .errors import CommandNotImplemented, ErrorKind, TrackingError
from .session import TrackingSession

logger = logging.getLogger(__name__)


# ============= Request Models =============

class InitializeRequest(BaseModel):
    sdkKey: Optional[str] = None


class StartTrackingRequest(BaseModel):
    exerciseType: Optional[str] = None
    exerciseName: Optional[str] = None


def parse_arguments(model: Type[BaseModel], arguments: Any, kind: ErrorKind) -> BaseModel:
    """
    Validate a command's arguments against its request model.

    Raises:
        TrackingError: with `kind` when the arguments are not an object or
            a field has the wrong type
    """
    try:
        return model.model_validate({} if arguments is None else arguments)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "arguments"
            for error in e.errors()
        )
        logger.debug(f"Rejected {model.__name__}: {e}")
        raise TrackingError(kind, f"Invalid arguments: {fields}") from e


class CommandDispatcher:
    """Dispatches named commands to a tracking session."""

    def __init__(self, session: TrackingSession):
        self.session = session
        self._handlers: Dict[str, Callable[[Any], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "startTracking": self._start_tracking,
            "stopTracking": self._stop_tracking,
            "getResults": self._get_results,
            "dispose": self._dispose,
        }

    @property
    def methods(self):
        return list(self._handlers.keys())

    async def invoke(self, method: str, arguments: Any = None) -> Any:
        """
        Run a command and return its JSON-ready result.

        Raises:
            CommandNotImplemented: unknown method name
            TrackingError: the command failed
        """
        handler = self._handlers.get(method)
        if handler is None:
            logger.warning(f"❓ Unknown command: {method}")
            raise CommandNotImplemented(method)

        logger.debug(f"Dispatching command {method}")
        return await handler(arguments)

    async def _initialize(self, arguments: Any) -> bool:
        request = parse_arguments(InitializeRequest, arguments, ErrorKind.INVALID_CREDENTIAL)
        return await self.session.initialize(request.sdkKey)

    async def _start_tracking(self, arguments: Any) -> bool:
        request = parse_arguments(StartTrackingRequest, arguments, ErrorKind.INVALID_EXERCISE)
        return await self.session.start_tracking(request.exerciseType, request.exerciseName)

    async def _stop_tracking(self, arguments: Any) -> bool:
        return await self.session.stop_tracking()

    async def _get_results(self, arguments: Any) -> Dict[str, Any]:
        snapshot = await self.session.get_results()
        return snapshot.to_dict()

    async def _dispose(self, arguments: Any) -> bool:
        return await self.session.dispose()
