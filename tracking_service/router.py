"""
POSETRACK Tracking Service Router

Command endpoint (initialize, startTracking, stopTracking, getResults,
dispose) and the WebSocket stream carrying live tick updates.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, WebSocket
from fastapi.responses import JSONResponse

from core.config import settings
from core.websocket import stream_manager
from shared.utils import success_response, error_response

from .models import (
    CommandDispatcher,
    ErrorKind,
    Subscription,
    TickUpdate,
    TrackingError,
    TrackingSession,
    get_tracking_session
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _error_status(kind: ErrorKind) -> int:
    if kind == ErrorKind.NOT_IMPLEMENTED:
        return 501
    if kind.is_internal:
        return 500
    return 400


def _serialize_update(update: TickUpdate) -> Dict[str, Any]:
    return update.to_dict()


# ============= WebSocket Stream =============
# Declared before the command route so "/ws/updates" is never read as a method

@router.websocket("/ws/updates")
async def tracking_updates(
    websocket: WebSocket,
    session: TrackingSession = Depends(get_tracking_session)
):
    """
    Live tick updates for the current tracking run.

    Connecting subscribes (replacing any previous subscriber); closing the
    socket or sending {"type": "unsubscribe"} unsubscribes.
    """
    subscription = Subscription(
        maxsize=settings.SUBSCRIBER_QUEUE_SIZE,
        name=f"ws_{datetime.now().timestamp()}"
    )

    await stream_manager.serve(
        websocket,
        subscription,
        attach=session.subscribe,
        detach=session.unsubscribe,
        serialize=_serialize_update
    )


# ============= Command Endpoint =============

@router.get("/status")
async def tracking_status(session: TrackingSession = Depends(get_tracking_session)):
    """Current session state and tick statistics."""
    return success_response(session.get_stats())


@router.post("/{method}")
async def invoke_command(
    method: str,
    arguments: Any = Body(default=None),
    session: TrackingSession = Depends(get_tracking_session)
):
    """
    Invoke a tracking command by name.

    Arguments are passed as a JSON object, e.g.
    {"exerciseType": "squat", "exerciseName": "Squats"} for startTracking.
    Any JSON value is accepted here; the dispatcher validates it against
    the command's request model.
    """
    dispatcher = CommandDispatcher(session)

    try:
        result = await dispatcher.invoke(method, arguments)
    except TrackingError as e:
        logger.warning(f"⚠️ {method} failed: {e.kind.value}: {e.message}")
        return JSONResponse(
            status_code=_error_status(e.kind),
            content=error_response(e.message, error_code=e.kind.value, details={"method": method})
        )

    return success_response(result, message=f"{method} completed")
