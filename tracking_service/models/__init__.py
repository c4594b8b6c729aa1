"""
POSETRACK Tracking Service Models

Simulated exercise tracking: session state machine, procedural keypoints,
feedback selection and single-subscriber update delivery.
"""

from .keypoints import (
    JointName,
    Keypoint,
    MotionProfile,
    MOTION_PROFILES,
    IDLE_PROFILE,
    resolve_motion_profile,
    generate_frame,
    base_position
)

from .feedback import (
    FeedbackSelector,
    FEEDBACK_PHRASES
)

from .broadcaster import (
    EventBroadcaster,
    Subscription
)

from .errors import (
    ErrorKind,
    TrackingError,
    CommandNotImplemented,
    command_boundary
)

from .session import (
    TrackingSession,
    Session,
    SessionState,
    TickUpdate,
    ResultsSnapshot,
    get_tracking_session
)

from .commands import (
    CommandDispatcher,
    InitializeRequest,
    StartTrackingRequest,
    parse_arguments
)

__all__ = [
    # Keypoints
    "JointName",
    "Keypoint",
    "MotionProfile",
    "MOTION_PROFILES",
    "IDLE_PROFILE",
    "resolve_motion_profile",
    "generate_frame",
    "base_position",
    # Feedback
    "FeedbackSelector",
    "FEEDBACK_PHRASES",
    # Broadcaster
    "EventBroadcaster",
    "Subscription",
    # Errors
    "ErrorKind",
    "TrackingError",
    "CommandNotImplemented",
    "command_boundary",
    # Session
    "TrackingSession",
    "Session",
    "SessionState",
    "TickUpdate",
    "ResultsSnapshot",
    "get_tracking_session",
    # Commands
    "CommandDispatcher",
    "InitializeRequest",
    "StartTrackingRequest",
    "parse_arguments",
]
