"""
POSETRACK Tracking Service - Tracking Session

Session state machine driving the simulated exercise tracker:
lifecycle commands, run counters and the periodic tick that streams
synthetic telemetry to the subscriber.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from enum import Enum

from core.config import settings
from shared.utils import now_millis, mask_secret

from .broadcaster import EventBroadcaster, Subscription
from .errors import ErrorKind, TrackingError, command_boundary
from .feedback import FeedbackSelector
from .keypoints import Keypoint, generate_frame

logger = logging.getLogger(__name__)


REPETITION_PROBABILITY = 0.3
ACCURACY_STEP = 0.01
ACCURACY_CAP = 0.95


class SessionState(Enum):
    """Tracking session states."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    TRACKING = "tracking"
    DISPOSED = "disposed"


# ═══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class Session:
    """Mutable record of the current tracking run."""
    state: SessionState = SessionState.UNINITIALIZED
    exercise_type: Optional[str] = None
    exercise_name: Optional[str] = None
    repetitions: int = 0
    accuracy: float = 0.0
    started_at_ms: int = 0
    feedback_log: List[str] = field(default_factory=list)

    @property
    def initialized(self) -> bool:
        return self.state in (SessionState.INITIALIZED, SessionState.TRACKING)

    @property
    def tracking(self) -> bool:
        return self.state == SessionState.TRACKING

    def reset_run(self):
        self.repetitions = 0
        self.accuracy = 0.0
        self.started_at_ms = 0
        self.feedback_log.clear()


@dataclass
class TickUpdate:
    """Telemetry pushed to the subscriber on every tick."""
    repetitions: int
    accuracy: float
    latest_feedback: Optional[str]
    tracking: bool
    keypoints: List[Keypoint]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repetitions": self.repetitions,
            "accuracy": self.accuracy,
            "feedback": self.latest_feedback,
            "isTracking": self.tracking,
            "keypoints": [kp.to_dict() for kp in self.keypoints],
        }


@dataclass
class ResultsSnapshot:
    """Point-in-time summary of the session."""
    repetitions: int
    accuracy: float
    duration_seconds: int
    feedback_log: List[str]
    exercise_name: Optional[str]
    started_at_ms: int
    queried_at_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repetitions": self.repetitions,
            "accuracy": self.accuracy,
            "duration": self.duration_seconds,
            "feedback": list(self.feedback_log),
            "analytics": {
                "exercise": self.exercise_name,
                "startTime": self.started_at_ms,
                "endTime": self.queried_at_ms,
            },
        }


# ═══════════════════════════════════════════════════════════════════════════════
# STATE MACHINE
# ═══════════════════════════════════════════════════════════════════════════════

class TrackingSession:
    """
    Owns the session, the tick task and the event broadcaster.

    Every mutation (commands and tick firings) runs under one asyncio lock.
    Each run gets a new generation number; a tick firing that finds its
    generation stale, or the session no longer tracking, exits without
    touching state.
    """

    def __init__(
        self,
        tick_interval: float = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_millis,
        broadcaster: Optional[EventBroadcaster] = None,
        frame_width: int = None,
        frame_height: int = None
    ):
        """
        Initialize the tracking session.

        Args:
            tick_interval: Seconds between ticks (settings default if None)
            rng: Random source for repetition and feedback draws
            clock: Returns the current time in epoch milliseconds
            broadcaster: EventBroadcaster instance (new one if None)
            frame_width: Width of the synthetic pose frame
            frame_height: Height of the synthetic pose frame
        """
        self.tick_interval = settings.TICK_INTERVAL_SECONDS if tick_interval is None else tick_interval
        self.rng = rng or random.Random()
        self.clock = clock
        self.broadcaster = broadcaster or EventBroadcaster()
        self.frame_width = frame_width or settings.FRAME_WIDTH
        self.frame_height = frame_height or settings.FRAME_HEIGHT
        self.feedback_selector = FeedbackSelector(rng=self.rng)

        self.session = Session()
        self._lock = asyncio.Lock()
        self._tick_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._tick_count = 0

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def generation(self) -> int:
        return self._generation

    # ========================================
    # Commands
    # ========================================

    @command_boundary(ErrorKind.INITIALIZATION_FAILED)
    async def initialize(self, sdk_key: Optional[str]) -> bool:
        if not sdk_key:
            raise TrackingError(ErrorKind.INVALID_CREDENTIAL, "SDK key is required")

        async with self._lock:
            if not self.session.initialized:
                self.session.state = SessionState.INITIALIZED

        logger.info(
            f"🔑 Tracker initialized with key: {mask_secret(sdk_key, settings.SDK_KEY_LOG_CHARS)}"
        )
        return True

    @command_boundary(ErrorKind.TRACKING_FAILED)
    async def start_tracking(self, exercise_type: Optional[str], exercise_name: Optional[str]) -> bool:
        async with self._lock:
            if not self.session.initialized:
                raise TrackingError(ErrorKind.NOT_INITIALIZED, "Tracker not initialized")

            if not exercise_type or not exercise_name:
                raise TrackingError(ErrorKind.INVALID_EXERCISE, "Exercise type and name are required")

            restarting = self.session.tracking
            self._cancel_tick()

            self.session.reset_run()
            self.session.exercise_type = exercise_type
            self.session.exercise_name = exercise_name
            self.session.started_at_ms = self.clock()
            self.session.state = SessionState.TRACKING

            self._schedule_tick()

        if restarting:
            logger.info(f"🔄 Restarted tracking exercise: {exercise_name} ({exercise_type})")
        else:
            logger.info(f"🏋️ Started tracking exercise: {exercise_name} ({exercise_type})")
        return True

    @command_boundary(ErrorKind.STOP_FAILED)
    async def stop_tracking(self) -> bool:
        async with self._lock:
            self._cancel_tick()
            if self.session.tracking:
                self.session.state = SessionState.INITIALIZED
            self.session.exercise_name = None

        logger.info("⏹️ Stopped exercise tracking")
        return True

    @command_boundary(ErrorKind.GET_RESULTS_FAILED)
    async def get_results(self) -> ResultsSnapshot:
        async with self._lock:
            now = self.clock()
            started = self.session.started_at_ms
            duration = (now - started) // 1000 if started > 0 else 0

            snapshot = ResultsSnapshot(
                repetitions=self.session.repetitions,
                accuracy=self.session.accuracy,
                duration_seconds=int(max(0, duration)),
                feedback_log=list(self.session.feedback_log),
                exercise_name=self.session.exercise_name,
                started_at_ms=started,
                queried_at_ms=now,
            )

        logger.debug(f"📊 Returning exercise results: {snapshot.to_dict()}")
        return snapshot

    @command_boundary(ErrorKind.DISPOSE_FAILED)
    async def dispose(self) -> bool:
        async with self._lock:
            self._cancel_tick()
            self.session.reset_run()
            self.session.exercise_type = None
            self.session.exercise_name = None
            self.session.state = SessionState.DISPOSED
            self.broadcaster.detach()

        logger.info("🧹 Tracker disposed")
        return True

    # ========================================
    # Subscription
    # ========================================

    async def subscribe(self, subscription: Subscription):
        async with self._lock:
            self.broadcaster.attach(subscription)

    async def unsubscribe(self, subscription: Optional[Subscription] = None) -> bool:
        async with self._lock:
            return self.broadcaster.detach(subscription)

    # ========================================
    # Tick
    # ========================================

    def _schedule_tick(self):
        self._generation += 1
        self._tick_task = asyncio.create_task(
            self._run_ticks(self._generation),
            name=f"tracking_tick_{self._generation}"
        )

    def _cancel_tick(self):
        # Bumping the generation invalidates a firing that is already
        # waiting on the lock even if cancel() comes too late for it.
        self._generation += 1
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done():
            task.cancel()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self.session.tracking

    async def _run_ticks(self, generation: int):
        logger.debug(f"⏱️ Tick loop {generation} started (interval: {self.tick_interval}s)")
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                if await self.run_tick(generation) is None:
                    break
        except asyncio.CancelledError:
            logger.debug(f"Tick loop {generation} cancelled")
            raise
        except Exception as e:
            logger.exception(f"💥 Tick loop {generation} failed: {e}")
            await self._end_failed_run(generation)
            return
        logger.debug(f"Tick loop {generation} finished")

    async def _end_failed_run(self, generation: int):
        # A failed tick stops the run the same way stopTracking does
        async with self._lock:
            if generation != self._generation:
                return
            self._generation += 1
            self._tick_task = None
            if self.session.tracking:
                self.session.state = SessionState.INITIALIZED
            self.session.exercise_name = None

        logger.warning(f"⏹️ Tracking stopped after tick failure (generation {generation})")

    async def run_tick(self, generation: int) -> Optional[TickUpdate]:
        """
        Execute one tick firing for `generation`.

        Returns the published update, or None when the firing was stale.
        """
        async with self._lock:
            if not self._is_current(generation):
                return None

            update = self._advance()
            self.broadcaster.publish(update)
            self._tick_count += 1
            return update

    def _advance(self) -> TickUpdate:
        session = self.session

        if self.rng.random() < REPETITION_PROBABILITY:
            session.repetitions += 1

        session.accuracy = min(ACCURACY_CAP, round(session.accuracy + ACCURACY_STEP, 4))

        phrase = self.feedback_selector.select(session.feedback_log)
        if phrase is not None:
            session.feedback_log.append(phrase)

        elapsed = max(0, self.clock() - session.started_at_ms) / 1000.0
        keypoints = generate_frame(
            session.exercise_type,
            elapsed,
            width=self.frame_width,
            height=self.frame_height
        )

        return TickUpdate(
            repetitions=session.repetitions,
            accuracy=session.accuracy,
            latest_feedback=session.feedback_log[-1] if session.feedback_log else None,
            tracking=session.tracking,
            keypoints=keypoints,
        )

    # ========================================
    # Stats
    # ========================================

    def get_stats(self) -> dict:
        return {
            "state": self.session.state.value,
            "exercise": self.session.exercise_name,
            "generation": self._generation,
            "tick_interval": self.tick_interval,
            "ticks_fired": self._tick_count,
            "tick_running": self._tick_task is not None and not self._tick_task.done(),
            "broadcaster": self.broadcaster.get_stats(),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_session_instance: Optional[TrackingSession] = None

def get_tracking_session() -> TrackingSession:
    """Get or create the global tracking session."""
    global _session_instance
    if _session_instance is None:
        _session_instance = TrackingSession()
    return _session_instance
