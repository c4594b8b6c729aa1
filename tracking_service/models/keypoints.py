"""
POSETRACK Tracking Service - Keypoint Generator

Procedural 17-joint skeleton animated with sinusoidal motion.
Pure function of (exercise type, elapsed seconds): no random draws.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any

import numpy as np


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class JointName(str, Enum):
    """The 17 joints of a synthetic pose frame, in frame order."""
    NOSE = "nose"
    LEFT_EYE = "leftEye"
    RIGHT_EYE = "rightEye"
    LEFT_EAR = "leftEar"
    RIGHT_EAR = "rightEar"
    LEFT_SHOULDER = "leftShoulder"
    RIGHT_SHOULDER = "rightShoulder"
    LEFT_ELBOW = "leftElbow"
    RIGHT_ELBOW = "rightElbow"
    LEFT_WRIST = "leftWrist"
    RIGHT_WRIST = "rightWrist"
    LEFT_HIP = "leftHip"
    RIGHT_HIP = "rightHip"
    LEFT_KNEE = "leftKnee"
    RIGHT_KNEE = "rightKnee"
    LEFT_ANKLE = "leftAnkle"
    RIGHT_ANKLE = "rightAnkle"


@dataclass(frozen=True)
class Keypoint:
    """A labeled 2D joint position with a detection confidence."""
    joint: JointName
    x: float
    y: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.joint.value,
            "x": self.x,
            "y": self.y,
            "confidence": self.confidence,
        }


# Offset from frame center (pixels, y grows downward) and fixed confidence.
BASE_SKELETON: Dict[JointName, Tuple[float, float, float]] = {
    JointName.NOSE: (0.0, -150.0, 0.96),
    JointName.LEFT_EYE: (-10.0, -160.0, 0.95),
    JointName.RIGHT_EYE: (10.0, -160.0, 0.95),
    JointName.LEFT_EAR: (-22.0, -155.0, 0.93),
    JointName.RIGHT_EAR: (22.0, -155.0, 0.93),
    JointName.LEFT_SHOULDER: (-50.0, -100.0, 0.95),
    JointName.RIGHT_SHOULDER: (50.0, -100.0, 0.95),
    JointName.LEFT_ELBOW: (-70.0, -40.0, 0.91),
    JointName.RIGHT_ELBOW: (70.0, -40.0, 0.91),
    JointName.LEFT_WRIST: (-80.0, 20.0, 0.88),
    JointName.RIGHT_WRIST: (80.0, 20.0, 0.87),
    JointName.LEFT_HIP: (-30.0, 30.0, 0.94),
    JointName.RIGHT_HIP: (30.0, 30.0, 0.94),
    JointName.LEFT_KNEE: (-35.0, 110.0, 0.92),
    JointName.RIGHT_KNEE: (35.0, 110.0, 0.92),
    JointName.LEFT_ANKLE: (-38.0, 190.0, 0.89),
    JointName.RIGHT_ANKLE: (38.0, 190.0, 0.89),
}

JOINT_ORDER: List[JointName] = list(JointName)
JOINT_COUNT = len(JOINT_ORDER)

_BASE_OFFSETS = np.array([BASE_SKELETON[j][:2] for j in JOINT_ORDER], dtype=float)
_CONFIDENCES = np.array([BASE_SKELETON[j][2] for j in JOINT_ORDER], dtype=float)

# Shared motion applied to every joint
BREATH_AMPLITUDE = 2.0
BREATH_RATE = 4.0
SWAY_AMPLITUDE = 5.0
SWAY_RATE = 0.5

DEFAULT_FRAME_WIDTH = 640
DEFAULT_FRAME_HEIGHT = 480


@dataclass
class MotionProfile:
    """
    Exercise-specific vertical oscillation.

    `amplitudes` maps each affected joint to its swing in pixels and
    `phases` holds per-joint phase offsets in radians.
    """
    name: str
    keywords: Tuple[str, ...]
    rate: float
    amplitudes: Dict[JointName, float]
    phases: Dict[JointName, float] = field(default_factory=dict)

    def matches(self, exercise_type: str) -> bool:
        return any(keyword in exercise_type for keyword in self.keywords)

    def amplitude_vector(self) -> np.ndarray:
        return np.array([self.amplitudes.get(j, 0.0) for j in JOINT_ORDER], dtype=float)

    def phase_vector(self) -> np.ndarray:
        return np.array([self.phases.get(j, 0.0) for j in JOINT_ORDER], dtype=float)


# ═══════════════════════════════════════════════════════════════════════════════
# MOTION TABLE
# ═══════════════════════════════════════════════════════════════════════════════

MOTION_PROFILES: List[MotionProfile] = [
    MotionProfile(
        name="push_up",
        keywords=("push",),
        rate=1.5,
        amplitudes={
            JointName.LEFT_ELBOW: 50.0,
            JointName.RIGHT_ELBOW: 50.0,
            JointName.LEFT_WRIST: 70.0,
            JointName.RIGHT_WRIST: 70.0,
        },
    ),
    MotionProfile(
        name="squat",
        keywords=("squat",),
        rate=1.2,
        amplitudes={
            JointName.LEFT_KNEE: 80.0,
            JointName.RIGHT_KNEE: 80.0,
            JointName.LEFT_ANKLE: 20.0,
            JointName.RIGHT_ANKLE: 20.0,
        },
    ),
    MotionProfile(
        name="lunge",
        keywords=("lunge",),
        rate=1.0,
        amplitudes={
            JointName.LEFT_KNEE: 100.0,
            JointName.RIGHT_KNEE: 60.0,
            JointName.LEFT_ANKLE: 30.0,
            JointName.RIGHT_ANKLE: 20.0,
        },
        phases={
            JointName.RIGHT_KNEE: math.pi,
            JointName.RIGHT_ANKLE: math.pi,
        },
    ),
    MotionProfile(
        name="bicep_curl",
        keywords=("curl", "bicep"),
        rate=2.0,
        amplitudes={
            JointName.LEFT_ELBOW: 80.0,
            JointName.RIGHT_ELBOW: 80.0,
            JointName.LEFT_WRIST: 100.0,
            JointName.RIGHT_WRIST: 100.0,
        },
    ),
    MotionProfile(
        name="plank",
        keywords=("plank",),
        rate=3.0,
        amplitudes={
            JointName.LEFT_ELBOW: 5.0,
            JointName.RIGHT_ELBOW: 5.0,
            JointName.LEFT_WRIST: 5.0,
            JointName.RIGHT_WRIST: 5.0,
        },
    ),
]

IDLE_PROFILE = MotionProfile(
    name="idle",
    keywords=(),
    rate=1.0,
    amplitudes={joint: 15.0 for joint in JOINT_ORDER},
)


def resolve_motion_profile(exercise_type: Optional[str]) -> MotionProfile:
    """Pick the motion profile for an exercise type (case-insensitive)."""
    normalized = (exercise_type or "").strip().lower()
    if not normalized:
        return IDLE_PROFILE

    for profile in MOTION_PROFILES:
        if profile.matches(normalized):
            return profile

    return IDLE_PROFILE


# ═══════════════════════════════════════════════════════════════════════════════
# FRAME GENERATION
# ═══════════════════════════════════════════════════════════════════════════════

def compute_positions(
    exercise_type: Optional[str],
    elapsed_seconds: float,
    width: int = DEFAULT_FRAME_WIDTH,
    height: int = DEFAULT_FRAME_HEIGHT
) -> np.ndarray:
    """
    Joint positions for one frame as a (17, 2) array of pixel coordinates.

    Args:
        exercise_type: Free-form exercise label, e.g. "squat" or "Push-Ups"
        elapsed_seconds: Seconds since the run started (drives the phase)
        width: Frame width in pixels
        height: Frame height in pixels
    """
    t = float(elapsed_seconds)
    profile = resolve_motion_profile(exercise_type)

    positions = _BASE_OFFSETS + np.array([width / 2.0, height / 2.0])

    positions[:, 0] += SWAY_AMPLITUDE * math.sin(SWAY_RATE * t)
    positions[:, 1] += BREATH_AMPLITUDE * math.sin(BREATH_RATE * t)
    positions[:, 1] += profile.amplitude_vector() * np.sin(profile.rate * t + profile.phase_vector())

    return positions


def generate_frame(
    exercise_type: Optional[str],
    elapsed_seconds: float,
    width: int = DEFAULT_FRAME_WIDTH,
    height: int = DEFAULT_FRAME_HEIGHT
) -> List[Keypoint]:
    """Generate the 17 keypoints of a synthetic pose frame."""
    positions = compute_positions(exercise_type, elapsed_seconds, width, height)

    return [
        Keypoint(
            joint=joint,
            x=float(positions[idx, 0]),
            y=float(positions[idx, 1]),
            confidence=float(_CONFIDENCES[idx]),
        )
        for idx, joint in enumerate(JOINT_ORDER)
    ]


def base_position(joint: JointName, width: int = DEFAULT_FRAME_WIDTH, height: int = DEFAULT_FRAME_HEIGHT) -> Tuple[float, float]:
    """Resting position of a joint before any motion is applied."""
    dx, dy, _ = BASE_SKELETON[joint]
    return width / 2.0 + dx, height / 2.0 + dy
