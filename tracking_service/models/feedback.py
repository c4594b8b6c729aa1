"""
POSETRACK Tracking Service - Feedback Selector

Occasionally picks a coaching phrase, never repeating one already shown
during the current run.
"""

import random
from typing import List, Optional, Sequence


FEEDBACK_PHRASES = (
    "Keep your back straight",
    "Great form!",
    "Slow down the movement",
    "Full range of motion",
)

FEEDBACK_PROBABILITY = 0.1


class FeedbackSelector:
    """Draws feedback phrases from a fixed pool."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        phrases: Sequence[str] = FEEDBACK_PHRASES,
        probability: float = FEEDBACK_PROBABILITY
    ):
        self.rng = rng or random.Random()
        self.phrases = tuple(phrases)
        self.probability = probability

    def select(self, feedback_log: List[str]) -> Optional[str]:
        """
        Maybe draw a new phrase.

        Returns the drawn phrase when it is not yet in `feedback_log`,
        otherwise None. The log itself is left to the caller to update.
        """
        if not self.phrases:
            return None

        if self.rng.random() >= self.probability:
            return None

        phrase = self.rng.choice(self.phrases)
        if phrase in feedback_log:
            return None

        return phrase
