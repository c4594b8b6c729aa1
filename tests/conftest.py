"""
Shared fixtures for the tracking service tests.
"""

import random
from typing import Iterable, Optional

import pytest


class ScriptedRandom(random.Random):
    """Random source replaying fixed draws; falls back to "no event"."""

    def __init__(self, values: Iterable[float] = (), choices: Optional[Iterable[str]] = None):
        super().__init__(0)
        self._values = list(values)
        self._choices = list(choices or [])

    def random(self):
        if self._values:
            return self._values.pop(0)
        return 0.99

    def choice(self, seq):
        if self._choices:
            return self._choices.pop(0)
        return seq[0]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int):
        self.now += millis


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom
