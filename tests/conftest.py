"""Shared test fixtures."""

import random

import pytest


class ScriptedRandom(random.Random):
    """A Random whose randint()/random() return scripted values first.

    Once a script runs out the seeded generator takes over, so tests only
    need to script the rolls they care about.
    """

    def __init__(self, rolls=(), floats=(), seed=0):
        super().__init__(seed)
        self.rolls = list(rolls)
        self.floats = list(floats)

    def randint(self, a, b):
        if self.rolls:
            value = self.rolls.pop(0)
            assert a <= value <= b, f"scripted roll {value} outside [{a}, {b}]"
            return value
        return super().randint(a, b)

    def random(self):
        if self.floats:
            return self.floats.pop(0)
        return super().random()

    # Keeps choice() and fallback randint() on getrandbits so they never
    # consume scripted floats.
    def getrandbits(self, k):
        return super().getrandbits(k)


@pytest.fixture
def scripted():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom
