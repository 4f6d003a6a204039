"""Shared fixtures: deterministic stand-ins for numpy Generators.

The engine only ever calls rng.random(), so a stub returning fixed values
pins every random choice.
"""

from typing import Iterable

import pytest


class FixedRandom:
    """Returns the same value from every random() call."""

    def __init__(self, value: float = 0.0):
        self.value = value

    def random(self) -> float:
        return self.value


class SequenceRandom:
    """Returns the given values in turn, then repeats the last one."""

    def __init__(self, values: Iterable[float]):
        self.values = list(values)

    def random(self) -> float:
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


@pytest.fixture
def always_first():
    """Always takes the favored direction and the first eligible rank."""
    return FixedRandom(0.0)


@pytest.fixture
def never_stop():
    """Never stops while scanning, and always draws the unfavored direction."""
    return FixedRandom(0.999)


@pytest.fixture
def sequence_random():
    """Factory for a stub that plays back a list of draws."""
    return SequenceRandom
