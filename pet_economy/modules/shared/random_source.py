"""
Injectable randomness for gacha draws and fusion rolls.

Purpose
-------
Every probabilistic decision goes through a `RandomSource`, so tests can
seed or script outcomes while production uses `secrets.SystemRandom`.

Design Notes
------------
- `SystemRandomSource` is the production source (non-reproducible).
- `SeededRandomSource` wraps `random.Random(seed)` for reproducible runs.
- `weighted_choice` implements the cumulative-weight walk used by both the
  gacha and weighted fusion output selection.
"""

from __future__ import annotations

import random
import secrets
from typing import Callable, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def randrange(self, stop: int) -> int:
        """Uniform integer in [0, stop)."""
        ...


class SystemRandomSource:
    """Cryptographically secure source used outside tests."""

    def __init__(self) -> None:
        self._rng = secrets.SystemRandom()

    def random(self) -> float:
        return self._rng.random()

    def randrange(self, stop: int) -> int:
        return self._rng.randrange(stop)


class SeededRandomSource:
    """Reproducible source for simulations and statistical tests."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def random(self) -> float:
        return self._rng.random()

    def randrange(self, stop: int) -> int:
        return self._rng.randrange(stop)


def weighted_choice(
    rng: RandomSource,
    items: Sequence[T],
    weight: Callable[[T], float],
) -> T:
    """
    Pick one item with probability proportional to `weight(item)`.

    Raises:
        ValueError: If `items` is empty or the total weight is not positive
    """
    if not items:
        raise ValueError("Cannot choose from an empty sequence")

    total = sum(weight(item) for item in items)
    if total <= 0:
        raise ValueError("Total weight must be positive")

    target = rng.random() * total
    cumulative = 0.0
    for item in items:
        cumulative += weight(item)
        if target < cumulative:
            return item
    # Float rounding can leave target == total
    return items[-1]


def uniform_choice(rng: RandomSource, items: Sequence[T]) -> T:
    if not items:
        raise ValueError("Cannot choose from an empty sequence")
    return items[rng.randrange(len(items))]
