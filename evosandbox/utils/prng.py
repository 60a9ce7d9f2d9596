"""Seeded Mulberry32 generator shared by every stochastic operator of a run.

A run owns exactly one instance; two runs built from the same seed that issue
the same sequence of calls observe bit-identical streams.
"""

from __future__ import annotations

import math
from typing import MutableSequence, TypeVar

__all__ = ["Mulberry32", "MASK_32"]

T = TypeVar("T")

MASK_32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK_32


class Mulberry32:
    """Small add-rotate-xor generator with a full 32-bit period."""

    def __init__(self, seed: int):
        self.seed = int(seed) & MASK_32
        self._state = self.seed
        # Second Box-Muller deviate, served by the next next_gaussian() call.
        self._spare: float | None = None

    def next(self) -> float:
        """Uniform float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & MASK_32
        s = self._state
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & MASK_32) ^ t
        return ((t ^ (t >> 14)) & MASK_32) / _TWO_POW_32

    def next_in_range(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.next()

    def next_int(self, upper: int) -> int:
        """Integer in [0, upper)."""
        return math.floor(self.next() * upper)

    def next_gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        """Normal deviate via Box-Muller.

        Every other call returns the cached spare without advancing the
        underlying stream, so consecutive deviates share their uniform draws.
        """
        if self._spare is not None:
            value, self._spare = self._spare, None
            return mean + value * std

        u = 0.0
        v = 0.0
        while u == 0.0:
            u = self.next()
        while v == 0.0:
            v = self.next()
        mag = math.sqrt(-2.0 * math.log(u))
        z0 = mag * math.cos(2.0 * math.pi * v)
        self._spare = mag * math.sin(2.0 * math.pi * v)
        return mean + z0 * std

    def shuffle(self, items: MutableSequence[T]) -> None:
        """Fisher-Yates shuffle in place."""
        for i in range(len(items) - 1, 0, -1):
            j = math.floor(self.next() * (i + 1))
            items[i], items[j] = items[j], items[i]

    @property
    def has_spare(self) -> bool:
        return self._spare is not None

    def __repr__(self) -> str:
        return f"Mulberry32(seed={self.seed})"
