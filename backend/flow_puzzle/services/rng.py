"""
Flow Puzzle - Random Sources

Seeded levels (daily challenge, debugging) use mulberry32 so that the same
seed produces the same level everywhere. Unseeded modes use the platform
generator behind the same interface.
"""

import random
from typing import Optional


UINT32_MASK = 0xFFFFFFFF


class SeededRandom:
    """Deterministic PRNG (mulberry32) over a 32-bit state."""

    def __init__(self, seed: int):
        self.seed = seed & UINT32_MASK
        self._state = self.seed

    def next(self) -> float:
        """Returns a float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & UINT32_MASK
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & UINT32_MASK
        t = ((t + (((t ^ (t >> 7)) * (t | 61)) & UINT32_MASK)) & UINT32_MASK) ^ t
        return ((t ^ (t >> 14)) & UINT32_MASK) / 4294967296

    def next_int(self, min_val: int, max_val: int) -> int:
        """Integer in [min_val, max_val], both ends inclusive."""
        if min_val > max_val:
            return min_val
        return min_val + int(self.next() * (max_val - min_val + 1))

    def shuffle(self, arr: list) -> list:
        """Fisher-Yates shuffle into a new list."""
        result = arr.copy()
        for i in range(len(result) - 1, 0, -1):
            j = self.next_int(0, i)
            result[i], result[j] = result[j], result[i]
        return result

    def choice(self, arr: list):
        """Random element, or None for an empty list."""
        if not arr:
            return None
        return arr[self.next_int(0, len(arr) - 1)]


class PlatformRandom(SeededRandom):
    """Same interface, backed by the platform generator (non-deterministic modes)."""

    def __init__(self, source: Optional[random.Random] = None):
        self.seed = None
        self._source = source or random.Random()

    def next(self) -> float:
        return self._source.random()


def make_rng(seed: Optional[int] = None) -> SeededRandom:
    """Seeded mulberry32 source, or the platform source when seed is None."""
    if seed is None:
        return PlatformRandom()
    return SeededRandom(seed)
