from __future__ import annotations

from typing import List, Sequence, TypeVar

T = TypeVar("T")

LCG_MODULUS = 2**31 - 1
LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(seed: str) -> int:
    """Polynomial rolling hash (``h * 31 + ord(ch)``) wrapped to signed 32-bit."""

    value = 0
    for char in seed:
        value = _to_int32(value * 31 + ord(char))
    return value


class SeededRng:
    """Linear congruential generator keyed by a string seed."""

    def __init__(self, seed: str) -> None:
        self.seed = seed
        self._state = string_hash(seed)

    def next(self) -> float:
        self._state = (LCG_MULTIPLIER * self._state + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS


def seeded_shuffle(sequence: Sequence[T], seed: str) -> List[T]:
    """Return a Fisher-Yates shuffled copy of *sequence* driven by ``SeededRng(seed)``."""

    rng = SeededRng(seed)
    result = list(sequence)
    for index in range(len(result) - 1, 0, -1):
        swap = int(rng.next() * (index + 1))
        result[index], result[swap] = result[swap], result[index]
    return result


__all__ = ["SeededRng", "seeded_shuffle", "string_hash"]
