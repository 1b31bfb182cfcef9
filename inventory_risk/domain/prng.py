"""
Deterministic pseudo-random numbers for synthetic data.

Mulberry32: 32-bit state advanced by a fixed odd increment, output scrambled
with xor/shift/multiply rounds and normalized to [0, 1). All arithmetic is
masked to 32 bits so a given seed yields bit-identical floats on every
platform (each output is k / 2**32, exactly representable).

Not for cryptographic use.

Usage:
    rng = Mulberry32(12345)
    x = rng()                       # float in [0, 1)
    status = weighted_choice(rng, STATUS_BANDS)
"""
from typing import Callable, Sequence, Tuple, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """Low 32 bits of a * b."""
    return (a * b) & _MASK32


class Mulberry32:
    """
    Seeded generator producing an endless reproducible stream of floats in [0, 1).

    Each instance owns its state; create a fresh one per independent sequence.
    """

    __slots__ = ("_state",)

    def __init__(self, seed: int):
        self._state = seed & _MASK32

    def __call__(self) -> float:
        return self.next_float()

    def next_float(self) -> float:
        self._state = (self._state + _INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def __iter__(self):
        while True:
            yield self.next_float()


def seed_from_string(value: str) -> int:
    """
    Stable non-negative seed from a string.

    31-multiplier rolling hash over UTF-16 code units, folded to a signed
    32-bit integer after each step, absolute value at the end.
    """
    h = 0
    for unit in _utf16_units(value):
        h = (h * 31 + unit) & _MASK32
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def _utf16_units(value: str):
    for ch in value:
        code = ord(ch)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 + (code >> 10)
            yield 0xDC00 + (code & 0x3FF)
        else:
            yield code


def pick(rng: Callable[[], float], items: Sequence[T]) -> T:
    """Uniformly pick one element (consumes one draw)."""
    return items[int(rng() * len(items))]


def weighted_choice(rng: Callable[[], float], bands: Sequence[Tuple[float, T]]) -> T:
    """
    Weighted discrete sampling over cumulative bands (consumes one draw).

    Args:
        rng: Draw source
        bands: (upper_bound, value) pairs with increasing upper bounds; the
               last value is returned for draws beyond every bound

    Returns:
        Value of the first band whose upper bound exceeds the draw
    """
    x = rng()
    for upper, value in bands[:-1]:
        if x < upper:
            return value
    return bands[-1][1]

