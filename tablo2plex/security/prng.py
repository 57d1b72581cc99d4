"""
MT19937 Mersenne Twister.

Bit-exact with the reference generator so envelopes written by earlier
releases can still be read: the cipher derives its IV from this stream.
"""

import time
from typing import Union

N = 624
M = 397
MATRIX_A = 0x9908B0DF
UPPER_MASK = 0x80000000
LOWER_MASK = 0x7FFFFFFF
MASK_32 = 0xFFFFFFFF

DEFAULT_SEED = 5489

Seed = Union[int, bytes, bytearray, memoryview, None]


class MersenneTwister:
    """
    Deterministic 32-bit generator.

    ``seed`` may be an ``int`` (truncated to 32 bits), a bytes-like block
    whose first 4 bytes are used one key element per byte, or ``None`` to
    seed from the current time in milliseconds.
    """

    def __init__(self, seed: Seed = None):
        self._mt = [0] * N
        self._mti = N + 1  # N + 1 means the state is not initialized

        if isinstance(seed, (bytes, bytearray, memoryview)):
            block = bytes(seed)
            if len(block) < 4:
                raise ValueError(f"Seed block must be at least 4 bytes, got {len(block)}")
            self._init_by_array(list(block[:4]))
        elif isinstance(seed, int):
            self._init_genrand(seed)
        elif seed is None:
            self._init_genrand(int(time.time() * 1000))
        else:
            raise TypeError(f"Unsupported seed type: {type(seed).__name__}")

    def _init_genrand(self, s: int) -> None:
        mt = self._mt
        mt[0] = s & MASK_32
        for i in range(1, N):
            prev = mt[i - 1]
            mt[i] = (1812433253 * (prev ^ (prev >> 30)) + i) & MASK_32
        self._mti = N

    def _init_by_array(self, key: list[int]) -> None:
        self._init_genrand(19650218)
        mt = self._mt
        key_length = len(key)
        i, j = 1, 0

        for _ in range(max(N, key_length)):
            prev = mt[i - 1]
            mt[i] = ((mt[i] ^ ((prev ^ (prev >> 30)) * 1664525)) + key[j] + j) & MASK_32
            i += 1
            j += 1
            if i >= N:
                mt[0] = mt[N - 1]
                i = 1
            if j >= key_length:
                j = 0

        for _ in range(N - 1):
            prev = mt[i - 1]
            mt[i] = ((mt[i] ^ ((prev ^ (prev >> 30)) * 1566083941)) - i) & MASK_32
            i += 1
            if i >= N:
                mt[0] = mt[N - 1]
                i = 1

        # MSB is 1, assuring a non-zero initial array
        mt[0] = 0x80000000

    def _twist(self) -> None:
        mt = self._mt
        for kk in range(N):
            y = (mt[kk] & UPPER_MASK) | (mt[(kk + 1) % N] & LOWER_MASK)
            value = mt[(kk + M) % N] ^ (y >> 1)
            if y & 1:
                value ^= MATRIX_A
            mt[kk] = value
        self._mti = 0

    def next_word(self) -> int:
        """Next 32-bit unsigned value."""
        if self._mti >= N:
            if self._mti == N + 1:
                self._init_genrand(DEFAULT_SEED)
            self._twist()

        y = self._mt[self._mti]
        self._mti += 1

        y ^= y >> 11
        y ^= (y << 7) & 0x9D2C5680
        y ^= (y << 15) & 0xEFC60000
        y ^= y >> 18
        return y & MASK_32

    def next_int31(self) -> int:
        return self.next_word() >> 1

    def next_float(self) -> float:
        """Float in [0, 1)."""
        return self.next_word() * (1.0 / 4294967296.0)

    def next_float_inclusive(self) -> float:
        """Float in [0, 1]."""
        return self.next_word() * (1.0 / 4294967295.0)

    def next_float_exclusive(self) -> float:
        """Float in (0, 1)."""
        return (self.next_word() + 0.5) * (1.0 / 4294967296.0)

    def next_float53(self) -> float:
        """Float in [0, 1) with 53-bit resolution."""
        a = self.next_word() >> 5
        b = self.next_word() >> 6
        return (a * 67108864.0 + b) * (1.0 / 9007199254740992.0)

    def random_bytes(self, count: int) -> bytes:
        return bytes(self.next_word() & 0xFF for _ in range(count))
