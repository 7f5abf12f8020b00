"""Seeded 32-bit pseudo-random streams.

The generator is mulberry32 (additive Weyl step followed by two
xorshift/multiply rounds). It is vectorised: seeding with an array of
seeds yields one independent stream per element, which is how the
pattern generators draw per-cell randomness for a whole image at once.
"""

import numpy as np

MASK32 = 0xFFFFFFFF

_WEYL = np.uint64(0x6D2B79F5)
_MASK = np.uint64(MASK32)
_ONE = np.uint64(1)
_SIXTY_ONE = np.uint64(61)
_TWO_32 = 4294967296.0

# Large primes used to hash lattice cell coordinates
_CELL_PRIME_X = 15485863
_CELL_PRIME_Y = 2038074743


def _imul(a, b):
    """32-bit wrapping multiply of uint64 arrays holding 32-bit values."""
    return (a * b) & _MASK


def _shr(a, n):
    return a >> np.uint64(n)


class Mulberry32:
    """Deterministic stream of floats in [0, 1).

    Args:
        seed: Integer seed or integer array of seeds. Values are reduced
            modulo 2**32.

    ``next()`` returns a float for a scalar seed, otherwise an array of
    the seed's shape.
    """

    def __init__(self, seed):
        self._scalar = np.ndim(seed) == 0
        if self._scalar:
            state = np.array([int(seed) & MASK32], dtype=np.uint64)
        else:
            state = (np.asarray(seed, dtype=np.int64) & MASK32).astype(np.uint64)
        self._state = state

    def next(self):
        self._state = (self._state + _WEYL) & _MASK
        t = self._state
        t = _imul(t ^ _shr(t, 15), t | _ONE)
        t = t ^ ((t + _imul(t ^ _shr(t, 7), t | _SIXTY_ONE)) & _MASK)
        out = ((t ^ _shr(t, 14)) & _MASK) / _TWO_32
        if self._scalar:
            return float(out[0])
        return out

    __next__ = next

    def __iter__(self):
        return self


def cell_seed(seed, cx, cy):
    """Hash a layer seed with lattice cell coordinates.

    The result depends only on ``(seed, cx, cy)``, never on the order in
    which cells are visited. ``cx``/``cy`` may be arrays.
    """
    cx = np.asarray(cx, dtype=np.int64)
    cy = np.asarray(cy, dtype=np.int64)
    h = ((cx * _CELL_PRIME_X) & MASK32) ^ ((cy * _CELL_PRIME_Y) & MASK32)
    return (int(seed) & MASK32) ^ h
