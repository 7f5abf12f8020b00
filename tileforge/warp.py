"""Domain warp: resample the composite through a displacement field."""

import numpy as np

from .layers import WarpType
from .noise import tiled_simplex_raw

# Pixel displacement per unit of warp strength
PIXELS_PER_STRENGTH = 100.0

# Decorrelate the X and Y turbulence samples
TURBULENCE_OFFSET_X = 123.4
TURBULENCE_OFFSET_Y = 567.8


def displacement(ctx, warp_type, width, height, scale, strength, seed=0,
                 offsets=(TURBULENCE_OFFSET_X, TURBULENCE_OFFSET_Y)):
    """Compute the (dy, dx) displacement field in pixels.

    Args:
        ctx: NoiseContext already seeded for the warp layer.
        warp_type: WarpType.
        strength: Displacement magnitude in pixels.
        seed: Phase of the swirl ripples.

    Returns:
        Tuple of two (height, width) arrays, offsets along y and x.
    """
    yy, xx = np.meshgrid(np.arange(height, dtype=np.float64),
                         np.arange(width, dtype=np.float64), indexing='ij')
    warp_type = WarpType(warp_type)

    if warp_type == WarpType.SWIRL:
        dx = xx / width - 0.5
        dy = yy / height - 0.5
        dist = np.sqrt(dx * dx + dy * dy)
        angle = np.arctan2(dy, dx) + np.sin(dist * scale * 10 - seed)
        return (np.sin(angle) * strength * dist,
                np.cos(angle) * strength * dist)

    if warp_type == WarpType.FLOW:
        n = tiled_simplex_raw(ctx, xx, yy, width, height, scale)
        return np.sin(n * np.pi) * strength, np.cos(n * np.pi) * strength

    off_x, off_y = offsets
    n_x = tiled_simplex_raw(ctx, xx + off_x, yy, width, height, scale)
    n_y = tiled_simplex_raw(ctx, xx, yy + off_y, width, height, scale)
    return n_y * strength, n_x * strength


def resample(src, offset_y, offset_x):
    """Nearest-neighbour lookup of ``src`` at displaced, wrapped positions.

    Reads from ``src`` only and writes a new array, so no output pixel
    can observe another one's result.
    """
    h, w = src.shape[:2]
    yy, xx = np.meshgrid(np.arange(h), np.arange(w), indexing='ij')
    sy = np.floor(np.mod(yy + offset_y, h)).astype(np.int64) % h
    sx = np.floor(np.mod(xx + offset_x, w)).astype(np.int64) % w
    return src[sy, sx].copy()


def apply_warp(acc, ctx, warp_type, scale, strength, seed, opacity=1.0,
               offsets=(TURBULENCE_OFFSET_X, TURBULENCE_OFFSET_Y)):
    """Warp the accumulator and blend the result back by ``opacity``.

    Args:
        acc: (h, w, 4) float accumulator (left unmodified).
        strength: Displacement in pixels.

    Returns:
        New (h, w, 4) accumulator.
    """
    h, w = acc.shape[:2]
    if strength == 0 or opacity <= 0:
        return acc.copy()
    offset_y, offset_x = displacement(ctx, warp_type, w, h, scale, strength,
                                      seed=seed, offsets=offsets)
    warped = resample(acc, offset_y, offset_x)
    if opacity >= 1:
        return warped
    return acc * (1.0 - opacity) + warped * opacity
