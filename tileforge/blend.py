"""Separable blend modes and opacity-weighted merging.

All functions work on float arrays in [0, 1]: ``b`` is the backdrop
(current accumulator colour) and ``s`` the source (layer colour).
"""

import numpy as np

from .layers import BlendMode


def _screen(b, s):
    return b + s - b * s


def _hard_light(b, s):
    return np.where(s <= 0.5, b * 2 * s, _screen(b, 2 * s - 1))


def _color_dodge(b, s):
    with np.errstate(divide='ignore', invalid='ignore'):
        out = np.minimum(1.0, b / (1.0 - s))
    out = np.where(s >= 1.0, 1.0, out)
    return np.where(b <= 0.0, 0.0, out)


def _color_burn(b, s):
    with np.errstate(divide='ignore', invalid='ignore'):
        out = 1.0 - np.minimum(1.0, (1.0 - b) / s)
    out = np.where(s <= 0.0, 0.0, out)
    return np.where(b >= 1.0, 1.0, out)


def _soft_light(b, s):
    d = np.where(b <= 0.25, ((16 * b - 12) * b + 4) * b, np.sqrt(b))
    return np.where(s <= 0.5,
                    b - (1 - 2 * s) * b * (1 - b),
                    b + (2 * s - 1) * (d - b))


BLEND_FUNCS = {
    BlendMode.NORMAL: lambda b, s: s,
    BlendMode.MULTIPLY: lambda b, s: b * s,
    BlendMode.SCREEN: _screen,
    BlendMode.OVERLAY: lambda b, s: _hard_light(s, b),
    BlendMode.DARKEN: np.minimum,
    BlendMode.LIGHTEN: np.maximum,
    BlendMode.COLOR_DODGE: _color_dodge,
    BlendMode.COLOR_BURN: _color_burn,
    BlendMode.HARD_LIGHT: _hard_light,
    BlendMode.SOFT_LIGHT: _soft_light,
    BlendMode.DIFFERENCE: lambda b, s: np.abs(b - s),
    BlendMode.EXCLUSION: lambda b, s: b + s - 2 * b * s,
}


def blend(backdrop, source, mode):
    """Apply blend ``mode`` channel-wise; returns a new array."""
    b = np.asarray(backdrop, dtype=np.float64)
    s = np.asarray(source, dtype=np.float64)
    return np.clip(BLEND_FUNCS[BlendMode(mode)](b, s), 0.0, 1.0)


def merge(acc, rgb, alpha, mode):
    """Blend a layer into an RGBA accumulator.

    Args:
        acc: (h, w, 4) float accumulator, modified in place and returned.
        rgb: (h, w, 3) layer colour in [0, 1].
        alpha: Scalar or (h, w) coverage, opacity times layer alpha.
        mode: BlendMode.

    The blended colour replaces the backdrop in proportion to ``alpha``,
    so ``alpha == 0`` leaves the accumulator untouched.
    """
    a = np.broadcast_to(np.asarray(alpha, dtype=np.float64), acc.shape[:2])
    a3 = a[:, :, np.newaxis]
    backdrop = acc[:, :, :3]
    mixed = blend(backdrop, rgb, mode)
    acc[:, :, :3] = backdrop * (1.0 - a3) + mixed * a3
    acc[:, :, 3] = acc[:, :, 3] + a * (1.0 - acc[:, :, 3])
    return acc
