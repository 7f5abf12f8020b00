"""Tests for blend modes and accumulator merging."""

import numpy as np
import pytest

from tileforge.layers import BlendMode

ALL_MODES = list(BlendMode)


def _acc(seed=0, size=6):
    rng = np.random.RandomState(seed)
    acc = np.ones((size, size, 4))
    acc[:, :, :3] = rng.random_sample((size, size, 3))
    return acc


def test_normal_opaque_white_replaces():
    from tileforge.blend import merge
    acc = _acc()
    merge(acc, np.ones((6, 6, 3)), 1.0, BlendMode.NORMAL)
    np.testing.assert_array_equal(acc[:, :, :3], np.ones((6, 6, 3)))


def test_multiply_white_is_noop():
    from tileforge.blend import merge
    acc = _acc(1)
    before = acc.copy()
    merge(acc, np.ones((6, 6, 3)), 1.0, BlendMode.MULTIPLY)
    np.testing.assert_array_equal(acc, before)


@pytest.mark.parametrize("mode", ALL_MODES)
def test_zero_opacity_is_noop(mode):
    from tileforge.blend import merge
    acc = _acc(2)
    before = acc.copy()
    src = np.random.RandomState(3).random_sample((6, 6, 3))
    merge(acc, src, 0.0, mode)
    np.testing.assert_array_equal(acc, before)


@pytest.mark.parametrize("mode", ALL_MODES)
def test_result_in_range_at_extremes(mode):
    from tileforge.blend import blend
    values = np.array([0.0, 0.25, 0.5, 0.75, 1.0])
    b, s = np.meshgrid(values, values)
    out = blend(b, s, mode)
    assert np.all(np.isfinite(out))
    assert out.min() >= 0.0 and out.max() <= 1.0


@pytest.mark.parametrize("mode, b, s, expected", [
    (BlendMode.NORMAL, 0.2, 0.7, 0.7),
    (BlendMode.MULTIPLY, 0.5, 0.5, 0.25),
    (BlendMode.SCREEN, 0.5, 0.5, 0.75),
    (BlendMode.OVERLAY, 0.25, 0.5, 0.25),
    (BlendMode.OVERLAY, 0.75, 0.5, 0.75),
    (BlendMode.DARKEN, 0.3, 0.6, 0.3),
    (BlendMode.LIGHTEN, 0.3, 0.6, 0.6),
    (BlendMode.COLOR_DODGE, 0.25, 0.5, 0.5),
    (BlendMode.COLOR_DODGE, 0.0, 1.0, 0.0),
    (BlendMode.COLOR_DODGE, 0.5, 1.0, 1.0),
    (BlendMode.COLOR_BURN, 0.75, 0.5, 0.5),
    (BlendMode.COLOR_BURN, 1.0, 0.0, 1.0),
    (BlendMode.COLOR_BURN, 0.5, 0.0, 0.0),
    (BlendMode.HARD_LIGHT, 0.5, 0.25, 0.25),
    (BlendMode.HARD_LIGHT, 0.5, 0.75, 0.75),
    (BlendMode.SOFT_LIGHT, 0.5, 0.5, 0.5),
    (BlendMode.SOFT_LIGHT, 0.25, 0.0, 0.0625),
    (BlendMode.SOFT_LIGHT, 0.25, 1.0, 0.5),
    (BlendMode.DIFFERENCE, 0.2, 0.7, 0.5),
    (BlendMode.EXCLUSION, 0.5, 0.5, 0.5),
])
def test_formulas(mode, b, s, expected):
    from tileforge.blend import blend
    assert float(blend(np.array(b), np.array(s), mode)) == pytest.approx(expected)


def test_half_opacity_interpolates():
    from tileforge.blend import merge
    acc = np.ones((2, 2, 4))
    merge(acc, np.zeros((2, 2, 3)), 0.5, BlendMode.NORMAL)
    np.testing.assert_array_equal(acc[:, :, :3], np.full((2, 2, 3), 0.5))
    np.testing.assert_array_equal(acc[:, :, 3], np.ones((2, 2)))


def test_per_pixel_alpha():
    from tileforge.blend import merge
    acc = np.zeros((1, 2, 4))
    acc[:, :, 3] = 1.0
    alpha = np.array([[0.0, 1.0]])
    merge(acc, np.ones((1, 2, 3)), alpha, BlendMode.SCREEN)
    np.testing.assert_array_equal(acc[0, :, 0], [0.0, 1.0])


def test_order_matters():
    from tileforge.blend import merge
    base = _acc(4)
    top = np.random.RandomState(5).random_sample((6, 6, 3))
    a = merge(merge(base.copy(), top, 1.0, BlendMode.MULTIPLY),
              1 - top, 1.0, BlendMode.SCREEN)
    b = merge(merge(base.copy(), 1 - top, 1.0, BlendMode.SCREEN),
              top, 1.0, BlendMode.MULTIPLY)
    assert not np.allclose(a, b)
