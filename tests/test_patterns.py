"""Tests for the tileable pattern generators."""

import numpy as np
import pytest

W, H = 32, 32


def _grid(w=W, h=H):
    return np.meshgrid(np.arange(h, dtype=np.float64),
                       np.arange(w, dtype=np.float64), indexing='ij')


def _assert_tiles(fn, w=W, h=H, atol=1e-9):
    ys = np.arange(h, dtype=np.float64)
    xs = np.arange(w, dtype=np.float64)
    np.testing.assert_allclose(fn(np.zeros_like(ys), ys),
                               fn(np.full_like(ys, w), ys), atol=atol)
    np.testing.assert_allclose(fn(xs, np.zeros_like(xs)),
                               fn(xs, np.full_like(xs, h)), atol=atol)


# --- cellular ---------------------------------------------------------------

@pytest.mark.parametrize("scale", [1.0, 3.0, 4.5, 10.0])
def test_cellular_tiles(scale):
    from tileforge.patterns import cellular
    _assert_tiles(lambda x, y: cellular(x, y, W, H, scale, jitter=1.0, seed=7))


def test_cellular_range_and_determinism():
    from tileforge.patterns import cellular
    yy, xx = _grid()
    a = cellular(xx, yy, W, H, 5.0, jitter=1.0, seed=12345)
    b = cellular(xx, yy, W, H, 5.0, jitter=1.0, seed=12345)
    np.testing.assert_array_equal(a, b)
    assert a.shape == (H, W)
    assert a.min() >= 0.0 and a.max() <= 1.0
    assert not np.array_equal(a, cellular(xx, yy, W, H, 5.0, 1.0, seed=1))


def test_cellular_without_jitter_is_regular():
    from tileforge.patterns import cellular
    # Zero jitter puts every point at its cell centre
    d = cellular(np.array([4.0, 0.0]), np.array([4.0, 0.0]), 8, 8, 1.0,
                 jitter=0.0, seed=3)
    assert d[0] == pytest.approx(0.0)
    assert d[1] == pytest.approx(np.sqrt(0.5))


def test_cellular_subset_matches_full_grid():
    from tileforge.patterns import cellular
    yy, xx = _grid()
    full = cellular(xx, yy, W, H, 6.0, jitter=0.8, seed=11)
    part = cellular(xx[5:9, 20:30], yy[5:9, 20:30], W, H, 6.0, 0.8, seed=11)
    np.testing.assert_array_equal(full[5:9, 20:30], part)


# --- dots -------------------------------------------------------------------

@pytest.mark.parametrize("scale", [2.0, 7.3, 10.0])
def test_dots_tile(scale):
    from tileforge.patterns import dots
    _assert_tiles(lambda x, y: dots(x, y, W, H, scale, base_size=0.9,
                                    size_variation=0.5, seed=99))


def test_dots_range():
    from tileforge.patterns import dots
    yy, xx = _grid()
    v = dots(xx, yy, W, H, 4.0, base_size=0.6, size_variation=0.3, seed=5)
    assert v.min() >= 0.0 and v.max() <= 1.0
    assert v.max() == 1.0  # disc interiors are fully on
    assert v.min() == 0.0


def test_dots_full_mask_threshold_is_empty():
    from tileforge.patterns import dots
    yy, xx = _grid()
    v = dots(xx, yy, W, H, 10.0, base_size=1.5, mask_threshold=1.0, seed=12345)
    np.testing.assert_array_equal(v, np.zeros((H, W)))


def test_dots_mask_threshold_thins_points():
    from tileforge.patterns import dots
    yy, xx = _grid(64, 64)
    dense = dots(xx, yy, 64, 64, 8.0, base_size=0.8, mask_threshold=0.0, seed=2)
    sparse = dots(xx, yy, 64, 64, 8.0, base_size=0.8, mask_threshold=0.7, seed=2)
    assert sparse.sum() < dense.sum()
    # Surviving dots are unchanged, only some are removed
    assert np.all(sparse <= dense)


def test_dots_zero_size_is_empty():
    from tileforge.patterns import dots
    yy, xx = _grid()
    v = dots(xx, yy, W, H, 4.0, base_size=0.0, seed=5)
    assert v.max() == 0.0


# --- stripes ----------------------------------------------------------------

@pytest.mark.parametrize("scale", [1, 3, 5])
def test_stripes(scale):
    from tileforge.patterns import stripes
    yy, xx = _grid()
    v = stripes(xx, yy, W, H, scale)
    assert set(np.unique(v)) <= {0.0, 1.0}
    assert v.mean() == pytest.approx(0.5, abs=1.0 / W + 1e-9)
    # Columns only
    assert np.all(v == v[0])
    _assert_tiles(lambda x, y: stripes(x, y, W, H, scale))


# --- radial mask ------------------------------------------------------------

@pytest.mark.parametrize("shape", ["GLOW_CIRCLE", "GLOW_SQUARE", "STAR_4",
                                   "STAR_5", "RINGS"])
@pytest.mark.parametrize("scale", [1.0, 2.0])
def test_mask_range_and_tiling(shape, scale):
    from tileforge.patterns import radial_mask
    yy, xx = _grid()
    v = radial_mask(xx, yy, W, H, scale, shape=shape, hardness=0.5,
                    ring_count=5)
    assert v.min() >= 0.0 and v.max() <= 1.0
    _assert_tiles(lambda x, y: radial_mask(x, y, W, H, scale, shape=shape,
                                           hardness=0.5, ring_count=5))


def test_mask_circle_centre_and_corner():
    from tileforge.patterns import radial_mask
    v = radial_mask(np.array([16.0, 0.0]), np.array([16.0, 0.0]), 32, 32, 1.0,
                    shape="GLOW_CIRCLE", hardness=0.5)
    assert v[0] == 1.0
    assert v[1] == 0.0


def test_mask_hardness_sharpens_edge():
    from tileforge.patterns import radial_mask
    yy, xx = _grid(64, 64)
    soft = radial_mask(xx, yy, 64, 64, 1.0, hardness=0.0)
    hard = radial_mask(xx, yy, 64, 64, 1.0, hardness=1.0)
    partial_soft = np.count_nonzero((soft > 0) & (soft < 1))
    partial_hard = np.count_nonzero((hard > 0) & (hard < 1))
    assert partial_hard < partial_soft


# --- grain ------------------------------------------------------------------

def test_grain():
    from tileforge.patterns import grain
    v = grain((8, 16))
    assert v.shape == (8, 16)
    assert v.min() >= 0.0 and v.max() < 1.0
    a = grain((4, 4), rng=np.random.RandomState(1))
    b = grain((4, 4), rng=np.random.RandomState(1))
    np.testing.assert_array_equal(a, b)
