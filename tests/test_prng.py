"""Tests for the seeded PRNG."""

import numpy as np


def test_reference_stream():
    from tileforge.prng import Mulberry32
    rng = Mulberry32(12345)
    assert rng.next() == 0.9797282677609473
    assert rng.next() == 0.3067522644996643
    assert rng.next() == 0.484205421525985


def test_same_seed_same_stream():
    from tileforge.prng import Mulberry32
    a = Mulberry32(7)
    b = Mulberry32(7)
    assert [a.next() for _ in range(20)] == [b.next() for _ in range(20)]


def test_seed_reduced_mod_2_32():
    from tileforge.prng import Mulberry32
    assert Mulberry32(12345 + 2**32).next() == Mulberry32(12345).next()
    assert Mulberry32(-1).next() == Mulberry32(2**32 - 1).next()


def test_range():
    from tileforge.prng import Mulberry32
    rng = Mulberry32(np.arange(1000))
    for _ in range(5):
        values = rng.next()
        assert values.shape == (1000,)
        assert values.min() >= 0.0
        assert values.max() < 1.0


def test_vector_streams_match_scalar_streams():
    from tileforge.prng import Mulberry32
    seeds = np.array([[0, 1], [99, 4000000000]])
    vec = Mulberry32(seeds)
    draws = [vec.next() for _ in range(3)]
    for (r, c), seed in np.ndenumerate(seeds):
        scalar = Mulberry32(int(seed))
        for d in draws:
            assert d[r, c] == scalar.next()


def test_cell_seed_is_pure_function_of_coordinates():
    from tileforge.prng import cell_seed
    cx = np.array([3, 0, 7, 3])
    cy = np.array([1, 5, 2, 1])
    batch = cell_seed(42, cx, cy)
    for i in range(len(cx)):
        assert batch[i] == cell_seed(42, int(cx[i]), int(cy[i]))
    assert batch[0] == batch[3]
    assert 0 <= batch.min() and batch.max() <= 0xFFFFFFFF


def test_cell_seed_differs_per_cell():
    from tileforge.prng import cell_seed
    cy, cx = np.meshgrid(np.arange(16), np.arange(16), indexing='ij')
    seeds = cell_seed(12345, cx, cy)
    assert len(np.unique(seeds)) == 256
