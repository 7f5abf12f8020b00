"""Tileable pattern fields: cellular, dots, stripes, radial masks, grain.

Every generator takes pixel coordinate arrays ``x``/``y`` plus the tile
size and returns values in [0, 1] with the same shape. Lattice-based
generators wrap their cell coordinates modulo the lattice size, so
sampling at ``x`` and ``x + width`` gives the same value.
"""

import numpy as np

from .prng import Mulberry32, cell_seed

# Soft edge of a dot, in cell units
DOT_EDGE = 0.05

# Radius of the mask shapes within their tile
MASK_SIZE = 0.4
MASK_SMOOTHING = 0.4
MASK_EPSILON = 0.001

MASK_SHAPES = ("GLOW_CIRCLE", "GLOW_SQUARE", "STAR_4", "STAR_5", "RINGS")


def lattice_size(scale):
    """Number of lattice cells across one tile (at least 1)."""
    return int(np.ceil(max(1.0, float(scale))))


def _cell_draws(seed, grid, count):
    """Draw ``count`` values for every cell of a ``grid`` x ``grid`` lattice.

    Returns an array of shape (count, grid, grid) indexed [n, cy, cx].
    Each cell's stream depends only on the seed and its coordinates.
    """
    cy, cx = np.meshgrid(np.arange(grid), np.arange(grid), indexing='ij')
    rng = Mulberry32(cell_seed(seed, cx, cy))
    return np.stack([rng.next() for _ in range(count)])


def _neighbourhood(x, y, width, height, grid):
    """Yield (px, py, nx, ny, wx, wy) for the 3x3 cells around each pixel."""
    px = np.asarray(x, dtype=np.float64) / width * grid
    py = np.asarray(y, dtype=np.float64) / height * grid
    px, py = np.broadcast_arrays(px, py)
    ix = np.floor(px).astype(np.int64)
    iy = np.floor(py).astype(np.int64)
    for yoff in (-1, 0, 1):
        for xoff in (-1, 0, 1):
            nx = ix + xoff
            ny = iy + yoff
            yield px, py, nx, ny, np.mod(nx, grid), np.mod(ny, grid)


def cellular(x, y, width, height, scale, jitter=1.0, seed=0):
    """Worley (F1) distance field.

    Feature points sit at each lattice cell centre plus a seeded offset
    of up to ``jitter / 2`` cell units per axis.

    Returns:
        Distance to the nearest feature point, capped at 1.
    """
    grid = lattice_size(scale)
    draws = _cell_draws(seed, grid, 2)

    min_dist = None
    for px, py, nx, ny, wx, wy in _neighbourhood(x, y, width, height, grid):
        point_x = nx + 0.5 + (draws[0, wy, wx] - 0.5) * jitter
        point_y = ny + 0.5 + (draws[1, wy, wx] - 0.5) * jitter
        dist = np.sqrt((px - point_x) ** 2 + (py - point_y) ** 2)
        min_dist = dist if min_dist is None else np.minimum(min_dist, dist)

    return np.minimum(1.0, min_dist)


def dots(x, y, width, height, scale, base_size=0.8, size_variation=0.0,
         mask_threshold=0.0, seed=0, jitter=1.0, edge=DOT_EDGE):
    """Irregular dot field (star field / polka dots).

    Each lattice cell may emit one disc. A cell is suppressed when its
    first draw falls below ``mask_threshold``; the next two draws jitter
    the centre and the last shrinks the radius by up to
    ``size_variation``. Overlapping discs combine with max, not sum.

    Args:
        base_size: Disc diameter relative to the cell width.
        edge: Width of the linear falloff at the disc rim, in cell units.
    """
    grid = lattice_size(scale)
    draws = _cell_draws(seed, grid, 4)
    edge = max(float(edge), 1e-6)

    value = None
    for px, py, nx, ny, wx, wy in _neighbourhood(x, y, width, height, grid):
        if value is None:
            value = np.zeros(px.shape, dtype=np.float64)
        mask_val, jx, jy, size = draws[:, wy, wx]
        point_x = nx + 0.5 + (jx - 0.5) * jitter
        point_y = ny + 0.5 + (jy - 0.5) * jitter
        radius = base_size * 0.5 * (1.0 - size * size_variation)

        dist = np.sqrt((px - point_x) ** 2 + (py - point_y) ** 2)
        v = 1.0 - np.clip((dist - radius + edge) / edge, 0.0, 1.0)
        inside = (dist < radius) & (mask_val >= mask_threshold)
        value = np.where(inside, np.maximum(value, v), value)

    return value


def stripes(x, y, width, height, scale):
    """Vertical bars repeating ``scale`` times across the tile.

    Equivalent to ``sin(2 pi scale x / width) > 0``, evaluated on the
    phase directly so whole periods land exactly on the tile edge.
    """
    x, _ = np.broadcast_arrays(np.asarray(x, dtype=np.float64),
                               np.asarray(y, dtype=np.float64))
    phase = np.mod(x * scale / width, 1.0)
    return ((phase > 0.0) & (phase < 0.5)).astype(np.float64)


def radial_mask(x, y, width, height, scale, shape="GLOW_CIRCLE",
                hardness=0.5, ring_count=5, size=MASK_SIZE,
                smoothing=MASK_SMOOTHING, epsilon=MASK_EPSILON):
    """Centred shape mask repeated ``scale`` times per tile.

    Shapes are expressed as signed distances (negative inside) and mapped
    to [0, 1] with an edge softness controlled by ``hardness``. RINGS is
    a sinusoid of the radial distance and skips that mapping.
    """
    cx = (np.asarray(x, dtype=np.float64) / width - 0.5) * scale
    cy = (np.asarray(y, dtype=np.float64) / height - 0.5) * scale

    # Shift so the canvas centre is a tile centre, then wrap into a tile
    u = np.mod(cx + 0.5, 1.0)
    v = np.mod(cy + 0.5, 1.0)
    dx = u - 0.5
    dy = v - 0.5

    dist = np.sqrt(dx * dx + dy * dy)
    angle = np.arctan2(dy, dx)

    if shape == "RINGS":
        return np.sin(dist * ring_count * np.pi * 4) * 0.5 + 0.5
    if shape == "GLOW_SQUARE":
        sdf = np.maximum(np.abs(dx), np.abs(dy)) - size
    elif shape in ("STAR_4", "STAR_5"):
        n = 4 if shape == "STAR_4" else 5
        sdf = dist - (size * 0.6 + size * 0.4 * np.cos(angle * n))
    else:
        sdf = dist - size

    soft = (1.0 - hardness) * smoothing + epsilon
    return np.clip(-sdf / soft, 0.0, 1.0)


def grain(shape, rng=None):
    """Uncorrelated per-pixel noise. Not reproducible unless ``rng`` is."""
    if rng is None:
        rng = np.random.RandomState()
    return rng.random_sample(shape)
