"""Seamlessly tiling gradient noise.

To tile 2D noise perfectly, each axis of the image is wrapped onto a
circle and 4D simplex noise is sampled on the resulting torus:
(x, y) -> (cos x, sin x, cos y, sin y). One trip around each circle is
exactly one tile, so the noise is periodic without any edge blending.
"""

import numpy as np

from .prng import Mulberry32

F4 = (np.sqrt(5.0) - 1.0) / 4.0
G4 = (5.0 - np.sqrt(5.0)) / 20.0

# Normalisation so the summed corner contributions roughly fill [-1, 1]
NOISE_SCALE = 27.0

GRAD4 = np.array([
    [0, 1, 1, 1], [0, 1, 1, -1], [0, 1, -1, 1], [0, 1, -1, -1],
    [0, -1, 1, 1], [0, -1, 1, -1], [0, -1, -1, 1], [0, -1, -1, -1],
    [1, 0, 1, 1], [1, 0, 1, -1], [1, 0, -1, 1], [1, 0, -1, -1],
    [-1, 0, 1, 1], [-1, 0, 1, -1], [-1, 0, -1, 1], [-1, 0, -1, -1],
    [1, 1, 0, 1], [1, 1, 0, -1], [1, -1, 0, 1], [1, -1, 0, -1],
    [-1, 1, 0, 1], [-1, 1, 0, -1], [-1, -1, 0, 1], [-1, -1, 0, -1],
    [1, 1, 1, 0], [1, 1, -1, 0], [1, -1, 1, 0], [1, -1, -1, 0],
    [-1, 1, 1, 0], [-1, 1, -1, 0], [-1, -1, 1, 0], [-1, -1, -1, 0],
], dtype=np.float64)


class NoiseContext:
    """Owned, reseedable permutation table for simplex noise.

    Every render creates its own context, so concurrent renders never
    share table state. ``reseed`` must finish before any sampling that
    depends on the new seed.
    """

    def __init__(self, seed=0):
        self.seed = None
        self.perm = np.zeros(512, dtype=np.int64)
        self.reseed(seed)

    def reseed(self, seed):
        """Rebuild the permutation table from ``seed`` (mod 2**32)."""
        seed = int(seed) & 0xFFFFFFFF
        if seed == self.seed:
            return
        rng = Mulberry32(seed)
        p = np.array([int(rng.next() * 256) for _ in range(256)],
                     dtype=np.int64)
        self.perm = np.concatenate([p, p])
        self.seed = seed

    def _corner(self, ii, jj, kk, ll, dx, dy, dz, dw):
        t = 0.6 - dx * dx - dy * dy - dz * dz - dw * dw
        perm = self.perm
        gi = perm[ii + perm[jj + perm[kk + perm[ll]]]] % 32
        g = GRAD4[gi]
        dot = g[..., 0] * dx + g[..., 1] * dy + g[..., 2] * dz + g[..., 3] * dw
        t2 = t * t
        return np.where(t < 0, 0.0, t2 * t2 * dot)

    def simplex4(self, x, y, z, w):
        """4D simplex noise, approximately in [-1, 1]."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)
        w = np.asarray(w, dtype=np.float64)

        # Skew into the simplex lattice
        s = (x + y + z + w) * F4
        i = np.floor(x + s)
        j = np.floor(y + s)
        k = np.floor(z + s)
        l = np.floor(w + s)
        t = (i + j + k + l) * G4
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)
        w0 = w - (l - t)

        # Rank the offsets to find which simplex we are in
        rankx = ((x0 > y0).astype(np.int64) + (x0 > z0) + (x0 > w0))
        ranky = ((x0 <= y0).astype(np.int64) + (y0 > z0) + (y0 > w0))
        rankz = ((x0 <= z0).astype(np.int64) + (y0 <= z0) + (z0 > w0))
        rankw = ((x0 <= w0).astype(np.int64) + (y0 <= w0) + (z0 <= w0))

        ii = i.astype(np.int64) & 255
        jj = j.astype(np.int64) & 255
        kk = k.astype(np.int64) & 255
        ll = l.astype(np.int64) & 255

        total = self._corner(ii, jj, kk, ll, x0, y0, z0, w0)
        for threshold, step in ((3, 1), (2, 2), (1, 3)):
            i1 = (rankx >= threshold).astype(np.int64)
            j1 = (ranky >= threshold).astype(np.int64)
            k1 = (rankz >= threshold).astype(np.int64)
            l1 = (rankw >= threshold).astype(np.int64)
            total = total + self._corner(
                ii + i1, jj + j1, kk + k1, ll + l1,
                x0 - i1 + step * G4, y0 - j1 + step * G4,
                z0 - k1 + step * G4, w0 - l1 + step * G4)
        total = total + self._corner(
            ii + 1, jj + 1, kk + 1, ll + 1,
            x0 - 1.0 + 4.0 * G4, y0 - 1.0 + 4.0 * G4,
            z0 - 1.0 + 4.0 * G4, w0 - 1.0 + 4.0 * G4)

        return NOISE_SCALE * total


def _torus(x, y, width, height, scale):
    """Map pixel coordinates onto two circles of radius scale / 2pi."""
    # Wrap the phase so x = width lands exactly on x = 0
    nx = np.mod(np.asarray(x, dtype=np.float64) / width, 1.0)
    ny = np.mod(np.asarray(y, dtype=np.float64) / height, 1.0)
    two_pi = np.pi * 2
    r = scale / (2 * np.pi)
    return (np.cos(nx * two_pi) * r, np.sin(nx * two_pi) * r,
            np.cos(ny * two_pi) * r, np.sin(ny * two_pi) * r)


def tiled_simplex_raw(ctx, x, y, width, height, scale):
    """Tileable simplex noise in [-1, 1], used as a displacement source.

    Args:
        ctx: NoiseContext seeded for the current layer.
        x, y: Pixel coordinates (scalars or arrays, any real values).
        width, height: Tile size in pixels; the result has this period.
        scale: Spatial frequency (roughly features per tile).
    """
    u, v, a, b = _torus(x, y, width, height, scale)
    return np.clip(ctx.simplex4(u, v, a, b), -1.0, 1.0)


def tiled_simplex(ctx, x, y, width, height, scale):
    """Tileable simplex noise normalised to [0, 1]."""
    u, v, a, b = _torus(x, y, width, height, scale)
    return np.clip((ctx.simplex4(u, v, a, b) + 1) * 0.5, 0.0, 1.0)
