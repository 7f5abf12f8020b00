"""Layer rendering and compositing pipeline.

Renders every visible layer of a stack into a full-resolution field and
folds it into one RGBA accumulator, top of the list first. Warp layers
resample the accumulator instead of adding colour.
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
from PIL import Image

from .blend import merge
from .images import to_rgba_array
from .layers import LayerKind
from .noise import NoiseContext, tiled_simplex
from .patterns import (
    DOT_EDGE, MASK_EPSILON, MASK_SIZE, MASK_SMOOTHING,
    cellular, dots, grain, radial_mask, stripes,
)
from .warp import (
    PIXELS_PER_STRENGTH, TURBULENCE_OFFSET_X, TURBULENCE_OFFSET_Y, apply_warp,
)

logger = logging.getLogger(__name__)

RESOLUTION_PRESETS = (256, 512, 1024)


@dataclass
class RenderConfig:
    """Tunable constants of the generators and the warp stage."""

    # Dots
    dot_edge: float = DOT_EDGE

    # Radial masks
    mask_size: float = MASK_SIZE
    mask_smoothing: float = MASK_SMOOTHING
    mask_epsilon: float = MASK_EPSILON

    # Warp
    warp_pixels_per_strength: float = PIXELS_PER_STRENGTH
    turbulence_offset: tuple = (TURBULENCE_OFFSET_X, TURBULENCE_OFFSET_Y)

    # Image layers: smallest number of tiles across the output
    min_image_scale: float = 0.1


def render(layers, resolution=512, images=None, config=None, rng=None):
    """Render a layer stack to a square, seamlessly tiling texture.

    Args:
        layers: Ordered iterable of Layer records.
        resolution: Output width and height in pixels.
        images: Mapping of content key -> bitmap (PIL image or RGBA array)
            for IMAGE / CUSTOM_AI layers, e.g. an ImageCache.
        config: RenderConfig instance (defaults used if None).
        rng: numpy RandomState for grain layers (fresh entropy if None).

    Returns:
        PIL Image in RGBA mode.
    """
    return _composite(compose(layers, resolution, images=images,
                              config=config, rng=rng))


def compose(layers, resolution=512, images=None, config=None, rng=None):
    """Run the pipeline and return the float accumulator.

    Returns:
        Array of shape (resolution, resolution, 4), values in [0, 1].
    """
    if config is None:
        config = RenderConfig()
    size = max(1, int(resolution))
    start = time.perf_counter()

    # Opaque black background
    acc = np.zeros((size, size, 4), dtype=np.float64)
    acc[:, :, 3] = 1.0

    # Owned by this render only
    ctx = NoiseContext()
    rendered = 0

    for index, layer in enumerate(layers):
        if not layer.visible:
            continue
        layer = layer.sanitized()
        params = layer.params

        if layer.kind == LayerKind.WARP:
            ctx.reseed(params.seed)
            acc = apply_warp(
                acc, ctx, params.warp_type, params.scale,
                params.warp_strength * config.warp_pixels_per_strength,
                params.seed, opacity=layer.opacity,
                offsets=config.turbulence_offset)
        elif layer.kind.is_image:
            bitmap = images.get(params.image) if images is not None else None
            if bitmap is None:
                logger.debug("Layer %d (%s): no image yet, skipped",
                             index, layer.name)
                continue
            rgb, alpha = render_image_layer(layer, to_rgba_array(bitmap),
                                            size, size, config)
            merge(acc, rgb, alpha * layer.opacity, layer.blend_mode)
        else:
            values = render_field(layer, size, size, ctx, config, rng)
            rgb = np.repeat(values[:, :, np.newaxis], 3, axis=2)
            merge(acc, rgb, layer.opacity, layer.blend_mode)

        rendered += 1
        logger.debug("Layer %d (%s): %s, %s, opacity %.2f", index,
                     layer.name, layer.kind.value, layer.blend_mode.value,
                     layer.opacity)

    logger.info("Rendered %d layer(s) at %dx%d in %.2fs", rendered, size,
                size, time.perf_counter() - start)
    return acc


def render_field(layer, width, height, ctx, config=None, rng=None):
    """Evaluate a procedural layer over the pixel grid.

    The layer's params are expected to be sanitized. Reseeds ``ctx``.

    Returns:
        Array of shape (height, width), tone-mapped values in [0, 1].
    """
    if config is None:
        config = RenderConfig()
    p = layer.params
    ctx.reseed(p.seed)

    yy, xx = np.meshgrid(np.arange(height, dtype=np.float64),
                         np.arange(width, dtype=np.float64), indexing='ij')
    kind = layer.kind

    if kind in (LayerKind.SIMPLEX, LayerKind.PERLIN):
        values = tiled_simplex(ctx, xx, yy, width, height, p.scale)
    elif kind == LayerKind.CELLULAR:
        values = cellular(xx, yy, width, height, p.scale, p.jitter, p.seed)
    elif kind == LayerKind.DOTS:
        values = dots(xx, yy, width, height, p.scale,
                      base_size=p.dot_base_size,
                      size_variation=p.size_variation,
                      mask_threshold=p.mask_threshold,
                      seed=p.seed, jitter=p.jitter, edge=config.dot_edge)
    elif kind == LayerKind.STRIPES:
        values = stripes(xx, yy, width, height, p.scale)
    elif kind == LayerKind.MASK:
        values = radial_mask(xx, yy, width, height, p.scale,
                             shape=p.mask_type.value,
                             hardness=p.mask_hardness,
                             ring_count=p.ring_count,
                             size=config.mask_size,
                             smoothing=config.mask_smoothing,
                             epsilon=config.mask_epsilon)
    elif kind == LayerKind.GRAIN:
        values = grain((height, width), rng=rng)
    else:
        raise ValueError(f"{kind.value} layers have no procedural field")

    return tone_map(values, p)


def tone_map(values, params):
    """Invert, then apply contrast around mid-grey and brightness."""
    if params.invert:
        values = 1.0 - values
    values = (values - 0.5) * params.contrast + 0.5 + params.brightness
    return np.clip(values, 0.0, 1.0)


def render_image_layer(layer, bitmap, width, height, config=None):
    """Fill the output with a repeating bitmap tile.

    ``scale`` tiles fit across the output (nearest-neighbour sampling).
    Invert, contrast and brightness act as a colour filter on RGB.

    Returns:
        Tuple of (height, width, 3) colour and (height, width) alpha.
    """
    if config is None:
        config = RenderConfig()
    p = layer.params
    ih, iw = bitmap.shape[:2]
    tiles = max(config.min_image_scale, p.scale)
    tile_w = width / tiles
    tile_h = height / tiles

    u = np.mod(np.arange(width, dtype=np.float64), tile_w) / tile_w
    v = np.mod(np.arange(height, dtype=np.float64), tile_h) / tile_h
    ix = np.clip(np.floor(u * iw).astype(np.int64), 0, iw - 1)
    iy = np.clip(np.floor(v * ih).astype(np.int64), 0, ih - 1)
    tile = bitmap[np.ix_(iy, ix)]

    rgb = tile[:, :, :3]
    if p.invert:
        rgb = 1.0 - rgb
    rgb = np.clip((rgb - 0.5) * p.contrast + 0.5, 0.0, 1.0)
    rgb = np.clip(rgb * (1.0 + p.brightness), 0.0, 1.0)
    return rgb, tile[:, :, 3]


def tile_preview(image, repeat=3):
    """Repeat a texture ``repeat`` x ``repeat`` times to inspect its seams."""
    w, h = image.size
    out = Image.new(image.mode, (w * repeat, h * repeat))
    for ty in range(repeat):
        for tx in range(repeat):
            out.paste(image, (tx * w, ty * h))
    return out


def _composite(acc):
    """Convert the float accumulator to an RGBA image."""
    rgba = np.clip(np.rint(acc * 255), 0, 255).astype(np.uint8)
    return Image.fromarray(rgba)
