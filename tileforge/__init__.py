"""tileforge - Seamless tileable textures from stacked noise layers."""

from .layers import (
    BlendMode, Layer, LayerFormatError, LayerKind, LayerStack, MaskType,
    WarpType, default_project, load_project, new_layer, save_project,
)
from .renderer import render, compose, RenderConfig

__version__ = "0.1.0"
__all__ = [
    "generate", "render", "compose", "RenderConfig",
    "Layer", "LayerKind", "LayerStack", "BlendMode", "MaskType", "WarpType",
    "LayerFormatError", "new_layer", "default_project",
    "load_project", "save_project",
]


def generate(project=None, resolution=512, images=None, **kwargs):
    """Render a saved project (or the default one) to a texture.

    Args:
        project: Path to a project JSON file, a list of Layer records,
            or None for the default single-layer project.
        resolution: Output width and height in pixels.
        images: Optional mapping of content key -> bitmap for image
            layers. Image layers whose key is missing render transparent.
        **kwargs: RenderConfig parameters (dot_edge, mask_size,
            warp_pixels_per_strength, etc.).

    Returns:
        PIL Image in RGBA mode.
    """
    if project is None:
        layers = default_project()
    elif isinstance(project, (list, tuple, LayerStack)):
        layers = list(project)
    else:
        layers = load_project(project)
    config = RenderConfig(**kwargs)
    return render(layers, resolution, images=images, config=config)
