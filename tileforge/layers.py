"""Layer stack data model and its JSON persistence format.

A project is an ordered list of layers. Each layer's parameters are a
kind-specific dataclass carrying only the fields that kind uses; keys a
saved project holds beyond those are kept in ``extras`` so that loading
and saving again loses nothing.
"""

import json
import math
import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path

MIN_SCALE = 1e-3


class LayerFormatError(ValueError):
    """Raised when persisted layer data is not a well-formed layer list."""


class LayerKind(str, Enum):
    SIMPLEX = 'SIMPLEX'
    PERLIN = 'PERLIN'
    CELLULAR = 'CELLULAR'
    DOTS = 'DOTS'
    STRIPES = 'STRIPES'
    MASK = 'MASK'
    GRAIN = 'GRAIN'
    IMAGE = 'IMAGE'
    CUSTOM_AI = 'CUSTOM_AI'
    WARP = 'WARP'

    @property
    def is_image(self):
        return self in (LayerKind.IMAGE, LayerKind.CUSTOM_AI)


class BlendMode(str, Enum):
    """Separable blend modes, valued by their canvas operation names."""

    NORMAL = 'source-over'
    MULTIPLY = 'multiply'
    SCREEN = 'screen'
    OVERLAY = 'overlay'
    DARKEN = 'darken'
    LIGHTEN = 'lighten'
    COLOR_DODGE = 'color-dodge'
    COLOR_BURN = 'color-burn'
    HARD_LIGHT = 'hard-light'
    SOFT_LIGHT = 'soft-light'
    DIFFERENCE = 'difference'
    EXCLUSION = 'exclusion'

    @classmethod
    def _missing_(cls, value):
        if value == 'normal':
            return cls.NORMAL
        return None


class MaskType(str, Enum):
    GLOW_CIRCLE = 'GLOW_CIRCLE'
    GLOW_SQUARE = 'GLOW_SQUARE'
    STAR_4 = 'STAR_4'
    STAR_5 = 'STAR_5'
    RINGS = 'RINGS'


class WarpType(str, Enum):
    SWIRL = 'SWIRL'
    TURBULENCE = 'TURBULENCE'
    FLOW = 'FLOW'


def _json_key(name):
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@dataclass
class LayerParams:
    """Parameters shared by every layer kind."""

    scale: float = 5.0
    seed: int = 12345
    contrast: float = 1.0
    brightness: float = 0.0
    invert: bool = False
    extras: dict = field(default_factory=dict, repr=False)

    # field name -> (low, high); None leaves that side open
    _limits = {'scale': (MIN_SCALE, None)}

    def sanitized(self):
        """Return a copy with every value usable by the renderer.

        Non-finite numbers fall back to their defaults, bounded fields are
        clamped and the seed is reduced to 32 bits.
        """
        changes = {}
        for f in fields(self):
            if isinstance(f.default, bool) or not isinstance(f.default, (int, float)):
                continue
            value = getattr(self, f.name)
            if f.name == 'seed':
                changes['seed'] = int(value) & 0xFFFFFFFF
                continue
            if not math.isfinite(value):
                value = f.default
            low, high = self._limits.get(f.name, (None, None))
            if low is not None and value < low:
                value = low
            if high is not None and value > high:
                value = high
            changes[f.name] = type(f.default)(value)
        return replace(self, **changes)

    def to_dict(self):
        data = dict(self.extras)
        for f in fields(self):
            if f.name == 'extras':
                continue
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            data[_json_key(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise LayerFormatError(f"params must be an object, got {type(data).__name__}")
        known = {_json_key(f.name): f for f in fields(cls) if f.name != 'extras'}
        kwargs = {}
        extras = {}
        for key, value in data.items():
            f = known.get(key)
            if f is None:
                extras[key] = value
                continue
            if value is None:
                # NaN slider values are saved as null
                continue
            kwargs[f.name] = _coerce(key, value, f.default)
        return cls(extras=extras, **kwargs)


def _coerce(key, value, default):
    if isinstance(default, Enum):
        try:
            return type(default)(value)
        except ValueError:
            raise LayerFormatError(f"{key}: unknown value {value!r}") from None
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise LayerFormatError(f"{key}: expected a boolean, got {value!r}")
        return value
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise LayerFormatError(f"{key}: expected a number, got {value!r}")
        if isinstance(default, int) and isinstance(value, float):
            if not value.is_integer():
                raise LayerFormatError(f"{key}: expected an integer, got {value!r}")
            return int(value)
        return value
    if default is None or isinstance(default, str):
        if not isinstance(value, str):
            raise LayerFormatError(f"{key}: expected a string, got {value!r}")
        return value
    return value


@dataclass
class NoiseParams(LayerParams):
    """Gradient (simplex) noise."""


@dataclass
class CellularParams(LayerParams):
    jitter: float = 1.0

    _limits = dict(LayerParams._limits, jitter=(0.0, None))


@dataclass
class DotsParams(LayerParams):
    scale: float = 10.0
    jitter: float = 1.0
    dot_base_size: float = 0.8
    size_variation: float = 0.5
    mask_threshold: float = 0.0

    _limits = dict(LayerParams._limits, jitter=(0.0, None),
                   dot_base_size=(0.0, None), size_variation=(0.0, 1.0),
                   mask_threshold=(0.0, 1.0))


@dataclass
class StripesParams(LayerParams):
    pass


@dataclass
class MaskParams(LayerParams):
    scale: float = 1.0
    mask_type: MaskType = MaskType.GLOW_CIRCLE
    mask_hardness: float = 0.5
    ring_count: int = 5

    _limits = dict(LayerParams._limits, mask_hardness=(0.0, 1.0),
                   ring_count=(1, None))

    def __post_init__(self):
        self.mask_type = MaskType(self.mask_type)


@dataclass
class GrainParams(LayerParams):
    pass


@dataclass
class ImageParams(LayerParams):
    """Bitmap layer; ``image`` is the content key of a decoded bitmap."""

    image: str = None


@dataclass
class CustomAIParams(ImageParams):
    prompt: str = 'A seamless stone wall texture'


@dataclass
class WarpParams(LayerParams):
    warp_type: WarpType = WarpType.TURBULENCE
    warp_strength: float = 0.5

    def __post_init__(self):
        self.warp_type = WarpType(self.warp_type)


PARAMS_BY_KIND = {
    LayerKind.SIMPLEX: NoiseParams,
    LayerKind.PERLIN: NoiseParams,
    LayerKind.CELLULAR: CellularParams,
    LayerKind.DOTS: DotsParams,
    LayerKind.STRIPES: StripesParams,
    LayerKind.MASK: MaskParams,
    LayerKind.GRAIN: GrainParams,
    LayerKind.IMAGE: ImageParams,
    LayerKind.CUSTOM_AI: CustomAIParams,
    LayerKind.WARP: WarpParams,
}


def default_params(kind):
    return PARAMS_BY_KIND[LayerKind(kind)]()


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------

def _new_id():
    return f"layer-{uuid.uuid4().hex[:12]}"


@dataclass
class Layer:
    """One element of the stack. Order in the stack is the only relation."""

    kind: LayerKind
    params: LayerParams = None
    id: str = field(default_factory=_new_id)
    name: str = ''
    blend_mode: BlendMode = BlendMode.NORMAL
    opacity: float = 1.0
    visible: bool = True
    extras: dict = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.kind = LayerKind(self.kind)
        self.blend_mode = BlendMode(self.blend_mode)
        if self.params is None:
            self.params = default_params(self.kind)
        expected = PARAMS_BY_KIND[self.kind]
        if type(self.params) is not expected:
            raise TypeError(
                f"{self.kind.value} layer needs {expected.__name__}, "
                f"got {type(self.params).__name__}")
        if not self.name:
            self.name = f"{self.kind.value.capitalize()} Noise"

    def sanitized(self):
        """Copy with clamped opacity and renderer-safe params."""
        opacity = self.opacity
        if not math.isfinite(opacity):
            opacity = 1.0
        opacity = min(1.0, max(0.0, float(opacity)))
        return replace(self, opacity=opacity, params=self.params.sanitized())

    def to_dict(self):
        data = dict(self.extras)
        data.update({
            'id': self.id,
            'name': self.name,
            'type': self.kind.value,
            'blendMode': self.blend_mode.value,
            'opacity': self.opacity,
            'visible': self.visible,
            'params': self.params.to_dict(),
        })
        return data

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise LayerFormatError(f"layer must be an object, got {type(data).__name__}")
        missing = [k for k in ('id', 'type', 'params') if k not in data]
        if missing:
            raise LayerFormatError(f"missing field(s): {', '.join(missing)}")
        try:
            kind = LayerKind(data['type'])
        except ValueError:
            raise LayerFormatError(f"type: unknown layer type {data['type']!r}") from None
        try:
            blend_mode = BlendMode(data.get('blendMode', BlendMode.NORMAL.value))
        except ValueError:
            raise LayerFormatError(f"blendMode: unknown blend mode {data['blendMode']!r}") from None

        opacity = data.get('opacity', 1.0)
        if opacity is None:
            opacity = 1.0
        opacity = _coerce('opacity', opacity, 1.0)
        visible = _coerce('visible', data.get('visible', True), True)
        layer_id = _coerce('id', data['id'], '')
        name = _coerce('name', data.get('name', ''), '')

        known = {'id', 'name', 'type', 'blendMode', 'opacity', 'visible', 'params'}
        extras = {k: v for k, v in data.items() if k not in known}
        params = PARAMS_BY_KIND[kind].from_dict(data['params'])
        return cls(kind=kind, params=params, id=layer_id, name=name,
                   blend_mode=blend_mode, opacity=opacity, visible=visible,
                   extras=extras)


def new_layer(kind, stack_size=0):
    """Create a layer with kind-appropriate defaults.

    The first layer of a stack replaces the black background; later ones
    screen over it.
    """
    blend = BlendMode.NORMAL if stack_size == 0 else BlendMode.SCREEN
    return Layer(kind=LayerKind(kind), blend_mode=blend)


def default_project():
    """The starting project: a single base simplex layer."""
    params = NoiseParams(scale=3.0)
    return [Layer(kind=LayerKind.SIMPLEX, params=params, id='layer-1',
                  name='Base Simplex')]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def layers_from_list(data):
    if not isinstance(data, list):
        raise LayerFormatError(f"project must be a list of layers, got {type(data).__name__}")
    layers = []
    for index, item in enumerate(data):
        try:
            layers.append(Layer.from_dict(item))
        except LayerFormatError as exc:
            raise LayerFormatError(f"layer {index}: {exc}") from None
    return layers


def _finite_or_null(value):
    # JSON has no NaN or Infinity; null loads back as the field default
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite_or_null(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_finite_or_null(v) for v in value]
    return value


def dumps_layers(layers, indent=2):
    data = [_finite_or_null(layer.to_dict()) for layer in layers]
    return json.dumps(data, indent=indent, allow_nan=False)


def loads_layers(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LayerFormatError(f"invalid JSON: {exc}") from exc
    return layers_from_list(data)


def save_project(layers, path):
    Path(path).write_text(dumps_layers(layers), encoding='utf-8')


def load_project(path):
    return loads_layers(Path(path).read_text(encoding='utf-8'))


class LayerStack:
    """Ordered, mutable list of layers with the editor's operations."""

    def __init__(self, layers=None):
        self.layers = list(layers) if layers is not None else default_project()

    def __len__(self):
        return len(self.layers)

    def __iter__(self):
        return iter(self.layers)

    def __getitem__(self, index):
        return self.layers[index]

    def add(self, kind):
        layer = new_layer(kind, stack_size=len(self.layers))
        self.layers.append(layer)
        return layer

    def remove(self, index):
        return self.layers.pop(index)

    def move(self, src, dst):
        """Move the layer at ``src`` so it ends up at index ``dst``."""
        layer = self.layers.pop(src)
        self.layers.insert(dst, layer)

    def update(self, index, **changes):
        """Edit a layer in place. ``params`` may be a dict of param fields.

        Changing ``kind`` resets the params to the new kind's defaults
        before ``params`` is applied. The id cannot be changed.
        """
        layer = self.layers[index]
        params = changes.pop('params', None)
        if 'id' in changes:
            raise ValueError("layer id is immutable")
        for key in changes:
            if not hasattr(layer, key):
                raise AttributeError(f"Layer has no field {key!r}")
        if 'kind' in changes:
            kind = LayerKind(changes.pop('kind'))
            if kind != layer.kind:
                layer.kind = kind
                layer.params = default_params(kind)
        if 'blend_mode' in changes:
            changes['blend_mode'] = BlendMode(changes['blend_mode'])
        for key, value in changes.items():
            setattr(layer, key, value)
        if params:
            layer.params = replace(layer.params, **params)
        return layer

    def toggle_visibility(self, index):
        layer = self.layers[index]
        layer.visible = not layer.visible
        return layer

    def to_json(self):
        return dumps_layers(self.layers)

    @classmethod
    def from_json(cls, text):
        return cls(loads_layers(text))
