"""Decoded bitmaps for image-backed layers, cached by content key."""

import base64
import binascii
import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def to_rgba_array(image):
    """Convert a PIL image or array to an (h, w, 4) float64 array in [0, 1]."""
    if isinstance(image, Image.Image):
        return np.array(image.convert('RGBA'), dtype=np.float64) / 255.0
    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.shape[-1] == 3:
        opaque = np.full(arr.shape[:2] + (1,), 255 if arr.dtype == np.uint8 else 1.0)
        arr = np.concatenate([arr, opaque], axis=-1)
    if arr.dtype == np.uint8:
        return arr.astype(np.float64) / 255.0
    return np.clip(arr.astype(np.float64), 0.0, 1.0)


def decode(source):
    """Decode a ``data:`` URL or an image file path into an RGBA PIL image.

    Raises:
        ValueError: if the data cannot be decoded as an image.
    """
    if source.startswith('data:'):
        header, _, payload = source.partition(',')
        try:
            if header.endswith(';base64'):
                raw = base64.b64decode(payload, validate=True)
            else:
                raw = payload.encode('latin-1')
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError(f"bad data URL: {exc}") from exc
        fp = io.BytesIO(raw)
    else:
        fp = Path(source)
    try:
        with Image.open(fp) as img:
            return img.convert('RGBA')
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"cannot decode image: {exc}") from exc


class ImageCache:
    """Mapping of content key -> RGBA array.

    Keys are usually the layer's ``image`` value (a data URL or a path).
    Bitmaps can also be registered up front with ``put``, e.g. the result
    of an external generator. A key that has not been decoded yet, or
    that fails to decode, is simply absent and the layer renders as
    transparent.
    """

    def __init__(self, decode_missing=True):
        self.decode_missing = decode_missing
        self._arrays = {}
        self._failed = set()

    def put(self, key, image):
        self._arrays[key] = to_rgba_array(image)
        self._failed.discard(key)

    def get(self, key, default=None):
        if key is None:
            return default
        arr = self._arrays.get(key)
        if arr is not None:
            return arr
        if not self.decode_missing or key in self._failed:
            return default
        try:
            image = decode(key)
        except ValueError as exc:
            logger.warning("Image %s unavailable: %s", _short(key), exc)
            self._failed.add(key)
            return default
        self.put(key, image)
        logger.debug("Decoded image %s (%dx%d)", _short(key), *image.size)
        return self._arrays[key]

    def __contains__(self, key):
        return key in self._arrays

    def __len__(self):
        return len(self._arrays)

    def clear(self):
        self._arrays.clear()
        self._failed.clear()


def _short(key):
    return key if len(key) <= 48 else key[:45] + '...'
