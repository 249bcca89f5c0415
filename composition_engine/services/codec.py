"""
Encoding helpers shared by the region and mask services.

Images cross every public boundary as encoded bytes. Internally they are
decoded with Pillow, worked on as numpy arrays (OpenCV for resampling) and
re-encoded as PNG so results stay lossless.
"""

from __future__ import annotations

from io import BytesIO
from typing import Tuple

import cv2
import numpy as np
from PIL import Image


_ALPHA_MODES = ("RGBA", "LA", "PA")


def decode_image(data: bytes) -> Image.Image:
    """Decode encoded image bytes, forcing a full read so corrupt data fails here."""
    if not data:
        raise ValueError("Image data is empty")
    image = Image.open(BytesIO(data))
    image.load()
    return image


def image_size(data: bytes) -> Tuple[int, int]:
    """Read (width, height) from the image header without decoding pixels."""
    if not data:
        raise ValueError("Image data is empty")
    with Image.open(BytesIO(data)) as image:
        return image.size


def has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or "transparency" in image.info


def normalize_mode(image: Image.Image) -> Image.Image:
    """Reduce any Pillow mode to L, RGB or RGBA so arrays have 1, 3 or 4 channels."""
    if image.mode in ("L", "RGB", "RGBA"):
        return image
    if has_alpha(image):
        return image.convert("RGBA")
    return image.convert("RGB")


def to_array(image: Image.Image) -> np.ndarray:
    return np.array(normalize_mode(image), dtype=np.uint8)


def resize_array(array: np.ndarray, width: int, height: int) -> np.ndarray:
    """Stretch an array to exactly width x height (no letterboxing)."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Resize target must be positive, got {width}x{height}")
    if array.shape[1] == width and array.shape[0] == height:
        return array.copy()
    return cv2.resize(array, (width, height), interpolation=cv2.INTER_LANCZOS4)


def encode_png(array: np.ndarray) -> bytes:
    """Encode an L/RGB/RGBA uint8 array as PNG bytes."""
    buffer = BytesIO()
    Image.fromarray(np.ascontiguousarray(array, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()
