from __future__ import annotations

from numbers import Real

from composition_engine.models.geometry import BoundingBox
from composition_engine.services.errors import InvalidBoundsError


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def is_whole_number(value: object) -> bool:
    """True for int or integral float values; bools and non-numbers are rejected."""
    return _is_number(value) and float(value).is_integer()


def validate_bounds(box: BoundingBox, image_width: int, image_height: int) -> None:
    """
    Check that `box` is a usable pixel region of an image_width x image_height image.

    Raises InvalidBoundsError on the first failed check. Nothing is returned and
    nothing is mutated; run this before any crop or paste.
    """
    context = {"box": box.as_dict(), "image_width": image_width, "image_height": image_height}

    if image_width <= 0 or image_height <= 0:
        raise InvalidBoundsError(
            f"Invalid image dimensions: {image_width}x{image_height} (must be positive)",
            context,
        )

    for name in ("left", "top", "width", "height"):
        value = getattr(box, name)
        if not _is_number(value):
            raise InvalidBoundsError(f"Bounding box {name} must be a number, got {value!r}", context)

    if box.left < 0 or box.top < 0:
        raise InvalidBoundsError(
            f"Bounding box position cannot be negative: left={box.left}, top={box.top}",
            context,
        )

    if box.width <= 0 or box.height <= 0:
        raise InvalidBoundsError(
            f"Bounding box dimensions must be positive: width={box.width}, height={box.height}",
            context,
        )

    # Pixel operations need whole-number coordinates.
    if not all(is_whole_number(v) for v in (box.left, box.top, box.width, box.height)):
        raise InvalidBoundsError(
            "Bounding box coordinates must be integers: "
            f"left={box.left}, top={box.top}, width={box.width}, height={box.height}",
            context,
        )

    if box.left + box.width > image_width:
        raise InvalidBoundsError(
            f"Bounding box exceeds image width: left({box.left}) + width({box.width}) "
            f"> image width ({image_width})",
            context,
        )
    if box.top + box.height > image_height:
        raise InvalidBoundsError(
            f"Bounding box exceeds image height: top({box.top}) + height({box.height}) "
            f"> image height ({image_height})",
            context,
        )
