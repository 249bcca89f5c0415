"""
Region extraction and stitching.

A region ("tile") is cut out of a larger composition, sent to the image model
at one of its supported resolutions, and the generated tile is pasted back at
the same coordinates. Every function here takes encoded image bytes and
returns new PNG bytes; inputs are never modified.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple, Type

from composition_engine.models.geometry import BoundingBox, ExtractedRegion, Resolution
from composition_engine.services.codec import (
    decode_image,
    encode_png,
    image_size,
    normalize_mode,
    resize_array,
    to_array,
)
from composition_engine.services.errors import (
    CompositeFailedError,
    ErrorKind,
    ExtractFailedError,
    ImageProcessingError,
)
from composition_engine.services.fitting import fit_to_supported_ratio
from composition_engine.services.validation import is_whole_number, validate_bounds


logger = logging.getLogger(__name__)


def _pixel_box(
    box: BoundingBox,
    error_cls: Type[ImageProcessingError],
    context: Dict[str, Any],
) -> Tuple[int, int, int, int]:
    """Return the box as whole pixels, raising `error_cls` for fractional or non-numeric fields."""
    values = (box.left, box.top, box.width, box.height)
    if not all(is_whole_number(v) for v in values):
        raise error_cls(
            "Bounding box coordinates must be integers: "
            f"left={box.left!r}, top={box.top!r}, width={box.width!r}, height={box.height!r}",
            context,
        )
    left, top, width, height = (int(v) for v in values)
    return left, top, width, height


def get_image_dimensions(image: bytes) -> Tuple[int, int]:
    """Return (width, height) of an encoded image."""
    try:
        width, height = image_size(image)
    except Exception as exc:  # noqa: BLE001
        raise ImageProcessingError(
            f"Failed to get image dimensions: {exc}",
            {"size_bytes": len(image or b"")},
            kind=ErrorKind.DIMENSIONS_UNAVAILABLE,
        ) from exc
    if not width or not height:
        raise ImageProcessingError(
            "Unable to determine image dimensions",
            {"size_bytes": len(image)},
            kind=ErrorKind.DIMENSIONS_UNAVAILABLE,
        )
    return width, height


def resize_image(image: bytes, width: int, height: int) -> bytes:
    """Stretch an encoded image to exactly width x height and return PNG bytes."""
    try:
        return encode_png(resize_array(to_array(decode_image(image)), width, height))
    except Exception as exc:  # noqa: BLE001
        raise ImageProcessingError(
            f"Failed to resize image: {exc}",
            {"width": width, "height": height},
            kind=ErrorKind.RESIZE_FAILED,
        ) from exc


def extract_region(image: bytes, box: BoundingBox, resize_to: Resolution | None = None) -> bytes:
    """
    Crop `box` out of `image`, optionally resizing the crop to `resize_to`.

    Raises ExtractFailedError if the box is not whole pixels, the source
    cannot be decoded or the crop does not lie entirely inside it.
    """
    context = {
        "bounding_box": box.as_dict(),
        "resize_to": None if resize_to is None else {"width": resize_to.width, "height": resize_to.height},
    }
    left, top, width, height = _pixel_box(box, ExtractFailedError, context)
    try:
        pixels = to_array(decode_image(image))
    except Exception as exc:  # noqa: BLE001
        raise ExtractFailedError(f"Failed to extract bounding box: {exc}", context) from exc

    image_height, image_width = pixels.shape[:2]
    if (
        left < 0
        or top < 0
        or width <= 0
        or height <= 0
        or left + width > image_width
        or top + height > image_height
    ):
        raise ExtractFailedError(
            "Failed to extract bounding box: bad extract area "
            f"({left}, {top}, {width}x{height}) for {image_width}x{image_height} image",
            {**context, "image_width": image_width, "image_height": image_height},
        )

    tile = pixels[top : top + height, left : left + width]
    try:
        if resize_to is not None:
            tile = resize_array(tile, resize_to.width, resize_to.height)
        return encode_png(tile)
    except Exception as exc:  # noqa: BLE001
        raise ExtractFailedError(f"Failed to extract bounding box: {exc}", context) from exc


def replace_region(
    base_image: bytes,
    tile_image: bytes,
    box: BoundingBox,
    resize_tile: bool = False,
) -> bytes:
    """
    Paint `tile_image` over `base_image` with its top-left corner at (box.left, box.top).

    Covered pixels are overwritten, not blended. With `resize_tile` the tile is
    first stretched to the box size. The result keeps the base image's size and
    colour mode.
    """
    context = {"bounding_box": box.as_dict(), "resize_tile": resize_tile}
    left, top, box_width, box_height = _pixel_box(box, CompositeFailedError, context)
    try:
        base = normalize_mode(decode_image(base_image))
        tile = decode_image(tile_image)
    except Exception as exc:  # noqa: BLE001
        raise CompositeFailedError(f"Failed to replace bounding box: {exc}", context) from exc

    canvas = to_array(base).copy()
    try:
        tile_pixels = to_array(tile.convert(base.mode))
        if resize_tile:
            tile_pixels = resize_array(tile_pixels, box_width, box_height)
    except Exception as exc:  # noqa: BLE001
        raise CompositeFailedError(f"Failed to replace bounding box: {exc}", context) from exc

    canvas_height, canvas_width = canvas.shape[:2]
    tile_height, tile_width = tile_pixels.shape[:2]
    if left < 0 or top < 0 or left + tile_width > canvas_width or top + tile_height > canvas_height:
        raise CompositeFailedError(
            "Failed to replace bounding box: tile "
            f"{tile_width}x{tile_height} at ({left}, {top}) does not fit "
            f"{canvas_width}x{canvas_height} base image",
            {**context, "tile_width": tile_width, "tile_height": tile_height},
        )

    canvas[top : top + tile_height, left : left + tile_width] = tile_pixels
    logger.debug(
        "Replaced %sx%s region at (%s, %s) in %sx%s image",
        tile_width,
        tile_height,
        left,
        top,
        canvas_width,
        canvas_height,
    )
    try:
        return encode_png(canvas)
    except Exception as exc:  # noqa: BLE001
        raise CompositeFailedError(f"Failed to replace bounding box: {exc}", context) from exc


def extract_bounding_box(image: bytes, box: BoundingBox) -> ExtractedRegion:
    """
    Validate, ratio-fit and extract a region ready to send to the image model.

    The tile is resized to the matched model resolution only when the fitted
    crop does not already have that exact size.
    """
    width, height = get_image_dimensions(image)
    validate_bounds(box, width, height)

    fitted = fit_to_supported_ratio(box)
    fitted_box = fitted.to_bounding_box()
    tile = extract_region(
        image,
        fitted_box,
        resize_to=fitted.resolution if fitted.needs_resize else None,
    )
    logger.info(
        "Extracted %s tile (%s) from %sx%s image: box=%s fitted=%s",
        fitted.aspect_ratio,
        fitted.tier_label,
        width,
        height,
        box.as_dict(),
        fitted_box.as_dict(),
    )
    return ExtractedRegion(
        tile=tile,
        aspect_ratio=fitted.aspect_ratio,
        tier_label=fitted.tier_label,
        resolution=fitted.resolution,
        needs_resize=fitted.needs_resize,
        fitted_box=fitted_box,
    )


def stitch_tile_back(original_image: bytes, generated_tile: bytes, box: BoundingBox) -> bytes:
    """Paste a generated tile back over `box`, resizing it to the box first."""
    return replace_region(original_image, generated_tile, box, resize_tile=True)
