from __future__ import annotations

import logging
import math

from composition_engine.models.geometry import BoundingBox, FittedBoundingBox
from composition_engine.services.catalog import nearest_ratio


logger = logging.getLogger(__name__)


def fit_to_supported_ratio(box: BoundingBox) -> FittedBoundingBox:
    """
    Snap a bounding box to the nearest aspect ratio the image model supports.

    For landscape or square targets the width is kept and the height derived
    from it; for portrait targets the height is kept and the width derived. The
    adjusted box is centred on the original one, then floored to whole pixels
    with offsets clamped at 0 so a box flush with the image edge stays on the
    image.

    Image bounds are not checked here; run `validate_bounds` first.
    """
    match = nearest_ratio(box.width, box.height)
    target = match.resolution

    left: float = box.left
    top: float = box.top
    width: float = box.width
    height: float = box.height

    # The secondary dimension must be known before the offset is shifted.
    if target.width >= target.height:
        height = box.width * (target.height / target.width)
        top += (box.height - height) / 2
    else:
        width = box.height * (target.width / target.height)
        left += (box.width - width) / 2

    fitted_width = math.floor(width)
    fitted_height = math.floor(height)
    needs_resize = fitted_width != target.width or fitted_height != target.height

    fitted = FittedBoundingBox(
        left=max(math.floor(left), 0),
        top=max(math.floor(top), 0),
        width=fitted_width,
        height=fitted_height,
        aspect_ratio=match.ratio.label,
        resolution=target,
        tier_label=match.tier_label,
        needs_resize=needs_resize,
    )
    logger.debug(
        "Fitted box %s -> (%s, %s, %s, %s) ratio=%s tier=%s resize=%s",
        box.as_dict(),
        fitted.left,
        fitted.top,
        fitted.width,
        fitted.height,
        fitted.aspect_ratio,
        fitted.tier_label,
        needs_resize,
    )
    return fitted
