"""
Upscale target calculation.

Independent of the ratio catalog: these helpers only decide how large an
upscaled image should be, honouring the model's maximum output dimension.
Non-positive inputs return the all-zero `DimensionCalculation` sentinel rather
than raising.
"""

from __future__ import annotations

import math
from typing import Tuple

from composition_engine.models.geometry import DimensionCalculation
from composition_engine.services.catalog import MAX_DIMENSION


DEFAULT_MIN_DIMENSION = 1024


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _invalid(original_width: int, original_height: int) -> DimensionCalculation:
    return DimensionCalculation(
        target_width=0,
        target_height=0,
        upscale_factor=0.0,
        original_width=original_width,
        original_height=original_height,
    )


def _clamp_to_max(target_width: int, target_height: int, max_dimension: int) -> Tuple[int, int, bool]:
    if target_width <= max_dimension and target_height <= max_dimension:
        return target_width, target_height, False
    scale = max_dimension / max(target_width, target_height)
    return _round_half_up(target_width * scale), _round_half_up(target_height * scale), True


def _tiered_factor(width: int, height: int) -> float:
    """4x below 1024px, 2x up to 2048px, 1.5x beyond (smaller side decides)."""
    smaller = min(width, height)
    if smaller < 1024:
        return 4.0
    if smaller <= 2048:
        return 2.0
    return 1.5


def with_factor(
    width: int,
    height: int,
    factor: float,
    max_dimension: int = MAX_DIMENSION,
) -> DimensionCalculation:
    """
    Scale width x height by `factor`, shrinking uniformly if the result would
    exceed `max_dimension` on either side.

    After a clamp the reported factor is the smaller of the two effective
    per-axis factors.
    """
    if width <= 0 or height <= 0:
        return _invalid(width, height)

    target_width, target_height, clamped = _clamp_to_max(
        _round_half_up(width * factor),
        _round_half_up(height * factor),
        max_dimension,
    )
    if clamped:
        factor = min(target_width / width, target_height / height)

    return DimensionCalculation(
        target_width=target_width,
        target_height=target_height,
        upscale_factor=factor,
        original_width=width,
        original_height=height,
    )


def optimal_upscale(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> DimensionCalculation:
    """Upscale target using the tiered default factor for the source size."""
    if width <= 0 or height <= 0:
        return _invalid(width, height)
    return with_factor(width, height, _tiered_factor(width, height), max_dimension)


def validate_dimensions(
    target_width: int,
    target_height: int,
    original_width: int,
    original_height: int,
    min_dimension: int = DEFAULT_MIN_DIMENSION,
    max_dimension: int = MAX_DIMENSION,
) -> DimensionCalculation:
    """
    Bring a requested target size inside [min_dimension, max_dimension].

    The maximum is applied first; the minimum is checked afterwards and scales
    the target up until its smaller side reaches `min_dimension`.
    """
    if original_width <= 0 or original_height <= 0:
        return _invalid(original_width, original_height)
    if target_width <= 0 or target_height <= 0:
        return _invalid(original_width, original_height)

    target_width, target_height, _ = _clamp_to_max(target_width, target_height, max_dimension)

    if target_width < min_dimension or target_height < min_dimension:
        scale = min_dimension / min(target_width, target_height)
        target_width = _round_half_up(target_width * scale)
        target_height = _round_half_up(target_height * scale)

    return DimensionCalculation(
        target_width=target_width,
        target_height=target_height,
        upscale_factor=min(target_width / original_width, target_height / original_height),
        original_width=original_width,
        original_height=original_height,
    )
