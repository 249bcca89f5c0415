"""
Resolution and aspect-ratio catalog for the downstream image model.

The model only accepts ten aspect ratios, each at a fixed size per pixel-budget
tier. These tables mirror the model's accepted inputs and are constants, not
runtime configuration.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from composition_engine.models.geometry import NearestRatio, RatioEntry, Resolution, ResolutionTier


logger = logging.getLogger(__name__)


SUPPORTED_RATIOS: Tuple[RatioEntry, ...] = (
    RatioEntry(1, 1),
    RatioEntry(2, 3),
    RatioEntry(3, 2),
    RatioEntry(3, 4),
    RatioEntry(4, 3),
    RatioEntry(4, 5),
    RatioEntry(5, 4),
    RatioEntry(9, 16),
    RatioEntry(16, 9),
    RatioEntry(21, 9),
)


def _tier(label: str, sizes: List[Tuple[int, int]]) -> ResolutionTier:
    if len(sizes) != len(SUPPORTED_RATIOS):
        raise ValueError(f"Tier {label} must list exactly {len(SUPPORTED_RATIOS)} resolutions")
    return ResolutionTier(
        label=label,
        resolutions=tuple(Resolution(width=w, height=h) for w, h in sizes),
    )


# Ordered smallest to largest; selection relies on this order.
RESOLUTION_TIERS: Tuple[ResolutionTier, ...] = (
    _tier(
        "1K",
        [
            (1024, 1024),
            (848, 1264),
            (1264, 848),
            (896, 1200),
            (1200, 896),
            (928, 1152),
            (1152, 928),
            (768, 1376),
            (1376, 768),
            (1584, 672),
        ],
    ),
    _tier(
        "2K",
        [
            (2048, 2048),
            (1696, 2528),
            (2528, 1696),
            (1792, 2400),
            (2400, 1792),
            (1856, 2304),
            (2304, 1856),
            (1536, 2752),
            (2752, 1536),
            (3168, 1344),
        ],
    ),
    _tier(
        "4K",
        [
            (4096, 4096),
            (3392, 5056),
            (5056, 3392),
            (3584, 4800),
            (4800, 3584),
            (3712, 4608),
            (4608, 3712),
            (3072, 5504),
            (5504, 3072),
            (6336, 2688),
        ],
    ),
)

_TIERS_BY_LABEL: Dict[str, ResolutionTier] = {tier.label: tier for tier in RESOLUTION_TIERS}

# Upper bound on any single output dimension the model produces.
MAX_DIMENSION = 8192


def get_tier(label: str) -> ResolutionTier:
    """Look a tier up by its label ("1K", "2K", "4K"). Raises KeyError if unknown."""
    return _TIERS_BY_LABEL[label]


def supported_ratios() -> List[RatioEntry]:
    return list(SUPPORTED_RATIOS)


def select_tier(pixel_count: int) -> ResolutionTier:
    """
    Pick the smallest tier able to hold `pixel_count` pixels.

    A tier holds a region when its largest resolution has at least as many
    pixels. Anything bigger than the 4K budget still maps to 4K.
    """
    for tier in RESOLUTION_TIERS:
        if pixel_count <= tier.max_pixels:
            return tier
    return RESOLUTION_TIERS[-1]


def nearest_ratio(width: float, height: float) -> NearestRatio:
    """
    Match an arbitrary size to the closest supported ratio and its resolution.

    Distance is the absolute difference between ratio values. On ties the entry
    listed first in `SUPPORTED_RATIOS` wins.
    """
    current_ratio = width / height
    tier = select_tier(width * height)

    best_index = 0
    best_diff = abs(SUPPORTED_RATIOS[0].value - current_ratio)
    for index, ratio in enumerate(SUPPORTED_RATIOS[1:], start=1):
        diff = abs(ratio.value - current_ratio)
        if diff < best_diff:
            best_index = index
            best_diff = diff

    match = NearestRatio(
        ratio=SUPPORTED_RATIOS[best_index],
        resolution=tier.resolutions[best_index],
        tier_label=tier.label,
    )
    logger.debug(
        "Nearest ratio for %sx%s (%.4f): %s at %sx%s [%s]",
        width,
        height,
        current_ratio,
        match.ratio.label,
        match.resolution.width,
        match.resolution.height,
        match.tier_label,
    )
    return match
