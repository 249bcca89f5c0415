"""
Tests for the ratio/resolution catalog and nearest-ratio matching.
"""

import logging

import pytest

from composition_engine.services.catalog import (
    RESOLUTION_TIERS,
    SUPPORTED_RATIOS,
    get_tier,
    nearest_ratio,
    select_tier,
)

logger = logging.getLogger(__name__)


def test_catalog_shape():
    """Every tier lists one resolution per ratio, ordered by pixel budget."""
    assert [r.label for r in SUPPORTED_RATIOS] == [
        "1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9",
    ]
    assert [t.label for t in RESOLUTION_TIERS] == ["1K", "2K", "4K"]
    for tier in RESOLUTION_TIERS:
        assert len(tier.resolutions) == len(SUPPORTED_RATIOS)

    maxima = [t.max_pixels for t in RESOLUTION_TIERS]
    assert maxima == sorted(maxima)
    # 1200x896, 1792x2400 and 3584x4800 are the largest entries of each tier.
    assert maxima == [1200 * 896, 1792 * 2400, 3584 * 4800]
    logger.info("✓ Catalog tables are index-aligned")


def test_resolutions_follow_their_ratio():
    """Each resolution is oriented the same way as its ratio."""
    for tier in RESOLUTION_TIERS:
        for ratio, resolution in zip(SUPPORTED_RATIOS, tier.resolutions):
            if ratio.ratio_w == ratio.ratio_h:
                assert resolution.width == resolution.height
            else:
                assert (resolution.width > resolution.height) == (ratio.ratio_w > ratio.ratio_h)


def test_select_tier_boundaries():
    one_k_max = get_tier("1K").max_pixels
    two_k_max = get_tier("2K").max_pixels

    assert select_tier(1).label == "1K"
    assert select_tier(one_k_max).label == "1K"
    assert select_tier(one_k_max + 1).label == "2K"
    assert select_tier(two_k_max).label == "2K"
    assert select_tier(two_k_max + 1).label == "4K"
    # Anything larger than the 4K budget falls back to 4K.
    assert select_tier(100_000 * 100_000).label == "4K"
    logger.info("✓ Tier selection honours max-pixel thresholds")


def test_get_tier_unknown_label():
    with pytest.raises(KeyError):
        get_tier("8K")


def test_nearest_ratio_exact_match():
    match = nearest_ratio(1024, 1024)
    assert match.ratio.label == "1:1"
    assert (match.resolution.width, match.resolution.height) == (1024, 1024)
    assert match.tier_label == "1K"


def test_nearest_ratio_picks_tier_from_pixel_count():
    match = nearest_ratio(1920, 1080)
    assert match.ratio.label == "16:9"
    assert match.tier_label == "2K"
    assert (match.resolution.width, match.resolution.height) == (2752, 1536)


def test_nearest_ratio_wide_region():
    match = nearest_ratio(3000, 1000)
    assert match.ratio.label == "21:9"
    assert (match.resolution.width, match.resolution.height) == (3168, 1344)


def test_nearest_ratio_portrait():
    match = nearest_ratio(500, 1000)
    assert match.ratio.label == "9:16"
    assert (match.resolution.width, match.resolution.height) == (768, 1376)


def test_nearest_ratio_tie_prefers_lower_index():
    """1.125 sits exactly between 1:1 (index 0) and 5:4 (index 6)."""
    match = nearest_ratio(1125, 1000)
    assert match.ratio.label == "1:1"
    logger.info("✓ Ties resolve to the first listed ratio")
