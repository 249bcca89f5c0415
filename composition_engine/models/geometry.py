from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True)
class BoundingBox:
    """
    Rectangular region in the pixel space of a specific image.

    A box carries no reference to its image; callers pair the two explicitly
    and run the validator before any pixel work.
    """

    left: int
    top: int
    width: int
    height: int

    def as_dict(self) -> dict:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class RatioEntry:
    """One canonical aspect ratio supported by the downstream image model."""

    ratio_w: int
    ratio_h: int

    @property
    def value(self) -> float:
        return self.ratio_w / self.ratio_h

    @property
    def label(self) -> str:
        return f"{self.ratio_w}:{self.ratio_h}"


@dataclass(frozen=True, slots=True)
class Resolution:
    width: int
    height: int

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True, slots=True)
class ResolutionTier:
    """
    Pixel-budget tier ("1K", "2K", "4K").

    `resolutions` is index-aligned with the ratio table: resolution *i* is the
    concrete size of ratio *i* within this tier.
    """

    label: str
    resolutions: Tuple[Resolution, ...]

    @property
    def max_pixels(self) -> int:
        return max(resolution.pixel_count for resolution in self.resolutions)


@dataclass(frozen=True, slots=True)
class NearestRatio:
    """Result of matching an arbitrary size against the ratio catalog."""

    ratio: RatioEntry
    resolution: Resolution
    tier_label: str


@dataclass(slots=True)
class FittedBoundingBox:
    """
    Bounding box snapped to the nearest supported aspect ratio.

    Produced by the fitter and consumed straight away by the extractor; it is
    never persisted.
    """

    left: int
    top: int
    width: int
    height: int
    # Ratio label such as "16:9".
    aspect_ratio: str
    # Concrete model resolution for the matched ratio and tier.
    resolution: Resolution
    tier_label: str
    # True when the fitted crop must be resized to reach `resolution`.
    needs_resize: bool

    def to_bounding_box(self) -> BoundingBox:
        return BoundingBox(left=self.left, top=self.top, width=self.width, height=self.height)


@dataclass(slots=True)
class ExtractedRegion:
    """A tile cut out of a larger composition, plus the geometry used to cut it."""

    tile: bytes
    aspect_ratio: str
    tier_label: str
    resolution: Resolution
    needs_resize: bool
    fitted_box: BoundingBox


@dataclass(slots=True)
class DimensionCalculation:
    """
    Upscale target for a source image.

    Non-positive source sizes yield the all-zero sentinel instead of raising;
    check `is_valid` before using the targets.
    """

    target_width: int
    target_height: int
    upscale_factor: float
    original_width: int
    original_height: int

    @property
    def is_valid(self) -> bool:
        return self.target_width > 0 and self.target_height > 0 and self.upscale_factor > 0


@dataclass(slots=True)
class MaskStatistics:
    """Pixel statistics gathered while turning a stroke mask into alpha."""

    width: int
    height: int
    alpha_min: int
    alpha_max: int
    alpha_mean: float
    # Pixels with alpha < 128, i.e. mostly inside the regenerate area.
    transparent_pixels: int
    opaque_pixels: int
    # Pixels whose RGB was cleared because alpha != 255.
    zeroed_pixels: int = 0

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def masked_percent(self) -> float:
        if self.total_pixels == 0:
            return 0.0
        return self.transparent_pixels / self.total_pixels * 100.0
