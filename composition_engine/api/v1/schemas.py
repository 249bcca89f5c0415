from typing import List

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class BoundingBoxPayload(BaseModel):
    """Rectangular selection drawn in the composition editor, in image pixels."""

    model_config = ConfigDict(from_attributes=True)

    left: int = Field(..., ge=0, le=10000, description="Left offset in pixels.")
    top: int = Field(..., ge=0, le=10000, description="Top offset in pixels.")
    width: int = Field(..., ge=1, le=10000, description="Width in pixels.")
    height: int = Field(..., ge=1, le=10000, description="Height in pixels.")


class ResolutionPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    width: PositiveInt = Field(..., description="Width in pixels.")
    height: PositiveInt = Field(..., description="Height in pixels.")


class RatioPayload(BaseModel):
    label: str = Field(..., description="Ratio label, e.g. '16:9'.")
    ratio_w: PositiveInt
    ratio_h: PositiveInt


class TierPayload(BaseModel):
    label: str = Field(..., description="Pixel-budget tier: '1K', '2K' or '4K'.")
    max_pixels: PositiveInt = Field(..., description="Largest pixel count of any resolution in the tier.")
    resolutions: List[ResolutionPayload] = Field(
        default_factory=list,
        description="One resolution per supported ratio, in ratio order.",
    )


class CatalogResponse(BaseModel):
    """Supported ratios and per-tier resolutions of the image model."""

    ratios: List[RatioPayload] = Field(default_factory=list)
    tiers: List[TierPayload] = Field(default_factory=list)
    max_dimension: PositiveInt = Field(..., description="Largest output side the model accepts.")


class RegionBoxResponse(BaseModel):
    """Pixel region computed by the engine; unlike request boxes it is not capped at 10000."""

    model_config = ConfigDict(from_attributes=True)

    left: int
    top: int
    width: int
    height: int


class FittedBoundingBoxResponse(RegionBoxResponse):
    """Bounding box snapped to the nearest supported ratio."""

    aspect_ratio: str = Field(..., description="Matched ratio label, e.g. '4:3'.")
    resolution: ResolutionPayload = Field(..., description="Model resolution for the matched ratio.")
    tier_label: str = Field(..., description="Pixel-budget tier the resolution was taken from.")
    needs_resize: bool = Field(..., description="Whether the crop must be resized to `resolution`.")


class ExtractRequest(BaseModel):
    image: str = Field(..., description="Base64-encoded source image (a data URL prefix is accepted).")
    bounding_box: BoundingBoxPayload


class ExtractResponse(BaseModel):
    tile: str = Field(..., description="Base64-encoded PNG tile ready for the image model.")
    aspect_ratio: str
    tier_label: str
    resolution: ResolutionPayload
    needs_resize: bool
    fitted_bounding_box: RegionBoxResponse


class StitchRequest(BaseModel):
    original_image: str = Field(..., description="Base64-encoded composition the tile came from.")
    generated_tile: str = Field(..., description="Base64-encoded tile returned by the image model.")
    bounding_box: BoundingBoxPayload = Field(
        ...,
        description="Region to overwrite; usually the fitted box returned by /regions/extract.",
    )


class MaskCombineRequest(BaseModel):
    background_image: str = Field(..., description="Base64-encoded background image.")
    mask_image: str = Field(
        ...,
        description="Base64-encoded stroke mask: white marks the area to regenerate.",
    )


class ImageResponse(BaseModel):
    image: str = Field(..., description="Base64-encoded PNG.")
    width: PositiveInt
    height: PositiveInt


class UpscaleRequest(BaseModel):
    width: int = Field(..., description="Source width in pixels.")
    height: int = Field(..., description="Source height in pixels.")
    upscale_factor: float | None = Field(
        default=None,
        gt=0,
        description="Explicit factor; when omitted the tiered default (4x/2x/1.5x) is used.",
    )
    max_dimension: PositiveInt = Field(default=8192, description="Largest allowed output side.")


class DimensionCalculationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    target_width: int
    target_height: int
    upscale_factor: float
    original_width: int
    original_height: int
    is_valid: bool = Field(..., description="False when the source size was not positive.")
