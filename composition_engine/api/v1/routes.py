import base64
import binascii
import logging

from fastapi import APIRouter, HTTPException, status
from starlette.concurrency import run_in_threadpool

from composition_engine.api.v1.schemas import (
    BoundingBoxPayload,
    CatalogResponse,
    DimensionCalculationResponse,
    ExtractRequest,
    ExtractResponse,
    FittedBoundingBoxResponse,
    ImageResponse,
    MaskCombineRequest,
    RatioPayload,
    RegionBoxResponse,
    ResolutionPayload,
    StitchRequest,
    TierPayload,
    UpscaleRequest,
)
from composition_engine.models.geometry import BoundingBox
from composition_engine.services.catalog import MAX_DIMENSION, RESOLUTION_TIERS, supported_ratios
from composition_engine.services.dimensions import optimal_upscale, with_factor
from composition_engine.services.errors import ErrorKind, ImageProcessingError
from composition_engine.services.fitting import fit_to_supported_ratio
from composition_engine.services.masking import combine_mask_with_background, mask_observer_from_env
from composition_engine.services.regions import (
    extract_bounding_box,
    get_image_dimensions,
    stitch_tile_back,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")

# Caller-fixable failures map to 422; everything else is a server-side failure.
_ERROR_STATUS = {
    ErrorKind.INVALID_BOUNDS: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.MASK_COMBINE_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.DIMENSIONS_UNAVAILABLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.EXTRACT_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.COMPOSITE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.RESIZE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PROCESSING_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _decode_base64(value: str, field: str) -> bytes:
    """Decode a base64 image string, accepting `data:image/...;base64,` prefixes."""
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid `{field}` payload. Expected a base64-encoded image.",
        ) from exc
    if not data:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid `{field}` payload. Image data is empty.",
        )
    return data


def _encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def _to_box(payload: BoundingBoxPayload) -> BoundingBox:
    return BoundingBox(left=payload.left, top=payload.top, width=payload.width, height=payload.height)


def _processing_error(exc: ImageProcessingError) -> HTTPException:
    status_code = _ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("Image processing failed (%s): %s | context=%s", exc.kind.value, exc.message, exc.context)
    else:
        logger.warning("Rejected image request (%s): %s", exc.kind.value, exc.message)
    return HTTPException(status_code=status_code, detail=exc.to_dict())


async def _image_response(data: bytes) -> ImageResponse:
    width, height = await run_in_threadpool(get_image_dimensions, data)
    return ImageResponse(image=_encode_base64(data), width=width, height=height)


@router.get("/health", tags=["health"])
async def health_check() -> dict:
    """API v1 health check endpoint."""
    return {"status": "ok", "api_version": "v1"}


@router.get(
    "/ratios",
    response_model=CatalogResponse,
    tags=["catalog"],
    summary="List supported aspect ratios and resolutions",
)
async def list_ratios() -> CatalogResponse:
    """Return the model's supported ratios and, per tier, the matching resolutions."""
    return CatalogResponse(
        ratios=[
            RatioPayload(label=ratio.label, ratio_w=ratio.ratio_w, ratio_h=ratio.ratio_h)
            for ratio in supported_ratios()
        ],
        tiers=[
            TierPayload(
                label=tier.label,
                max_pixels=tier.max_pixels,
                resolutions=[ResolutionPayload.model_validate(r) for r in tier.resolutions],
            )
            for tier in RESOLUTION_TIERS
        ],
        max_dimension=MAX_DIMENSION,
    )


@router.post(
    "/regions/fit",
    response_model=FittedBoundingBoxResponse,
    tags=["regions"],
    summary="Snap a bounding box to the nearest supported ratio",
)
async def fit_region(payload: BoundingBoxPayload) -> FittedBoundingBoxResponse:
    """
    Compute the fitted geometry for a selection without touching any pixels.

    Useful for the editor to preview the region that will actually be sent to
    the image model.
    """
    fitted = fit_to_supported_ratio(_to_box(payload))
    return FittedBoundingBoxResponse.model_validate(fitted)


@router.post(
    "/regions/extract",
    response_model=ExtractResponse,
    tags=["regions"],
    summary="Extract a ratio-fitted tile from an image",
)
async def extract_region(payload: ExtractRequest) -> ExtractResponse:
    """
    Validate the selection against the image, fit it to a supported ratio and
    return the tile (resized to the model resolution when needed).
    """
    image = _decode_base64(payload.image, "image")
    try:
        extracted = await run_in_threadpool(extract_bounding_box, image, _to_box(payload.bounding_box))
    except ImageProcessingError as exc:
        raise _processing_error(exc) from exc

    return ExtractResponse(
        tile=_encode_base64(extracted.tile),
        aspect_ratio=extracted.aspect_ratio,
        tier_label=extracted.tier_label,
        resolution=ResolutionPayload.model_validate(extracted.resolution),
        needs_resize=extracted.needs_resize,
        fitted_bounding_box=RegionBoxResponse.model_validate(extracted.fitted_box),
    )


@router.post(
    "/regions/stitch",
    response_model=ImageResponse,
    tags=["regions"],
    summary="Paste a generated tile back into its composition",
)
async def stitch_region(payload: StitchRequest) -> ImageResponse:
    """The tile is resized to the bounding box before it overwrites that region."""
    original = _decode_base64(payload.original_image, "original_image")
    tile = _decode_base64(payload.generated_tile, "generated_tile")
    try:
        result = await run_in_threadpool(stitch_tile_back, original, tile, _to_box(payload.bounding_box))
        return await _image_response(result)
    except ImageProcessingError as exc:
        raise _processing_error(exc) from exc


@router.post(
    "/masks/combine",
    response_model=ImageResponse,
    tags=["masks"],
    summary="Combine a stroke mask with its background for inpainting",
)
async def combine_mask(payload: MaskCombineRequest) -> ImageResponse:
    """
    Return an RGBA PNG where the white strokes of the mask become fully
    transparent (RGB cleared) and everything else keeps the background.
    """
    background = _decode_base64(payload.background_image, "background_image")
    mask = _decode_base64(payload.mask_image, "mask_image")
    try:
        result = await run_in_threadpool(
            combine_mask_with_background,
            background,
            mask,
            mask_observer_from_env(),
        )
        return await _image_response(result)
    except ImageProcessingError as exc:
        raise _processing_error(exc) from exc


@router.post(
    "/dimensions/upscale",
    response_model=DimensionCalculationResponse,
    tags=["dimensions"],
    summary="Compute upscale target dimensions",
)
async def upscale_dimensions(payload: UpscaleRequest) -> DimensionCalculationResponse:
    """
    Non-positive source sizes are not an error: the response carries the
    all-zero result with `is_valid=false`.
    """
    if payload.upscale_factor is None:
        calculation = optimal_upscale(payload.width, payload.height, payload.max_dimension)
    else:
        calculation = with_factor(payload.width, payload.height, payload.upscale_factor, payload.max_dimension)
    return DimensionCalculationResponse.model_validate(calculation)
