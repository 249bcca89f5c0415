"""
Mask-to-alpha compositing for inpainting.

The composition editor exports a stroke mask: white where the model may
repaint, black where the image must be kept. The image model instead expects a
single RGBA image whose alpha marks what to keep (255) and what to regenerate
(0), with the colour of any non-opaque pixel cleared.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from composition_engine.models.geometry import MaskStatistics
from composition_engine.services.codec import decode_image, encode_png, resize_array
from composition_engine.services.errors import MaskCombineFailedError


logger = logging.getLogger(__name__)

DEFAULT_DEBUG_DIR = "/tmp/composition-debug"


class MaskCombineObserver:
    """
    Optional instrumentation hooks for `combine_mask_with_background`.

    The base class does nothing; subclasses override what they need. Hooks run
    synchronously inside the call and must not modify the arrays they receive.
    """

    def on_stage(self, label: str, image: np.ndarray) -> None:
        """Called with each intermediate image (L, RGB or RGBA uint8 array)."""

    def on_statistics(self, stats: MaskStatistics) -> None:
        """Called once with the alpha statistics of the finished image."""


class DebugImageObserver(MaskCombineObserver):
    """Dump every intermediate stage as a PNG and log the alpha statistics."""

    def __init__(self, output_dir: str | Path = DEFAULT_DEBUG_DIR) -> None:
        self.output_dir = Path(output_dir)

    def on_stage(self, label: str, image: np.ndarray) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{int(time.time() * 1000)}-{label}.png"
            Image.fromarray(image).save(path, "PNG")
            logger.info("Saved mask debug image: %s", path)
        except OSError as exc:
            logger.warning("Failed to save mask debug image %s: %s", label, exc)

    def on_statistics(self, stats: MaskStatistics) -> None:
        logger.info(
            "Mask alpha stats: min=%s max=%s mean=%.1f | %s transparent (%.1f%%) | "
            "%s opaque | %s zeroed | total %s",
            stats.alpha_min,
            stats.alpha_max,
            stats.alpha_mean,
            stats.transparent_pixels,
            stats.masked_percent,
            stats.opaque_pixels,
            stats.zeroed_pixels,
            stats.total_pixels,
        )


def mask_observer_from_env() -> MaskCombineObserver | None:
    """
    Build the debug observer when DEBUG_COMPOSITION_IMAGES=true.

    Images go to COMPOSITION_DEBUG_DIR (default /tmp/composition-debug).
    """
    if os.getenv("DEBUG_COMPOSITION_IMAGES", "").lower() != "true":
        return None
    return DebugImageObserver(os.getenv("COMPOSITION_DEBUG_DIR", DEFAULT_DEBUG_DIR))


def _alpha_statistics(alpha: np.ndarray, zeroed_pixels: int) -> MaskStatistics:
    height, width = alpha.shape[:2]
    transparent = int(np.count_nonzero(alpha < 128))
    return MaskStatistics(
        width=width,
        height=height,
        alpha_min=int(alpha.min()),
        alpha_max=int(alpha.max()),
        alpha_mean=float(alpha.mean()),
        transparent_pixels=transparent,
        opaque_pixels=alpha.size - transparent,
        zeroed_pixels=zeroed_pixels,
    )


def combine_mask_with_background(
    background: bytes,
    mask: bytes,
    observer: MaskCombineObserver | None = None,
) -> bytes:
    """
    Turn a stroke mask plus background into one RGBA PNG for inpainting.

    Steps:
    - drop any alpha from the background, leaving RGB
    - stretch the mask to the background size, grayscale it and invert it;
      the result is the new alpha channel (white stroke -> alpha 0)
    - join alpha onto the RGB image
    - clear R, G and B wherever alpha is not 255, partial transparency
      included, so the model never sees colour under the masked area

    Raises MaskCombineFailedError if either image cannot be decoded or sized.
    """
    try:
        background_image = decode_image(background)
        mask_image = decode_image(mask)
    except Exception as exc:  # noqa: BLE001
        raise MaskCombineFailedError(
            f"Failed to combine mask with background: {exc}",
            {"background_bytes": len(background or b""), "mask_bytes": len(mask or b"")},
        ) from exc

    width, height = background_image.size
    if not width or not height or not mask_image.width or not mask_image.height:
        raise MaskCombineFailedError(
            "Failed to combine mask with background: unable to determine image dimensions",
            {"background_size": background_image.size, "mask_size": mask_image.size},
        )

    logger.debug(
        "Combining mask %sx%s (%s) with background %sx%s (%s)",
        mask_image.width,
        mask_image.height,
        mask_image.mode,
        width,
        height,
        background_image.mode,
    )

    try:
        # Converting straight to RGB discards alpha without compositing it.
        rgb = np.array(background_image.convert("RGB"), dtype=np.uint8)
        mask_rgb = np.array(mask_image.convert("RGB"), dtype=np.uint8)
        if observer is not None:
            observer.on_stage("01-background-input", rgb)
            observer.on_stage("02-mask-input", mask_rgb)

        mask_rgb = resize_array(mask_rgb, width, height)
        gray = cv2.cvtColor(mask_rgb, cv2.COLOR_RGB2GRAY)
        alpha = cv2.bitwise_not(gray)

        combined = np.dstack([rgb, alpha])
        if observer is not None:
            observer.on_stage("03-combined-before-zero", combined.copy())

        not_opaque = alpha != 255
        combined[not_opaque, :3] = 0
        zeroed = int(np.count_nonzero(not_opaque))

        if observer is not None:
            observer.on_stage("04-final-masked-output", combined)
            observer.on_statistics(_alpha_statistics(alpha, zeroed))

        logger.debug("Zeroed RGB for %s of %s pixels", zeroed, alpha.size)
        return encode_png(combined)
    except Exception as exc:  # noqa: BLE001
        raise MaskCombineFailedError(
            f"Failed to combine mask with background: {exc}",
            {"width": width, "height": height},
        ) from exc
