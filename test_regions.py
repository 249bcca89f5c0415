"""
Tests for region extraction and stitching.

Images are generated in memory and encoded as PNG so every comparison is
pixel-exact.
"""

import logging
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from composition_engine.models.geometry import BoundingBox, Resolution
from composition_engine.services.errors import (
    CompositeFailedError,
    ErrorKind,
    ExtractFailedError,
    ImageProcessingError,
    InvalidBoundsError,
)
from composition_engine.services.regions import (
    extract_bounding_box,
    extract_region,
    get_image_dimensions,
    replace_region,
    resize_image,
    stitch_tile_back,
)

logger = logging.getLogger(__name__)


def _png(array: np.ndarray) -> bytes:
    buffer = BytesIO()
    Image.fromarray(array).save(buffer, format="PNG")
    return buffer.getvalue()


def _pixels(data: bytes) -> np.ndarray:
    return np.array(Image.open(BytesIO(data)))


def _noise(height: int, width: int, channels: int = 3, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)


def _solid(height: int, width: int, color) -> np.ndarray:
    array = np.zeros((height, width, len(color)), dtype=np.uint8)
    array[:, :] = color
    return array


def test_get_image_dimensions():
    assert get_image_dimensions(_png(_noise(48, 64))) == (64, 48)


def test_get_image_dimensions_rejects_garbage():
    with pytest.raises(ImageProcessingError) as exc_info:
        get_image_dimensions(b"definitely not an image")
    assert exc_info.value.kind == ErrorKind.DIMENSIONS_UNAVAILABLE


def test_resize_image_exact_dimensions():
    resized = resize_image(_png(_noise(48, 64)), 30, 90)
    assert get_image_dimensions(resized) == (30, 90)


def test_base_error_has_neutral_kind():
    error = ImageProcessingError("boom")
    assert error.kind == ErrorKind.PROCESSING_FAILED
    assert error.to_dict() == {"kind": "processing_failed", "message": "boom", "context": {}}

    tagged = ImageProcessingError("resize broke", kind=ErrorKind.RESIZE_FAILED)
    assert tagged.kind == ErrorKind.RESIZE_FAILED


def test_extract_region_crops_exact_pixels():
    source = _noise(48, 64)
    box = BoundingBox(left=10, top=5, width=20, height=30)

    tile = _pixels(extract_region(_png(source), box))

    assert tile.shape == (30, 20, 3)
    assert np.array_equal(tile, source[5:35, 10:30])


def test_extract_region_resizes_to_target():
    tile = extract_region(
        _png(_noise(48, 64)),
        BoundingBox(left=0, top=0, width=32, height=32),
        resize_to=Resolution(width=100, height=60),
    )
    assert get_image_dimensions(tile) == (100, 60)


def test_extract_region_out_of_bounds_fails():
    with pytest.raises(ExtractFailedError) as exc_info:
        extract_region(_png(_noise(48, 64)), BoundingBox(left=50, top=0, width=20, height=10))
    assert exc_info.value.kind == ErrorKind.EXTRACT_FAILED
    assert exc_info.value.context["image_width"] == 64


def test_extract_region_corrupt_source_fails():
    with pytest.raises(ExtractFailedError):
        extract_region(b"\x89PNG\r\n\x1a\nbroken", BoundingBox(left=0, top=0, width=1, height=1))


def test_extract_then_replace_round_trip():
    """Pasting an extracted tile back reproduces the original exactly."""
    source = _noise(48, 64, seed=11)
    box = BoundingBox(left=12, top=9, width=25, height=17)

    tile = extract_region(_png(source), box)
    result = _pixels(replace_region(_png(source), tile, box, resize_tile=False))

    assert np.array_equal(result, source)
    logger.info("✓ Extract/replace round trip is lossless")


def test_replace_region_overwrites_only_the_box():
    source = _noise(48, 64, seed=3)
    box = BoundingBox(left=8, top=4, width=16, height=12)
    tile = _png(_solid(12, 16, (255, 0, 0)))

    result = _pixels(replace_region(_png(source), tile, box))

    assert result.shape == source.shape
    assert np.all(result[4:16, 8:24] == (255, 0, 0))

    outside = np.ones(source.shape[:2], dtype=bool)
    outside[4:16, 8:24] = False
    assert np.array_equal(result[outside], source[outside])


def test_replace_region_does_not_blend_transparent_tiles():
    """A translucent tile still overwrites the covered pixels."""
    source = _solid(20, 20, (0, 0, 255, 255))
    tile = _png(_solid(5, 5, (255, 255, 255, 0)))

    result = _pixels(replace_region(_png(source), tile, BoundingBox(left=0, top=0, width=5, height=5)))

    assert np.all(result[0:5, 0:5] == (255, 255, 255, 0))
    assert np.all(result[5:, 5:] == (0, 0, 255, 255))


def test_replace_region_keeps_base_mode():
    base = _solid(20, 20, (10, 20, 30, 200))
    tile = _png(_solid(4, 4, (1, 2, 3)))

    result = _pixels(replace_region(_png(base), tile, BoundingBox(left=2, top=2, width=4, height=4)))

    assert result.shape == (20, 20, 4)
    assert np.all(result[2:6, 2:6] == (1, 2, 3, 255))
    assert np.all(result[10:, 10:] == (10, 20, 30, 200))


def test_replace_region_tile_too_large_fails():
    with pytest.raises(CompositeFailedError) as exc_info:
        replace_region(
            _png(_noise(48, 64)),
            _png(_noise(20, 20)),
            BoundingBox(left=50, top=40, width=20, height=20),
        )
    assert exc_info.value.kind == ErrorKind.COMPOSITE_FAILED


def test_replace_region_corrupt_tile_fails():
    with pytest.raises(CompositeFailedError):
        replace_region(_png(_noise(48, 64)), b"junk", BoundingBox(left=0, top=0, width=4, height=4))


@pytest.mark.parametrize(
    "box",
    [
        BoundingBox(left=0.5, top=0, width=3.9, height=2),
        BoundingBox(left=2, top=0.7, width=4, height=4),
        BoundingBox(left=0, top=0, width=4, height=4.2),
    ],
)
def test_extract_region_rejects_fractional_box(box):
    with pytest.raises(ExtractFailedError) as exc_info:
        extract_region(_png(_noise(20, 20)), box)
    assert exc_info.value.kind == ErrorKind.EXTRACT_FAILED
    assert "must be integers" in exc_info.value.message


def test_extract_region_accepts_integral_floats():
    source = _noise(20, 20)
    tile = _pixels(extract_region(_png(source), BoundingBox(left=2.0, top=3.0, width=4.0, height=5.0)))
    assert np.array_equal(tile, source[3:8, 2:6])


def test_replace_region_rejects_fractional_box():
    with pytest.raises(CompositeFailedError) as exc_info:
        replace_region(
            _png(_noise(20, 20)),
            _png(_solid(4, 4, (255, 255, 255))),
            BoundingBox(left=2.5, top=0, width=4, height=4),
        )
    assert exc_info.value.kind == ErrorKind.COMPOSITE_FAILED


def test_fractional_box_is_rejected_before_decoding():
    with pytest.raises(CompositeFailedError) as exc_info:
        replace_region(b"junk", b"junk", BoundingBox(left=0, top=0, width=4, height=3.5))
    assert "must be integers" in exc_info.value.message


def test_stitch_tile_back_rejects_fractional_box():
    base = _solid(20, 20, (0, 0, 0))

    with pytest.raises(CompositeFailedError):
        stitch_tile_back(
            _png(base),
            _png(_solid(4, 4, (255, 255, 255))),
            BoundingBox(left=2.5, top=0.7, width=4, height=4),
        )
    logger.info("✓ Fractional stitch box rejected instead of truncated")


def test_stitch_tile_back_resizes_generated_tile():
    source = _noise(48, 64, seed=5)
    box = BoundingBox(left=16, top=8, width=24, height=18)
    # Generated tiles come back at the model resolution, not the box size.
    generated = _png(_solid(128, 128, (0, 200, 0)))

    result = _pixels(stitch_tile_back(_png(source), generated, box))

    assert result.shape == source.shape
    assert np.all(result[8:26, 16:40] == (0, 200, 0))
    assert np.array_equal(result[0:8], source[0:8])
    assert np.array_equal(result[26:], source[26:])


def test_extract_bounding_box_resizes_to_model_resolution():
    image = _png(_solid(200, 200, (90, 60, 30)))
    box = BoundingBox(left=10, top=10, width=100, height=100)

    extracted = extract_bounding_box(image, box)

    assert extracted.aspect_ratio == "1:1"
    assert extracted.tier_label == "1K"
    assert extracted.needs_resize is True
    assert extracted.fitted_box == box
    assert get_image_dimensions(extracted.tile) == (1024, 1024)


def test_extract_bounding_box_without_resize():
    source = np.zeros((1100, 1100, 3), dtype=np.uint8)
    source[20:1044, 10:1034] = (40, 80, 120)
    box = BoundingBox(left=10, top=20, width=1024, height=1024)

    extracted = extract_bounding_box(_png(source), box)

    assert extracted.needs_resize is False
    assert extracted.fitted_box == box
    tile = _pixels(extracted.tile)
    assert tile.shape == (1024, 1024, 3)
    assert np.all(tile == (40, 80, 120))


def test_extract_bounding_box_validates_first():
    with pytest.raises(InvalidBoundsError):
        extract_bounding_box(_png(_noise(48, 64)), BoundingBox(left=0, top=0, width=65, height=10))


def test_extract_bounding_box_fitted_region_outside_image():
    """A 2:1 box filling the image fits to 16:9, which is taller than the image."""
    image = _png(_solid(500, 1000, (0, 0, 0)))

    with pytest.raises(ExtractFailedError):
        extract_bounding_box(image, BoundingBox(left=0, top=0, width=1000, height=500))
