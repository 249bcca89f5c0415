from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    """Failure categories raised by the compositing engine."""

    INVALID_BOUNDS = "invalid_bounds"
    EXTRACT_FAILED = "extract_failed"
    COMPOSITE_FAILED = "composite_failed"
    MASK_COMBINE_FAILED = "mask_combine_failed"
    DIMENSIONS_UNAVAILABLE = "dimensions_unavailable"
    RESIZE_FAILED = "resize_failed"
    PROCESSING_FAILED = "processing_failed"


class ImageProcessingError(RuntimeError):
    """
    Raised when an image operation cannot run.

    Every error carries a human-readable message and a structured `context`
    payload (box, sizes, flags) so callers can log or surface it without
    parsing the message.
    """

    kind: ErrorKind = ErrorKind.PROCESSING_FAILED

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "context": self.context}


class InvalidBoundsError(ImageProcessingError):
    """Bounding box is negative, zero-sized, fractional or outside the image."""

    kind = ErrorKind.INVALID_BOUNDS


class ExtractFailedError(ImageProcessingError):
    """Cropping (and optional resize) of a region failed."""

    kind = ErrorKind.EXTRACT_FAILED


class CompositeFailedError(ImageProcessingError):
    """Pasting a tile back into its base image failed."""

    kind = ErrorKind.COMPOSITE_FAILED


class MaskCombineFailedError(ImageProcessingError):
    """Mask or background could not be decoded or sized."""

    kind = ErrorKind.MASK_COMBINE_FAILED
