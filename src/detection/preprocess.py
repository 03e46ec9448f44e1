"""
Frame preprocessing for document boundary detection.

Downscales, grayscales, blurs and binarizes a frame so that edge detection
sees a normalized, low-noise image whatever the capture lighting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from models.config import PreprocessConfig
from models.errors import InvalidInput


# cv2 conversion codes per supported channel layout
_TO_GRAY = {
    "BGR": cv2.COLOR_BGR2GRAY,
    "RGB": cv2.COLOR_RGB2GRAY,
    "BGRA": cv2.COLOR_BGRA2GRAY,
    "RGBA": cv2.COLOR_RGBA2GRAY,
}


@dataclass(frozen=True)
class PreprocessResult:
    """
    Binarized working image.

    Attributes:
        binary: Single-channel uint8 image, 0 or 255.
        scale: Factor from source pixels to working pixels (<= 1.0).
    """
    binary: np.ndarray
    scale: float


def validate_image(image: Optional[np.ndarray]) -> np.ndarray:
    """Raise InvalidInput unless image is a non-empty 2-D or 3-D array."""
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise InvalidInput("Input image is empty")
    if image.ndim not in (2, 3) or image.shape[0] <= 0 or image.shape[1] <= 0:
        raise InvalidInput(f"Unsupported image shape {image.shape}")
    return image


def to_uint8(image: np.ndarray) -> np.ndarray:
    """
    Min-max stretch an integer, float or bool image to uint8.

    Raises:
        InvalidInput: If the dtype is not numeric or the image holds NaN/inf.
    """
    if image.dtype == np.uint8:
        return image
    if not (image.dtype == np.bool_ or np.issubdtype(image.dtype, np.integer)
            or np.issubdtype(image.dtype, np.floating)):
        raise InvalidInput(f"Unsupported image dtype {image.dtype}")
    data = image.astype(np.float64)
    if not np.isfinite(data).all():
        raise InvalidInput("Image contains non-finite values")
    lo, hi = float(data.min()), float(data.max())
    if hi <= lo:
        return np.zeros(image.shape, dtype=np.uint8)
    return np.round((data - lo) * (255.0 / (hi - lo))).astype(np.uint8)


def to_grayscale(image: np.ndarray, channel_order: str = "BGR") -> np.ndarray:
    """Convert any supported layout to a single-channel image."""
    if image.ndim == 2:
        return image
    channels = image.shape[2]
    if channels == 1:
        return image[:, :, 0]
    if channel_order == "GRAY":
        channel_order = "BGR"
    if channels == 4 and len(channel_order) == 3:
        channel_order += "A"
    elif channels == 3 and len(channel_order) == 4:
        channel_order = channel_order[:3]
    code = _TO_GRAY.get(channel_order)
    if code is None:
        raise InvalidInput(f"Unsupported channel order {channel_order!r}")
    return cv2.cvtColor(image, code)


class Preprocessor:
    """Downscale, grayscale, Gaussian blur and Otsu binarization."""

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()

    def downscale(self, image: np.ndarray) -> tuple:
        """
        Shrink so the larger side is at most max_dimension.

        Returns:
            (resized_image, scale) with scale == 1.0 when no resize happened.
        """
        h, w = image.shape[:2]
        scale = self.config.max_dimension / float(max(w, h))
        if scale < 1.0:
            resized = cv2.resize(image, (0, 0), fx=scale, fy=scale, interpolation=cv2.INTER_AREA)
            return resized, scale
        return image, 1.0

    def process(self, image: np.ndarray, channel_order: str = "BGR") -> PreprocessResult:
        """
        Produce the binarized working image.

        Args:
            image: Source image; never modified.
            channel_order: Channel layout of image.

        Raises:
            InvalidInput: If the image is empty or malformed.
        """
        image = validate_image(image)
        resized, scale = self.downscale(to_uint8(image))
        gray = to_grayscale(resized, channel_order)

        k = self.config.blur_kernel
        blurred = cv2.GaussianBlur(gray, (k, k), self.config.blur_sigma)

        _, binary = cv2.threshold(blurred, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        logging.debug(f"Preprocessed {image.shape[1]}x{image.shape[0]} at scale {scale:.3f}")
        return PreprocessResult(binary=binary, scale=scale)
