"""Image reduction for the 5x5 LED matrix."""

from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from ..models.led_matrix import MATRIX_SIZE, LedMatrix

_LOGGER = logging.getLogger(__name__)


def image_to_matrix(
        image: Image.Image,
        threshold: int = 128,
        invert: bool = False,
) -> LedMatrix:
    """Reduce an image to an LED matrix pattern.

    The image is converted to greyscale, resized to 5x5 and thresholded.
    A pixel at or above the threshold lights its LED.

    Args:
        image: Source PIL Image (any mode or size)
        threshold: Brightness cut-off in 0-255 (default: 128)
        invert: Light the dark pixels instead (default: False)

    Returns:
        LedMatrix with one row per image row, leftmost pixel in bit 4

    Raises:
        ValueError: If threshold is outside 0-255
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"threshold must be in 0-255, got {threshold}")

    grey = image.convert("L")
    if grey.size != (MATRIX_SIZE, MATRIX_SIZE):
        _LOGGER.debug("Resizing %dx%d image to %dx%d", *grey.size, MATRIX_SIZE, MATRIX_SIZE)
        grey = grey.resize((MATRIX_SIZE, MATRIX_SIZE), Image.Resampling.LANCZOS)

    pixels = np.asarray(grey, dtype=np.uint8)
    lit = pixels < threshold if invert else pixels >= threshold
    return LedMatrix.from_pixels(lit.tolist())
