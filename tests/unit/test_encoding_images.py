"""Test image reduction to the LED matrix."""

import pytest
from PIL import Image, ImageDraw

from microbit_ble.encoding.images import image_to_matrix


def test_five_by_five_threshold() -> None:
    """Bright pixels light their LED, dark ones do not."""
    image = Image.new("L", (5, 5), 0)
    image.putpixel((0, 0), 255)
    image.putpixel((4, 2), 200)
    image.putpixel((2, 4), 100)

    matrix = image_to_matrix(image)

    assert matrix.rows == (0x10, 0, 0x01, 0, 0)


def test_invert_lights_dark_pixels() -> None:
    """invert=True lights the pixels below the threshold."""
    image = Image.new("L", (5, 5), 255)
    image.putpixel((1, 1), 0)

    assert image_to_matrix(image, invert=True).rows == (0, 0x08, 0, 0, 0)


def test_large_rgb_image_is_resized() -> None:
    """Large colour images are reduced to 5x5 before thresholding."""
    image = Image.new("RGB", (50, 50), (0, 0, 0))
    ImageDraw.Draw(image).rectangle((0, 0, 49, 9), fill=(255, 255, 255))

    matrix = image_to_matrix(image)

    assert matrix.rows[0] == 0x1F
    assert matrix.rows[2:] == (0, 0, 0)


def test_threshold_range() -> None:
    """Thresholds outside 0-255 are rejected."""
    with pytest.raises(ValueError, match="threshold"):
        image_to_matrix(Image.new("L", (5, 5)), threshold=300)
