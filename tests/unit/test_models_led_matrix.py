"""Test the LED matrix model."""

import pytest

from microbit_ble.models.led_matrix import LedMatrix


class TestLedMatrix:
    """Test LedMatrix construction and conversions."""

    def test_default_is_dark(self):
        """Test the default matrix has every LED off."""
        assert LedMatrix().to_bytes() == b'\x00' * 5

    def test_from_pixels_leftmost_is_bit4(self):
        """Test the leftmost column maps to bit 4."""
        pixels = [[1, 0, 0, 0, 0]] + [[0] * 5] * 3 + [[0, 0, 0, 0, 1]]
        matrix = LedMatrix.from_pixels(pixels)
        assert matrix.rows == (0x10, 0, 0, 0, 0x01)
        assert matrix.is_lit(0, 0)
        assert matrix.is_lit(4, 4)
        assert not matrix.is_lit(0, 4)

    def test_from_pattern_multiline(self):
        """Test newline separated patterns with blank lines."""
        matrix = LedMatrix.from_pattern("""
            #...#
            .#.#.
            ..X..
            .*.1.
            x...#
        """)
        assert matrix.rows == (0x11, 0x0A, 0x04, 0x0A, 0x11)

    def test_from_bytes_masks_and_requires_five(self):
        """Test parsing masks rows and requires exactly 5 bytes."""
        assert LedMatrix.from_bytes(b'\xff\x00\x00\x00\x01').rows == (0x1F, 0, 0, 0, 1)
        with pytest.raises(ValueError, match="exactly 5 bytes"):
            LedMatrix.from_bytes(b'\x00' * 4)

    def test_row_out_of_range(self):
        """Test rows above 0x1F are rejected."""
        with pytest.raises(ValueError, match="row 2 out of range"):
            LedMatrix(rows=(0, 0, 32, 0, 0))

    def test_wrong_shape(self):
        """Test row and column counts are validated."""
        with pytest.raises(ValueError, match="5 rows"):
            LedMatrix.from_pixels([[0] * 5] * 4)
        with pytest.raises(ValueError, match="row 1 needs 5 columns"):
            LedMatrix.from_pixels([[0] * 5, [0] * 4, [0] * 5, [0] * 5, [0] * 5])

    def test_is_lit_bounds(self):
        """Test positions outside the matrix raise IndexError."""
        with pytest.raises(IndexError):
            LedMatrix().is_lit(5, 0)
