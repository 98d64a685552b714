"""Characteristic payload builders for micro:bit writes.

All multi-byte fields are little-endian.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable

from ..models.led_matrix import MATRIX_SIZE, LedMatrix
from ..models.pins import PIN_COUNT, PWMOutput

MAX_TEXT_LENGTH = 20  # LED text characteristic holds up to 20 characters


def _in_pin_range(pin: int) -> bool:
    return 0 <= pin < PIN_COUNT


def build_period_payload(milliseconds: int) -> bytes:
    """Build a sensor period / scroll delay payload.

    Format:
        [ms:2] uint16 little-endian
    """
    if not 0 <= milliseconds <= 0xFFFF:
        raise ValueError(f"period out of range: {milliseconds} (must be 0-65535)")
    return struct.pack("<H", milliseconds)


def build_scroll_delay_payload(milliseconds: int) -> bytes:
    """Build the LED scrolling delay payload (uint16 little-endian)."""
    return build_period_payload(milliseconds)


def build_led_matrix_payload(matrix: LedMatrix | bytes | Iterable[int]) -> bytes:
    """Build the 5-byte LED matrix payload.

    Args:
        matrix: LedMatrix, or at least 5 row bytes (extra rows are ignored)

    Returns:
        One byte per row, bits 4..0 = columns left to right
    """
    if isinstance(matrix, LedMatrix):
        return matrix.to_bytes()

    rows = bytes(matrix)
    if len(rows) < MATRIX_SIZE:
        raise ValueError(f"LED matrix needs {MATRIX_SIZE} rows, got {len(rows)}")
    return bytes(row & 0x1F for row in rows[:MATRIX_SIZE])


def filter_ascii(text: str) -> str:
    """Drop every non-ASCII character."""
    return "".join(char for char in text if char.isascii())


def build_led_text_payload(text: str) -> bytes:
    """Build the LED text payload: ASCII only, at most 20 characters."""
    return filter_ascii(text)[:MAX_TEXT_LENGTH].encode("ascii")


def build_pin_mask_payload(pins: Iterable[int]) -> bytes:
    """Build an IO/AD configuration bitmask.

    Each listed pin sets bit ``1 << pin``; unlisted pins stay 0 (output for
    the IO configuration, digital for the AD configuration). Pins outside
    0-19 are ignored.

    Format:
        [mask:4] uint32 little-endian
    """
    mask = 0
    for pin in pins:
        if _in_pin_range(pin):
            mask |= 1 << pin
    return struct.pack("<I", mask)


def build_pin_output_payload(pins: Iterable[tuple[int, int]]) -> bytes:
    """Build a digital output payload.

    Format:
        [pin:1][value:1] repeated, value is 0 or 1
    """
    payload = bytearray()
    for pin, value in pins:
        if _in_pin_range(pin):
            payload += bytes((pin, 1 if value else 0))
    return bytes(payload)


def build_pwm_payload(outputs: Iterable[PWMOutput | tuple[int, int, int]]) -> bytes:
    """Build a PWM control payload.

    Format:
        [pin:1][value:2][period:4] repeated
        - value: high level width 0-1024 (uint16 LE)
        - period: pulse period in microseconds (uint32 LE)
    """
    payload = bytearray()
    for output in outputs:
        if not isinstance(output, PWMOutput):
            output = PWMOutput(*output)
        if _in_pin_range(output.pin):
            payload += struct.pack("<BHI", output.pin, output.value, output.period)
    return bytes(payload)
