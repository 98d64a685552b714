"""Characteristic value decoding."""

from __future__ import annotations

import struct

from ..exceptions import InvalidResponseError
from ..models.enums import ButtonState
from ..models.pins import PIN_COUNT, PinValue


def _require_length(data: bytes, length: int, what: str) -> None:
    if len(data) < length:
        raise InvalidResponseError(
            f"{what} too short: {len(data)} bytes (need {length})"
        )


def parse_string(data: bytes) -> str:
    """Decode a UTF-8 string characteristic (device information)."""
    return bytes(data).decode("utf-8", errors="replace")


def parse_uint8(data: bytes) -> int:
    _require_length(data, 1, "uint8 value")
    return data[0]


def parse_int8(data: bytes) -> int:
    """Decode a signed 8-bit value (temperature in degrees Celsius)."""
    _require_length(data, 1, "int8 value")
    return struct.unpack_from("<b", data)[0]


def parse_uint16(data: bytes) -> int:
    """Decode a little-endian uint16 (periods, bearing, scroll delay)."""
    _require_length(data, 2, "uint16 value")
    return struct.unpack_from("<H", data)[0]


def parse_int16_triple(data: bytes) -> tuple[int, int, int]:
    """Decode accelerometer/magnetometer data.

    Format: [x:2][y:2][z:2] signed little-endian
    """
    _require_length(data, 6, "Sensor data")
    return struct.unpack_from("<hhh", data)


def parse_byte_list(data: bytes) -> list[int]:
    return list(bytes(data))


def parse_button_state(data: bytes) -> ButtonState:
    """Decode a button state byte: 0 = off, 1 = pressed, 2 = long press."""
    raw = parse_uint8(data)
    try:
        return ButtonState(raw)
    except ValueError as e:
        raise InvalidResponseError(f"Unknown button state: {raw}") from e


def parse_pin_values(data: bytes) -> list[PinValue] | None:
    """Decode IO pin data into (pin, value) pairs.

    Returns:
        List of pin values, or None when the payload has an odd length
    """
    if len(data) % 2:
        return None
    return [PinValue(pin=data[i], value=data[i + 1]) for i in range(0, len(data), 2)]


def parse_pin_mask(data: bytes) -> list[int]:
    """Decode a 32-bit IO/AD configuration mask into the list of set pins."""
    _require_length(data, 4, "Pin configuration")
    mask = struct.unpack_from("<I", data)[0]
    return [pin for pin in range(PIN_COUNT) if mask & (1 << pin)]
