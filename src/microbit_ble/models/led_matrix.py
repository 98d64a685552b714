"""Typed 5x5 LED matrix for the LED matrix state characteristic."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

MATRIX_SIZE = 5
_ROW_MASK = (1 << MATRIX_SIZE) - 1


def _check_row(index: int, value: int) -> None:
    if not 0 <= value <= _ROW_MASK:
        raise ValueError(f"row {index} out of range: {value} (must be 0-{_ROW_MASK})")


@dataclass(frozen=True, slots=True)
class LedMatrix:
    """LED matrix state, one byte per row.

    Bits 4..0 of each row switch the LEDs of that row from left to right,
    so bit 4 is the leftmost column.
    """

    rows: tuple[int, int, int, int, int] = (0, 0, 0, 0, 0)

    def __post_init__(self) -> None:
        if len(self.rows) != MATRIX_SIZE:
            raise ValueError(f"LED matrix needs {MATRIX_SIZE} rows, got {len(self.rows)}")
        for index, value in enumerate(self.rows):
            _check_row(index, value)

    @classmethod
    def from_pixels(cls, pixels: Sequence[Sequence[bool | int]]) -> LedMatrix:
        """Build a matrix from 5 rows of 5 on/off values."""
        if len(pixels) != MATRIX_SIZE:
            raise ValueError(f"LED matrix needs {MATRIX_SIZE} rows, got {len(pixels)}")
        rows = []
        for index, row in enumerate(pixels):
            if len(row) != MATRIX_SIZE:
                raise ValueError(
                    f"row {index} needs {MATRIX_SIZE} columns, got {len(row)}"
                )
            value = 0
            for column, lit in enumerate(row):
                if lit:
                    value |= 1 << (MATRIX_SIZE - 1 - column)
            rows.append(value)
        return cls(rows=tuple(rows))

    @classmethod
    def from_pattern(cls, pattern: str) -> LedMatrix:
        """Build a matrix from a text picture.

        Rows are separated by newlines or ``|``; ``#``, ``*``, ``1`` and
        ``X`` mean lit, anything else means off::

            LedMatrix.from_pattern(".#.#.|#####|#####|.###.|..#..")
        """
        lines = [
            line.strip()
            for line in pattern.replace("|", "\n").splitlines()
            if line.strip()
        ]
        return cls.from_pixels([[char in "#*1Xx" for char in line] for line in lines])

    def is_lit(self, row: int, column: int) -> bool:
        """Return whether the LED at (row, column) is on."""
        if not (0 <= row < MATRIX_SIZE and 0 <= column < MATRIX_SIZE):
            raise IndexError(f"LED position out of range: ({row}, {column})")
        return bool(self.rows[row] & (1 << (MATRIX_SIZE - 1 - column)))

    def to_bytes(self) -> bytes:
        """Serialize to the 5-byte characteristic payload."""
        return bytes(self.rows)

    @classmethod
    def from_bytes(cls, data: bytes) -> LedMatrix:
        """Parse a 5-byte characteristic payload."""
        if len(data) != MATRIX_SIZE:
            raise ValueError(f"LED matrix must be exactly {MATRIX_SIZE} bytes, got {len(data)}")
        return cls(rows=tuple(b & _ROW_MASK for b in data))
