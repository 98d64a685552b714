"""Sensor vector model."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# Raw accelerometer (milli-g) and magnetometer readings are scaled by 1000
SENSOR_SCALE = 1000.0


@dataclass(frozen=True)
class Vector3:
    """Three-axis sensor reading in physical units."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_raw(cls, raw: Sequence[int], scale: float = SENSOR_SCALE) -> Vector3:
        """Convert a raw signed 16-bit triple to physical units."""
        if len(raw) != 3:
            raise ValueError(f"Expected 3 axis values, got {len(raw)}")
        return cls(raw[0] / scale, raw[1] / scale, raw[2] / scale)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)
