"""IO pin values and PWM output records."""

from __future__ import annotations

from dataclasses import dataclass

# Edge connector pins addressable through the IO pin service
PIN_COUNT = 20
MAX_PWM_VALUE = 1024


def _check_u8(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} out of range: {value} (must be 0-255)")


@dataclass(frozen=True, slots=True)
class PinValue:
    """One (pin, value) pair of the IO pin data characteristic."""

    pin: int
    value: int

    def __post_init__(self) -> None:
        _check_u8("pin", self.pin)
        _check_u8("value", self.value)


@dataclass(frozen=True, slots=True)
class PWMOutput:
    """Analog (PWM) output for one pin.

    Attributes:
        pin: Output pin number
        value: High level width, 0-1024
        period: Pulse period in microseconds
    """

    pin: int
    value: int
    period: int

    def __post_init__(self) -> None:
        _check_u8("pin", self.pin)
        if not 0 <= self.value <= MAX_PWM_VALUE:
            raise ValueError(
                f"value out of range: {self.value} (must be 0-{MAX_PWM_VALUE})"
            )
        if not 0 <= self.period <= 0xFFFFFFFF:
            raise ValueError(f"period out of range: {self.period} (must fit in uint32)")
