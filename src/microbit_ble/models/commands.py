"""Queued commands accepted by the command executor.

Commands are immutable: once enqueued they are executed as-is and
discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .pins import PWMOutput


@dataclass(frozen=True, slots=True)
class Connect:
    """Scan for, connect to and subscribe to a micro:bit."""


@dataclass(frozen=True, slots=True)
class Disconnect:
    """Disconnect from the connected micro:bit."""


@dataclass(frozen=True, slots=True)
class SetAccelerometerPeriod:
    period: int  # milliseconds


@dataclass(frozen=True, slots=True)
class SetMagnetometerPeriod:
    period: int  # milliseconds


@dataclass(frozen=True, slots=True)
class DisplayMatrix:
    matrix: bytes  # 5 row bytes


@dataclass(frozen=True, slots=True)
class SetScrollDelay:
    delay: int  # milliseconds


@dataclass(frozen=True, slots=True)
class DisplayText:
    text: str


@dataclass(frozen=True, slots=True)
class ConfigureInputPins:
    """Configure the listed pins as inputs, all others as outputs."""

    pins: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class ConfigureAnalogPins:
    """Configure the listed pins as analog, all others as digital."""

    pins: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class OutputDigital:
    pins: tuple[tuple[int, int], ...]  # (pin, value)


@dataclass(frozen=True, slots=True)
class OutputPWM:
    outputs: tuple[PWMOutput, ...]


@dataclass(frozen=True, slots=True)
class Wait:
    """Hold the queue for a while, only when connected."""

    milliseconds: int


Command = Union[
    Connect,
    Disconnect,
    SetAccelerometerPeriod,
    SetMagnetometerPeriod,
    DisplayMatrix,
    SetScrollDelay,
    DisplayText,
    ConfigureInputPins,
    ConfigureAnalogPins,
    OutputDigital,
    OutputPWM,
    Wait,
]
