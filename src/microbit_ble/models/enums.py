from __future__ import annotations

from enum import Enum, IntEnum
from typing import Final


class AdapterState(Enum):
    """Availability of the local Bluetooth radio."""
    POWERED_OFF = "powered_off"
    POWERED_ON = "powered_on"
    RESETTING = "resetting"
    UNAUTHORIZED = "unauthorized"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class PeripheralState(Enum):
    """Lifecycle of the single micro:bit connection.

    READING, WRITING, SETTING and DISCOVERING are busy states. Only one of
    them is active at a time.
    """
    IDLE = "idle"
    SCANNING = "scanning"
    CONNECTING = "connecting"
    DISCOVERING = "discovering"
    CONNECTED = "connected"
    READING = "reading"
    WRITING = "writing"
    SETTING = "setting"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"


# States in which the link to the peripheral is up
LINKED_STATES: Final[frozenset[PeripheralState]] = frozenset({
    PeripheralState.CONNECTED,
    PeripheralState.READING,
    PeripheralState.WRITING,
    PeripheralState.SETTING,
})


class Service(Enum):
    """GATT services known to the micro:bit profile."""
    DEVICE_INFORMATION = "device_information"
    TEMPERATURE = "temperature"
    BUTTON = "button"
    IOPIN = "iopin"
    LED = "led"
    MAGNETOMETER = "magnetometer"
    ACCELEROMETER = "accelerometer"


class ButtonState(IntEnum):
    """Button state reported by the button service."""
    OFF = 0
    ON = 1
    LONG = 2  # Held for more than two seconds


class SensingPeriod(IntEnum):
    """Accelerometer/magnetometer sampling periods in milliseconds."""
    ONE = 1          # 1 kHz
    TWO = 2          # 500 Hz
    FIVE = 5         # 200 Hz
    TEN = 10         # 100 Hz
    TWENTY = 20      # 50 Hz
    EIGHTY = 80      # 12.5 Hz
    ONE_SIXTY = 160  # 6.25 Hz
    SIX_FORTY = 640  # 1.5625 Hz
