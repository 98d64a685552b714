"""Data models for micro:bit devices."""

from .commands import (
    Command,
    ConfigureAnalogPins,
    ConfigureInputPins,
    Connect,
    Disconnect,
    DisplayMatrix,
    DisplayText,
    OutputDigital,
    OutputPWM,
    SetAccelerometerPeriod,
    SetMagnetometerPeriod,
    SetScrollDelay,
    Wait,
)
from .enums import (
    LINKED_STATES,
    AdapterState,
    ButtonState,
    PeripheralState,
    SensingPeriod,
    Service,
)
from .led_matrix import LedMatrix
from .pins import MAX_PWM_VALUE, PIN_COUNT, PinValue, PWMOutput
from .sensors import SENSOR_SCALE, Vector3

__all__ = [
    "AdapterState",
    "ButtonState",
    "Command",
    "ConfigureAnalogPins",
    "ConfigureInputPins",
    "Connect",
    "Disconnect",
    "DisplayMatrix",
    "DisplayText",
    "LedMatrix",
    "LINKED_STATES",
    "MAX_PWM_VALUE",
    "OutputDigital",
    "OutputPWM",
    "PeripheralState",
    "PIN_COUNT",
    "PinValue",
    "PWMOutput",
    "SENSOR_SCALE",
    "SensingPeriod",
    "Service",
    "SetAccelerometerPeriod",
    "SetMagnetometerPeriod",
    "SetScrollDelay",
    "Vector3",
    "Wait",
]
