"""micro:bit BLE controller package.

  Pure Python package for controlling a BBC micro:bit over Bluetooth LE.
  """

from .controller import FACADE_MAX_PIN, MAX_PWM_OUTPUTS, MicrobitController
from .device import MicrobitDevice
from .discovery import discover_devices
from .encoding import image_to_matrix
from .exceptions import (
    AdapterError,
    BLEConnectionError,
    BLETimeoutError,
    BusyError,
    CanceledToConnectError,
    InvalidResponseError,
    MicrobitError,
    NotConnectedError,
    NotSupportedError,
    OperationFailedError,
    PoweredOffError,
    ProtocolError,
    UnauthorizedError,
    UnavailableError,
    UnknownAdapterStateError,
)
from .executor import CommandExecutor
from .models.commands import (
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
from .models.enums import (
    LINKED_STATES,
    AdapterState,
    ButtonState,
    PeripheralState,
    SensingPeriod,
    Service,
)
from .models.led_matrix import LedMatrix
from .models.pins import MAX_PWM_VALUE, PIN_COUNT, PinValue, PWMOutput
from .models.sensors import SENSOR_SCALE, Vector3
from .protocol import MAX_TEXT_LENGTH, NAME_PREFIX
from .transport import BLEConnection, BleakTransport, NotificationChannel, Transport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "MicrobitController",
    "MicrobitDevice",
    "CommandExecutor",
    "BLEConnection",
    "BleakTransport",
    "Transport",
    "NotificationChannel",
    "discover_devices",
    "image_to_matrix",
    # Exceptions
    "MicrobitError",
    "BLEConnectionError",
    "BLETimeoutError",
    "AdapterError",
    "PoweredOffError",
    "UnauthorizedError",
    "UnavailableError",
    "UnknownAdapterStateError",
    "BusyError",
    "NotConnectedError",
    "CanceledToConnectError",
    "NotSupportedError",
    "OperationFailedError",
    "ProtocolError",
    "InvalidResponseError",
    # Models - Commands
    "Command",
    "Connect",
    "Disconnect",
    "SetAccelerometerPeriod",
    "SetMagnetometerPeriod",
    "DisplayMatrix",
    "SetScrollDelay",
    "DisplayText",
    "ConfigureInputPins",
    "ConfigureAnalogPins",
    "OutputDigital",
    "OutputPWM",
    "Wait",
    # Models - State
    "AdapterState",
    "PeripheralState",
    "LINKED_STATES",
    "Service",
    "ButtonState",
    "SensingPeriod",
    "LedMatrix",
    "PinValue",
    "PWMOutput",
    "Vector3",
    # Constants
    "NAME_PREFIX",
    "PIN_COUNT",
    "MAX_PWM_VALUE",
    "MAX_TEXT_LENGTH",
    "SENSOR_SCALE",
    "FACADE_MAX_PIN",
    "MAX_PWM_OUTPUTS",
]
