"""BBC micro:bit GATT profile.

UUIDs follow the Lancaster University micro:bit Bluetooth profile:
https://lancaster-university.github.io/microbit-docs/resources/bluetooth/bluetooth_profile.html
"""

from __future__ import annotations

from typing import Final

from bleak.uuids import normalize_uuid_str

from ..models.enums import Service

# Peripheral advertises its name as "BBC micro:bit [xxxxx]" and no service UUIDs
NAME_PREFIX = "BBC micro:bit"

# Device information (Bluetooth SIG assigned numbers)
DEVICE_INFORMATION_SERVICE_UUID = "0000180A-0000-1000-8000-00805F9B34FB"
MODEL_NUMBER_UUID = "00002A24-0000-1000-8000-00805F9B34FB"
SERIAL_NUMBER_UUID = "00002A25-0000-1000-8000-00805F9B34FB"
FIRMWARE_REVISION_UUID = "00002A26-0000-1000-8000-00805F9B34FB"
HARDWARE_REVISION_UUID = "00002A27-0000-1000-8000-00805F9B34FB"
MANUFACTURER_NAME_UUID = "00002A29-0000-1000-8000-00805F9B34FB"

TEMPERATURE_SERVICE_UUID = "E95D6100-251D-470A-A062-FA1922DFA9A8"
TEMPERATURE_DATA_UUID = "E95D9250-251D-470A-A062-FA1922DFA9A8"
TEMPERATURE_PERIOD_UUID = "E95D1B25-251D-470A-A062-FA1922DFA9A8"

BUTTON_SERVICE_UUID = "E95D9882-251D-470A-A062-FA1922DFA9A8"
BUTTON_A_STATE_UUID = "E95DDA90-251D-470A-A062-FA1922DFA9A8"
BUTTON_B_STATE_UUID = "E95DDA91-251D-470A-A062-FA1922DFA9A8"

IOPIN_SERVICE_UUID = "E95D127B-251D-470A-A062-FA1922DFA9A8"
IOPIN_DATA_UUID = "E95D8D00-251D-470A-A062-FA1922DFA9A8"
IOPIN_AD_CONFIGURATION_UUID = "E95D5899-251D-470A-A062-FA1922DFA9A8"
IOPIN_IO_CONFIGURATION_UUID = "E95DB9FE-251D-470A-A062-FA1922DFA9A8"
IOPIN_PWM_CONTROL_UUID = "E95DD822-251D-470A-A062-FA1922DFA9A8"

LED_SERVICE_UUID = "E95DD91D-251D-470A-A062-FA1922DFA9A8"
LED_MATRIX_UUID = "E95D7B77-251D-470A-A062-FA1922DFA9A8"
LED_TEXT_UUID = "E95D93EE-251D-470A-A062-FA1922DFA9A8"
LED_SCROLL_DELAY_UUID = "E95D0D2D-251D-470A-A062-FA1922DFA9A8"

MAGNETOMETER_SERVICE_UUID = "E95DF2D8-251D-470A-A062-FA1922DFA9A8"
MAGNETOMETER_DATA_UUID = "E95DFB11-251D-470A-A062-FA1922DFA9A8"
MAGNETOMETER_PERIOD_UUID = "E95D386C-251D-470A-A062-FA1922DFA9A8"
MAGNETOMETER_BEARING_UUID = "E95D9715-251D-470A-A062-FA1922DFA9A8"
MAGNETOMETER_CALIBRATION_UUID = "E95DB358-251D-470A-A062-FA1922DFA9A8"

ACCELEROMETER_SERVICE_UUID = "E95D0753-251D-470A-A062-FA1922DFA9A8"
ACCELEROMETER_DATA_UUID = "E95DCA4B-251D-470A-A062-FA1922DFA9A8"
ACCELEROMETER_PERIOD_UUID = "E95DFB24-251D-470A-A062-FA1922DFA9A8"

SERVICE_IDS: Final[dict[str, Service]] = {
    DEVICE_INFORMATION_SERVICE_UUID: Service.DEVICE_INFORMATION,
    TEMPERATURE_SERVICE_UUID: Service.TEMPERATURE,
    BUTTON_SERVICE_UUID: Service.BUTTON,
    IOPIN_SERVICE_UUID: Service.IOPIN,
    LED_SERVICE_UUID: Service.LED,
    MAGNETOMETER_SERVICE_UUID: Service.MAGNETOMETER,
    ACCELEROMETER_SERVICE_UUID: Service.ACCELEROMETER,
}

# Characteristics to discover per service, in discovery order
SERVICE_CHARACTERISTICS: Final[dict[str, tuple[str, ...]]] = {
    DEVICE_INFORMATION_SERVICE_UUID: (
        MODEL_NUMBER_UUID,
        SERIAL_NUMBER_UUID,
        HARDWARE_REVISION_UUID,
        FIRMWARE_REVISION_UUID,
        MANUFACTURER_NAME_UUID,
    ),
    TEMPERATURE_SERVICE_UUID: (
        TEMPERATURE_DATA_UUID,
        TEMPERATURE_PERIOD_UUID,
    ),
    BUTTON_SERVICE_UUID: (
        BUTTON_A_STATE_UUID,
        BUTTON_B_STATE_UUID,
    ),
    IOPIN_SERVICE_UUID: (
        IOPIN_DATA_UUID,
        IOPIN_AD_CONFIGURATION_UUID,
        IOPIN_IO_CONFIGURATION_UUID,
        IOPIN_PWM_CONTROL_UUID,
    ),
    LED_SERVICE_UUID: (
        LED_MATRIX_UUID,
        LED_TEXT_UUID,
        LED_SCROLL_DELAY_UUID,
    ),
    MAGNETOMETER_SERVICE_UUID: (
        MAGNETOMETER_DATA_UUID,
        MAGNETOMETER_PERIOD_UUID,
        MAGNETOMETER_BEARING_UUID,
        MAGNETOMETER_CALIBRATION_UUID,
    ),
    ACCELEROMETER_SERVICE_UUID: (
        ACCELEROMETER_DATA_UUID,
        ACCELEROMETER_PERIOD_UUID,
    ),
}


def normalize_uuid(uuid: str) -> str:
    """Normalize a 16, 32 or 128-bit UUID string to upper-case 128-bit form.

    Bleak reports lower-case 128-bit UUIDs while the profile tables use
    upper case; every table lookup goes through this function.
    """
    return normalize_uuid_str(uuid).upper()


def service_uuids() -> list[str]:
    """Return every service UUID to discover on connect."""
    return list(SERVICE_IDS)


def service_for_uuid(uuid: str) -> Service | None:
    """Look up the service identifier for a discovered service UUID."""
    return SERVICE_IDS.get(normalize_uuid(uuid))


def characteristics_for_service(uuid: str) -> tuple[str, ...] | None:
    """Look up the characteristic UUIDs to discover for a service UUID."""
    return SERVICE_CHARACTERISTICS.get(normalize_uuid(uuid))
