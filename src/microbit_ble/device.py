"""Typed access to the micro:bit GATT profile."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from .exceptions import InvalidResponseError
from .models.enums import ButtonState
from .models.led_matrix import LedMatrix
from .models.pins import PinValue, PWMOutput
from .protocol import profile
from .protocol.commands import (
    build_led_matrix_payload,
    build_led_text_payload,
    build_period_payload,
    build_pin_mask_payload,
    build_pin_output_payload,
    build_pwm_payload,
    build_scroll_delay_payload,
)
from .protocol.responses import (
    parse_button_state,
    parse_byte_list,
    parse_int8,
    parse_int16_triple,
    parse_pin_mask,
    parse_pin_values,
    parse_string,
    parse_uint16,
)
from .transport.channel import NotificationChannel
from .transport.connection import BLEConnection

_LOGGER = logging.getLogger(__name__)

SensorTriple = tuple[int, int, int]

# Notifications kept per stream for a subscriber that falls behind
STREAM_BACKLOG = 64


class MicrobitDevice:
    """BBC micro:bit GATT gateway.

    Wraps a BLEConnection with typed reads, profile-encoded writes and
    decoded notification streams. Every call is a single GATT operation
    and requires the connection to be idle (CONNECTED); see BLEConnection
    for the errors raised.

    Usage:
        device = MicrobitDevice(connection)
        buttons = device.button_a_states()
        await device.set_button_a_notify(True)
        async for state in buttons:
            ...
    """

    def __init__(self, connection: BLEConnection):
        self._connection = connection
        self._button_a: NotificationChannel[ButtonState] | None = None
        self._button_b: NotificationChannel[ButtonState] | None = None
        self._accelerometer: NotificationChannel[SensorTriple] | None = None
        self._magnetometer: NotificationChannel[SensorTriple] | None = None
        self._iopin: NotificationChannel[list[PinValue]] | None = None

        self._decoders: dict[str, Callable[[bytes], None]] = {
            profile.BUTTON_A_STATE_UUID: self._publish_button_a,
            profile.BUTTON_B_STATE_UUID: self._publish_button_b,
            profile.ACCELEROMETER_DATA_UUID: self._publish_accelerometer,
            profile.MAGNETOMETER_DATA_UUID: self._publish_magnetometer,
            profile.IOPIN_DATA_UUID: self._publish_iopin,
        }
        connection.set_value_handler(self._handle_value_update)

    @property
    def connection(self) -> BLEConnection:
        return self._connection

    # Notification streams (each keeps the newest STREAM_BACKLOG items)

    def button_a_states(self) -> NotificationChannel[ButtonState]:
        """Stream of button A states (requires set_button_a_notify(True))."""
        self._button_a = self._new_stream(self._button_a, "button A")
        return self._button_a

    def button_b_states(self) -> NotificationChannel[ButtonState]:
        """Stream of button B states (requires set_button_b_notify(True))."""
        self._button_b = self._new_stream(self._button_b, "button B")
        return self._button_b

    def accelerometer_data(self) -> NotificationChannel[SensorTriple]:
        """Stream of raw accelerometer triples in milli-g."""
        self._accelerometer = self._new_stream(self._accelerometer, "accelerometer")
        return self._accelerometer

    def magnetometer_data(self) -> NotificationChannel[SensorTriple]:
        """Stream of raw magnetometer triples."""
        self._magnetometer = self._new_stream(self._magnetometer, "magnetometer")
        return self._magnetometer

    def iopin_data(self) -> NotificationChannel[list[PinValue]]:
        """Stream of input pin values."""
        self._iopin = self._new_stream(self._iopin, "IO pin")
        return self._iopin

    @staticmethod
    def _new_stream(current: NotificationChannel | None, name: str) -> NotificationChannel:
        if current is not None and not current.closed:
            raise RuntimeError(f"The {name} stream already has a subscriber")
        return NotificationChannel(maxsize=STREAM_BACKLOG)

    def close_streams(self) -> None:
        """End every notification stream."""
        for channel in (self._button_a, self._button_b, self._accelerometer,
                        self._magnetometer, self._iopin):
            if channel is not None:
                channel.close()

    def _handle_value_update(self, uuid: str, data: bytes) -> None:
        decoder = self._decoders.get(uuid)
        if decoder is None:
            _LOGGER.debug("Ignoring notification from %s", uuid)
            return
        decoder(data)

    def _publish_button_a(self, data: bytes) -> None:
        self._publish_button(self._button_a, data)

    def _publish_button_b(self, data: bytes) -> None:
        self._publish_button(self._button_b, data)

    @staticmethod
    def _publish_button(channel: NotificationChannel | None, data: bytes) -> None:
        if channel is None:
            return
        try:
            channel.publish(parse_button_state(data))
        except InvalidResponseError as err:
            _LOGGER.debug("Discarding button notification: %s", err)

    def _publish_accelerometer(self, data: bytes) -> None:
        self._publish_triple(self._accelerometer, data)

    def _publish_magnetometer(self, data: bytes) -> None:
        self._publish_triple(self._magnetometer, data)

    @staticmethod
    def _publish_triple(channel: NotificationChannel | None, data: bytes) -> None:
        if channel is None:
            return
        try:
            channel.publish(parse_int16_triple(data))
        except InvalidResponseError as err:
            _LOGGER.debug("Discarding sensor notification: %s", err)

    def _publish_iopin(self, data: bytes) -> None:
        if self._iopin is None:
            return
        values = parse_pin_values(data)
        if values is None:
            _LOGGER.debug("Discarding odd-length IO pin notification (%d bytes)", len(data))
            return
        self._iopin.publish(values)

    # Device information

    async def read_model_number(self) -> str:
        return parse_string(await self._connection.read_value(profile.MODEL_NUMBER_UUID))

    async def read_serial_number(self) -> str:
        return parse_string(await self._connection.read_value(profile.SERIAL_NUMBER_UUID))

    async def read_hardware_revision(self) -> str:
        return parse_string(await self._connection.read_value(profile.HARDWARE_REVISION_UUID))

    async def read_firmware_revision(self) -> str:
        return parse_string(await self._connection.read_value(profile.FIRMWARE_REVISION_UUID))

    async def read_manufacturer_name(self) -> str:
        return parse_string(await self._connection.read_value(profile.MANUFACTURER_NAME_UUID))

    # Temperature

    async def read_temperature(self) -> int:
        """Read the die temperature in degrees Celsius."""
        return parse_int8(await self._connection.read_value(profile.TEMPERATURE_DATA_UUID))

    async def read_temperature_period(self) -> int:
        return parse_uint16(await self._connection.read_value(profile.TEMPERATURE_PERIOD_UUID))

    async def set_temperature_period(self, milliseconds: int) -> None:
        await self._write(profile.TEMPERATURE_PERIOD_UUID, build_period_payload(milliseconds))

    # Buttons

    async def read_button_a(self) -> ButtonState:
        return parse_button_state(await self._connection.read_value(profile.BUTTON_A_STATE_UUID))

    async def read_button_b(self) -> ButtonState:
        return parse_button_state(await self._connection.read_value(profile.BUTTON_B_STATE_UUID))

    async def set_button_a_notify(self, enable: bool) -> None:
        await self._connection.set_notify(profile.BUTTON_A_STATE_UUID, enable)

    async def set_button_b_notify(self, enable: bool) -> None:
        await self._connection.set_notify(profile.BUTTON_B_STATE_UUID, enable)

    # Accelerometer

    async def read_accelerometer(self) -> SensorTriple:
        """Read raw accelerometer data (milli-g per axis)."""
        return parse_int16_triple(
            await self._connection.read_value(profile.ACCELEROMETER_DATA_UUID)
        )

    async def read_accelerometer_period(self) -> int:
        return parse_uint16(await self._connection.read_value(profile.ACCELEROMETER_PERIOD_UUID))

    async def set_accelerometer_period(self, milliseconds: int) -> None:
        await self._write(profile.ACCELEROMETER_PERIOD_UUID, build_period_payload(milliseconds))

    async def set_accelerometer_notify(self, enable: bool) -> None:
        await self._connection.set_notify(profile.ACCELEROMETER_DATA_UUID, enable)

    # Magnetometer

    async def read_magnetometer(self) -> SensorTriple:
        return parse_int16_triple(
            await self._connection.read_value(profile.MAGNETOMETER_DATA_UUID)
        )

    async def read_magnetometer_bearing(self) -> int:
        """Read the compass bearing in degrees from north."""
        return parse_uint16(await self._connection.read_value(profile.MAGNETOMETER_BEARING_UUID))

    async def read_magnetometer_period(self) -> int:
        return parse_uint16(await self._connection.read_value(profile.MAGNETOMETER_PERIOD_UUID))

    async def set_magnetometer_period(self, milliseconds: int) -> None:
        await self._write(profile.MAGNETOMETER_PERIOD_UUID, build_period_payload(milliseconds))

    async def set_magnetometer_notify(self, enable: bool) -> None:
        await self._connection.set_notify(profile.MAGNETOMETER_DATA_UUID, enable)

    # LED

    async def read_led_matrix(self) -> LedMatrix:
        data = await self._connection.read_value(profile.LED_MATRIX_UUID)
        try:
            return LedMatrix.from_bytes(data)
        except ValueError as e:
            raise InvalidResponseError(str(e)) from e

    async def set_led_matrix(self, matrix: LedMatrix | bytes | Iterable[int]) -> None:
        """Light the LED matrix; bit 4 of each row byte is the leftmost LED."""
        await self._write(profile.LED_MATRIX_UUID, build_led_matrix_payload(matrix))

    async def set_led_text(self, text: str) -> None:
        """Scroll text across the LEDs (ASCII only, first 20 characters)."""
        await self._write(profile.LED_TEXT_UUID, build_led_text_payload(text))

    async def read_scroll_delay(self) -> int:
        return parse_uint16(await self._connection.read_value(profile.LED_SCROLL_DELAY_UUID))

    async def set_scroll_delay(self, milliseconds: int) -> None:
        await self._write(profile.LED_SCROLL_DELAY_UUID, build_scroll_delay_payload(milliseconds))

    # IO pins

    async def read_iopin_data(self) -> list[int]:
        """Read the raw IO pin data bytes."""
        return parse_byte_list(await self._connection.read_value(profile.IOPIN_DATA_UUID))

    async def read_io_configuration(self) -> list[int]:
        """Read the pins currently configured as inputs."""
        return parse_pin_mask(
            await self._connection.read_value(profile.IOPIN_IO_CONFIGURATION_UUID)
        )

    async def set_io_configuration(self, input_pins: Iterable[int]) -> None:
        """Configure the listed pins as inputs; all others become outputs."""
        await self._write(profile.IOPIN_IO_CONFIGURATION_UUID, build_pin_mask_payload(input_pins))

    async def set_ad_configuration(self, analog_pins: Iterable[int]) -> None:
        """Configure the listed pins as analog; all others become digital."""
        await self._write(profile.IOPIN_AD_CONFIGURATION_UUID, build_pin_mask_payload(analog_pins))

    async def set_pin_outputs(self, pins: Iterable[tuple[int, Any]]) -> None:
        """Drive digital output pins; values are coerced to 0 or 1."""
        await self._write(profile.IOPIN_DATA_UUID, build_pin_output_payload(pins))

    async def set_pwm_outputs(self, outputs: Iterable[PWMOutput | tuple[int, int, int]]) -> None:
        """Drive analog output pins; nothing is written if no pin is valid."""
        payload = build_pwm_payload(outputs)
        if not payload:
            _LOGGER.debug("No valid PWM output, skipping write")
            return
        await self._write(profile.IOPIN_PWM_CONTROL_UUID, payload)

    async def set_iopin_notify(self, enable: bool) -> None:
        await self._connection.set_notify(profile.IOPIN_DATA_UUID, enable)

    async def _write(self, uuid: str, payload: bytes) -> None:
        _LOGGER.debug("Writing %d bytes to %s", len(payload), uuid)
        await self._connection.write_value(uuid, payload)
