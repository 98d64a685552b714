"""High-level micro:bit controller with observable state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from PIL import Image

from .device import MicrobitDevice
from .encoding.images import image_to_matrix
from .exceptions import MicrobitError
from .executor import CommandExecutor
from .models.commands import (
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
from .models.enums import LINKED_STATES, AdapterState, ButtonState, PeripheralState, Service
from .models.led_matrix import LedMatrix
from .models.pins import PIN_COUNT, PinValue, PWMOutput
from .models.sensors import Vector3
from .protocol.commands import build_led_matrix_payload
from .transport.base import Transport
from .transport.connection import BLEConnection

_LOGGER = logging.getLogger(__name__)

# Edge-connector pins usable for general IO
FACADE_MAX_PIN = 16
MAX_PWM_OUTPUTS = 2

Listener = Callable[[str, Any], None]


def _usable_pin(pin: int) -> bool:
    return 0 <= pin <= FACADE_MAX_PIN


class MicrobitController:
    """Fire-and-forget control of one micro:bit.

    Command methods return immediately; commands run in order on a
    background executor and their outcome shows up only as changes of the
    observable fields below. Listeners receive ``(field, value)`` on every
    change.

    Observable fields:
    - bluetooth_enabled: The adapter is powered on
    - connected: The link is up (idle or busy)
    - services: Profile services found on the micro:bit
    - button_a, button_b: Latest ButtonState
    - accelerometer: Latest acceleration in g
    - magnetometer: Latest magnetometer reading (raw / 1000)
    - input_pins: Latest value of each pin 0-19

    Usage:
        async with MicrobitController() as microbit:
            microbit.connect()
            microbit.display_text("Hello")
            await microbit.join()
    """

    def __init__(self, transport: Transport | None = None, **connection_options: Any):
        """Initialize the controller.

        Args:
            transport: Radio transport (default: BleakTransport)
            **connection_options: Passed to BLEConnection (name_prefix, timeout,
                max_attempts, use_services_cache)
        """
        self._connection = BLEConnection(transport, **connection_options)
        self._device = MicrobitDevice(self._connection)
        self._executor = CommandExecutor(self._connection, self._device)

        self._bluetooth_enabled = False
        self._connected = False
        self._services: list[Service] = []
        self._button_a = ButtonState.OFF
        self._button_b = ButtonState.OFF
        self._accelerometer = Vector3()
        self._magnetometer = Vector3()
        self._input_pins = [0] * PIN_COUNT

        self._listeners: list[Listener] = []
        self._tasks: list[asyncio.Task] = []
        self._started = False

    async def __aenter__(self) -> MicrobitController:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # Observable state

    @property
    def bluetooth_enabled(self) -> bool:
        return self._bluetooth_enabled

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def services(self) -> list[Service]:
        return list(self._services)

    @property
    def button_a(self) -> ButtonState:
        return self._button_a

    @property
    def button_b(self) -> ButtonState:
        return self._button_b

    @property
    def accelerometer(self) -> Vector3:
        return self._accelerometer

    @property
    def magnetometer(self) -> Vector3:
        return self._magnetometer

    @property
    def input_pins(self) -> list[int]:
        return list(self._input_pins)

    @property
    def device(self) -> MicrobitDevice:
        """Direct GATT access for opt-in reads (bypasses the command queue)."""
        return self._device

    @property
    def connection(self) -> BLEConnection:
        return self._connection

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _update(self, field: str, value: Any) -> None:
        attribute = f"_{field}"
        if getattr(self, attribute) == value:
            return
        setattr(self, attribute, value)
        for listener in list(self._listeners):
            try:
                listener(field, value)
            except Exception:
                _LOGGER.exception("Listener failed on %s change", field)

    # Lifecycle

    async def start(self) -> None:
        """Start Bluetooth monitoring, the state consumers and the executor.

        Raises:
            RuntimeError: If the controller was already started
        """
        if self._started:
            raise RuntimeError("Controller already started")
        self._started = True

        loop = asyncio.get_running_loop()
        consumers = (
            self._consume_peripheral_states(self._connection.peripheral_states()),
            self._consume_buttons("button_a", self._device.button_a_states()),
            self._consume_buttons("button_b", self._device.button_b_states()),
            self._consume_vectors("accelerometer", self._device.accelerometer_data()),
            self._consume_vectors("magnetometer", self._device.magnetometer_data()),
            self._consume_input_pins(self._device.iopin_data()),
            self._consume_adapter_states(self._connection.initialize()),
        )
        self._tasks = [loop.create_task(consumer) for consumer in consumers]
        self._executor.start()

    async def stop(self) -> None:
        """Stop the executor, drop the link and end the state consumers.

        A connect still in progress is abandoned, so no link outlives the controller.
        """
        await self._executor.stop()

        try:
            if self._connection.peripheral_state is PeripheralState.CONNECTED:
                await self._connection.disconnect()
            else:
                self._connection.abort_connect()
        except MicrobitError as err:
            _LOGGER.warning("Error while disconnecting on stop: %s", err)

        self._device.close_streams()
        self._connection.close()
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _consume_adapter_states(self, states) -> None:
        async for state in states:
            self._update("bluetooth_enabled", state is AdapterState.POWERED_ON)

    async def _consume_peripheral_states(self, states) -> None:
        async for state in states:
            self._update("connected", state in LINKED_STATES)
            if state is PeripheralState.CONNECTED:
                # Filled on the first CONNECTED after a link comes up
                if not self._services:
                    self._update("services", self._connection.available_services)
            elif state is PeripheralState.DISCONNECTED:
                self._update("services", [])

    async def _consume_buttons(self, field: str, states) -> None:
        async for state in states:
            self._update(field, state)

    async def _consume_vectors(self, field: str, triples) -> None:
        async for raw in triples:
            self._update(field, Vector3.from_raw(raw))

    async def _consume_input_pins(self, batches) -> None:
        async for values in batches:
            pins = list(self._input_pins)
            for pin_value in values:
                if pin_value.pin < PIN_COUNT:
                    pins[pin_value.pin] = pin_value.value
            self._update("input_pins", pins)

    async def join(self) -> None:
        """Wait until every command issued so far has run."""
        await self._executor.join()

    async def wait_until_enabled(self, timeout: float | None = None) -> None:
        """Wait until the Bluetooth adapter is powered on.

        Raises:
            asyncio.TimeoutError: If the timeout expires first
        """
        await self._wait_for(lambda: self._bluetooth_enabled, timeout)

    async def wait_until_connected(self, timeout: float | None = None) -> None:
        """Wait until a micro:bit is connected.

        Raises:
            asyncio.TimeoutError: If the timeout expires first
        """
        await self._wait_for(lambda: self._connected, timeout)

    async def _wait_for(self, predicate: Callable[[], bool], timeout: float | None) -> None:
        if predicate():
            return
        future = asyncio.get_running_loop().create_future()

        def check(field: str, value: Any) -> None:
            if predicate() and not future.done():
                future.set_result(None)

        remove = self.add_listener(check)
        try:
            await asyncio.wait_for(future, timeout)
        finally:
            remove()

    # Connection

    def connect(self) -> None:
        """Connect to the first micro:bit found and subscribe to its sensors."""
        self._executor.enqueue(Connect())

    def cancel_connect(self) -> bool:
        """Stop a connect that is still scanning.

        Returns:
            True if a scan was canceled
        """
        return self._connection.cancel_connect()

    def disconnect(self) -> None:
        self._executor.enqueue(Disconnect())

    # Sensors

    def set_accelerometer_period(self, period: int) -> None:
        """Set the accelerometer sensing period in milliseconds.

        Args:
            period: One of the SensingPeriod values (1, 2, 5, 10, 20, 80, 160, 640)
        """
        self._executor.enqueue(SetAccelerometerPeriod(int(period)))

    def set_magnetometer_period(self, period: int) -> None:
        """Set the magnetometer sensing period in milliseconds (see SensingPeriod)."""
        self._executor.enqueue(SetMagnetometerPeriod(int(period)))

    # LED

    def display_matrix(self, matrix: LedMatrix | Sequence[int]) -> None:
        """Show a dot pattern.

        Args:
            matrix: LedMatrix, or 5 row bytes with bit 4 as the leftmost LED

        Raises:
            ValueError: If fewer than 5 rows are given
        """
        self._executor.enqueue(DisplayMatrix(build_led_matrix_payload(matrix)))

    def display_image(self, image: Image.Image, threshold: int = 128) -> None:
        """Show an image reduced to 5x5 (see image_to_matrix)."""
        self.display_matrix(image_to_matrix(image, threshold))

    def set_scroll_delay(self, delay: int) -> None:
        self._executor.enqueue(SetScrollDelay(delay))

    def display_text(self, text: str) -> None:
        """Scroll text across the LEDs (ASCII only, at most 20 characters)."""
        self._executor.enqueue(DisplayText(text))

    # IO pins

    def configure_input_pins(self, pins: Iterable[int]) -> None:
        """Configure pins 0-16 as inputs; every other pin becomes an output."""
        self._executor.enqueue(ConfigureInputPins(tuple(p for p in pins if _usable_pin(p))))

    def configure_analog_pins(self, pins: Iterable[int]) -> None:
        """Configure pins 0-16 as analog; every other pin becomes digital."""
        self._executor.enqueue(ConfigureAnalogPins(tuple(p for p in pins if _usable_pin(p))))

    def output_digital(self, pins: Iterable[tuple[int, int] | PinValue]) -> None:
        """Drive digital output pins.

        Args:
            pins: (pin, value) pairs; pins outside 0-16 are ignored
        """
        pairs = []
        for item in pins:
            pin, value = (item.pin, item.value) if isinstance(item, PinValue) else item
            if _usable_pin(pin):
                pairs.append((pin, value))
        self._executor.enqueue(OutputDigital(tuple(pairs)))

    def output_pwm(self, outputs: Iterable[PWMOutput | tuple[int, int, int]]) -> None:
        """Drive up to two analog output pins.

        Outputs on pins outside 0-16 are ignored, only the first two
        remaining are used, and nothing is sent if none remain.

        Args:
            outputs: PWMOutput records or (pin, value, period_us) tuples

        Raises:
            ValueError: If a tuple is not a valid PWMOutput
        """
        records = [
            output if isinstance(output, PWMOutput) else PWMOutput(*output)
            for output in outputs
        ]
        usable = tuple(record for record in records if _usable_pin(record.pin))[:MAX_PWM_OUTPUTS]
        if not usable:
            _LOGGER.debug("No usable PWM output, nothing to send")
            return
        self._executor.enqueue(OutputPWM(usable))

    def wait(self, milliseconds: int) -> None:
        """Hold the following commands for a while (skipped when not connected)."""
        self._executor.enqueue(Wait(milliseconds))
