"""Serialized execution of queued micro:bit commands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .device import MicrobitDevice
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
from .models.enums import AdapterState, PeripheralState, Service
from .transport.connection import BLEConnection

_LOGGER = logging.getLogger(__name__)

_CONNECTABLE_STATES = (PeripheralState.IDLE, PeripheralState.DISCONNECTED)


class CommandExecutor:
    """Runs commands one at a time, in the order they were enqueued.

    Callers never see command results. A command whose precondition does not
    hold when it reaches the head of the queue is dropped, and a command that
    fails is logged and dropped; the queue always moves on.

    Usage:
        executor = CommandExecutor(connection, device)
        executor.start()
        executor.enqueue(Connect())
        executor.enqueue(DisplayText("Hi"))
        await executor.join()
        await executor.stop()
    """

    def __init__(self, connection: BLEConnection, device: MicrobitDevice):
        self._connection = connection
        self._device = device
        self._queue: asyncio.Queue[Command] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        self._handlers: dict[type, Callable[[Any], Awaitable[None]]] = {
            Connect: self._connect,
            Disconnect: self._disconnect,
            SetAccelerometerPeriod: self._set_accelerometer_period,
            SetMagnetometerPeriod: self._set_magnetometer_period,
            DisplayMatrix: self._display_matrix,
            SetScrollDelay: self._set_scroll_delay,
            DisplayText: self._display_text,
            ConfigureInputPins: self._configure_input_pins,
            ConfigureAnalogPins: self._configure_analog_pins,
            OutputDigital: self._output_digital,
            OutputPWM: self._output_pwm,
            Wait: self._wait,
        }

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Number of commands waiting in the queue."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the consumer task on the running event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run())
        _LOGGER.info("Command executor started")

    async def stop(self) -> None:
        """Stop the consumer task and discard every queued command."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        discarded = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            discarded += 1
        _LOGGER.info("Command executor stopped (%d queued commands discarded)", discarded)

    def enqueue(self, command: Command) -> None:
        """Append a command to the queue without waiting.

        Safe to call from other threads once the executor has started.

        Raises:
            TypeError: If the command type is unknown
        """
        if type(command) not in self._handlers:
            raise TypeError(f"Unsupported command: {command!r}")

        loop = self._loop
        if loop is not None and not loop.is_closed() and not _on_loop(loop):
            loop.call_soon_threadsafe(self._queue.put_nowait, command)
        else:
            self._queue.put_nowait(command)

    async def join(self) -> None:
        """Wait until every command enqueued so far has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            command = await self._queue.get()
            try:
                await self._execute(command)
            except Exception as err:  # dropped, the queue moves on
                _LOGGER.warning("%s failed: %s", type(command).__name__, err)
            finally:
                self._queue.task_done()

    async def _execute(self, command: Command) -> None:
        if not self._ready(command):
            _LOGGER.debug(
                "Dropping %s (adapter %s, peripheral %s)",
                type(command).__name__,
                self._connection.adapter_state.value,
                self._connection.peripheral_state.value,
            )
            return
        _LOGGER.debug("Executing %r", command)
        await self._handlers[type(command)](command)

    def _ready(self, command: Command) -> bool:
        if isinstance(command, Wait):
            return True
        if self._connection.adapter_state is not AdapterState.POWERED_ON:
            return False
        state = self._connection.peripheral_state
        if isinstance(command, Connect):
            return state in _CONNECTABLE_STATES
        return state is PeripheralState.CONNECTED

    # Handlers

    async def _connect(self, command: Connect) -> None:
        await self._connection.connect()

        services = self._connection.available_services
        if Service.BUTTON in services:
            await self._device.set_button_a_notify(True)
            await self._device.set_button_b_notify(True)
        if Service.ACCELEROMETER in services:
            await self._device.set_accelerometer_notify(True)
        if Service.MAGNETOMETER in services:
            await self._device.set_magnetometer_notify(True)
        if Service.IOPIN in services:
            await self._device.set_iopin_notify(True)

    async def _disconnect(self, command: Disconnect) -> None:
        await self._connection.disconnect()

    async def _set_accelerometer_period(self, command: SetAccelerometerPeriod) -> None:
        await self._device.set_accelerometer_period(command.period)

    async def _set_magnetometer_period(self, command: SetMagnetometerPeriod) -> None:
        await self._device.set_magnetometer_period(command.period)

    async def _display_matrix(self, command: DisplayMatrix) -> None:
        await self._device.set_led_matrix(command.matrix)

    async def _set_scroll_delay(self, command: SetScrollDelay) -> None:
        await self._device.set_scroll_delay(command.delay)

    async def _display_text(self, command: DisplayText) -> None:
        await self._device.set_led_text(command.text)

    async def _configure_input_pins(self, command: ConfigureInputPins) -> None:
        await self._device.set_io_configuration(command.pins)

    async def _configure_analog_pins(self, command: ConfigureAnalogPins) -> None:
        await self._device.set_ad_configuration(command.pins)

    async def _output_digital(self, command: OutputDigital) -> None:
        await self._device.set_pin_outputs(command.pins)

    async def _output_pwm(self, command: OutputPWM) -> None:
        await self._device.set_pwm_outputs(command.outputs)

    async def _wait(self, command: Wait) -> None:
        # Skipped while disconnected so the queue cannot stall
        if self._connection.peripheral_state is not PeripheralState.CONNECTED:
            _LOGGER.debug("Skipping wait of %d ms while not connected", command.milliseconds)
            return
        await asyncio.sleep(command.milliseconds / 1000)


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
