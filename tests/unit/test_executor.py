"""Test serialized command execution."""

from __future__ import annotations

import asyncio
import logging
import time

import pytest
from conftest import FakeTransport, power_on, settle

from microbit_ble.device import MicrobitDevice
from microbit_ble.executor import CommandExecutor
from microbit_ble.models.commands import (
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
from microbit_ble.models.enums import PeripheralState
from microbit_ble.models.pins import PWMOutput
from microbit_ble.protocol import profile
from microbit_ble.transport.connection import BLEConnection


@pytest.fixture
def executor(connection: BLEConnection) -> CommandExecutor:
    return CommandExecutor(connection, MicrobitDevice(connection))


async def _run(executor: CommandExecutor, connection: BLEConnection, *commands) -> None:
    await power_on(connection)
    executor.start()
    for command in commands:
        executor.enqueue(command)
    await executor.join()


class TestOrdering:
    """Test FIFO, one-at-a-time execution."""

    @pytest.mark.asyncio
    async def test_commands_run_in_order_without_overlap(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Every command runs after the previous one finished."""
        await _run(
            executor,
            connection,
            Connect(),
            SetAccelerometerPeriod(80),
            SetMagnetometerPeriod(160),
            DisplayMatrix(b'\x1f\x00\x1f\x00\x1f'),
            SetScrollDelay(100),
            DisplayText("Hi"),
            ConfigureInputPins((0, 1)),
            ConfigureAnalogPins((2,)),
            OutputDigital(((8, 1),)),
            OutputPWM((PWMOutput(pin=0, value=512, period=20000),)),
        )

        assert transport.max_in_flight == 1
        assert [uuid for uuid, _ in transport.written] == [
            profile.ACCELEROMETER_PERIOD_UUID,
            profile.MAGNETOMETER_PERIOD_UUID,
            profile.LED_MATRIX_UUID,
            profile.LED_SCROLL_DELAY_UUID,
            profile.LED_TEXT_UUID,
            profile.IOPIN_IO_CONFIGURATION_UUID,
            profile.IOPIN_AD_CONFIGURATION_UUID,
            profile.IOPIN_DATA_UUID,
            profile.IOPIN_PWM_CONTROL_UUID,
        ]
        await executor.stop()

    @pytest.mark.asyncio
    async def test_connect_subscribes_to_streams(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Connect enables every notification whose service is present."""
        await _run(executor, connection, Connect())

        assert connection.peripheral_state is PeripheralState.CONNECTED
        assert [request[1] for request in transport.requests_of("set_notify")] == [
            profile.BUTTON_A_STATE_UUID,
            profile.BUTTON_B_STATE_UUID,
            profile.ACCELEROMETER_DATA_UUID,
            profile.MAGNETOMETER_DATA_UUID,
            profile.IOPIN_DATA_UUID,
        ]
        await executor.stop()

    @pytest.mark.asyncio
    async def test_connect_skips_absent_services(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Services that are not present are not subscribed."""
        transport.services = [profile.LED_SERVICE_UUID, profile.BUTTON_SERVICE_UUID]

        await _run(executor, connection, Connect())

        assert transport.notifying == {profile.BUTTON_A_STATE_UUID, profile.BUTTON_B_STATE_UUID}
        await executor.stop()


class TestDropPolicy:
    """Test silent drops and swallowed failures."""

    @pytest.mark.asyncio
    async def test_data_commands_dropped_while_disconnected(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Commands needing a link are dropped before connecting."""
        await _run(executor, connection, DisplayText("lost"), Disconnect(), Connect(), DisplayText("ok"))

        assert transport.written == [(profile.LED_TEXT_UUID, b"ok")]
        assert transport.requests_of("disconnect") == []
        await executor.stop()

    @pytest.mark.asyncio
    async def test_second_connect_dropped(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Connect while connected leaves the link alone."""
        await _run(executor, connection, Connect(), Connect())

        assert len(transport.requests_of("start_scan")) == 1
        assert connection.peripheral_state is PeripheralState.CONNECTED
        await executor.stop()

    @pytest.mark.asyncio
    async def test_connect_dropped_without_adapter(
            self, executor: CommandExecutor, transport: FakeTransport
    ):
        """Connect before the adapter is powered on is dropped."""
        executor.start()
        executor.enqueue(Connect())
        await executor.join()

        assert transport.requests_of("start_scan") == []
        await executor.stop()

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_queue(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport,
            caplog: pytest.LogCaptureFixture,
    ):
        """A failing command is logged and the next one still runs."""
        await _run(executor, connection, Connect())
        transport.write_error = OSError("write rejected")

        with caplog.at_level(logging.WARNING, logger="microbit_ble.executor"):
            executor.enqueue(DisplayText("fails"))
            await executor.join()
        transport.write_error = None
        executor.enqueue(DisplayText("works"))
        await executor.join()

        assert "DisplayText failed" in caplog.text
        assert transport.written[-1] == (profile.LED_TEXT_UUID, b"works")
        assert executor.running
        await executor.stop()

    @pytest.mark.asyncio
    async def test_invalid_payload_is_swallowed(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Encoding errors are dropped like any other failure."""
        await _run(executor, connection, Connect(), SetScrollDelay(70000), DisplayText("next"))

        assert transport.written == [(profile.LED_TEXT_UUID, b"next")]
        await executor.stop()

    @pytest.mark.asyncio
    async def test_disconnect_command(
            self, executor: CommandExecutor, connection: BLEConnection
    ):
        """Disconnect runs when connected."""
        await _run(executor, connection, Connect(), Disconnect())

        assert connection.peripheral_state is PeripheralState.DISCONNECTED
        await executor.stop()


class TestWait:
    """Test the wait command."""

    @pytest.mark.asyncio
    async def test_wait_skipped_when_disconnected(
            self, executor: CommandExecutor, connection: BLEConnection
    ):
        """Wait completes immediately without a link."""
        await power_on(connection)
        executor.start()
        executor.enqueue(Wait(500))

        await asyncio.wait_for(executor.join(), timeout=0.2)
        await executor.stop()

    @pytest.mark.asyncio
    async def test_wait_holds_queue_when_connected(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Wait delays the following commands while connected."""
        await _run(executor, connection, Connect())

        started = time.monotonic()
        executor.enqueue(Wait(100))
        executor.enqueue(DisplayText("after"))
        await settle()
        assert transport.written == []
        await executor.join()

        assert time.monotonic() - started >= 0.09
        assert transport.written == [(profile.LED_TEXT_UUID, b"after")]
        await executor.stop()


class TestLifecycle:
    """Test start, stop and enqueue."""

    @pytest.mark.asyncio
    async def test_stop_discards_queued_commands(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Stopping cancels the running command and drops the rest."""
        await _run(executor, connection, Connect())
        transport.hold = True
        executor.enqueue(DisplayText("one"))
        executor.enqueue(DisplayText("two"))
        executor.enqueue(DisplayText("three"))
        await settle()

        await executor.stop()

        assert not executor.running
        assert executor.pending == 0
        assert transport.written == [(profile.LED_TEXT_UUID, b"one")]
        await asyncio.wait_for(executor.join(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_commands_queued_before_start(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """Commands enqueued before start() run once started."""
        await power_on(connection)
        executor.enqueue(Connect())
        executor.enqueue(DisplayText("queued"))
        assert executor.pending == 2

        executor.start()
        await executor.join()

        assert transport.written == [(profile.LED_TEXT_UUID, b"queued")]
        await executor.stop()

    @pytest.mark.asyncio
    async def test_enqueue_from_other_thread(
            self, executor: CommandExecutor, connection: BLEConnection, transport: FakeTransport
    ):
        """enqueue() is safe from worker threads."""
        await _run(executor, connection, Connect())

        await asyncio.get_running_loop().run_in_executor(None, executor.enqueue, DisplayText("thread"))
        await settle()
        await executor.join()

        assert transport.written == [(profile.LED_TEXT_UUID, b"thread")]
        await executor.stop()

    def test_unknown_command_rejected(self, executor: CommandExecutor):
        """Only known command types are accepted."""
        with pytest.raises(TypeError, match="Unsupported command"):
            executor.enqueue("connect")  # type: ignore[arg-type]
