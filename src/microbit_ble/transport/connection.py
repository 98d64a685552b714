"""BLE connection state machine for a single micro:bit."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from ..exceptions import (
    BLEConnectionError,
    BusyError,
    CanceledToConnectError,
    NotConnectedError,
    NotSupportedError,
    OperationFailedError,
    adapter_error_for,
)
from ..models.enums import LINKED_STATES, AdapterState, PeripheralState, Service
from ..protocol.profile import (
    NAME_PREFIX,
    characteristics_for_service,
    normalize_uuid,
    service_for_uuid,
    service_uuids,
)
from .base import Transport
from .bleak_transport import BleakTransport
from .channel import NotificationChannel

_LOGGER = logging.getLogger(__name__)

_CONNECTING_STATES = (
    PeripheralState.SCANNING,
    PeripheralState.CONNECTING,
    PeripheralState.DISCOVERING,
)

ValueHandler = Callable[[str, bytes], None]


class _Operation(Enum):
    """Operation categories; at most one of each is pending at a time."""
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    READ = "read"
    WRITE = "write"
    NOTIFY = "notify"


class BLEConnection:
    """Owns the adapter and peripheral state of one micro:bit link.

    Features:
    - Scan by name prefix, connect, discover the profile's services and characteristics
    - One pending future per operation category, resolved by transport callbacks
    - Single-shot read, write and notify primitives guarded by the state machine
    - Async streams of adapter and peripheral state transitions

    Transport callbacks are the only writers of the state. Unsolicited value
    updates (notifications) go to the handler set with ``set_value_handler``.
    """

    def __init__(
            self,
            transport: Transport | None = None,
            *,
            name_prefix: str = NAME_PREFIX,
            timeout: float = 10.0,
            max_attempts: int = 3,
            use_services_cache: bool = True,
    ):
        """Initialize the connection state machine.

        Args:
            transport: Radio transport (default: BleakTransport built from the options below)
            name_prefix: Advertised name prefix to connect to (default: "BBC micro:bit")
            timeout: Connection timeout in seconds for the default transport (default: 10)
            max_attempts: Connection attempts for the default transport (default: 3)
            use_services_cache: Enable GATT service caching for the default transport
        """
        if transport is None:
            transport = BleakTransport(
                timeout=timeout,
                max_attempts=max_attempts,
                use_services_cache=use_services_cache,
            )
        self._transport = transport
        self._name_prefix = name_prefix

        self._adapter_state = AdapterState.UNKNOWN
        self._state = PeripheralState.IDLE
        self._peripheral: Any = None
        self._rssi = 0
        self._characteristics: dict[str, Any] = {}
        self._available_services: list[Service] = []
        self._discovering = 0
        self._reading_uuid: str | None = None

        self._pending: dict[_Operation, asyncio.Future] = {}
        self._adapter_channel: NotificationChannel[AdapterState] | None = None
        self._state_channel: NotificationChannel[PeripheralState] | None = None
        self._value_handler: ValueHandler | None = None

        transport.attach(self)

    @property
    def adapter_state(self) -> AdapterState:
        return self._adapter_state

    @property
    def peripheral_state(self) -> PeripheralState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the link to the micro:bit is up (idle or busy)."""
        return self._state in LINKED_STATES

    @property
    def peripheral(self) -> Any:
        return self._peripheral

    @property
    def rssi(self) -> int:
        return self._rssi

    @property
    def available_services(self) -> list[Service]:
        """Services of the profile found on the connected micro:bit."""
        return list(self._available_services)

    def has_characteristic(self, uuid: str) -> bool:
        return normalize_uuid(uuid) in self._characteristics

    def initialize(self) -> NotificationChannel[AdapterState]:
        """Start monitoring the adapter.

        Returns:
            Stream of adapter state changes

        Raises:
            RuntimeError: If already initialized
        """
        if self._adapter_channel is not None:
            raise RuntimeError("BLE connection already initialized")
        self._adapter_channel = NotificationChannel()
        self._transport.start()
        return self._adapter_channel

    def peripheral_states(self) -> NotificationChannel[PeripheralState]:
        """Return the stream of peripheral state transitions (one subscriber).

        The stream is unbounded, so the subscriber must keep draining it.
        """
        if self._state_channel is not None:
            raise RuntimeError("Peripheral state stream already has a subscriber")
        self._state_channel = NotificationChannel()
        return self._state_channel

    def set_value_handler(self, handler: ValueHandler | None) -> None:
        """Register the receiver of notifications as (uuid, data)."""
        self._value_handler = handler

    async def connect(self) -> str:
        """Scan for the first micro:bit, connect and discover its profile.

        Returns:
            Address of the connected peripheral

        Raises:
            AdapterError: If Bluetooth is not powered on
            BusyError: If not idle or disconnected
            CanceledToConnectError: If cancel_connect() was called while scanning
            BLEConnectionError: If the transport fails to connect
        """
        self._check_adapter()
        if self._state not in (PeripheralState.IDLE, PeripheralState.DISCONNECTED):
            raise BusyError(f"Cannot connect while {self._state.value}")

        future = self._arm(_Operation.CONNECT)
        self._set_state(PeripheralState.SCANNING)
        _LOGGER.debug("Scanning for peripherals named '%s*'", self._name_prefix)
        self._transport.start_scan()
        return await future

    def cancel_connect(self) -> bool:
        """Stop scanning and fail the pending connect.

        Works whatever the adapter state, so a scan can always be abandoned.

        Returns:
            True if a scan was canceled, False if not scanning
        """
        if self._state is not PeripheralState.SCANNING:
            return False
        self._abandon_connect(CanceledToConnectError("Canceled while scanning"))
        return True

    def abort_connect(self) -> bool:
        """Give up on a connect at any stage before CONNECTED.

        A scan is canceled, a link still being established is dropped once the
        transport reports it, and a link being discovered is disconnected. The
        pending connect fails with CanceledToConnectError.

        Returns:
            True if a connect was in progress
        """
        if self._state is PeripheralState.SCANNING:
            return self.cancel_connect()
        if self._state not in (PeripheralState.CONNECTING, PeripheralState.DISCOVERING):
            return False
        self._abandon_connect(CanceledToConnectError(f"Canceled while {self._state.value}"))
        return True

    def close(self) -> None:
        """Stop adapter monitoring and end the state streams."""
        self._transport.stop()
        for channel in (self._adapter_channel, self._state_channel):
            if channel is not None:
                channel.close()

    async def disconnect(self) -> str:
        """Disconnect from the micro:bit.

        Returns:
            Address of the disconnected peripheral

        Raises:
            AdapterError: If Bluetooth is not powered on
            NotConnectedError: If not connected (or busy)
        """
        self._check_adapter()
        if self._state is not PeripheralState.CONNECTED:
            raise NotConnectedError(f"Cannot disconnect while {self._state.value}")

        future = self._arm(_Operation.DISCONNECT)
        self._set_state(PeripheralState.DISCONNECTING)
        self._transport.disconnect(self._peripheral)
        return await future

    async def read_value(self, uuid: str) -> bytes:
        """Read a characteristic value.

        Raises:
            NotSupportedError: If the characteristic was not discovered
            AdapterError: If Bluetooth is not powered on
            BusyError: If not connected or another operation is running
            OperationFailedError: If the transport reports a read error
        """
        key, characteristic = self._begin(uuid)
        future = self._arm(_Operation.READ)
        self._reading_uuid = key
        self._set_state(PeripheralState.READING)
        self._transport.read(self._peripheral, characteristic)
        return await future

    async def write_value(self, uuid: str, data: bytes) -> None:
        """Write a characteristic value with response.

        Raises:
            NotSupportedError: If the characteristic was not discovered
            AdapterError: If Bluetooth is not powered on
            BusyError: If not connected or another operation is running
            OperationFailedError: If the transport reports a write error
        """
        _, characteristic = self._begin(uuid)
        future = self._arm(_Operation.WRITE)
        self._set_state(PeripheralState.WRITING)
        self._transport.write(self._peripheral, characteristic, bytes(data))
        await future

    async def set_notify(self, uuid: str, enable: bool) -> None:
        """Enable or disable notifications on a characteristic.

        Raises:
            NotSupportedError: If the characteristic was not discovered
            AdapterError: If Bluetooth is not powered on
            BusyError: If not connected or another operation is running
            OperationFailedError: If the transport reports an error
        """
        _, characteristic = self._begin(uuid)
        future = self._arm(_Operation.NOTIFY)
        self._set_state(PeripheralState.SETTING)
        self._transport.set_notify(self._peripheral, characteristic, enable)
        await future

    # Transport delegate

    def on_adapter_state_changed(self, state: AdapterState) -> None:
        _LOGGER.debug("Adapter state: %s", state.value)
        self._adapter_state = state
        if self._adapter_channel is not None:
            self._adapter_channel.publish(state)

        error = adapter_error_for(state)
        if error is not None and self._state in _CONNECTING_STATES:
            _LOGGER.debug("Adapter left powered_on while %s", self._state.value)
            self._abandon_connect(error)

    def on_peripheral_discovered(self, peripheral: Any, name: str | None, rssi: int) -> None:
        if self._state is not PeripheralState.SCANNING:
            return
        if not name or not name.startswith(self._name_prefix):
            return

        _LOGGER.debug("Found %s (%s), rssi=%d", name, self._identity(peripheral), rssi)
        self._peripheral = peripheral
        self._rssi = rssi
        self._transport.stop_scan()
        self._set_state(PeripheralState.CONNECTING)
        self._transport.connect(peripheral)

    def on_connected(self, peripheral: Any) -> None:
        if self._state is not PeripheralState.CONNECTING:
            # The connect was abandoned before the link came up
            _LOGGER.debug("Dropping link established while %s", self._state.value)
            self._transport.disconnect(peripheral)
            return

        self._set_state(PeripheralState.DISCOVERING)
        self._transport.discover_services(peripheral, service_uuids())

    def on_connect_failed(self, peripheral: Any, error: BaseException | None) -> None:
        if self._state is not PeripheralState.CONNECTING:
            _LOGGER.debug("Ignoring connect failure while %s", self._state.value)
            return

        self._peripheral = None
        self._rssi = 0
        self._set_state(PeripheralState.IDLE)
        if error is None:
            error = BLEConnectionError(f"Failed to connect to {self._identity(peripheral)}")
        self._reject(_Operation.CONNECT, error)

    def on_disconnected(self, peripheral: Any, error: BaseException | None) -> None:
        if self._state in (
                PeripheralState.IDLE,
                PeripheralState.SCANNING,
                PeripheralState.DISCONNECTED,
        ):
            _LOGGER.debug("Ignoring disconnect callback while %s", self._state.value)
            return

        identity = self._identity(peripheral if peripheral is not None else self._peripheral)
        self._set_state(PeripheralState.DISCONNECTED)

        for operation in (_Operation.CONNECT, _Operation.READ, _Operation.WRITE, _Operation.NOTIFY):
            self._reject(operation, NotConnectedError(f"Disconnected from {identity}"))

        if self._resolve(_Operation.DISCONNECT, identity):
            _LOGGER.info("Disconnected from %s", identity)
        else:
            _LOGGER.info("%s disconnected unexpectedly (error: %s)", identity, error)

        self._peripheral = None
        self._rssi = 0
        self._characteristics.clear()
        self._available_services.clear()
        self._discovering = 0
        self._reading_uuid = None

    def on_services_discovered(
            self, peripheral: Any, services: Sequence[Any], error: BaseException | None
    ) -> None:
        if self._state is not PeripheralState.DISCOVERING:
            return

        self._characteristics.clear()
        self._available_services.clear()

        if error is not None or not services:
            _LOGGER.debug("No services discovered (error: %s)", error)
            self._finish_discovery()
            return

        to_discover: list[tuple[Any, tuple[str, ...]]] = []
        for service in services:
            service_id = service_for_uuid(service.uuid)
            if service_id is not None and service_id not in self._available_services:
                self._available_services.append(service_id)
            uuids = characteristics_for_service(service.uuid)
            if uuids:
                to_discover.append((service, uuids))

        _LOGGER.debug(
            "Discovered %d services, discovering characteristics for %d",
            len(services),
            len(to_discover),
        )

        # Count first: a transport may answer inside discover_characteristics()
        self._discovering = len(to_discover)
        if not to_discover:
            self._finish_discovery()
            return
        for service, uuids in to_discover:
            self._transport.discover_characteristics(peripheral, service, uuids)

    def on_characteristics_discovered(
            self, service: Any, characteristics: Sequence[Any], error: BaseException | None
    ) -> None:
        if self._state is not PeripheralState.DISCOVERING:
            return

        if error is not None:
            _LOGGER.debug("Characteristic discovery error on %s: %s", service.uuid, error)
        for characteristic in characteristics or ():
            self._characteristics[normalize_uuid(characteristic.uuid)] = characteristic

        self._discovering -= 1
        if self._discovering <= 0:
            self._finish_discovery()

    def on_value_updated(
            self, characteristic: Any, data: bytes | None, error: BaseException | None
    ) -> None:
        uuid = normalize_uuid(characteristic.uuid)

        if _Operation.READ in self._pending and uuid == self._reading_uuid:
            self._reading_uuid = None
            self._end_busy(PeripheralState.READING)
            if error is not None:
                self._reject(_Operation.READ, _operation_failed("Read", uuid, error))
            else:
                self._resolve(_Operation.READ, bytes(data or b""))
            return

        if error is not None:
            _LOGGER.debug("Notification error on %s: %s", uuid, error)
            return
        if data is not None and self._value_handler is not None:
            self._value_handler(uuid, bytes(data))

    def on_value_written(self, characteristic: Any, error: BaseException | None) -> None:
        if _Operation.WRITE not in self._pending:
            _LOGGER.debug("Ignoring write callback without pending write")
            return

        self._end_busy(PeripheralState.WRITING)
        if error is not None:
            uuid = normalize_uuid(characteristic.uuid)
            self._reject(_Operation.WRITE, _operation_failed("Write", uuid, error))
        else:
            self._resolve(_Operation.WRITE)

    def on_notification_state_updated(
            self, characteristic: Any, error: BaseException | None
    ) -> None:
        if _Operation.NOTIFY not in self._pending:
            _LOGGER.debug("Ignoring notify callback without pending request")
            return

        self._end_busy(PeripheralState.SETTING)
        if error is not None:
            uuid = normalize_uuid(characteristic.uuid)
            self._reject(_Operation.NOTIFY, _operation_failed("Notify toggle", uuid, error))
        else:
            self._resolve(_Operation.NOTIFY)

    # Internals

    def _check_adapter(self) -> None:
        error = adapter_error_for(self._adapter_state)
        if error is not None:
            raise error

    def _begin(self, uuid: str) -> tuple[str, Any]:
        key = normalize_uuid(uuid)
        characteristic = self._characteristics.get(key)
        if characteristic is None:
            raise NotSupportedError(f"Characteristic {key} is not available")
        self._check_adapter()
        if self._state is not PeripheralState.CONNECTED:
            raise BusyError(f"Cannot access {key} while {self._state.value}")
        return key, characteristic

    def _abandon_connect(self, error: BaseException) -> None:
        state = self._state
        if state is PeripheralState.SCANNING:
            self._transport.stop_scan()
        if state is PeripheralState.DISCOVERING:
            self._set_state(PeripheralState.DISCONNECTING)
            self._transport.disconnect(self._peripheral)
        else:
            self._peripheral = None
            self._rssi = 0
            self._set_state(PeripheralState.IDLE)
        self._reject(_Operation.CONNECT, error)

    def _finish_discovery(self) -> None:
        self._discovering = 0
        self._set_state(PeripheralState.CONNECTED)
        identity = self._identity(self._peripheral)
        _LOGGER.info(
            "Connected to %s (services: %s)",
            identity,
            ", ".join(service.value for service in self._available_services) or "none",
        )
        self._resolve(_Operation.CONNECT, identity)

    def _end_busy(self, busy: PeripheralState) -> None:
        if self._state is busy:
            self._set_state(PeripheralState.CONNECTED)

    def _set_state(self, state: PeripheralState) -> None:
        if state is self._state:
            return
        _LOGGER.debug("Peripheral state: %s -> %s", self._state.value, state.value)
        self._state = state
        if self._state_channel is not None:
            self._state_channel.publish(state)

    def _arm(self, operation: _Operation) -> asyncio.Future:
        current = self._pending.get(operation)
        if current is not None and not current.done():
            raise RuntimeError(f"A {operation.value} operation is already pending")
        future = asyncio.get_running_loop().create_future()
        self._pending[operation] = future
        return future

    def _resolve(self, operation: _Operation, result: Any = None) -> bool:
        future = self._pending.pop(operation, None)
        if future is None:
            return False
        if not future.done():
            future.set_result(result)
        return True

    def _reject(self, operation: _Operation, error: BaseException) -> bool:
        future = self._pending.pop(operation, None)
        if future is None:
            return False
        if not future.done():
            future.set_exception(error)
        return True

    @staticmethod
    def _identity(peripheral: Any) -> str:
        return str(getattr(peripheral, "address", peripheral))


def _operation_failed(action: str, uuid: str, error: BaseException) -> OperationFailedError:
    failure = OperationFailedError(f"{action} failed on {uuid}: {error}")
    failure.__cause__ = error
    return failure
