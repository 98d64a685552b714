"""Bleak-backed transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import TYPE_CHECKING, Any

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError
from ..models.enums import AdapterState
from ..protocol.profile import normalize_uuid

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

    from .base import TransportDelegate

_LOGGER = logging.getLogger(__name__)


def adapter_state_from_error(error: BaseException) -> AdapterState:
    """Best-effort mapping of a scanner start failure to an adapter state."""
    message = str(error).lower()
    if "notready" in message or "powered off" in message or "not powered" in message:
        return AdapterState.POWERED_OFF
    if "notauthorized" in message or "not authorized" in message or "denied" in message:
        return AdapterState.UNAUTHORIZED
    return AdapterState.UNSUPPORTED


class BleakTransport:
    """Drives a Bleak scanner and client and reports results to a delegate.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Every request runs as a background task and ends in one delegate callback
    - Adapter watching: probed on start, re-probed while not powered on, and
      reported powered off when a scanner or client call fails for that reason
    """

    def __init__(
            self,
            timeout: float = 10.0,
            max_attempts: int = 3,
            use_services_cache: bool = True,
            adapter: str | None = None,
            adapter_poll_interval: float = 5.0,
    ):
        """Initialize the Bleak transport.

        Args:
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 3)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
            adapter: Bluetooth adapter to use, e.g. "hci0" (default: system default)
            adapter_poll_interval: Seconds between adapter probes while it is not powered on (default: 5)
        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache
        self.adapter = adapter
        self.adapter_poll_interval = adapter_poll_interval

        self._delegate: TransportDelegate | None = None
        self._scanner: BleakScanner | None = None
        self._client: BleakClient | None = None
        self._disconnect_reported = False
        self._tasks: set[asyncio.Task] = set()
        self._adapter_state = AdapterState.UNKNOWN
        self._watcher: asyncio.Task | None = None

    def attach(self, delegate: TransportDelegate) -> None:
        self._delegate = delegate

    @property
    def delegate(self) -> TransportDelegate:
        if self._delegate is None:
            raise RuntimeError("No delegate attached to transport")
        return self._delegate

    def _scanner_kwargs(self) -> dict[str, Any]:
        return {"adapter": self.adapter} if self.adapter else {}

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _call_soon(self, callback, *args) -> None:
        asyncio.get_running_loop().call_soon(callback, *args)

    # Adapter

    def start(self) -> None:
        self._watch_adapter()

    def stop(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.cancel()

    def _watch_adapter(self) -> None:
        if self._watcher is None or self._watcher.done():
            self._watcher = asyncio.get_running_loop().create_task(self._poll_adapter())

    async def _poll_adapter(self) -> None:
        """Probe the adapter until it is powered on."""
        while True:
            state = await self._probe_adapter()
            self._report_adapter_state(state)
            if state is AdapterState.POWERED_ON:
                return
            await asyncio.sleep(self.adapter_poll_interval)

    async def _probe_adapter(self) -> AdapterState:
        """Return POWERED_ON if a scanner can be started on the adapter."""
        scanner = BleakScanner(**self._scanner_kwargs())
        try:
            await scanner.start()
            await scanner.stop()
        except (BleakError, OSError) as err:
            _LOGGER.debug("Adapter probe failed: %s", err)
            return adapter_state_from_error(err)
        return AdapterState.POWERED_ON

    def _report_adapter_state(self, state: AdapterState) -> None:
        if state is self._adapter_state:
            return
        self._adapter_state = state
        if state is not AdapterState.POWERED_ON:
            _LOGGER.warning("Bluetooth adapter unavailable (%s)", state.value)
        self.delegate.on_adapter_state_changed(state)
        if state is not AdapterState.POWERED_ON:
            self._watch_adapter()

    def _check_power(self, error: BaseException) -> None:
        if adapter_state_from_error(error) is AdapterState.POWERED_OFF:
            self._report_adapter_state(AdapterState.POWERED_OFF)

    # Scanning

    def start_scan(self) -> None:
        self._scanner = BleakScanner(
            detection_callback=self._on_detection,
            **self._scanner_kwargs(),
        )
        self._spawn(self._start_scanner(self._scanner))

    async def _start_scanner(self, scanner: BleakScanner) -> None:
        try:
            await scanner.start()
        except (BleakError, OSError) as err:
            _LOGGER.warning("Failed to start scanning: %s", err)
            self._report_adapter_state(adapter_state_from_error(err))

    def _on_detection(self, device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        name = advertisement_data.local_name or device.name
        self.delegate.on_peripheral_discovered(device, name, advertisement_data.rssi)

    def stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is not None:
            self._spawn(self._stop_scanner(scanner))

    async def _stop_scanner(self, scanner: BleakScanner) -> None:
        try:
            await scanner.stop()
        except (BleakError, OSError) as err:
            _LOGGER.debug("Error while stopping scanner: %s", err)

    # Connection

    def connect(self, peripheral: BLEDevice) -> None:
        self._spawn(self._connect(peripheral))

    async def _connect(self, peripheral: BLEDevice) -> None:
        _LOGGER.debug(
            "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
            peripheral.address,
            self.max_attempts,
        )
        try:
            client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=peripheral,
                name=peripheral.name or peripheral.address,
                disconnected_callback=self._on_bleak_disconnect,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            error = BLETimeoutError(f"Connection timeout after {self.timeout}s")
            error.__cause__ = e
            self.delegate.on_connect_failed(peripheral, error)
            return
        except Exception as e:  # forwarded to the delegate
            error = BLEConnectionError(f"Failed to connect: {e}")
            error.__cause__ = e
            self.delegate.on_connect_failed(peripheral, error)
            self._check_power(e)
            return

        self._client = client
        self._disconnect_reported = False
        self.delegate.on_connected(peripheral)

    def disconnect(self, peripheral: BLEDevice) -> None:
        self._spawn(self._disconnect(peripheral))

    async def _disconnect(self, peripheral: BLEDevice) -> None:
        client = self._client
        error: BaseException | None = None
        if client is not None:
            try:
                await client.disconnect()
            except Exception as e:  # link is gone either way
                _LOGGER.warning("Error during disconnect: %s", e)
                error = e
        self._report_disconnect(peripheral, error)

    def _on_bleak_disconnect(self, client: BleakClient) -> None:
        if client is not self._client:
            return
        self._report_disconnect(None, None)

    def _report_disconnect(self, peripheral: BLEDevice | None, error: BaseException | None) -> None:
        if self._disconnect_reported:
            return
        self._disconnect_reported = True
        self._client = None
        self.delegate.on_disconnected(peripheral, error)

    # Discovery (Bleak resolves the whole GATT table while connecting)

    def discover_services(self, peripheral: BLEDevice, uuids: Sequence[str]) -> None:
        wanted = {normalize_uuid(uuid) for uuid in uuids}
        try:
            services = [
                service for service in self._require_client().services
                if normalize_uuid(service.uuid) in wanted
            ]
        except BleakError as err:
            self._call_soon(self.delegate.on_services_discovered, peripheral, [], err)
            return
        self._call_soon(self.delegate.on_services_discovered, peripheral, services, None)

    def discover_characteristics(
            self, peripheral: BLEDevice, service: Any, uuids: Sequence[str]
    ) -> None:
        wanted = {normalize_uuid(uuid) for uuid in uuids}
        characteristics = [
            characteristic for characteristic in service.characteristics
            if normalize_uuid(characteristic.uuid) in wanted
        ]
        self._call_soon(self.delegate.on_characteristics_discovered, service, characteristics, None)

    # Characteristic access

    def read(self, peripheral: BLEDevice, characteristic: BleakGATTCharacteristic) -> None:
        self._spawn(self._read(characteristic))

    async def _read(self, characteristic: BleakGATTCharacteristic) -> None:
        try:
            data = await self._require_client().read_gatt_char(characteristic)
        except Exception as e:  # forwarded to the delegate
            self.delegate.on_value_updated(characteristic, None, e)
            self._check_power(e)
            return
        self.delegate.on_value_updated(characteristic, bytes(data), None)

    def write(self, peripheral: BLEDevice, characteristic: BleakGATTCharacteristic, data: bytes) -> None:
        self._spawn(self._write(characteristic, data))

    async def _write(self, characteristic: BleakGATTCharacteristic, data: bytes) -> None:
        try:
            await self._require_client().write_gatt_char(
                characteristic,
                data,
                response=True,  # Wait for write confirmation
            )
        except Exception as e:  # forwarded to the delegate
            self.delegate.on_value_written(characteristic, e)
            self._check_power(e)
            return
        self.delegate.on_value_written(characteristic, None)

    def set_notify(
            self, peripheral: BLEDevice, characteristic: BleakGATTCharacteristic, enable: bool
    ) -> None:
        self._spawn(self._set_notify(characteristic, enable))

    async def _set_notify(self, characteristic: BleakGATTCharacteristic, enable: bool) -> None:
        try:
            client = self._require_client()
            if enable:
                await client.start_notify(characteristic, self._notification_callback)
            else:
                await client.stop_notify(characteristic)
        except Exception as e:  # forwarded to the delegate
            self.delegate.on_notification_state_updated(characteristic, e)
            self._check_power(e)
            return
        self.delegate.on_notification_state_updated(characteristic, None)

    def _notification_callback(self, sender: BleakGATTCharacteristic, data: bytearray) -> None:
        """Handle incoming BLE notifications.

        Args:
            sender: Characteristic that sent notification
            data: Notification data
        """
        self.delegate.on_value_updated(sender, bytes(data), None)

    def _require_client(self) -> BleakClient:
        if self._client is None or not self._client.is_connected:
            raise BleakError("Not connected")
        return self._client
