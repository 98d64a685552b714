"""Shared fixtures: a scripted in-memory transport."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from microbit_ble.models.enums import AdapterState
from microbit_ble.protocol import profile
from microbit_ble.protocol.profile import normalize_uuid
from microbit_ble.transport.connection import BLEConnection

MICROBIT_NAME = "BBC micro:bit [zuvap]"
MICROBIT_ADDRESS = "E4:6A:1C:00:00:01"

ALL_SERVICES = list(profile.SERVICE_IDS)


@dataclass(frozen=True)
class FakePeripheral:
    address: str
    name: str


@dataclass(frozen=True)
class FakeCharacteristic:
    uuid: str


@dataclass
class FakeService:
    uuid: str
    characteristics: list[FakeCharacteristic] = field(default_factory=list)


async def settle(rounds: int = 10) -> None:
    """Let pending call_soon callbacks and woken tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeTransport:
    """Transport double answering every request on the next loop iteration.

    Attributes tests tune before acting:
    - adapter_state: Reported by start()
    - advertisements: (name, address) pairs announced when scanning starts
    - services: Service UUIDs present on the peripheral
    - missing_characteristics: Characteristic UUIDs not found during discovery
    - values: Value returned by read() per characteristic UUID
    - connect_error, services_error, write_error, notify_error: Reported errors
    - read_errors / characteristic_errors: Errors per characteristic / service UUID
    - hold: Keep read/write/notify replies until release() is called
    - hold_connect: Keep the connect reply until finish_connect() is called
    """

    def __init__(self) -> None:
        self.delegate: Any = None
        self.adapter_state = AdapterState.POWERED_ON
        self.advertisements: list[tuple[str | None, str]] = [(MICROBIT_NAME, MICROBIT_ADDRESS)]
        self.services: list[str] = list(ALL_SERVICES)
        self.missing_characteristics: set[str] = set()
        self.values: dict[str, bytes] = {}
        self.connect_error: BaseException | None = None
        self.connect_fails_silently = False
        self.services_error: BaseException | None = None
        self.characteristic_errors: dict[str, BaseException] = {}
        self.read_errors: dict[str, BaseException] = {}
        self.write_error: BaseException | None = None
        self.notify_error: BaseException | None = None
        self.hold = False
        self.hold_connect = False

        self.requests: list[tuple] = []
        self.written: list[tuple[str, bytes]] = []
        self.notifying: set[str] = set()
        self.scanning = False
        self.in_flight = 0
        self.max_in_flight = 0
        self._held: list[tuple] = []
        self._held_connect: Any = None

    # Transport interface

    def attach(self, delegate: Any) -> None:
        self.delegate = delegate

    def start(self) -> None:
        self.requests.append(("start",))
        self._call_soon(self.delegate.on_adapter_state_changed, self.adapter_state)

    def stop(self) -> None:
        self.requests.append(("stop",))

    def start_scan(self) -> None:
        self.requests.append(("start_scan",))
        self.scanning = True
        for name, address in self.advertisements:
            self._call_soon(self._advertise, name, address)

    def stop_scan(self) -> None:
        self.requests.append(("stop_scan",))
        self.scanning = False

    def connect(self, peripheral: Any) -> None:
        self.requests.append(("connect", peripheral.address))
        if self.connect_error is not None or self.connect_fails_silently:
            self._call_soon(self.delegate.on_connect_failed, peripheral, self.connect_error)
        elif self.hold_connect:
            self._held_connect = peripheral
        else:
            self._call_soon(self.delegate.on_connected, peripheral)

    def disconnect(self, peripheral: Any) -> None:
        self.requests.append(("disconnect", peripheral.address))
        self.notifying.clear()
        self._call_soon(self.delegate.on_disconnected, peripheral, None)

    def discover_services(self, peripheral: Any, uuids: list[str]) -> None:
        self.requests.append(("discover_services", tuple(uuids)))
        wanted = {normalize_uuid(uuid) for uuid in uuids}
        found = [
            FakeService(uuid) for uuid in self.services
            if normalize_uuid(uuid) in wanted
        ]
        if self.services_error is not None:
            found = []
        self._call_soon(self.delegate.on_services_discovered, peripheral, found, self.services_error)

    def discover_characteristics(self, peripheral: Any, service: Any, uuids: list[str]) -> None:
        self.requests.append(("discover_characteristics", service.uuid))
        service.characteristics = [
            FakeCharacteristic(uuid) for uuid in uuids
            if uuid not in self.missing_characteristics
        ]
        error = self.characteristic_errors.get(service.uuid)
        self._call_soon(
            self.delegate.on_characteristics_discovered, service, service.characteristics, error
        )

    def read(self, peripheral: Any, characteristic: Any) -> None:
        self.requests.append(("read", characteristic.uuid))
        error = self.read_errors.get(characteristic.uuid)
        data = None if error is not None else self.values.get(characteristic.uuid, b"")
        self._operation(self.delegate.on_value_updated, characteristic, data, error)

    def write(self, peripheral: Any, characteristic: Any, data: bytes) -> None:
        self.requests.append(("write", characteristic.uuid, data))
        self.written.append((characteristic.uuid, data))
        self._operation(self.delegate.on_value_written, characteristic, self.write_error)

    def set_notify(self, peripheral: Any, characteristic: Any, enable: bool) -> None:
        self.requests.append(("set_notify", characteristic.uuid, enable))
        if self.notify_error is None:
            if enable:
                self.notifying.add(characteristic.uuid)
            else:
                self.notifying.discard(characteristic.uuid)
        self._operation(self.delegate.on_notification_state_updated, characteristic, self.notify_error)

    # Test controls

    def notify(self, uuid: str, data: bytes) -> None:
        """Deliver a notification immediately."""
        self.delegate.on_value_updated(FakeCharacteristic(uuid), data, None)

    def drop_link(self, error: BaseException | None = None) -> None:
        """Simulate an unsolicited disconnect."""
        self.notifying.clear()
        self.delegate.on_disconnected(None, error)

    def release(self) -> None:
        """Deliver every held reply."""
        held, self._held = self._held, []
        for callback, args in held:
            self._finish(callback, *args)

    def finish_connect(self) -> None:
        """Report the held connect as established."""
        peripheral, self._held_connect = self._held_connect, None
        self.delegate.on_connected(peripheral)

    @property
    def held(self) -> int:
        return len(self._held)

    def requests_of(self, kind: str) -> list[tuple]:
        return [request for request in self.requests if request[0] == kind]

    # Internals

    def _advertise(self, name: str | None, address: str) -> None:
        if self.scanning:
            self.delegate.on_peripheral_discovered(FakePeripheral(address, name or ""), name, -60)

    def _operation(self, callback, *args) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.hold:
            self._held.append((callback, args))
        else:
            self._call_soon(self._finish, callback, *args)

    def _finish(self, callback, *args) -> None:
        self.in_flight -= 1
        callback(*args)

    @staticmethod
    def _call_soon(callback, *args) -> None:
        asyncio.get_running_loop().call_soon(callback, *args)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def connection(transport: FakeTransport) -> BLEConnection:
    return BLEConnection(transport)


async def power_on(connection: BLEConnection) -> None:
    """Initialize the connection and wait for the adapter report."""
    connection.initialize()
    await settle()


async def connect(connection: BLEConnection) -> str:
    """Initialize and connect through the fake transport."""
    await power_on(connection)
    return await connection.connect()
