"""Transport interfaces.

A transport drives the radio and reports every outcome back through a
``TransportDelegate``. Requests never block: each one is answered later by
exactly one delegate callback, invoked on the event loop.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from ..models.enums import AdapterState


class TransportDelegate(Protocol):
    def on_adapter_state_changed(self, state: AdapterState) -> None:
        """Radio availability changed."""

    def on_peripheral_discovered(self, peripheral: Any, name: str | None, rssi: int) -> None:
        """A peripheral was seen while scanning."""

    def on_connected(self, peripheral: Any) -> None:
        """The link to the peripheral is up."""

    def on_connect_failed(self, peripheral: Any, error: BaseException | None) -> None:
        """Connecting to the peripheral failed."""

    def on_disconnected(self, peripheral: Any, error: BaseException | None) -> None:
        """The link went down, requested or not."""

    def on_services_discovered(
        self, peripheral: Any, services: Sequence[Any], error: BaseException | None
    ) -> None:
        """Service discovery finished. Each service has a ``uuid`` attribute."""

    def on_characteristics_discovered(
        self, service: Any, characteristics: Sequence[Any], error: BaseException | None
    ) -> None:
        """Characteristic discovery for one service finished."""

    def on_value_updated(
        self, characteristic: Any, data: bytes | None, error: BaseException | None
    ) -> None:
        """A read completed or a notification arrived."""

    def on_value_written(self, characteristic: Any, error: BaseException | None) -> None:
        """A write with response was acknowledged."""

    def on_notification_state_updated(
        self, characteristic: Any, error: BaseException | None
    ) -> None:
        """Notifications were enabled or disabled."""


class Transport(Protocol):
    def attach(self, delegate: TransportDelegate) -> None:
        """Register the delegate receiving all callbacks."""

    def start(self) -> None:
        """Begin monitoring the adapter state."""

    def stop(self) -> None:
        """Stop monitoring the adapter state."""

    def start_scan(self) -> None:
        """Scan for all peripherals (no service filter)."""

    def stop_scan(self) -> None:
        """Stop scanning."""

    def connect(self, peripheral: Any) -> None:
        """Connect to a discovered peripheral."""

    def disconnect(self, peripheral: Any) -> None:
        """Disconnect from the peripheral."""

    def discover_services(self, peripheral: Any, uuids: Sequence[str]) -> None:
        """Discover the listed services."""

    def discover_characteristics(
        self, peripheral: Any, service: Any, uuids: Sequence[str]
    ) -> None:
        """Discover the listed characteristics of a service."""

    def read(self, peripheral: Any, characteristic: Any) -> None:
        """Read a characteristic value."""

    def write(self, peripheral: Any, characteristic: Any, data: bytes) -> None:
        """Write a characteristic value with response."""

    def set_notify(self, peripheral: Any, characteristic: Any, enable: bool) -> None:
        """Enable or disable notifications on a characteristic."""
