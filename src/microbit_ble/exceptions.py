"""Exceptions raised by the micro:bit BLE package."""

from __future__ import annotations

from .models.enums import AdapterState


class MicrobitError(Exception):
    """Base exception for all micro:bit BLE errors."""


class BLEConnectionError(MicrobitError):
    """Raised when the transport fails to connect to the peripheral."""


class BLETimeoutError(MicrobitError):
    """Raised when connecting to the peripheral times out."""


class AdapterError(MicrobitError):
    """Base exception for an unusable local Bluetooth adapter."""


class PoweredOffError(AdapterError):
    """Bluetooth is powered off."""


class UnauthorizedError(AdapterError):
    """The application is not authorized to use Bluetooth."""


class UnavailableError(AdapterError):
    """Bluetooth is resetting or not supported on this host."""


class UnknownAdapterStateError(AdapterError):
    """The adapter state has not been reported yet."""


class BusyError(MicrobitError):
    """An operation was attempted while the peripheral is in the wrong state."""


class NotConnectedError(MicrobitError):
    """The peripheral is not connected."""


class CanceledToConnectError(MicrobitError):
    """Scanning for the peripheral was canceled before it was found."""


class NotSupportedError(MicrobitError):
    """The characteristic was not discovered on this peripheral."""


class OperationFailedError(MicrobitError):
    """The transport reported a failure during read, write or notify toggle."""


class ProtocolError(MicrobitError):
    """Payload does not follow the micro:bit GATT profile."""


class InvalidResponseError(ProtocolError):
    """A characteristic value could not be decoded."""


_ADAPTER_ERRORS: dict[AdapterState, type[AdapterError]] = {
    AdapterState.POWERED_OFF: PoweredOffError,
    AdapterState.UNAUTHORIZED: UnauthorizedError,
    AdapterState.RESETTING: UnavailableError,
    AdapterState.UNSUPPORTED: UnavailableError,
    AdapterState.UNKNOWN: UnknownAdapterStateError,
}


def adapter_error_for(state: AdapterState) -> AdapterError | None:
    """Return the error matching an adapter state, or None when powered on."""
    error_class = _ADAPTER_ERRORS.get(state)
    if error_class is None:
        return None
    return error_class(f"Bluetooth adapter is {state.value}")
