"""BLE transport and connection state machine."""

from .base import Transport, TransportDelegate
from .bleak_transport import BleakTransport
from .channel import NotificationChannel
from .connection import BLEConnection

__all__ = [
    "BLEConnection",
    "BleakTransport",
    "NotificationChannel",
    "Transport",
    "TransportDelegate",
]
