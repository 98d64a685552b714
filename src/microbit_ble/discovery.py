"""BLE discovery of advertising micro:bits."""

from __future__ import annotations

import logging

from bleak import BleakScanner

from .protocol.profile import NAME_PREFIX

_LOGGER = logging.getLogger(__name__)


async def discover_devices(
        timeout: float = 10.0,
        name_prefix: str = NAME_PREFIX,
) -> dict[str, str]:
    """Discover micro:bits by advertised name.

    micro:bits do not advertise their services, so devices are matched by
    name prefix rather than by service UUID.

    Args:
        timeout: Scan duration in seconds (default: 10)
        name_prefix: Advertised name prefix (default: "BBC micro:bit")

    Returns:
        Dictionary mapping device address to advertised name
    """
    _LOGGER.debug("Scanning for '%s*' devices (timeout=%.1fs)", name_prefix, timeout)
    discovered = await BleakScanner.discover(timeout=timeout, return_adv=True)

    devices: dict[str, str] = {}
    for address, (device, advertisement) in discovered.items():
        name = advertisement.local_name or device.name
        if name and name.startswith(name_prefix):
            devices[address] = name

    _LOGGER.info("Found %d micro:bit(s)", len(devices))
    return devices
