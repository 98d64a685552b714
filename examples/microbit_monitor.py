"""Connect to a micro:bit and print button and sensor updates.

Usage:
    python examples/microbit_monitor.py --text "Hi" --duration 30
    python examples/microbit_monitor.py --scan
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime
from typing import Any

from microbit_ble import LedMatrix, MicrobitController, SensingPeriod, discover_devices

_HEART = LedMatrix.from_pattern(".#.#.|#####|#####|.###.|..#..")


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_change(field: str, value: Any) -> None:
    """Print one observable field change."""
    if field in ("accelerometer", "magnetometer"):
        value = "x={:+.3f} y={:+.3f} z={:+.3f}".format(*value.as_tuple())
    elif field == "services":
        value = ", ".join(service.value for service in value) or "none"
    elif hasattr(value, "name"):
        value = value.name
    print(f"[{_timestamp()}] {field}: {value}")


async def scan(duration: float) -> None:
    devices = await discover_devices(timeout=duration)
    if not devices:
        print("No micro:bit found")
    for address, name in sorted(devices.items()):
        print(f"  {address}: {name}")


async def monitor(duration: float, text: str | None, period: int, show_sensors: bool) -> None:
    """Connect, optionally scroll text, and print updates."""
    async with MicrobitController() as microbit:
        def on_change(field: str, value: Any) -> None:
            if show_sensors or field not in ("accelerometer", "magnetometer"):
                _print_change(field, value)

        microbit.add_listener(on_change)

        print("Waiting for Bluetooth...")
        await microbit.wait_until_enabled(timeout=10.0)

        microbit.connect()
        microbit.set_accelerometer_period(period)
        microbit.display_matrix(_HEART)
        microbit.wait(1000)
        if text:
            microbit.display_text(text)
        await microbit.wait_until_connected(timeout=60.0)

        if duration > 0:
            await asyncio.sleep(duration)
        else:
            while True:
                await asyncio.sleep(1)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monitor a BBC micro:bit over BLE.")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Monitor duration in seconds (0 = run until Ctrl+C). Default: 30",
    )
    parser.add_argument("--text", help="Text to scroll across the LEDs after connecting.")
    parser.add_argument(
        "--period",
        type=int,
        default=int(SensingPeriod.EIGHTY),
        choices=[int(p) for p in SensingPeriod],
        help="Accelerometer period in milliseconds. Default: 80",
    )
    parser.add_argument(
        "--no-sensors",
        action="store_true",
        help="Do not print accelerometer and magnetometer updates.",
    )
    parser.add_argument(
        "--scan",
        action="store_true",
        help="Only list advertising micro:bits.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.scan:
            asyncio.run(scan(args.duration or 10.0))
        else:
            asyncio.run(monitor(args.duration, args.text, args.period, not args.no_sensors))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
