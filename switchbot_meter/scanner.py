# switchbot_meter/scanner.py
"""Advertisement scanning for meters."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional, Tuple

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from .const import ADVERTISEMENT_SERVICE_UUID, DEFAULT_SCAN_TIMEOUT

_LOGGER = logging.getLogger(__name__)

Advertisement = Tuple[str, bytes, BLEDevice]


def meter_service_data(advertisement_data: AdvertisementData) -> Optional[bytes]:
    """Return the meter service data of an advertisement, if any."""
    data = advertisement_data.service_data.get(ADVERTISEMENT_SERVICE_UUID)
    return bytes(data) if data is not None else None


async def scan(
    timeout: float = DEFAULT_SCAN_TIMEOUT, address: str | None = None
) -> AsyncIterator[Advertisement]:
    """
    Yield (address, service_data, BLEDevice) for meter advertisements.

    The scan ends after `timeout` seconds, or as soon as the wanted
    `address` has been seen once.
    """
    wanted = address.upper() if address else None
    queue: asyncio.Queue[Advertisement] = asyncio.Queue()

    def _detection(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        if wanted and device.address.upper() != wanted:
            return
        data = meter_service_data(advertisement_data)
        if data is None:
            return
        _LOGGER.debug("%s: Advertisement %s", device.address, data.hex(" ").upper())
        queue.put_nowait((device.address, data, device))

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    async with BleakScanner(detection_callback=_detection):
        while (remaining := deadline - loop.time()) > 0:
            try:
                advertisement = await asyncio.wait_for(queue.get(), remaining)
            except asyncio.TimeoutError:
                break
            yield advertisement
            if wanted:
                break
