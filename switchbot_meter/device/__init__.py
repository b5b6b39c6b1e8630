"""Meter device package."""

from __future__ import annotations

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakDeviceNotFoundError

from .base_device import BaseDevice
from .meter import MeterDevice

__all__ = [
    "BaseDevice",
    "MeterDevice",
    "get_device_from_address",
    "get_model_class_from_name",
]

RESOLVE_TIMEOUT = 10.0

_MODEL_CLASSES: list[type[BaseDevice]] = [MeterDevice]


def get_model_class_from_name(device_name: str) -> type[BaseDevice] | None:
    """Get device class from its advertised name."""
    for model_class in _MODEL_CLASSES:
        for model_code in model_class.model_codes:
            if device_name.startswith(model_code):
                return model_class
    return None


async def get_device_from_address(device_address: str) -> MeterDevice:
    """Resolve a meter by address with a short scan."""
    ble_dev: BLEDevice | None = await BleakScanner.find_device_by_address(
        device_address, timeout=RESOLVE_TIMEOUT
    )
    if ble_dev is None:
        raise BleakDeviceNotFoundError(
            device_address, f"Device with address {device_address} was not found"
        )
    return MeterDevice(ble_dev)
