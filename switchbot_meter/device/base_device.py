# switchbot_meter/device/base_device.py
"""Module defining a base device class."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, ABCMeta
from typing import Union

from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.backends.service import BleakGATTCharacteristic  # type: ignore
from bleak.backends.service import BleakGATTServiceCollection
from bleak.exc import BleakDBusError, BleakError
from bleak_retry_connector import BLEAK_RETRY_EXCEPTIONS as BLEAK_EXCEPTIONS
from bleak_retry_connector import (
    BleakClientWithServiceCache,
    BleakNotFoundError,
    establish_connection,
)

from ..const import (
    BLEAK_BACKOFF_TIME,
    DISCONNECT_DELAY,
    EXCHANGE_TIMEOUT,
    READ_CHAR_UUID,
    WRITE_CHAR_UUID,
)
from ..exception import CharacteristicMissingError, ExchangeTimeoutError


class _classproperty(property):
    def __get__(self, owner_self: object, owner_cls: ABCMeta) -> str:  # type: ignore
        ret: str = self.fget(owner_cls)  # type: ignore
        return ret


def _mk_ble_device(addr_or_ble: Union[BLEDevice, str]) -> BLEDevice:
    """Return a BLEDevice, fabricating a minimal one from a MAC string."""
    if isinstance(addr_or_ble, BLEDevice):
        return addr_or_ble
    mac = str(addr_or_ble).upper()
    return BLEDevice(mac, None, 0)


class BaseDevice(ABC):
    """Base device class owning one command/notify connection.

    The device answers on a notify characteristic without any request id, so
    exchanges are serialized: one command in flight at a time.
    """

    _model_name: str | None = None
    _model_codes: list[str] = []
    _logger: logging.Logger

    def __init__(
        self,
        ble_device: Union[BLEDevice, str],
        advertisement_data: AdvertisementData | None = None,
    ) -> None:
        """Create a new device."""
        self._ble_device = _mk_ble_device(ble_device)
        self._logger = logging.getLogger(self._ble_device.address.replace(":", "-"))
        self._advertisement_data = advertisement_data
        self._client: BleakClientWithServiceCache | None = None
        self._disconnect_timer: asyncio.TimerHandle | None = None
        self._operation_lock: asyncio.Lock = asyncio.Lock()
        self._connect_lock: asyncio.Lock = asyncio.Lock()
        self._read_char: BleakGATTCharacteristic | None = None
        self._write_char: BleakGATTCharacteristic | None = None
        self._expected_disconnect = False
        # Waiter for the notification answering the command in flight
        self._pending: asyncio.Future[bytes] | None = None
        self.loop = asyncio.get_running_loop()
        assert self._model_name is not None

    # Base methods

    def set_log_level(self, level: int | str) -> None:
        """Set log level."""
        if isinstance(level, str):
            # default INFO
            level = logging._nameToLevel.get(level, 20)
        self._logger.setLevel(level)

    @property
    def address(self) -> str:
        """Return the address."""
        return self._ble_device.address

    @property
    def name(self) -> str:
        """Get the name of the device."""
        return self._ble_device.name or self._ble_device.address

    @property
    def rssi(self) -> int | None:
        """Get the rssi of the device."""
        if self._advertisement_data:
            return self._advertisement_data.rssi
        return None

    @_classproperty
    def model_name(cls) -> str | None:  # type: ignore[override]
        """Get the model of the device."""
        return cls._model_name

    @_classproperty
    def model_codes(cls) -> list[str]:  # type: ignore[override]
        """Return the model codes."""
        return cls._model_codes

    # Bluetooth methods

    async def exchange(self, command: bytes | bytearray) -> bytes:
        """Write one command and return the notification answering it."""
        await self._ensure_connected()
        self._logger.debug("%s: Sending command %s", self.name, bytes(command).hex(" ").upper())
        if self._operation_lock.locked():
            self._logger.debug(
                "%s: Operation already in progress, waiting for it to complete; RSSI: %s",
                self.name,
                self.rssi,
            )
        async with self._operation_lock:
            try:
                return await self._exchange_locked(bytes(command))
            except BleakNotFoundError:
                self._logger.error(
                    "%s: device not found, no longer in range, or poor RSSI: %s",
                    self.name,
                    self.rssi,
                    exc_info=True,
                )
                raise
            except CharacteristicMissingError as ex:
                self._logger.debug(
                    "%s: characteristic missing: %s; RSSI: %s",
                    self.name,
                    ex,
                    self.rssi,
                    exc_info=True,
                )
                raise
            except BLEAK_EXCEPTIONS:
                self._logger.debug("%s: communication failed", self.name, exc_info=True)
                raise

    async def _exchange_locked(self, command: bytes) -> bytes:
        try:
            return await self._execute_exchange_locked(command)
        except ExchangeTimeoutError as ex:
            # A late answer must not be taken for the next command's
            self._logger.debug(
                "%s: RSSI: %s; Disconnecting due to error: %s", self.name, self.rssi, ex
            )
            await self._execute_disconnect()
            raise
        except BleakDBusError as ex:
            # Disconnect so the next session starts from a clean state
            await asyncio.sleep(BLEAK_BACKOFF_TIME)
            self._logger.debug(
                "%s: RSSI: %s; Backing off %ss; Disconnecting due to error: %s",
                self.name,
                self.rssi,
                BLEAK_BACKOFF_TIME,
                ex,
            )
            await self._execute_disconnect()
            raise
        except BleakError as ex:
            self._logger.debug(
                "%s: RSSI: %s; Disconnecting due to error: %s", self.name, self.rssi, ex
            )
            await self._execute_disconnect()
            raise

    async def _execute_exchange_locked(self, command: bytes) -> bytes:
        """Register the waiter, write, then wait for the notification."""
        if self._client is None or not self._read_char:
            raise CharacteristicMissingError("Read characteristic missing")
        if not self._write_char:
            raise CharacteristicMissingError("Write characteristic missing")

        pending: asyncio.Future[bytes] = self.loop.create_future()
        self._pending = pending
        try:
            await self._client.write_gatt_char(self._write_char, command, False)
            try:
                return await asyncio.wait_for(pending, EXCHANGE_TIMEOUT)
            except asyncio.TimeoutError as ex:
                raise ExchangeTimeoutError(
                    f"No response to {command.hex(' ').upper()} within {EXCHANGE_TIMEOUT}s"
                ) from ex
        finally:
            self._pending = None

    def _notification_handler(
        self, _sender: BleakGATTCharacteristic, data: bytearray
    ) -> None:
        """Handle notification responses."""
        self._logger.debug(
            "%s: Notification received: %s", self.name, data.hex(" ").upper()
        )
        pending = self._pending
        if pending is None or pending.done():
            self._logger.debug("%s: Unsolicited notification dropped", self.name)
            return
        pending.set_result(bytes(data))

    def _disconnected(self, client: BleakClientWithServiceCache) -> None:
        """Disconnected callback."""
        if self._expected_disconnect:
            self._logger.debug(
                "%s: Disconnected from device; RSSI: %s", self.name, self.rssi
            )
            return
        self._logger.warning(
            "%s: Device unexpectedly disconnected; RSSI: %s",
            self.name,
            self.rssi,
        )
        pending = self._pending
        if pending is not None and not pending.done():
            pending.set_exception(BleakError("disconnected"))

    def _resolve_characteristics(self, services: BleakGATTServiceCollection) -> bool:
        """Resolve characteristics."""
        self._read_char = services.get_characteristic(READ_CHAR_UUID)
        self._write_char = services.get_characteristic(WRITE_CHAR_UUID)
        return bool(self._read_char and self._write_char)

    async def _ensure_connected(self) -> None:
        """Ensure connection to device is established."""
        if self._connect_lock.locked():
            self._logger.debug(
                "%s: Connection already in progress, waiting for it to complete; RSSI: %s",
                self.name,
                self.rssi,
            )
        if self._client and self._client.is_connected:
            self._reset_disconnect_timer()
            return
        async with self._connect_lock:
            # Check again while holding the lock
            if self._client and self._client.is_connected:
                self._reset_disconnect_timer()
                return
            self._logger.debug("%s: Connecting; RSSI: %s", self.name, self.rssi)

            client = await establish_connection(
                BleakClientWithServiceCache,
                self._ble_device,
                self.name,
                self._disconnected,
                use_services_cache=True,
                ble_device_callback=lambda: self._ble_device,
            )

            self._logger.debug("%s: Connected; RSSI: %s", self.name, self.rssi)
            if not self._resolve_characteristics(client.services):
                await client.disconnect()
                raise CharacteristicMissingError("Failed to resolve meter characteristics")

            self._client = client
            self._reset_disconnect_timer()

            # Subscribe before any command is written so no answer is missed
            self._logger.debug(
                "%s: Subscribe to notifications; RSSI: %s", self.name, self.rssi
            )
            await client.start_notify(self._read_char, self._notification_handler)  # type: ignore

    # Public helpers

    async def connect(self) -> BleakClientWithServiceCache:
        """Establish a connection (idempotent) and return the Bleak client."""
        await self._ensure_connected()
        assert self._client is not None  # nosec
        return self._client

    @property
    def client(self) -> BleakClientWithServiceCache | None:
        """Return the current Bleak client (None if not connected)."""
        return self._client

    def _reset_disconnect_timer(self) -> None:
        """Reset disconnect timer."""
        if self._disconnect_timer:
            self._disconnect_timer.cancel()
        self._expected_disconnect = False
        self._disconnect_timer = self.loop.call_later(
            DISCONNECT_DELAY, self._disconnect
        )

    async def disconnect(self) -> None:
        """Disconnect."""
        self._logger.debug("%s: Disconnecting", self.name)
        await self._execute_disconnect()

    async def _execute_disconnect(self) -> None:
        """Execute disconnection."""
        async with self._connect_lock:
            if self._disconnect_timer:
                self._disconnect_timer.cancel()
                self._disconnect_timer = None
            read_char = self._read_char
            client = self._client
            self._expected_disconnect = True
            self._client = None
            self._read_char = None
            self._write_char = None

            if client and client.is_connected:
                if read_char:
                    try:
                        await client.stop_notify(read_char)
                    except BLEAK_EXCEPTIONS:
                        self._logger.debug(
                            "%s: stop_notify failed (already stopped?)", self.name, exc_info=True
                        )
                await client.disconnect()

    def _disconnect(self) -> None:
        """Disconnect from device."""
        self._disconnect_timer = None
        asyncio.create_task(self._execute_timed_disconnect())

    async def _execute_timed_disconnect(self) -> None:
        """Execute timed disconnection."""
        self._logger.debug(
            "%s: Disconnecting after timeout of %s",
            self.name,
            DISCONNECT_DELAY,
        )
        await self._execute_disconnect()
