# switchbot_meter/device/meter.py
"""SwitchBot Meter / Meter Plus thermo-hygrometer."""

from __future__ import annotations

from typing import List

from .. import commands
from ..const import RESPONSE_OK
from ..paging import Duration, plan_offsets
from ..protocol import (
    SampleValue,
    SectionInfo,
    StoreInfo,
    decode_sample_block,
    decode_section_info,
    decode_store_info,
)
from .base_device import BaseDevice


class MeterDevice(BaseDevice):
    """Thermo-hygrometer with a historical sample store."""

    _model_name = "Meter"
    _model_codes = ["WoSensorTH", "Meter", "MeterPlus"]

    async def read_section_info(self) -> SectionInfo | None:
        """Read the time range, length and interval of the store."""
        response = await self.exchange(commands.create_read_section_info_command())
        section_info = decode_section_info(response)
        if section_info is None:
            self._logger.debug(
                "%s: Unusable section info response: %s", self.name, response.hex(" ").upper()
            )
        return section_info

    async def read_store_info(self) -> List[StoreInfo] | None:
        """Read the list of stored sections."""
        response = await self.exchange(commands.create_read_store_info_command())
        return decode_store_info(response)

    async def read_samples(
        self, section_info: SectionInfo, duration: Duration | None = None
    ) -> List[SampleValue]:
        """
        Fetch the stored samples, oldest first.

        One exchange per planned offset, strictly in plan order. A response
        that does not decode leaves a gap instead of aborting the dump.
        """
        offsets = plan_offsets(section_info, duration)
        self._logger.debug("%s: Fetching %d blocks", self.name, len(offsets))
        result: List[SampleValue] = []
        for offset in offsets:
            response = await self.exchange(
                commands.create_read_sample_block_command(offset)
            )
            samples = decode_sample_block(response)
            if samples is None:
                self._logger.debug(
                    "%s: Skipping offset %d, unusable response: %s",
                    self.name,
                    offset,
                    response.hex(" ").upper(),
                )
                continue
            result.extend(samples)
        return result

    async def set_time(self, epoch_seconds: int | None = None) -> None:
        """Set the device clock (defaults to now)."""
        response = await self.exchange(commands.create_set_time_command(epoch_seconds))
        if not response or response[0] != RESPONSE_OK:
            self._logger.warning("%s: Got non-okay response when setting time", self.name)
