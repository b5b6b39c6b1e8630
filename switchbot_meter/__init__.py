"""Read SwitchBot thermo-hygrometers over Bluetooth LE."""

from .commands import (
    create_read_sample_block_command,
    create_read_section_info_command,
    create_read_store_info_command,
    create_set_time_command,
)
from .paging import plan_offsets, sample_timestamps
from .protocol import (
    LiveValue,
    SampleValue,
    SectionInfo,
    StoreInfo,
    decode_live,
    decode_sample_block,
    decode_section_info,
    decode_store_info,
    gen_cmd,
)

__all__ = [
    "LiveValue",
    "SampleValue",
    "SectionInfo",
    "StoreInfo",
    "create_read_sample_block_command",
    "create_read_section_info_command",
    "create_read_store_info_command",
    "create_set_time_command",
    "decode_live",
    "decode_sample_block",
    "decode_section_info",
    "decode_store_info",
    "gen_cmd",
    "plan_offsets",
    "sample_timestamps",
]
