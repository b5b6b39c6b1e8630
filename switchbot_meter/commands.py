"""Module defining commands generation functions."""

from __future__ import annotations

import time

from .const import (
    CMD_READ_SAMPLE_BLOCK,
    CMD_READ_SECTION_INFO,
    CMD_READ_STORE_INFO,
    CMD_SET_TIME,
    SAMPLE_COUNT,
    SET_TIME_TAG,
)
from .protocol import gen_cmd


def create_read_section_info_command() -> bytearray:
    """Ask for the time range, length and interval of the store."""
    cmd = gen_cmd(CMD_READ_SECTION_INFO, 1)
    cmd[3] = 0
    return cmd


def create_read_store_info_command() -> bytearray:
    """Ask for the list of stored sections."""
    cmd = gen_cmd(CMD_READ_STORE_INFO, 1)
    cmd[3] = 0
    return cmd


def create_read_sample_block_command(offset: int) -> bytearray:
    """Fetch one block of samples.

    param: offset: byte offset into the store, 0 - 65535
    """
    if not 0 <= offset <= 0xFFFF:
        raise ValueError(f"offset out of range: {offset}")
    cmd = gen_cmd(CMD_READ_SAMPLE_BLOCK, 4)
    cmd[3] = 0
    cmd[4] = (offset >> 8) & 0xFF
    cmd[5] = offset & 0xFF
    cmd[6] = SAMPLE_COUNT
    return cmd


def create_set_time_command(epoch_seconds: int | None = None) -> bytearray:
    """Set the device clock.

    epoch_seconds: Unix timestamp written as a signed 64-bit big-endian value;
                   defaults to the local clock
    """
    if epoch_seconds is None:
        epoch_seconds = int(time.time())
    cmd = gen_cmd(CMD_SET_TIME, 10)
    i = len(cmd) - 10
    cmd[i], cmd[i + 1] = SET_TIME_TAG
    cmd[i + 2:] = int(epoch_seconds).to_bytes(8, "big", signed=True)
    return cmd
