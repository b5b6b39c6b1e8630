# switchbot_meter/protocol.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .const import (
    EXTENDED_CLASS,
    FRAME_MARKER,
    LIVE_DATA_LENGTH,
    LIVE_DEVICE_TYPE,
    RESPONSE_OK,
    SAMPLE_WINDOW,
    SECTION_INFO_LENGTH,
)

__all__ = [
    "gen_cmd",
    "SectionInfo", "SampleValue", "LiveValue", "StoreInfo",
    "decode_section_info", "decode_sample_block", "decode_live",
    "decode_store_info",
]

# ────────────────────────────────────────────────────────────────
# Frame layout
#   [0x57, class, opcode, *payload]
#   class = 0x0F for opcodes above 0x0F, else 0x00
# ────────────────────────────────────────────────────────────────
def gen_cmd(opcode: int, payload_length: int) -> bytearray:
    """Return a zeroed command frame; callers fill the payload bytes."""
    if not 0 <= opcode <= 0xFF:
        raise ValueError(f"opcode out of range: {opcode}")
    if payload_length < 0:
        raise ValueError(f"negative payload length: {payload_length}")
    frame = bytearray(3 + payload_length)
    frame[0] = FRAME_MARKER
    frame[1] = EXTENDED_CLASS if opcode > 0x0F else 0x00
    frame[2] = opcode
    return frame


# ────────────────────────────────────────────────────────────────
# Decoded values
# ────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SectionInfo:
    """Description of the historical store."""

    start_time: int
    end_time: int
    data_length: int
    interval: int


@dataclass(frozen=True)
class SampleValue:
    temperature: float
    humidity: int


@dataclass(frozen=True)
class LiveValue:
    temperature: float
    humidity: int
    battery: int


@dataclass(frozen=True)
class StoreInfo:
    section: int


def _temperature(sign_byte: int, fraction: int) -> float:
    """Bit 7 set means positive; low 7 bits are whole degrees."""
    value = round((sign_byte & 0x7F) + fraction / 10.0, 1)
    if not sign_byte & 0x80:
        value = -value
    return value


# ────────────────────────────────────────────────────────────────
# Section info (response to CMD_READ_SECTION_INFO)
#   [status, start_time:4, end_time:4, data_length:2, interval:2]  big-endian
# ────────────────────────────────────────────────────────────────
def decode_section_info(data: bytes | bytearray) -> Optional[SectionInfo]:
    if len(data) < SECTION_INFO_LENGTH or data[0] != RESPONSE_OK:
        return None
    return SectionInfo(
        start_time=int.from_bytes(data[1:5], "big"),
        end_time=int.from_bytes(data[5:9], "big"),
        data_length=int.from_bytes(data[9:11], "big"),
        interval=int.from_bytes(data[11:13], "big"),
    )


# ────────────────────────────────────────────────────────────────
# Sample block (response to CMD_READ_SAMPLE_BLOCK)
#   [status, (b0 b1 b2 b3 b4)*]
#   each 5-byte window packs two readings; b2 holds both tenths digits
#   (high nibble -> first reading, low nibble -> second reading)
# ────────────────────────────────────────────────────────────────
def _first_value(window: bytes | bytearray) -> SampleValue:
    assert len(window) >= 3
    return SampleValue(
        temperature=_temperature(window[0], (window[2] >> 4) & 0x0F),
        humidity=window[1] & 0x7F,
    )


def _second_value(window: bytes | bytearray) -> SampleValue:
    assert len(window) >= 5
    return SampleValue(
        temperature=_temperature(window[3], window[2] & 0x0F),
        humidity=window[4] & 0x7F,
    )


def decode_sample_block(data: bytes | bytearray) -> Optional[List[SampleValue]]:
    """
    Decode one fetch response into readings, oldest first.

    Anything that is not a status byte followed by whole 5-byte windows is
    rejected as a whole.
    """
    if (
        len(data) < 1 + SAMPLE_WINDOW
        or data[0] != RESPONSE_OK
        or (len(data) - 1) % SAMPLE_WINDOW != 0
    ):
        return None

    values: List[SampleValue] = []
    for i in range(1, len(data), SAMPLE_WINDOW):
        window = data[i:i + SAMPLE_WINDOW]
        values.append(_first_value(window))
        values.append(_second_value(window))
    return values


# ────────────────────────────────────────────────────────────────
# Live value (advertisement service data)
#   [105, ?, battery, tenths, sign|degrees, humidity]
# ────────────────────────────────────────────────────────────────
def decode_live(data: bytes | bytearray) -> Optional[LiveValue]:
    if len(data) != LIVE_DATA_LENGTH or data[0] != LIVE_DEVICE_TYPE:
        return None
    return LiveValue(
        temperature=_temperature(data[4], data[3] & 0x0F),
        humidity=data[5] & 0x7F,
        battery=data[2] & 0x7F,
    )


# ────────────────────────────────────────────────────────────────
# Store info (response to CMD_READ_STORE_INFO)
#   [status, count (low nibble), section * count]
# ────────────────────────────────────────────────────────────────
def decode_store_info(data: bytes | bytearray) -> Optional[List[StoreInfo]]:
    if len(data) < 2 or data[0] != RESPONSE_OK:
        return None
    count = data[1] & 0x0F
    if len(data) < 2 + count:
        return None
    return [StoreInfo(section=section) for section in data[2:2 + count]]
