# switchbot_meter/paging.py
"""Plan the sample block fetches for a historical dump."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterator, List, Union

from .const import SAMPLE_COUNT
from .exception import ZeroIntervalError
from .protocol import SectionInfo

Duration = Union[int, float, timedelta]


def _seconds(duration: Duration) -> int:
    if isinstance(duration, timedelta):
        duration = duration.total_seconds()
    seconds = int(duration)
    if seconds < 0:
        raise ValueError(f"duration must not be negative: {duration}")
    return seconds


def plan_offsets(
    section_info: SectionInfo, duration: Duration | None = None
) -> List[int]:
    """
    Return the store offsets to fetch, ascending.

    Without a duration every whole block is planned; a trailing partial block
    is dropped. With a duration only the newest blocks covering it are kept:
      samples_wanted = seconds // interval
      blocks_wanted  = ceil(samples_wanted / SAMPLE_COUNT)
    """
    total_blocks = section_info.data_length // SAMPLE_COUNT
    offsets = list(range(0, total_blocks * SAMPLE_COUNT, SAMPLE_COUNT))
    if duration is None:
        return offsets

    if section_info.interval == 0:
        raise ZeroIntervalError("Cannot bound a dump by duration: interval is 0")

    samples_wanted = _seconds(duration) // section_info.interval
    blocks_wanted = -(-samples_wanted // SAMPLE_COUNT)
    keep = min(blocks_wanted, total_blocks)
    return offsets[len(offsets) - keep:]


def sample_timestamps(section_info: SectionInfo, count: int) -> Iterator[int]:
    """Yield the epoch timestamp of each of `count` fetched samples.

    The walk starts `data_length - count` intervals after `start_time`
    (never before it) and steps by `interval`.
    """
    skipped = max(section_info.data_length - count, 0)
    current = section_info.start_time + section_info.interval * skipped
    for _ in range(count):
        yield current
        current += section_info.interval
