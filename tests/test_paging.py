"""Tests for the fetch planner and timestamp walk."""

from datetime import timedelta

import pytest

from switchbot_meter.exception import ZeroIntervalError
from switchbot_meter.paging import plan_offsets, sample_timestamps
from switchbot_meter.protocol import SectionInfo

SECTION = SectionInfo(
    start_time=1_637_924_839, end_time=1_638_048_319, data_length=1030, interval=120
)


def test_full_plan_drops_partial_block() -> None:
    offsets = plan_offsets(SECTION)
    assert offsets[0] == 0
    assert offsets[-1] == 1020
    assert len(offsets) == 1030 // 6
    assert offsets == list(range(0, 1026, 6))


@pytest.mark.parametrize("data_length", [0, 5])
def test_full_plan_empty_store(data_length: int) -> None:
    assert plan_offsets(SectionInfo(0, 0, data_length, 60)) == []


@pytest.mark.parametrize(
    ("duration", "blocks"),
    [
        (timedelta(hours=1), 5),  # 30 samples
        (timedelta(hours=2), 10),  # 60 samples
        (timedelta(minutes=14), 2),  # 7 samples
        (timedelta(days=1), 120),  # 720 samples
        (timedelta(days=100), 171),  # capped
    ],
)
def test_bounded_plan_is_suffix(duration: timedelta, blocks: int) -> None:
    full = plan_offsets(SECTION)
    bounded = plan_offsets(SECTION, duration)
    assert len(bounded) == blocks
    assert bounded == full[len(full) - blocks:]


def test_bounded_plan_truncates_samples_before_rounding_blocks() -> None:
    # 130s / 120s -> 1 sample -> 1 block; 119s -> 0 samples -> nothing
    assert plan_offsets(SECTION, 130) == [1020]
    assert plan_offsets(SECTION, 119) == []
    # 13 samples need 3 blocks, 12 need 2
    assert len(plan_offsets(SECTION, 13 * 120 + 119)) == 3
    assert len(plan_offsets(SECTION, 12 * 120)) == 2


def test_bounded_plan_accepts_fractional_seconds() -> None:
    assert plan_offsets(SECTION, 240.9) == plan_offsets(SECTION, 240)


def test_bounded_plan_guards_zero_interval() -> None:
    section = SectionInfo(0, 0, 60, 0)
    assert len(plan_offsets(section)) == 10
    with pytest.raises(ZeroIntervalError):
        plan_offsets(section, timedelta(minutes=5))


def test_bounded_plan_rejects_negative_duration() -> None:
    with pytest.raises(ValueError):
        plan_offsets(SECTION, -1)


def test_sample_timestamps_walk_from_end_aligned_start() -> None:
    section = SectionInfo(start_time=1000, end_time=2000, data_length=10, interval=60)
    assert list(sample_timestamps(section, 4)) == [1360, 1420, 1480, 1540]


def test_sample_timestamps_never_start_before_store() -> None:
    section = SectionInfo(start_time=1000, end_time=2000, data_length=2, interval=60)
    assert list(sample_timestamps(section, 3)) == [1000, 1060, 1120]
