"""Tests for the meterctl command line."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import typer
from bleak.exc import BleakDeviceNotFoundError
from typer.testing import CliRunner

from switchbot_meter import meterctl
from switchbot_meter.protocol import LiveValue, SampleValue, SectionInfo, StoreInfo

runner = CliRunner()

ADDRESS = "AA:BB:CC:DD:EE:FF"
SECTION = SectionInfo(1_637_924_839, 1_638_048_319, 1030, 120)


@pytest.mark.parametrize(
    ("value", "minutes"),
    [("1d", 1440), ("5m", 5), ("42h", 2520), ("0m", 0)],
)
def test_parse_duration(value: str, minutes: int) -> None:
    assert meterctl.parse_duration(value) == timedelta(minutes=minutes)


@pytest.mark.parametrize("value", ["", "d", "5", "5s", "5 m", "-5m", "1.5h"])
def test_parse_duration_rejects(value: str) -> None:
    with pytest.raises(typer.BadParameter):
        meterctl.parse_duration(value)


def _fake_device(monkeypatch: pytest.MonkeyPatch, **methods) -> MagicMock:
    dev = MagicMock()
    dev.connect = AsyncMock()
    dev.disconnect = AsyncMock()
    for name, value in methods.items():
        setattr(dev, name, AsyncMock(return_value=value))
    monkeypatch.setattr(
        meterctl, "get_device_from_address", AsyncMock(return_value=dev)
    )
    return dev


def test_dump_historic_prints_tab_separated(monkeypatch: pytest.MonkeyPatch) -> None:
    samples = [SampleValue(24.7, 40), SampleValue(-3.5, 51)]
    dev = _fake_device(
        monkeypatch, read_section_info=SECTION, read_samples=samples, set_time=None
    )

    result = runner.invoke(meterctl.app, ["dump-historic", ADDRESS, "--last", "1h"])

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert [line.split("\t")[1:] for line in lines] == [["24.7", "40"], ["-3.5", "51"]]
    dev.read_samples.assert_awaited_once_with(SECTION, timedelta(hours=1))
    dev.set_time.assert_not_awaited()
    dev.disconnect.assert_awaited_once()


def test_dump_historic_without_section_info(monkeypatch: pytest.MonkeyPatch) -> None:
    dev = _fake_device(monkeypatch, read_section_info=None, read_samples=[])

    result = runner.invoke(meterctl.app, ["dump-historic", ADDRESS])

    assert result.exit_code == 1
    dev.read_samples.assert_not_awaited()
    dev.disconnect.assert_awaited_once()


def test_dump_historic_rejects_bad_duration(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_device(monkeypatch, read_section_info=SECTION, read_samples=[])
    result = runner.invoke(meterctl.app, ["dump-historic", ADDRESS, "--last", "3w"])
    assert result.exit_code == 2


def test_dump_historic_sets_time_first(monkeypatch: pytest.MonkeyPatch) -> None:
    dev = _fake_device(
        monkeypatch, read_section_info=SECTION, read_samples=[], set_time=None
    )
    result = runner.invoke(meterctl.app, ["dump-historic", ADDRESS, "--set-time"])
    assert result.exit_code == 0, result.output
    dev.set_time.assert_awaited_once()


def test_set_time(monkeypatch: pytest.MonkeyPatch) -> None:
    dev = _fake_device(monkeypatch, set_time=None)
    result = runner.invoke(meterctl.app, ["set-time", ADDRESS])
    assert result.exit_code == 0, result.output
    dev.set_time.assert_awaited_once_with()


def test_store_info(monkeypatch: pytest.MonkeyPatch) -> None:
    _fake_device(
        monkeypatch,
        read_section_info=SECTION,
        read_store_info=[StoreInfo(1), StoreInfo(2)],
    )
    result = runner.invoke(meterctl.app, ["store-info", ADDRESS])
    assert result.exit_code == 0, result.output
    assert "1030" in result.output
    assert "1, 2" in result.output


def test_device_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        meterctl,
        "get_device_from_address",
        AsyncMock(side_effect=BleakDeviceNotFoundError(ADDRESS)),
    )
    result = runner.invoke(meterctl.app, ["set-time", ADDRESS])
    assert result.exit_code == 1
    assert meterctl.NOT_FOUND_MSG in result.output


def test_live_prints_decoded_advertisements(monkeypatch: pytest.MonkeyPatch) -> None:
    device = MagicMock()
    device.name = "WoSensorTH"

    async def _scan(timeout, address):
        yield ADDRESS, bytes([105, 0, 228, 9, 152, 40]), device
        yield ADDRESS, b"\x00", device

    monkeypatch.setattr(meterctl, "scan", _scan)
    result = runner.invoke(meterctl.app, ["live", "--timeout", "1"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == (
        f"{ADDRESS}: 24.9°C, 40% humidity, 100% battery"
    )


def test_discover_lists_meters(monkeypatch: pytest.MonkeyPatch) -> None:
    device = MagicMock()
    device.name = "WoSensorTH"

    async def _scan(timeout, address):
        assert address == ADDRESS
        yield ADDRESS, bytes([105, 0, 228, 9, 152, 40]), device

    monkeypatch.setattr(meterctl, "scan", _scan)
    result = runner.invoke(meterctl.app, ["discover", ADDRESS])
    assert result.exit_code == 0, result.output
    assert "WoSensorTH" in result.output
    assert "24.9" in result.output


def test_format_live() -> None:
    from switchbot_meter.output import format_live

    assert format_live("X", LiveValue(-1.5, 3, 99)) == (
        "X: -1.5°C, 3% humidity, 99% battery"
    )
