# switchbot_meter/meterctl.py
"""SwitchBot meter CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from bleak.exc import BleakDeviceNotFoundError
from rich import print
from typer import Context
from typing_extensions import Annotated

from .const import DEFAULT_SCAN_TIMEOUT
from .device import MeterDevice, get_device_from_address, get_model_class_from_name
from .exception import MeterError
from .output import dump_csv, format_live, live_table, section_table
from .protocol import LiveValue, decode_live
from .scanner import scan

app = typer.Typer(help="SwitchBot meter reader")

_T = TypeVar("_T")

NOT_FOUND_MSG = "Device Not Found, Unreachable or Failed to Connect"

_UNIT_MINUTES = {"m": 1, "h": 60, "d": 60 * 24}


# ────────────────────────────────────────────────────────────────
# Global options (e.g., --debug) applied to the shared app
# ────────────────────────────────────────────────────────────────

@app.callback()
def _global_options(
    ctx: Context,
    debug: Annotated[
        bool,
        typer.Option("--debug/--no-debug", help="Enable verbose debug logging"),
    ] = False,
) -> None:
    """Read live and historical data from SwitchBot thermo-hygrometers."""
    ctx.obj = ctx.obj or {}
    ctx.obj["debug"] = bool(debug)
    if debug:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(rich_tracebacks=True, show_time=False, show_level=True)],
        )
        logging.getLogger("bleak").setLevel(logging.DEBUG)
        logging.getLogger("switchbot_meter").setLevel(logging.DEBUG)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────

def parse_duration(value: str) -> timedelta:
    """Parse `<number><unit>` with unit m (minutes), h (hours) or d (days)."""
    digits = ""
    for ch in value:
        if not ch.isascii() or not ch.isdigit():
            break
        digits += ch
    if not digits:
        raise typer.BadParameter(f"invalid number: {value!r}")
    unit = value[len(digits):]
    if unit not in _UNIT_MINUTES:
        raise typer.BadParameter(f"invalid time unit: {unit!r}")
    return timedelta(minutes=int(digits) * _UNIT_MINUTES[unit])


def _handle_connect_errors(ex: Exception) -> None:
    msg = str(ex).lower()
    if (
        isinstance(ex, BleakDeviceNotFoundError)
        or "not found" in msg
        or "unreachable" in msg
        or "failed to connect" in msg
    ):
        typer.echo(NOT_FOUND_MSG, err=True)
        raise typer.Exit(1)
    if isinstance(ex, MeterError):
        typer.echo(f"Error: {ex}", err=True)
        raise typer.Exit(1)
    raise ex


def _run_device_session(
    ctx: Context,
    device_address: str,
    session: Callable[[MeterDevice], Awaitable[_T]],
) -> _T:
    """Connect, run one session against the meter, always disconnect."""

    async def _async_func() -> _T:
        dev = await get_device_from_address(device_address)
        if ctx.obj and ctx.obj.get("debug"):
            dev.set_log_level("DEBUG")
        try:
            await dev.connect()
            return await session(dev)
        finally:
            await dev.disconnect()

    try:
        return asyncio.run(_async_func())
    except typer.Exit:
        raise
    except Exception as ex:
        _handle_connect_errors(ex)
        raise


# ────────────────────────────────────────────────────────────────
# meterctl discover [--timeout 10] [<device-address>]
# ────────────────────────────────────────────────────────────────

@app.command(name="discover")
def discover(
    device_address: Annotated[Optional[str], typer.Argument()] = None,
    timeout: Annotated[int, typer.Option(min=1)] = DEFAULT_SCAN_TIMEOUT,
) -> None:
    """List meters in range with their current reading."""
    print("the search for meters is running")

    async def _collect() -> dict[str, tuple[str, str, str, LiveValue | None]]:
        seen: dict[str, tuple[str, str, str, LiveValue | None]] = {}
        async for address, data, device in scan(timeout, device_address):
            name = device.name or ""
            model_class = get_model_class_from_name(name) if name else None
            model_name = getattr(model_class, "model_name", None) or "???"
            seen[address] = (address, name, model_name, decode_live(data))
        return seen

    seen = asyncio.run(_collect())
    print("Discovered the following meters:")
    print(live_table(seen.values()))


# ────────────────────────────────────────────────────────────────
# meterctl live [--timeout 10] [<device-address>]
# ────────────────────────────────────────────────────────────────

@app.command(name="live")
def live(
    device_address: Annotated[Optional[str], typer.Argument()] = None,
    timeout: Annotated[int, typer.Option(min=1)] = DEFAULT_SCAN_TIMEOUT,
) -> None:
    """Print advertised readings as they arrive."""

    async def _stream() -> None:
        async for address, data, _device in scan(timeout, device_address):
            if (value := decode_live(data)) is not None:
                typer.echo(format_live(address, value))

    asyncio.run(_stream())


# ────────────────────────────────────────────────────────────────
# meterctl dump-historic <device-address> [--last 1d|42h|5m] [--set-time]
# ────────────────────────────────────────────────────────────────

@app.command(name="dump-historic")
def dump_historic(
    ctx: Context,
    device_address: str,
    last: Annotated[
        Optional[timedelta],
        typer.Option(
            "--last",
            parser=parse_duration,
            metavar="DURATION",
            help="Only fetch the most recent data, e.g. 5m, 42h, 1d",
        ),
    ] = None,
    set_time: Annotated[
        bool, typer.Option("--set-time/--no-set-time", help="Sync the clock first")
    ] = False,
) -> None:
    """Dump the stored samples as tab separated values."""

    async def _session(dev: MeterDevice) -> None:
        if set_time:
            await dev.set_time()
        section_info = await dev.read_section_info()
        if section_info is None:
            typer.echo("Meter returned no section info", err=True)
            raise typer.Exit(1)
        samples = await dev.read_samples(section_info, last)
        dump_csv(section_info, samples, sys.stdout)

    _run_device_session(ctx, device_address, _session)


# ────────────────────────────────────────────────────────────────
# meterctl set-time <device-address>
# ────────────────────────────────────────────────────────────────

@app.command(name="set-time")
def set_time(ctx: Context, device_address: str) -> None:
    """Set the meter clock to the local time."""
    print(f"Connect to device {device_address} and set time")
    _run_device_session(ctx, device_address, lambda dev: dev.set_time())


# ────────────────────────────────────────────────────────────────
# meterctl store-info <device-address>
# ────────────────────────────────────────────────────────────────

@app.command(name="store-info")
def store_info(ctx: Context, device_address: str) -> None:
    """Show what the historical store holds."""

    async def _session(dev: MeterDevice) -> Any:
        section_info = await dev.read_section_info()
        sections = await dev.read_store_info()
        return section_info, sections or []

    section_info, sections = _run_device_session(ctx, device_address, _session)
    if section_info is None:
        typer.echo("Meter returned no section info", err=True)
        raise typer.Exit(1)
    print(section_table(section_info, sections))


if __name__ == "__main__":
    app()
