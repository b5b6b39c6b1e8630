# switchbot_meter/output.py
"""Console and CSV formatting of meter readings."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Iterator, Sequence, TextIO

from rich.table import Table

from .paging import sample_timestamps
from .protocol import LiveValue, SampleValue, SectionInfo, StoreInfo


def format_live(address: str, value: LiveValue) -> str:
    return (
        f"{address}: {value.temperature}°C, {value.humidity}% humidity, "
        f"{value.battery}% battery"
    )


def csv_lines(
    section_info: SectionInfo, samples: Sequence[SampleValue]
) -> Iterator[str]:
    """Tab separated `timestamp  temperature  humidity`, local time."""
    for timestamp, value in zip(sample_timestamps(section_info, len(samples)), samples):
        when = datetime.fromtimestamp(timestamp).astimezone()
        yield f"{when}\t{value.temperature}\t{value.humidity}"


def dump_csv(
    section_info: SectionInfo, samples: Sequence[SampleValue], out: TextIO
) -> None:
    for line in csv_lines(section_info, samples):
        out.write(line + "\n")
    out.flush()


def live_table(rows: Iterable[tuple[str, str, str, LiveValue | None]]) -> Table:
    """Table of (address, name, model, live value) rows."""
    table = Table("Name", "Address", "Model", "Temperature", "Humidity", "Battery")
    for address, name, model, value in rows:
        if value is None:
            table.add_row(name or "(unknown)", address, model, "???", "???", "???")
            continue
        table.add_row(
            name or "(unknown)",
            address,
            model,
            f"{value.temperature} °C",
            f"{value.humidity} %",
            f"{value.battery} %",
        )
    return table


def section_table(section_info: SectionInfo, sections: Sequence[StoreInfo]) -> Table:
    table = Table("Field", "Value")
    table.add_row("start", str(datetime.fromtimestamp(section_info.start_time).astimezone()))
    table.add_row("end", str(datetime.fromtimestamp(section_info.end_time).astimezone()))
    table.add_row("data length", str(section_info.data_length))
    table.add_row("interval", f"{section_info.interval}s")
    table.add_row("sections", ", ".join(str(s.section) for s in sections) or "-")
    return table
