"""Parser for the /proc/[pid]/limits table and the gauges derived from it."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sysmetrics.prom import Gauge

PathLike = Union[str, "os.PathLike[str]"]

UNLIMITED = "unlimited"
UNLIMITED_VALUE = -1

_HEADER = re.compile(r"[A-Za-z0-9 ]*")
_DATA_LINE = re.compile(
    r"[ \t]*"
    r"(?P<limit>[A-Za-z]+(?: [A-Za-z]+)*)"
    r"[ \t]+(?P<soft>\d+|unlimited)"
    r"[ \t]+(?P<hard>\d+|unlimited)"
    r"(?:[ \t]+(?P<units>[A-Za-z]+))?"
    r"[ \t]*"
)


class LimitsParseError(ValueError):
    """The text does not follow the layout of a limits file."""


@dataclass(frozen=True)
class LimitsRow:
    """One row of a limits file; unlimited values are stored as -1."""

    limit: str
    soft: int
    hard: int
    units: Optional[str] = None


def _limit_value(token: str) -> int:
    return UNLIMITED_VALUE if token == UNLIMITED else int(token)


def parse_limits(text: str) -> dict[str, LimitsRow]:
    """Parse the contents of a limits file into rows keyed by limit name.

    The first line is a header of letters, digits and spaces. Each following
    non-blank line holds a limit name, a soft limit, a hard limit and
    optional units.
    """
    header, newline, body = text.partition("\n")
    if not newline or not _HEADER.fullmatch(header):
        raise LimitsParseError("malformed header line")

    rows: dict[str, LimitsRow] = {}
    for number, line in enumerate(body.splitlines(), start=2):
        if not line.strip(" \t"):
            continue
        match = _DATA_LINE.fullmatch(line)
        if match is None:
            raise LimitsParseError(f"malformed data line {number}: {line!r}")
        row = LimitsRow(
            limit=match.group("limit"),
            soft=_limit_value(match.group("soft")),
            hard=_limit_value(match.group("hard")),
            units=match.group("units"),
        )
        rows[row.limit] = row
    return rows


def read_limits(path: Optional[PathLike] = None) -> dict[str, LimitsRow]:
    """Read and parse a limits file; defaults to that of the current process."""
    if path is None:
        path = f"/proc/{os.getpid()}/limits"
    return parse_limits(Path(path).read_text(errors="replace"))


def limits_gauges() -> dict[str, Gauge]:
    """Create the process limit gauges, keyed by metric name."""
    gauges = (
        Gauge("process_max_fds", "Maximum number of open file descriptors."),
        Gauge(
            "process_virtual_memory_max_bytes",
            "Maximum amount of virtual memory available in bytes.",
        ),
    )
    return {gauge.name: gauge for gauge in gauges}