"""Parser for /proc/[pid]/stat and the process gauges derived from it."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

from sysmetrics.prom import Gauge

PathLike = Union[str, "os.PathLike[str]"]

_INT = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class ProcessStat:
    """The fields of a /proc/[pid]/stat line, in the order the kernel writes them.

    Fields missing from the line, as on older kernels, are left at 0.
    """

    pid: int
    comm: str
    state: str
    ppid: int = 0
    pgrp: int = 0
    session: int = 0
    tty_nr: int = 0
    tpgid: int = 0
    flags: int = 0
    minflt: int = 0
    cminflt: int = 0
    majflt: int = 0
    cmajflt: int = 0
    utime: int = 0
    stime: int = 0
    cutime: int = 0
    cstime: int = 0
    priority: int = 0
    nice: int = 0
    num_threads: int = 0
    itrealvalue: int = 0
    starttime: int = 0
    vsize: int = 0
    rss: int = 0
    rsslim: int = 0
    startcode: int = 0
    endcode: int = 0
    startstack: int = 0
    kstkesp: int = 0
    kstkeip: int = 0
    signal: int = 0
    blocked: int = 0
    sigignore: int = 0
    sigcatch: int = 0
    wchan: int = 0
    nswap: int = 0
    cnswap: int = 0
    exit_signal: int = 0
    processor: int = 0
    rt_priority: int = 0
    policy: int = 0
    delayacct_blkio_ticks: int = 0
    guest_time: int = 0
    cguest_time: int = 0
    start_data: int = 0
    end_data: int = 0
    start_brk: int = 0
    arg_start: int = 0
    arg_end: int = 0
    env_start: int = 0
    env_end: int = 0
    exit_code: int = 0


_NUMERIC_FIELDS = tuple(f.name for f in fields(ProcessStat))[3:]


def _split_comm(rest: str) -> tuple[str, str]:
    """Split the command name off *rest*, allowing spaces inside parentheses."""
    rest = rest.lstrip()
    if rest.startswith("("):
        end = rest.rfind(")")
        if end != -1:
            return rest[: end + 1], rest[end + 1 :]
    comm, _, tail = rest.partition(" ")
    if not comm:
        comm, tail = rest.split(None, 1) if rest.split() else ("", "")
    return comm, tail


def parse_stat(text: str) -> ProcessStat:
    """Parse the contents of a /proc/[pid]/stat file.

    Numeric fields are read in order until one is missing or malformed;
    the remaining fields keep their default of 0.
    """
    stripped = text.lstrip()
    pid_token, _, rest = stripped.partition(" ")
    pid_token = pid_token.split()[0] if pid_token.split() else ""
    if not _INT.fullmatch(pid_token):
        raise ValueError("stat text does not start with a process id")
    comm, tail = _split_comm(rest)
    if not comm:
        raise ValueError("stat text has no command name")
    tail = tail.lstrip()
    if not tail:
        raise ValueError("stat text has no process state")
    state = tail[0]
    tokens = tail[1:].split()

    values: dict[str, int] = {}
    for name, token in zip(_NUMERIC_FIELDS, tokens):
        if not _INT.fullmatch(token):
            break
        values[name] = int(token)
    return ProcessStat(pid=int(pid_token), comm=comm, state=state, **values)


def read_stat(path: Optional[PathLike] = None) -> ProcessStat:
    """Read and parse a stat file; defaults to that of the current process."""
    if path is None:
        path = f"/proc/{os.getpid()}/stat"
    return parse_stat(Path(path).read_text(errors="replace"))


def stat_gauges() -> dict[str, Gauge]:
    """Create the process stat gauges, keyed by metric name."""
    gauges = (
        Gauge(
            "process_cpu_seconds_total",
            "Total user and system CPU time spent in seconds.",
        ),
        Gauge("process_virtual_memory_bytes", "Virtual memory size in bytes."),
        Gauge("process_resident_memory_bytes", "Resident memory size in bytes."),
        Gauge(
            "process_start_time_seconds",
            "Start time of the process since unix epoch in seconds.",
        ),
    )
    return {gauge.name: gauge for gauge in gauges}