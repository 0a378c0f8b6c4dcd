"""Readers for system metrics exposed through /proc, /sys and statvfs."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

log = logging.getLogger(__name__)

DISKSTATS_PATH = "/proc/diskstats"
PROC_STAT_PATH = "/proc/stat"
PROC_NET_DEV_PATH = "/proc/net/dev"
PROC_MEMINFO_PATH = "/proc/meminfo"
PROC_DIR_PATH = "/proc"
ROOT_PATH = "/"
NETWORK_INTERFACE = "wlp4s0"
HWMON_CPU_TEMP_PATH = "/sys/class/hwmon/hwmon4/temp1_input"
HWMON_BATTERY_VOLTAGE_PATH = "/sys/class/hwmon/hwmon2/in0_input"
HWMON_BATTERY_CURRENT_PATH = "/sys/class/hwmon/hwmon2/curr1_input"
CPU_FREQ_PATH = "/sys/devices/system/cpu/cpu0/cpufreq/scaling_cur_freq"
CPU_FAN_SPEED_PATH = "/sys/class/hwmon/hwmon5/fan1_input"
GPU_FAN_SPEED_PATH = "/sys/class/hwmon/hwmon5/fan2_input"

UNIT_CONVERSION = 1000.0
CONVERT_TO_MB = 1024.0
PERCENTAGE = 100.0

_INTEGER = re.compile(r"\s*([+-]?\d+)")
_MEMINFO_LINE = re.compile(r"([^:\s]+):\s*(\d+)")


class MetricReadError(Exception):
    """A metric could not be read or parsed."""


@dataclass(frozen=True)
class DiskStats:
    """Disk counters summed over every device in /proc/diskstats."""

    io_time: int = 0
    writes_completed: int = 0
    reads_completed: int = 0


@dataclass(frozen=True)
class NetworkStats:
    """Traffic counters of one network interface."""

    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_errors: int = 0
    tx_errors: int = 0
    dropped_packets: int = 0


@dataclass(frozen=True)
class ProcessStates:
    """Counts of processes by scheduler state."""

    total: int = 0
    suspended: int = 0
    ready: int = 0
    blocked: int = 0


def _read_text(path: PathLike) -> str:
    try:
        return Path(path).read_text(errors="replace")
    except OSError as exc:
        raise MetricReadError(f"cannot open {os.fspath(path)}: {exc}") from exc


def _is_int(token: str) -> bool:
    return re.fullmatch(r"[+-]?\d+", token) is not None


def read_scaled_value(path: PathLike) -> float:
    """Read a leading integer from *path* and divide it by 1000."""
    match = _INTEGER.match(_read_text(path))
    if match is None:
        raise MetricReadError(f"cannot read value from {os.fspath(path)}")
    return int(match.group(1)) / UNIT_CONVERSION


def _meminfo(path: PathLike) -> dict[str, int]:
    fields: dict[str, int] = {}
    for line in _read_text(path).splitlines():
        match = _MEMINFO_LINE.match(line)
        if match:
            fields[match.group(1)] = int(match.group(2))
    return fields


def memory_usage(path: PathLike = PROC_MEMINFO_PATH) -> float:
    """Percentage of memory in use, from MemTotal and MemAvailable."""
    fields = _meminfo(path)
    total = fields.get("MemTotal", 0)
    available = fields.get("MemAvailable", 0)
    if total == 0 or available == 0:
        raise MetricReadError(f"error reading memory information from {os.fspath(path)}")
    return (total - available) / total * PERCENTAGE


class CpuUsageTracker:
    """Computes CPU usage between successive readings of /proc/stat."""

    def __init__(self, path: PathLike = PROC_STAT_PATH) -> None:
        self.path = path
        self._previous = (0,) * 8

    def sample(self) -> float:
        """Return the CPU usage percentage since the previous sample."""
        text = _read_text(self.path)
        lines = text.splitlines()
        if not lines:
            raise MetricReadError(f"error reading {os.fspath(self.path)}")
        tokens = lines[0].split()
        if len(tokens) < 9 or tokens[0] != "cpu" or not all(_is_int(t) for t in tokens[1:9]):
            raise MetricReadError(f"error parsing {os.fspath(self.path)}")
        current = tuple(int(t) for t in tokens[1:9])

        def split(values: tuple[int, ...]) -> tuple[int, int]:
            user, nice, system, idle, iowait, irq, softirq, steal = values
            return idle + iowait, user + nice + system + irq + softirq + steal

        prev_idle, prev_busy = split(self._previous)
        idle, busy = split(current)
        total_delta = (idle + busy) - (prev_idle + prev_busy)
        idle_delta = idle - prev_idle
        if total_delta == 0:
            raise MetricReadError("no CPU time elapsed, cannot calculate CPU usage")
        self._previous = current
        return (total_delta - idle_delta) / total_delta * PERCENTAGE


def disk_usage(path: PathLike = ROOT_PATH) -> float:
    """Percentage of disk space used on the file system holding *path*."""
    try:
        stat = os.statvfs(path)
    except OSError as exc:
        raise MetricReadError(f"error getting file system statistics: {exc}") from exc
    total = stat.f_blocks * stat.f_frsize
    available = stat.f_bavail * stat.f_frsize
    if total == 0:
        raise MetricReadError("file system reports zero size")
    return (total - available) / total * PERCENTAGE


def cpu_temperature(path: PathLike = HWMON_CPU_TEMP_PATH) -> float:
    """CPU temperature in degrees Celsius."""
    return read_scaled_value(path)


def battery_voltage(path: PathLike = HWMON_BATTERY_VOLTAGE_PATH) -> float:
    """Battery voltage in volts."""
    return read_scaled_value(path)


def battery_current(path: PathLike = HWMON_BATTERY_CURRENT_PATH) -> float:
    """Battery current in amperes."""
    return read_scaled_value(path)


def cpu_frequency(path: PathLike = CPU_FREQ_PATH) -> float:
    """Current CPU frequency."""
    return read_scaled_value(path)


def cpu_fan_speed(path: PathLike = CPU_FAN_SPEED_PATH) -> float:
    """CPU fan speed in RPM."""
    return read_scaled_value(path) * UNIT_CONVERSION


def gpu_fan_speed(path: PathLike = GPU_FAN_SPEED_PATH) -> float:
    """GPU fan speed in RPM."""
    return read_scaled_value(path) * UNIT_CONVERSION


def _process_state(stat_text: str) -> str | None:
    tokens = stat_text.split()
    if len(tokens) < 3 or not _is_int(tokens[0]):
        return None
    return tokens[2][0]


def process_states(proc_dir: PathLike = PROC_DIR_PATH) -> ProcessStates:
    """Count processes in total and by state S, R and D."""
    try:
        entries = list(os.scandir(proc_dir))
    except OSError as exc:
        raise MetricReadError(f"error opening {os.fspath(proc_dir)}: {exc}") from exc

    total = suspended = ready = blocked = 0
    for entry in entries:
        if not entry.name[:1].isdigit():
            continue
        try:
            text = Path(entry.path, "stat").read_text(errors="replace")
        except OSError:
            continue
        state = _process_state(text)
        if state is None:
            continue
        total += 1
        if state == "S":
            suspended += 1
        elif state == "R":
            ready += 1
        elif state == "D":
            blocked += 1
    return ProcessStates(total, suspended, ready, blocked)


def total_memory(path: PathLike = PROC_MEMINFO_PATH) -> float:
    """Total memory in MB."""
    return _meminfo(path).get("MemTotal", 0) / CONVERT_TO_MB


def used_memory(path: PathLike = PROC_MEMINFO_PATH) -> float:
    """Used memory in MB, excluding free memory, buffers and cache."""
    fields = _meminfo(path)
    used = (
        fields.get("MemTotal", 0)
        - fields.get("MemFree", 0)
        - fields.get("Buffers", 0)
        - fields.get("Cached", 0)
    )
    return used / CONVERT_TO_MB


def available_memory(path: PathLike = PROC_MEMINFO_PATH) -> float:
    """Available memory in MB."""
    return _meminfo(path).get("MemAvailable", 0) / CONVERT_TO_MB


def _stat_counter(path: PathLike, key: str) -> int:
    for line in _read_text(path).splitlines():
        tokens = line.split()
        if len(tokens) >= 2 and tokens[0] == key and _is_int(tokens[1]):
            return int(tokens[1])
    return 0


def context_switches(path: PathLike = PROC_STAT_PATH) -> int:
    """Number of context switches since boot, 0 if not reported."""
    return _stat_counter(path, "ctxt")


def running_processes(path: PathLike = PROC_STAT_PATH) -> int:
    """Number of running processes, 0 if not reported."""
    return _stat_counter(path, "procs_running")


def disk_stats(path: PathLike = DISKSTATS_PATH) -> DiskStats:
    """Sum read, write and time counters over all lines of /proc/diskstats."""
    io_time = writes = reads = 0
    for line in _read_text(path).splitlines():
        tokens = line.split()
        if len(tokens) < 10:
            continue
        numeric = tokens[0:2] + tokens[3:10]
        if not all(_is_int(t) for t in numeric):
            continue
        reads += int(tokens[3])
        writes += int(tokens[7])
        io_time += int(tokens[9])
    return DiskStats(io_time=io_time, writes_completed=writes, reads_completed=reads)


def network_traffic(
    path: PathLike = PROC_NET_DEV_PATH, interface: str = NETWORK_INTERFACE
) -> NetworkStats:
    """Traffic counters of the first well-formed line naming *interface*."""
    lines = _read_text(path).splitlines()
    for line in lines[2:]:
        if interface not in line:
            continue
        name, colon, rest = line.partition(":")
        values = rest.split()[:11]
        if not colon or not name or len(values) < 11 or not all(_is_int(v) for v in values):
            log.warning("unexpected format for line: %s", line)
            continue
        numbers = [int(v) for v in values]
        return NetworkStats(
            rx_bytes=numbers[0],
            tx_bytes=numbers[8],
            rx_errors=numbers[2],
            tx_errors=numbers[10],
            dropped_packets=numbers[3],
        )
    return NetworkStats()