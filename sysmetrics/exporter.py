"""System metrics published as gauges in a collector registry."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MethodType
from typing import Optional, Union

from sysmetrics import procfs
from sysmetrics.prom import CollectorRegistry, Gauge

PathLike = Union[str, "os.PathLike[str]"]

METRICS_FILE = "/tmp/monitor_metrics"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemPaths:
    """Where each reading is taken from."""

    meminfo: PathLike = procfs.PROC_MEMINFO_PATH
    stat: PathLike = procfs.PROC_STAT_PATH
    diskstats: PathLike = procfs.DISKSTATS_PATH
    net_dev: PathLike = procfs.PROC_NET_DEV_PATH
    proc_dir: PathLike = procfs.PROC_DIR_PATH
    root: PathLike = procfs.ROOT_PATH
    interface: str = procfs.NETWORK_INTERFACE
    cpu_temperature: PathLike = procfs.HWMON_CPU_TEMP_PATH
    battery_voltage: PathLike = procfs.HWMON_BATTERY_VOLTAGE_PATH
    battery_current: PathLike = procfs.HWMON_BATTERY_CURRENT_PATH
    cpu_frequency: PathLike = procfs.CPU_FREQ_PATH
    cpu_fan_speed: PathLike = procfs.CPU_FAN_SPEED_PATH
    gpu_fan_speed: PathLike = procfs.GPU_FAN_SPEED_PATH


@dataclass(frozen=True)
class MetricInfo:
    """A metric that can be selected, and the exporter method that updates it."""

    name: str
    description: str
    update: Callable[["MetricsExporter"], None]


class MetricsExporter:
    """Creates the selected gauges and refreshes them from the system."""

    def __init__(
        self,
        paths: Optional[SystemPaths] = None,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self.paths = paths if paths is not None else SystemPaths()
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}
        self._lock = threading.Lock()
        self._cpu = procfs.CpuUsageTracker(self.paths.stat)

    def init_metrics(self, selected: Iterable[str]) -> list[Gauge]:
        """Create and register a gauge for each known name in *selected*.

        Unknown names are ignored; selecting a name twice raises MetricError.
        """
        created = []
        for name in selected:
            info = _BY_NAME.get(name)
            if info is None:
                continue
            gauge = self.registry.register(Gauge(info.name, info.description))
            self._gauges[name] = gauge
            created.append(gauge)
        return created

    def gauge(self, name: str) -> Gauge:
        """The gauge created for *name* by init_metrics."""
        try:
            return self._gauges[name]
        except KeyError:
            raise KeyError(f"metric not initialized: {name}") from None

    def updater_for(self, name: str) -> Callable[[], None]:
        """The bound method that refreshes the metric called *name*."""
        info = _BY_NAME.get(name)
        if info is None:
            raise KeyError(f"no update function found for metric '{name}'")
        return MethodType(info.update, self)

    def _set(self, values: Mapping[str, float]) -> None:
        with self._lock:
            for name, value in values.items():
                gauge = self._gauges.get(name)
                if gauge is not None:
                    gauge.set(float(value))

    def _update_reading(self, name: str, what: str, reader: Callable[[], float]) -> None:
        try:
            value = reader()
        except procfs.MetricReadError as exc:
            log.error("Error obtaining %s: %s", what, exc)
            return
        if value < 0:
            log.error("Error obtaining %s", what)
            return
        self._set({name: value})

    def update_cpu_usage(self) -> None:
        self._update_reading("cpu_usage_percentage", "CPU usage", self._cpu.sample)

    def update_memory_usage(self) -> None:
        self._update_reading(
            "memory_usage_percentage",
            "memory usage",
            lambda: procfs.memory_usage(self.paths.meminfo),
        )

    def update_disk_usage(self) -> None:
        self._update_reading(
            "disk_usage_percentage", "disk usage", lambda: procfs.disk_usage(self.paths.root)
        )

    def update_running_processes(self) -> None:
        self._update_reading(
            "running_processes_total",
            "running processes",
            lambda: procfs.running_processes(self.paths.stat),
        )

    def update_cpu_temperature(self) -> None:
        self._update_reading(
            "cpu_temperature_celsius",
            "CPU temperature",
            lambda: procfs.cpu_temperature(self.paths.cpu_temperature),
        )

    def update_battery_voltage(self) -> None:
        self._update_reading(
            "battery_voltage_volts",
            "battery voltage",
            lambda: procfs.battery_voltage(self.paths.battery_voltage),
        )

    def update_battery_current(self) -> None:
        self._update_reading(
            "battery_current_amperes",
            "battery current",
            lambda: procfs.battery_current(self.paths.battery_current),
        )

    def update_cpu_frequency(self) -> None:
        self._update_reading(
            "cpu_frequency_megahertz",
            "CPU frequency",
            lambda: procfs.cpu_frequency(self.paths.cpu_frequency),
        )

    def update_cpu_fan_speed(self) -> None:
        self._update_reading(
            "cpu_fan_speed_rpm",
            "CPU fan speed",
            lambda: procfs.cpu_fan_speed(self.paths.cpu_fan_speed),
        )

    def update_gpu_fan_speed(self) -> None:
        self._update_reading(
            "gpu_fan_speed_rpm",
            "GPU fan speed",
            lambda: procfs.gpu_fan_speed(self.paths.gpu_fan_speed),
        )

    def update_process_states(self) -> None:
        try:
            states = procfs.process_states(self.paths.proc_dir)
        except procfs.MetricReadError as exc:
            log.error("Error obtaining process states: %s", exc)
            return
        self._set(
            {
                "total_processes": states.total,
                "suspended_processes": states.suspended,
                "ready_processes": states.ready,
                "blocked_processes": states.blocked,
            }
        )

    def update_memory_metrics(self) -> None:
        try:
            values = {
                "total_memory_mb": procfs.total_memory(self.paths.meminfo),
                "used_memory_mb": procfs.used_memory(self.paths.meminfo),
                "available_memory_mb": procfs.available_memory(self.paths.meminfo),
            }
        except procfs.MetricReadError as exc:
            log.error("Error obtaining memory metrics: %s", exc)
            return
        self._set(values)

    def update_network_traffic(self) -> None:
        try:
            stats = procfs.network_traffic(self.paths.net_dev, self.paths.interface)
        except procfs.MetricReadError as exc:
            log.error("Error obtaining network traffic: %s", exc)
            return
        self._set(
            {
                "rx_bytes_total": stats.rx_bytes,
                "tx_bytes_total": stats.tx_bytes,
                "rx_errors_total": stats.rx_errors,
                "tx_errors_total": stats.tx_errors,
                "dropped_packets_total": stats.dropped_packets,
            }
        )

    def update_context_switches(self) -> None:
        self._update_reading(
            "context_switches",
            "context switches",
            lambda: procfs.context_switches(self.paths.stat),
        )

    def update_disk_stats(self) -> None:
        try:
            stats = procfs.disk_stats(self.paths.diskstats)
        except procfs.MetricReadError as exc:
            log.error("Error obtaining disk stats: %s", exc)
            return
        self._set(
            {
                "io_time_ms": stats.io_time,
                "writes_completed_total": stats.writes_completed,
                "reads_completed_total": stats.reads_completed,
            }
        )


_ALL_METRICS: tuple[MetricInfo, ...] = (
    MetricInfo("rx_bytes_total", "Total received bytes", MetricsExporter.update_network_traffic),
    MetricInfo("tx_bytes_total", "Total transmitted bytes", MetricsExporter.update_network_traffic),
    MetricInfo("rx_errors_total", "Total receive errors", MetricsExporter.update_network_traffic),
    MetricInfo("tx_errors_total", "Total transmit errors", MetricsExporter.update_network_traffic),
    MetricInfo(
        "dropped_packets_total", "Total dropped packets", MetricsExporter.update_network_traffic
    ),
    MetricInfo("io_time_ms", "Time spent on I/O in milliseconds", MetricsExporter.update_disk_stats),
    MetricInfo("writes_completed_total", "Total writes completed", MetricsExporter.update_disk_stats),
    MetricInfo("reads_completed_total", "Total reads completed", MetricsExporter.update_disk_stats),
    MetricInfo("total_memory_mb", "Total memory in MB", MetricsExporter.update_memory_metrics),
    MetricInfo("used_memory_mb", "Used memory in MB", MetricsExporter.update_memory_metrics),
    MetricInfo(
        "available_memory_mb", "Available memory in MB", MetricsExporter.update_memory_metrics
    ),
    MetricInfo("context_switches", "Context switches", MetricsExporter.update_context_switches),
    MetricInfo("cpu_usage_percentage", "CPU usage in percentage", MetricsExporter.update_cpu_usage),
    MetricInfo(
        "memory_usage_percentage", "Memory usage in percentage", MetricsExporter.update_memory_usage
    ),
    MetricInfo(
        "disk_usage_percentage", "Disk usage in percentage", MetricsExporter.update_disk_usage
    ),
    MetricInfo(
        "running_processes_total",
        "Total running processes",
        MetricsExporter.update_running_processes,
    ),
    MetricInfo(
        "cpu_temperature_celsius",
        "CPU temperature in Celsius",
        MetricsExporter.update_cpu_temperature,
    ),
    MetricInfo(
        "battery_voltage_volts", "Battery voltage in volts", MetricsExporter.update_battery_voltage
    ),
    MetricInfo(
        "battery_current_amperes",
        "Battery current in amperes",
        MetricsExporter.update_battery_current,
    ),
    MetricInfo(
        "cpu_frequency_megahertz", "CPU frequency in MHz", MetricsExporter.update_cpu_frequency
    ),
    MetricInfo("cpu_fan_speed_rpm", "CPU fan speed in RPM", MetricsExporter.update_cpu_fan_speed),
    MetricInfo("gpu_fan_speed_rpm", "GPU fan speed in RPM", MetricsExporter.update_gpu_fan_speed),
    MetricInfo(
        "total_processes", "Total number of processes", MetricsExporter.update_process_states
    ),
    MetricInfo("suspended_processes", "Suspended processes", MetricsExporter.update_process_states),
    MetricInfo("ready_processes", "Ready processes", MetricsExporter.update_process_states),
    MetricInfo("blocked_processes", "Blocked processes", MetricsExporter.update_process_states),
)

_BY_NAME: dict[str, MetricInfo] = {info.name: info for info in _ALL_METRICS}


def available_metrics() -> tuple[MetricInfo, ...]:
    """Every metric that can be selected, in listing order."""
    return _ALL_METRICS


def write_available_metrics(path: PathLike = METRICS_FILE) -> None:
    """Write one "Metric: <name>" line per available metric to *path*."""
    with open(path, "w", encoding="utf-8") as out:
        for info in _ALL_METRICS:
            out.write(f"Metric: {info.name}\n")