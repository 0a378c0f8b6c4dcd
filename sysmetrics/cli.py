"""Command that reads a metric selection from a FIFO and keeps the gauges fresh."""

from __future__ import annotations

import argparse
import logging
import os
import pwd
import subprocess
import time
from collections.abc import Callable, Sequence
from typing import Optional, Union

from sysmetrics.exporter import METRICS_FILE, MetricsExporter, write_available_metrics
from sysmetrics.httpserver import MetricsServer
from sysmetrics.prom import MetricError

PathLike = Union[str, "os.PathLike[str]"]

FIFO_PATH = "/tmp/monitor_fifo"
STATUS_FILE = "/tmp/monitor_status"
BUFFER_SIZE = 256
MAX_METRICS = 10
SLEEP_TIME = 1.0
HTTP_PORT = 8000
SHOW_METRICS_COMMAND = "1"

log = logging.getLogger(__name__)


def parse_metrics(text: str, max_metrics: int = MAX_METRICS) -> list[str]:
    """Split comma-separated metric names, trimming whitespace around each.

    Empty fields between commas are skipped; at most *max_metrics* names are kept.
    """
    names = [field.strip() for field in text.split(",") if field]
    return names[:max_metrics]


def update_status(status: str, path: PathLike = STATUS_FILE) -> bool:
    """Write *status* as a single line to the status file; False if it failed."""
    try:
        with open(path, "w", encoding="utf-8") as out:
            out.write(f"{status}\n")
    except OSError as exc:
        log.error("cannot write status file %s: %s", os.fspath(path), exc)
        return False
    return True


def _home_of_current_user() -> Optional[str]:
    try:
        return pwd.getpwuid(os.getuid()).pw_dir
    except KeyError:
        return None


def _spawn(command: list[str], what: str) -> Optional[subprocess.Popen]:
    try:
        process = subprocess.Popen(command)
    except OSError as exc:
        log.error("Failed to start %s: %s", what, exc)
        return None
    print(f"{what} started successfully")
    return process


def start_grafana(home: Optional[str] = None) -> Optional[subprocess.Popen]:
    """Start the Grafana server in the background from ``<home>/grafana``."""
    if home is None:
        home = _home_of_current_user()
    if home is None:
        log.error("Failed to retrieve home directory")
        return None
    command = [
        f"{home}/grafana/bin/grafana",
        "server",
        "--config",
        f"{home}/grafana/conf/defaults.ini",
        "--homepath",
        f"{home}/grafana",
    ]
    return _spawn(command, "Grafana")


def start_prometheus(home: Optional[str] = None) -> Optional[subprocess.Popen]:
    """Start the Prometheus server in the background from ``<home>/prometheus``."""
    if home is None:
        home = os.environ.get("HOME")
    if home is None:
        log.error("HOME environment variable not set")
        return None
    command = [
        f"{home}/prometheus/prometheus",
        f"--config.file={home}/prometheus/prometheus.yml",
    ]
    return _spawn(command, "Prometheus")


def read_fifo(path: PathLike = FIFO_PATH) -> str:
    """Create the FIFO if needed, read one message from it and remove it.

    Returns an empty string when the writer sent nothing.
    """
    try:
        os.mkfifo(path, 0o666)
    except FileExistsError:
        pass
    try:
        with open(path, "rb") as fifo:
            data = fifo.read(BUFFER_SIZE - 1)
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
    if not data:
        log.error("nothing was read from %s", os.fspath(path))
        return ""
    return data.decode("utf-8", errors="replace")


def run_monitoring(
    exporter: MetricsExporter,
    names: Sequence[str],
    status_path: PathLike = STATUS_FILE,
    interval: float = SLEEP_TIME,
    iterations: Optional[int] = None,
) -> bool:
    """Register *names* and refresh them every *interval* seconds.

    Runs forever when *iterations* is None. Returns False, after recording
    the reason in the status file, if a name has no update function.
    """
    exporter.init_metrics(names)

    updaters: list[Callable[[], None]] = []
    for name in names:
        print(f"Processing metric: '{name}'")
        try:
            updaters.append(exporter.updater_for(name))
        except KeyError:
            message = f"Error: No update function found for metric '{name}'"
            update_status(message, status_path)
            log.error("%s", message)
            return False

    update_status("Metrics monitoring started", status_path)

    done = 0
    while iterations is None or done < iterations:
        for update in updaters:
            update()
        done += 1
        time.sleep(interval)
    return True


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysmetrics",
        description="Expose system metrics selected through a FIFO for Prometheus scraping.",
    )
    parser.add_argument("--fifo", default=FIFO_PATH, help="FIFO the metric selection is read from")
    parser.add_argument("--status-file", default=STATUS_FILE, help="file holding the current status")
    parser.add_argument(
        "--metrics-file", default=METRICS_FILE, help="file the list of available metrics is written to"
    )
    parser.add_argument("--host", default="0.0.0.0", help="address the HTTP endpoint binds to")
    parser.add_argument("--port", type=int, default=HTTP_PORT, help="port of the HTTP endpoint")
    parser.add_argument("--interval", type=float, default=SLEEP_TIME, help="seconds between updates")
    parser.add_argument("--iterations", type=int, default=None, help="stop after this many updates")
    parser.add_argument("--start-grafana", action="store_true", help="launch Grafana first")
    parser.add_argument("--start-prometheus", action="store_true", help="launch Prometheus first")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point: read the selection from the FIFO and serve the chosen metrics."""
    args = _build_parser().parse_args(argv)

    if args.start_grafana:
        start_grafana()
    if args.start_prometheus:
        start_prometheus()

    update_status("Starting monitoring from FIFO", args.status_file)
    try:
        text = read_fifo(args.fifo)
    except OSError as exc:
        log.error("cannot read FIFO %s: %s", args.fifo, exc)
        return 1

    names = parse_metrics(text, MAX_METRICS)
    if not names:
        return 0

    if names[0] == SHOW_METRICS_COMMAND:
        try:
            write_available_metrics(args.metrics_file)
        except OSError as exc:
            log.error("cannot write %s: %s", args.metrics_file, exc)
        return 0

    exporter = MetricsExporter()
    server = MetricsServer(exporter.registry, args.host, args.port)
    try:
        server.start()
    except OSError as exc:
        log.error("Error starting HTTP server: %s", exc)
    try:
        run_monitoring(exporter, names, args.status_file, args.interval, args.iterations)
    except MetricError as exc:
        update_status(f"Error: {exc}", args.status_file)
        log.error("%s", exc)
        return 1
    finally:
        server.stop()
    return 0