# sysmetrics

A small Linux system monitor. It reads metrics from `/proc`, `/sys` and the
root file system, keeps them in Prometheus gauges, and serves them in the
Prometheus text exposition format over HTTP.

It has no third-party dependencies and needs Python 3.10 or later.

## Installation

```
pip install .
```

## Running the monitor

```
sysmetrics
```

When started, the monitor:

1. writes `Starting monitoring from FIFO` to the status file;
2. creates the named pipe (if it does not exist yet), waits for a single
   message on it (up to 255 bytes), then removes the pipe;
3. treats that message as a comma-separated list of metric names; whitespace
   around each name is ignored, empty fields are skipped and at most 10 names
   are taken. An empty message ends the command.

If the first name is `1`, the monitor writes the list of all available
metrics to the metrics file, one `Metric: <name>` line each, and exits.

Otherwise it starts the HTTP server, registers a gauge for every requested
metric, writes `Metrics monitoring started` to the status file and refreshes
the selected metrics at the configured interval. If a requested name is not a
known metric, `Error: No update function found for metric '<name>'` is
written to the status file and monitoring does not start.

For example, from another shell:

```
echo "cpu_usage_percentage, memory_usage_percentage" > /tmp/monitor_fifo
```

### Options

| Option               | Default                | Meaning                                      |
|----------------------|------------------------|----------------------------------------------|
| `--fifo`             | `/tmp/monitor_fifo`    | named pipe the selection is read from        |
| `--status-file`      | `/tmp/monitor_status`  | file holding the current status line         |
| `--metrics-file`     | `/tmp/monitor_metrics` | file the list of available metrics goes to   |
| `--host`             | `0.0.0.0`              | address the HTTP server binds to             |
| `--port`             | `8000`                 | port of the HTTP server                      |
| `--interval`         | `1.0`                  | seconds between updates                      |
| `--iterations`       | none (run forever)     | stop after this many update rounds           |
| `--start-grafana`    | off                    | launch `~/grafana/bin/grafana server` first  |
| `--start-prometheus` | off                    | launch `~/prometheus/prometheus` first       |

Grafana is started with `--config ~/grafana/conf/defaults.ini --homepath
~/grafana`, Prometheus with `--config.file=~/prometheus/prometheus.yml`.

### HTTP endpoint

| Request         | Response                                       |
|-----------------|------------------------------------------------|
| `GET /`         | `200` with body `OK`                           |
| `GET /metrics`  | `200` with all registered gauges               |
| any other path  | `400` with body `Bad Request`                  |
| non-GET method  | `400` with body `Invalid HTTP Method`          |

Point a Prometheus scrape job at `http://localhost:8000/metrics`.

## Available metrics

| Name                        | Meaning                                   |
|-----------------------------|-------------------------------------------|
| `rx_bytes_total`            | Total received bytes                      |
| `tx_bytes_total`            | Total transmitted bytes                   |
| `rx_errors_total`           | Total receive errors                      |
| `tx_errors_total`           | Total transmit errors                     |
| `dropped_packets_total`     | Total dropped packets                     |
| `io_time_ms`                | Time spent on I/O in milliseconds         |
| `writes_completed_total`    | Total writes completed                    |
| `reads_completed_total`     | Total reads completed                     |
| `total_memory_mb`           | Total memory in MB                        |
| `used_memory_mb`            | Used memory in MB                         |
| `available_memory_mb`       | Available memory in MB                    |
| `context_switches`          | Context switches                          |
| `cpu_usage_percentage`      | CPU usage in percentage                   |
| `memory_usage_percentage`   | Memory usage in percentage                |
| `disk_usage_percentage`     | Disk usage in percentage                  |
| `running_processes_total`   | Total running processes                   |
| `cpu_temperature_celsius`   | CPU temperature in Celsius                |
| `battery_voltage_volts`     | Battery voltage in volts                  |
| `battery_current_amperes`   | Battery current in amperes                |
| `cpu_frequency_megahertz`   | CPU frequency in MHz                      |
| `cpu_fan_speed_rpm`         | CPU fan speed in RPM                      |
| `gpu_fan_speed_rpm`         | GPU fan speed in RPM                      |
| `total_processes`           | Total number of processes                 |
| `suspended_processes`       | Suspended processes                       |
| `ready_processes`           | Ready processes                           |
| `blocked_processes`         | Blocked processes                         |

Network figures are taken for the interface `wlp4s0`, and the sensor readings
come from fixed `hwmon` paths. The command always uses these defaults; in
your own code they can be changed through `sysmetrics.exporter.SystemPaths`.
A reading that fails is logged and leaves its gauge unchanged.

## Using it as a library

- `sysmetrics.procfs` – readers for `/proc/meminfo`, `/proc/stat`,
  `/proc/diskstats`, `/proc/net/dev`, process states and `hwmon` sensor files,
  plus `CpuUsageTracker` for CPU usage between two samples. Failures raise
  `MetricReadError`.
- `sysmetrics.prom` – `Gauge` (optionally with labels) and
  `CollectorRegistry`, whose `bridge()` renders the registered gauges in the
  text exposition format. Misuse raises `MetricError`.
- `sysmetrics.httpserver` – `MetricsServer`, a threaded HTTP server for a
  registry (also usable as a context manager), and `handle_request` with the
  routing rules above.
- `sysmetrics.process_limits` – `parse_limits` and `read_limits` for
  `/proc/<pid>/limits`, returning `LimitsRow` entries (unlimited is `-1`),
  and `limits_gauges()`.
- `sysmetrics.process_stat` – `parse_stat` and `read_stat` for
  `/proc/<pid>/stat`, returning a `ProcessStat`, and `stat_gauges()`.
- `sysmetrics.exporter` – `MetricsExporter`, which ties the readers to
  gauges, `available_metrics()` and `write_available_metrics()`.
- `sysmetrics.cli` – the command, with `parse_metrics`, `read_fifo`,
  `update_status`, `run_monitoring`, `start_grafana` and `start_prometheus`.

```python
from sysmetrics.exporter import MetricsExporter

exporter = MetricsExporter()
exporter.init_metrics(["memory_usage_percentage"])
exporter.updater_for("memory_usage_percentage")()
print(exporter.registry.bridge())
```

## What it does not do

- Only gauges are provided; there are no counters or histograms.
- The process limit and process stat parsers and their gauges are not used by
  the command; the monitor does not publish metrics about its own process.
- The command reads its selection once; changing it means restarting the
  command and writing to the pipe again.

## Running the tests

```
pip install .[test]
pytest
```