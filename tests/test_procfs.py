import pytest

from sysmetrics import procfs
from sysmetrics.procfs import (
    CpuUsageTracker,
    DiskStats,
    MetricReadError,
    NetworkStats,
    ProcessStates,
)


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_read_scaled_value_scales_down(tmp_path):
    path = write(tmp_path, "temp", "42000\n")
    assert procfs.read_scaled_value(path) * 1000 == pytest.approx(42000)


def test_fan_speeds_return_raw_rpm(tmp_path):
    path = write(tmp_path, "fan", "2500\n")
    assert procfs.cpu_fan_speed(path) == pytest.approx(2500.0)
    assert procfs.gpu_fan_speed(path) == pytest.approx(2500.0)


def test_scaled_readers_agree(tmp_path):
    path = write(tmp_path, "value", "  12345 trailing\n")
    expected = procfs.read_scaled_value(path)
    assert procfs.cpu_temperature(path) == expected
    assert procfs.battery_voltage(path) == expected
    assert procfs.battery_current(path) == expected
    assert procfs.cpu_frequency(path) == expected


def test_read_scaled_value_missing_file(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.read_scaled_value(tmp_path / "absent")


def test_read_scaled_value_garbage(tmp_path):
    path = write(tmp_path, "bad", "not a number\n")
    with pytest.raises(MetricReadError):
        procfs.cpu_temperature(path)


MEMINFO = (
    "MemTotal:        8000 kB\n"
    "MemFree:         1000 kB\n"
    "MemAvailable:    3000 kB\n"
    "Buffers:         2000 kB\n"
    "Cached:          5000 kB\n"
    "SwapCached:       700 kB\n"
)


def test_memory_usage_consistent_with_totals(tmp_path):
    path = write(tmp_path, "meminfo", MEMINFO)
    usage = procfs.memory_usage(path)
    assert 0.0 <= usage <= 100.0
    total = procfs.total_memory(path)
    available = procfs.available_memory(path)
    assert total * (1 - usage / 100.0) == pytest.approx(available)


def test_total_and_available_memory_in_mb(tmp_path):
    path = write(tmp_path, "meminfo", MEMINFO)
    assert procfs.total_memory(path) * 1024 == pytest.approx(8000)
    assert procfs.available_memory(path) * 1024 == pytest.approx(3000)


def test_used_memory_ignores_swap_cached(tmp_path):
    path = write(tmp_path, "meminfo", MEMINFO)
    assert procfs.used_memory(path) == pytest.approx(0.0)


def test_memory_usage_requires_available(tmp_path):
    path = write(tmp_path, "meminfo", "MemTotal: 8000 kB\nMemFree: 10 kB\n")
    with pytest.raises(MetricReadError):
        procfs.memory_usage(path)


def test_memory_missing_file_raises(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.total_memory(tmp_path / "absent")


def test_cpu_usage_between_samples(tmp_path):
    path = write(tmp_path, "stat", "cpu  0 0 0 100 0 0 0 0 0 0\ncpu0 0 0 0 100 0 0 0 0\n")
    tracker = CpuUsageTracker(path)
    assert tracker.sample() == pytest.approx(0.0)
    path.write_text("cpu  100 0 0 100 0 0 0 0 0 0\n")
    assert tracker.sample() == pytest.approx(100.0)


def test_cpu_usage_no_elapsed_time_raises(tmp_path):
    path = write(tmp_path, "stat", "cpu  10 0 5 100 0 0 0 0\n")
    tracker = CpuUsageTracker(path)
    first = tracker.sample()
    assert 0.0 <= first <= 100.0
    with pytest.raises(MetricReadError):
        tracker.sample()


def test_cpu_usage_bad_line_raises(tmp_path):
    path = write(tmp_path, "stat", "cpu0 1 2 3 4 5 6 7 8\n")
    with pytest.raises(MetricReadError):
        CpuUsageTracker(path).sample()


def test_disk_usage_is_percentage(tmp_path):
    usage = procfs.disk_usage(tmp_path)
    assert 0.0 <= usage <= 100.0


def test_disk_usage_missing_path(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.disk_usage(tmp_path / "absent")


def make_proc(tmp_path, states):
    proc = tmp_path / "proc"
    proc.mkdir()
    for pid, state in states.items():
        entry = proc / str(pid)
        entry.mkdir()
        entry.joinpath("stat").write_text(f"{pid} (task) {state} 1 1 1 0\n")
    return proc


def test_process_states_counts(tmp_path):
    proc = make_proc(tmp_path, {1: "S", 2: "R", 3: "D", 4: "Z"})
    (proc / "self").mkdir()
    (proc / "9").mkdir()  # no stat file
    result = procfs.process_states(proc)
    assert result == ProcessStates(total=4, suspended=1, ready=1, blocked=1)


def test_process_states_invariant(tmp_path):
    proc = make_proc(tmp_path, {10: "S", 11: "S", 12: "I", 13: "R"})
    result = procfs.process_states(proc)
    assert result.suspended + result.ready + result.blocked <= result.total


def test_process_states_missing_dir(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.process_states(tmp_path / "absent")


def test_context_switches(tmp_path):
    path = write(tmp_path, "stat", "cpu  1 2 3 4 5 6 7 8\nctxt 123456\nprocs_running 7\n")
    assert procfs.context_switches(path) == 123456
    assert procfs.running_processes(path) == 7


def test_stat_counters_absent_are_zero(tmp_path):
    path = write(tmp_path, "stat", "cpu  1 2 3 4 5 6 7 8\n")
    assert procfs.context_switches(path) == 0
    assert procfs.running_processes(path) == 0


def test_stat_counters_missing_file(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.context_switches(tmp_path / "absent")


DISK_LINE = "   8       0 sda 11 12 13 14 21 22 23 31 41 42 43\n"


def test_disk_stats_sums_lines_and_skips_bad(tmp_path):
    single = procfs.disk_stats(write(tmp_path, "one", DISK_LINE))
    double = procfs.disk_stats(write(tmp_path, "two", DISK_LINE + "garbage line\n" + DISK_LINE))
    assert double.io_time == 2 * single.io_time
    assert double.writes_completed == 2 * single.writes_completed
    assert double.reads_completed == 2 * single.reads_completed


def test_disk_stats_missing_file(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.disk_stats(tmp_path / "absent")


NET_HEADER = (
    "Inter-|   Receive                            |  Transmit\n"
    " face |bytes packets errs drop fifo frame compressed multicast|bytes packets errs\n"
)


def test_network_traffic_fields(tmp_path):
    path = write(
        tmp_path,
        "dev",
        NET_HEADER
        + "    lo: 500 0 0 0 0 0 0 0 500 0 0 0 0 0 0 0\n"
        + "wlp4s0: 1 2 3 4 5 6 7 8 9 10 11 12 13 14 15 16\n",
    )
    assert procfs.network_traffic(path) == NetworkStats(
        rx_bytes=1, tx_bytes=9, rx_errors=3, tx_errors=11, dropped_packets=4
    )


def test_network_traffic_other_interface_and_bad_line(tmp_path):
    path = write(
        tmp_path,
        "dev",
        NET_HEADER + "eth0: broken\n" + "eth0: 100 0 5 6 0 0 0 0 200 0 7 0 0 0 0 0\n",
    )
    result = procfs.network_traffic(path, "eth0")
    assert (result.rx_bytes, result.tx_bytes) == (100, 200)
    assert (result.rx_errors, result.dropped_packets, result.tx_errors) == (5, 6, 7)


def test_network_traffic_missing_interface(tmp_path):
    path = write(tmp_path, "dev", NET_HEADER + "lo: 1 2 3 4 5 6 7 8 9 10 11\n")
    assert procfs.network_traffic(path, "wlan9") == NetworkStats()


def test_network_traffic_missing_file(tmp_path):
    with pytest.raises(MetricReadError):
        procfs.network_traffic(tmp_path / "absent")