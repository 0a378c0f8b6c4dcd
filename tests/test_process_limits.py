import pytest

from sysmetrics.process_limits import (
    LimitsParseError,
    LimitsRow,
    limits_gauges,
    parse_limits,
    read_limits,
)

SAMPLE = (
    "Limit                     Soft Limit           Hard Limit           Units     \n"
    "Max cpu time              unlimited            unlimited            seconds   \n"
    "Max file size             unlimited            unlimited            bytes     \n"
    "Max processes             63346                63346                processes \n"
    "Max open files            1024                 524288               files     \n"
    "Max nice priority         0                    0                    \n"
    "Max realtime timeout      unlimited            unlimited            us        \n"
)


def test_parse_limits_keys_in_order():
    rows = parse_limits(SAMPLE)
    assert list(rows) == [
        "Max cpu time",
        "Max file size",
        "Max processes",
        "Max open files",
        "Max nice priority",
        "Max realtime timeout",
    ]


def test_parse_limits_numeric_row():
    rows = parse_limits(SAMPLE)
    assert rows["Max open files"] == LimitsRow("Max open files", 1024, 524288, "files")


def test_parse_limits_unlimited_is_minus_one():
    row = parse_limits(SAMPLE)["Max cpu time"]
    assert row.soft == -1
    assert row.hard == -1
    assert row.units == "seconds"


def test_parse_limits_row_without_units():
    row = parse_limits(SAMPLE)["Max nice priority"]
    assert row.units is None
    assert (row.soft, row.hard) == (0, 0)


def test_parse_limits_header_only():
    assert parse_limits("Limit Soft Limit Hard Limit Units\n") == {}


def test_parse_limits_skips_blank_lines():
    text = "Limit\n\nMax locks  10  20  locks\n\n"
    assert parse_limits(text) == {"Max locks": LimitsRow("Max locks", 10, 20, "locks")}


def test_parse_limits_last_line_without_newline():
    text = "Limit\nMax locks  5  unlimited  locks"
    row = parse_limits(text)["Max locks"]
    assert (row.soft, row.hard) == (5, -1)


def test_parse_limits_duplicate_name_keeps_last():
    text = "Limit\nMax locks  1  2  locks\nMax locks  3  4  locks\n"
    rows = parse_limits(text)
    assert len(rows) == 1
    assert rows["Max locks"].soft == 3


@pytest.mark.parametrize(
    "text",
    [
        "",
        "no newline at all",
        "Limit: bad header\nMax locks  1  2  locks\n",
    ],
)
def test_parse_limits_bad_header(text):
    with pytest.raises(LimitsParseError):
        parse_limits(text)


@pytest.mark.parametrize(
    "line",
    [
        "Max locks  many  2  locks",
        "Max locks  1",
        "12345  1  2  locks",
        "Max locks  1  2  locks extra",
    ],
)
def test_parse_limits_bad_data_line(line):
    with pytest.raises(LimitsParseError):
        parse_limits("Limit\n" + line + "\n")


def test_read_limits_from_file(tmp_path):
    path = tmp_path / "limits"
    path.write_text(SAMPLE)
    assert read_limits(path) == parse_limits(SAMPLE)


def test_read_limits_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_limits(tmp_path / "absent")


def test_limits_gauges_names_and_help():
    gauges = limits_gauges()
    assert set(gauges) == {"process_max_fds", "process_virtual_memory_max_bytes"}
    assert gauges["process_max_fds"].help == "Maximum number of open file descriptors."
    assert (
        gauges["process_virtual_memory_max_bytes"].help
        == "Maximum amount of virtual memory available in bytes."
    )


def test_limits_gauges_are_fresh_and_settable():
    first = limits_gauges()
    second = limits_gauges()
    first["process_max_fds"].set(1024)
    assert first["process_max_fds"].value() == 1024
    assert second["process_max_fds"].value() == 0