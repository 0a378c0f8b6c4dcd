import urllib.error
import urllib.request
from http import HTTPStatus

import pytest

from sysmetrics.httpserver import MetricsServer, handle_request
from sysmetrics.prom import CollectorRegistry, Gauge


@pytest.fixture
def registry():
    reg = CollectorRegistry()
    reg.register(Gauge("used_memory_mb", "Used memory in MB")).set(512)
    return reg


def test_root_returns_ok(registry):
    assert handle_request("GET", "/", registry) == (HTTPStatus.OK, b"OK\n")


def test_metrics_returns_bridge(registry):
    status, body = handle_request("GET", "/metrics", registry)
    assert status == HTTPStatus.OK
    assert body.decode() == registry.bridge()


def test_non_get_is_rejected(registry):
    assert handle_request("POST", "/metrics", registry) == (
        HTTPStatus.BAD_REQUEST,
        b"Invalid HTTP Method\n",
    )


def test_unknown_path_is_bad_request(registry):
    assert handle_request("GET", "/nope", registry) == (HTTPStatus.BAD_REQUEST, b"Bad Request\n")


def test_server_serves_metrics(registry):
    with MetricsServer(registry, host="127.0.0.1", port=0) as server:
        url = f"http://127.0.0.1:{server.port}/metrics"
        with urllib.request.urlopen(url, timeout=5) as response:
            assert response.status == 200
            body = response.read().decode()
    assert "used_memory_mb 512" in body.splitlines()
    assert not server.running


def test_server_bad_path_and_method(registry):
    with MetricsServer(registry, host="127.0.0.1", port=0) as server:
        base = f"http://127.0.0.1:{server.port}"
        with pytest.raises(urllib.error.HTTPError) as bad_path:
            urllib.request.urlopen(base + "/other", timeout=5)
        assert bad_path.value.code == 400
        request = urllib.request.Request(base + "/", data=b"x", method="POST")
        with pytest.raises(urllib.error.HTTPError) as bad_method:
            urllib.request.urlopen(request, timeout=5)
        assert bad_method.value.code == 400
        assert bad_method.value.read() == b"Invalid HTTP Method\n"


def test_start_twice_raises(registry):
    server = MetricsServer(registry, host="127.0.0.1", port=0)
    server.start()
    try:
        with pytest.raises(RuntimeError):
            server.start()
    finally:
        server.stop()
    assert not server.running