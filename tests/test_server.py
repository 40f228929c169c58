import logging
import threading
import urllib.request

import pytest

from gpuid.server import Server


def _logger():
    return logging.getLogger("gpuid.tests.server")


def _call(app, path):
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status

    body = b"".join(app({"PATH_INFO": path, "REQUEST_METHOD": "GET"}, start_response))
    return captured["status"], body


@pytest.mark.parametrize("path", ["/healthz", "/readyz", "/"])
def test_health_and_ready_endpoints(path):
    app = Server(logger=_logger(), port=8080).build_app(None)
    status, _ = _call(app, path)
    assert status.startswith("200")


def test_unknown_path_falls_back_to_root():
    app = Server(logger=_logger()).build_app({})
    status, _ = _call(app, "/something/else")
    assert status.startswith("200")


def test_registers_metrics_handler():
    called = []

    def metrics(environ, start_response):
        called.append(environ["PATH_INFO"])
        start_response("200 OK", [])
        return [b"metrics"]

    app = Server(logger=_logger()).build_app({"/metrics": metrics})
    status, body = _call(app, "/metrics")
    assert status.startswith("200")
    assert body == b"metrics"
    assert called == ["/metrics"]


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError):
        Server(logger=_logger()).build_app({"/healthz": lambda e, s: []})


def test_sets_logger_and_port():
    logger = _logger()
    server = Server(logger=logger, port=1234)
    assert server.logger is logger
    assert server.port == 1234


def test_defaults():
    server = Server()
    assert server.port == 8080
    assert isinstance(server.logger, logging.Logger)


def test_custom_port():
    assert Server(logger=_logger(), port=4321).port == 4321


def test_serve_answers_and_stops():
    server = Server(logger=_logger(), port=0)
    stop = threading.Event()
    thread = threading.Thread(target=server.serve, args=(stop, None), daemon=True)
    thread.start()
    assert server.started.wait(5)
    url = f"http://127.0.0.1:{server.bound_port}/healthz"
    with urllib.request.urlopen(url, timeout=5) as response:
        status = response.status
    stop.set()
    thread.join(5)
    assert status == 200
    assert not thread.is_alive()