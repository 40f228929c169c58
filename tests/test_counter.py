import pytest

from gpuid.counter import CONTENT_TYPE, Counter, Registry, metrics_app, new_counter


@pytest.mark.parametrize(
    "name, help_text, label_name, label_value",
    [
        ("success", "success", "status", "success"),
        ("failure", "failure", "status", "failure"),
        ("pending", "pending", "status", "pending"),
    ],
)
def test_counter_increment_table(name, help_text, label_name, label_value):
    registry = Registry()
    counter = new_counter(name, help_text, label_name, registry=registry)
    counter.increment(label_value)
    assert counter.name == name
    assert counter.label_names == (label_name,)
    assert counter.value(label_value) == 1


def test_unseen_series_is_zero():
    counter = Counter("c_total", "help", ["status"])
    assert counter.value("nothing") == 0


def test_wrong_label_count_raises():
    counter = Counter("c_total", "help", ["node", "pod"])
    with pytest.raises(ValueError):
        counter.increment("only-one")


def test_duplicate_registration_raises():
    registry = Registry()
    new_counter("dup_total", "help", "status", registry=registry)
    with pytest.raises(ValueError):
        new_counter("dup_total", "help", "status", registry=registry)


@pytest.mark.parametrize("name", ["", "1abc", "has-dash"])
def test_invalid_metric_name(name):
    with pytest.raises(ValueError):
        Counter(name, "help")


def test_invalid_label_name():
    with pytest.raises(ValueError):
        Counter("c_total", "help", ["__reserved"])


def test_render_exact():
    registry = Registry()
    counter = new_counter("c_total", "Things", "status", registry=registry)
    counter.increment("ok")
    counter.increment("ok")
    assert registry.render() == (
        "# HELP c_total Things\n# TYPE c_total counter\nc_total{status=\"ok\"} 2\n"
    )


def test_render_empty_registry():
    registry = Registry()
    new_counter("unused_total", "help", "status", registry=registry)
    assert registry.render() == ""


def test_render_escapes_label_values_and_sorts():
    registry = Registry()
    counter = new_counter("c_total", "help", "node", "pod", registry=registry)
    counter.increment("b", 'q"x')
    counter.increment("a", "p")
    lines = registry.render().splitlines()
    assert lines[2] == 'c_total{node="a",pod="p"} 1'
    assert lines[3] == 'c_total{node="b",pod="q\\"x"} 1'


def test_metrics_app_serves_render():
    registry = Registry()
    new_counter("gpuid_export_success_total", "ok", "node", "pod", registry=registry).increment(
        "n1", "p1"
    )
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(metrics_app(registry)({}, start_response))
    assert captured["status"] == "200 OK"
    assert captured["headers"]["Content-Type"] == CONTENT_TYPE
    assert body.decode() == registry.render()
    assert 'gpuid_export_success_total{node="n1",pod="p1"} 1' in body.decode()