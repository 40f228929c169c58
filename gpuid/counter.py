"""Labelled counters exposed in the Prometheus text format."""

from __future__ import annotations

import re
import threading

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_METRIC_NAME = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def _escape_help(text):
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text):
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_value(value):
    if value.is_integer():
        return str(int(value))
    return repr(value)


class Counter:
    """A monotonically increasing counter partitioned by label values."""

    def __init__(self, name, help, label_names=()):
        if not _METRIC_NAME.match(name):
            raise ValueError(f"invalid metric name: {name!r}")
        label_names = tuple(label_names)
        for label in label_names:
            if not _LABEL_NAME.match(label) or label.startswith("__"):
                raise ValueError(f"invalid label name: {label!r}")
        if len(set(label_names)) != len(label_names):
            raise ValueError(f"duplicate label names for metric {name}")
        self.name = name
        self.help = help
        self.label_names = label_names
        self._values = {}
        self._lock = threading.Lock()

    def _key(self, values):
        if len(values) != len(self.label_names):
            raise ValueError(
                f"counter {self.name} expects {len(self.label_names)} label values, "
                f"got {len(values)}"
            )
        return tuple(str(v) for v in values)

    def increment(self, *args):
        """Add one to the series identified by the given label values."""
        key = self._key(args)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + 1.0

    def value(self, *args):
        """Return the current value of a series, zero if never incremented."""
        key = self._key(args)
        with self._lock:
            return self._values.get(key, 0.0)

    def samples(self):
        """Return (label values, value) pairs sorted by label values."""
        with self._lock:
            return sorted(self._values.items())


class Registry:
    """A set of counters rendered together."""

    def __init__(self):
        self._counters = {}
        self._lock = threading.Lock()

    def register(self, counter):
        with self._lock:
            if counter.name in self._counters:
                raise ValueError(
                    f"duplicate metrics collector registration attempted: {counter.name}"
                )
            self._counters[counter.name] = counter

    def render(self):
        """Render every counter with samples in the Prometheus text format."""
        with self._lock:
            counters = sorted(self._counters.values(), key=lambda c: c.name)
        lines = []
        for counter in counters:
            samples = counter.samples()
            if not samples:
                continue
            lines.append(f"# HELP {counter.name} {_escape_help(counter.help)}")
            lines.append(f"# TYPE {counter.name} counter")
            for values, value in samples:
                if counter.label_names:
                    labels = ",".join(
                        f'{label}="{_escape_label(v)}"'
                        for label, v in zip(counter.label_names, values)
                    )
                    lines.append(f"{counter.name}{{{labels}}} {_format_value(value)}")
                else:
                    lines.append(f"{counter.name} {_format_value(value)}")
        return "".join(line + "\n" for line in lines)


DEFAULT_REGISTRY = Registry()


def new_counter(name, help, *args, registry=None):
    """Create a counter with the given label names and register it."""
    counter = Counter(name, help, args)
    (registry if registry is not None else DEFAULT_REGISTRY).register(counter)
    return counter


def metrics_app(registry=None):
    """Return a WSGI application serving the registry's metrics."""
    registry = registry if registry is not None else DEFAULT_REGISTRY

    def app(environ, start_response):
        body = registry.render().encode("utf-8")
        start_response(
            "200 OK",
            [("Content-Type", CONTENT_TYPE), ("Content-Length", str(len(body)))],
        )
        return [body]

    return app