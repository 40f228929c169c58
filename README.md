# gpuid

`gpuid` is a library of parts for keeping track of which physical GPUs sit in which machines of a Kubernetes cluster. With it you can:

- run `nvidia-smi -q -x` inside a pod's container and read the GPU serial numbers from the XML output
- find a node's cloud instance identifier from its provider ID
- count outcomes in Prometheus text-format counters
- serve health and metrics endpoints over HTTP
- write JSON log lines

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

## Modules

### `gpuid.smi` and `gpuid.smi_sections`

`parse_smi_device(data)` parses the report, given as bytes or str, into an `NVSMIDevice`. The device has these fields:

- `timestamp`
- `driver_version`
- `cuda_version`
- `attached_gpus`
- `gpus`, a list of `GPU` objects

Each `GPU` holds the report's fields, with nested sections such as `pci`, `fb_memory_usage`, `temperature` and `clocks`. Every section has `to_dict()`, which uses camel-case JSON keys. Malformed XML raises `SMIParseError`, a subclass of `ValueError`.

```python
from gpuid.smi import parse_smi_device
from gpuid.gpu import unique_serials

with open("smi.xml", "rb") as fh:
    device = parse_smi_device(fh.read())

print(device.driver_version, unique_serials(device))
```

### `gpuid.gpu`

- `unique_serials(device)` returns a device's serial numbers without duplicates, in first-seen order.
- `get_serial_numbers(client, pod, container, timeout=None)` runs the report command through a `KubeClient` and returns the unique serials. It raises `KubeError` if the exec fails and `SMIParseError` if the output cannot be parsed.

### `gpuid.kube`

`build_rest_config(kubeconfig, qps, burst)` returns `(KubeClient, KubeConfig)`. It uses the pod's service account when running in a cluster. Otherwise it uses the given kubeconfig. If none is given, it uses the file named by `KUBECONFIG`, or else `~/.kube/config`.

Requests are rate-limited by a token bucket (`RateLimiter`) with the given `qps` and `burst`. The client offers these methods:

- `get_node(name)`: the node object as a dict.
- `list_pods(namespace, label_selector)`: a list of `Pod` objects and the resource version.
- `watch_pods(namespace, label_selector, resource_version="")`: a generator of `(event type, Pod)` pairs.
- `exec_command(pod, container, command, timeout=None)`: the command's stdout. Output on stderr, a non-zero exit code or a stream failure raises `ExecError`. `ExecError` carries `exit_code` and `stdout`.

`Pod.key()` gives the `namespace/name` cache key.

### `gpuid.node`

`parse_node_info(provider_id)` returns a `NodeInfo` with `provider`, `identifier` and `raw`. It accepts `aws`, `gce`, `azure` and `baremetal` provider IDs. It raises `ValueError` for empty, malformed or unsupported IDs.

`get_node_provider_id(client, node)` fetches the node and parses its provider ID.

```python
from gpuid.node import parse_node_info

info = parse_node_info("aws:///us-west-2a/i-0123456789abcdef0")
print(info.provider, info.identifier)  # aws i-0123456789abcdef0
```

### `gpuid.counter`

- `new_counter(name, help, *label_names, registry=None)` creates a `Counter` and registers it in a `Registry`. The default registry is used unless you pass one.
- `Counter.increment(*label_values)` adds one to a series.
- `Counter.value(*label_values)` reads a series.
- `Registry.render()` produces the Prometheus text format.
- `metrics_app(registry=None)` returns a WSGI application that serves the rendered metrics.

### `gpuid.server`

`Server(logger=None, port=8080)` answers `200 OK` on `/healthz`, `/readyz` and `/`. It also mounts any extra WSGI handlers you pass by path. `serve(stop_event, handlers)` blocks until the `threading.Event` is set. If the port cannot be bound, it logs the error instead of raising.

```python
import threading
from gpuid.counter import metrics_app
from gpuid.server import Server

stop = threading.Event()
threading.Thread(
    target=Server(port=8080).serve,
    args=(stop, {"/metrics": metrics_app()}),
    daemon=True,
).start()
```

### `gpuid.logger`

- `new_production_logger(LoggerConfig(...))` returns a logger that writes JSON lines to stderr. The level comes from `LoggerConfig.level`, then `LOG_LEVEL`, then `info`.
- `set_default(config)` installs the same output on the root logger.

## What this package does not do

The package has no command to run and no controller loop. It does not:

- watch pods and dispatch work to workers
- keep track of which pods it has already processed
- read the controller's settings from the environment

It has no exporters. Serial numbers are returned to the caller. Writing them to stdout, object storage or anywhere else is left to the code that uses the library.