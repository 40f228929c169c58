"""A small Kubernetes API client: configuration, pods, nodes and exec."""

from __future__ import annotations

import base64
import json
import os
import ssl
import tempfile
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlencode

import requests
import websocket
import yaml

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_TIMEOUT = 30.0

_STDOUT, _STDERR, _ERROR = 1, 2, 3


class KubeError(Exception):
    """Raised when talking to the Kubernetes API fails."""


class ExecError(KubeError):
    """Raised when a command run in a container fails."""

    def __init__(self, message, exit_code=None, stdout=""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout


@dataclass(frozen=True)
class Pod:
    """The parts of a pod the controller cares about."""

    name: str
    namespace: str = ""
    uid: str = ""
    node_name: str = ""
    phase: str = ""
    containers: tuple = ()
    container_ready: tuple = ()
    resource_version: str = ""

    @classmethod
    def from_dict(cls, data):
        """Build a Pod from its API JSON representation."""
        meta = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", ""),
            node_name=spec.get("nodeName", ""),
            phase=status.get("phase", ""),
            containers=tuple(c.get("name", "") for c in spec.get("containers") or ()),
            container_ready=tuple(
                bool(s.get("ready")) for s in status.get("containerStatuses") or ()
            ),
            resource_version=meta.get("resourceVersion", ""),
        )

    def key(self):
        """Return the ``namespace/name`` cache key."""
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


class RateLimiter:
    """Token bucket allowing ``qps`` sustained and ``burst`` peak requests."""

    def __init__(self, qps, burst):
        self.qps = float(qps)
        self.burst = max(int(burst), 1)
        self._tokens = float(self.burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def acquire(self):
        """Block until a request may proceed; return the seconds waited."""
        if self.qps <= 0:
            return 0.0
        with self._lock:
            now = time.monotonic()
            self._tokens = min(self.burst, self._tokens + (now - self._last) * self.qps)
            self._last = now
            self._tokens -= 1.0
            wait = 0.0 if self._tokens >= 0 else -self._tokens / self.qps
        if wait:
            time.sleep(wait)
        return wait


@dataclass
class KubeConfig:
    """Connection settings for the API server."""

    host: str
    token: str = ""
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    verify: bool = True
    qps: float = 5.0
    burst: int = 10
    timeout: float = DEFAULT_TIMEOUT
    extra: dict = field(default_factory=dict)


def default_kubeconfig():
    """Return ``$KUBECONFIG``, else ``~/.kube/config`` if it exists, else ''."""
    env = os.environ.get("KUBECONFIG", "")
    if env:
        return env
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return ""
    path = home / ".kube" / "config"
    return str(path) if path.exists() else ""


def load_in_cluster_config():
    """Load settings from the pod's service account."""
    host = os.environ.get("KUBERNETES_SERVICE_HOST", "")
    port = os.environ.get("KUBERNETES_SERVICE_PORT", "")
    if not host or not port:
        raise KubeError(
            "unable to load in-cluster configuration, KUBERNETES_SERVICE_HOST and "
            "KUBERNETES_SERVICE_PORT must be defined"
        )
    token_path = SERVICE_ACCOUNT_DIR / "token"
    try:
        token = token_path.read_text().strip()
    except OSError as exc:
        raise KubeError(f"failed to read service account token: {exc}") from exc
    ca = SERVICE_ACCOUNT_DIR / "ca.crt"
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    return KubeConfig(
        host=f"https://{host}:{port}",
        token=token,
        ca_file=str(ca) if ca.exists() else "",
    )


def _materialize(data_b64, suffix):
    handle = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
    with handle:
        handle.write(base64.b64decode(data_b64))
    return handle.name


def _named(entries, name, kind):
    for entry in entries or ():
        if entry.get("name") == name:
            return entry.get(kind) or {}
    raise KubeError(f"{kind} {name!r} not found in kubeconfig")


def load_kubeconfig(path):
    """Load settings for the current context of a kubeconfig file."""
    if not path:
        raise KubeError("no kubeconfig file given and not running in a cluster")
    try:
        doc = yaml.safe_load(Path(path).read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise KubeError(f"failed to read kubeconfig {path!r}: {exc}") from exc
    current = doc.get("current-context")
    if not current:
        raise KubeError(f"kubeconfig {path!r} has no current-context")
    context = _named(doc.get("contexts"), current, "context")
    cluster = _named(doc.get("clusters"), context.get("cluster"), "cluster")
    user = _named(doc.get("users"), context.get("user"), "user") if context.get("user") else {}

    server = cluster.get("server")
    if not server:
        raise KubeError(f"cluster for context {current!r} has no server")
    base = Path(path).parent

    def resolve(name):
        return str(base / name) if name and not os.path.isabs(name) else (name or "")

    ca_file = resolve(cluster.get("certificate-authority"))
    if cluster.get("certificate-authority-data"):
        ca_file = _materialize(cluster["certificate-authority-data"], ".crt")
    cert_file = resolve(user.get("client-certificate"))
    if user.get("client-certificate-data"):
        cert_file = _materialize(user["client-certificate-data"], ".crt")
    key_file = resolve(user.get("client-key"))
    if user.get("client-key-data"):
        key_file = _materialize(user["client-key-data"], ".key")
    token = user.get("token", "")
    if not token and user.get("tokenFile"):
        token = Path(resolve(user["tokenFile"])).read_text().strip()
    return KubeConfig(
        host=server.rstrip("/"),
        token=token,
        ca_file=ca_file,
        cert_file=cert_file,
        key_file=key_file,
        verify=not cluster.get("insecure-skip-tls-verify", False),
    )


def _exec_status(raw):
    """Return (exit code or None, message) from an exec status payload; None if success."""
    try:
        status = json.loads(raw)
    except ValueError:
        return None, raw
    if status.get("status") == "Success":
        return None
    exit_code = None
    for cause in (status.get("details") or {}).get("causes") or ():
        if cause.get("reason") == "ExitCode":
            try:
                exit_code = int(cause.get("message", ""))
            except ValueError:
                pass
    return exit_code, status.get("message", "command failed")


def _interpret_exec(stdout, stderr, status=None, stream_error=None):
    """Turn the collected exec streams into output or an ExecError."""
    if stderr:
        raise ExecError(f"command stderr: {stderr}", stdout=stdout)
    if stream_error is not None:
        raise ExecError(f"execution stream error: {stream_error}", stdout=stdout)
    outcome = _exec_status(status) if status else None
    if outcome is None:
        return stdout
    exit_code, message = outcome
    if exit_code is not None:
        raise ExecError(
            f"command failed with exit code {exit_code}: {message}",
            exit_code=exit_code,
            stdout=stdout,
        )
    raise ExecError(f"execution stream error: {message}", stdout=stdout)


class KubeClient:
    """Calls the Kubernetes API described by a KubeConfig."""

    def __init__(self, config, session=None):
        self.config = config
        self.limiter = RateLimiter(config.qps, config.burst)
        self.session = session or requests.Session()
        if config.token:
            self.session.headers["Authorization"] = f"Bearer {config.token}"
        if not config.verify:
            self.session.verify = False
        elif config.ca_file:
            self.session.verify = config.ca_file
        if config.cert_file and config.key_file:
            self.session.cert = (config.cert_file, config.key_file)

    def _get(self, path, params=None, stream=False, timeout=None):
        self.limiter.acquire()
        try:
            response = self.session.get(
                self.config.host + path,
                params=params,
                stream=stream,
                timeout=timeout if timeout is not None else self.config.timeout,
            )
        except requests.RequestException as exc:
            raise KubeError(f"request to {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise KubeError(f"GET {path} returned {response.status_code}: {response.text}")
        return response

    def get_node(self, name):
        """Return the node object as a dict."""
        return self._get(f"/api/v1/nodes/{name}").json()

    def list_pods(self, namespace, label_selector):
        """Return (pods, resource version) for pods matching the selector."""
        data = self._get(
            f"/api/v1/namespaces/{namespace}/pods", {"labelSelector": label_selector}
        ).json()
        pods = [Pod.from_dict(item) for item in data.get("items") or ()]
        return pods, (data.get("metadata") or {}).get("resourceVersion", "")

    def watch_pods(self, namespace, label_selector, resource_version=""):
        """Yield (event type, Pod) from a watch on matching pods."""
        params = {"labelSelector": label_selector, "watch": "true"}
        if resource_version:
            params["resourceVersion"] = resource_version
        response = self._get(
            f"/api/v1/namespaces/{namespace}/pods", params, stream=True, timeout=None
        )
        with response:
            for line in response.iter_lines():
                if not line:
                    continue
                event = json.loads(line)
                kind = event.get("type", "")
                if kind == "ERROR":
                    raise KubeError(f"watch error: {event.get('object')}")
                yield kind, Pod.from_dict(event.get("object") or {})

    def exec_command(self, pod, container, command, timeout=None):
        """Run a command in a container and return its stdout."""
        params = [
            ("container", container),
            ("stdin", "false"),
            ("stdout", "true"),
            ("stderr", "true"),
            ("tty", "false"),
        ] + [("command", part) for part in command]
        host = self.config.host
        ws_host = "wss" + host[5:] if host.startswith("https") else "ws" + host[4:]
        url = (
            f"{ws_host}/api/v1/namespaces/{pod.namespace}/pods/{pod.name}/exec?"
            + urlencode(params)
        )
        headers = [f"Authorization: Bearer {self.config.token}"] if self.config.token else []
        sslopt = {}
        if not self.config.verify:
            sslopt["cert_reqs"] = ssl.CERT_NONE
        elif self.config.ca_file:
            sslopt["ca_certs"] = self.config.ca_file
        if self.config.cert_file:
            sslopt["certfile"] = self.config.cert_file
            sslopt["keyfile"] = self.config.key_file
        timeout = timeout if timeout is not None else self.config.timeout
        deadline = time.monotonic() + timeout

        self.limiter.acquire()
        stdout, stderr, status = bytearray(), bytearray(), b""
        try:
            ws = websocket.create_connection(
                url,
                header=headers,
                subprotocols=["v4.channel.k8s.io"],
                sslopt=sslopt,
                timeout=timeout,
            )
        except (websocket.WebSocketException, OSError) as exc:
            return _interpret_exec("", "", stream_error=exc)
        stream_error = None
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise websocket.WebSocketTimeoutException("exec timed out")
                ws.settimeout(remaining)
                opcode, data = ws.recv_data()
                if opcode == websocket.ABNF.OPCODE_CLOSE:
                    break
                if not data:
                    continue
                channel, payload = data[0], data[1:]
                if channel == _STDOUT:
                    stdout += payload
                elif channel == _STDERR:
                    stderr += payload
                elif channel == _ERROR:
                    status += payload
        except websocket.WebSocketConnectionClosedException:
            pass
        except (websocket.WebSocketException, OSError) as exc:
            stream_error = exc
        finally:
            ws.close()
        return _interpret_exec(
            stdout.decode("utf-8", "replace"),
            stderr.decode("utf-8", "replace"),
            status.decode("utf-8", "replace"),
            stream_error,
        )


def build_rest_config(kubeconfig, qps, burst):
    """Return (client, config), preferring in-cluster settings over a kubeconfig."""
    try:
        config = load_in_cluster_config()
    except KubeError:
        path = kubeconfig or default_kubeconfig()
        try:
            config = load_kubeconfig(path)
        except KubeError as exc:
            raise KubeError(
                f"failed to build rest config from kubeconfig {path!r}: {exc}"
            ) from exc
    config.qps, config.burst = qps, burst
    config.timeout = DEFAULT_TIMEOUT
    return KubeClient(config), config