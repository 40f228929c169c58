"""Cloud provider details of Kubernetes nodes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .kube import KubeError

log = logging.getLogger(__name__)

# provider -> (display name, accepted number of "/"-separated parts)
_FORMATS = {
    "aws": ("AWS", lambda count: count == 3),
    "gce": ("GCP", lambda count: count == 3),
    "azure": ("Azure", lambda count: count >= 9),
    "baremetal": ("BareMetal", lambda count: count == 2),
}


@dataclass(frozen=True)
class NodeInfo:
    """A node's cloud provider, instance identifier and raw provider ID."""

    provider: str
    identifier: str
    raw: str


def parse_node_info(provider_id):
    """Parse a node providerID such as ``aws:///zone/instance-id``.

    Raises ValueError for empty, malformed or unsupported IDs.
    """
    if not provider_id:
        raise ValueError("node providerID is empty")

    log.debug("processing node", extra={"providerID": provider_id})

    head, sep, _ = provider_id.partition(":")
    if not sep:
        raise ValueError(f"invalid providerID format: {provider_id}")

    provider = head.lower()
    details = provider_id.removeprefix(provider + "://")
    log.debug("parsed providerID", extra={"provider": provider, "details": details})

    if provider not in _FORMATS:
        raise ValueError(f"unsupported provider: {provider}")

    label, accepts = _FORMATS[provider]
    parts = details.split("/")
    if not accepts(len(parts)):
        raise ValueError(
            f"invalid {label} providerID format: {provider_id}, parts: {len(parts)}"
        )
    return NodeInfo(provider=provider, identifier=parts[-1], raw=provider_id)


def get_node(client, node):
    """Fetch a node object (as a dict) by name."""
    if not node or not node.strip():
        raise ValueError("node name is required")
    if client is None:
        raise ValueError("kubernetes client is required")

    log.debug("fetching node information", extra={"node": node})
    try:
        return client.get_node(node)
    except KubeError as exc:
        raise KubeError(f"failed to get node: {exc}") from exc


def get_node_provider_id(client, node):
    """Fetch a node and parse its providerID into a NodeInfo."""
    data = get_node(client, node)
    if not data:
        raise ValueError("node is nil")

    provider_id = (data.get("spec") or {}).get("providerID", "")
    if not provider_id:
        raise ValueError("node providerID is empty")

    return parse_node_info(provider_id)