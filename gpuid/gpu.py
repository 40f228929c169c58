"""Reading GPU serial numbers from pods."""

from __future__ import annotations

import logging

from .kube import KubeError
from .smi import SMIParseError, parse_smi_device

SMI_COMMAND = ("/bin/sh", "-c", "nvidia-smi -q -x")

log = logging.getLogger(__name__)


def unique_serials(device):
    """Return the device's GPU serial numbers without duplicates."""
    return list(dict.fromkeys(gpu.serial for gpu in device.gpus))


def get_serial_numbers(client, pod, container, timeout=None):
    """Run nvidia-smi in the container and return the unique GPU serials."""
    try:
        stdout = client.exec_command(pod, container, list(SMI_COMMAND), timeout)
    except KubeError as exc:
        raise KubeError(
            f"failed to execute command in pod {pod.namespace}/{pod.name}: {exc}"
        ) from exc
    try:
        device = parse_smi_device(stdout)
    except SMIParseError as exc:
        raise SMIParseError(f"failed to parse nvidia-smi output: {exc}") from exc
    log.debug(
        "retrieved GPU info from pod",
        extra={"ns": pod.namespace, "pod": pod.name, "gpu_count": len(device.gpus)},
    )
    serials = unique_serials(device)
    log.debug(
        "found unique GPU serial numbers",
        extra={"ns": pod.namespace, "pod": pod.name, "serial_numbers": len(serials)},
    )
    return serials