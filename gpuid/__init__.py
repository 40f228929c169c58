"""Parts for reading GPU serial numbers from Kubernetes pods: nvidia-smi parsing, a Kubernetes client, node provider IDs, metrics, a health server and logging."""

__version__ = "0.1.0"