"""Connectivity checks between probe pods."""

from overlaytest.network.executor import PodExecutor, create_ping_command, validate_pod_ip
from overlaytest.network.matrix import ConnectivityMatrix, ConnectivityResult, ProbeOutcome

__all__ = [
    "ConnectivityMatrix",
    "ConnectivityResult",
    "PodExecutor",
    "ProbeOutcome",
    "create_ping_command",
    "validate_pod_ip",
]
