"""Probe DaemonSet provisioning and readiness for overlaytest."""

from overlaytest.provisioner.client import get_kubeconfig_path, new_kubernetes_client
from overlaytest.provisioner.daemonset import DaemonSetManager, ProbeWorkloadSpec, build_workload_spec
from overlaytest.provisioner.pods import ProbeInstance, list_probe_pods
from overlaytest.provisioner.waiter import ReadinessWaiter, poll_until

__all__ = [
    "DaemonSetManager",
    "ProbeInstance",
    "ProbeWorkloadSpec",
    "ReadinessWaiter",
    "build_workload_spec",
    "get_kubeconfig_path",
    "list_probe_pods",
    "new_kubernetes_client",
    "poll_until",
]
