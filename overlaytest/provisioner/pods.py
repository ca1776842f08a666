"""Probe pod lookup."""

from dataclasses import dataclass
from typing import Any, List

from kubernetes import client


@dataclass(frozen=True)
class ProbeInstance:
    """One running probe pod, bound to a single node."""

    name: str
    node_name: str = ""
    pod_ip: str = ""

    @classmethod
    def from_pod(cls, pod: Any) -> "ProbeInstance":
        """Build from a ``V1Pod``. Missing spec or status fields become empty."""
        spec = pod.spec
        status = pod.status
        return cls(
            name=pod.metadata.name,
            node_name=(spec.node_name if spec else None) or "",
            pod_ip=(status.pod_ip if status else None) or "",
        )


def list_probe_pods(
    core_api: client.CoreV1Api, namespace: str, label_selector: str
) -> List[ProbeInstance]:
    """List the probe pods currently known to the cluster.

    Args:
        core_api: Core API client.
        namespace: Namespace of the probe DaemonSet.
        label_selector: Selector matching the probe pods, e.g. ``app=overlaytest``.

    Returns:
        ProbeInstances in the order the API returned them.
    """
    pods = core_api.list_namespaced_pod(namespace, label_selector=label_selector)
    return [ProbeInstance.from_pod(pod) for pod in pods.items]
