"""Probe DaemonSet specification and lifecycle.

The probe workload runs one idle container per node. Its security and
resource settings are fixed so the probe behaves the same for every caller.
"""

from dataclasses import dataclass
from typing import Any, Dict

from kubernetes import client
from kubernetes.client.rest import ApiException

from overlaytest.errors import WorkloadExistedError


PROBE_USER_ID = 1000
CPU_REQUEST = "100m"
CPU_LIMIT = "200m"
MEMORY_REQUEST = "64Mi"
MEMORY_LIMIT = "128Mi"
TERMINATION_GRACE_PERIOD_SECONDS = 1
SECCOMP_PROFILE = "RuntimeDefault"
IDLE_COMMAND = ["sh", "-c"]
IDLE_ARGS = ["tail -f /dev/null"]
MANAGED_BY = "overlaytest"


@dataclass(frozen=True)
class ProbeWorkloadSpec:
    """Immutable description of the probe DaemonSet."""

    namespace: str
    name: str
    image: str

    @property
    def labels(self) -> Dict[str, str]:
        """Pod labels, also used as the DaemonSet selector."""
        return {"app": self.name}

    @property
    def label_selector(self) -> str:
        return f"app={self.name}"

    def to_manifest(self) -> Dict[str, Any]:
        """Render the ``apps/v1`` DaemonSet manifest."""
        container = {
            "name": self.name,
            "image": self.image,
            "imagePullPolicy": "IfNotPresent",
            "command": list(IDLE_COMMAND),
            "args": list(IDLE_ARGS),
            "securityContext": {
                "runAsUser": PROBE_USER_ID,
                "runAsGroup": PROBE_USER_ID,
                "runAsNonRoot": True,
                "readOnlyRootFilesystem": True,
                "allowPrivilegeEscalation": False,
                "privileged": False,
                "seccompProfile": {"type": SECCOMP_PROFILE},
            },
            "resources": {
                "requests": {"cpu": CPU_REQUEST, "memory": MEMORY_REQUEST},
                "limits": {"cpu": CPU_LIMIT, "memory": MEMORY_LIMIT},
            },
        }

        pod_spec = {
            "containers": [container],
            "terminationGracePeriodSeconds": TERMINATION_GRACE_PERIOD_SECONDS,
            # An "Exists" toleration without a key matches every taint
            "tolerations": [{"operator": "Exists"}],
            "securityContext": {
                "fsGroup": PROBE_USER_ID,
                "seccompProfile": {"type": SECCOMP_PROFILE},
            },
        }

        return {
            "apiVersion": "apps/v1",
            "kind": "DaemonSet",
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": {**self.labels, "managed-by": MANAGED_BY},
            },
            "spec": {
                "selector": {"matchLabels": dict(self.labels)},
                "template": {
                    "metadata": {"labels": dict(self.labels)},
                    "spec": pod_spec,
                },
            },
        }


def build_workload_spec(namespace: str, name: str, image: str) -> ProbeWorkloadSpec:
    """Create the probe workload description for a run."""
    return ProbeWorkloadSpec(namespace=namespace, name=name, image=image)


class DaemonSetManager:
    """Creates, reuses and removes the probe DaemonSet."""

    def __init__(self, apps_api: client.AppsV1Api, spec: ProbeWorkloadSpec):
        """Initialize the manager.

        Args:
            apps_api: Apps API used for DaemonSet calls.
            spec: The probe workload to manage.
        """
        self.apps_api = apps_api
        self.spec = spec

    def deploy(self, reuse_existing: bool = False) -> None:
        """Submit the probe DaemonSet.

        With ``reuse_existing`` nothing is sent to the cluster. If the
        DaemonSet already exists it is deleted with foreground propagation
        and WorkloadExistedError is raised; the next run creates it afresh.

        Raises:
            WorkloadExistedError: The DaemonSet existed and was deleted.
            ApiException: Any other API failure.
        """
        if reuse_existing:
            return

        print("Creating daemonset...")
        try:
            result = self.apps_api.create_namespaced_daemon_set(
                self.spec.namespace, self.spec.to_manifest()
            )
        except ApiException as e:
            if e.status != 409:
                raise
            print("daemonset already exists, deleting ... & exit")
            self._delete()
            raise WorkloadExistedError(
                "daemonset already existed, deleted it - please run again",
                {"namespace": self.spec.namespace, "name": self.spec.name},
            )

        print(f'Created daemonset "{_created_name(result, self.spec.name)}".')

    def remove(self) -> bool:
        """Delete the probe DaemonSet if present.

        Returns:
            True if a delete was issued, False if nothing was found.
        """
        try:
            self._delete()
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    def _delete(self) -> None:
        self.apps_api.delete_namespaced_daemon_set(
            self.spec.name,
            self.spec.namespace,
            body=client.V1DeleteOptions(propagation_policy="Foreground"),
        )


def _created_name(result: Any, default: str) -> str:
    """Name reported back by the API server for a created object."""
    metadata = getattr(result, "metadata", None)
    name = getattr(metadata, "name", None)
    return name if isinstance(name, str) and name else default
