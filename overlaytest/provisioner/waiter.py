"""Wait loops for probe DaemonSet readiness and pod address assignment.

Every check re-reads the object from the API server. A failed read ends
the wait immediately; there is no retry.
"""

import threading
import time
from typing import Callable, List, Optional, TypeVar

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from overlaytest.errors import ClusterError, PollCancelledError, PollTimeoutError
from overlaytest.network.executor import validate_pod_ip
from overlaytest.provisioner.pods import ProbeInstance

T = TypeVar("T")

# API rejections and an unreachable API server
READ_ERRORS = (ApiException, HTTPError, OSError)


def poll_until(
    fetch: Callable[[], T],
    condition: Callable[[T], bool],
    interval: float,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    description: str = "condition",
) -> T:
    """Call ``fetch`` until ``condition`` holds for its result.

    Args:
        fetch: Reads the current state. Exceptions propagate unchanged.
        condition: Predicate on the fetched state.
        interval: Seconds to wait between checks, 0 re-checks immediately.
        timeout: Total seconds to wait, None waits indefinitely.
        cancel: Event that aborts the wait, including a pending sleep.
        description: Used in timeout and cancel messages.

    Returns:
        The first fetched value satisfying ``condition``.

    Raises:
        PollTimeoutError: The deadline passed first.
        PollCancelledError: ``cancel`` was set.
    """
    cancel = cancel or threading.Event()
    deadline = None if timeout is None else time.monotonic() + timeout

    while True:
        if cancel.is_set():
            raise PollCancelledError(f"cancelled while waiting for {description}")

        result = fetch()
        if condition(result):
            return result

        wait = interval
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise PollTimeoutError(
                    f"timed out after {timeout}s waiting for {description}"
                )
            wait = min(interval, remaining)

        if cancel.wait(wait):
            raise PollCancelledError(f"cancelled while waiting for {description}")


class ReadinessWaiter:
    """Blocks until the probe workload is usable."""

    def __init__(
        self,
        core_api: client.CoreV1Api,
        apps_api: client.AppsV1Api,
        namespace: str,
        cancel: Optional[threading.Event] = None,
    ):
        self.core_api = core_api
        self.apps_api = apps_api
        self.namespace = namespace
        self.cancel = cancel

    def wait_for_daemonset_ready(
        self, name: str, interval: float = 2.0, timeout: Optional[float] = None
    ) -> None:
        """Wait until the DaemonSet reports at least one ready pod.

        One ready pod is enough; the remaining pods may still be starting.
        """

        def fetch():
            try:
                return self.apps_api.read_namespaced_daemon_set(name, self.namespace)
            except READ_ERRORS as e:
                raise ClusterError(
                    f"error getting daemonset: {_reason(e)}",
                    resource_type="DaemonSet",
                    resource_name=name,
                ) from e

        poll_until(
            fetch,
            _has_ready_pod,
            interval,
            timeout=timeout,
            cancel=self.cancel,
            description=f"daemonset {name} to become ready",
        )
        print("all pods ready")

    def wait_for_pod_network(
        self,
        pods: List[ProbeInstance],
        interval: float = 0.0,
        timeout: Optional[float] = None,
    ) -> List[ProbeInstance]:
        """Wait until every pod has a valid IP address.

        Args:
            pods: Probe pods to check, one after another.
            interval: Seconds between re-reads of a pod.
            timeout: Total seconds for all pods, None waits indefinitely.

        Returns:
            The pods re-read with their assigned addresses.
        """
        print("checking pod network...")
        deadline = None if timeout is None else time.monotonic() + timeout
        ready: List[ProbeInstance] = []

        for pod in pods:
            remaining = None
            if deadline is not None:
                remaining = max(deadline - time.monotonic(), 0.0)

            current = poll_until(
                lambda: self._read_pod(pod.name),
                lambda p: validate_pod_ip(p.pod_ip),
                interval,
                timeout=remaining,
                cancel=self.cancel,
                description=f"pod {pod.name} to get an address",
            )
            print(current.name, "ready", current.pod_ip)
            ready.append(current)

        print("all pods have network")
        return ready

    def _read_pod(self, name: str) -> ProbeInstance:
        try:
            pod = self.core_api.read_namespaced_pod(name, self.namespace)
        except READ_ERRORS as e:
            raise ClusterError(
                f"error getting pod: {_reason(e)}",
                resource_type="Pod",
                resource_name=name,
            ) from e
        return ProbeInstance.from_pod(pod)


def _has_ready_pod(daemonset) -> bool:
    status = daemonset.status
    return bool(status and (status.number_ready or 0) > 0)


def _reason(error: Exception) -> str:
    if isinstance(error, ApiException):
        return error.reason
    return str(error)
