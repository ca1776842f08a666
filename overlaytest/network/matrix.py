"""All-pairs connectivity test between probe pods.

For every destination pod D and every executing pod E (the same list,
self-pairs included) the engine runs ``ping D.ip`` inside E. The outer
loop walks destinations and the inner loop walks executors, so the output
is grouped by destination node::

    node-1 can reach node-1
    node-1 can reach node-2
    node-1 can NOT reach node-3

reads "the pod on node-3 cannot reach node-1".
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from kubernetes import client

from overlaytest.errors import ExecSetupError, ExecTimeoutError
from overlaytest.network.executor import PodExecutor, create_ping_command
from overlaytest.provisioner.pods import ProbeInstance, list_probe_pods


class ProbeOutcome(str, Enum):
    """Outcome of a single directed reachability check."""

    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectivityResult:
    """One directed observation: did ``executor`` reach ``destination``."""

    executor: ProbeInstance
    destination: ProbeInstance
    outcome: ProbeOutcome
    error: Optional[str] = None

    def describe(self) -> str:
        """Console line for this pair."""
        if self.outcome == ProbeOutcome.ERROR:
            return self.error or "error while creating Executor"
        verb = "can reach" if self.outcome == ProbeOutcome.REACHABLE else "can NOT reach"
        return f"{self.destination.node_name} {verb} {self.executor.node_name}"


class ConnectivityMatrix:
    """Runs the ping matrix across all probe pods."""

    def __init__(
        self,
        executor: PodExecutor,
        core_api: client.CoreV1Api,
        namespace: str,
        label_selector: str,
        concurrency: int = 1,
        probe_timeout: float = 30.0,
    ):
        """Initialize the matrix.

        Args:
            executor: Runs commands inside pods.
            core_api: Used to list the probe pods.
            namespace: Namespace of the probe pods.
            label_selector: Selector matching the probe pods.
            concurrency: Number of probes in flight at once, 1 runs them
                strictly one after another.
            probe_timeout: Seconds allowed for a single ping command.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.executor = executor
        self.core_api = core_api
        self.namespace = namespace
        self.label_selector = label_selector
        self.concurrency = concurrency
        self.probe_timeout = probe_timeout

    def pairs(self, pods: List[ProbeInstance]) -> List[Tuple[ProbeInstance, ProbeInstance]]:
        """Ordered (executor, destination) pairs, destination-major."""
        return [(executor, destination) for destination in pods for executor in pods]

    def run(self) -> List[ConnectivityResult]:
        """Probe every ordered pair and print one line per pair.

        The pod list is read again here; it is the authoritative set even
        if the DaemonSet scaled since the readiness checks.

        Returns:
            Results in destination-major order, matching the printed lines.
        """
        pods = list_probe_pods(self.core_api, self.namespace, self.label_selector)
        results: List[ConnectivityResult] = []

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="overlay-probe"
        ) as pool:
            futures = [
                pool.submit(self.probe, executor, destination)
                for executor, destination in self.pairs(pods)
            ]
            for future in futures:
                result = future.result()
                print(result.describe())
                results.append(result)

        return results

    def probe(self, executor: ProbeInstance, destination: ProbeInstance) -> ConnectivityResult:
        """Ping ``destination`` from inside ``executor``."""
        command = create_ping_command(destination.pod_ip)
        try:
            exit_code = self.executor.run(executor.name, command, timeout=self.probe_timeout)
        except (ExecSetupError, ExecTimeoutError) as e:
            return ConnectivityResult(
                executor, destination, ProbeOutcome.ERROR,
                error=f"error while creating Executor: {e}",
            )

        outcome = ProbeOutcome.REACHABLE if exit_code == 0 else ProbeOutcome.UNREACHABLE
        return ConnectivityResult(executor, destination, outcome)
