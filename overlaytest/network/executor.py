"""Remote command execution inside probe pods."""

import ipaddress
import sys
import time
from typing import List, Optional, TextIO

from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from websocket import WebSocketException

from overlaytest.errors import ExecSetupError, ExecTimeoutError

PING_COUNT = 2


def create_ping_command(target_ip: str) -> List[str]:
    """Build the reachability check for ``target_ip``.

    The address is inserted into a shell command line as-is; callers must
    pass a validated address.
    """
    return [
        "sh",
        "-c",
        f"ping -c {PING_COUNT} {target_ip} > /dev/null 2>&1",
    ]


def validate_pod_ip(pod_ip: Optional[str]) -> bool:
    """Check whether ``pod_ip`` is an IPv4 or IPv6 address literal."""
    if not pod_ip or "%" in pod_ip:
        return False
    try:
        ipaddress.ip_address(pod_ip)
    except ValueError:
        return False
    return True


class PodExecutor:
    """Runs commands in pods over the websocket exec subresource.

    Each call opens its own ApiClient; the stream helper rebinds the
    client's request method while a call is in flight.
    """

    def __init__(
        self,
        configuration: client.Configuration,
        namespace: str,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ):
        """Initialize the executor.

        Args:
            configuration: Client configuration holding cluster credentials.
            namespace: Namespace of the target pods.
            stdout: Where remote stdout is relayed, defaults to sys.stdout.
            stderr: Where remote stderr is relayed, defaults to sys.stderr.
        """
        self.configuration = configuration
        self.namespace = namespace
        self._stdout = stdout
        self._stderr = stderr

    def run(self, pod_name: str, command: List[str], timeout: float = 30.0) -> int:
        """Execute ``command`` in ``pod_name`` and return its exit status.

        Raises:
            ExecSetupError: The exec channel failed to open or broke.
            ExecTimeoutError: The command outlived ``timeout`` seconds.
        """
        with client.ApiClient(self.configuration) as api_client:
            core_api = client.CoreV1Api(api_client)
            try:
                resp = stream(
                    core_api.connect_get_namespaced_pod_exec,
                    pod_name,
                    self.namespace,
                    command=command,
                    stdin=True,
                    stdout=True,
                    stderr=True,
                    tty=False,
                    _preload_content=False,
                )
            except (ApiException, WebSocketException, OSError) as e:
                raise ExecSetupError(str(e), {"pod": pod_name}) from e

            try:
                return self._wait(resp, pod_name, timeout)
            finally:
                resp.close()

    def _wait(self, resp, pod_name: str, timeout: float) -> int:
        deadline = time.monotonic() + timeout
        try:
            while resp.is_open():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ExecTimeoutError(
                        f"command did not finish within {timeout}s", {"pod": pod_name}
                    )
                resp.update(timeout=min(remaining, 1.0))
                if resp.peek_stdout():
                    (self._stdout or sys.stdout).write(resp.read_stdout())
                if resp.peek_stderr():
                    (self._stderr or sys.stderr).write(resp.read_stderr())
        except (WebSocketException, OSError) as e:
            raise ExecSetupError(f"exec stream failed: {e}", {"pod": pod_name}) from e

        try:
            return int(resp.returncode)
        except (TypeError, ValueError, KeyError, IndexError) as e:
            raise ExecSetupError(
                "exec stream closed without an exit status", {"pod": pod_name}
            ) from e
