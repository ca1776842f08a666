"""overlaytest CLI - check the overlay network between all cluster nodes.

Installs a DaemonSet in the target cluster and sends 2 pings from every
probe pod to every other probe pod. The result of each check is printed.
"""

import sys
import threading
from dataclasses import replace
from typing import List, Optional

import click
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from overlaytest.config.loader import OverlayTestConfig, get_version, load_config
from overlaytest.errors import OverlayTestError
from overlaytest.network.executor import PodExecutor
from overlaytest.network.matrix import ConnectivityMatrix, ConnectivityResult
from overlaytest.provisioner.client import get_kubeconfig_path, new_kubernetes_client
from overlaytest.provisioner.daemonset import DaemonSetManager, build_workload_spec
from overlaytest.provisioner.pods import list_probe_pods
from overlaytest.provisioner.waiter import ReadinessWaiter


def run_overlay_test(
    cfg: OverlayTestConfig,
    cancel: Optional[threading.Event] = None,
    api_client: Optional[client.ApiClient] = None,
) -> List[ConnectivityResult]:
    """Deploy the probes, wait for them and run the connectivity matrix.

    Args:
        cfg: Resolved run configuration.
        cancel: Optional event that aborts the wait loops.
        api_client: Prebuilt API client, built from ``cfg.kubeconfig`` if omitted.

    Returns:
        Per-pair results of the connectivity matrix, empty for a cleanup run.
    """
    if api_client is None:
        api_client = new_kubernetes_client(cfg.kubeconfig)
    core_api = client.CoreV1Api(api_client)
    apps_api = client.AppsV1Api(api_client)

    click.echo("Welcome to the overlaytest.\n")

    spec = build_workload_spec(cfg.namespace, cfg.name, cfg.image)
    manager = DaemonSetManager(apps_api, spec)

    if cfg.cleanup:
        if manager.remove():
            click.echo(f'Deleted daemonset "{spec.name}".')
        else:
            click.echo(f'daemonset "{spec.name}" not found, nothing to remove')
        return []

    manager.deploy(reuse_existing=cfg.reuse)

    waiter = ReadinessWaiter(core_api, apps_api, cfg.namespace, cancel=cancel)
    if not cfg.reuse:
        waiter.wait_for_daemonset_ready(
            spec.name, interval=cfg.ready_poll_interval, timeout=cfg.ready_timeout
        )

    pods = list_probe_pods(core_api, cfg.namespace, spec.label_selector)
    click.echo(f"There are {len(pods)} nodes in the cluster")

    waiter.wait_for_pod_network(
        pods, interval=cfg.network_poll_interval, timeout=cfg.network_timeout
    )

    click.echo("\n=> Start network overlay test")
    matrix = ConnectivityMatrix(
        PodExecutor(api_client.configuration, cfg.namespace),
        core_api,
        cfg.namespace,
        spec.label_selector,
        concurrency=cfg.concurrency,
        probe_timeout=cfg.probe_timeout,
    )
    results = matrix.run()
    click.echo("=> End network overlay test")

    click.echo("\nCall me again to remove installed cluster resources")
    return results


def _format_error(error: Exception) -> str:
    if isinstance(error, ApiException):
        return f"kubernetes API error ({error.status}): {error.reason}"
    return str(error)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--kubeconfig",
    default=None,
    help="(optional) absolute path to the kubeconfig file",
)
@click.option("--version", "show_version", is_flag=True, help="Print the app version and exit")
@click.option("--reuse", is_flag=True, help="Reuse an existing deployment")
@click.option("--cleanup", is_flag=True, help="Remove the probe DaemonSet and exit")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option("--namespace", "-n", default=None, help="Namespace for the probe DaemonSet")
@click.option("--name", default=None, help="Name of the probe DaemonSet")
@click.option("--image", default=None, help="Probe container image (needs sh and ping)")
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Number of pings running at the same time",
)
@click.option(
    "--ready-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for the DaemonSet to become ready (default: no limit)",
)
@click.option(
    "--network-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for all pods to get an address (default: no limit)",
)
@click.option(
    "--probe-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds allowed for a single ping",
)
def main(
    kubeconfig: Optional[str],
    show_version: bool,
    reuse: bool,
    cleanup: bool,
    config_path: Optional[str],
    namespace: Optional[str],
    name: Optional[str],
    image: Optional[str],
    concurrency: Optional[int],
    ready_timeout: Optional[float],
    network_timeout: Optional[float],
    probe_timeout: Optional[float],
):
    """Test the overlay network of a Kubernetes cluster.

    Requires a working ~/.kube/config, a KUBECONFIG environment variable
    or --kubeconfig pointing to a working kubeconfig file.
    """
    if show_version:
        click.echo(f"version {get_version()}")
        sys.exit(0)

    try:
        cfg = load_config(
            config_path,
            overrides={
                "kubeconfig": kubeconfig,
                "reuse": reuse,
                "cleanup": cleanup,
                "namespace": namespace,
                "name": name,
                "image": image,
                "concurrency": concurrency,
                "ready_timeout": ready_timeout,
                "network_timeout": network_timeout,
                "probe_timeout": probe_timeout,
            },
        )
        if not cfg.kubeconfig:
            cfg = replace(cfg, kubeconfig=get_kubeconfig_path())
        run_overlay_test(cfg)
    except (OverlayTestError, ApiException, HTTPError, OSError) as e:
        click.echo(f"Error: {_format_error(e)}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
