"""Kubernetes client construction."""

import os
from pathlib import Path

from kubernetes import client, config

from overlaytest.errors import ClusterConnectionError


def get_kubeconfig_path() -> str:
    """Return the default kubeconfig path.

    Priority: ``KUBECONFIG`` environment variable, ``~/.kube/config``,
    then an empty string.
    """
    env_path = os.environ.get("KUBECONFIG")
    if env_path:
        return env_path
    try:
        home = Path.home()
    except RuntimeError:
        return ""
    return str(home / ".kube" / "config")


def new_kubernetes_client(kubeconfig_path: str) -> client.ApiClient:
    """Build an API client from a kubeconfig file.

    With an empty path the in-cluster service account configuration is
    tried instead.

    Args:
        kubeconfig_path: Path to the kubeconfig file, may be empty.

    Returns:
        A configured ApiClient.

    Raises:
        ClusterConnectionError: If no usable configuration is found.
    """
    if not kubeconfig_path:
        configuration = client.Configuration()
        try:
            config.load_incluster_config(client_configuration=configuration)
        except config.ConfigException as e:
            raise ClusterConnectionError(
                "failed to create kubernetes client: no kubeconfig path "
                f"and no in-cluster configuration ({e})"
            ) from e
        return client.ApiClient(configuration)

    if not os.path.isfile(kubeconfig_path):
        raise ClusterConnectionError(
            f"failed to create kubernetes client: kubeconfig not found: {kubeconfig_path}"
        )

    try:
        return config.new_client_from_config(config_file=kubeconfig_path)
    except Exception as e:
        raise ClusterConnectionError(
            f"failed to create kubernetes client: {e}",
            {"kubeconfig": kubeconfig_path},
        ) from e
