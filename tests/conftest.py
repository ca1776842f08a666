"""Pytest configuration and fixtures."""

from unittest.mock import MagicMock

import pytest
from kubernetes import client


def make_pod(name, node_name="", pod_ip=None):
    """Build a V1Pod the way the API returns it."""
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, labels={"app": "overlaytest"}),
        spec=client.V1PodSpec(containers=[], node_name=node_name or None),
        status=client.V1PodStatus(pod_ip=pod_ip),
    )


def make_daemonset(name="overlaytest", number_ready=0, with_status=True):
    """Build a V1DaemonSet with the required spec and an optional status."""
    status = None
    if with_status:
        status = client.V1DaemonSetStatus(
            current_number_scheduled=3,
            desired_number_scheduled=3,
            number_misscheduled=0,
            number_ready=number_ready,
        )
    return client.V1DaemonSet(
        metadata=client.V1ObjectMeta(name=name),
        spec=client.V1DaemonSetSpec(
            selector=client.V1LabelSelector(match_labels={"app": name}),
            template=client.V1PodTemplateSpec(),
        ),
        status=status,
    )


@pytest.fixture
def three_pods():
    """Three probe pods on three nodes, addresses assigned."""
    return [
        make_pod("overlaytest-a", "node-1", "10.244.0.1"),
        make_pod("overlaytest-b", "node-2", "10.244.1.1"),
        make_pod("overlaytest-c", "node-3", "10.244.2.1"),
    ]


@pytest.fixture
def core_api(three_pods):
    """CoreV1Api stand-in listing and reading the three probe pods."""
    api = MagicMock(spec=client.CoreV1Api)
    api.list_namespaced_pod.return_value = client.V1PodList(items=three_pods)
    by_name = {pod.metadata.name: pod for pod in three_pods}
    api.read_namespaced_pod.side_effect = lambda name, namespace: by_name[name]
    return api


@pytest.fixture
def apps_api():
    """AppsV1Api stand-in whose DaemonSet is immediately ready."""
    api = MagicMock(spec=client.AppsV1Api)
    api.create_namespaced_daemon_set.return_value = make_daemonset()
    api.read_namespaced_daemon_set.return_value = make_daemonset(number_ready=3)
    return api


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables that change configuration."""
    for var in (
        "APP_VERSION",
        "KUBECONFIG",
        "OVERLAYTEST_NAMESPACE",
        "OVERLAYTEST_NAME",
        "OVERLAYTEST_IMAGE",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
