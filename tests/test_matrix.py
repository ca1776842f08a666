"""Tests for the all-pairs connectivity matrix."""

import threading
import time
from unittest.mock import MagicMock

import pytest
from kubernetes import client

from conftest import make_pod
from overlaytest.errors import ExecSetupError, ExecTimeoutError
from overlaytest.network.executor import PodExecutor
from overlaytest.network.matrix import ConnectivityMatrix, ConnectivityResult, ProbeOutcome
from overlaytest.provisioner.pods import ProbeInstance

POD_NODES = {"overlaytest-a": "node-1", "overlaytest-b": "node-2", "overlaytest-c": "node-3"}
IP_NODES = {"10.244.0.1": "node-1", "10.244.1.1": "node-2", "10.244.2.1": "node-3"}


def _target_ip(command):
    return command[2].split()[3]


def _matrix(executor, core_api, **kwargs):
    return ConnectivityMatrix(executor, core_api, "kube-system", "app=overlaytest", **kwargs)


@pytest.fixture
def executor():
    ex = MagicMock(spec=PodExecutor)
    ex.run.return_value = 0
    return ex


class TestConnectivityMatrix:
    """Tests for ConnectivityMatrix.run."""

    def test_three_nodes_nine_checks(self, executor, core_api, capsys):
        results = _matrix(executor, core_api).run()

        assert executor.run.call_count == 9
        assert len(results) == 9
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 9
        assert all(line.endswith(("node-1", "node-2", "node-3")) for line in lines)
        assert all(r.outcome == ProbeOutcome.REACHABLE for r in results)

    def test_every_ordered_pair_including_self(self, executor, core_api):
        _matrix(executor, core_api).run()

        observed = {
            (POD_NODES[c.args[0]], IP_NODES[_target_ip(c.args[1])])
            for c in executor.run.call_args_list
        }
        nodes = ["node-1", "node-2", "node-3"]
        assert observed == {(e, d) for e in nodes for d in nodes}

    def test_direction_and_order(self, executor, core_api, capsys):
        """Outer loop is the destination address, inner loop the executing pod."""
        _matrix(executor, core_api).run()

        calls = [(c.args[0], _target_ip(c.args[1])) for c in executor.run.call_args_list]
        assert calls[:3] == [
            ("overlaytest-a", "10.244.0.1"),
            ("overlaytest-b", "10.244.0.1"),
            ("overlaytest-c", "10.244.0.1"),
        ]
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[:3] == [
            "node-1 can reach node-1",
            "node-1 can reach node-2",
            "node-1 can reach node-3",
        ]

    def test_failed_ping_reported(self, executor, core_api, capsys):
        # the pod on node-3 cannot reach anything but itself
        executor.run.side_effect = lambda pod, command, timeout: (
            1 if pod == "overlaytest-c" and _target_ip(command) != "10.244.2.1" else 0
        )

        results = _matrix(executor, core_api).run()

        out = capsys.readouterr().out
        assert "node-1 can NOT reach node-3" in out
        assert "node-2 can NOT reach node-3" in out
        assert "node-3 can reach node-3" in out
        unreachable = [r for r in results if r.outcome == ProbeOutcome.UNREACHABLE]
        assert {(r.executor.node_name, r.destination.node_name) for r in unreachable} == {
            ("node-3", "node-1"),
            ("node-3", "node-2"),
        }

    def test_setup_error_continues(self, executor, core_api, capsys):
        def run(pod, command, timeout):
            if pod == "overlaytest-b":
                raise ExecSetupError("upgrade request required")
            return 0

        executor.run.side_effect = run

        results = _matrix(executor, core_api).run()

        assert executor.run.call_count == 9
        errors = [r for r in results if r.outcome == ProbeOutcome.ERROR]
        assert len(errors) == 3
        out = capsys.readouterr().out
        assert out.count("error while creating Executor: upgrade request required") == 3
        assert len(out.strip().splitlines()) == 9

    def test_timeout_recorded_as_error(self, executor, core_api, capsys):
        executor.run.side_effect = ExecTimeoutError("command did not finish within 1s")

        results = _matrix(executor, core_api, probe_timeout=1).run()

        assert all(r.outcome == ProbeOutcome.ERROR for r in results)
        out = capsys.readouterr().out
        assert out.count("error while creating Executor: command did not finish within 1s") == 9
        for call in executor.run.call_args_list:
            assert call.kwargs["timeout"] == 1

    def test_pods_are_listed_fresh(self, executor, core_api):
        matrix = _matrix(executor, core_api)
        matrix.run()
        core_api.list_namespaced_pod.return_value = client.V1PodList(
            items=[make_pod("overlaytest-a", "node-1", "10.244.0.1")]
        )
        results = matrix.run()

        assert core_api.list_namespaced_pod.call_count == 2
        assert len(results) == 1

    def test_no_pods(self, executor, core_api, capsys):
        core_api.list_namespaced_pod.return_value = client.V1PodList(items=[])

        assert _matrix(executor, core_api).run() == []
        executor.run.assert_not_called()
        assert capsys.readouterr().out == ""

    def test_concurrent_results_keep_order(self, executor, core_api, capsys):
        in_flight = []
        peak = []
        lock = threading.Lock()

        def run(pod, command, timeout):
            with lock:
                in_flight.append(pod)
                peak.append(len(in_flight))
            # later pods finish first
            time.sleep({"overlaytest-a": 0.03, "overlaytest-b": 0.02}.get(pod, 0.0))
            with lock:
                in_flight.remove(pod)
            return 0

        executor.run.side_effect = run

        concurrent = _matrix(executor, core_api, concurrency=3).run()
        concurrent_lines = capsys.readouterr().out

        executor.run.side_effect = lambda pod, command, timeout: 0
        sequential = _matrix(executor, core_api).run()
        sequential_lines = capsys.readouterr().out

        assert concurrent == sequential
        assert concurrent_lines == sequential_lines
        assert max(peak) <= 3

    def test_invalid_concurrency(self, executor, core_api):
        with pytest.raises(ValueError):
            _matrix(executor, core_api, concurrency=0)


class TestConnectivityResult:
    """Tests for the console line format."""

    def test_reachable_line(self):
        result = ConnectivityResult(
            ProbeInstance("b", "node-2"), ProbeInstance("a", "node-1"), ProbeOutcome.REACHABLE
        )
        assert result.describe() == "node-1 can reach node-2"

    def test_unreachable_line(self):
        result = ConnectivityResult(
            ProbeInstance("b", "node-2"), ProbeInstance("a", "node-1"), ProbeOutcome.UNREACHABLE
        )
        assert result.describe() == "node-1 can NOT reach node-2"

    def test_error_line(self):
        result = ConnectivityResult(
            ProbeInstance("b", "node-2"),
            ProbeInstance("a", "node-1"),
            ProbeOutcome.ERROR,
            error="error while creating Executor: refused",
        )
        assert result.describe() == "error while creating Executor: refused"
