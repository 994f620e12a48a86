import pytest

from spectral_indices.core import engine
from spectral_indices.core.config import ComputeConfig


class FakeClient:
    """Client whose scheduler drains after a fixed number of polls."""

    def __init__(self, pending=(3, 1, 0)):
        self.pending = list(pending)
        self.closed = False
        self.dashboard_link = "http://localhost:8787/status"

    def run_on_scheduler(self, function):
        return self.pending.pop(0)

    def close(self):
        self.closed = True


class FakeCluster:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False

    def close(self):
        self.closed = True


def test_wait_for_idle_polls_until_empty(monkeypatch):
    monkeypatch.setattr(engine.time, "sleep", lambda seconds: None)
    client = FakeClient()

    engine.wait_for_idle(client, poll_seconds=0)

    assert client.pending == []


def test_remote_scheduler_is_not_drained(monkeypatch):
    client = FakeClient(pending=())
    monkeypatch.setattr(engine.dask.distributed, "Client", lambda address: client)

    with engine.setup_cluster(ComputeConfig(scheduler_address="tcp://scheduler:8786")) as connected:
        assert connected is client

    assert client.closed


def test_local_cluster_is_drained_and_closed(monkeypatch):
    client = FakeClient(pending=(2, 0))
    clusters = []

    def make_cluster(**kwargs):
        clusters.append(FakeCluster(**kwargs))
        return clusters[-1]

    monkeypatch.setattr(engine.time, "sleep", lambda seconds: None)
    monkeypatch.setattr(engine.dask.distributed, "LocalCluster", make_cluster)
    monkeypatch.setattr(engine.dask.distributed, "Client", lambda cluster: client)

    with engine.setup_cluster(ComputeConfig(n_workers=2, threads_per_worker=1, memory_per_worker="1GB")):
        pass

    assert client.pending == []
    assert client.closed
    assert clusters[0].closed
    assert clusters[0].kwargs == {"n_workers": 2, "threads_per_worker": 1, "memory_limit": "1GB"}


def test_client_closed_when_body_raises(monkeypatch):
    client = FakeClient(pending=())
    monkeypatch.setattr(engine.dask.distributed, "Client", lambda address: client)

    with pytest.raises(RuntimeError):
        with engine.setup_cluster(ComputeConfig(scheduler_address="tcp://scheduler:8786")):
            raise RuntimeError("submission failed")

    assert client.closed
