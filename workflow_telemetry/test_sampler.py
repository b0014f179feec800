"""Pytest tests for the default sampler and its control plane."""

import threading
from collections import namedtuple

import psutil
import pytest

from workflow_telemetry import sampler
from workflow_telemetry.client import StatServerClient
from workflow_telemetry.config import STAT_FREQ_ENV
from workflow_telemetry.exceptions import StatServerError
from workflow_telemetry.models import MetricFamily

_CpuTimes = namedtuple("_CpuTimes", "user system idle")
_Mem = namedtuple("_Mem", "total used available active")
_Net = namedtuple("_Net", "bytes_recv bytes_sent")
_Disk = namedtuple("_Disk", "read_bytes write_bytes")
_Usage = namedtuple("_Usage", "total used free percent")

MB = 1024 * 1024


@pytest.fixture
def fake_psutil(monkeypatch):
    """Deterministic counters: network/disk grow by 1 MB / 2 MB per sample."""
    state = {"n": 0}

    def _net():
        state["n"] += 1
        return _Net(bytes_recv=state["n"] * MB, bytes_sent=state["n"] * 2 * MB)

    def _disk():
        return _Disk(read_bytes=state["n"] * MB, write_bytes=state["n"] * 2 * MB)

    monkeypatch.setattr(psutil, "cpu_times_percent", lambda interval=None: _CpuTimes(12.5, 2.5, 85.0))
    monkeypatch.setattr(psutil, "virtual_memory", lambda: _Mem(8 * 1024 * MB, 0, 6 * 1024 * MB, 1024 * MB))
    monkeypatch.setattr(psutil, "net_io_counters", _net)
    monkeypatch.setattr(psutil, "disk_io_counters", _disk)
    monkeypatch.setattr(psutil, "disk_usage", lambda path: _Usage(100 * MB, 40 * MB, 60 * MB, 40.0))
    return state


@pytest.fixture
def running_sampler(fake_psutil):
    s = sampler.Sampler(store=sampler.StatStore())
    server = sampler.make_server("127.0.0.1", 0, s)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield s, f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 5.0),
        ("", 5.0),
        ("30000", 30.0),
        ("250", 0.25),
        ("fast", 5.0),
        ("-1", 5.0),
    ],
)
def test_interval_from_env(value, expected):
    env = {} if value is None else {STAT_FREQ_ENV: value}
    assert sampler.interval_from_env(env) == expected


def test_first_sample_has_no_io_delta(fake_psutil):
    s = sampler.Sampler(store=sampler.StatStore())
    out = s.sample()

    assert out[MetricFamily.CPU]["userLoad"] == 12.5
    assert out[MetricFamily.CPU]["systemLoad"] == 2.5
    assert out[MetricFamily.MEMORY]["activeMemoryMb"] == 1024.0
    assert out[MetricFamily.MEMORY]["availableMemoryMb"] == 6144.0
    assert "rxMb" not in out[MetricFamily.NETWORK]
    assert "wxMb" not in out[MetricFamily.DISK]
    assert out[MetricFamily.DISK_SIZE] == {
        "time": out[MetricFamily.CPU]["time"],
        "availableSizeMb": 60.0,
        "usedSizeMb": 40.0,
    }


def test_second_sample_reports_deltas_in_mb(fake_psutil):
    s = sampler.Sampler(store=sampler.StatStore())
    s.sample()
    out = s.sample()

    assert out[MetricFamily.NETWORK]["rxMb"] == 1.0
    assert out[MetricFamily.NETWORK]["txMb"] == 2.0
    assert out[MetricFamily.DISK]["rxMb"] == 1.0
    assert out[MetricFamily.DISK]["wxMb"] == 2.0
    assert s.store.count() == 2


def test_memory_falls_back_to_used_without_active(fake_psutil, monkeypatch):
    _PlainMem = namedtuple("_PlainMem", "total used available")
    monkeypatch.setattr(psutil, "virtual_memory", lambda: _PlainMem(8 * MB, 3 * MB, 5 * MB))

    out = sampler.Sampler(store=sampler.StatStore()).sample()
    assert out[MetricFamily.MEMORY]["activeMemoryMb"] == 3.0


def test_control_plane_round_trip(running_sampler):
    s, url = running_sampler
    client = StatServerClient(url, timeout=5.0)

    assert client.get_cpu_stats() == []
    body = client.trigger_collect()
    assert body == {"collected": True, "samples": 1}
    client.trigger_collect()

    cpu = client.get_cpu_stats()
    assert len(cpu) == 2
    assert cpu[0]["userLoad"] == 12.5
    network = client.get_network_stats()
    assert "rxMb" not in network[0]
    assert network[1]["rxMb"] == 1.0
    assert len(client.get_stats(MetricFamily.DISK_SIZE)) == 2


def test_unknown_paths_are_404(running_sampler):
    _s, url = running_sampler
    client = StatServerClient(url, timeout=5.0)

    with pytest.raises(StatServerError) as exc_info:
        client._request("GET", "/gpu")
    assert exc_info.value.status_code == 404
    with pytest.raises(StatServerError):
        client._request("POST", "/flush")


def test_sample_loop_stops():
    calls = []

    class _Sampler:
        def sample(self):
            calls.append(1)
            if len(calls) >= 3:
                loop.request_stop()

    loop = sampler.SampleLoop(_Sampler(), 0.01)
    t = threading.Thread(target=loop.run, daemon=True)
    t.start()
    t.join(timeout=5.0)

    assert not t.is_alive()
    assert len(calls) == 3


# ============================================================================
# StatStore bound
# ============================================================================

def test_store_keeps_only_newest_samples():
    store = sampler.StatStore(max_samples=3)
    for t in range(5):
        store.append({family: {"time": t} for family in MetricFamily})

    assert store.count() == 3
    for family in MetricFamily:
        assert [s["time"] for s in store.snapshot(family)] == [2, 3, 4]


def test_store_rejects_non_positive_cap():
    with pytest.raises(ValueError):
        sampler.StatStore(max_samples=0)


def test_max_samples_flag():
    assert sampler.parse_args([]).max_samples == sampler.DEFAULT_MAX_SAMPLES
    assert sampler.parse_args(["--max-samples", "10"]).max_samples == 10
