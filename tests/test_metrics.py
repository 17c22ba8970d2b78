from __future__ import annotations

import time
from collections import namedtuple

import pytest

from metrics_agent import metrics
from metrics_agent.config import Settings
from metrics_agent.metrics import HostPlatform, _read_os_release

Partition = namedtuple("Partition", "device mountpoint fstype opts")
Usage = namedtuple("Usage", "total used free percent")
CpuTimes = namedtuple("CpuTimes", "user system")


class FakeProcess:
    def __init__(self, **info):
        self.info = info


class FakeDocker:
    def __init__(self, containers):
        self.containers = containers
        self.stats_requested = []

    def list_containers(self, all=True):
        return self.containers

    def inspect_container(self, container_id):
        return {"Id": container_id}

    def container_stats(self, container_id):
        self.stats_requested.append(container_id)
        return {"pids_stats": {"current": 1}}


def test_read_os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text('# comment\nNAME="Debian GNU/Linux"\nVERSION_ID="12"\nVERSION_CODENAME=bookworm\n')
    assert _read_os_release(path) == {
        "NAME": "Debian GNU/Linux",
        "VERSION_ID": "12",
        "VERSION_CODENAME": "bookworm",
    }
    assert _read_os_release(tmp_path / "missing") == {}


def test_filesystem_sizes_skip_unreadable_mounts(monkeypatch):
    partitions = [
        Partition("/dev/sda1", "/", "ext4", "rw"),
        Partition("proc", "/proc", "", "rw"),
        Partition("/dev/sdb1", "/secret", "xfs", "rw"),
    ]

    def fake_usage(path):
        if path == "/secret":
            raise PermissionError(path)
        return Usage(100, 40, 60, 40.0)

    monkeypatch.setattr(metrics.psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(metrics.psutil, "disk_usage", fake_usage)

    assert HostPlatform(Settings()).get_filesystem_sizes() == [
        {"total": 100, "used": 40, "free": 60, "percent": 40.0,
         "device": "/dev/sda1", "mountpoint": "/", "fstype": "ext4"},
    ]


def test_services_match_process_names(monkeypatch):
    now = time.time()
    processes = [
        FakeProcess(pid=10, name="nginx", cpu_times=CpuTimes(5.0, 5.0), create_time=now - 100, memory_percent=1.0),
        FakeProcess(pid=11, name="mysqld", cpu_times=CpuTimes(1.0, 1.0), create_time=now - 100, memory_percent=2.0),
        FakeProcess(pid=12, name="bash", cpu_times=None, create_time=None, memory_percent=None),
    ]
    monkeypatch.setattr(metrics.psutil, "process_iter", lambda attrs: iter(processes))

    services = HostPlatform(Settings()).get_services(["nginx", "mysql", "redis"])
    assert [service["name"] for service in services] == ["nginx", "mysql", "redis"]
    assert services[0]["processes"][0]["cpu_percent"] == pytest.approx(10.0, rel=1e-2)
    assert [p["pid"] for p in services[1]["processes"]] == [11]
    assert services[2]["processes"] == []


def test_no_services_requested_skips_process_scan(monkeypatch):
    def boom(attrs):
        raise AssertionError("process table should not be read")

    monkeypatch.setattr(metrics.psutil, "process_iter", boom)
    assert HostPlatform(Settings()).get_services([]) == []


def test_container_inventory_samples_running_containers_only():
    docker = FakeDocker([{"Id": "a", "State": "running"}, {"Id": "b", "State": "exited"}])
    inventory = HostPlatform(Settings(), docker=docker).get_container_inventory()
    assert [entry["inspect"]["Id"] for entry in inventory] == ["a", "b"]
    assert inventory[1]["stats"] is None
    assert docker.stats_requested == ["a"]


def test_docker_client_built_from_settings():
    platform = HostPlatform(Settings(docker_host="tcp://10.1.1.1:2375"))
    assert platform.docker.host == "tcp://10.1.1.1:2375"


class SlowStatsDocker(FakeDocker):
    def __init__(self, containers, delay):
        super().__init__(containers)
        self.delay = delay

    def container_stats(self, container_id):
        time.sleep(self.delay)
        return super().container_stats(container_id)


def test_container_stats_sampled_concurrently_in_order():
    containers = [{"Id": f"c{i}", "State": "running"} for i in range(6)]
    docker = SlowStatsDocker(containers, delay=0.4)
    started = time.monotonic()
    inventory = HostPlatform(Settings(), docker=docker).get_container_inventory()
    elapsed = time.monotonic() - started
    assert [entry["inspect"]["Id"] for entry in inventory] == [f"c{i}" for i in range(6)]
    assert all(entry["stats"] == {"pids_stats": {"current": 1}} for entry in inventory)
    # Sequential sampling would take 6 * 0.4s.
    assert elapsed < 1.5


def test_empty_container_list():
    assert HostPlatform(Settings(), docker=FakeDocker([])).get_container_inventory() == []
