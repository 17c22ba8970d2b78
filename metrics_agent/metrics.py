"""Raw host queries backing the probe adapters.

``HostPlatform`` is the only place that talks to the operating system or the
container engine. Every method issues its query and returns the raw result
(psutil-style field names, Docker API payloads) without reshaping it; errors
are raised to the caller.
"""
from __future__ import annotations

import contextlib
import os
import platform
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import psutil

from .config import Settings
from .docker_engine import DockerEngineClient

OS_RELEASE_PATH = Path("/etc/os-release")
CONTAINER_WORKERS = 8


def _as_dict(stats_obj: Any) -> Dict[str, Any]:
    """Normalize psutil namedtuple output to plain dicts."""
    if hasattr(stats_obj, "_asdict"):
        return dict(stats_obj._asdict())
    return dict(stats_obj)


def _read_os_release(path: Path = OS_RELEASE_PATH) -> Dict[str, str]:
    release_data: Dict[str, str] = {}
    with contextlib.suppress(OSError):
        content = path.read_text(encoding="utf-8", errors="ignore")
        for line in content.splitlines():
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            release_data[key.strip().upper()] = value.strip().strip('"')
    return release_data


def _distribution(system_name: str) -> Dict[str, Optional[str]]:
    if system_name == "Darwin":
        return {"name": "macOS", "version": platform.mac_ver()[0] or None, "codename": None}
    if system_name == "Windows":
        release, version, _, _ = platform.win32_ver()
        return {"name": f"Windows {release}".strip(), "version": version or None, "codename": None}

    release_data = _read_os_release()
    return {
        "name": release_data.get("NAME") or None,
        "version": release_data.get("VERSION_ID") or release_data.get("VERSION") or None,
        "codename": release_data.get("VERSION_CODENAME") or None,
    }


def _process_cpu_percent(cpu_times: Any, create_time: Optional[float], now: float) -> float:
    """Lifetime CPU usage of a process, the way ``ps -o pcpu`` reports it."""
    if cpu_times is None or not create_time:
        return 0.0
    elapsed = now - create_time
    if elapsed <= 0:
        return 0.0
    return (cpu_times.user + cpu_times.system) / elapsed * 100


def _matches_service(process_name: str, service: str) -> bool:
    process_name = process_name.lower()
    service = service.lower()
    return process_name == service or process_name.startswith(service)


class HostPlatform:
    """psutil and Docker Engine backed implementation of the platform layer."""

    def __init__(self, settings: Settings, docker: Optional[DockerEngineClient] = None) -> None:
        self.settings = settings
        self._docker = docker

    @property
    def docker(self) -> DockerEngineClient:
        # Built lazily so an invalid DOCKER_HOST only breaks the container probes.
        if self._docker is None:
            self._docker = DockerEngineClient(self.settings.docker_host)
        return self._docker

    def get_os_info(self) -> Dict[str, Any]:
        uname = platform.uname()
        return {
            "system": uname.system,
            "node": uname.node,
            "release": uname.release,
            "machine": uname.machine,
            "distribution": _distribution(uname.system),
        }

    def get_cpu_load(self) -> Dict[str, Any]:
        per_cpu = psutil.cpu_times_percent(interval=self.settings.cpu_sample_interval, percpu=True)
        loadavg = None
        with contextlib.suppress(AttributeError, OSError):
            loadavg = os.getloadavg()
        return {
            "cpus": [_as_dict(times) for times in per_cpu],
            "loadavg": loadavg,
            "logical_cores": psutil.cpu_count(logical=True) or len(per_cpu),
        }

    def get_filesystem_sizes(self) -> List[Dict[str, Any]]:
        filesystems = []
        for partition in psutil.disk_partitions(all=False):
            if not partition.fstype:
                continue
            try:
                usage = _as_dict(psutil.disk_usage(partition.mountpoint))
            except (PermissionError, FileNotFoundError, OSError):
                # Unreadable or vanished mounts are not part of the report.
                continue
            usage.update(
                device=partition.device,
                mountpoint=partition.mountpoint,
                fstype=partition.fstype,
            )
            filesystems.append(usage)
        return filesystems

    def get_memory_stats(self) -> Dict[str, Any]:
        memory = _as_dict(psutil.virtual_memory())
        memory["swap"] = _as_dict(psutil.swap_memory())
        return memory

    def get_services(self, names: Iterable[str]) -> List[Dict[str, Any]]:
        requested = list(names)
        if not requested:
            return []

        now = time.time()
        matches: Dict[str, List[Dict[str, Any]]] = {name: [] for name in requested}
        for proc in psutil.process_iter(["pid", "name", "cpu_times", "create_time", "memory_percent"]):
            info = proc.info
            process_name = info.get("name") or ""
            for name, found in matches.items():
                if _matches_service(process_name, name):
                    found.append(
                        {
                            "pid": info["pid"],
                            "name": process_name,
                            "cpu_percent": _process_cpu_percent(
                                info.get("cpu_times"), info.get("create_time"), now
                            ),
                            "memory_percent": info.get("memory_percent") or 0.0,
                        }
                    )

        return [{"name": name, "processes": matches[name]} for name in requested]

    def get_containers_brief(self) -> List[Dict[str, Any]]:
        return self.docker.list_containers(all=True)

    def get_container_inventory(self) -> List[Dict[str, Any]]:
        summaries = self.docker.list_containers(all=True)
        if not summaries:
            return []
        # Each one-shot stats call blocks until the engine has a second sample.
        with ThreadPoolExecutor(max_workers=min(CONTAINER_WORKERS, len(summaries))) as pool:
            return list(pool.map(self._container_details, summaries))

    def _container_details(self, summary: Dict[str, Any]) -> Dict[str, Any]:
        container_id = summary["Id"]
        details = self.docker.inspect_container(container_id)
        stats = None
        if summary.get("State") == "running":
            stats = self.docker.container_stats(container_id)
        return {"summary": summary, "inspect": details, "stats": stats}
