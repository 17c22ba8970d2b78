"""Probe adapters: one raw platform query each, reshaped into the response schema.

A probe never raises. ``fetch`` returns a :class:`ProbeResult` holding either
the normalised entity or the :class:`ProbeFailure` that replaced it, and the
failure is logged here so callers only have to unwrap.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .derived import (
    container_cpu_percent,
    container_memory_usage,
    memory_active_percent,
    memory_used_percent,
    percent,
    storage_used_percent,
    sum_field,
)
from .errors import ProbeFailure, ProbeResult
from .models import (
    ContainerEntry,
    ContainerStats,
    CpuSnapshot,
    DiskEntry,
    MemorySnapshot,
    MountEntry,
    OsInfo,
    PortMapping,
    ServiceEntry,
    StorageSnapshot,
)

logger = logging.getLogger(__name__)


class Probe(ABC):
    """Base adapter. Subclasses implement ``query`` and ``normalize``."""

    name = "probe"

    def __init__(self, platform: Any) -> None:
        self.platform = platform

    def fetch(self, **params: Any) -> ProbeResult:
        try:
            raw = self.query(**params)
            value = self.normalize(raw)
        except ProbeFailure as failure:
            return self._failed(failure)
        except Exception as exc:  # pylint: disable=broad-except
            return self._failed(ProbeFailure(self.name, str(exc) or exc.__class__.__name__))
        return ProbeResult.success(value)

    @abstractmethod
    def query(self, **params: Any) -> Any:
        """Issue the raw platform query."""

    @abstractmethod
    def normalize(self, raw: Any) -> Any:
        """Reshape the raw result into a response model."""

    def require(self, raw: Any, key: str) -> Any:
        """Return ``raw[key]`` or fail the probe when the raw result lacks it."""
        if not isinstance(raw, Mapping):
            raise ProbeFailure(self.name, f"expected a mapping, got {type(raw).__name__}")
        if raw.get(key) is None:
            raise ProbeFailure(self.name, f"missing field {key!r}")
        return raw[key]

    def _failed(self, failure: ProbeFailure) -> ProbeResult:
        logger.warning("Error getting %s data: %s", self.name, failure.message)
        return ProbeResult.failed(failure)


class OsProbe(Probe):
    name = "os"

    def query(self) -> Dict[str, Any]:
        return self.platform.get_os_info()

    def normalize(self, raw: Mapping[str, Any]) -> OsInfo:
        system = self.require(raw, "system")
        distribution = raw.get("distribution") or {}
        return OsInfo(
            platform=str(system).lower() or None,
            distro=distribution.get("name"),
            release=distribution.get("version"),
            codename=distribution.get("codename"),
            kernel=raw.get("release") or None,
            arch=raw.get("machine") or None,
            hostname=raw.get("node") or None,
        )


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, float(value)))


class CpuProbe(Probe):
    name = "cpu"

    def query(self) -> Dict[str, Any]:
        return self.platform.get_cpu_load()

    def normalize(self, raw: Mapping[str, Any]) -> CpuSnapshot:
        cpus = self.require(raw, "cpus")
        if not cpus:
            raise ProbeFailure(self.name, "no CPU times reported")

        cores = [_clamp_percent(100.0 - times["idle"]) for times in cpus]
        count = len(cpus)

        avg_load = None
        loadavg = raw.get("loadavg")
        if loadavg:
            avg_load = percent(loadavg[0], raw.get("logical_cores") or count)

        return CpuSnapshot(
            load=sum(cores) / count,
            avg_load=avg_load,
            user_load=sum_field(cpus, "user") / count,
            system_load=sum_field(cpus, "system") / count,
            cores=cores,
        )


class StorageProbe(Probe):
    name = "storage"

    def query(self) -> List[Dict[str, Any]]:
        return self.platform.get_filesystem_sizes()

    def normalize(self, raw: Sequence[Mapping[str, Any]]) -> StorageSnapshot:
        if not isinstance(raw, (list, tuple)):
            raise ProbeFailure(self.name, f"expected a list of filesystems, got {type(raw).__name__}")

        disks = []
        for fs in raw:
            size = self.require(fs, "total")
            used = self.require(fs, "used")
            use = fs.get("percent")
            disks.append(
                DiskEntry(
                    mount=self.require(fs, "mountpoint"),
                    type=fs.get("fstype") or None,
                    size=size,
                    used=used,
                    available=self.require(fs, "free"),
                    use=use if use is not None else storage_used_percent(size, used),
                )
            )

        total = sum_field(disks, "size")
        used = sum_field(disks, "used")
        return StorageSnapshot(
            total=total,
            used=used,
            used_percent=storage_used_percent(total, used),
            disks=disks,
        )


class MemoryProbe(Probe):
    name = "memory"

    def query(self) -> Dict[str, Any]:
        return self.platform.get_memory_stats()

    def normalize(self, raw: Mapping[str, Any]) -> MemorySnapshot:
        total = self.require(raw, "total")
        available = self.require(raw, "available")
        swap = self.require(raw, "swap")
        active = raw.get("active")

        cache_parts = [raw[key] for key in ("buffers", "cached") if raw.get(key) is not None]
        buff_cache = sum(cache_parts) if cache_parts else None

        return MemorySnapshot(
            total=total,
            free=self.require(raw, "free"),
            used=total - available,
            active=active,
            available=available,
            buff_cache=buff_cache,
            swap_total=self.require(swap, "total"),
            swap_used=self.require(swap, "used"),
            swap_free=self.require(swap, "free"),
            used_percent=memory_used_percent(total, available),
            active_percent=memory_active_percent(total, active),
        )


class ServicesProbe(Probe):
    """Running state and resource usage of named services.

    ``names=None`` falls back to the configured list; an empty sequence is a
    valid request and yields an empty list.
    """

    name = "services"

    def __init__(self, platform: Any, default_names: Iterable[str] = ()) -> None:
        super().__init__(platform)
        self.default_names = tuple(default_names)

    def query(self, names: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        requested = self.default_names if names is None else tuple(names)
        return self.platform.get_services(requested)

    def normalize(self, raw: Sequence[Mapping[str, Any]]) -> List[ServiceEntry]:
        services = []
        for service in raw:
            processes = service.get("processes") or []
            services.append(
                ServiceEntry(
                    name=self.require(service, "name"),
                    running=bool(processes),
                    cpu=sum_field(processes, "cpu_percent"),
                    mem=sum_field(processes, "memory_percent"),
                    pids=[process["pid"] for process in processes],
                )
            )
        return services


def _container_name(names: Optional[Sequence[str]]) -> Optional[str]:
    if not names:
        return None
    return names[0].lstrip("/") or None


def _port_mappings(ports: Optional[Sequence[Mapping[str, Any]]]) -> List[PortMapping]:
    return [
        PortMapping(
            ip=port.get("IP"),
            private_port=port.get("PrivatePort"),
            public_port=port.get("PublicPort"),
            protocol=port.get("Type"),
        )
        for port in ports or []
    ]


def _mount_entries(mounts: Optional[Sequence[Mapping[str, Any]]]) -> List[MountEntry]:
    return [
        MountEntry(
            type=mount.get("Type"),
            source=mount.get("Source"),
            destination=mount.get("Destination"),
            mode=mount.get("Mode") or None,
            read_write=bool(mount.get("RW")),
        )
        for mount in mounts or []
    ]


def _container_stats(stats: Optional[Mapping[str, Any]]) -> Optional[ContainerStats]:
    if not stats:
        return None
    usage = container_memory_usage(stats)
    limit = (stats.get("memory_stats") or {}).get("limit")
    return ContainerStats(
        cpu_percent=container_cpu_percent(stats),
        memory_percent=percent(usage, limit) if usage is not None and limit else None,
        memory_usage_bytes=usage,
        memory_limit_bytes=limit,
        pid_count=(stats.get("pids_stats") or {}).get("current"),
    )


class ContainersProbe(Probe):
    """Container list as reported by the engine's list endpoint, without stats."""

    name = "containers"

    def query(self) -> List[Dict[str, Any]]:
        return self.platform.get_containers_brief()

    def normalize(self, raw: Sequence[Mapping[str, Any]]) -> List[ContainerEntry]:
        return [
            ContainerEntry(
                id=self.require(container, "Id"),
                name=_container_name(container.get("Names")),
                image=container.get("Image"),
                state=container.get("State"),
                ports=_port_mappings(container.get("Ports")),
                mounts=_mount_entries(container.get("Mounts")),
            )
            for container in raw
        ]


class ContainerInventoryProbe(Probe):
    """Full container inventory: inspect details plus a stats sample per running container."""

    name = "docker"

    def query(self) -> List[Dict[str, Any]]:
        return self.platform.get_container_inventory()

    def normalize(self, raw: Sequence[Mapping[str, Any]]) -> List[ContainerEntry]:
        containers = []
        for entry in raw:
            summary = self.require(entry, "summary")
            details = entry.get("inspect") or {}
            state = details.get("State") or {}
            config = details.get("Config") or {}
            containers.append(
                ContainerEntry(
                    id=details.get("Id") or self.require(summary, "Id"),
                    name=(details.get("Name") or "").lstrip("/") or _container_name(summary.get("Names")),
                    image=config.get("Image") or summary.get("Image"),
                    state=state.get("Status") or summary.get("State"),
                    ports=_port_mappings(summary.get("Ports")),
                    platform=details.get("Platform") or None,
                    started_at=state.get("StartedAt") or None,
                    restart_count=details.get("RestartCount") or 0,
                    mounts=_mount_entries(details.get("Mounts") or summary.get("Mounts")),
                    stats=_container_stats(entry.get("stats")),
                )
            )
        return containers
