"""Normalised response schema for the snapshot endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Schema(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class OsInfo(_Schema):
    platform: Optional[str] = None
    distro: Optional[str] = None
    release: Optional[str] = None
    codename: Optional[str] = None
    kernel: Optional[str] = None
    arch: Optional[str] = None
    hostname: Optional[str] = None


class CpuSnapshot(_Schema):
    load: float = Field(..., ge=0, le=100)
    avg_load: Optional[float] = None
    user_load: Optional[float] = None
    system_load: Optional[float] = None
    cores: List[float] = Field(default_factory=list)


class DiskEntry(_Schema):
    mount: str
    type: Optional[str] = None
    size: int = Field(..., ge=0)
    used: int = Field(..., ge=0)
    available: int = Field(..., ge=0)
    use: Optional[float] = None


class StorageSnapshot(_Schema):
    total: int
    used: int
    used_percent: Optional[float] = None
    disks: List[DiskEntry] = Field(default_factory=list)


class MemorySnapshot(_Schema):
    """Memory counters in bytes.

    ``used_percent`` is ``(total - available) / total`` and is the canonical
    figure; ``active_percent`` is ``active / total`` for consumers that still
    expect the active-memory ratio.
    """

    total: int
    free: int
    used: int
    active: Optional[int] = None
    available: int
    buff_cache: Optional[int] = None
    swap_total: int
    swap_used: int
    swap_free: int
    used_percent: Optional[float] = None
    active_percent: Optional[float] = None


class ServiceEntry(_Schema):
    name: str
    running: bool
    cpu: float = 0.0
    mem: float = 0.0
    pids: List[int] = Field(default_factory=list)


class PortMapping(_Schema):
    ip: Optional[str] = None
    private_port: Optional[int] = None
    public_port: Optional[int] = None
    protocol: Optional[str] = None


class MountEntry(_Schema):
    type: Optional[str] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    mode: Optional[str] = None
    read_write: bool = False


class ContainerStats(_Schema):
    cpu_percent: Optional[float] = None
    memory_percent: Optional[float] = None
    memory_usage_bytes: Optional[int] = None
    memory_limit_bytes: Optional[int] = None
    pid_count: Optional[int] = None


class ContainerEntry(_Schema):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None
    state: Optional[str] = None
    ports: List[PortMapping] = Field(default_factory=list)
    platform: Optional[str] = None
    started_at: Optional[str] = None
    restart_count: int = Field(0, ge=0)
    mounts: List[MountEntry] = Field(default_factory=list)
    stats: Optional[ContainerStats] = None


class Snapshot(_Schema):
    os: Optional[OsInfo] = None
    cpu: Optional[CpuSnapshot] = None
    storage: Optional[StorageSnapshot] = None
    memory: Optional[MemorySnapshot] = None
    services: Optional[List[ServiceEntry]] = None
    containers: Optional[List[ContainerEntry]] = None


class ErrorEnvelope(_Schema):
    error: bool = True
    message: str
