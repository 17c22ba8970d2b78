"""Derived metrics computed from normalised probe output.

Everything here is pure: no I/O, no logging, deterministic for a given input.
Percentages are returned as 0-100 floats, or ``None`` when the ratio is
undefined, so that no ``NaN`` or ``inf`` ever reaches the JSON encoder.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Optional, Union

Number = Union[int, float]


def percent(part: Number, whole: Number) -> Optional[float]:
    """Return ``part / whole * 100`` or ``None`` when it is undefined."""
    if not whole:
        return None
    value = part / whole * 100
    if not math.isfinite(value):
        return None
    return value


def storage_used_percent(total: Number, used: Number) -> Optional[float]:
    return percent(used, total)


def memory_used_percent(total: Number, available: Number) -> Optional[float]:
    """Share of memory not available to new processes: ``(total - available) / total``."""
    return percent(total - available, total)


def memory_active_percent(total: Number, active: Optional[Number]) -> Optional[float]:
    """Share of memory in the kernel's active list: ``active / total``."""
    if active is None:
        return None
    return percent(active, total)


def sum_field(entries: Iterable[Any], field: str) -> Number:
    """Sum ``field`` across entries; works for mappings and attribute objects."""
    total: Number = 0
    for entry in entries:
        value = entry[field] if isinstance(entry, dict) else getattr(entry, field)
        total += value
    return total


def container_cpu_percent(stats: dict) -> Optional[float]:
    """CPU usage of a container from one Docker stats sample.

    Same formula as ``docker stats``: the container's share of the host CPU
    time elapsed between the two readings, scaled by the online CPU count.
    """
    cpu = stats.get("cpu_stats") or {}
    precpu = stats.get("precpu_stats") or {}
    cpu_delta = (cpu.get("cpu_usage") or {}).get("total_usage", 0) - (
        precpu.get("cpu_usage") or {}
    ).get("total_usage", 0)
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    if cpu_delta <= 0 or system_delta <= 0:
        return 0.0
    online_cpus = cpu.get("online_cpus") or len((cpu.get("cpu_usage") or {}).get("percpu_usage") or []) or 1
    return percent(cpu_delta * online_cpus, system_delta)


def container_memory_usage(stats: dict) -> Optional[int]:
    """Memory in use by a container, excluding the page cache."""
    memory = stats.get("memory_stats") or {}
    usage = memory.get("usage")
    if usage is None:
        return None
    details = memory.get("stats") or {}
    # cgroup v2 reports inactive_file, cgroup v1 reports cache.
    cache = details.get("inactive_file", details.get("cache", 0))
    return usage - cache if cache <= usage else usage
