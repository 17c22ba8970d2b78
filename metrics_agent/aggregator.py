"""Assemble one snapshot from independent probes run concurrently."""
from __future__ import annotations

import asyncio
import functools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import Settings
from .errors import AggregationFailure, ProbeFailure, ProbeResult
from .metrics import HostPlatform
from .models import ContainerEntry, Snapshot
from .probes import (
    ContainerInventoryProbe,
    ContainersProbe,
    CpuProbe,
    MemoryProbe,
    OsProbe,
    Probe,
    ServicesProbe,
    StorageProbe,
)

logger = logging.getLogger(__name__)


class Aggregator:
    """Run every probe for a request and collect their results into a :class:`Snapshot`.

    Each probe owns a small thread pool with ``Settings.probe_slots`` workers;
    the aggregator waits for all probes (or for their timeout) before building
    the response. A failed or timed-out probe only nulls its own field. A probe
    whose slots are all held by calls that never returned is reported
    unavailable straight away instead of queueing.
    """

    def __init__(self, settings: Settings, platform: Optional[Any] = None) -> None:
        self.settings = settings
        self.platform = platform if platform is not None else HostPlatform(settings)

        self.os_probe = OsProbe(self.platform)
        self.cpu_probe = CpuProbe(self.platform)
        self.storage_probe = StorageProbe(self.platform)
        self.memory_probe = MemoryProbe(self.platform)
        self.services_probe = ServicesProbe(self.platform, settings.services)
        self.containers_probe = ContainersProbe(self.platform)
        self.inventory_probe = ContainerInventoryProbe(self.platform)

        probes = [
            self.os_probe,
            self.cpu_probe,
            self.storage_probe,
            self.memory_probe,
            self.services_probe,
            self.containers_probe,
            self.inventory_probe,
        ]
        self._executors = {
            probe.name: ThreadPoolExecutor(
                max_workers=settings.probe_slots, thread_name_prefix=f"probe-{probe.name}"
            )
            for probe in probes
        }
        self._slots = {probe.name: threading.BoundedSemaphore(settings.probe_slots) for probe in probes}

    async def build_snapshot(self, services: Optional[Iterable[str]] = None) -> Snapshot:
        jobs: Dict[str, Tuple[Probe, Dict[str, Any]]] = {
            "os": (self.os_probe, {}),
            "cpu": (self.cpu_probe, {}),
            "storage": (self.storage_probe, {}),
            "memory": (self.memory_probe, {}),
            "services": (self.services_probe, {"names": services}),
        }
        if self.settings.include_containers:
            jobs["containers"] = (self.containers_probe, {})

        try:
            results = await asyncio.gather(*(self._run(probe, params) for probe, params in jobs.values()))
            return Snapshot(**{field: result.unwrap_or_none() for field, result in zip(jobs, results)})
        except Exception as exc:
            logger.exception("Error getting system data")
            raise AggregationFailure(str(exc) or exc.__class__.__name__) from exc

    async def list_containers(self) -> List[ContainerEntry]:
        try:
            result = await self._run(self.inventory_probe, {})
        except Exception as exc:
            logger.exception("Error getting docker data")
            raise AggregationFailure(str(exc) or exc.__class__.__name__) from exc
        if not result.ok:
            raise AggregationFailure(str(result.failure))
        return result.value

    async def _run(self, probe: Probe, params: Dict[str, Any]) -> ProbeResult:
        slots = self._slots[probe.name]
        if not slots.acquire(blocking=False):
            # Every slot is held by a call that has not returned yet.
            return self._unavailable(probe, "previous calls still running")

        try:
            future = self._executors[probe.name].submit(functools.partial(probe.fetch, **params))
        except RuntimeError:
            slots.release()
            raise
        future.add_done_callback(lambda _: slots.release())

        timeout = self.settings.probe_timeout or None
        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), timeout)
        except asyncio.TimeoutError:
            # The worker thread cannot be interrupted; it keeps its slot until it returns.
            return self._unavailable(probe, f"timed out after {timeout:g}s")

    def _unavailable(self, probe: Probe, message: str) -> ProbeResult:
        failure = ProbeFailure(probe.name, message)
        logger.warning("Error getting %s data: %s", probe.name, failure.message)
        return ProbeResult.failed(failure)

    def close(self) -> None:
        for executor in self._executors.values():
            executor.shutdown(wait=False, cancel_futures=True)
