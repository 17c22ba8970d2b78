"""Runtime configuration helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

DEFAULT_SERVICES: Tuple[str, ...] = ("nginx", "mysql")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    services: Tuple[str, ...] = DEFAULT_SERVICES
    include_containers: bool = False
    docker_host: Optional[str] = None
    probe_timeout: float = 10.0
    probe_slots: int = 2
    cpu_sample_interval: float = 0.1
    expose_errors: bool = False


def parse_services(value: str) -> Tuple[str, ...]:
    """Split a comma-separated service list, keeping order and duplicates."""
    return tuple(name.strip() for name in value.split(",") if name.strip())


def _env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value
    return None


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    host = os.getenv("METRICS_AGENT_HOST", "0.0.0.0")
    port = int(_env("METRICS_AGENT_PORT", "PORT") or "3000")
    log_level = os.getenv("METRICS_AGENT_LOG_LEVEL", "info").lower()

    # An unset variable means the default list, an empty one means no services.
    raw_services = _env("METRICS_AGENT_SERVICES", "SERVICES")
    services = DEFAULT_SERVICES if raw_services is None else parse_services(raw_services)

    probe_timeout = float(os.getenv("METRICS_AGENT_PROBE_TIMEOUT", "10"))
    cpu_sample_interval = float(os.getenv("METRICS_AGENT_CPU_SAMPLE", "0.1"))
    if probe_timeout < 0 or cpu_sample_interval < 0:
        raise ValueError("probe timeout and CPU sample interval must not be negative")
    probe_slots = int(os.getenv("METRICS_AGENT_PROBE_SLOTS", "2"))
    if probe_slots < 1:
        raise ValueError("METRICS_AGENT_PROBE_SLOTS must be at least 1")

    return Settings(
        host=host,
        port=port,
        log_level=log_level,
        services=services,
        include_containers=_env_flag("METRICS_AGENT_CONTAINERS"),
        docker_host=_env("METRICS_AGENT_DOCKER_HOST", "DOCKER_HOST") or None,
        probe_timeout=probe_timeout,
        probe_slots=probe_slots,
        cpu_sample_interval=cpu_sample_interval,
        expose_errors=_env_flag("METRICS_AGENT_EXPOSE_ERRORS"),
    )
