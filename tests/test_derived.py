from __future__ import annotations

import json
import math

import pytest

from metrics_agent.derived import (
    container_cpu_percent,
    container_memory_usage,
    memory_active_percent,
    memory_used_percent,
    percent,
    storage_used_percent,
    sum_field,
)
from metrics_agent.models import DiskEntry


def test_storage_used_percent_zero_total_is_none_not_nan():
    value = storage_used_percent(0, 0)
    assert value is None
    json.dumps({"used_percent": value}, allow_nan=False)


def test_storage_used_percent_ratio():
    assert storage_used_percent(200, 50) == pytest.approx(25.0)


def test_percent_rejects_non_finite():
    assert percent(1, float("inf")) is None
    assert percent(float("nan"), 10) is None


def test_memory_percent_definitions():
    assert memory_used_percent(total=1000, available=750) == pytest.approx(25.0)
    assert memory_active_percent(total=1000, active=400) == pytest.approx(40.0)
    assert memory_active_percent(total=1000, active=None) is None
    assert memory_used_percent(total=0, available=0) is None


def test_sum_field_empty_sequence_is_zero():
    assert sum_field([], "size") == 0


def test_sum_field_keeps_integer_bytes_exact():
    sizes = [2 ** 53 + 1, 3, 2 ** 40]
    disks = [DiskEntry(mount=f"/m{i}", size=size, used=0, available=size) for i, size in enumerate(sizes)]
    total = sum_field(disks, "size")
    assert isinstance(total, int)
    assert total == sum(sizes)
    assert sum_field([{"used": 1}, {"used": 2}], "used") == 3


def test_container_cpu_percent_matches_docker_stats_formula():
    stats = {
        "cpu_stats": {"cpu_usage": {"total_usage": 400}, "system_cpu_usage": 2000, "online_cpus": 4},
        "precpu_stats": {"cpu_usage": {"total_usage": 300}, "system_cpu_usage": 1000},
    }
    assert container_cpu_percent(stats) == pytest.approx(100 / 1000 * 4 * 100)


def test_container_cpu_percent_without_previous_sample():
    assert container_cpu_percent({"cpu_stats": {}, "precpu_stats": {}}) == 0.0


@pytest.mark.parametrize(
    "memory_stats, expected",
    [
        ({"usage": 1000, "stats": {"inactive_file": 200}}, 800),
        ({"usage": 1000, "stats": {"cache": 300}}, 700),
        ({"usage": 1000}, 1000),
        ({}, None),
    ],
)
def test_container_memory_usage(memory_stats, expected):
    assert container_memory_usage({"memory_stats": memory_stats}) == expected


def test_percent_is_finite_for_regular_input():
    assert math.isfinite(percent(3, 7))
