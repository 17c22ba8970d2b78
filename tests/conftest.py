from __future__ import annotations

import pytest

from metrics_agent.config import Settings

from .helpers.fakes import FakePlatform


@pytest.fixture
def settings():
    return Settings(services=("nginx", "mysql"), probe_timeout=5.0)


@pytest.fixture
def platform():
    return FakePlatform()
