"""Host metrics agent: a JSON snapshot of the local machine over HTTP."""
from importlib.metadata import version

from .aggregator import Aggregator
from .api import create_app

__all__ = ["Aggregator", "create_app", "__version__"]

try:
    __version__ = version("host-metrics-agent")
except Exception:  # pragma: no cover - fallback when package metadata missing
    __version__ = "0.1.0"
