"""Failure types shared by the probe adapters and the aggregator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ProbeFailure(Exception):
    """A single data source could not be queried or returned malformed data."""

    def __init__(self, probe: str, message: str) -> None:
        super().__init__(f"{probe}: {message}")
        self.probe = probe
        self.message = message


class AggregationFailure(Exception):
    """An error above the per-probe level; reported to the HTTP caller."""


@dataclass(frozen=True)
class ProbeResult(Generic[T]):
    """Outcome of one probe call: either a value or the failure that replaced it."""

    value: Optional[T] = None
    failure: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "ProbeResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: ProbeFailure) -> "ProbeResult[T]":
        return cls(failure=failure)

    def unwrap_or_none(self) -> Optional[T]:
        return self.value if self.failure is None else None
