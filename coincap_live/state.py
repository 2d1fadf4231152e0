"""Shared snapshot state written by the refresh scheduler and read by handlers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence


@dataclass(frozen=True, slots=True)
class Snapshot:
    assets: tuple[Any, ...]
    calls: int
    max_requests: int
    updated_at: datetime | None = None
    last_latency_ms: float | None = None
    last_error: str | None = None

    @property
    def limit_reached(self) -> bool:
        return self.calls >= self.max_requests


class SnapshotStore:
    """Owner of the cached asset list and the upstream call counter.

    The cache is an immutable tuple that is swapped, never mutated, so a
    reader sees either the previous list or the new one. Mutations run on
    the event loop thread without awaiting, which keeps them atomic with
    respect to concurrent request handlers.
    """

    def __init__(self, max_requests: int) -> None:
        if max_requests < 1:
            raise ValueError(f'max_requests must be at least 1: {max_requests}')
        self._max_requests = max_requests
        self._assets: tuple[Any, ...] = ()
        self._calls = 0
        self._updated_at: datetime | None = None
        self._last_latency_ms: float | None = None
        self._last_error: str | None = None

    @property
    def assets(self) -> tuple[Any, ...]:
        return self._assets

    @property
    def calls(self) -> int:
        return self._calls

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def remaining(self) -> int:
        return max(self._max_requests - self._calls, 0)

    @property
    def limit_reached(self) -> bool:
        return self._calls >= self._max_requests

    def record_success(self, assets: Sequence[Any], latency_ms: float) -> int:
        """Replace the cache with ``assets`` and count the call."""
        self._assets = tuple(assets)
        self._updated_at = datetime.now(timezone.utc)
        self._last_latency_ms = latency_ms
        self._last_error = None
        self._calls += 1
        return self._calls

    def record_failure(self, error: str) -> int:
        """Count a failed call, leaving the cached assets untouched."""
        self._last_error = error
        self._calls += 1
        return self._calls

    def snapshot(self) -> Snapshot:
        return Snapshot(
            assets=self._assets,
            calls=self._calls,
            max_requests=self._max_requests,
            updated_at=self._updated_at,
            last_latency_ms=self._last_latency_ms,
            last_error=self._last_error,
        )
