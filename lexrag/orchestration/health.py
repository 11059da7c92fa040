"""Per-provider health bookkeeping shared by the orchestrator and its wrappers.

Every probe result and every live call outcome is one *observation*.  The
registry keeps the most recent 100 observations per provider and derives the
error rate from them; the cumulative error count, last latency and last
error message are tracked alongside.  State moves ``unknown -> healthy`` or
``unknown -> unhealthy`` on the first observation and then follows the
latest outcome.

The registry is written from request paths and from the background health
task, so all access goes through one lock.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

from lexrag.models.provider import AIProvider, ProviderHealthStatus, ProviderState

#: Observations retained per provider for the error-rate window.
HEALTH_WINDOW = 100


@dataclass
class _ProviderHealth:
    """Mutable internal record; only snapshots leave the registry."""

    state: ProviderState = ProviderState.UNKNOWN
    last_check: datetime | None = None
    latency_ms: float | None = None
    error_count: int = 0
    last_error: str | None = None
    window: deque = field(default_factory=lambda: deque(maxlen=HEALTH_WINDOW))

    def snapshot(self, provider: AIProvider) -> ProviderHealthStatus:
        failures = sum(1 for ok in self.window if not ok)
        rate = (failures / len(self.window) * 100.0) if self.window else 0.0
        return ProviderHealthStatus(
            provider=provider,
            state=self.state,
            healthy=self.state is ProviderState.HEALTHY,
            last_check=self.last_check,
            latency_ms=self.latency_ms,
            error_count=self.error_count,
            error_rate=rate,
            last_error=self.last_error,
        )


class HealthRegistry:
    """Thread-safe map of provider -> rolling health record."""

    def __init__(self, providers: list[AIProvider]) -> None:
        self._lock = threading.Lock()
        self._records: dict[AIProvider, _ProviderHealth] = {
            provider: _ProviderHealth() for provider in providers
        }

    def record_success(self, provider: AIProvider, latency_ms: float | None = None) -> None:
        with self._lock:
            record = self._records.setdefault(provider, _ProviderHealth())
            record.state = ProviderState.HEALTHY
            record.last_check = datetime.now(timezone.utc)
            record.latency_ms = latency_ms
            record.window.append(True)

    def record_failure(
        self, provider: AIProvider, error: str, latency_ms: float | None = None
    ) -> None:
        with self._lock:
            record = self._records.setdefault(provider, _ProviderHealth())
            record.state = ProviderState.UNHEALTHY
            record.last_check = datetime.now(timezone.utc)
            record.latency_ms = latency_ms
            record.error_count += 1
            record.last_error = error
            record.window.append(False)

    def get(self, provider: AIProvider) -> ProviderHealthStatus:
        with self._lock:
            record = self._records.get(provider) or _ProviderHealth()
            return record.snapshot(provider)

    def snapshot(self) -> dict[AIProvider, ProviderHealthStatus]:
        """Return a point-in-time copy for every known provider."""
        with self._lock:
            return {
                provider: record.snapshot(provider)
                for provider, record in self._records.items()
            }
