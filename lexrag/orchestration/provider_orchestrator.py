"""Multi-provider orchestration with health-checked failover.

The orchestrator owns the primary/fallback chain from a
:class:`~lexrag.models.provider.ProviderConfig`.  Asking it for an embedding
or generation service walks the chain in order, builds each provider,
probes it, and returns the first one that passes, wrapped so that every
later call is cost-tracked, time-bounded and fed back into the health
registry.

Error classes drive the walk:

* :class:`ConfigurationError` is fatal and raised at construction when the
  primary provider cannot possibly work (no config block, no credentials).
* :class:`ProviderError` (construction failure, failed probe, missing
  fallback config) marks the provider unhealthy and moves on to the next
  one.
* A provider that does not offer the capability (Anthropic has no
  embeddings) is passed over without touching its health record.
* :class:`NoHealthyProviderError` is raised once the chain is exhausted.

Usage::

    async with ProviderOrchestrator(config) as orchestrator:
        embeddings = await orchestrator.create_embedding_service()
        llm = await orchestrator.create_llm_service()
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any

import structlog

from lexrag.interfaces.embedding_provider import ProbeMode
from lexrag.models.provider import (
    AIProvider,
    CostRecord,
    CostSummary,
    OperationKind,
    ProviderConfig,
    ProviderHealthStatus,
)
from lexrag.orchestration.cost_ledger import CostLedger
from lexrag.orchestration.health import HealthRegistry
from lexrag.orchestration.registry import ProviderRegistry, config_problem, default_registry
from lexrag.orchestration.wrappers import TrackedEmbeddingService, TrackedLLMService
from lexrag.providers.llm.base import PROBE_PROMPT
from lexrag.utils.errors import ConfigurationError, NoHealthyProviderError, ProviderError

logger = structlog.get_logger(logger_name=__name__)

#: Text embedded by the minimal-call embedding probe.
EMBEDDING_PROBE_TEXT = "test"


class ProviderOrchestrator:
    """Selects, probes and monitors embedding and generation providers."""

    def __init__(self, config: ProviderConfig, registry: ProviderRegistry | None = None) -> None:
        self._config = config
        self._registry = registry if registry is not None else default_registry()
        self._chain = config.provider_chain()

        problem = config_problem(config, config.primary)
        if problem:
            raise ConfigurationError(message=problem, provider_name=config.primary.value)

        self._health = HealthRegistry(self._chain)
        self._ledger = CostLedger(budget_limit=config.budget_limit)
        self._instances: dict[tuple[AIProvider, OperationKind], Any] = {}
        self._health_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Service selection
    # ------------------------------------------------------------------

    async def create_embedding_service(self) -> TrackedEmbeddingService:
        """Return the first healthy embedding provider in the chain."""
        provider, inner = await self._select(OperationKind.EMBEDDING)
        return TrackedEmbeddingService(
            inner, provider, self._ledger, self._health, self._config.request_timeout_ms
        )

    async def create_llm_service(self) -> TrackedLLMService:
        """Return the first healthy generation provider in the chain."""
        provider, inner = await self._select(OperationKind.GENERATION)
        return TrackedLLMService(
            inner, provider, self._ledger, self._health, self._config.request_timeout_ms
        )

    async def _select(self, operation: OperationKind) -> tuple[AIProvider, Any]:
        last_error: ProviderError | None = None
        for provider in self._chain:
            if not self._supports(provider, operation):
                # not an observation of the provider's health
                logger.info(
                    "provider_capability_unsupported",
                    provider=provider.value,
                    operation=operation.value,
                )
                last_error = ProviderError(
                    message=f"provider does not support {operation.value}",
                    provider_name=provider.value,
                )
                continue
            started = time.perf_counter()
            try:
                inner = self._build(provider, operation)
                await self._probe(provider, inner, operation)
            except ProviderError as exc:
                latency = (time.perf_counter() - started) * 1000
                self._health.record_failure(provider, exc.message, latency_ms=latency)
                logger.warning(
                    "provider_unavailable",
                    provider=provider.value,
                    operation=operation.value,
                    error=exc.message,
                )
                last_error = exc
                continue

            latency = (time.perf_counter() - started) * 1000
            self._health.record_success(provider, latency_ms=latency)
            logger.info(
                "provider_selected",
                provider=provider.value,
                operation=operation.value,
                primary=provider is self._config.primary,
                latency_ms=round(latency, 1),
            )
            return provider, inner

        raise NoHealthyProviderError(
            message=(
                f"No healthy {operation.value} provider among "
                f"{[p.value for p in self._chain]}"
            ),
            provider_name=self._config.primary.value,
            original_error=last_error,
        )

    def _supports(self, provider: AIProvider, operation: OperationKind) -> bool:
        factories = self._registry.get(provider)
        return factories is not None and factories.for_operation(operation) is not None

    def _build(self, provider: AIProvider, operation: OperationKind) -> Any:
        """Return a cached adapter, constructing it on first use."""
        key = (provider, operation)
        if key in self._instances:
            return self._instances[key]

        factories = self._registry.get(provider)
        factory = factories.for_operation(operation) if factories else None
        if factory is None:
            raise ProviderError(
                message=f"provider does not support {operation.value}",
                provider_name=provider.value,
            )
        try:
            instance = factory(self._config)
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(
                message=f"failed to construct {operation.value} provider: {exc}",
                provider_name=provider.value,
                original_error=exc,
            ) from exc

        self._instances[key] = instance
        return instance

    async def _probe(self, provider: AIProvider, inner: Any, operation: OperationKind) -> None:
        """Raise :class:`ProviderError` unless *inner* answers its liveness probe."""
        timeout = self._config.health_check_timeout_ms / 1000
        try:
            if inner.probe_mode() is ProbeMode.HEALTH_CHECK:
                ok = await asyncio.wait_for(inner.health_check(), timeout=timeout)
            elif operation is OperationKind.EMBEDDING:
                vector = await asyncio.wait_for(
                    inner.generate_embedding(EMBEDDING_PROBE_TEXT), timeout=timeout
                )
                ok = bool(vector)
            else:
                reply = await asyncio.wait_for(
                    inner.generate_response(PROBE_PROMPT, []), timeout=timeout
                )
                ok = bool(reply)
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                message=f"health probe timed out after {timeout:.1f}s",
                provider_name=provider.value,
                original_error=exc,
            ) from exc
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(
                message=f"health probe failed: {exc}",
                provider_name=provider.value,
                original_error=exc,
            ) from exc

        if not ok:
            raise ProviderError(message="health probe failed", provider_name=provider.value)

    # ------------------------------------------------------------------
    # Health monitoring
    # ------------------------------------------------------------------

    async def perform_health_checks(self) -> dict[AIProvider, ProviderHealthStatus]:
        """Probe every supported capability of every provider in the chain.

        A provider ends the cycle unhealthy if any of its capabilities failed.
        """
        for provider in self._chain:
            passed: list[float] = []
            failed: list[tuple[str, float]] = []
            for operation in OperationKind:
                if not self._supports(provider, operation):
                    continue
                started = time.perf_counter()
                try:
                    inner = self._build(provider, operation)
                    await self._probe(provider, inner, operation)
                except ProviderError as exc:
                    failed.append((exc.message, (time.perf_counter() - started) * 1000))
                    logger.warning(
                        "health_check_failed",
                        provider=provider.value,
                        operation=operation.value,
                        error=exc.message,
                    )
                    continue
                passed.append((time.perf_counter() - started) * 1000)

            for latency in passed:
                self._health.record_success(provider, latency_ms=latency)
            for message, latency in failed:
                self._health.record_failure(provider, message, latency_ms=latency)
        return self.get_health_status()

    def start(self) -> None:
        """Launch periodic health checks; a zero interval disables them."""
        interval_ms = self._config.health_check_interval_ms
        if interval_ms <= 0 or self._health_task is not None:
            return
        self._health_task = asyncio.create_task(self._health_loop(interval_ms / 1000))
        logger.info("health_monitor_started", interval_ms=interval_ms)

    async def _health_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.perform_health_checks()
            except Exception as exc:  # noqa: BLE001
                logger.error("health_check_cycle_failed", error=str(exc))

    async def aclose(self) -> None:
        """Stop the background health task, if running."""
        task, self._health_task = self._health_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("health_monitor_stopped")

    async def __aenter__(self) -> ProviderOrchestrator:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_health_status(self) -> dict[AIProvider, ProviderHealthStatus]:
        return self._health.snapshot()

    def get_cost_summary(self) -> CostSummary:
        return self._ledger.summary()

    def get_cost_records(self) -> list[CostRecord]:
        return self._ledger.records()

    @property
    def is_monitoring(self) -> bool:
        return self._health_task is not None and not self._health_task.done()
