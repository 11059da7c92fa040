"""Provider wrappers returned by the orchestrator.

A wrapper implements the same interface as the provider it holds and adds,
around every real call: cost tracking, the per-call timeout, a live health
observation, and error tagging.  Callers only ever see the wrapper, so
``get_provider_name()`` reports which provider in the chain was selected.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Awaitable, TypeVar

import structlog

from lexrag.interfaces.embedding_provider import IEmbeddingProvider, ProbeMode
from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.models.provider import AIProvider, OperationKind
from lexrag.orchestration.cost_ledger import estimate_tokens
from lexrag.utils.errors import EmbeddingError, LLMError, ProviderError

if TYPE_CHECKING:
    from lexrag.models.conversation import ConversationMessage
    from lexrag.models.document import SearchResult
    from lexrag.orchestration.cost_ledger import CostLedger
    from lexrag.orchestration.health import HealthRegistry

_T = TypeVar("_T")

logger = structlog.get_logger(logger_name=__name__)


class _TrackedCall:
    """Shared timeout / health / error handling for both wrappers."""

    error_cls: type[ProviderError] = ProviderError

    def __init__(
        self,
        inner: Any,
        provider: AIProvider,
        ledger: CostLedger,
        health: HealthRegistry,
        timeout_ms: int,
    ) -> None:
        self._inner = inner
        self._provider = provider
        self._ledger = ledger
        self._health = health
        self._timeout = timeout_ms / 1000

    @property
    def provider(self) -> AIProvider:
        return self._provider

    @property
    def inner(self) -> Any:
        return self._inner

    async def _call(self, operation: str, awaitable: Awaitable[_T]) -> _T:
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            self._health.record_failure(self._provider, f"{operation} timed out")
            raise self.error_cls(
                message=f"{operation} timed out after {self._timeout:.1f}s",
                provider_name=self._provider.value,
                original_error=exc,
            ) from exc
        except Exception as exc:
            self._health.record_failure(self._provider, str(exc))
            if isinstance(exc, ProviderError) and exc.provider_name == self._provider.value:
                raise
            raise self.error_cls(
                message=f"{operation} failed: {exc}",
                provider_name=self._provider.value,
                original_error=exc,
            ) from exc

        self._health.record_success(
            self._provider, latency_ms=(time.perf_counter() - started) * 1000
        )
        return result


class TrackedEmbeddingService(_TrackedCall, IEmbeddingProvider):
    """Embedding capability of the provider selected by the orchestrator."""

    error_cls = EmbeddingError

    async def generate_embedding(self, text: str) -> list[float]:
        vector = await self._call("generate_embedding", self._inner.generate_embedding(text))
        self._ledger.record(self._provider, OperationKind.EMBEDDING, estimate_tokens(text))
        return vector

    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        """Positionally aligned vectors; ``None`` marks an item that failed.

        Raises :class:`EmbeddingError` when every item failed.  A partial
        failure is returned as-is but still counts as a failed observation.
        Only items that produced a vector are charged.
        """
        vectors = await self._call("generate_embeddings", self._embed_batch(texts))

        failed = sum(1 for vector in vectors if vector is None)
        if failed:
            self._health.record_failure(
                self._provider, f"{failed} of {len(texts)} embeddings failed"
            )
            logger.warning(
                "embeddings_partially_failed",
                provider=self._provider.value,
                failed=failed,
                requested=len(texts),
            )
        self._ledger.record(
            self._provider,
            OperationKind.EMBEDDING,
            sum(
                estimate_tokens(text)
                for text, vector in zip(texts, vectors)
                if vector is not None
            ),
        )
        return vectors

    async def _embed_batch(self, texts: list[str]) -> list[list[float] | None]:
        vectors = await self._inner.generate_embeddings(texts)
        if texts and all(vector is None for vector in vectors):
            raise EmbeddingError(
                message=f"all {len(texts)} embeddings failed",
                provider_name=self._provider.value,
            )
        return vectors

    def probe_mode(self) -> ProbeMode:
        return self._inner.probe_mode()

    async def health_check(self) -> bool:
        return await self._inner.health_check()

    def get_provider_name(self) -> str:
        return self._provider.value


class TrackedLLMService(_TrackedCall, ILLMProvider):
    """Generation capability of the provider selected by the orchestrator."""

    error_cls = LLMError

    async def generate_response(
        self,
        prompt: str,
        context: list[SearchResult],
        conversation: list[ConversationMessage] | None = None,
    ) -> str:
        answer = await self._call(
            "generate_response",
            self._inner.generate_response(prompt, context, conversation),
        )
        context_text = "".join(result.chunk.content for result in context)
        self._ledger.record(
            self._provider,
            OperationKind.GENERATION,
            estimate_tokens(prompt + context_text),
            estimate_tokens(answer),
        )
        return answer

    async def generate_related_questions(
        self, query: str, context: list[SearchResult]
    ) -> list[str]:
        """Follow-up questions; any failure degrades to an empty list."""
        try:
            questions = await self._call(
                "generate_related_questions",
                self._inner.generate_related_questions(query, context),
            )
        except ProviderError as exc:
            logger.warning(
                "related_questions_failed",
                provider=self._provider.value,
                error=str(exc),
            )
            return []

        context_text = "".join(result.chunk.content for result in context)
        self._ledger.record(
            self._provider,
            OperationKind.GENERATION,
            estimate_tokens(query + context_text),
            estimate_tokens("\n".join(questions)),
        )
        return questions

    def probe_mode(self) -> ProbeMode:
        return self._inner.probe_mode()

    async def health_check(self) -> bool:
        return await self._inner.health_check()

    def get_provider_name(self) -> str:
        return self._provider.value
