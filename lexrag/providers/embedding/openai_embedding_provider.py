"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports real OpenAI and OpenAI-compatible gateways via ``base_url``.
"""

from __future__ import annotations

import openai
import structlog

from lexrag.interfaces.embedding_provider import IEmbeddingProvider
from lexrag.models.provider import OpenAIConfig
from lexrag.utils.concurrency import embed_in_batches
from lexrag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 500


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    Uses ``text-embedding-3-small`` by default.  Batches of up to 500 texts
    are sent per request.  There is no cheap health endpoint for embeddings,
    so the orchestrator probes this provider with a one-word real call.
    """

    def __init__(self, config: OpenAIConfig, timeout: float = 60.0) -> None:
        client_kwargs: dict = {"api_key": config.api_key, "timeout": timeout}
        if config.organization:
            client_kwargs["organization"] = config.organization
        if config.base_url:
            client_kwargs["base_url"] = config.base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = config.embedding_model

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=texts, model=self._model)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"OpenAI embedding API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

        logger.info(
            "openai_embedding_batch",
            model=self._model,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        # the API may return items out of order; index restores input order
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]

    async def generate_embedding(self, text: str) -> list[float]:
        vectors = await self._embed_batch([text])
        if not vectors or not vectors[0]:
            raise EmbeddingError(
                message="OpenAI returned no embedding",
                provider_name=self.get_provider_name(),
            )
        return vectors[0]

    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        return await embed_in_batches(
            texts,
            embed_batch=self._embed_batch,
            embed_one=self.generate_embedding,
            batch_size=_OPENAI_BATCH_LIMIT,
            provider_name=self.get_provider_name(),
        )

    def get_provider_name(self) -> str:
        return "openai"
