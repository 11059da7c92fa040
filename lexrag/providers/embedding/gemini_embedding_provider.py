"""Google Gemini embedding provider adapter.

Wraps ``google.generativeai.embed_content``.  The SDK is synchronous, so
calls run in a worker thread.  Documents are embedded with the
``retrieval_document`` task type; single texts (queries) use
``retrieval_query``.
"""

from __future__ import annotations

import asyncio

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from lexrag.interfaces.embedding_provider import IEmbeddingProvider, ProbeMode
from lexrag.models.provider import GeminiConfig
from lexrag.utils.concurrency import embed_in_batches
from lexrag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_GEMINI_BATCH_LIMIT = 100


class GeminiEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``gemini-embedding-001``.

    Declares a dedicated health check that lists the models visible to
    the configured key.
    """

    def __init__(self, config: GeminiConfig) -> None:
        self._config = config
        self._model = config.embedding_model
        genai.configure(api_key=config.api_key)

    async def _embed(self, content: str | list[str], task_type: str) -> object:
        try:
            return await asyncio.to_thread(
                genai.embed_content,
                model=self._model,
                content=content,
                task_type=task_type,
            )
        except google_exceptions.GoogleAPIError as exc:
            raise EmbeddingError(
                message=f"Gemini embedding API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        result = await self._embed(texts, "retrieval_document")
        vectors = result["embedding"]
        logger.info("gemini_embedding_batch", model=self._model, batch_size=len(texts))
        return [list(vector) for vector in vectors]

    async def _embed_document(self, text: str) -> list[float]:
        result = await self._embed(text, "retrieval_document")
        return list(result["embedding"])

    async def generate_embedding(self, text: str) -> list[float]:
        result = await self._embed(text, "retrieval_query")
        vector = result.get("embedding") if isinstance(result, dict) else None
        if not vector:
            raise EmbeddingError(
                message="Gemini returned no embedding",
                provider_name=self.get_provider_name(),
            )
        return list(vector)

    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        return await embed_in_batches(
            texts,
            embed_batch=self._embed_batch,
            embed_one=self._embed_document,
            batch_size=_GEMINI_BATCH_LIMIT,
            provider_name=self.get_provider_name(),
        )

    def probe_mode(self) -> ProbeMode:
        return ProbeMode.HEALTH_CHECK

    async def health_check(self) -> bool:
        """List models; the key is valid if the embedding model is visible."""
        if not self._config.api_key:
            return False
        try:
            models = await asyncio.to_thread(lambda: [m.name for m in genai.list_models()])
        except google_exceptions.GoogleAPIError as exc:
            logger.warning("gemini_health_check_failed", error=str(exc))
            return False
        return self._model in models

    def get_provider_name(self) -> str:
        return "gemini"
