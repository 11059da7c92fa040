"""Local embedding provider served by Ollama (``nomic-embed-text``).

Talks to the OpenAI-compatible ``/v1`` endpoint Ollama exposes.  Free and
offline; no API key required.
"""

from __future__ import annotations

import openai
import structlog

from lexrag.interfaces.embedding_provider import IEmbeddingProvider, ProbeMode
from lexrag.models.provider import LocalConfig
from lexrag.providers.llm.ollama_provider import ollama_server_reachable
from lexrag.utils.concurrency import embed_in_batches
from lexrag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 64


class OllamaEmbeddingProvider(IEmbeddingProvider):
    def __init__(self, config: LocalConfig, timeout: float = 60.0) -> None:
        self._base_url = config.base_url
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            api_key="ollama",
            timeout=timeout,
        )
        self._model = config.embedding_model

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=texts, model=self._model)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
                original_error=exc,
            ) from exc
        logger.info("ollama_embedding_batch", model=self._model, batch_size=len(texts))
        return [item.embedding for item in response.data]

    async def generate_embedding(self, text: str) -> list[float]:
        vectors = await self._embed_batch([text])
        if not vectors or not vectors[0]:
            raise EmbeddingError(
                message="Ollama returned no embedding",
                provider_name=self.get_provider_name(),
            )
        return vectors[0]

    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        return await embed_in_batches(
            texts,
            embed_batch=self._embed_batch,
            embed_one=self.generate_embedding,
            batch_size=_OLLAMA_BATCH_LIMIT,
            provider_name=self.get_provider_name(),
        )

    def probe_mode(self) -> ProbeMode:
        return ProbeMode.HEALTH_CHECK

    async def health_check(self) -> bool:
        return await ollama_server_reachable(self._base_url)

    def get_provider_name(self) -> str:
        return "local"
