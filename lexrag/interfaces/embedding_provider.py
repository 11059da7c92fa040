"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap OpenAI, Gemini, or a local Ollama model; the provider
orchestrator treats them as interchangeable.

Liveness probing is declared explicitly through :class:`ProbeMode` instead
of checking at runtime whether a provider happens to have a health method:
a provider either answers :meth:`IEmbeddingProvider.health_check` itself or
asks the orchestrator to make a minimal real call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class ProbeMode(str, Enum):
    """How the orchestrator verifies that a provider is usable."""

    #: The provider implements a dedicated ``health_check()`` operation.
    HEALTH_CHECK = "health_check"
    #: The orchestrator issues a minimal real call instead.
    MINIMAL_CALL = "minimal_call"


# Concrete implementations (lexrag/providers/embedding/):
#   OpenAIEmbeddingProvider: text-embedding-3-small
#   GeminiEmbeddingProvider: gemini-embedding-001
#   OllamaEmbeddingProvider: nomic-embed-text via a local Ollama server
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the retrieval layer."""

    @abstractmethod
    async def generate_embedding(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Raises
        ------
        lexrag.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def generate_embeddings(self, texts: list[str]) -> list[list[float] | None]:
        """Generate embedding vectors for many texts.

        Returns
        -------
        list[list[float] | None]
            One entry per input text, in input order.  ``None`` marks an
            item whose embedding failed after the per-item retry; callers
            must skip those rather than assume every entry is a vector.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    def probe_mode(self) -> ProbeMode:
        """Return how this provider should be probed for liveness."""
        return ProbeMode.MINIMAL_CALL

    async def health_check(self) -> bool:
        """Dedicated liveness probe for providers declaring ``HEALTH_CHECK``."""
        raise NotImplementedError(
            f"{type(self).__name__} declares {self.probe_mode().value}; "
            "it has no dedicated health check"
        )
