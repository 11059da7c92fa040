"""Abstract base class for answer-generation (LLM) service providers.

Defines the generation capability used by the query service: a cited answer
from retrieved context plus conversation history, and a few follow-up
questions.  Implementations wrap OpenAI, Anthropic, Gemini, or a local
Ollama model; see :mod:`lexrag.providers.llm.base` for the shared
prompt-driven implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from lexrag.interfaces.embedding_provider import ProbeMode

if TYPE_CHECKING:
    from lexrag.models.conversation import ConversationMessage
    from lexrag.models.document import SearchResult


# Concrete implementations (lexrag/providers/llm/):
#   OpenAILLMProvider, AnthropicLLMProvider, GeminiLLMProvider, OllamaLLMProvider
class ILLMProvider(ABC):
    """Contract for generation services used by the query pipeline."""

    @abstractmethod
    async def generate_response(
        self,
        prompt: str,
        context: list[SearchResult],
        conversation: list[ConversationMessage] | None = None,
    ) -> str:
        """Answer *prompt* grounded in *context* and prior *conversation* turns.

        Raises
        ------
        lexrag.utils.errors.LLMError
            If the API call fails or returns no text.
        """

    @abstractmethod
    async def generate_related_questions(
        self, query: str, context: list[SearchResult]
    ) -> list[str]:
        """Return up to three follow-up questions derived from the top results."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    def probe_mode(self) -> ProbeMode:
        """Return how this provider should be probed for liveness."""
        return ProbeMode.MINIMAL_CALL

    async def health_check(self) -> bool:
        """Dedicated liveness probe for providers declaring ``HEALTH_CHECK``."""
        raise NotImplementedError(
            f"{type(self).__name__} declares {self.probe_mode().value}; "
            "it has no dedicated health check"
        )
