"""Factories turning a :class:`ProviderConfig` block into provider adapters.

Each :class:`AIProvider` maps to an embedding factory and a generation
factory; ``None`` marks a capability the provider does not offer (Anthropic
has no embedding endpoint).  Tests pass their own mapping to the
orchestrator to inject fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from lexrag.interfaces.embedding_provider import IEmbeddingProvider
from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.models.provider import AIProvider, OperationKind, ProviderConfig
from lexrag.providers.embedding import (
    GeminiEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from lexrag.providers.llm import (
    AnthropicLLMProvider,
    GeminiLLMProvider,
    OllamaLLMProvider,
    OpenAILLMProvider,
)
from lexrag.utils.errors import ProviderError

EmbeddingFactory = Callable[[ProviderConfig], IEmbeddingProvider]
LLMFactory = Callable[[ProviderConfig], ILLMProvider]


@dataclass(frozen=True)
class ProviderFactories:
    embedding: EmbeddingFactory | None = None
    llm: LLMFactory | None = None

    def for_operation(self, operation: OperationKind) -> EmbeddingFactory | LLMFactory | None:
        return self.embedding if operation is OperationKind.EMBEDDING else self.llm


ProviderRegistry = dict[AIProvider, ProviderFactories]


def config_problem(config: ProviderConfig, provider: AIProvider) -> str | None:
    """Describe what is missing for *provider*, or ``None`` when it is usable."""
    block = getattr(config, provider.value)
    if block is None:
        return f"no configuration block for provider '{provider.value}'"
    if provider is AIProvider.LOCAL:
        return None if block.base_url else "local provider requires a base_url"
    if not block.api_key:
        return f"provider '{provider.value}' has no API key"
    return None


def _block(config: ProviderConfig, provider: AIProvider):
    problem = config_problem(config, provider)
    if problem:
        raise ProviderError(message=problem, provider_name=provider.value)
    return getattr(config, provider.value)


def _timeout_s(config: ProviderConfig) -> float:
    return config.request_timeout_ms / 1000


def default_registry() -> ProviderRegistry:
    """Factories for every built-in provider."""
    return {
        AIProvider.OPENAI: ProviderFactories(
            embedding=lambda c: OpenAIEmbeddingProvider(
                _block(c, AIProvider.OPENAI), timeout=_timeout_s(c)
            ),
            llm=lambda c: OpenAILLMProvider(_block(c, AIProvider.OPENAI), timeout=_timeout_s(c)),
        ),
        AIProvider.GEMINI: ProviderFactories(
            embedding=lambda c: GeminiEmbeddingProvider(_block(c, AIProvider.GEMINI)),
            llm=lambda c: GeminiLLMProvider(_block(c, AIProvider.GEMINI)),
        ),
        AIProvider.ANTHROPIC: ProviderFactories(
            embedding=None,
            llm=lambda c: AnthropicLLMProvider(
                _block(c, AIProvider.ANTHROPIC), timeout=_timeout_s(c)
            ),
        ),
        AIProvider.LOCAL: ProviderFactories(
            embedding=lambda c: OllamaEmbeddingProvider(
                _block(c, AIProvider.LOCAL), timeout=_timeout_s(c)
            ),
            llm=lambda c: OllamaLLMProvider(_block(c, AIProvider.LOCAL), timeout=_timeout_s(c)),
        ),
    }
