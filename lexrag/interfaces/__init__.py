"""Public interface definitions for all external service providers.

Every external API in lexrag is reached only through the abstract base
classes defined here.  Concrete adapters in ``lexrag/providers/`` implement
them and are injected at runtime, so the orchestrator can swap providers and
tests can inject fakes.

    Interface              →  Concrete implementations
    ─────────────────────────────────────────────────────────────
    IEmbeddingProvider     →  OpenAI, Gemini, Ollama embedding providers
    ILLMProvider           →  OpenAI, Anthropic, Gemini, Ollama LLM providers
    IVectorStoreProvider   →  ChromaDBProvider
"""

from lexrag.interfaces.embedding_provider import IEmbeddingProvider, ProbeMode
from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
    "ProbeMode",
]
