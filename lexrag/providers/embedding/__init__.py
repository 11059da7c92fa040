"""Embedding provider adapters.

Concrete implementations of IEmbeddingProvider:
    - OpenAIEmbeddingProvider: text-embedding-3-small (batches of 500)
    - GeminiEmbeddingProvider: gemini-embedding-001 (batches of 100)
    - OllamaEmbeddingProvider: nomic-embed-text on a local Ollama server

Anthropic has no embedding endpoint and therefore no adapter here.
"""

from lexrag.providers.embedding.gemini_embedding_provider import GeminiEmbeddingProvider
from lexrag.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from lexrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = [
    "GeminiEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
