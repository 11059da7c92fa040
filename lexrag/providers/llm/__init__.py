from lexrag.providers.llm.anthropic_provider import AnthropicLLMProvider
from lexrag.providers.llm.base import CompletionLLMProvider
from lexrag.providers.llm.gemini_provider import GeminiLLMProvider
from lexrag.providers.llm.ollama_provider import OllamaLLMProvider
from lexrag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = [
    "AnthropicLLMProvider",
    "CompletionLLMProvider",
    "GeminiLLMProvider",
    "OllamaLLMProvider",
    "OpenAILLMProvider",
]
