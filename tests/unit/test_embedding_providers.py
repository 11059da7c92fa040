"""Unit tests for embedding provider adapters: OpenAI, Gemini, Ollama."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest
from google.api_core import exceptions as google_exceptions

from lexrag.interfaces.embedding_provider import ProbeMode
from lexrag.models.provider import GeminiConfig, LocalConfig, OpenAIConfig
from lexrag.providers.embedding import (
    GeminiEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from lexrag.utils.errors import EmbeddingError


def _embedding_response(vectors: list[list[float]], shuffle: bool = False) -> MagicMock:
    items = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    if shuffle:
        items.reverse()
    mock_response = MagicMock()
    mock_response.data = items
    mock_response.usage = MagicMock(total_tokens=10)
    return mock_response


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def config(self) -> OpenAIConfig:
        return OpenAIConfig(api_key="sk-test", embedding_model="text-embedding-3-small")

    def test_provider_name_and_probe_mode(self, config) -> None:
        provider = OpenAIEmbeddingProvider(config)
        assert provider.get_provider_name() == "openai"
        assert provider.probe_mode() is ProbeMode.MINIMAL_CALL

    @pytest.mark.asyncio
    async def test_generate_embedding(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([[0.1, 0.2]]))

        with patch(
            "lexrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(config)
            vector = await provider.generate_embedding("第九条")

        assert vector == [0.1, 0.2]
        mock_client.embeddings.create.assert_awaited_once_with(
            input=["第九条"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_batch_restores_input_order(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_embedding_response([[1.0], [2.0], [3.0]], shuffle=True)
        )

        with patch(
            "lexrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(config)
            vectors = await provider.generate_embeddings(["a", "b", "c"])

        assert vectors == [[1.0], [2.0], [3.0]]

    @pytest.mark.asyncio
    async def test_batch_failure_falls_back_per_item(self, config) -> None:
        api_error = openai.APIError(message="Rate limit exceeded", request=MagicMock(), body=None)

        async def create(input, model):
            if len(input) > 1 or input[0] == "bad":
                raise api_error
            return _embedding_response([[float(len(input[0]))]])

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=create)

        with patch(
            "lexrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(config)
            vectors = await provider.generate_embeddings(["a", "bad", "ccc"])

        assert vectors == [[1.0], None, [3.0]]

    @pytest.mark.asyncio
    async def test_single_failure_raises(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="Invalid key", request=MagicMock(), body=None)
        )

        with patch(
            "lexrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(config)
            with pytest.raises(EmbeddingError) as exc_info:
                await provider.generate_embedding("x")

        assert exc_info.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_empty_vector_raises(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([]))

        with patch(
            "lexrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(config)
            with pytest.raises(EmbeddingError, match="no embedding"):
                await provider.generate_embedding("x")


# ======================================================================
# Gemini
# ======================================================================


def _fake_embed_content(model, content, task_type):
    if isinstance(content, list):
        return {"embedding": [[float(len(text)), 0.0] for text in content]}
    return {"embedding": [float(len(content)), 1.0]}


class TestGeminiEmbeddingProvider:
    @pytest.fixture()
    def config(self) -> GeminiConfig:
        return GeminiConfig(api_key="gm-test", embedding_model="models/gemini-embedding-001")

    @pytest.mark.asyncio
    async def test_query_uses_retrieval_query_task(self, config) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            mock_genai.embed_content.side_effect = _fake_embed_content
            provider = GeminiEmbeddingProvider(config)
            vector = await provider.generate_embedding("表現の自由")

        assert vector == [5.0, 1.0]
        assert mock_genai.embed_content.call_args.kwargs["task_type"] == "retrieval_query"

    @pytest.mark.asyncio
    async def test_documents_use_retrieval_document_task(self, config) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            mock_genai.embed_content.side_effect = _fake_embed_content
            provider = GeminiEmbeddingProvider(config)
            vectors = await provider.generate_embeddings(["一", "二二"])

        assert vectors == [[1.0, 0.0], [2.0, 0.0]]
        kwargs = mock_genai.embed_content.call_args.kwargs
        assert kwargs["task_type"] == "retrieval_document"
        assert kwargs["model"] == "models/gemini-embedding-001"

    @pytest.mark.asyncio
    async def test_api_error(self, config) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            mock_genai.embed_content.side_effect = google_exceptions.PermissionDenied("bad key")
            provider = GeminiEmbeddingProvider(config)
            with pytest.raises(EmbeddingError, match="bad key"):
                await provider.generate_embedding("x")

    @pytest.mark.asyncio
    async def test_health_check_lists_models(self, config) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            mock_genai.list_models.return_value = [
                SimpleNamespace(name="models/gemini-1.5-flash"),
                SimpleNamespace(name="models/gemini-embedding-001"),
            ]
            provider = GeminiEmbeddingProvider(config)
            assert provider.probe_mode() is ProbeMode.HEALTH_CHECK
            assert await provider.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_model_missing(self, config) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            mock_genai.list_models.return_value = [SimpleNamespace(name="models/other")]
            provider = GeminiEmbeddingProvider(config)
            assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_without_key(self) -> None:
        with patch("lexrag.providers.embedding.gemini_embedding_provider.genai") as mock_genai:
            provider = GeminiEmbeddingProvider(GeminiConfig(api_key=""))
            assert await provider.health_check() is False
        mock_genai.list_models.assert_not_called()


# ======================================================================
# Ollama
# ======================================================================


class TestOllamaEmbeddingProvider:
    @pytest.fixture()
    def config(self) -> LocalConfig:
        return LocalConfig(base_url="http://ollama:11434", embedding_model="nomic-embed-text")

    @pytest.mark.asyncio
    async def test_generate_embeddings(self, config) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_embedding_response([[0.5, 0.5], [0.1, 0.9]])
        )

        with patch(
            "lexrag.providers.embedding.ollama_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ) as mock_cls:
            provider = OllamaEmbeddingProvider(config)
            vectors = await provider.generate_embeddings(["a", "b"])

        assert vectors == [[0.5, 0.5], [0.1, 0.9]]
        assert mock_cls.call_args.kwargs["base_url"] == "http://ollama:11434/v1"
        assert provider.get_provider_name() == "local"

    @pytest.mark.asyncio
    async def test_health_check_delegates_to_server_probe(self, config) -> None:
        with patch(
            "lexrag.providers.embedding.ollama_embedding_provider.ollama_server_reachable",
            AsyncMock(return_value=True),
        ) as probe:
            provider = OllamaEmbeddingProvider(config)
            assert provider.probe_mode() is ProbeMode.HEALTH_CHECK
            assert await provider.health_check() is True

        probe.assert_awaited_once_with("http://ollama:11434")
