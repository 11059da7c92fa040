"""Unit tests for the pydantic models and the error hierarchy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lexrag.models.conversation import QueryRequest
from lexrag.models.document import DocumentChunk, MetadataFilter, SearchOptions, SearchResult
from lexrag.models.provider import AIProvider, ProviderConfig
from lexrag.utils.errors import (
    ConfigurationError,
    EmbeddingError,
    LexRAGError,
    NoHealthyProviderError,
    ProviderError,
)
from tests.conftest import make_chunk


class TestDocumentChunk:
    def test_frozen(self) -> None:
        chunk = make_chunk()
        with pytest.raises(ValidationError):
            chunk.content = "changed"

    def test_span_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            DocumentChunk.model_validate(
                {**make_chunk().model_dump(), "start": 10, "end": 10}
            )

    def test_blank_content_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_chunk(content="   ")


class TestSearchModels:
    def test_filter_as_dict_drops_empty_fields(self) -> None:
        assert MetadataFilter(category="憲法", era="").as_dict() == {"category": "憲法"}

    @pytest.mark.parametrize("score", [-0.1, 1.1])
    def test_score_bounds(self, score: float) -> None:
        with pytest.raises(ValidationError):
            SearchResult(chunk=make_chunk(), score=score)

    def test_options_defaults(self) -> None:
        options = SearchOptions()
        assert (options.limit, options.threshold, options.filters) == (10, 0.0, None)

    def test_empty_query_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QueryRequest(query="")


class TestProviderConfig:
    def test_chain_keeps_order_without_duplicates(self) -> None:
        config = ProviderConfig(
            primary=AIProvider.GEMINI,
            fallback=[AIProvider.OPENAI, AIProvider.GEMINI, AIProvider.LOCAL, AIProvider.OPENAI],
        )
        assert config.provider_chain() == [AIProvider.GEMINI, AIProvider.OPENAI, AIProvider.LOCAL]

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ProviderConfig(primary=AIProvider.OPENAI, health_check_interval_ms=-1)


class TestErrors:
    def test_str_prefixes_provider(self) -> None:
        assert str(EmbeddingError("quota", provider_name="openai")) == "[openai] quota"
        assert str(LexRAGError("plain")) == "plain"

    def test_retryable_flags(self) -> None:
        assert ProviderError.retryable
        assert NoHealthyProviderError.retryable
        assert not ConfigurationError.retryable

    def test_original_error_kept(self) -> None:
        cause = RuntimeError("socket closed")
        error = NoHealthyProviderError(provider_name="openai", original_error=cause)
        assert error.original_error is cause
        assert isinstance(error, ProviderError)
