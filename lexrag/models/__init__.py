"""lexrag domain models; re-exports all public model classes.

Organized by concern:
    - document.py: documents, metadata, chunks, search options/results
    - conversation.py: conversations and query request/response
    - provider.py: provider configuration, health and cost snapshots
    - indexing.py: indexer run results and statistics
"""

from __future__ import annotations

from lexrag.models.conversation import (
    Conversation,
    ConversationMessage,
    QueryRequest,
    QueryResponse,
)
from lexrag.models.document import (
    UNKNOWN_CATEGORY,
    DocumentChunk,
    DocumentMetadata,
    DocumentRecord,
    MetadataFilter,
    SearchOptions,
    SearchResult,
    SourceCitation,
)
from lexrag.models.indexing import IndexingResult, IndexStats
from lexrag.models.provider import (
    AIProvider,
    AnthropicConfig,
    CostRecord,
    CostSummary,
    GeminiConfig,
    LocalConfig,
    OpenAIConfig,
    OperationKind,
    ProviderConfig,
    ProviderHealthStatus,
    ProviderState,
)

__all__ = [
    "AIProvider",
    "AnthropicConfig",
    "Conversation",
    "ConversationMessage",
    "CostRecord",
    "CostSummary",
    "DocumentChunk",
    "DocumentMetadata",
    "DocumentRecord",
    "GeminiConfig",
    "IndexStats",
    "IndexingResult",
    "LocalConfig",
    "MetadataFilter",
    "OpenAIConfig",
    "OperationKind",
    "ProviderConfig",
    "ProviderHealthStatus",
    "ProviderState",
    "QueryRequest",
    "QueryResponse",
    "SearchOptions",
    "SearchResult",
    "SourceCitation",
    "UNKNOWN_CATEGORY",
]
