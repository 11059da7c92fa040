"""Application composition root.

:func:`build_application` constructs every provider and service exactly
once and returns them in an :class:`Application` container that the CLI
(or any other front end) passes around.  No module holds global provider
state; the orchestrator instance lives on the container.

Construction order:

    Settings + config.yaml
      -> ProviderOrchestrator (validates the primary provider)
        -> embedding service, LLM service (first healthy in the chain)
          -> ChromaDBProvider (uses the embedding service)
            -> DocumentIndexer, QueryService
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from lexrag.config.loader import build_provider_config, load_config
from lexrag.config.settings import Settings
from lexrag.interfaces.embedding_provider import IEmbeddingProvider
from lexrag.interfaces.llm_provider import ILLMProvider
from lexrag.interfaces.vector_store_provider import IVectorStoreProvider
from lexrag.orchestration.provider_orchestrator import ProviderOrchestrator
from lexrag.orchestration.registry import ProviderRegistry
from lexrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from lexrag.services.conversation_store import ConversationStore
from lexrag.services.ingestion.chunker import DocumentChunker
from lexrag.services.ingestion.document_parser import DocumentParser
from lexrag.services.ingestion.indexer import DocumentIndexer
from lexrag.services.ingestion.metadata_extractor import MetadataExtractor
from lexrag.services.query_service import QueryService
from lexrag.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class Application:
    """Every long-lived component, built once per process."""

    settings: Settings
    config: dict[str, Any]
    orchestrator: ProviderOrchestrator
    embedding_service: IEmbeddingProvider
    llm_service: ILLMProvider
    vector_store: IVectorStoreProvider
    conversations: ConversationStore
    indexer: DocumentIndexer
    query_service: QueryService

    async def aclose(self) -> None:
        await self.orchestrator.aclose()

    async def __aenter__(self) -> Application:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


async def build_application(
    settings: Settings | None = None,
    config: dict[str, Any] | None = None,
    registry: ProviderRegistry | None = None,
    vector_store: IVectorStoreProvider | None = None,
    start_monitoring: bool = True,
) -> Application:
    """Construct the full object graph.

    Args:
        settings: Environment settings; read from the environment when omitted.
        config: Pre-merged configuration dict; loaded from YAML when omitted.
        registry: Provider factories, for injecting fakes in tests.
        vector_store: Store to use instead of a ChromaDB collection.
        start_monitoring: Launch the background health-check task.

    Raises:
        ConfigurationError: The primary provider is not configured.
        NoHealthyProviderError: No provider in the chain passed its probe.
    """
    settings = settings or Settings()
    config = config if config is not None else load_config(settings=settings)

    orchestrator = ProviderOrchestrator(build_provider_config(config), registry=registry)
    embedding_service = await orchestrator.create_embedding_service()
    llm_service = await orchestrator.create_llm_service()

    store_cfg = config.get("vector_store") or {}
    if vector_store is None:
        vector_store = ChromaDBProvider(
            embedding_service=embedding_service,
            persist_directory=store_cfg.get("persist_directory", settings.chroma_persist_dir),
            collection_name=store_cfg.get("collection", settings.chroma_collection),
            host=store_cfg.get("host") or None,
            port=int(store_cfg.get("port", settings.chroma_port)),
        )

    ingest_cfg = config.get("ingestion") or {}
    chunk_size = int(ingest_cfg.get("chunk_size", settings.chunk_size))
    overlap = int(ingest_cfg.get("overlap", settings.chunk_overlap))
    indexer = DocumentIndexer(
        vector_store=vector_store,
        embedding_service=embedding_service,
        parser=DocumentParser(
            MetadataExtractor(ingest_cfg.get("category_marker", "markdown"))
        ),
        chunker=DocumentChunker(chunk_size=chunk_size, overlap=overlap),
        chunk_size=chunk_size,
        overlap=overlap,
        document_batch_size=int(ingest_cfg.get("document_batch_size", 5)),
    )

    query_cfg = config.get("query") or {}
    conversations = ConversationStore()
    query_service = QueryService(
        vector_store=vector_store,
        llm=llm_service,
        conversations=conversations,
        top_k=int(query_cfg.get("top_k", 10)),
        threshold=float(query_cfg.get("threshold", 0.3)),
        history_limit=int(query_cfg.get("history_limit", 6)),
    )

    if start_monitoring:
        orchestrator.start()

    logger.info(
        "application_built",
        embedding_provider=embedding_service.get_provider_name(),
        llm_provider=llm_service.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
    )
    return Application(
        settings=settings,
        config=config,
        orchestrator=orchestrator,
        embedding_service=embedding_service,
        llm_service=llm_service,
        vector_store=vector_store,
        conversations=conversations,
        indexer=indexer,
        query_service=query_service,
    )


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or Settings()
    configure_logging(
        log_level=settings.log_level,
        json_output=settings.app_env == "production",
    )
