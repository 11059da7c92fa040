"""Document indexing pipeline: **parse -> chunk -> embed -> store**.

:class:`DocumentIndexer` coordinates the parser, the chunker and the vector
store; none of them know about each other.  Embedding happens inside the
vector store's ``add_embeddings`` using whichever embedding service the
orchestrator selected.

Re-indexing embeds a document's fresh chunks before its stored chunks are
deleted, so a document is only replaced once every new chunk has a vector.

Documents are processed in small batches (five by default): the files of a
batch are parsed concurrently in worker threads, then all of the batch's
chunks are handed to the vector store at once.  A document that fails to
parse is logged and counted, never raised, so one bad file does not stop a
corpus run.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

import structlog

from lexrag.models.indexing import IndexingResult, IndexStats
from lexrag.utils.errors import LexRAGError

if TYPE_CHECKING:
    from lexrag.interfaces.embedding_provider import IEmbeddingProvider
    from lexrag.interfaces.vector_store_provider import IVectorStoreProvider
    from lexrag.models.document import DocumentChunk
    from lexrag.services.ingestion.chunker import DocumentChunker
    from lexrag.services.ingestion.document_parser import DocumentParser

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DOCUMENT_BATCH_SIZE = 5


class DocumentIndexer:
    """Indexes markdown documents into the vector store.

    Parameters
    ----------
    vector_store:
        Destination store; also embeds chunks that carry no vector.
    embedding_service:
        Embeds re-indexed chunks ahead of replacing the stored ones.
    parser:
        Reads files into :class:`~lexrag.models.document.DocumentRecord`.
    chunker:
        Splits document text into chunks.
    chunk_size, overlap:
        Chunk window parameters passed to the chunker.
    document_batch_size:
        Documents parsed concurrently per batch.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        embedding_service: IEmbeddingProvider,
        parser: DocumentParser,
        chunker: DocumentChunker,
        chunk_size: int = 500,
        overlap: int = 100,
        document_batch_size: int = DEFAULT_DOCUMENT_BATCH_SIZE,
    ) -> None:
        self._vector_store = vector_store
        self._embedding_service = embedding_service
        self._parser = parser
        self._chunker = chunker
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._batch_size = max(1, document_batch_size)
        self._indexed_paths: set[str] = set()
        self._last_indexed_at: datetime | None = None

    async def index_documents(self, paths: Sequence[str | Path]) -> IndexingResult:
        """Parse, chunk, embed and store every file in *paths*."""
        started = time.perf_counter()
        processed = chunks_created = chunks_stored = 0
        failed_paths: list[str] = []

        for offset in range(0, len(paths), self._batch_size):
            batch = [str(p) for p in paths[offset : offset + self._batch_size]]
            prepared = await asyncio.gather(*(self._prepare(p) for p in batch))

            batch_chunks: list[DocumentChunk] = []
            batch_paths: list[str] = []
            for path, chunks in zip(batch, prepared):
                if chunks is None:
                    failed_paths.append(path)
                    continue
                batch_chunks.extend(chunks)
                batch_paths.append(path)

            try:
                stored = await self._vector_store.add_embeddings(batch_chunks)
            except LexRAGError as exc:
                logger.error(
                    "index_batch_failed",
                    batch=offset // self._batch_size,
                    documents=len(batch_paths),
                    error=str(exc),
                )
                failed_paths.extend(batch_paths)
                continue

            processed += len(batch_paths)
            chunks_created += len(batch_chunks)
            chunks_stored += stored
            self._mark_indexed(batch_paths)
            logger.info(
                "index_batch_complete",
                batch=offset // self._batch_size,
                documents=len(batch_paths),
                chunks=len(batch_chunks),
                stored=stored,
            )

        result = IndexingResult(
            documents_processed=processed,
            documents_failed=len(failed_paths),
            chunks_created=chunks_created,
            chunks_stored=chunks_stored,
            total_embeddings=await self._vector_store.count(),
            elapsed_seconds=round(time.perf_counter() - started, 3),
            failed_paths=failed_paths,
        )
        logger.info("indexing_complete", **result.model_dump(exclude={"failed_paths"}))
        return result

    async def reindex_documents(self, paths: Sequence[str | Path]) -> IndexingResult:
        """Replace the stored chunks of each document in *paths*.

        The fresh chunks are embedded first.  The stored chunks are left
        untouched unless every fresh chunk got a vector; only then are they
        deleted and the fresh chunks added.  Failures are logged per file
        and reported in the result.
        """
        started = time.perf_counter()
        processed = chunks_created = chunks_stored = chunks_deleted = 0
        failed_paths: list[str] = []

        for path in (str(p) for p in paths):
            chunks = await self._prepare(path)
            if chunks is None:
                failed_paths.append(path)
                continue
            try:
                chunks = await self._embed_all(path, chunks)
                if chunks is None:
                    failed_paths.append(path)
                    continue
                chunks_deleted += await self._vector_store.delete_by_document(path)
                stored = await self._vector_store.add_embeddings(chunks)
            except LexRAGError as exc:
                logger.error("reindex_document_failed", path=path, error=str(exc))
                failed_paths.append(path)
                continue
            if stored < len(chunks):
                logger.error(
                    "reindex_document_incomplete",
                    path=path,
                    chunks=len(chunks),
                    stored=stored,
                )
                failed_paths.append(path)
                chunks_stored += stored
                continue

            processed += 1
            chunks_created += len(chunks)
            chunks_stored += stored
            self._mark_indexed([path])
            logger.info("document_reindexed", path=path, chunks=len(chunks), stored=stored)

        return IndexingResult(
            documents_processed=processed,
            documents_failed=len(failed_paths),
            chunks_created=chunks_created,
            chunks_stored=chunks_stored,
            chunks_deleted=chunks_deleted,
            total_embeddings=await self._vector_store.count(),
            elapsed_seconds=round(time.perf_counter() - started, 3),
            failed_paths=failed_paths,
        )

    async def get_stats(self) -> IndexStats:
        return IndexStats(
            total_embeddings=await self._vector_store.count(),
            documents_indexed=len(self._indexed_paths),
            last_indexed_at=self._last_indexed_at,
        )

    async def _prepare(self, path: str) -> list[DocumentChunk] | None:
        """Parse and chunk one file; ``None`` when it cannot be parsed."""
        try:
            document = await asyncio.to_thread(self._parser.parse_markdown_file, path)
        except LexRAGError as exc:
            logger.warning("document_parse_failed", path=path, error=str(exc))
            return None
        chunks = self._chunker.chunk(document, self._chunk_size, self._overlap)
        logger.debug("document_prepared", path=path, chunks=len(chunks))
        return chunks

    async def _embed_all(
        self, path: str, chunks: list[DocumentChunk]
    ) -> list[DocumentChunk] | None:
        """Attach a vector to every chunk; ``None`` when any embedding failed."""
        if not chunks:
            return chunks
        vectors = await self._embedding_service.generate_embeddings(
            [chunk.content for chunk in chunks]
        )
        missing = sum(1 for vector in vectors if vector is None)
        if missing:
            logger.error(
                "reindex_embedding_failed",
                path=path,
                chunks=len(chunks),
                missing=missing,
            )
            return None
        return [
            chunk.model_copy(update={"embedding": vector})
            for chunk, vector in zip(chunks, vectors)
        ]

    def _mark_indexed(self, paths: list[str]) -> None:
        if not paths:
            return
        self._indexed_paths.update(paths)
        self._last_indexed_at = datetime.now(timezone.utc)
