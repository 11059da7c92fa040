"""ChromaDB vector store provider adapter.

Implements :class:`IVectorStoreProvider` on a ChromaDB collection using
cosine distance.  The client is either a local ``PersistentClient``, an
``HttpClient`` pointed at a Chroma server, or any client injected by the
caller (tests use an in-memory ``EphemeralClient`` or a mock).

Embeddings are always computed by the injected embedding service, never by
ChromaDB itself.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any

import chromadb
import structlog

from lexrag.interfaces.embedding_provider import IEmbeddingProvider
from lexrag.interfaces.vector_store_provider import IVectorStoreProvider
from lexrag.models.document import (
    UNKNOWN_CATEGORY,
    DocumentChunk,
    DocumentMetadata,
    MetadataFilter,
    SearchOptions,
    SearchResult,
)
from lexrag.utils.errors import LexRAGError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

#: Chunks written per upsert call.
WRITE_GROUP_SIZE = 100
MAX_HIGHLIGHTS = 3
HIGHLIGHT_MAX_CHARS = 100

_SENTENCE_SPLIT = re.compile(r"[。！？!?\n]")


def extract_highlights(content: str) -> list[str]:
    """Return up to three leading sentences of *content*, each at most 100 chars."""
    highlights: list[str] = []
    for sentence in _SENTENCE_SPLIT.split(content):
        sentence = sentence.strip()
        if not sentence:
            continue
        if len(sentence) > HIGHLIGHT_MAX_CHARS:
            sentence = sentence[:HIGHLIGHT_MAX_CHARS] + "..."
        highlights.append(sentence)
        if len(highlights) == MAX_HIGHLIGHTS:
            break
    return highlights


def build_where_clause(filters: MetadataFilter | None) -> dict[str, Any] | None:
    """Translate a conjunctive exact-match filter into a Chroma ``where``."""
    if filters is None:
        return None
    conditions = filters.as_dict()
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions
    return {"$and": [{key: value} for key, value in conditions.items()]}


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by a ChromaDB collection."""

    def __init__(
        self,
        embedding_service: IEmbeddingProvider,
        persist_directory: str | None = "./data/chromadb",
        collection_name: str = "lexrag_documents",
        host: str | None = None,
        port: int = 8000,
        client: Any | None = None,
    ) -> None:
        self._embedding_service = embedding_service
        self._collection_name = collection_name

        if client is not None:
            self._client = client
        elif host:
            self._client = chromadb.HttpClient(
                host=host,
                port=port,
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )
        else:
            self._client = chromadb.PersistentClient(
                path=persist_directory or "./data/chromadb",
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )

        # no embedding function; vectors always arrive pre-computed
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB collection setup failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_embeddings(self, chunks: list[DocumentChunk]) -> int:
        """Embed (where needed) and upsert *chunks* in groups of 100."""
        if not chunks:
            return 0

        stored = 0
        skipped = 0
        for start in range(0, len(chunks), WRITE_GROUP_SIZE):
            group = chunks[start : start + WRITE_GROUP_SIZE]
            ready = await self._ensure_embeddings(group)
            skipped += len(group) - len(ready)
            if ready:
                stored += self._upsert_group(ready)

        logger.info(
            "chromadb_add_embeddings",
            requested=len(chunks),
            stored=stored,
            skipped=skipped,
        )
        return stored

    async def _ensure_embeddings(self, group: list[DocumentChunk]) -> list[DocumentChunk]:
        """Fill in missing vectors; drop chunks whose embedding failed."""
        missing = [chunk for chunk in group if chunk.embedding is None]
        vectors: dict[str, list[float] | None] = {}
        if missing:
            generated = await self._embedding_service.generate_embeddings(
                [chunk.content for chunk in missing]
            )
            vectors = {chunk.id: vector for chunk, vector in zip(missing, generated)}

        ready: list[DocumentChunk] = []
        for chunk in group:
            if chunk.embedding is not None:
                ready.append(chunk)
                continue
            vector = vectors.get(chunk.id)
            if vector is None:
                logger.warning(
                    "chunk_embedding_missing",
                    chunk_id=chunk.id,
                    document_path=chunk.document_path,
                )
                continue
            ready.append(chunk.model_copy(update={"embedding": vector}))
        return ready

    def _upsert_group(self, group: list[DocumentChunk]) -> int:
        try:
            self._upsert(group)
            return len(group)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "chromadb_group_upsert_failed",
                size=len(group),
                error=str(exc),
            )

        stored = 0
        for chunk in group:
            try:
                self._upsert([chunk])
                stored += 1
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "chromadb_item_upsert_failed",
                    chunk_id=chunk.id,
                    document_path=chunk.document_path,
                    error=str(exc),
                )
        return stored

    def _upsert(self, chunks: list[DocumentChunk]) -> None:
        self._collection.upsert(
            ids=[c.id for c in chunks],
            embeddings=[c.embedding for c in chunks],
            documents=[c.content for c in chunks],
            metadatas=[self._chunk_to_metadata(c) for c in chunks],
        )

    async def update_embedding(self, chunk_id: str, embedding: list[float]) -> None:
        try:
            self._collection.update(ids=[chunk_id], embeddings=[embedding])
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB update failed for {chunk_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_update_embedding", chunk_id=chunk_id)

    async def delete_embeddings(self, chunk_ids: list[str]) -> None:
        if not chunk_ids:
            return
        try:
            self._collection.delete(ids=list(chunk_ids))
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete_embeddings", count=len(chunk_ids))

    async def delete_by_document(self, document_path: str) -> int:
        try:
            existing = self._collection.get(where={"document_path": document_path})
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where={"document_path": document_path})
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB delete_by_document failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_document", document_path=document_path, deleted=count)
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        embedding = await self._embedding_service.generate_embedding(query)
        return await self.search_by_embedding(embedding, options)

    async def search_by_embedding(
        self, embedding: list[float], options: SearchOptions | None = None
    ) -> list[SearchResult]:
        options = options or SearchOptions()
        kwargs: dict[str, Any] = {
            "query_embeddings": [embedding],
            "n_results": options.limit,
            "include": ["documents", "metadatas", "distances"],
        }
        where = build_where_clause(options.filters)
        if where:
            kwargs["where"] = where

        try:
            results = self._collection.query(**kwargs)
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        matches: list[SearchResult] = []
        for chunk_id, content, meta, distance in zip(ids, documents, metadatas, distances):
            score = max(0.0, min(1.0, 1.0 - float(distance)))
            if score < options.threshold:
                continue
            try:
                chunk = self._metadata_to_chunk(chunk_id, content or "", meta or {})
            except (LexRAGError, ValueError) as exc:
                logger.warning("chromadb_result_unreadable", chunk_id=chunk_id, error=str(exc))
                continue
            matches.append(
                SearchResult(
                    chunk=chunk,
                    score=score,
                    highlights=extract_highlights(chunk.content),
                )
            )

        matches.sort(key=lambda r: (-r.score, r.chunk.id))
        matches = matches[: options.limit]
        logger.info(
            "chromadb_search",
            raw_results=len(ids),
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    # ------------------------------------------------------------------
    # Metadata (de)serialisation
    # ------------------------------------------------------------------

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, Any]:
        """Flatten a chunk into Chroma metadata (scalars only, no None)."""
        meta = chunk.metadata
        flat: dict[str, Any] = {
            "document_path": chunk.document_path,
            "title": chunk.title,
            "chunk_index": chunk.chunk_index,
            "start": chunk.start,
            "end": chunk.end,
            "category": meta.category,
            "file_name": meta.file_name,
            "file_path": meta.file_path,
            "last_modified": meta.last_modified.isoformat(),
        }
        if meta.identifier:
            flat["identifier"] = meta.identifier
        if meta.era:
            flat["era"] = meta.era
        if meta.date:
            flat["date"] = meta.date.isoformat()
        return flat

    @staticmethod
    def _metadata_to_chunk(chunk_id: str, content: str, meta: dict[str, Any]) -> DocumentChunk:
        document_path = meta.get("document_path", "")
        date_value = meta.get("date")
        last_modified = meta.get("last_modified")
        metadata = DocumentMetadata(
            category=meta.get("category") or UNKNOWN_CATEGORY,
            identifier=meta.get("identifier"),
            date=dt.date.fromisoformat(date_value) if date_value else None,
            era=meta.get("era"),
            file_name=meta.get("file_name", ""),
            file_path=meta.get("file_path", document_path),
            last_modified=(
                dt.datetime.fromisoformat(last_modified)
                if last_modified
                else dt.datetime.fromtimestamp(0, tz=dt.timezone.utc)
            ),
        )
        start = int(meta.get("start", 0))
        return DocumentChunk(
            id=chunk_id,
            document_path=document_path,
            title=meta.get("title", ""),
            content=content,
            chunk_index=int(meta.get("chunk_index", 0)),
            start=start,
            end=int(meta.get("end", start + len(content))),
            metadata=metadata,
        )
