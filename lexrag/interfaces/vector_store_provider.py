"""Abstract base class for vector-store service providers.

Defines the contract for storing chunk embeddings and answering similarity
queries.  The concrete ChromaDB adapter lives in
``lexrag/providers/vector_store/``; another backend (Qdrant, pgvector, ...)
only needs to implement this interface.

**Filter semantics**: :class:`~lexrag.models.document.MetadataFilter` fields
(``category``, ``identifier``, ``era``) are combined conjunctively and
matched exactly.  Backends translate them into their own query language.

**Ordering**: search results are sorted by descending score; equal scores
are ordered by ascending chunk id so repeated calls return the same order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lexrag.models.document import DocumentChunk, SearchOptions, SearchResult


class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by retrieval and indexing."""

    @abstractmethod
    async def add_embeddings(self, chunks: list[DocumentChunk]) -> int:
        """Store *chunks*, embedding any that carry no vector yet.

        Failed groups are retried item by item; items that still fail are
        logged and skipped rather than raised.

        Returns
        -------
        int
            The number of chunks actually stored.
        """

    @abstractmethod
    async def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        """Embed *query* and delegate to :meth:`search_by_embedding`."""

    @abstractmethod
    async def search_by_embedding(
        self, embedding: list[float], options: SearchOptions | None = None
    ) -> list[SearchResult]:
        """Return at most ``options.limit`` results scoring ``>= options.threshold``.

        Raises
        ------
        lexrag.utils.errors.VectorStoreError
            If the backing store query fails.
        """

    @abstractmethod
    async def update_embedding(self, chunk_id: str, embedding: list[float]) -> None:
        """Replace the stored vector of one chunk."""

    @abstractmethod
    async def delete_embeddings(self, chunk_ids: list[str]) -> None:
        """Delete chunks by id.  An empty list is a no-op."""

    @abstractmethod
    async def delete_by_document(self, document_path: str) -> int:
        """Delete every chunk cut from *document_path*; return how many were removed."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored chunks."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""
