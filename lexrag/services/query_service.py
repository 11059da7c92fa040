"""Retrieval-augmented question answering over the indexed corpus.

The data flow for one query:

  1. CONVERSATION -- look up (or start) the conversation and take its last
                     few messages as history.
  2. RETRIEVE     -- similarity search for the top chunks above the score
                     threshold, narrowed by the caller's metadata filters.
  3. GENERATE     -- the LLM answers from the retrieved chunks and history,
                     then separately suggests follow-up questions.
  4. CITE         -- each retrieved chunk becomes a citation whose excerpt
                     is built from its highlight sentences.
  5. RECORD       -- the user turn and the assistant turn (with citations)
                     are appended to the conversation.

Any failure during retrieval or generation is logged and answered with an
apology in the request's language; :meth:`QueryService.process_query`
never raises to its caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from lexrag.models.conversation import ConversationMessage, QueryRequest, QueryResponse
from lexrag.models.document import SearchOptions, SearchResult, SourceCitation

if TYPE_CHECKING:
    from lexrag.interfaces.llm_provider import ILLMProvider
    from lexrag.interfaces.vector_store_provider import IVectorStoreProvider
    from lexrag.services.conversation_store import ConversationStore

logger = structlog.get_logger(logger_name=__name__)

APOLOGIES: dict[str, str] = {
    "ja": "申し訳ございませんが、クエリの処理中にエラーが発生しました。もう一度お試しください。",
    "en": (
        "I apologize, but I encountered an error while processing your query. "
        "Please try again."
    ),
}

#: Results passed to follow-up question generation.
RELATED_QUESTION_CONTEXT = 3


def build_citation(result: SearchResult) -> SourceCitation:
    chunk = result.chunk
    excerpt = " ... ".join(result.highlights) if result.highlights else chunk.content[:200]
    return SourceCitation(
        document_path=chunk.document_path,
        title=chunk.title,
        excerpt=excerpt,
        score=result.score,
        chunk_id=chunk.id,
    )


class QueryService:
    """Answers questions with citations from the vector store and an LLM.

    Parameters
    ----------
    vector_store:
        Similarity search over indexed chunks.
    llm:
        Generation service, normally the orchestrator's tracked wrapper.
    conversations:
        Store holding conversation history.
    top_k:
        Maximum chunks retrieved per query.
    threshold:
        Minimum similarity score for a retrieved chunk.
    history_limit:
        Prior messages passed to the LLM.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        llm: ILLMProvider,
        conversations: ConversationStore,
        top_k: int = 10,
        threshold: float = 0.3,
        history_limit: int = 6,
    ) -> None:
        self._vector_store = vector_store
        self._llm = llm
        self._conversations = conversations
        self._top_k = top_k
        self._threshold = threshold
        self._history_limit = history_limit

    async def process_query(self, request: QueryRequest) -> QueryResponse:
        conversation = self._conversations.get_or_create(request.conversation_id)
        conversation_id = conversation.id

        try:
            history = self._conversations.get_history(conversation_id, self._history_limit)
            results = await self._vector_store.search(
                request.query,
                SearchOptions(
                    limit=self._top_k,
                    threshold=self._threshold,
                    filters=request.filters,
                ),
            )
            answer = await self._llm.generate_response(request.query, results, history)
            related = await self._llm.generate_related_questions(
                request.query, results[:RELATED_QUESTION_CONTEXT]
            )
            sources = [build_citation(result) for result in results]

            self._conversations.add_message(
                conversation_id, ConversationMessage(role="user", content=request.query)
            )
            self._conversations.add_message(
                conversation_id,
                ConversationMessage(role="assistant", content=answer, sources=sources),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "query_failed",
                conversation_id=conversation_id,
                query=request.query[:80],
                error=str(exc),
                exc_info=True,
            )
            return QueryResponse(
                answer=APOLOGIES.get(request.language, APOLOGIES["ja"]),
                sources=[],
                related_questions=[],
                conversation_id=conversation_id,
            )

        logger.info(
            "query_answered",
            conversation_id=conversation_id,
            results=len(results),
            top_score=results[0].score if results else 0.0,
            related=len(related),
        )
        return QueryResponse(
            answer=answer,
            sources=sources,
            related_questions=related[:3],
            conversation_id=conversation_id,
        )

    async def search_documents(
        self, query: str, options: SearchOptions | None = None
    ) -> list[SearchResult]:
        """Plain similarity search with no generation."""
        return await self._vector_store.search(query, options or SearchOptions())

    def get_conversation_history(self, conversation_id: str) -> list[ConversationMessage]:
        return self._conversations.get_history(conversation_id)
