from lexrag.services.conversation_store import ConversationStore
from lexrag.services.query_service import QueryService

__all__ = ["ConversationStore", "QueryService"]
