"""In-memory conversation storage.

Conversations live for the lifetime of the process; nothing is persisted.
The map itself is guarded by a lock; appends to one conversation are
expected to come from a single writer at a time.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone

import structlog

from lexrag.models.conversation import Conversation, ConversationMessage

logger = structlog.get_logger(logger_name=__name__)


class ConversationStore:
    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.Lock()

    def get_or_create(self, conversation_id: str | None = None) -> Conversation:
        """Return the conversation for *conversation_id*, creating it if absent.

        A new random id is minted when *conversation_id* is ``None``.
        """
        conversation_id = conversation_id or str(uuid.uuid4())
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                conversation = Conversation(id=conversation_id)
                self._conversations[conversation_id] = conversation
                logger.debug("conversation_created", conversation_id=conversation_id)
            return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def add_message(self, conversation_id: str, message: ConversationMessage) -> None:
        conversation = self.get_or_create(conversation_id)
        with self._lock:
            conversation.messages.append(message)
            conversation.last_activity = datetime.now(timezone.utc)

    def get_history(self, conversation_id: str, limit: int | None = None) -> list[ConversationMessage]:
        """Return the last *limit* messages (all when ``None``), oldest first."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                return []
            messages = list(conversation.messages)
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return messages

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)
