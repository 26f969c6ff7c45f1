from collections import OrderedDict
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional, Set
import logging

from pydantic import BaseModel

from admin_chat.models.conversation import (
    Conversation, ConversationPriority, ConversationStatus, ConversationType, ParticipantType
)
from admin_chat.models.message import Message

logger = logging.getLogger(__name__)


class ConversationFilter(BaseModel):
    """Optional predicates over the loaded conversations; None means "all"."""
    type: Optional[ConversationType] = None
    status: Optional[ConversationStatus] = None
    priority: Optional[ConversationPriority] = None
    participant_type: Optional[ParticipantType] = None
    unread_only: bool = False
    assigned_to_me: bool = False
    tags: Set[str] = set()

    def matches(self, conversation: Conversation, current_user_id: Optional[str] = None) -> bool:
        if self.type is not None and conversation.type != self.type:
            return False
        if self.status is not None and conversation.status != self.status:
            return False
        if self.priority is not None and conversation.priority != self.priority:
            return False
        if self.participant_type is not None and not any(
            p.type == self.participant_type for p in conversation.participants
        ):
            return False
        if self.unread_only and conversation.unread_count == 0:
            return False
        if self.assigned_to_me and (current_user_id is None or conversation.assigned_to != current_user_id):
            return False
        if self.tags and not self.tags.issubset(conversation.tags):
            return False
        return True


class ConversationStore:
    """In-memory conversations indexed by id, kept in load order.

    Every write bumps ``version`` so callers can tell when a cached view is stale.
    """

    def __init__(self, conversations: Iterable[Conversation] = ()):
        self._items: "OrderedDict[str, Conversation]" = OrderedDict()
        self.version = 0
        if conversations:
            self.replace_all(conversations)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Conversation]:
        return iter(list(self._items.values()))

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._items

    def _touch(self) -> None:
        self.version += 1

    def replace_all(self, conversations: Iterable[Conversation]) -> None:
        self._items = OrderedDict((c.id, c) for c in conversations)
        self._touch()
        logger.debug(f"Conversation store loaded {len(self._items)} conversations (v{self.version})")

    def upsert(self, conversation: Conversation) -> None:
        # existing ids keep their position
        self._items[conversation.id] = conversation
        self._touch()

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._items.get(conversation_id)

    def update(self, conversation_id: str, **changes: Any) -> Optional[Conversation]:
        current = self._items.get(conversation_id)
        if current is None:
            logger.debug(f"Ignoring update for unknown conversation {conversation_id}")
            return None
        updated = current.model_copy(update=changes)
        self._items[conversation_id] = updated
        self._touch()
        return updated

    def reset_unread(self, conversation_id: str) -> Optional[Conversation]:
        return self.update(conversation_id, unread_count=0)

    def record_message(self, message: Message, count_unread: bool = False) -> Optional[Conversation]:
        """Make ``message`` the conversation's last message, optionally counting it unread."""
        current = self._items.get(message.conversation_id)
        if current is None:
            return None
        updated_at = message.timestamp
        if _comparable(current.updated_at, updated_at):
            updated_at = max(current.updated_at, updated_at)
        changes = {"last_message": message, "updated_at": updated_at}
        if count_unread:
            changes["unread_count"] = current.unread_count + 1
        return self.update(message.conversation_id, **changes)

    def filter(
        self,
        search: str = "",
        conversation_filter: Optional[ConversationFilter] = None,
        current_user_id: Optional[str] = None,
    ) -> List[Conversation]:
        """Order-preserving subset matching the search term and filter."""
        result = []
        for conversation in self._items.values():
            if not conversation.matches_search(search):
                continue
            if conversation_filter is not None and not conversation_filter.matches(conversation, current_user_id):
                continue
            result.append(conversation)
        return result

    def unread_conversations(self) -> List[Conversation]:
        return [c for c in self._items.values() if c.unread_count > 0]

    @property
    def total_unread(self) -> int:
        return sum(c.unread_count for c in self._items.values())


def _comparable(a: datetime, b: datetime) -> bool:
    return (a.tzinfo is None) == (b.tzinfo is None)
