# admin_chat/services/chat_service.py
from typing import Any, Dict, List, Optional, Tuple
import logging

from admin_chat.config import settings
from admin_chat.models.conversation import Conversation, Participant
from admin_chat.models.message import Message
from admin_chat.schemas.conversation import (
    ChatConversationPayload, ChatParticipantPayload, ConversationQuery, ConversationsPage,
    ConversationSettingsUpdate, CreateConversationRequest, UserSearchResult
)
from admin_chat.schemas.message import (
    ChatMessagePayload, MessagesPage, PaginationPayload, SendMessageRequest
)
from admin_chat.services.api_client import ChatApiClient

logger = logging.getLogger(__name__)


class ChatService:
    """REST side of the chat: queries and mutations against the chat service."""

    def __init__(self, api_client: ChatApiClient):
        self.api = api_client

    async def get_all_conversations(
        self, query: Optional[ConversationQuery] = None
    ) -> Tuple[List[Conversation], PaginationPayload]:
        query = query or ConversationQuery()
        logger.debug(f"Fetching conversations with query: {query.to_params()}")
        raw = await self.api.get("/chat/conversations", params=query.to_params())
        page = ConversationsPage.model_validate(raw or {})
        conversations = [c.to_domain() for c in page.conversations]
        return conversations, page.normalized_pagination(query.limit or settings.MESSAGES_PAGE_SIZE)

    async def get_conversation(self, conversation_id: str) -> Conversation:
        raw = await self.api.get(f"/chat/conversations/{conversation_id}")
        return ChatConversationPayload.model_validate(raw).to_domain()

    async def create_conversation(self, request: CreateConversationRequest) -> Conversation:
        logger.info(f"Creating {request.type} conversation with {request.participants}")
        raw = await self.api.post("/chat/conversations", request.to_wire())
        return ChatConversationPayload.model_validate(raw).to_domain()

    async def get_conversation_participants(self, conversation_id: str) -> List[Participant]:
        raw = await self.api.get(f"/chat/conversations/{conversation_id}/participants")
        return [ChatParticipantPayload.model_validate(p).to_domain() for p in raw or []]

    async def add_participant(self, conversation_id: str, user_id: str) -> None:
        await self.api.post(f"/chat/conversations/{conversation_id}/participants", {"userId": user_id})

    async def remove_participant(self, conversation_id: str, user_id: str) -> None:
        await self.api.delete(f"/chat/conversations/{conversation_id}/participants/{user_id}")

    async def get_conversation_messages(
        self, conversation_id: str, page: int = 1, limit: int = 50
    ) -> Tuple[List[Message], PaginationPayload]:
        raw = await self.api.get(
            f"/messages/conversation/{conversation_id}",
            params={"page": page, "limit": limit},
        )
        messages_page = MessagesPage.model_validate(raw or {})
        messages = [m.to_domain(conversation_id) for m in messages_page.messages]
        return messages, messages_page.normalized_pagination(page, limit)

    async def send_message(self, request: SendMessageRequest) -> Message:
        raw = await self.api.post("/chat/messages", request.to_wire())
        return ChatMessagePayload.model_validate(raw).to_domain(request.conversation_id)

    async def mark_messages_as_read(self, conversation_id: str) -> None:
        await self.api.post(f"/chat/conversations/{conversation_id}/mark-read")

    async def mark_message_as_read(self, message_id: str) -> None:
        await self.api.post(f"/chat/messages/{message_id}/mark-read")

    async def assign_conversation(self, conversation_id: str, admin_id: str) -> None:
        await self.api.post(f"/chat/conversations/{conversation_id}/assign", {"adminId": admin_id})

    async def archive_conversation(self, conversation_id: str) -> None:
        await self.api.post(f"/chat/conversations/{conversation_id}/archive")

    async def unarchive_conversation(self, conversation_id: str) -> None:
        await self.api.post(f"/chat/conversations/{conversation_id}/unarchive")

    async def update_conversation_settings(
        self, conversation_id: str, update: ConversationSettingsUpdate
    ) -> Conversation:
        payload: Dict[str, Any] = update.model_dump(by_alias=True, exclude_none=True, mode="json")
        raw = await self.api.put(f"/chat/conversations/{conversation_id}/settings", payload)
        return ChatConversationPayload.model_validate(raw).to_domain()

    async def search_users(self, query: str, user_type: Optional[str] = None) -> List[UserSearchResult]:
        """Customers and vendors matching ``query``, for starting new conversations."""
        params: Dict[str, Any] = {"q": query}
        if user_type:
            params["type"] = user_type
        raw = await self.api.get("/users/search", params=params)
        return [UserSearchResult.model_validate(u) for u in raw or []]
