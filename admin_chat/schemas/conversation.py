from pydantic import Field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging

from ..models.conversation import (
    Conversation, ConversationPriority, ConversationStatus, ConversationType,
    Participant, ParticipantType
)
from .message import CamelModel, ChatMessagePayload, PaginationPayload

logger = logging.getLogger(__name__)

# Marketplace conversation kinds -> widget conversation kinds
CONVERSATION_TYPE_MAP = {
    "customer_support": ConversationType.SUPPORT,
    "vendor_support": ConversationType.SUPPORT,
    "dispute": ConversationType.SUPPORT,
    "customer_vendor": ConversationType.DIRECT,
    "bargaining": ConversationType.DIRECT,
    "general": ConversationType.GROUP,
    "direct": ConversationType.DIRECT,
    "group": ConversationType.GROUP,
    "support": ConversationType.SUPPORT,
}


class ParticipantUserPayload(CamelModel):
    id: str
    name: str = ""
    email: str = ""
    user_type: Optional[str] = None
    is_online: bool = False
    last_seen: Optional[datetime] = None


class ChatParticipantPayload(CamelModel):
    user_id: str
    user_name: Optional[str] = None
    user: Optional[ParticipantUserPayload] = None
    user_type: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    is_online: Optional[bool] = None
    last_seen: Optional[datetime] = None
    role: Optional[str] = None
    department: Optional[str] = None

    def to_domain(self) -> Participant:
        user = self.user
        raw_type = (self.user_type or (user.user_type if user else None) or "customer").lower()
        try:
            participant_type = ParticipantType(raw_type)
        except ValueError:
            # admins show up as staff in the participant list
            participant_type = ParticipantType.STAFF if raw_type in ("admin", "super_admin") else ParticipantType.CUSTOMER

        is_online = self.is_online if self.is_online is not None else (user.is_online if user else False)
        return Participant(
            id=self.user_id,
            name=self.user_name or (user.name if user else ""),
            email=self.email or (user.email if user else ""),
            type=participant_type,
            avatar=self.avatar,
            is_online=is_online,
            last_seen=self.last_seen or (user.last_seen if user else None),
            role=self.role,
            department=self.department,
        )


class ChatConversationPayload(CamelModel):
    id: str
    type: str = "general"
    title: Optional[str] = None
    description: Optional[str] = None
    participants: List[ChatParticipantPayload] = []
    participant_ids: Optional[List[str]] = None
    last_message: Optional[ChatMessagePayload] = None
    unread_count: int = 0
    is_active: bool = True
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> Conversation:
        conversation_type = CONVERSATION_TYPE_MAP.get(self.type.lower())
        if conversation_type is None:
            logger.warning(f"Unknown conversation type '{self.type}' on {self.id}, treating as direct")
            conversation_type = ConversationType.DIRECT

        status = ConversationStatus.ACTIVE if self.is_active else ConversationStatus.ARCHIVED
        if self.status:
            try:
                status = ConversationStatus(self.status.lower())
            except ValueError:
                logger.warning(f"Unknown conversation status '{self.status}' on {self.id}")

        try:
            priority = ConversationPriority(str(self.metadata.get("priority") or "medium").lower())
        except ValueError:
            priority = ConversationPriority.MEDIUM

        participants = [p.to_domain() for p in self.participants]
        participant_ids = set(self.participant_ids or [p.id for p in participants])

        now = datetime.now(timezone.utc)
        return Conversation(
            id=self.id,
            participant_ids=participant_ids,
            participants=participants,
            last_message=self.last_message.to_domain(self.id) if self.last_message else None,
            unread_count=max(self.unread_count, 0),
            created_at=self.created_at or now,
            updated_at=self.updated_at or self.created_at or now,
            type=conversation_type,
            status=status,
            priority=priority,
            tags=set(self.metadata.get("tags") or []),
            assigned_to=self.metadata.get("assignedTo"),
            title=self.title,
            description=self.description,
        )


class ConversationQuery(CamelModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    type: Optional[str] = None
    search: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        # status is not accepted by the backend
        return self.model_dump(by_alias=True, exclude_none=True)


class ConversationsPage(CamelModel):
    conversations: List[ChatConversationPayload] = []
    total: Optional[int] = None
    page: Optional[int] = None
    total_pages: Optional[int] = None
    limit: Optional[int] = None
    pagination: Optional[PaginationPayload] = None

    def normalized_pagination(self, default_limit: int = 50) -> PaginationPayload:
        if self.pagination is not None:
            return self.pagination
        return PaginationPayload(
            total=self.total or 0,
            page=self.page or 1,
            limit=self.limit or default_limit,
            total_pages=self.total_pages or 0,
        )


class ConversationSettingsUpdate(CamelModel):
    title: Optional[str] = None
    is_active: Optional[bool] = None
    priority: Optional[ConversationPriority] = None
    assigned_to: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class UserSearchResult(CamelModel):
    """A user the admin can open a conversation with."""
    id: str
    name: str = ""
    email: str = ""
    type: str = "customer"
    avatar: Optional[str] = None


class CreateConversationRequest(CamelModel):
    type: str = "customer_support"
    participants: List[str]
    title: Optional[str] = None
    order_id: Optional[str] = None
    product_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def support_with(cls, user: UserSearchResult) -> "CreateConversationRequest":
        kind = "vendor_support" if user.type.lower() == "vendor" else "customer_support"
        return cls(
            type=kind,
            participants=[user.id],
            title=f"Support chat with {user.name or user.email or user.id}",
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
