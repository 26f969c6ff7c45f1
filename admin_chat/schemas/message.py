from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, timezone
import logging

from ..models.message import FileMeta, Message, MessageType, SenderType, make_body

logger = logging.getLogger(__name__)

# Backend kinds that carry no attachment of their own
_TEXT_LIKE_KINDS = {"text", "system", "offer", "bargain_offer", "bargain_counter", "bargain_accept", "bargain_reject"}


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ReadReceiptPayload(CamelModel):
    user_id: str
    read_at: Optional[datetime] = None


class ChatMessagePayload(CamelModel):
    """A message as the marketplace chat service sends it."""
    id: str
    conversation_id: str = ""
    sender_id: str
    sender_name: Optional[str] = None
    sender_type: Optional[str] = None
    content: Optional[str] = ""
    type: Optional[str] = "text"
    message_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    sent_at: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    read_by: List[Union[str, ReadReceiptPayload]] = []
    reply_to: Optional[str] = None
    is_edited: bool = False
    client_message_id: Optional[str] = None
    temp_id: Optional[str] = None

    @field_validator("read_by", mode="before")
    @classmethod
    def _none_read_by(cls, value):
        return value or []

    def resolved_kind(self) -> MessageType:
        raw = (self.message_type or self.type or "text").lower()
        if raw in _TEXT_LIKE_KINDS:
            return MessageType.TEXT
        if raw == "files":
            return MessageType.FILE
        try:
            kind = MessageType(raw)
        except ValueError:
            logger.warning(f"Unknown message kind '{raw}' on message {self.id}, treating as text")
            return MessageType.TEXT
        if kind != MessageType.TEXT and not self.file_url:
            logger.warning(f"Message {self.id} has kind '{raw}' but no file url, treating as text")
            return MessageType.TEXT
        return kind

    def to_domain(self, conversation_id: Optional[str] = None) -> Message:
        kind = self.resolved_kind()
        file_meta = None
        if kind != MessageType.TEXT:
            file_meta = FileMeta(
                url=self.file_url,
                name=self.file_name or "",
                size=self.file_size or 0,
                mime_type=self.mime_type or "application/octet-stream",
            )

        readers = [r if isinstance(r, str) else r.user_id for r in self.read_by]

        try:
            sender_type = SenderType((self.sender_type or "customer").lower())
        except ValueError:
            sender_type = SenderType.CUSTOMER

        return Message(
            id=self.id,
            conversation_id=self.conversation_id or conversation_id or "",
            sender_id=self.sender_id,
            sender_name=self.sender_name or "",
            sender_type=sender_type,
            content=self.content or "",
            timestamp=self.sent_at or self.timestamp or datetime.now(timezone.utc),
            body=make_body(kind, file_meta),
            read_by=readers,
            reply_to=self.reply_to,
            is_edited=self.is_edited,
            client_message_id=self.client_message_id or self.temp_id,
        )


class PaginationPayload(CamelModel):
    total: int = 0
    page: int = 1
    limit: int = 50
    total_pages: int = 0


class MessagesPage(CamelModel):
    messages: List[ChatMessagePayload] = []
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    total_pages: Optional[int] = None
    pagination: Optional[PaginationPayload] = None

    def normalized_pagination(self, page: int, limit: int) -> PaginationPayload:
        if self.pagination is not None:
            return self.pagination
        return PaginationPayload(
            total=self.total or 0,
            page=self.page or page,
            limit=self.limit or limit,
            total_pages=self.total_pages or 0,
        )


class SendMessageRequest(CamelModel):
    conversation_id: str
    content: str
    type: MessageType = MessageType.TEXT
    reply_to: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def build(
        cls,
        conversation_id: str,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        file_meta: Optional[FileMeta] = None,
        reply_to: Optional[str] = None,
    ) -> "SendMessageRequest":
        request = cls(
            conversation_id=conversation_id,
            content=content,
            type=message_type,
            reply_to=reply_to,
        )
        if file_meta is not None:
            request.file_url = file_meta.url
            request.file_name = file_meta.name
            request.file_size = file_meta.size
            request.mime_type = file_meta.mime_type
        return request

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
