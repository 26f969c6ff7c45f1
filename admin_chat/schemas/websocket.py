# admin_chat/schemas/websocket.py
from typing import Any, Dict, Optional
from datetime import datetime

from .message import CamelModel, ChatMessagePayload

# Events emitted by the admin client
SEND_MESSAGE = "send_message"
JOIN_CONVERSATION = "join_conversation"
LEAVE_CONVERSATION = "leave_conversation"
TYPING_INDICATOR = "typing_indicator"
MARK_AS_READ = "mark_as_read"

# Events pushed by the chat service
NEW_MESSAGE = "new_message"
MESSAGE_SENT = "message_sent"
MESSAGE_ERROR = "message_error"
USER_TYPING = "user_typing"
USER_STATUS_CHANGED = "user_status_changed"
MESSAGES_READ = "messages_read"
JOINED_CONVERSATION = "joined_conversation"
LEFT_CONVERSATION = "left_conversation"
JOIN_ERROR = "join_error"
CONVERSATION_ASSIGNED = "conversation_assigned"
PRIORITY_CHANGED = "priority_changed"


class OutgoingSocketMessage(CamelModel):
    conversation_id: str
    content: str
    type: str = "text"
    reply_to: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class NewMessageEvent(CamelModel):
    message: ChatMessagePayload
    conversation_id: str


class MessageErrorEvent(CamelModel):
    error: str


class UserTypingEvent(CamelModel):
    user_id: str
    user_name: str = ""
    conversation_id: str
    is_typing: bool


class UserStatusEvent(CamelModel):
    user_id: str
    is_online: bool
    last_seen: Optional[datetime] = None


class MessagesReadEvent(CamelModel):
    user_id: str
    conversation_id: str
    message_id: Optional[str] = None


class ConversationAssignedEvent(CamelModel):
    conversation_id: str
    admin_id: str


class PriorityChangedEvent(CamelModel):
    conversation_id: str
    priority: str
