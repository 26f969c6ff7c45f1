from admin_chat.models.message import (
    Message, MessageType, SenderType, FileMeta, TypingIndicator,
    TextBody, ImageBody, VideoBody, AudioBody, FileBody, make_body
)
from admin_chat.models.conversation import (
    Conversation, ConversationType, ConversationStatus, ConversationPriority,
    Participant, ParticipantType
)
from admin_chat.models.banner import Banner

__all__ = [
    "Message", "MessageType", "SenderType", "FileMeta", "TypingIndicator",
    "TextBody", "ImageBody", "VideoBody", "AudioBody", "FileBody", "make_body",
    "Conversation", "ConversationType", "ConversationStatus", "ConversationPriority",
    "Participant", "ParticipantType",
    "Banner",
]
