from admin_chat.schemas.message import (
    CamelModel, ChatMessagePayload, MessagesPage, PaginationPayload, SendMessageRequest
)
from admin_chat.schemas.conversation import (
    ChatConversationPayload, ChatParticipantPayload, ConversationQuery,
    ConversationsPage, ConversationSettingsUpdate, CreateConversationRequest, UserSearchResult
)
from admin_chat.schemas.file import FileValidation, UploadProgress, UploadResponse
from admin_chat.schemas.banner import BannerListResponse, BannerOrderUpdate, BannerUpdate

__all__ = [
    "CamelModel", "ChatMessagePayload", "MessagesPage", "PaginationPayload", "SendMessageRequest",
    "ChatConversationPayload", "ChatParticipantPayload", "ConversationQuery",
    "ConversationsPage", "ConversationSettingsUpdate", "CreateConversationRequest", "UserSearchResult",
    "FileValidation", "UploadProgress", "UploadResponse",
    "BannerListResponse", "BannerOrderUpdate", "BannerUpdate",
]
