from admin_chat.services.api_client import ChatApiClient
from admin_chat.services.banner_board import BannerBoard, BannerService
from admin_chat.services.chat_service import ChatService
from admin_chat.services.chat_session import ChatSession
from admin_chat.services.composer import Composer, ComposeResult, PendingUpload, UploadState
from admin_chat.services.conversation_store import ConversationFilter, ConversationStore
from admin_chat.services.file_upload_service import FileUploadService, LocalFile
from admin_chat.services.notifier import Notifier, Toast, ToastLevel
from admin_chat.services.socket_client import ChatSocketClient
from admin_chat.services.transport import DeliveryPath, MessageTransport, SendResult, TransportState

__all__ = [
    "ChatApiClient", "BannerBoard", "BannerService", "ChatService", "ChatSession",
    "Composer", "ComposeResult", "PendingUpload", "UploadState",
    "ConversationFilter", "ConversationStore", "FileUploadService", "LocalFile",
    "Notifier", "Toast", "ToastLevel", "ChatSocketClient",
    "DeliveryPath", "MessageTransport", "SendResult", "TransportState",
]
